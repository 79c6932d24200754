"""
Exception Taxonomy Tests

Tests codes, attributes and hierarchy of domain exceptions.
"""

import pytest

from discord_audio_pipeline.domain.music.value_objects import PipelineStage
from discord_audio_pipeline.domain.shared import (
    AbnormalExitError,
    AlreadyPlayingError,
    DomainError,
    InvalidLinkError,
    InvalidOperationError,
    NoResultsError,
    PipelineBuildError,
    PipelineError,
    PlaybackFailedError,
    ResolutionError,
    SpawnError,
    ValidationError,
)


class TestDomainError:
    """Tests for the base exceptions."""

    def test_domain_error_with_message(self):
        error = DomainError("Something went wrong")

        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.code == "DomainError"

    def test_domain_error_with_custom_code(self):
        assert DomainError("Custom error", code="CUSTOM_CODE").code == "CUSTOM_CODE"

    def test_validation_error_field(self):
        error = ValidationError("Invalid input", field="url")

        assert error.code == "VALIDATION_ERROR"
        assert error.field == "url"

    def test_invalid_operation_default_message(self):
        error = InvalidOperationError("start", "streaming")

        assert "start" in str(error)
        assert "streaming" in str(error)


class TestPipelineErrors:
    """Tests for pipeline build and runtime errors."""

    def test_spawn_error_is_build_error(self):
        cause = FileNotFoundError("ffmpeg")
        error = SpawnError(PipelineStage.TRANSCODER, "ffmpeg", cause)

        assert isinstance(error, PipelineBuildError)
        assert isinstance(error, PipelineError)
        assert error.stage is PipelineStage.TRANSCODER
        assert error.executable == "ffmpeg"
        assert error.cause is cause
        assert error.code == "SPAWN_ERROR"
        assert "transcoder" in str(error)

    def test_build_error_default_code(self):
        error = PipelineBuildError(PipelineStage.FETCHER, "stdout not piped")

        assert error.code == "PIPELINE_BUILD_ERROR"
        assert error.stage is PipelineStage.FETCHER

    def test_abnormal_exit(self):
        error = AbnormalExitError(PipelineStage.FETCHER, 2)

        assert error.code == "ABNORMAL_EXIT"
        assert error.exit_code == 2
        assert "fetcher" in str(error)


class TestOtherErrors:
    """Tests for resolution, playback and state errors."""

    def test_already_playing_is_invalid_operation(self):
        error = AlreadyPlayingError("Song")

        assert isinstance(error, InvalidOperationError)
        assert error.code == "ALREADY_PLAYING"
        assert error.title == "Song"

    @pytest.mark.parametrize(
        ("error", "code"),
        [
            (NoResultsError("query"), "NO_RESULTS"),
            (InvalidLinkError("https://x.example"), "INVALID_LINK"),
        ],
    )
    def test_resolution_errors(self, error, code):
        assert isinstance(error, ResolutionError)
        assert error.code == code

    def test_playback_failed_carries_reason(self):
        reason = AbnormalExitError(PipelineStage.TRANSCODER, 1)
        error = PlaybackFailedError("Song", "https://x.example", reason)

        assert error.reason is reason
        assert error.code == "PLAYBACK_FAILED"
        assert "Song" in str(error)

    def test_playback_failed_without_reason(self):
        error = PlaybackFailedError("Song", "https://x.example")

        assert str(error) == "Playback of 'Song' (https://x.example) failed"
