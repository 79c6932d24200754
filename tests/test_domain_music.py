"""
Unit Tests for the Music Domain

Tests for:
- Track metadata validation and formatting
- Track start/stop lifecycle and the single-pipeline invariant
- PipelineState transitions
- PipelineOutcome
"""

import asyncio
import functools

import pytest
from conftest import MISSING_EXECUTABLE
from pydantic import ValidationError

from discord_audio_pipeline.domain.music.entities import Track
from discord_audio_pipeline.domain.music.pipeline import PipelineOutcome
from discord_audio_pipeline.domain.music.value_objects import (
    PipelineStage,
    PipelineState,
    TrackPlaybackState,
)
from discord_audio_pipeline.domain.shared.constants import ConfigKeys
from discord_audio_pipeline.domain.shared.exceptions import (
    AbnormalExitError,
    AlreadyPlayingError,
    SpawnError,
)
from discord_audio_pipeline.infrastructure.audio.resource_pipeline import (
    PipelineCommands,
    ResourcePipeline,
)

# =============================================================================
# Track Metadata Tests
# =============================================================================


class TestTrackMetadata:
    """Tests for Track construction and helpers."""

    def test_valid_track(self):
        track = Track(url="https://youtu.be/abc", title="Song", duration_seconds=65)

        assert track.url == "https://youtu.be/abc"
        assert track.title == "Song"
        assert track.playback_state is TrackPlaybackState.IDLE
        assert track.pipeline is None

    def test_empty_url_rejected(self):
        with pytest.raises(ValidationError):
            Track(url="", title="Song")

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            Track(url="https://youtu.be/abc", title="")

    def test_overlong_title_rejected(self):
        with pytest.raises(ValidationError):
            Track(url="https://youtu.be/abc", title="x" * 501)

    def test_metadata_is_immutable(self):
        track = Track(url="https://youtu.be/abc", title="Song")

        with pytest.raises(ValidationError):
            track.title = "Other"

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [(0, "Unknown"), (65, "1:05"), (3725, "1:02:05")],
    )
    def test_duration_formatted(self, seconds, expected):
        track = Track(url="https://youtu.be/abc", title="Song", duration_seconds=seconds)

        assert track.duration_formatted == expected

    def test_display_title_includes_duration(self):
        track = Track(url="https://youtu.be/abc", title="Song", duration_seconds=65)

        assert track.display_title == "Song [1:05]"

    def test_start_message_carries_title_and_url(self):
        track = Track(url="https://youtu.be/abc", title="Song")

        message = track.start_message()

        assert "Song" in message
        assert "https://youtu.be/abc" in message


# =============================================================================
# Track Lifecycle Tests
# =============================================================================


class TestTrackLifecycle:
    """Tests for start/stop with a fake pipeline."""

    @pytest.mark.asyncio
    async def test_start_attaches_pipeline(self, sample_track, fake_opener):
        pipeline = await sample_track.start()

        assert sample_track.pipeline is pipeline
        assert fake_opener.opened == [pipeline]
        assert pipeline.locator == sample_track.url
        assert sample_track.is_streaming

    @pytest.mark.asyncio
    async def test_start_while_streaming_raises(self, sample_track, fake_opener):
        await sample_track.start()

        with pytest.raises(AlreadyPlayingError) as exc_info:
            await sample_track.start()

        assert exc_info.value.code == "ALREADY_PLAYING"
        assert len(fake_opener.opened) == 1

    @pytest.mark.asyncio
    async def test_concurrent_starts_open_one_pipeline(self, fake_opener):
        async def slow_opener(locator):
            await asyncio.sleep(0.05)
            return await fake_opener(locator)

        track = Track(url="https://youtu.be/abc", title="Song").bind_opener(slow_opener)

        results = await asyncio.gather(track.start(), track.start(), return_exceptions=True)

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], AlreadyPlayingError)
        assert len(fake_opener.opened) == 1

    @pytest.mark.asyncio
    async def test_stop_detaches_and_closes(self, sample_track):
        pipeline = await sample_track.start()

        await sample_track.stop()

        assert sample_track.pipeline is None
        assert pipeline.close_calls == 1
        assert sample_track.playback_state is TrackPlaybackState.IDLE

    @pytest.mark.asyncio
    async def test_stop_without_pipeline_is_noop(self, sample_track):
        await sample_track.stop()
        await sample_track.stop()

        assert sample_track.pipeline is None

    @pytest.mark.asyncio
    async def test_finished_pipeline_counts_as_idle(self, sample_track):
        pipeline = await sample_track.start()
        pipeline.finish()

        assert sample_track.playback_state is TrackPlaybackState.IDLE

    @pytest.mark.asyncio
    async def test_restart_after_failure_replaces_pipeline(self, sample_track, fake_opener):
        first = await sample_track.start()
        first.fail(AbnormalExitError(PipelineStage.FETCHER, 1))

        second = await sample_track.start()

        assert second is not first
        assert first.close_calls == 1
        assert sample_track.pipeline is second

    @pytest.mark.asyncio
    async def test_failed_start_leaves_track_idle(self):
        async def broken_opener(locator):
            raise SpawnError(PipelineStage.FETCHER, "yt-dlp", FileNotFoundError("yt-dlp"))

        track = Track(url="https://youtu.be/abc", title="Song")

        with pytest.raises(SpawnError):
            await track.start(broken_opener)

        assert track.pipeline is None
        assert track.playback_state is TrackPlaybackState.IDLE

    @pytest.mark.asyncio
    async def test_explicit_opener_wins_over_bound(self, sample_track, fake_opener):
        opened = []

        async def other(locator):
            pipeline = await fake_opener(locator)
            opened.append(pipeline)
            return pipeline

        pipeline = await sample_track.start(other)

        assert opened == [pipeline]


# =============================================================================
# Track with Real Processes
# =============================================================================


class TestTrackWithProcesses:
    """Tests driving a real process chain through a Track."""

    @pytest.mark.asyncio
    async def test_stop_kills_both_processes(self, commands):
        opener = functools.partial(
            ResourcePipeline.open,
            commands=PipelineCommands(
                fetch=commands.write_forever(), transcode=commands.copy()
            ),
        )
        track = Track(url="https://youtu.be/abc", title="Song").bind_opener(opener)

        pipeline = await track.start()
        assert await pipeline.output.read(4096)
        await track.stop()

        sup = pipeline.supervisor
        assert sup.live_pids == []
        assert sup.fetcher.kill_count == 1
        assert sup.transcoder.kill_count == 1
        assert track.playback_state is TrackPlaybackState.IDLE

    @pytest.mark.asyncio
    async def test_start_after_stop_opens_fresh_pipeline(self, commands):
        opener = functools.partial(
            ResourcePipeline.open,
            commands=PipelineCommands(
                fetch=commands.write_forever(), transcode=commands.copy()
            ),
        )
        track = Track(url="https://youtu.be/abc", title="Song").bind_opener(opener)

        first = await track.start()
        assert await asyncio.wait_for(first.output.read(4096), 10)
        first_pids = {first.supervisor.fetcher.pid, first.supervisor.transcoder.pid}
        await track.stop()

        second = await track.start()
        try:
            assert second is not first
            assert track.pipeline is second
            assert track.is_streaming
            assert second.state is PipelineState.STREAMING
            assert first.state is PipelineState.STOPPED
            second_pids = {second.supervisor.fetcher.pid, second.supervisor.transcoder.pid}
            assert second_pids.isdisjoint(first_pids)
            assert await asyncio.wait_for(second.output.read(4096), 10)
        finally:
            await track.stop()

        assert second.supervisor.live_pids == []

    @pytest.mark.asyncio
    async def test_default_opener_uses_configured_executables(self, monkeypatch):
        monkeypatch.setenv(ConfigKeys.FETCHER_PATH, MISSING_EXECUTABLE)
        track = Track(url="https://youtu.be/abc", title="Song")

        with pytest.raises(SpawnError) as exc_info:
            await track.start()

        assert exc_info.value.stage is PipelineStage.FETCHER
        assert exc_info.value.executable == MISSING_EXECUTABLE
        assert track.pipeline is None


# =============================================================================
# Value Object Tests
# =============================================================================


class TestPipelineState:
    """Tests for pipeline state transitions."""

    @pytest.mark.parametrize(
        ("source", "target", "allowed"),
        [
            (PipelineState.BUILDING, PipelineState.STREAMING, True),
            (PipelineState.BUILDING, PipelineState.FAILED, True),
            (PipelineState.STREAMING, PipelineState.STOPPED, True),
            (PipelineState.STREAMING, PipelineState.FAILED, True),
            (PipelineState.FAILED, PipelineState.STOPPED, True),
            (PipelineState.STOPPED, PipelineState.STREAMING, False),
            (PipelineState.STOPPED, PipelineState.FAILED, False),
            (PipelineState.FAILED, PipelineState.STREAMING, False),
        ],
    )
    def test_transitions(self, source, target, allowed):
        assert source.can_transition_to(target) is allowed

    def test_terminal_states(self):
        assert PipelineState.STOPPED.is_terminal
        assert PipelineState.FAILED.is_terminal
        assert not PipelineState.STREAMING.is_terminal
        assert not PipelineState.BUILDING.is_terminal


class TestPipelineOutcome:
    """Tests for PipelineOutcome."""

    def test_natural_end_is_not_failure(self):
        outcome = PipelineOutcome(state=PipelineState.STOPPED, fetcher_exit=0, transcoder_exit=0)

        assert not outcome.failed

    def test_reason_marks_failure(self):
        reason = AbnormalExitError(PipelineStage.TRANSCODER, 1)
        outcome = PipelineOutcome(state=PipelineState.FAILED, reason=reason)

        assert outcome.failed
        assert outcome.reason.stage is PipelineStage.TRANSCODER
