"""Base exception classes for domain-level errors."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from discord_audio_pipeline.domain.music.value_objects import PipelineStage


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class ValidationError(DomainError):
    """Raised when domain validation fails."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state


class AlreadyPlayingError(InvalidOperationError):
    """Raised when a track is started while it already owns a live pipeline."""

    def __init__(self, title: str) -> None:
        super().__init__(
            operation="start",
            current_state="streaming",
            message=f"'{title}' is already playing",
        )
        self.code = "ALREADY_PLAYING"
        self.title = title


# ── Resource pipeline ───────────────────────────────────────────────


class PipelineError(DomainError):
    """Base class for failures of the fetch/transcode process chain."""


class PipelineBuildError(PipelineError):
    """Raised when the process chain cannot be assembled."""

    def __init__(self, stage: PipelineStage, message: str, code: str | None = None) -> None:
        super().__init__(message, code=code or "PIPELINE_BUILD_ERROR")
        self.stage = stage


class SpawnError(PipelineBuildError):
    """Raised when a pipeline executable is missing or cannot be launched."""

    def __init__(self, stage: PipelineStage, executable: str, cause: BaseException) -> None:
        super().__init__(
            stage,
            f"Failed to launch {stage.value} '{executable}': {cause}",
            code="SPAWN_ERROR",
        )
        self.executable = executable
        self.cause = cause


class AbnormalExitError(PipelineError):
    """Describes a pipeline process that exited before it was asked to stop.

    Never raised into unrelated call stacks: it is stored as the reason of a
    failed pipeline outcome.
    """

    def __init__(self, stage: PipelineStage, exit_code: int) -> None:
        super().__init__(
            f"{stage.value} exited abnormally with code {exit_code}",
            code="ABNORMAL_EXIT",
        )
        self.stage = stage
        self.exit_code = exit_code


# ── Metadata resolution ─────────────────────────────────────────────


class ResolutionError(DomainError):
    """Base class for metadata lookup failures."""


class NoResultsError(ResolutionError):
    """Raised when a free-text search finds nothing."""

    def __init__(self, query: str) -> None:
        super().__init__(f"No search results found for '{query}'", code="NO_RESULTS")
        self.query = query


class InvalidLinkError(ResolutionError):
    """Raised when a link cannot be resolved to playable media."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Could not resolve link '{url}'", code="INVALID_LINK")
        self.url = url


# ── Playback ────────────────────────────────────────────────────────


class PlaybackFailedError(DomainError):
    """Reported to the playback consumer when a track's pipeline fails."""

    def __init__(self, title: str, url: str, reason: BaseException | None = None) -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(f"Playback of '{title}' ({url}) failed{detail}", code="PLAYBACK_FAILED")
        self.title = title
        self.url = url
        self.reason = reason
