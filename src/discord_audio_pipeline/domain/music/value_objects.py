"""Immutable value objects for the music playback context."""

from __future__ import annotations

from enum import Enum


class PipelineStage(Enum):
    """The two processes of a resource pipeline, in startup order."""

    FETCHER = "fetcher"
    TRANSCODER = "transcoder"


class PipelineState(Enum):
    """Lifecycle of a resource pipeline with enforced transitions.

    State transitions:
    - BUILDING -> STREAMING (both processes spawned and linked)
    - BUILDING -> FAILED (spawn or wiring error)
    - STREAMING -> FAILED (a process exited abnormally)
    - STREAMING -> STOPPED (close requested or natural end of stream)
    - FAILED -> STOPPED (close after failure)
    - Any -> STOPPED (close is always allowed)
    """

    BUILDING = "building"
    STREAMING = "streaming"
    STOPPED = "stopped"
    FAILED = "failed"

    def can_transition_to(self, target: PipelineState) -> bool:
        """Check if transition to target state is valid."""
        valid_transitions = {
            PipelineState.BUILDING: {
                PipelineState.STREAMING,
                PipelineState.FAILED,
                PipelineState.STOPPED,
            },
            PipelineState.STREAMING: {PipelineState.FAILED, PipelineState.STOPPED},
            PipelineState.FAILED: {PipelineState.STOPPED},
            PipelineState.STOPPED: set(),
        }
        return target in valid_transitions.get(self, set())

    @property
    def is_terminal(self) -> bool:
        return self in {PipelineState.STOPPED, PipelineState.FAILED}

    @property
    def is_streaming(self) -> bool:
        return self == PipelineState.STREAMING


class TrackPlaybackState(Enum):
    """Whether a track currently owns a live pipeline.

    State transitions:
    - IDLE -> STREAMING (start)
    - STREAMING -> IDLE (stop, natural end, or pipeline failure)
    """

    IDLE = "idle"
    STREAMING = "streaming"
