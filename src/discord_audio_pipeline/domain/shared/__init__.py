"""
Shared Domain Kernel

Contains exceptions, message templates, and constants shared across the package.
"""

from discord_audio_pipeline.domain.shared.exceptions import (
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

__all__ = [
    "DomainError",
    "ValidationError",
    "InvalidOperationError",
    "AlreadyPlayingError",
    "PipelineError",
    "PipelineBuildError",
    "SpawnError",
    "AbnormalExitError",
    "ResolutionError",
    "NoResultsError",
    "InvalidLinkError",
    "PlaybackFailedError",
]
