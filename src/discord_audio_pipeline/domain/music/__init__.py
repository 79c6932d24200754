"""
Music Playback Context

Domain logic for tracks and the audio pipelines they own.
"""

from discord_audio_pipeline.domain.music.entities import Track
from discord_audio_pipeline.domain.music.pipeline import (
    AudioPipeline,
    PipelineOpener,
    PipelineOutcome,
)
from discord_audio_pipeline.domain.music.value_objects import (
    PipelineStage,
    PipelineState,
    TrackPlaybackState,
)

__all__ = [
    # Entities
    "Track",
    # Ports
    "AudioPipeline",
    "PipelineOpener",
    "PipelineOutcome",
    # Value Objects
    "PipelineStage",
    "PipelineState",
    "TrackPlaybackState",
]
