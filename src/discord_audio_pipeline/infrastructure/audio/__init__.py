"""Audio infrastructure - process pipeline, yt-dlp resolver and voice player."""

from discord_audio_pipeline.infrastructure.audio.models import (
    CacheEntry,
    YtDlpOpts,
    YtDlpTrackInfo,
)
from discord_audio_pipeline.infrastructure.audio.pipeline_player import (
    PipelineAudioSource,
    PipelinePlayer,
    PlayerState,
)
from discord_audio_pipeline.infrastructure.audio.process_handle import (
    Command,
    ProcessHandle,
    StdioConfig,
    StdioPolicy,
)
from discord_audio_pipeline.infrastructure.audio.resource_pipeline import (
    AudioStream,
    PipelineCommands,
    ResourcePipeline,
)
from discord_audio_pipeline.infrastructure.audio.supervisor import PipelineSupervisor
from discord_audio_pipeline.infrastructure.audio.ytdlp_resolver import YtDlpResolver

__all__ = [
    "AudioStream",
    "CacheEntry",
    "Command",
    "PipelineAudioSource",
    "PipelineCommands",
    "PipelinePlayer",
    "PipelineSupervisor",
    "PlayerState",
    "ProcessHandle",
    "ResourcePipeline",
    "StdioConfig",
    "StdioPolicy",
    "YtDlpOpts",
    "YtDlpResolver",
    "YtDlpTrackInfo",
]
