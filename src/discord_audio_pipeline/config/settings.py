"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.constants import AudioConstants, PipelineDefaults
from ..domain.shared.messages import ErrorMessages
from ..domain.shared.types import (
    BufferLimitBytes,
    ChunkSizeBytes,
    NonEmptyStr,
    PositiveFloat,
    PositiveInt,
    VolumeFloat,
)


class PipelineSettings(BaseModel):
    """Fetch/transcode process chain configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    fetcher_path: str = Field(
        default=PipelineDefaults.FETCHER_EXECUTABLE,
        validation_alias=AliasChoices("fetcher_path", "ytdlp_path", "yt_dlp_path"),
    )
    transcoder_path: str = Field(
        default=PipelineDefaults.TRANSCODER_EXECUTABLE,
        validation_alias=AliasChoices("transcoder_path", "ffmpeg_path"),
    )
    fetch_format: NonEmptyStr = PipelineDefaults.FETCH_FORMAT
    transcoder_log_level: Literal["quiet", "panic", "fatal", "error", "warning", "info"] = (
        PipelineDefaults.TRANSCODER_LOG_LEVEL
    )
    forward_chunk_size: ChunkSizeBytes = PipelineDefaults.FORWARD_CHUNK_SIZE
    stream_buffer_limit: BufferLimitBytes = PipelineDefaults.STREAM_BUFFER_LIMIT
    kill_timeout_seconds: PositiveFloat = Field(
        default=PipelineDefaults.KILL_TIMEOUT_SECONDS,
        le=60.0,
        validation_alias=AliasChoices("kill_timeout_seconds", "kill_timeout"),
    )

    @field_validator("fetcher_path", "transcoder_path")
    @classmethod
    def validate_executable(cls, v: str) -> str:
        """Reject blank executable paths."""
        v = v.strip()
        if not v:
            raise ValueError(ErrorMessages.EMPTY_EXECUTABLE_PATH)
        return v


class ResolverSettings(BaseModel):
    """Metadata lookup (yt-dlp) configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ytdlp_format: NonEmptyStr = "bestaudio/best"
    search_limit: int = Field(default=5, ge=1, le=25)
    cache_ttl_seconds: int = Field(
        default=3600, ge=0, validation_alias=AliasChoices("cache_ttl_seconds", "cache_ttl")
    )
    cache_max_size: PositiveInt = 500
    socket_timeout: PositiveInt = 10
    retries: PositiveInt = 3
    fallback_to_query_url: bool = True


class PlaybackSettings(BaseModel):
    """Playback sink configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    default_volume: VolumeFloat = AudioConstants.DEFAULT_VOLUME
    read_timeout_seconds: PositiveFloat = Field(
        default=PipelineDefaults.READ_TIMEOUT_SECONDS, le=120.0
    )


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL (top-level)
    - PIPELINE__FETCHER_PATH, PIPELINE__TRANSCODER_PATH, PIPELINE__KILL_TIMEOUT_SECONDS
    - RESOLVER__SEARCH_LIMIT, RESOLVER__FALLBACK_TO_QUERY_URL, ...
    - PLAYBACK__DEFAULT_VOLUME, PLAYBACK__READ_TIMEOUT_SECONDS
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=valid_levels))
        return v_upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are automatically loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
