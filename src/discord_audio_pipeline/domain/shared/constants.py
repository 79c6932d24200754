"""Centralized constants for audio format, configuration keys, and pipeline defaults.

This module provides reusable constants that reduce magic strings and improve maintainability.
"""

from __future__ import annotations


class ConfigKeys:
    """Configuration and environment variable key names.

    Pydantic Settings already provides type-safe access; these constants
    keep raw environment lookups (CLI, tests) consistent with it.
    """

    ENVIRONMENT = "ENVIRONMENT"
    DEBUG = "DEBUG"
    LOG_LEVEL = "LOG_LEVEL"

    # Pipeline executables (nested delimiter format)
    FETCHER_PATH = "PIPELINE__FETCHER_PATH"
    TRANSCODER_PATH = "PIPELINE__TRANSCODER_PATH"


class AudioConstants:
    """Raw PCM format produced by the transcoder and consumed by the playback sink."""

    SAMPLE_RATE = 48_000
    CHANNELS = 2
    SAMPLE_WIDTH = 2  # bytes, signed 16-bit little-endian
    SAMPLE_FORMAT = "s16le"

    FRAME_DURATION_MS = 20
    SAMPLES_PER_FRAME = SAMPLE_RATE * FRAME_DURATION_MS // 1000
    FRAME_SIZE = SAMPLES_PER_FRAME * CHANNELS * SAMPLE_WIDTH  # 3840 bytes

    DEFAULT_VOLUME = 0.5


class PipelineDefaults:
    """Default executables and tuning for the fetch/transcode chain."""

    FETCHER_EXECUTABLE = "yt-dlp"
    TRANSCODER_EXECUTABLE = "ffmpeg"

    FETCH_FORMAT = "bestaudio"
    TRANSCODER_LOG_LEVEL = "error"

    STDIN_PIPE = "pipe:0"
    STDOUT_PIPE = "pipe:1"
    STDOUT_TARGET = "-"

    FORWARD_CHUNK_SIZE = 64 * 1024
    STREAM_BUFFER_LIMIT = 256 * 1024
    KILL_TIMEOUT_SECONDS = 5.0
    READ_TIMEOUT_SECONDS = 10.0
