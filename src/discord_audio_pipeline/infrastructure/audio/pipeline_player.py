"""
Pipeline Audio Player

Plays a track's resource pipeline through a discord.py voice client.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

import discord

from discord_audio_pipeline.config.settings import PlaybackSettings
from discord_audio_pipeline.domain.shared.exceptions import DomainError, PlaybackFailedError
from discord_audio_pipeline.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ...domain.music.entities import Track
    from ...domain.music.pipeline import AudioPipeline

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[int, Exception], None]


class PlayerState(Enum):
    """States for the pipeline player."""

    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPING = "stopping"
    ERROR = "error"


class PipelineAudioSource(discord.AudioSource):
    """discord.py audio source reading raw PCM frames from a pipeline.

    ``read()`` runs on discord.py's player thread, so every frame read is
    handed to the event loop that owns the pipeline.
    """

    def __init__(
        self,
        track: Track,
        pipeline: AudioPipeline,
        loop: asyncio.AbstractEventLoop,
        read_timeout: float,
    ) -> None:
        self._track = track
        self._pipeline = pipeline
        self._loop = loop
        self._read_timeout = read_timeout
        self._closed = False

    @property
    def pipeline(self) -> AudioPipeline:
        return self._pipeline

    def read(self) -> bytes:
        if self._closed:
            return b""

        future = asyncio.run_coroutine_threadsafe(self._pipeline.output.read_frame(), self._loop)
        try:
            return future.result(timeout=self._read_timeout)
        except TimeoutError:
            future.cancel()
            logger.warning(LogTemplates.PLAYBACK_READ_TIMEOUT, self._track.title)
            return b""

    def is_opus(self) -> bool:
        return False

    def cleanup(self) -> None:
        """Close the pipeline; safe to call from any thread, more than once."""
        if self._closed:
            return
        self._closed = True
        # discord.AudioSource.__del__ calls cleanup(), possibly after the loop is gone
        if self._loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self._pipeline.close(), self._loop)


class PipelinePlayer:
    """Voice playback sink for track pipelines.

    Starts the track's pipeline, streams its output to the voice client,
    closes the pipeline when playback ends or is stopped, and reports a
    failed pipeline to the registered error handler.
    """

    def __init__(self, settings: PlaybackSettings | None = None) -> None:
        self._settings = settings or PlaybackSettings()

        # Active sources per guild (for cleanup)
        self._active_sources: dict[int, PipelineAudioSource] = {}
        self._monitors: set[asyncio.Task[None]] = set()

        self._states: dict[int, PlayerState] = {}
        self._on_error: ErrorHandler | None = None

    async def play(
        self,
        voice_client: discord.VoiceClient,
        track: Track,
        guild_id: int,
        volume: float | None = None,
        after: Callable[[Exception | None], Any] | None = None,
    ) -> bool:
        """Start the track's pipeline and play it through ``voice_client``.

        Returns:
            True if playback started successfully.
        """
        self._states[guild_id] = PlayerState.LOADING
        loop = asyncio.get_running_loop()

        if voice_client.is_playing() or voice_client.is_paused():
            voice_client.stop()
        previous = self._active_sources.get(guild_id)
        self._cleanup_guild(guild_id)
        if previous is not None:
            await previous.pipeline.close()

        try:
            pipeline = await track.start()
        except DomainError as e:
            logger.error(LogTemplates.PLAYBACK_FAILED_START, track.title, e)
            self._states[guild_id] = PlayerState.ERROR
            self._report(guild_id, PlaybackFailedError(track.title, track.url, e))
            return False

        source = PipelineAudioSource(track, pipeline, loop, self._settings.read_timeout_seconds)
        vol = volume if volume is not None else self._settings.default_volume

        def after_playback(error: Exception | None) -> None:
            loop.call_soon_threadsafe(self._on_playback_finished, guild_id, source, error, after)

        try:
            voice_client.play(discord.PCMVolumeTransformer(source, volume=vol), after=after_playback)
        except discord.ClientException as e:
            logger.error(LogTemplates.PLAYBACK_DISCORD_CLIENT_ERROR, e)
            self._states[guild_id] = PlayerState.ERROR
            await track.stop()
            return False

        self._active_sources[guild_id] = source
        self._watch(guild_id, track, pipeline)
        self._states[guild_id] = PlayerState.PLAYING

        logger.info(LogTemplates.PLAYBACK_STARTED, track.title, guild_id)
        return True

    def stop(self, voice_client: discord.VoiceClient, guild_id: int) -> bool:
        """Stop playback and close the guild's pipeline."""
        self._states[guild_id] = PlayerState.STOPPING

        try:
            if voice_client.is_playing() or voice_client.is_paused():
                voice_client.stop()

            self._cleanup_guild(guild_id)
            self._states[guild_id] = PlayerState.IDLE

            logger.info(LogTemplates.PLAYBACK_STOPPED, guild_id)
            return True
        except Exception as e:
            logger.error(LogTemplates.PLAYBACK_FAILED_STOP, e)
            return False

    def pause(self, voice_client: discord.VoiceClient, guild_id: int) -> bool:
        try:
            if voice_client.is_playing():
                voice_client.pause()
                self._states[guild_id] = PlayerState.PAUSED
                logger.debug(LogTemplates.PLAYBACK_PAUSED, guild_id)
                return True
            return False
        except Exception as e:
            logger.error(LogTemplates.PLAYBACK_FAILED_PAUSE, e)
            return False

    def resume(self, voice_client: discord.VoiceClient, guild_id: int) -> bool:
        try:
            if voice_client.is_paused():
                voice_client.resume()
                self._states[guild_id] = PlayerState.PLAYING
                logger.debug(LogTemplates.PLAYBACK_RESUMED, guild_id)
                return True
            return False
        except Exception as e:
            logger.error(LogTemplates.PLAYBACK_FAILED_RESUME, e)
            return False

    def set_volume(self, voice_client: discord.VoiceClient, volume: float) -> bool:
        """Set the playback volume (clamped to 0.0-2.0)."""
        try:
            source = voice_client.source
            if isinstance(source, discord.PCMVolumeTransformer):
                source.volume = max(0.0, min(2.0, volume))
                return True
            return False
        except Exception as e:
            logger.error(LogTemplates.PLAYBACK_FAILED_VOLUME, e)
            return False

    def get_volume(self, voice_client: discord.VoiceClient) -> float | None:
        source = voice_client.source
        if isinstance(source, discord.PCMVolumeTransformer):
            return source.volume
        return None

    def get_state(self, guild_id: int) -> PlayerState:
        return self._states.get(guild_id, PlayerState.IDLE)

    def cleanup_all(self) -> int:
        """Close every active pipeline.

        Returns:
            Number of guilds cleaned up.
        """
        guild_ids = list(self._active_sources.keys())
        for guild_id in guild_ids:
            self._cleanup_guild(guild_id)

        self._states.clear()
        logger.info(LogTemplates.PLAYBACK_RESOURCES_CLEANED, len(guild_ids))
        return len(guild_ids)

    def set_error_handler(self, handler: ErrorHandler) -> None:
        """Set the callback receiving ``(guild_id, exception)`` on playback failure."""
        self._on_error = handler

    def get_active_count(self) -> int:
        return len(self._active_sources)

    # === Internals ===

    def _watch(self, guild_id: int, track: Track, pipeline: AudioPipeline) -> None:
        task = asyncio.create_task(self._monitor(guild_id, track, pipeline))
        self._monitors.add(task)
        task.add_done_callback(self._monitors.discard)

    async def _monitor(self, guild_id: int, track: Track, pipeline: AudioPipeline) -> None:
        outcome = await pipeline.wait()
        if outcome.failed:
            logger.error(
                LogTemplates.PLAYBACK_PIPELINE_FAILED, track.title, track.url, guild_id, outcome.reason
            )
            self._report(guild_id, PlaybackFailedError(track.title, track.url, outcome.reason))

    def _on_playback_finished(
        self,
        guild_id: int,
        source: PipelineAudioSource,
        error: Exception | None,
        after: Callable[[Exception | None], Any] | None,
    ) -> None:
        source.cleanup()
        if self._active_sources.get(guild_id) is source:
            self._active_sources.pop(guild_id, None)
            self._states[guild_id] = PlayerState.IDLE

        if error:
            logger.warning(LogTemplates.PLAYBACK_ERROR, guild_id, error)
            self._report(guild_id, error)

        if after:
            after(error)

    def _report(self, guild_id: int, error: Exception) -> None:
        if self._on_error:
            self._on_error(guild_id, error)

    def _cleanup_guild(self, guild_id: int) -> None:
        source = self._active_sources.pop(guild_id, None)
        if source:
            try:
                source.cleanup()
            except Exception as e:
                logger.debug(LogTemplates.PLAYBACK_CLEANUP_ERROR, e)
