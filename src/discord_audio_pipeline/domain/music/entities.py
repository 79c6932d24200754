"""Core domain entities for the music playback context."""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, PrivateAttr

from discord_audio_pipeline.domain.music.pipeline import AudioPipeline, PipelineOpener
from discord_audio_pipeline.domain.music.value_objects import TrackPlaybackState
from discord_audio_pipeline.domain.shared.exceptions import AlreadyPlayingError
from discord_audio_pipeline.domain.shared.messages import LogTemplates, UserMessages
from discord_audio_pipeline.domain.shared.types import (
    DurationSeconds,
    NonEmptyStr,
    TrackTitleStr,
)

logger = logging.getLogger(__name__)


def _default_opener() -> PipelineOpener:
    from discord_audio_pipeline.infrastructure.audio.resource_pipeline import ResourcePipeline

    return ResourcePipeline.open


class Track(BaseModel):
    """A resolved track that owns at most one live audio pipeline at a time.

    Metadata fields are immutable after construction. The pipeline is attached
    by ``start()`` and detached by ``stop()``; a pipeline that already ended
    (naturally or by failure) no longer counts as live.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    url: NonEmptyStr
    title: TrackTitleStr
    duration_seconds: DurationSeconds = 0

    _pipeline: AudioPipeline | None = PrivateAttr(default=None)
    _opener: PipelineOpener | None = PrivateAttr(default=None)
    _starting: bool = PrivateAttr(default=False)

    @property
    def duration_formatted(self) -> str:
        """Format duration as MM:SS or HH:MM:SS."""
        if not self.duration_seconds:
            return "Unknown"

        hours, remainder = divmod(self.duration_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)

        if hours > 0:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"

    @property
    def display_title(self) -> str:
        """Get display title with duration if available."""
        if self.duration_seconds:
            return f"{self.title} [{self.duration_formatted}]"
        return self.title

    @property
    def pipeline(self) -> AudioPipeline | None:
        return self._pipeline

    @property
    def playback_state(self) -> TrackPlaybackState:
        if self._starting:
            return TrackPlaybackState.STREAMING
        if self._pipeline is None or self._pipeline.state.is_terminal:
            return TrackPlaybackState.IDLE
        return TrackPlaybackState.STREAMING

    @property
    def is_streaming(self) -> bool:
        return self.playback_state == TrackPlaybackState.STREAMING

    def bind_opener(self, opener: PipelineOpener) -> Track:
        """Use ``opener`` for every future ``start()`` without an explicit opener."""
        self._opener = opener
        return self

    async def start(self, opener: PipelineOpener | None = None) -> AudioPipeline:
        """Open a new pipeline for this track's URL and attach it.

        Raises:
            AlreadyPlayingError: If a live pipeline is attached or a start is in progress.
            PipelineBuildError: If the pipeline could not be built; nothing is attached.
        """
        if self.is_streaming:
            raise AlreadyPlayingError(self.title)

        self._starting = True
        try:
            if self._pipeline is not None:
                finished = self._pipeline
                self._pipeline = None
                logger.debug(LogTemplates.TRACK_DETACHED_FINISHED, self.title, finished.state.value)
                await finished.close()

            open_pipeline = opener or self._opener or _default_opener()
            pipeline = await open_pipeline(self.url)
            self._pipeline = pipeline
        finally:
            self._starting = False

        logger.info(LogTemplates.TRACK_STARTED, self.title, self.url)
        return pipeline

    async def stop(self) -> None:
        """Detach and close the active pipeline, if any."""
        pipeline = self._pipeline
        if pipeline is None:
            return

        self._pipeline = None
        await pipeline.close()
        logger.info(LogTemplates.TRACK_STOPPED, self.title)

    def start_message(self) -> str:
        return UserMessages.STARTED_PLAYING.format(title=self.title, url=self.url)
