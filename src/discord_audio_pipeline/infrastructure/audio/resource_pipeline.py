"""Resource Pipeline

Turns one resolved locator into one live, killable stream of raw PCM audio by
chaining the fetcher (yt-dlp) into the transcoder (ffmpeg) under a
``PipelineSupervisor``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from types import TracebackType

from discord_audio_pipeline.config.settings import PipelineSettings, get_settings
from discord_audio_pipeline.domain.music.pipeline import AudioPipeline, PipelineOutcome
from discord_audio_pipeline.domain.music.value_objects import PipelineState
from discord_audio_pipeline.domain.shared.constants import AudioConstants, PipelineDefaults
from discord_audio_pipeline.domain.shared.messages import LogTemplates
from discord_audio_pipeline.infrastructure.audio.process_handle import (
    Command,
    StdioConfig,
    StdioPolicy,
)
from discord_audio_pipeline.infrastructure.audio.supervisor import PipelineSupervisor

logger = logging.getLogger(__name__)

FETCHER_STDIO = StdioConfig(
    stdin=StdioPolicy.IGNORE, stdout=StdioPolicy.PIPE, stderr=StdioPolicy.INHERIT
)
TRANSCODER_STDIO = StdioConfig(
    stdin=StdioPolicy.PIPE, stdout=StdioPolicy.PIPE, stderr=StdioPolicy.INHERIT
)


@dataclass(frozen=True)
class PipelineCommands:
    """The pair of commands a pipeline is built from."""

    fetch: Command
    transcode: Command

    @classmethod
    def for_locator(
        cls, locator: str, settings: PipelineSettings | None = None
    ) -> PipelineCommands:
        """Build the fetch and transcode commands for ``locator``.

        The fetcher writes the best audio-only format to stdout; the transcoder
        decodes stdin to signed 16-bit stereo PCM at 48 kHz on stdout.
        """
        settings = settings or get_settings().pipeline

        fetch = Command(
            executable=settings.fetcher_path,
            args=(
                "-f", settings.fetch_format,
                "-o", PipelineDefaults.STDOUT_TARGET,
                "--", locator,
            ),
            stdio=FETCHER_STDIO,
        )
        transcode = Command(
            executable=settings.transcoder_path,
            args=(
                "-loglevel", settings.transcoder_log_level,
                "-i", PipelineDefaults.STDIN_PIPE,
                "-f", AudioConstants.SAMPLE_FORMAT,
                "-ar", str(AudioConstants.SAMPLE_RATE),
                "-ac", str(AudioConstants.CHANNELS),
                PipelineDefaults.STDOUT_PIPE,
            ),
            stdio=TRANSCODER_STDIO,
        )
        return cls(fetch=fetch, transcode=transcode)


class AudioStream:
    """Readable decoded audio exposed by a pipeline.

    Reads suspend until bytes or end-of-stream are available. Once the
    stream is closed every read returns ``b""`` immediately.
    """

    def __init__(self, reader: asyncio.StreamReader, chunk_size: int) -> None:
        self._reader = reader
        self._chunk_size = chunk_size
        self._closed = False
        self._bytes_read = 0

    @property
    def bytes_read(self) -> int:
        return self._bytes_read

    @property
    def closed(self) -> bool:
        return self._closed

    def at_eof(self) -> bool:
        return self._closed or self._reader.at_eof()

    async def read(self, n: int = -1) -> bytes:
        """Read up to ``n`` bytes (``-1`` reads until EOF)."""
        if self._closed:
            return b""
        data = await self._reader.read(n)
        self._bytes_read += len(data)
        return data

    async def read_frame(self) -> bytes:
        """Read exactly one 20 ms PCM frame, or ``b""`` at end of stream.

        A trailing partial frame is dropped.
        """
        if self._closed:
            return b""
        try:
            data = await self._reader.readexactly(AudioConstants.FRAME_SIZE)
        except asyncio.IncompleteReadError as e:
            self._bytes_read += len(e.partial)
            return b""
        self._bytes_read += len(data)
        return data

    def close(self) -> None:
        self._closed = True

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iter_chunks()

    async def _iter_chunks(self) -> AsyncIterator[bytes]:
        while chunk := await self.read(self._chunk_size):
            yield chunk


class ResourcePipeline(AudioPipeline):
    """A supervised fetcher → transcoder chain for a single locator.

    Use ``await ResourcePipeline.open(locator)`` rather than the constructor;
    the returned pipeline is already streaming. ``close()`` tears it down
    from any state and may be called any number of times.
    """

    def __init__(self, locator: str, settings: PipelineSettings) -> None:
        self._locator = locator
        self._settings = settings
        self._state = PipelineState.BUILDING
        self._supervisor: PipelineSupervisor | None = None
        self._output: AudioStream | None = None

    @classmethod
    async def open(
        cls,
        locator: str,
        *,
        settings: PipelineSettings | None = None,
        commands: PipelineCommands | None = None,
    ) -> ResourcePipeline:
        """Spawn and link the process chain for ``locator``.

        Raises:
            SpawnError: If the fetcher or transcoder cannot be launched.
            PipelineBuildError: If the chain cannot be linked.
        """
        settings = settings or get_settings().pipeline
        commands = commands or PipelineCommands.for_locator(locator, settings)
        pipeline = cls(locator, settings)
        await pipeline._build(commands)
        return pipeline

    async def _build(self, commands: PipelineCommands) -> None:
        logger.debug(LogTemplates.PIPELINE_OPENING, self._locator)
        try:
            self._supervisor = await PipelineSupervisor.build(
                commands.fetch,
                commands.transcode,
                chunk_size=self._settings.forward_chunk_size,
                buffer_limit=self._settings.stream_buffer_limit,
                kill_timeout=self._settings.kill_timeout_seconds,
            )
        except Exception as e:
            self._state = PipelineState.FAILED
            logger.error(LogTemplates.PIPELINE_OPEN_FAILED, self._locator, e)
            raise

        self._output = AudioStream(self._supervisor.output, self._settings.forward_chunk_size)
        self._state = PipelineState.STREAMING
        logger.info(LogTemplates.PIPELINE_OPENED, self._locator)

    # === Properties ===

    @property
    def locator(self) -> str:
        return self._locator

    @property
    def state(self) -> PipelineState:
        """Own state while building, then whatever the supervisor reports."""
        if self._supervisor is None or self._state is not PipelineState.STREAMING:
            return self._state
        return self._supervisor.state

    @property
    def supervisor(self) -> PipelineSupervisor | None:
        return self._supervisor

    @property
    def output(self) -> AudioStream:
        if self._output is None:
            raise RuntimeError(f"Pipeline for '{self._locator}' has no output")
        return self._output

    # === Lifecycle ===

    async def close(self) -> None:
        if self._output is not None:
            self._output.close()
        self._state = PipelineState.STOPPED
        if self._supervisor is not None:
            await self._supervisor.stop()
            logger.debug(
                LogTemplates.PIPELINE_CLOSED,
                self._locator,
                self._output.bytes_read if self._output else 0,
            )

    async def wait(self) -> PipelineOutcome:
        if self._supervisor is None:
            return PipelineOutcome(state=self._state)
        outcome = await self._supervisor.wait()
        if self._state is PipelineState.STOPPED and outcome.state is not PipelineState.STOPPED:
            return PipelineOutcome(
                state=PipelineState.STOPPED,
                reason=outcome.reason,
                fetcher_exit=outcome.fetcher_exit,
                transcoder_exit=outcome.transcoder_exit,
            )
        return outcome

    async def __aenter__(self) -> ResourcePipeline:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<ResourcePipeline {self._locator!r} state={self.state.value}>"
