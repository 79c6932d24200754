"""Pipeline Supervisor

Owns the fetcher and transcoder processes of one pipeline, forwards the
fetcher's output into the transcoder with backpressure, and enforces their
coupled lifetime: when either process exits abnormally both are torn down
and the pipeline fails.
"""

from __future__ import annotations

import asyncio
import logging

from discord_audio_pipeline.domain.music.pipeline import PipelineOutcome
from discord_audio_pipeline.domain.music.value_objects import PipelineStage, PipelineState
from discord_audio_pipeline.domain.shared.constants import PipelineDefaults
from discord_audio_pipeline.domain.shared.exceptions import (
    AbnormalExitError,
    PipelineBuildError,
)
from discord_audio_pipeline.domain.shared.messages import ErrorMessages, LogTemplates
from discord_audio_pipeline.infrastructure.audio.process_handle import Command, ProcessHandle

logger = logging.getLogger(__name__)


class PipelineSupervisor:
    """Supervises a fetcher → transcoder process chain.

    All mutation of the two handles goes through this object: spawn and
    link in ``build()``, exit handling in ``_enforce_coupled_lifetime()``
    and teardown in ``stop()``. Teardown runs at most once no matter how
    many times or from where it is triggered.
    """

    def __init__(
        self,
        fetcher: ProcessHandle,
        transcoder: ProcessHandle,
        *,
        chunk_size: int = PipelineDefaults.FORWARD_CHUNK_SIZE,
        kill_timeout: float = PipelineDefaults.KILL_TIMEOUT_SECONDS,
    ) -> None:
        self._fetcher = fetcher
        self._transcoder = transcoder
        self._chunk_size = chunk_size
        self._kill_timeout = kill_timeout

        self._state = PipelineState.STREAMING
        self._failure: AbnormalExitError | None = None
        self._linked = False
        self._bytes_forwarded = 0

        self._forward_task: asyncio.Task[None] | None = None
        self._teardown_task: asyncio.Task[None] | None = None
        self._done = asyncio.Event()

    @classmethod
    async def build(
        cls,
        fetch_cmd: Command,
        transcode_cmd: Command,
        *,
        chunk_size: int = PipelineDefaults.FORWARD_CHUNK_SIZE,
        buffer_limit: int = PipelineDefaults.STREAM_BUFFER_LIMIT,
        kill_timeout: float = PipelineDefaults.KILL_TIMEOUT_SECONDS,
    ) -> PipelineSupervisor:
        """Spawn the fetcher, then the transcoder, and link them.

        Raises:
            SpawnError: If either executable cannot be launched.
            PipelineBuildError: If a required stream endpoint is not piped.
        """
        fetcher = await ProcessHandle.spawn(PipelineStage.FETCHER, fetch_cmd, limit=buffer_limit)
        if fetcher.stdout is None:
            await cls._abort_build(
                PipelineStage.FETCHER, ErrorMessages.FETCHER_STDOUT_NOT_PIPED, kill_timeout, fetcher
            )

        try:
            transcoder = await ProcessHandle.spawn(
                PipelineStage.TRANSCODER, transcode_cmd, limit=buffer_limit
            )
        except PipelineBuildError:
            await cls._discard(fetcher, kill_timeout)
            raise

        if transcoder.stdin is None:
            await cls._abort_build(
                PipelineStage.TRANSCODER,
                ErrorMessages.TRANSCODER_STDIN_NOT_PIPED,
                kill_timeout,
                fetcher,
                transcoder,
            )
        if transcoder.stdout is None:
            await cls._abort_build(
                PipelineStage.TRANSCODER,
                ErrorMessages.TRANSCODER_STDOUT_NOT_PIPED,
                kill_timeout,
                fetcher,
                transcoder,
            )

        supervisor = cls(fetcher, transcoder, chunk_size=chunk_size, kill_timeout=kill_timeout)
        supervisor._link()
        return supervisor

    # === Properties ===

    @property
    def fetcher(self) -> ProcessHandle:
        return self._fetcher

    @property
    def transcoder(self) -> ProcessHandle:
        return self._transcoder

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def linked(self) -> bool:
        return self._linked

    @property
    def failure(self) -> AbnormalExitError | None:
        return self._failure

    @property
    def bytes_forwarded(self) -> int:
        return self._bytes_forwarded

    @property
    def output(self) -> asyncio.StreamReader:
        """The transcoder's decoded output."""
        stdout = self._transcoder.stdout
        assert stdout is not None
        return stdout

    @property
    def live_pids(self) -> list[int]:
        return [h.pid for h in (self._fetcher, self._transcoder) if not h.has_exited]

    # === Lifecycle ===

    async def stop(self) -> None:
        """Kill both processes and release their pipes. Idempotent."""
        if self._state.can_transition_to(PipelineState.STOPPED):
            logger.debug(LogTemplates.SUPERVISOR_STOPPING, self._fetcher.pid, self._transcoder.pid)
            self._state = PipelineState.STOPPED
        await self._begin_teardown()

    async def wait(self) -> PipelineOutcome:
        """Wait for natural end, failure, or stop."""
        await self._done.wait()
        return self.outcome()

    def outcome(self) -> PipelineOutcome:
        return PipelineOutcome(
            state=self._state,
            reason=self._failure,
            fetcher_exit=self._fetcher.exit_code,
            transcoder_exit=self._transcoder.exit_code,
        )

    # === Internals ===

    def _link(self) -> None:
        self._forward_task = asyncio.create_task(
            self._forward(), name=f"pipeline-forward-{self._fetcher.pid}"
        )
        self._linked = True
        self._fetcher.on_exit(lambda code: self._enforce_coupled_lifetime(self._fetcher, code))
        self._transcoder.on_exit(
            lambda code: self._enforce_coupled_lifetime(self._transcoder, code)
        )
        logger.debug(LogTemplates.SUPERVISOR_LINKED, self._fetcher.pid, self._transcoder.pid)

    async def _forward(self) -> None:
        reader = self._fetcher.stdout
        writer = self._transcoder.stdin
        assert reader is not None and writer is not None

        try:
            while chunk := await reader.read(self._chunk_size):
                writer.write(chunk)
                await writer.drain()
                self._bytes_forwarded += len(chunk)
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.debug(LogTemplates.SUPERVISOR_FORWARD_BROKEN, e)
            # Nothing reads the fetcher any more
            if self._state is PipelineState.STREAMING and not self._fetcher.has_exited:
                logger.debug(LogTemplates.SUPERVISOR_ORPHANED_FETCHER, self._fetcher.pid)
                self._fetcher.kill()
        finally:
            writer.close()
            logger.debug(LogTemplates.SUPERVISOR_FORWARD_DONE, self._bytes_forwarded)

    def _enforce_coupled_lifetime(self, handle: ProcessHandle, exit_code: int) -> None:
        """Single enforcement point for the joint-failure invariant.

        Exits during stop or after failure are expected and ignored. A
        non-zero exit that the supervisor did not cause fails the pipeline
        and tears both processes down.
        """
        if self._state is not PipelineState.STREAMING:
            return

        killed_by_us = handle.kill_requested and handle.killed_by_signal
        if exit_code != 0 and not killed_by_us:
            logger.error(LogTemplates.SUPERVISOR_ABNORMAL_EXIT, handle.stage.value, exit_code)
            self._failure = AbnormalExitError(handle.stage, exit_code)
            self._state = PipelineState.FAILED
            self._begin_teardown()
            return

        if handle is self._transcoder and not self._fetcher.has_exited:
            logger.debug(LogTemplates.SUPERVISOR_ORPHANED_FETCHER, self._fetcher.pid)
            self._fetcher.kill()
            return

        if self._fetcher.has_exited and self._transcoder.has_exited:
            logger.info(LogTemplates.SUPERVISOR_COMPLETED)
            self._state = PipelineState.STOPPED
            self._linked = False
            self._done.set()

    def _begin_teardown(self) -> asyncio.Task[None]:
        if self._teardown_task is None:
            self._teardown_task = asyncio.create_task(
                self._teardown(), name=f"pipeline-teardown-{self._fetcher.pid}"
            )
        return self._teardown_task

    async def _teardown(self) -> None:
        for handle in (self._fetcher, self._transcoder):
            handle.kill()

        if self._forward_task is not None:
            self._forward_task.cancel()
            try:
                await self._forward_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(LogTemplates.SUPERVISOR_FORWARD_FAILED, e)

        for handle in (self._fetcher, self._transcoder):
            handle.release()

        await asyncio.gather(
            self._fetcher.wait(self._kill_timeout),
            self._transcoder.wait(self._kill_timeout),
        )
        self._linked = False
        logger.debug(
            LogTemplates.SUPERVISOR_TORN_DOWN, self._fetcher.exit_code, self._transcoder.exit_code
        )
        self._done.set()

    @staticmethod
    async def _discard(handle: ProcessHandle, kill_timeout: float) -> None:
        handle.kill()
        handle.release()
        await handle.wait(kill_timeout)

    @classmethod
    async def _abort_build(
        cls,
        stage: PipelineStage,
        message: str,
        kill_timeout: float,
        *handles: ProcessHandle,
    ) -> None:
        logger.error(LogTemplates.SUPERVISOR_BUILD_ABORTED, stage.value, message)
        for handle in handles:
            await cls._discard(handle, kill_timeout)
        raise PipelineBuildError(stage, message)
