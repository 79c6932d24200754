"""Process Handle

Wraps one spawned external process, exposing its standard streams and its
exit status as observable events on the running asyncio loop.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
import signal
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Final

from discord_audio_pipeline.domain.music.value_objects import PipelineStage
from discord_audio_pipeline.domain.shared.constants import PipelineDefaults
from discord_audio_pipeline.domain.shared.exceptions import SpawnError
from discord_audio_pipeline.domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)

_ALL_PIPE_FDS: Final[tuple[int, ...]] = (0, 1, 2)

ExitCallback = Callable[[int], None]


class StdioPolicy(Enum):
    """What a child process gets for one of its standard streams."""

    IGNORE = "ignore"
    PIPE = "pipe"
    INHERIT = "inherit"

    def to_subprocess(self) -> int | None:
        if self is StdioPolicy.IGNORE:
            return subprocess.DEVNULL
        if self is StdioPolicy.PIPE:
            return subprocess.PIPE
        return None


@dataclass(frozen=True)
class StdioConfig:
    """Independent policy for stdin, stdout and stderr."""

    stdin: StdioPolicy = StdioPolicy.INHERIT
    stdout: StdioPolicy = StdioPolicy.INHERIT
    stderr: StdioPolicy = StdioPolicy.INHERIT


@dataclass(frozen=True)
class Command:
    """An executable plus arguments and the stdio policy it is launched with."""

    executable: str
    args: tuple[str, ...] = ()
    stdio: StdioConfig = field(default_factory=StdioConfig)

    def __post_init__(self) -> None:
        if not self.executable or not self.executable.strip():
            raise ValueError(ErrorMessages.EMPTY_COMMAND)

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.args]

    def __str__(self) -> str:
        return shlex.join(self.argv)


class _HandleProtocol(asyncio.subprocess.SubprocessStreamProtocol):
    """Stream protocol that resolves ``exited`` as soon as the child is reaped.

    Piped output is unaffected: whatever the process wrote before exiting
    stays readable until its stream reaches EOF or the pipe is released.
    """

    def __init__(self, limit: int, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__(limit=limit, loop=loop)
        self.exited: asyncio.Future[None] = loop.create_future()

    def process_exited(self) -> None:
        super().process_exited()
        if not self.exited.done():
            self.exited.set_result(None)


class ProcessHandle:
    """One spawned external process.

    Exit is delivered exactly once to each observer registered with
    ``on_exit()`` as soon as the process is reaped, whether or not anyone is
    still reading its output. ``kill()`` never raises and sends at most one
    signal over the lifetime of the handle.
    """

    def __init__(
        self,
        stage: PipelineStage,
        command: Command,
        transport: asyncio.SubprocessTransport,
        protocol: _HandleProtocol,
    ) -> None:
        self._stage = stage
        self._command = command
        self._transport = transport
        self._protocol = protocol
        self._pid: int = transport.get_pid()
        self._exit_code: int | None = None
        self._observers: list[ExitCallback] = []
        self._kill_count = 0
        self._exited = asyncio.Event()

        protocol.exited.add_done_callback(self._on_exited)

    @classmethod
    async def spawn(
        cls,
        stage: PipelineStage,
        command: Command,
        *,
        limit: int = PipelineDefaults.STREAM_BUFFER_LIMIT,
    ) -> ProcessHandle:
        """Launch ``command`` with its declared stdio policy.

        Args:
            stage: Which pipeline stage this process plays (used for error attribution).
            command: Executable, arguments and stdio policy.
            limit: Buffer bound for each piped output stream.

        Raises:
            SpawnError: If the executable cannot be found or launched.
        """
        loop = asyncio.get_running_loop()
        try:
            transport, protocol = await loop.subprocess_exec(
                lambda: _HandleProtocol(limit=limit, loop=loop),
                *command.argv,
                stdin=command.stdio.stdin.to_subprocess(),
                stdout=command.stdio.stdout.to_subprocess(),
                stderr=command.stdio.stderr.to_subprocess(),
            )
        except OSError as e:
            logger.error(LogTemplates.PROCESS_SPAWN_FAILED, stage.value, command.executable, e)
            raise SpawnError(stage, command.executable, e) from e

        handle = cls(stage, command, transport, protocol)
        logger.debug(LogTemplates.PROCESS_SPAWNED, stage.value, handle.pid, command)
        return handle

    # === Properties ===

    @property
    def stage(self) -> PipelineStage:
        return self._stage

    @property
    def command(self) -> Command:
        return self._command

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def exit_code(self) -> int | None:
        """Exit code once exit was observed; negative when killed by that signal."""
        return self._exit_code

    @property
    def killed_by_signal(self) -> bool:
        return self._exit_code is not None and self._exit_code < 0

    @property
    def has_exited(self) -> bool:
        return self._exit_code is not None

    @property
    def is_running(self) -> bool:
        return self._transport.get_returncode() is None

    @property
    def kill_requested(self) -> bool:
        return self._kill_count > 0

    @property
    def kill_count(self) -> int:
        return self._kill_count

    @property
    def stdin(self) -> asyncio.StreamWriter | None:
        return self._protocol.stdin

    @property
    def stdout(self) -> asyncio.StreamReader | None:
        return self._protocol.stdout

    @property
    def stderr(self) -> asyncio.StreamReader | None:
        return self._protocol.stderr

    # === Control ===

    def kill(self, sig: int = signal.SIGKILL) -> bool:
        """Request immediate termination.

        Returns:
            True if a signal was delivered by this call.
        """
        if self._kill_count or not self.is_running:
            return False

        try:
            self._transport.send_signal(sig)
        except (ProcessLookupError, OSError) as e:
            logger.debug(LogTemplates.PROCESS_KILL_FAILED, self._stage.value, self._pid, e)
            return False

        self._kill_count += 1
        logger.debug(LogTemplates.PROCESS_KILLED, sig, self._stage.value, self._pid)
        return True

    def release(self) -> None:
        """Close every pipe of the process. Unread output is discarded."""
        for fd in _ALL_PIPE_FDS:
            pipe = self._transport.get_pipe_transport(fd)
            if pipe is not None and not pipe.is_closing():
                pipe.close()

    def on_exit(self, callback: ExitCallback) -> None:
        """Register a one-shot observer called with the exit code."""
        if self._exit_code is not None:
            asyncio.get_running_loop().call_soon(self._notify, callback, self._exit_code)
            return
        self._observers.append(callback)

    async def wait(self, timeout: float | None = None) -> int | None:
        """Wait for exit to be observed.

        Returns:
            The exit code, or None if ``timeout`` elapsed first.
        """
        try:
            await asyncio.wait_for(self._exited.wait(), timeout)
        except asyncio.TimeoutError:
            logger.warning(LogTemplates.PROCESS_WAIT_TIMEOUT, self._stage.value, self._pid, timeout)
            return None
        return self._exit_code

    # === Internals ===

    def _on_exited(self, _future: asyncio.Future[None]) -> None:
        returncode = self._transport.get_returncode()
        self._exit_code = returncode if returncode is not None else -signal.SIGKILL
        self._exited.set()
        logger.debug(LogTemplates.PROCESS_EXITED, self._stage.value, self._pid, self._exit_code)

        observers, self._observers = self._observers, []
        for callback in observers:
            self._notify(callback, self._exit_code)

    def _notify(self, callback: ExitCallback, exit_code: int) -> None:
        try:
            callback(exit_code)
        except Exception:
            logger.exception(LogTemplates.PROCESS_EXIT_CALLBACK_ERROR, self._stage.value, self._pid)

    def __repr__(self) -> str:
        return f"<ProcessHandle {self._stage.value} pid={self._pid} exit={self._exit_code}>"
