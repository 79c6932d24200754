import asyncio
import sys

import pytest

from discord_audio_pipeline.domain.music.pipeline import AudioPipeline, PipelineOutcome
from discord_audio_pipeline.domain.music.value_objects import PipelineState
from discord_audio_pipeline.infrastructure.audio.process_handle import (
    Command,
    StdioConfig,
    StdioPolicy,
)

# ============================================================================
# Stand-in Executables
# ============================================================================
# Small scripts run by the current interpreter take the place of yt-dlp and
# ffmpeg so that tests drive real child processes.

WRITE_BYTES = """
import sys
total, code = int(sys.argv[1]), int(sys.argv[2])
out = sys.stdout.buffer
chunk = b"\\x01" * 65536
while total > 0:
    n = min(total, len(chunk))
    out.write(chunk[:n])
    total -= n
out.flush()
sys.exit(code)
"""

WRITE_FOREVER = """
import sys
out = sys.stdout.buffer
chunk = b"\\x02" * 65536
while True:
    out.write(chunk)
"""

SLEEP = """
import time
time.sleep(60)
"""

EXIT_WITH = """
import sys
sys.exit(int(sys.argv[1]))
"""

COPY_STDIN = """
import shutil, sys
shutil.copyfileobj(sys.stdin.buffer, sys.stdout.buffer)
sys.stdout.buffer.flush()
"""

WRITE_THEN_EXIT = """
import sys
sys.stdin.buffer.read(1)
sys.stdout.buffer.write(b"\\x03" * int(sys.argv[1]))
sys.stdout.buffer.flush()
sys.exit(int(sys.argv[2]))
"""

READ_SOME_THEN_EXIT = """
import sys
sys.stdin.buffer.read(int(sys.argv[1]))
sys.exit(0)
"""

FETCHER_STDIO = StdioConfig(
    stdin=StdioPolicy.IGNORE, stdout=StdioPolicy.PIPE, stderr=StdioPolicy.INHERIT
)
TRANSCODER_STDIO = StdioConfig(
    stdin=StdioPolicy.PIPE, stdout=StdioPolicy.PIPE, stderr=StdioPolicy.INHERIT
)
MISSING_EXECUTABLE = "/nonexistent/bin/definitely-not-installed"


def python_command(script: str, *args: object, stdio: StdioConfig = FETCHER_STDIO) -> Command:
    """Build a command running ``script`` with the current interpreter."""
    return Command(sys.executable, ("-c", script, *(str(a) for a in args)), stdio)


def fetcher(script: str, *args: object) -> Command:
    return python_command(script, *args, stdio=FETCHER_STDIO)


def transcoder(script: str = COPY_STDIN, *args: object) -> Command:
    return python_command(script, *args, stdio=TRANSCODER_STDIO)


@pytest.fixture
def commands():
    """Namespace of stand-in command builders and scripts."""

    class Commands:
        write_bytes = staticmethod(lambda total, code=0: fetcher(WRITE_BYTES, total, code))
        write_forever = staticmethod(lambda: fetcher(WRITE_FOREVER))
        sleeping_fetcher = staticmethod(lambda: fetcher(SLEEP))
        failing_fetcher = staticmethod(lambda code: fetcher(EXIT_WITH, code))
        copy = staticmethod(lambda: transcoder(COPY_STDIN))
        sleeping_transcoder = staticmethod(lambda: transcoder(SLEEP))
        failing_transcoder = staticmethod(lambda code: transcoder(EXIT_WITH, code))
        read_some_then_exit = staticmethod(lambda n: transcoder(READ_SOME_THEN_EXIT, n))
        write_then_exit = staticmethod(lambda n, code: transcoder(WRITE_THEN_EXIT, n, code))
        missing = staticmethod(
            lambda stdio=FETCHER_STDIO: Command(MISSING_EXECUTABLE, ("--version",), stdio)
        )
        python = staticmethod(python_command)

    return Commands


# ============================================================================
# Fake Pipeline
# ============================================================================


class FakeStream:
    """In-memory stand-in for a pipeline's audio output."""

    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = list(chunks)
        self.bytes_read = 0

    async def read(self, n: int = -1) -> bytes:
        if not self._chunks:
            return b""
        chunk = self._chunks.pop(0)
        self.bytes_read += len(chunk)
        return chunk

    async def read_frame(self) -> bytes:
        return await self.read()

    def __aiter__(self):
        return self

    async def __anext__(self) -> bytes:
        chunk = await self.read()
        if not chunk:
            raise StopAsyncIteration
        return chunk


class FakePipeline(AudioPipeline):
    """Pipeline double whose lifecycle is driven by the test."""

    def __init__(self, locator: str, chunks: list[bytes] | None = None) -> None:
        self._locator = locator
        self._state = PipelineState.STREAMING
        self._output = FakeStream(chunks or [])
        self._outcome: PipelineOutcome | None = None
        self._done = asyncio.Event()
        self.close_calls = 0

    @property
    def locator(self) -> str:
        return self._locator

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def output(self) -> FakeStream:
        return self._output

    async def close(self) -> None:
        self.close_calls += 1
        self._state = PipelineState.STOPPED
        self._done.set()

    async def wait(self) -> PipelineOutcome:
        await self._done.wait()
        return self._outcome or PipelineOutcome(state=self._state)

    def finish(self) -> None:
        self._state = PipelineState.STOPPED
        self._outcome = PipelineOutcome(state=PipelineState.STOPPED, fetcher_exit=0, transcoder_exit=0)
        self._done.set()

    def fail(self, reason: Exception) -> None:
        self._state = PipelineState.FAILED
        self._outcome = PipelineOutcome(state=PipelineState.FAILED, reason=reason)
        self._done.set()


@pytest.fixture
def fake_opener():
    """Opener that records every FakePipeline it creates in ``opener.opened``."""

    async def opener(locator: str) -> FakePipeline:
        pipeline = FakePipeline(locator, list(opener.chunks))
        opener.opened.append(pipeline)
        return pipeline

    opener.opened = []
    opener.chunks = [b"\x00" * 3840, b"\x00" * 3840]
    return opener


# ============================================================================
# Domain Entity Fixtures
# ============================================================================


@pytest.fixture
def sample_track(fake_opener):
    """Create a sample track bound to the fake opener."""
    from discord_audio_pipeline.domain.music.entities import Track

    track = Track(
        url="https://youtube.com/watch?v=test123",
        title="Test Track",
        duration_seconds=180,
    )
    return track.bind_opener(fake_opener)


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    from discord_audio_pipeline.config.settings import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()
