"""Port interface for a live audio pipeline owned by a track."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from discord_audio_pipeline.domain.music.value_objects import PipelineState

if TYPE_CHECKING:
    from discord_audio_pipeline.domain.shared.exceptions import AbnormalExitError


@dataclass(frozen=True)
class PipelineOutcome:
    """Terminal result of a pipeline, observed by whoever awaits its completion."""

    state: PipelineState
    reason: AbnormalExitError | None = None
    fetcher_exit: int | None = None
    transcoder_exit: int | None = None

    @property
    def failed(self) -> bool:
        return self.reason is not None


class PcmStream(Protocol):
    """Readable raw PCM byte stream handed to the playback sink."""

    async def read(self, n: int = -1) -> bytes: ...

    async def read_frame(self) -> bytes: ...


class AudioPipeline(ABC):
    """A supervised fetch/transcode chain exposing one readable audio stream."""

    @property
    @abstractmethod
    def locator(self) -> str:
        ...

    @property
    @abstractmethod
    def state(self) -> PipelineState:
        ...

    @property
    @abstractmethod
    def output(self) -> PcmStream:
        """The decoded audio stream; reading ownership belongs to the consumer."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Tear the pipeline down. Idempotent and safe from any state."""
        ...

    @abstractmethod
    async def wait(self) -> PipelineOutcome:
        """Wait until the pipeline reaches a terminal state."""
        ...


PipelineOpener = Callable[[str], Awaitable[AudioPipeline]]
"""Opens a pipeline for a resolved locator."""
