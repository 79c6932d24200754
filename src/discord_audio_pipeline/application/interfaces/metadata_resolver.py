"""Port interface for resolving locators and search queries to tracks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from discord_audio_pipeline.domain.shared.types import NonEmptyStr, PositiveInt

if TYPE_CHECKING:
    from ...domain.music.entities import Track


class MetadataResolver(ABC):
    """Interface for turning a link or free-text query into a playable track."""

    @abstractmethod
    async def resolve(self, query: NonEmptyStr) -> "Track":
        """Resolve a query or link to a single track.

        Raises:
            NoResultsError: A search query matched nothing.
            InvalidLinkError: A link could not be extracted.
        """
        ...

    @abstractmethod
    async def search(self, query: NonEmptyStr, limit: PositiveInt = 5) -> list["Track"]:
        """Search for tracks matching a query."""
        ...

    @abstractmethod
    def is_url(self, query: NonEmptyStr) -> bool:
        ...
