"""Dependency Injection Container

Wires the metadata resolver, the pipeline opener and the playback sink from
one ``Settings`` instance. Components are created on first access and cached.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..application.interfaces.metadata_resolver import MetadataResolver
    from ..domain.music.pipeline import PipelineOpener
    from ..infrastructure.audio.pipeline_player import PipelinePlayer
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    Components are lazily initialized when first accessed.
    """

    settings: Settings

    _pipeline_opener: PipelineOpener | None = None
    _metadata_resolver: MetadataResolver | None = None
    _player: PipelinePlayer | None = None

    # === Pipeline ===

    @property
    def pipeline_opener(self) -> PipelineOpener:
        """Open a resource pipeline configured from ``settings.pipeline``."""
        if self._pipeline_opener is None:
            from ..infrastructure.audio.resource_pipeline import ResourcePipeline

            self._pipeline_opener = functools.partial(
                ResourcePipeline.open, settings=self.settings.pipeline
            )
        return self._pipeline_opener

    # === Metadata ===

    @property
    def metadata_resolver(self) -> MetadataResolver:
        """Get the metadata resolver; resolved tracks open pipelines via ``pipeline_opener``."""
        if self._metadata_resolver is None:
            from ..infrastructure.audio.ytdlp_resolver import YtDlpResolver

            self._metadata_resolver = YtDlpResolver(
                self.settings.resolver, opener=self.pipeline_opener
            )
        return self._metadata_resolver

    # === Playback ===

    @property
    def player(self) -> PipelinePlayer:
        if self._player is None:
            from ..infrastructure.audio.pipeline_player import PipelinePlayer

            self._player = PipelinePlayer(self.settings.playback)
        return self._player

    def cleanup(self) -> None:
        """Close every pipeline still held by the playback sink."""
        if self._player is not None:
            self._player.cleanup_all()


def create_container(settings: Settings | None = None) -> Container:
    """Create the application container (settings default to ``get_settings()``)."""
    if settings is None:
        from .settings import get_settings

        settings = get_settings()

    return Container(settings=settings)
