# ruff: noqa: N999
"""
Domain Layer

Contains pure business logic:
- shared/: Cross-cutting exceptions, messages, and constants
- music/: Track entity, pipeline port, and playback state value objects
"""

from discord_audio_pipeline.domain.shared.exceptions import DomainError

__all__ = [
    "DomainError",
]
