"""Reusable Pydantic Annotated types for domain-wide validation.

Every constrained type used across the package is defined here once,
so models can simply annotate their fields::

    from discord_audio_pipeline.domain.shared.types import NonEmptyStr, TrackTitleStr

    class MyModel(BaseModel):
        url: NonEmptyStr
        title: TrackTitleStr
"""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

# ── Numeric constraints ─────────────────────────────────────────────

NonNegativeInt = Annotated[int, Field(ge=0)]
"""Integer >= 0."""

PositiveInt = Annotated[int, Field(gt=0)]
"""Integer > 0."""

NonNegativeFloat = Annotated[float, Field(ge=0.0)]
"""Float >= 0.0."""

PositiveFloat = Annotated[float, Field(gt=0.0)]
"""Float > 0.0."""

VolumeFloat = Annotated[float, Field(ge=0.0, le=2.0)]
"""Audio volume multiplier in [0.0, 2.0]."""


# ── String constraints ──────────────────────────────────────────────

NonEmptyStr = Annotated[str, Field(min_length=1)]
"""String with at least one character."""

TrackTitleStr = Annotated[str, Field(min_length=1, max_length=500)]
"""Track title: 1-500 characters."""

HttpUrlStr = Annotated[str, Field(pattern=r"^https?://")]
"""String that starts with http:// or https://."""


# ── Domain-specific numeric constraints ─────────────────────────────

DurationSeconds = Annotated[int, Field(ge=0)]
"""Track duration in whole seconds; 0 when unknown or live."""

ChunkSizeBytes = Annotated[int, Field(ge=4096, le=4 * 1024 * 1024)]
"""Pipe forwarding chunk size: 4 KiB … 4 MiB."""

BufferLimitBytes = Annotated[int, Field(ge=64 * 1024, le=16 * 1024 * 1024)]
"""Per-stream read buffer bound: 64 KiB … 16 MiB."""
