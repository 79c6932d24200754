"""
Application Interfaces (Ports)

Abstract interfaces that define contracts between the application
layer and infrastructure adapters. These are the "ports" in
hexagonal architecture.
"""

from discord_audio_pipeline.application.interfaces.metadata_resolver import MetadataResolver

__all__ = [
    "MetadataResolver",
]
