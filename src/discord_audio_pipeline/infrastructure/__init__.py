"""Infrastructure layer - external systems integration.

This layer contains implementations for:
- Audio (fetch/transcode process pipeline, yt-dlp metadata, discord.py playback)
"""
