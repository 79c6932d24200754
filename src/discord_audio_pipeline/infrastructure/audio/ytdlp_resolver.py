"""MetadataResolver implementation using yt-dlp for link extraction and search."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Any, Final, cast

from yt_dlp import YoutubeDL

from discord_audio_pipeline.application.interfaces.metadata_resolver import MetadataResolver
from discord_audio_pipeline.config.settings import ResolverSettings
from discord_audio_pipeline.domain.music.entities import Track
from discord_audio_pipeline.domain.music.pipeline import PipelineOpener
from discord_audio_pipeline.domain.shared.exceptions import InvalidLinkError, NoResultsError
from discord_audio_pipeline.domain.shared.messages import LogTemplates
from discord_audio_pipeline.infrastructure.audio.models import (
    LOG_URL_TRUNCATE,
    CacheEntry,
    YtDlpOpts,
    YtDlpTrackInfo,
)

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH: Final[int] = 500

# ── Module-level state and patterns ────────────────────────────────────

_info_cache: dict[str, CacheEntry] = {}

URL_PATTERNS: Final[list[re.Pattern[str]]] = [
    re.compile(r"https?://"),
    re.compile(r"www\."),
]


def clear_info_cache() -> None:
    _info_cache.clear()


class YtDlpResolver(MetadataResolver):
    """Resolves links and search queries through the yt-dlp Python API.

    Extraction is blocking, so it runs in a worker thread. Link extraction
    results are cached per URL for ``cache_ttl_seconds``.
    """

    def __init__(
        self,
        settings: ResolverSettings | None = None,
        opener: PipelineOpener | None = None,
    ) -> None:
        self._settings = settings or ResolverSettings()
        self._opener = opener
        self._base_opts = YtDlpOpts(
            format=self._settings.ytdlp_format,
            retries=self._settings.retries,
            socket_timeout=self._settings.socket_timeout,
        )

    def _get_opts(self, **overrides: Any) -> YtDlpOpts:
        if overrides:
            return self._base_opts.model_copy(update=overrides)
        return self._base_opts

    def _info_to_track(self, info: YtDlpTrackInfo, fallback_url: str | None = None) -> Track | None:
        url = info.webpage_url or info.original_url
        if not url and fallback_url:
            logger.debug(LogTemplates.YTDLP_NO_CANONICAL_URL, fallback_url[:LOG_URL_TRUNCATE])
            url = fallback_url
        if not url:
            return None

        track = Track(
            url=url,
            title=info.title[:MAX_TITLE_LENGTH],
            duration_seconds=info.duration or 0,
        )
        if self._opener is not None:
            track.bind_opener(self._opener)
        return track

    @staticmethod
    def _parse_info(data: dict[str, Any]) -> YtDlpTrackInfo:
        return YtDlpTrackInfo.model_validate(data)

    def _evict_expired(self, now: float) -> None:
        ttl = self._settings.cache_ttl_seconds
        expired = [k for k, entry in _info_cache.items() if now - entry.cached_at >= ttl]
        for k in expired:
            _info_cache.pop(k, None)
        if expired:
            logger.debug(LogTemplates.CACHE_EXPIRED_CLEANED, len(expired))

    def _evict_oldest(self) -> None:
        excess = len(_info_cache) - self._settings.cache_max_size
        if excess <= 0:
            return
        oldest = sorted(_info_cache, key=lambda k: _info_cache[k].cached_at)[:excess]
        for k in oldest:
            _info_cache.pop(k, None)
        logger.debug(LogTemplates.CACHE_OLDEST_EVICTED, len(oldest))

    def _extract_info_sync(self, url: str) -> YtDlpTrackInfo | None:
        now = time.time()
        cached = _info_cache.get(url)
        if cached is not None:
            if now - cached.cached_at < self._settings.cache_ttl_seconds:
                logger.debug(LogTemplates.CACHE_HIT_URL, url[:LOG_URL_TRUNCATE])
                return cached.info
            _info_cache.pop(url, None)

        try:
            with YoutubeDL(params=cast(Any, self._get_opts().model_dump())) as ydl:
                data = ydl.extract_info(url, download=False)
                result = self._parse_info(dict(data)) if isinstance(data, dict) else None
        except Exception:
            logger.exception(LogTemplates.YTDLP_FAILED_EXTRACT_INFO, url)
            return None

        if result is not None:
            _info_cache[url] = CacheEntry(info=result, cached_at=now)
            if len(_info_cache) > self._settings.cache_max_size:
                self._evict_expired(now)
                self._evict_oldest()
        return result

    def _search_sync(self, query: str, limit: int = 1) -> list[YtDlpTrackInfo]:
        try:
            search_query = f"ytsearch{limit}:{query}"
            with YoutubeDL(params=cast(Any, self._get_opts().model_dump())) as ydl:
                data = ydl.extract_info(search_query, download=False)

                if not isinstance(data, dict):
                    return []

                entries = data.get("entries", [])
                if not isinstance(entries, list):
                    return []

                return [self._parse_info(dict(e)) for e in entries if e]
        except Exception:
            logger.exception(LogTemplates.YTDLP_FAILED_SEARCH, query)
            return []

    async def resolve(self, query: str) -> Track:
        if self.is_url(query):
            info = await asyncio.to_thread(self._extract_info_sync, query)
            fallback = query if self._settings.fallback_to_query_url else None
            track = self._info_to_track(info, fallback) if info else None
            if track is None:
                raise InvalidLinkError(query)
        else:
            results = await asyncio.to_thread(self._search_sync, query, 1)
            track = self._info_to_track(results[0]) if results else None
            if track is None:
                raise NoResultsError(query)

        logger.info(LogTemplates.YTDLP_RESOLVED, query, track.title, track.url)
        return track

    async def search(self, query: str, limit: int | None = None) -> list[Track]:
        results = await asyncio.to_thread(
            self._search_sync, query, limit or self._settings.search_limit
        )

        tracks: list[Track] = []
        for info in results:
            track = self._info_to_track(info)
            if track:
                tracks.append(track)
        return tracks

    def is_url(self, query: str) -> bool:
        return any(pattern.search(query) for pattern in URL_PATTERNS)
