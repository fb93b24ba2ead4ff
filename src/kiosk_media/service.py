from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from kiosk_media.cache.media_cache import MediaCache
from kiosk_media.config.models import AppConfig
from kiosk_media.crawler.crawler import RemoteMediaCrawler
from kiosk_media.crawler.library import LibraryLoadResult, MediaLibraryLoader
from kiosk_media.media.models import UnifiedMediaItem
from kiosk_media.pipeline.fetch import MediaFetchPipeline, PlayableLocation
from kiosk_media.webdav.client import WebDAVClient
from kiosk_media.webdav.models import ConnectionResult

logger = logging.getLogger(__name__)


class MediaSyncService:
    """
    The surface the slideshow talks to.

    Owns nothing global: every collaborator is passed in (or built from one
    AppConfig by `from_config`), so several servers can coexist in one process.
    """

    def __init__(
        self,
        *,
        client: WebDAVClient,
        cache: MediaCache,
        crawler: RemoteMediaCrawler,
        pipeline: MediaFetchPipeline,
        library: MediaLibraryLoader,
    ) -> None:
        self.client = client
        self.cache = cache
        self.crawler = crawler
        self.pipeline = pipeline
        self.library = library

    @classmethod
    def from_config(cls, config: AppConfig) -> MediaSyncService:
        client = WebDAVClient(config.webdav)
        cache = MediaCache.from_settings(config.cache)
        crawler = RemoteMediaCrawler(
            lister=client,
            max_concurrent_listings=config.crawler.max_concurrent_listings,
            max_depth=config.crawler.max_depth,
        )
        return cls(
            client=client,
            cache=cache,
            crawler=crawler,
            pipeline=MediaFetchPipeline(cache=cache, fetcher=client),
            library=MediaLibraryLoader(crawler=crawler, cached_items=cache),
        )

    async def __aenter__(self) -> MediaSyncService:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    async def start(self) -> None:
        await self.client.start()
        self.cache.start()

    async def stop(self) -> None:
        await self.cache.close()
        await self.client.stop()

    async def list_folder(self, path: str) -> list[UnifiedMediaItem]:
        return await self.crawler.crawl(path)

    async def load_library(self, paths: Iterable[str]) -> LibraryLoadResult:
        return await self.library.load(paths)

    async def test_connection(self) -> ConnectionResult:
        return await self.client.test_connection()

    async def fetch_image(self, url: str) -> Optional[bytes]:
        return await self.pipeline.fetch_image(url)

    async def fetch_playable_location(self, url: str) -> PlayableLocation:
        return await self.pipeline.fetch_playable_location(url)

    async def current_cache_size_bytes(self) -> int:
        return await self.cache.current_size_bytes()

    async def clear_all_cache(self) -> None:
        await self.cache.clear_all()

    async def delete_cache_entries(self, references: Iterable[str | Path]) -> int:
        return await self.cache.delete_entries(references)

    async def list_cached_items(self, limit: Optional[int] = None) -> list[UnifiedMediaItem]:
        return await self.cache.list_cached_items(limit)

    async def set_cache_budget(self, size_bytes: int) -> None:
        await self.cache.set_budget(size_bytes)
