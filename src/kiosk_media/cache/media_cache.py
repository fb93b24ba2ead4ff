from __future__ import annotations

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Coroutine, Iterable, Optional, TypeVar
from urllib.parse import unquote, urlsplit

from kiosk_media.cache.budget import CacheBudget
from kiosk_media.cache.byte_store import ByteStore
from kiosk_media.cache.eviction import EvictionPolicy, EvictionResult
from kiosk_media.cache.memory import BoundedMemoryCache
from kiosk_media.cache.utils import cache_key_for_url
from kiosk_media.config.models import CacheSettings
from kiosk_media.media.kinds import extension_of, kind_for_extension
from kiosk_media.media.models import UnifiedMediaItem

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_background_result(task: asyncio.Task) -> None:
    try:
        task.result()
    except asyncio.CancelledError:
        return
    except Exception:
        logger.exception("Media cache background job failed.")


class MediaCache:
    """
    Two-tier cache for remote media: a bounded in-memory tier for image bytes
    and a disk tier (ByteStore) kept under the byte budget by LRU eviction.

    Every ByteStore call runs on one dedicated worker thread, so writes,
    moves, deletes and eviction passes never interleave. Writes that grow the
    cache schedule an eviction pass in the background; callers are not blocked.
    """

    def __init__(
        self,
        *,
        store: ByteStore,
        budget: CacheBudget,
        memory: BoundedMemoryCache,
        policy: Optional[EvictionPolicy] = None,
    ) -> None:
        self.store = store
        self.budget = budget
        self.memory = memory
        self.policy = policy or EvictionPolicy()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="media-cache")
        self._background: set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> MediaCache:
        return cls(
            store=ByteStore(settings.directory),
            budget=CacheBudget(settings.budget_path, default_bytes=settings.default_budget_bytes),
            memory=BoundedMemoryCache(
                count_limit=settings.memory_count_limit,
                cost_limit=settings.memory_cost_limit_bytes,
            ),
        )

    @staticmethod
    def key_for(url: str) -> str:
        return cache_key_for_url(url)

    def start(self) -> None:
        """
        Drop partial downloads left by an earlier run, then schedule the startup
        eviction pass (the budget may have shrunk while we were down).

        The purge runs inline so it cannot race a download started after `start`.
        """
        purged = self.store.purge_incoming()
        if purged:
            logger.info("cache.incoming_purged files=%d directory=%s", purged, self.store.temp_directory)
        self.schedule_eviction()

    async def close(self) -> None:
        await self.drain()
        self._executor.shutdown(wait=True)

    async def drain(self) -> None:
        """Wait until every background write and eviction pass scheduled so far has finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        task.add_done_callback(_log_background_result)
        return task

    # Eviction

    def _evict_sync(self) -> EvictionResult:
        return self.policy.enforce(self.store, self.budget.value)

    async def enforce_limit(self) -> EvictionResult:
        return await self._run(self._evict_sync)

    def schedule_eviction(self) -> asyncio.Task:
        return self._spawn(self.enforce_limit())

    async def set_budget(self, size_bytes: int) -> None:
        await self._run(self.budget.set, size_bytes)
        self.schedule_eviction()

    # Images

    def _read_and_touch_sync(self, key: str) -> Optional[bytes]:
        data = self.store.read(key)
        if data is not None:
            self.store.touch(key)
        return data

    async def get_image(self, url: str) -> Optional[bytes]:
        key = self.key_for(url)
        cached = self.memory.get(key)
        if cached is not None:
            logger.debug("cache.memory_hit url=%s", url)
            return cached
        try:
            data = await self._run(self._read_and_touch_sync, key)
        except OSError as e:
            logger.warning("cache.disk_read_failed url=%s error=%s", url, e)
            return None
        if data is None:
            return None
        logger.debug("cache.disk_hit url=%s bytes=%d", url, len(data))
        self.memory.put(key, data)
        return data

    def store_image(self, url: str, data: bytes) -> asyncio.Task:
        """Put `data` in memory now and write it to disk in the background."""
        key = self.key_for(url)
        self.memory.put(key, data)
        return self._spawn(self._write_and_evict(url, key, data))

    # Raw data and files

    def store_data(self, url: str, data: bytes) -> asyncio.Task:
        return self._spawn(self._write_and_evict(url, self.key_for(url), data))

    def _write_and_evict_sync(self, url: str, key: str, data: bytes) -> None:
        try:
            self.store.write(data, key)
        except OSError as e:
            logger.warning("cache.disk_write_failed url=%s error=%s", url, e)
            return
        self._evict_sync()

    async def _write_and_evict(self, url: str, key: str, data: bytes) -> None:
        await self._run(self._write_and_evict_sync, url, key, data)

    async def read_data(self, url: str) -> Optional[bytes]:
        return await self._run(self._read_and_touch_sync, self.key_for(url))

    def _cached_file_sync(self, key: str) -> Optional[Path]:
        if not self.store.touch(key):
            return None
        return self.store.path_for(key)

    async def get_cached_file(self, url: str) -> Optional[Path]:
        """Path of the cached file for `url` (touched), or None on a miss."""
        try:
            return await self._run(self._cached_file_sync, self.key_for(url))
        except OSError as e:
            logger.warning("cache.disk_lookup_failed url=%s error=%s", url, e)
            return None

    async def contains(self, url: str) -> bool:
        return await self._run(self.store.exists, self.key_for(url))

    def new_temp_path(self, suffix: str = "") -> Path:
        return self.store.new_temp_path(suffix)

    async def move_in_download(self, temp_path: Path, url: str) -> Path:
        destination = await self._run(self.store.move_in, temp_path, self.key_for(url))
        self.schedule_eviction()
        return destination

    # Reporting and maintenance

    async def current_size_bytes(self) -> int:
        return await self._run(self.store.total_size)

    async def clear_all(self) -> None:
        self.memory.clear()
        await self._run(self.store.delete_all)
        logger.info("cache.cleared directory=%s", self.store.directory)

    def _key_for_reference(self, reference: str | Path) -> str:
        """
        Map a remote URL, a cached file path or a `file://` URI of a cached file
        to its cache key. Paths and URIs outside the cache directory are treated
        as URLs.
        """
        path: Optional[Path] = None
        if isinstance(reference, Path):
            path = reference
        elif reference.startswith("file:"):
            path = Path(unquote(urlsplit(reference).path))
        elif Path(reference).is_absolute():
            path = Path(reference)

        if path is not None and path.resolve().parent == self.store.directory:
            return path.name
        return self.key_for(str(reference))

    async def delete_entries(self, references: Iterable[str | Path]) -> int:
        """Accepts remote URLs as well as the ids/paths returned by `list_cached_items`."""
        keys = [self._key_for_reference(reference) for reference in references]
        for key in keys:
            self.memory.discard(key)
        removed = await self._run(self.store.delete, keys)
        logger.info("cache.entries_deleted requested=%d removed=%d", len(keys), removed)
        return removed

    def _list_items_sync(self, limit: Optional[int]) -> list[UnifiedMediaItem]:
        entries = sorted(self.store.enumerate(), key=lambda e: e.mtime, reverse=True)
        items: list[UnifiedMediaItem] = []
        for entry in entries:
            if limit is not None and len(items) >= limit:
                break
            kind = kind_for_extension(extension_of(entry.key))
            if kind is None:
                continue
            items.append(
                UnifiedMediaItem.from_cached_file(
                    self.store.path_for(entry.key),
                    kind,
                    datetime.fromtimestamp(entry.mtime, tz=timezone.utc),
                )
            )
        return items

    async def list_cached_items(self, limit: Optional[int] = None) -> list[UnifiedMediaItem]:
        """Media files currently on disk, most recently used first."""
        return await self._run(self._list_items_sync, limit)
