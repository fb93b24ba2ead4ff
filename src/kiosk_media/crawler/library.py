from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol

from kiosk_media.crawler.crawler import CrawlReport, RemoteMediaCrawler
from kiosk_media.media.models import UnifiedMediaItem
from kiosk_media.webdav.paths import is_same_or_child, normalize_folder_path

logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class CachedItemSource(Protocol):
    async def list_cached_items(self, limit: Optional[int] = None) -> list[UnifiedMediaItem]:
        ...


@dataclass(slots=True)
class LibraryLoadResult:
    items: list[UnifiedMediaItem] = field(default_factory=list)
    paths: list[str] = field(default_factory=list)
    any_failed: bool = False
    used_offline_cache: bool = False


def prune_paths(paths: Iterable[str]) -> list[str]:
    """
    Normalize and de-duplicate folder paths, dropping any path already covered
    by another selected path (crawls are recursive, and `/` covers everything).
    """
    unique = sorted({normalize_folder_path(p) for p in paths}, key=lambda p: (len(p), p))
    pruned: list[str] = []
    for candidate in unique:
        if "/" in pruned:
            break
        if any(is_same_or_child(candidate, parent) for parent in pruned):
            continue
        pruned.append(candidate)
    return pruned


def _sort_newest_first(items: list[UnifiedMediaItem]) -> list[UnifiedMediaItem]:
    # Stable: undated items keep their relative order after all dated ones.
    dated = [item for item in items if item.creation_date is not None]
    undated = [item for item in items if item.creation_date is None]
    dated.sort(key=lambda item: _as_aware(item.creation_date), reverse=True)
    return dated + undated


def _as_aware(value: Optional[datetime]) -> datetime:
    if value is None:
        return _OLDEST
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MediaLibraryLoader:
    """Loads every selected remote folder into one de-duplicated, newest-first item list."""

    def __init__(self, *, crawler: RemoteMediaCrawler, cached_items: Optional[CachedItemSource] = None) -> None:
        self._crawler = crawler
        self._cached_items = cached_items

    async def load(self, paths: Iterable[str]) -> LibraryLoadResult:
        selected = prune_paths(paths)
        if not selected:
            logger.info("library.no_paths_selected")
            return LibraryLoadResult()

        started = time.monotonic()
        reports: list[CrawlReport] = await asyncio.gather(*(self._crawler.crawl_report(p) for p in selected))

        seen: set[str] = set()
        merged: list[UnifiedMediaItem] = []
        for report in reports:
            for item in report.items:
                if item.id in seen:
                    continue
                seen.add(item.id)
                merged.append(item)

        result = LibraryLoadResult(
            items=_sort_newest_first(merged),
            paths=selected,
            any_failed=any(not report.succeeded for report in reports),
        )

        if not result.items and result.any_failed and self._cached_items is not None:
            cached = await self._cached_items.list_cached_items()
            if cached:
                logger.warning("library.offline_fallback cached_items=%d", len(cached))
                result.items = cached
                result.used_offline_cache = True

        logger.info(
            "library.loaded paths=%d items=%d any_failed=%s offline=%s elapsed=%.2fs",
            len(selected),
            len(result.items),
            result.any_failed,
            result.used_offline_cache,
            time.monotonic() - started,
        )
        return result
