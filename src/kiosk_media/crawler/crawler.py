from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol
from urllib.parse import unquote

from kiosk_media.crawler.classify import classify
from kiosk_media.media.models import UnifiedMediaItem
from kiosk_media.webdav.errors import WebDAVError
from kiosk_media.webdav.models import RemoteResource
from kiosk_media.webdav.paths import normalize_folder_path

logger = logging.getLogger(__name__)


class DirectoryLister(Protocol):
    async def list_directory_checked(self, path: str, depth: int = 1) -> list[RemoteResource]:
        ...

    def url_for(self, path: str) -> str:
        ...

    def resolve_href(self, href: str, base_path: str) -> str:
        ...


@dataclass(slots=True)
class CrawlReport:
    items: list[UnifiedMediaItem] = field(default_factory=list)
    failed_paths: list[str] = field(default_factory=list)
    # Directories not listed because of the depth limit or because they were already visited
    skipped_paths: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failed_paths


@dataclass(slots=True)
class _CrawlState:
    report: CrawlReport
    visited: set[str] = field(default_factory=set)


class RemoteMediaCrawler:
    """
    Recursively enumerate media under a WebDAV folder.

    Sibling subdirectories are listed concurrently, capped by a semaphore shared
    by the whole crawl. A failed listing empties only its own subtree.
    """

    def __init__(
        self,
        *,
        lister: DirectoryLister,
        max_concurrent_listings: int = 8,
        max_depth: int = 32,
    ) -> None:
        self._lister = lister
        self._max_concurrent_listings = max(1, int(max_concurrent_listings))
        self._max_depth = max(0, int(max_depth))

    async def crawl(self, root_path: str) -> list[UnifiedMediaItem]:
        report = await self.crawl_report(root_path)
        return report.items

    async def crawl_report(self, root_path: str) -> CrawlReport:
        state = _CrawlState(report=CrawlReport())
        semaphore = asyncio.Semaphore(self._max_concurrent_listings)
        root = normalize_folder_path(root_path)
        items = await self._crawl_directory(root, depth=0, state=state, semaphore=semaphore)
        state.report.items = items
        logger.info(
            "crawler.completed root=%s items=%d failed=%d skipped=%d",
            root,
            len(items),
            len(state.report.failed_paths),
            len(state.report.skipped_paths),
        )
        return state.report

    async def _crawl_directory(
        self,
        path: str,
        *,
        depth: int,
        state: _CrawlState,
        semaphore: asyncio.Semaphore,
    ) -> list[UnifiedMediaItem]:
        visit_key = unquote(path).rstrip("/") or "/"
        if visit_key in state.visited:
            logger.warning("crawler.skip_revisit path=%s", path)
            state.report.skipped_paths.append(path)
            return []
        state.visited.add(visit_key)

        try:
            async with semaphore:
                resources = await self._lister.list_directory_checked(path, 1)
        except WebDAVError as e:
            logger.warning("crawler.list_failed path=%s error=%s", path, e.message)
            state.report.failed_paths.append(path)
            return []
        except Exception:
            logger.exception("crawler.list_unexpected_error path=%s", path)
            state.report.failed_paths.append(path)
            return []

        items: list[UnifiedMediaItem] = []
        subdirectories: list[str] = []
        for resource in resources:
            if resource.is_directory:
                subdirectories.append(normalize_folder_path(self._lister.resolve_href(resource.href, path)))
                continue
            item = self._build_item(resource, base_path=path)
            if item is not None:
                items.append(item)

        logger.debug(
            "crawler.listed path=%s depth=%d items=%d subdirectories=%d",
            path,
            depth,
            len(items),
            len(subdirectories),
        )

        if not subdirectories:
            return items

        if depth >= self._max_depth:
            logger.warning("crawler.max_depth_reached path=%s depth=%d skipped=%d", path, depth, len(subdirectories))
            state.report.skipped_paths.extend(subdirectories)
            return items

        tasks = [
            asyncio.create_task(self._crawl_directory(sub, depth=depth + 1, state=state, semaphore=semaphore))
            for sub in subdirectories
        ]
        for sub_items in await asyncio.gather(*tasks):
            items.extend(sub_items)
        return items

    def _build_item(self, resource: RemoteResource, *, base_path: str) -> Optional[UnifiedMediaItem]:
        kind = classify(resource.content_type, resource.href)
        if kind is None:
            logger.debug(
                "crawler.skip_unknown_type href=%s content_type=%s",
                resource.href,
                resource.content_type,
            )
            return None
        url = self._lister.url_for(self._lister.resolve_href(resource.href, base_path))
        return UnifiedMediaItem.from_remote(url, kind, resource.last_modified)
