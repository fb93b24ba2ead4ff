"""Recursive media discovery over WebDAV."""

from kiosk_media.crawler.classify import classify
from kiosk_media.crawler.crawler import CrawlReport, DirectoryLister, RemoteMediaCrawler
from kiosk_media.crawler.library import LibraryLoadResult, MediaLibraryLoader, prune_paths

__all__ = [
    "CrawlReport",
    "DirectoryLister",
    "LibraryLoadResult",
    "MediaLibraryLoader",
    "RemoteMediaCrawler",
    "classify",
    "prune_paths",
]
