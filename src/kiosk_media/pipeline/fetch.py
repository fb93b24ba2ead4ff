from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Protocol

from kiosk_media.cache.media_cache import MediaCache
from kiosk_media.media.kinds import extension_of
from kiosk_media.pipeline.tokens import LatestRequestGate
from kiosk_media.webdav.errors import WebDAVError
from kiosk_media.webdav.models import AuthenticatedRequest

logger = logging.getLogger(__name__)


class RemoteFetcher(Protocol):
    def authenticated_request(self, url: str) -> AuthenticatedRequest:
        ...

    def authenticated_stream_url(self, url: str) -> str:
        ...

    async def fetch_bytes(self, url: str) -> bytes:
        ...

    async def download_to_file(self, url: str, destination: Path) -> int:
        ...


@dataclass(frozen=True, slots=True)
class PlayableLocation:
    """
    Where a player should read a video from.

    `cached` locations are complete local files inside the cache directory.
    Uncached locations stream straight from the server; `url` carries embedded
    credentials and `headers` carries the same credentials for players that
    accept request headers.
    """

    url: str
    cached: bool
    path: Optional[Path] = None
    headers: Mapping[str, str] = field(default_factory=dict)


class MediaFetchPipeline:
    def __init__(self, *, cache: MediaCache, fetcher: RemoteFetcher, gate: Optional[LatestRequestGate] = None) -> None:
        self._cache = cache
        self._fetcher = fetcher
        self.gate = gate or LatestRequestGate()

    async def fetch_image(self, url: str) -> Optional[bytes]:
        """
        Image bytes for `url`: memory, then disk, then an authenticated GET.

        Any network failure returns None; the slideshow skips to the next item.
        """
        cached = await self._cache.get_image(url)
        if cached is not None:
            return cached

        try:
            data = await self._fetcher.fetch_bytes(url)
        except WebDAVError as e:
            logger.warning("fetch.image_failed url=%s error=%s", url, e.message)
            return None
        if not data:
            logger.warning("fetch.image_empty url=%s", url)
            return None

        self._cache.store_image(url, data)
        logger.debug("fetch.image_downloaded url=%s bytes=%d", url, len(data))
        return data

    async def fetch_playable_location(self, url: str) -> PlayableLocation:
        """
        A playable location for the video at `url`, never holding it in memory.

        Cached files are returned directly. Otherwise the video is streamed to a
        temporary file and moved into the cache. If that fails, playback falls
        back to streaming from the server without caching.
        """
        cached_path = await self._cache.get_cached_file(url)
        if cached_path is not None:
            logger.debug("fetch.video_cache_hit url=%s", url)
            return PlayableLocation(url=cached_path.as_uri(), cached=True, path=cached_path)

        extension = extension_of(url)
        temp_path = self._cache.new_temp_path(f".{extension}" if extension else "")
        moved = False
        try:
            size = await self._fetcher.download_to_file(url, temp_path)
            final_path = await self._cache.move_in_download(temp_path, url)
            moved = True
        except (WebDAVError, OSError) as e:
            logger.warning("fetch.video_download_failed url=%s error=%s; streaming uncached", url, e)
            return self._direct_stream(url)
        finally:
            # Also covers cancellation: a partial body must not outlive the request.
            if not moved:
                temp_path.unlink(missing_ok=True)

        logger.info("fetch.video_cached url=%s bytes=%d", url, size)
        return PlayableLocation(url=final_path.as_uri(), cached=True, path=final_path)

    def _direct_stream(self, url: str) -> PlayableLocation:
        request = self._fetcher.authenticated_request(url)
        return PlayableLocation(
            url=self._fetcher.authenticated_stream_url(url),
            cached=False,
            headers=dict(request.headers),
        )

    async def request_image(self, url: str, *, slot: str = "default") -> Optional[bytes]:
        """`fetch_image`, but returns None when a newer request for `slot` superseded this one."""
        token = self.gate.issue(slot)
        data = await self.fetch_image(url)
        if not self.gate.is_current(token):
            logger.debug("fetch.image_stale url=%s slot=%s", url, slot)
            return None
        return data

    async def request_playable_location(self, url: str, *, slot: str = "default") -> Optional[PlayableLocation]:
        token = self.gate.issue(slot)
        location = await self.fetch_playable_location(url)
        if not self.gate.is_current(token):
            logger.debug("fetch.video_stale url=%s slot=%s", url, slot)
            return None
        return location
