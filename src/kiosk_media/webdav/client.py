from __future__ import annotations

import asyncio
import base64
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlsplit, urlunsplit

import aiohttp

from kiosk_media.config.models import WebDAVSettings
from kiosk_media.webdav.errors import (
    AuthenticationFailedError,
    ConnectionFailedError,
    NotFoundError,
    WebDAVError,
    error_for_status,
)
from kiosk_media.webdav.models import AuthenticatedRequest, ConnectionResult, RemoteResource
from kiosk_media.webdav.multistatus import parse_multistatus
from kiosk_media.webdav.paths import (
    clean_host,
    host_prefix,
    href_to_path,
    is_absolute_url,
    normalize_request_path,
    same_path,
    strip_host_prefix,
)

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = (200, 207)
_BODY_PREVIEW_CHARS = 500


def basic_auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class WebDAVClient:
    """
    Read-only WebDAV client: PROPFIND listings, connection checks and authenticated GETs.

    One instance owns one aiohttp session. Use it as an async context manager,
    or call `start()`/`stop()` explicitly; methods start the session lazily.
    """

    def __init__(self, settings: WebDAVSettings, *, session: Optional[aiohttp.ClientSession] = None) -> None:
        self.settings = settings
        self.host = clean_host(settings.host)
        self._prefix = host_prefix(settings.host)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> WebDAVClient:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    async def start(self) -> None:
        if self._session is not None:
            return
        timeout = aiohttp.ClientTimeout(total=self.settings.timeout_seconds)
        connector = aiohttp.TCPConnector(limit_per_host=self.settings.connect_limit_per_host)
        self._session = aiohttp.ClientSession(timeout=timeout, connector=connector)
        self._owns_session = True

    async def stop(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            await self.start()
        assert self._session is not None
        return self._session

    @property
    def auth_header(self) -> str:
        return basic_auth_header(self.settings.username, self.settings.password)

    def url_for(self, path: str) -> str:
        return self.host + normalize_request_path(path)

    def resolve_href(self, href: str, base_path: str) -> str:
        """
        Map a PROPFIND href to a path relative to the configured host.

        Absolute hrefs (full URLs or server paths) lose the host's own path prefix;
        relative hrefs are resolved against `base_path`, the folder that was listed.
        """
        if is_absolute_url(href) or href.startswith("/"):
            return strip_host_prefix(href_to_path(href, base_path), self._prefix)
        return href_to_path(href, base_path)

    def authenticated_request(self, url: str) -> AuthenticatedRequest:
        return AuthenticatedRequest(url=url, headers={"Authorization": self.auth_header})

    def authenticated_stream_url(self, url: str) -> str:
        """Return `url` with percent-encoded credentials embedded, for players that cannot send headers."""
        parts = urlsplit(url)
        if not parts.scheme or not parts.hostname:
            return url
        if parts.username is not None or not self.settings.username:
            return url
        user = quote(self.settings.username, safe="")
        password = quote(self.settings.password, safe="")
        netloc = f"{user}:{password}@{parts.netloc}"
        return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))

    async def _propfind(self, path: str, depth: int) -> tuple[int, bytes, str]:
        url = self.url_for(path)
        headers = {"Depth": str(depth), "Authorization": self.auth_header}
        session = await self._get_session()
        try:
            async with session.request("PROPFIND", url, headers=headers) as response:
                body = await response.read()
                return response.status, body, url
        except asyncio.TimeoutError as e:
            raise ConnectionFailedError("cannot connect: request timed out", url=url) from e
        except aiohttp.ClientError as e:
            raise ConnectionFailedError(f"cannot connect: {e}", url=url) from e

    async def list_directory_checked(self, path: str, depth: int = 1) -> list[RemoteResource]:
        """
        PROPFIND `path` and return its entries without the self entry.

        Raises a WebDAVError subclass on any failure, so callers can tell an
        empty folder from a failed listing.
        """
        request_path = normalize_request_path(path)
        status, body, url = await self._propfind(request_path, depth)
        logger.debug("webdav.propfind url=%s depth=%s status=%s bytes=%d", url, depth, status, len(body))
        if status not in SUCCESS_STATUSES:
            preview = body[:_BODY_PREVIEW_CHARS].decode("utf-8", errors="replace")
            logger.debug("webdav.propfind_error_body url=%s body=%s", url, preview)
            raise error_for_status(status, url)

        try:
            resources = parse_multistatus(body)
        except WebDAVError as e:
            e.url = url
            raise

        filtered = [
            res for res in resources if not same_path(self.resolve_href(res.href, request_path), request_path)
        ]
        logger.debug(
            "webdav.listed url=%s parsed=%d returned=%d",
            url,
            len(resources),
            len(filtered),
        )
        return filtered

    async def list_directory(self, path: str, depth: int = 1) -> list[RemoteResource]:
        """
        Like `list_directory_checked`, but any failure yields an empty list.

        An empty result is ambiguous: the folder may be empty or the request may have failed.
        """
        try:
            return await self.list_directory_checked(path, depth)
        except WebDAVError as e:
            logger.warning("webdav.list_failed path=%s url=%s error=%s", path, e.url, e.message)
            return []

    async def test_connection(self) -> ConnectionResult:
        try:
            status, _body, url = await self._propfind("/", depth=0)
        except ConnectionFailedError as e:
            logger.warning("webdav.test_connection_failed host=%s error=%s", self.host, e.message)
            return ConnectionResult(ok=False, message=e.message, failure="network")

        if status in SUCCESS_STATUSES:
            logger.info("webdav.test_connection_ok host=%s status=%s", self.host, status)
            return ConnectionResult(ok=True, status=status)

        error = error_for_status(status, url)
        logger.warning("webdav.test_connection_rejected host=%s status=%s", self.host, status)
        if isinstance(error, AuthenticationFailedError):
            return ConnectionResult(
                ok=False,
                message="authentication failed: check username and password",
                failure="authentication",
                status=status,
            )
        if isinstance(error, NotFoundError):
            return ConnectionResult(ok=False, message="server not found", failure="not_found", status=status)
        return ConnectionResult(ok=False, message=error.message, failure="server", status=status)

    async def fetch_bytes(self, url: str) -> bytes:
        """Buffered authenticated GET. Raises WebDAVError on any failure."""
        request = self.authenticated_request(url)
        session = await self._get_session()
        try:
            async with session.get(request.url, headers=dict(request.headers)) as response:
                if response.status != 200:
                    raise error_for_status(response.status, url)
                return await response.read()
        except asyncio.TimeoutError as e:
            raise ConnectionFailedError("cannot connect: request timed out", url=url) from e
        except aiohttp.ClientError as e:
            raise ConnectionFailedError(f"cannot connect: {e}", url=url) from e

    async def download_to_file(self, url: str, destination: Path) -> int:
        """
        Stream an authenticated GET into `destination`, returning the byte count.

        The file is only complete when this returns; on failure it may hold a
        partial body and the caller is expected to discard it.
        """
        request = self.authenticated_request(url)
        session = await self._get_session()
        loop = asyncio.get_running_loop()
        written = 0
        try:
            async with session.get(request.url, headers=dict(request.headers)) as response:
                if response.status != 200:
                    raise error_for_status(response.status, url)
                with destination.open("wb") as handle:
                    async for chunk in response.content.iter_chunked(self.settings.download_chunk_bytes):
                        # Disk writes stay off the event loop.
                        await loop.run_in_executor(None, handle.write, chunk)
                        written += len(chunk)
        except asyncio.TimeoutError as e:
            raise ConnectionFailedError("cannot connect: download timed out", url=url) from e
        except aiohttp.ClientError as e:
            raise ConnectionFailedError(f"cannot connect: {e}", url=url) from e
        logger.debug("webdav.downloaded url=%s bytes=%d", url, written)
        return written
