from __future__ import annotations

from typing import Optional


class WebDAVError(Exception):
    """Base class for every failure raised by the WebDAV client."""

    def __init__(self, message: str, *, url: str = "", status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.status = status


class ConnectionFailedError(WebDAVError):
    """DNS, timeout or connection-level failure; no HTTP status was received."""


class AuthenticationFailedError(WebDAVError):
    """The server answered 401."""


class NotFoundError(WebDAVError):
    """The server answered 404."""


class ServerError(WebDAVError):
    """Any other non-success HTTP status."""


class MalformedResponseError(WebDAVError):
    """Empty body or XML that is not a usable multistatus document."""


def error_for_status(status: int, url: str) -> WebDAVError:
    if status == 401:
        return AuthenticationFailedError("authentication failed", url=url, status=status)
    if status == 404:
        return NotFoundError("not found", url=url, status=status)
    return ServerError(f"server returned error: {status}", url=url, status=status)
