"""WebDAV protocol client (PROPFIND listing and authenticated GET)."""

from kiosk_media.webdav.client import WebDAVClient, basic_auth_header
from kiosk_media.webdav.errors import (
    AuthenticationFailedError,
    ConnectionFailedError,
    MalformedResponseError,
    NotFoundError,
    ServerError,
    WebDAVError,
)
from kiosk_media.webdav.models import AuthenticatedRequest, ConnectionResult, RemoteResource
from kiosk_media.webdav.multistatus import parse_multistatus

__all__ = [
    "AuthenticatedRequest",
    "AuthenticationFailedError",
    "ConnectionFailedError",
    "ConnectionResult",
    "MalformedResponseError",
    "NotFoundError",
    "RemoteResource",
    "ServerError",
    "WebDAVClient",
    "WebDAVError",
    "basic_auth_header",
    "parse_multistatus",
]
