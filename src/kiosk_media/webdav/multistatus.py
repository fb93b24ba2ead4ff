from __future__ import annotations

import logging
import xml.sax
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Optional
from xml.sax.handler import ContentHandler, feature_external_ges, feature_namespaces

from kiosk_media.webdav.errors import MalformedResponseError
from kiosk_media.webdav.models import RemoteResource

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("href", "getcontenttype", "getlastmodified")


def _local_name(qname: str) -> str:
    return qname.rsplit(":", 1)[-1].lower()


def parse_http_date(value: str) -> Optional[datetime]:
    """Parse an RFC 1123 date such as `Mon, 12 Dec 2025 10:00:00 GMT`; `None` if unparseable."""
    text = value.strip()
    if not text:
        return None
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None


class MultistatusHandler(ContentHandler):
    """
    Streaming handler for a WebDAV `multistatus` body.

    Elements are matched on their local name only, so any namespace prefix
    (`D:`, `d:`, `lp1:`, none) is accepted.
    """

    def __init__(self) -> None:
        super().__init__()
        self.resources: list[RemoteResource] = []
        self.finished = False
        self.skipped = 0
        self._text_field: Optional[str] = None
        self._reset()

    def _reset(self) -> None:
        self._buffers: dict[str, list[str]] = {name: [] for name in _TEXT_FIELDS}
        self._is_collection = False

    def startElement(self, name, attrs):  # noqa: N802
        local = _local_name(name)
        if local.endswith("response"):
            self._reset()
        elif local == "collection":
            self._is_collection = True
        self._text_field = next((f for f in _TEXT_FIELDS if local.endswith(f)), None)

    def characters(self, content):
        if self._text_field is not None:
            self._buffers[self._text_field].append(content)

    def endElement(self, name):  # noqa: N802
        local = _local_name(name)
        self._text_field = None
        if local.endswith("response"):
            href = "".join(self._buffers["href"]).strip()
            if not href:
                self.skipped += 1
                logger.debug("webdav.multistatus_skip_empty_href")
                return
            self.resources.append(
                RemoteResource(
                    href=href,
                    content_type="".join(self._buffers["getcontenttype"]).strip(),
                    last_modified=parse_http_date("".join(self._buffers["getlastmodified"])),
                    is_collection=self._is_collection,
                )
            )
        elif local.endswith("multistatus"):
            self.finished = True


def parse_multistatus(body: bytes) -> list[RemoteResource]:
    """
    Parse a PROPFIND response body into resources in document order.

    Raises MalformedResponseError for empty bodies, XML errors, or documents
    without a closing `multistatus` element, so callers never see a partial list.
    """
    if not body or not body.strip():
        raise MalformedResponseError("empty multistatus body")

    handler = MultistatusHandler()
    parser = xml.sax.make_parser()
    parser.setFeature(feature_namespaces, False)
    parser.setFeature(feature_external_ges, False)
    parser.setContentHandler(handler)
    try:
        parser.feed(body)
        parser.close()
    except xml.sax.SAXException as e:
        raise MalformedResponseError(f"invalid multistatus XML: {e}") from e

    if not handler.finished:
        raise MalformedResponseError("response has no multistatus element")
    return handler.resources
