from __future__ import annotations

import posixpath
from typing import Optional
from urllib.parse import unquote, urlsplit

from kiosk_media.media.models import MediaKind

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "heic", "heif"})
VIDEO_EXTENSIONS = frozenset({"mp4", "mov", "m4v", "avi", "mkv"})


def extension_of(href: str) -> str:
    path = unquote(urlsplit(href).path)
    return posixpath.splitext(path.rstrip("/"))[1].lstrip(".").lower()


def kind_for_extension(extension: str) -> Optional[MediaKind]:
    ext = extension.lower().lstrip(".")
    if ext in IMAGE_EXTENSIONS:
        return "image"
    if ext in VIDEO_EXTENSIONS:
        return "video"
    return None
