from __future__ import annotations

from typing import Optional

from kiosk_media.media.kinds import extension_of, kind_for_extension
from kiosk_media.media.models import MediaKind


def classify(content_type: str, href: str) -> Optional[MediaKind]:
    """
    Decide whether a remote file is an image, a video, or neither.

    The content type wins when it mentions `image` or `video`; otherwise the
    extension whitelist decides. Anything else returns None and is dropped.
    """
    lowered = content_type.lower()
    if "image" in lowered:
        return "image"
    if "video" in lowered:
        return "video"
    return kind_for_extension(extension_of(href))
