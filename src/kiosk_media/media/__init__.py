"""Media item model shared by the crawler, the cache and playback."""

from kiosk_media.media.kinds import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS, extension_of, kind_for_extension
from kiosk_media.media.models import MEDIA_KINDS, LocalAssetRef, MediaKind, UnifiedMediaItem

__all__ = [
    "IMAGE_EXTENSIONS",
    "LocalAssetRef",
    "MEDIA_KINDS",
    "MediaKind",
    "UnifiedMediaItem",
    "VIDEO_EXTENSIONS",
    "extension_of",
    "kind_for_extension",
]
