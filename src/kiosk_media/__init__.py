"""Remote media synchronization and disk cache for kiosk slideshows."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kiosk_media.service import MediaSyncService

__all__ = ["MediaSyncService"]


def __getattr__(name: str):
    if name == "MediaSyncService":
        from kiosk_media.service import MediaSyncService as _MediaSyncService

        return _MediaSyncService
    raise AttributeError(name)
