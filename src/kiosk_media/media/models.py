from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional

MediaKind = Literal["image", "video", "live_photo"]
MEDIA_KINDS: tuple[MediaKind, ...] = ("image", "video", "live_photo")


@dataclass(frozen=True, slots=True)
class LocalAssetRef:
    """Opaque handle to an asset owned by the on-device photo library."""

    identifier: str


@dataclass(frozen=True, slots=True)
class UnifiedMediaItem:
    """
    One playable unit handed to the slideshow.

    Exactly one of `local_asset`, `remote_url` or `cached_path` is set. `kind`
    is decided once, when the item is built, and never re-derived.
    """

    id: str
    kind: MediaKind
    creation_date: Optional[datetime] = None
    local_asset: Optional[LocalAssetRef] = None
    remote_url: Optional[str] = None
    cached_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.kind not in MEDIA_KINDS:
            raise ValueError(f"Unknown media kind: {self.kind!r}")
        locators = [self.local_asset, self.remote_url, self.cached_path]
        populated = sum(1 for value in locators if value is not None)
        if populated != 1:
            raise ValueError(f"UnifiedMediaItem needs exactly one source locator, got {populated}. id={self.id}")

    @classmethod
    def from_remote(cls, url: str, kind: MediaKind, creation_date: Optional[datetime]) -> UnifiedMediaItem:
        return cls(id=url, kind=kind, creation_date=creation_date, remote_url=url)

    @classmethod
    def from_local_asset(
        cls, asset: LocalAssetRef, kind: MediaKind, creation_date: Optional[datetime]
    ) -> UnifiedMediaItem:
        return cls(id=asset.identifier, kind=kind, creation_date=creation_date, local_asset=asset)

    @classmethod
    def from_cached_file(cls, path: Path, kind: MediaKind, creation_date: Optional[datetime]) -> UnifiedMediaItem:
        return cls(id=str(path), kind=kind, creation_date=creation_date, cached_path=path)

    @property
    def is_remote(self) -> bool:
        return self.remote_url is not None
