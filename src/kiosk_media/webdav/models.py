from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Mapping, Optional

ConnectionFailure = Literal["authentication", "not_found", "server", "network"]


@dataclass(frozen=True, slots=True)
class RemoteResource:
    href: str
    content_type: str = ""
    last_modified: Optional[datetime] = None
    is_collection: bool = False

    @property
    def is_directory(self) -> bool:
        if self.is_collection:
            return True
        lowered = self.content_type.lower()
        if "directory" in lowered or "collection" in lowered:
            return True
        return self.href.endswith("/")


@dataclass(frozen=True, slots=True)
class ConnectionResult:
    ok: bool
    message: Optional[str] = None
    failure: Optional[ConnectionFailure] = None
    status: Optional[int] = None


@dataclass(frozen=True, slots=True)
class AuthenticatedRequest:
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    method: str = "GET"
