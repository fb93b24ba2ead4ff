from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

from kiosk_media.cache.utils import atomic_write_json

logger = logging.getLogger(__name__)


class CacheBudget:
    """
    The cache byte budget, persisted as a small JSON file.

    Read-mostly: eviction reads `value` once per pass, so an update becomes
    effective no later than the next pass.
    """

    def __init__(self, path: str | Path, *, default_bytes: int) -> None:
        self._path = Path(path)
        self._default = int(default_bytes)
        self._lock = threading.Lock()
        self._value = self._load()

    @property
    def value(self) -> int:
        return self._value

    def set(self, size_bytes: int) -> None:
        size = int(size_bytes)
        if size <= 0:
            raise ValueError(f"Cache budget must be positive, got: {size_bytes}")
        with self._lock:
            atomic_write_json(self._path, {"max_bytes": size})
            self._value = size
        logger.info("cache.budget_updated bytes=%d path=%s", size, self._path)

    def _load(self) -> int:
        if not self._path.exists():
            return self._default
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
            value = int(payload["max_bytes"])
        except (OSError, ValueError, KeyError, TypeError):
            logger.exception("Failed to read cache budget file, using default. path=%s", self._path)
            return self._default
        if value <= 0:
            logger.warning("cache.budget_invalid value=%s path=%s", value, self._path)
            return self._default
        return value
