from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Optional


class BoundedMemoryCache:
    """
    In-memory LRU bounded by entry count and by total cost in bytes.

    Acceleration only: anything here may vanish at any time, and the disk
    cache stays authoritative. Entries larger than the cost limit are not kept.
    """

    def __init__(self, *, count_limit: int, cost_limit: int) -> None:
        self._count_limit = max(1, int(count_limit))
        self._cost_limit = max(1, int(cost_limit))
        self._data: OrderedDict[str, bytes] = OrderedDict()
        self._cost = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    @property
    def total_cost(self) -> int:
        return self._cost

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            value = self._data.get(key)
            if value is None:
                return None
            self._data.move_to_end(key)
            return value

    def put(self, key: str, value: bytes) -> None:
        cost = len(value)
        with self._lock:
            self._remove_locked(key)
            if cost > self._cost_limit:
                return
            self._data[key] = value
            self._cost += cost
            while len(self._data) > self._count_limit or self._cost > self._cost_limit:
                oldest_key = next(iter(self._data))
                self._remove_locked(oldest_key)

    def discard(self, key: str) -> None:
        with self._lock:
            self._remove_locked(key)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._cost = 0

    def _remove_locked(self, key: str) -> None:
        value = self._data.pop(key, None)
        if value is not None:
            self._cost -= len(value)
