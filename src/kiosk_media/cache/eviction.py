from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from kiosk_media.cache.byte_store import ByteStore, StoredEntry
from kiosk_media.cache.utils import format_bytes

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EvictionResult:
    size_before: int
    budget: int
    target: int
    deleted_keys: list[str] = field(default_factory=list)
    failed_keys: list[str] = field(default_factory=list)
    freed_bytes: int = 0

    @property
    def size_after(self) -> int:
        return self.size_before - self.freed_bytes


class EvictionPolicy:
    """
    Least-recently-used eviction over a directory listing.

    Nothing happens while the total is within budget. Once over, entries are
    removed oldest mtime first until the total is at or below
    `budget * numerator // denominator` (90% by default), which leaves headroom
    so the next write does not immediately trigger another pass.
    """

    def __init__(self, *, target_numerator: int = 9, target_denominator: int = 10) -> None:
        if target_denominator <= 0 or not 0 < target_numerator <= target_denominator:
            raise ValueError("Eviction target must be a fraction in (0, 1].")
        self._numerator = target_numerator
        self._denominator = target_denominator

    def target_for(self, budget: int) -> int:
        return budget * self._numerator // self._denominator

    def plan(self, entries: Sequence[StoredEntry], current_size: int, budget: int) -> list[StoredEntry]:
        if current_size <= budget:
            return []
        target = self.target_for(budget)
        planned: list[StoredEntry] = []
        deleted = 0
        for entry in sorted(entries, key=lambda e: e.mtime):
            if current_size - deleted <= target:
                break
            planned.append(entry)
            deleted += entry.size
        return planned

    def enforce(self, store: ByteStore, budget: int) -> EvictionResult:
        """
        Run one eviction pass against a fresh enumeration of `store`.

        A file that cannot be deleted is logged and skipped; its bytes do not
        count as freed, so the walk continues to the next-oldest entry.
        """
        entries = store.enumerate()
        current_size = sum(entry.size for entry in entries)
        result = EvictionResult(size_before=current_size, budget=budget, target=self.target_for(budget))
        if current_size <= budget:
            return result

        logger.info(
            "cache.eviction_start size=%s budget=%s entries=%d",
            format_bytes(current_size),
            format_bytes(budget),
            len(entries),
        )
        for entry in sorted(entries, key=lambda e: e.mtime):
            if current_size - result.freed_bytes <= result.target:
                break
            try:
                store.path_for(entry.key).unlink()
            except FileNotFoundError:
                # Already gone; its bytes are no longer on disk either way.
                result.freed_bytes += entry.size
                continue
            except OSError as e:
                logger.warning("cache.eviction_delete_failed key=%s error=%s", entry.key, e)
                result.failed_keys.append(entry.key)
                continue
            result.deleted_keys.append(entry.key)
            result.freed_bytes += entry.size

        logger.info(
            "cache.eviction_done freed=%s deleted=%d failed=%d size_after=%s",
            format_bytes(result.freed_bytes),
            len(result.deleted_keys),
            len(result.failed_keys),
            format_bytes(result.size_after),
        )
        return result
