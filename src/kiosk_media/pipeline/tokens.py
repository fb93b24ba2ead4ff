from __future__ import annotations

import itertools
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RequestToken:
    slot: str
    id: int


class LatestRequestGate:
    """
    Tracks the newest request per consumer slot.

    A consumer issues a token before starting a fetch and checks it when the
    fetch completes; only the newest token for a slot is current, so a result
    that arrives after the consumer moved on is dropped instead of displayed.
    The underlying network call is never cancelled.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._current: dict[str, int] = {}

    def issue(self, slot: str = "default") -> RequestToken:
        token = RequestToken(slot=slot, id=next(self._ids))
        self._current[slot] = token.id
        return token

    def is_current(self, token: RequestToken) -> bool:
        return self._current.get(token.slot) == token.id

    def invalidate(self, slot: str = "default") -> None:
        self._current.pop(slot, None)
