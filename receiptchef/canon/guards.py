"""Cost guards in front of the LLM classifier.

Two independent gates: a per-device daily request limiter and a per-request
item/character budget.

The limiter keeps its counters in process memory by default.  That does not
coordinate across several server instances; a shared :class:`CounterStore`
implementation is needed for that.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Sequence, TypeVar


def utc_today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


@dataclass
class RateLimitRecord:
    device_id: str
    day: str  # YYYY-MM-DD
    count: int


@dataclass(frozen=True)
class RateLimitDecision:
    ok: bool
    remaining: int


class CounterStore(ABC):
    """Storage for per-device daily counters."""

    @abstractmethod
    def get(self, device_id: str) -> RateLimitRecord | None: ...

    @abstractmethod
    def put(self, record: RateLimitRecord) -> None: ...


class InMemoryCounterStore(CounterStore):
    def __init__(self) -> None:
        self._records: dict[str, RateLimitRecord] = {}

    def get(self, device_id: str) -> RateLimitRecord | None:
        return self._records.get(device_id)

    def put(self, record: RateLimitRecord) -> None:
        self._records[record.device_id] = record

    def clear(self) -> None:
        self._records.clear()


class DailyRateLimiter:
    """Allow at most ``max_per_day`` classifier batches per device per day."""

    def __init__(
        self,
        store: CounterStore | None = None,
        today: Callable[[], str] = utc_today,
    ) -> None:
        self._store = store if store is not None else InMemoryCounterStore()
        self._today = today
        self._lock = threading.Lock()

    def check(self, device_id: str, max_per_day: int) -> RateLimitDecision:
        """Count one request for *device_id* and say whether it may proceed."""
        day = self._today()
        with self._lock:
            cur = self._store.get(device_id)

            if cur is None or cur.day != day:
                self._store.put(RateLimitRecord(device_id=device_id, day=day, count=1))
                return RateLimitDecision(ok=True, remaining=max(max_per_day - 1, 0))

            if cur.count >= max_per_day:
                return RateLimitDecision(ok=False, remaining=0)

            cur.count += 1
            self._store.put(cur)
            return RateLimitDecision(ok=True, remaining=max_per_day - cur.count)


T = TypeVar("T")


def enforce_budget(
    items: Sequence[T],
    max_items: float,
    max_chars: int,
    text_of: Callable[[T], str] = lambda it: it.text,  # type: ignore[attr-defined]
) -> tuple[list[T], int]:
    """Take items in order until the item or character budget would be exceeded.

    The first item that would break either cap ends the round; it and every
    item after it are left out.

    Returns:
        ``(trimmed, chars_used)``
    """
    trimmed: list[T] = []
    chars = 0
    for it in items:
        if len(trimmed) >= max_items:
            break
        add = len(text_of(it))
        if chars + add > max_chars:
            break
        trimmed.append(it)
        chars += add
    return trimmed, chars
