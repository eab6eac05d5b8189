"""Cache store interface and an in-memory implementation."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Iterable

from ..canon.models import CanonResult, now_ms


class CacheStore(ABC):
    """Key → classification map shared by all devices and requests."""

    @abstractmethod
    def get_many(self, keys: Iterable[str]) -> dict[str, CanonResult]:
        """Return cached results for the keys that are present.

        Missing keys are simply absent.  Hit counts for the returned keys are
        bumped on a best-effort basis.

        Raises:
            CacheReadError: If the lookup itself failed.
        """

    @abstractmethod
    def upsert_many(self, rows: Iterable[CanonResult]) -> None:
        """Insert or fully overwrite rows by key; last write wins.

        Raises:
            CacheWriteError: If the write failed.
        """


class MemoryCanonCache(CacheStore):
    """Process-local cache, mainly for tests and single-shot CLI runs."""

    def __init__(self) -> None:
        self._rows: dict[str, CanonResult] = {}
        self._hits: dict[str, int] = {}
        self._lock = threading.Lock()

    def get_many(self, keys: Iterable[str]) -> dict[str, CanonResult]:
        with self._lock:
            out = {}
            for k in keys:
                hit = self._rows.get(k)
                if hit is not None:
                    out[k] = hit.with_source("cache")
                    self._hits[k] = self._hits.get(k, 0) + 1
            return out

    def upsert_many(self, rows: Iterable[CanonResult]) -> None:
        with self._lock:
            for r in rows:
                prev = self._rows.get(r.key)
                updated = now_ms()
                if prev is not None and updated <= prev.updated_at:
                    updated = prev.updated_at + 1
                self._rows[r.key] = replace(r, updated_at=updated)
                self._hits.setdefault(r.key, 0)

    def hits(self, key: str) -> int:
        return self._hits.get(key, 0)

    def __len__(self) -> int:
        return len(self._rows)
