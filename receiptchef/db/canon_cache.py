"""Classification cache backed by SQLite."""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Iterable

from ..canon.models import CanonResult, now_ms
from ..errors import CacheReadError, CacheWriteError
from .schema import ensure_schema
from .store import CacheStore

logger = logging.getLogger(__name__)

# Stay under SQLite's default host-parameter limit
_CHUNK = 500


def _chunks(items: list[str], size: int = _CHUNK):
    for i in range(0, len(items), size):
        yield items[i:i + size]


class SQLiteCanonCache(CacheStore):
    """Caches classifier results by normalized key to avoid repeated LLM calls."""

    def __init__(
        self, db_path: str | Path = "~/.config/receiptchef/canon_cache.db"
    ) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path, check_same_thread=False)
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def get_many(self, keys: Iterable[str]) -> dict[str, CanonResult]:
        wanted = list(dict.fromkeys(keys))
        if not wanted:
            return {}

        out: dict[str, CanonResult] = {}
        with self._lock:
            try:
                conn = self._get_conn()
                for chunk in _chunks(wanted):
                    marks = ",".join("?" * len(chunk))
                    rows = conn.execute(
                        f"SELECT * FROM canon_cache WHERE key IN ({marks})", chunk
                    ).fetchall()
                    for row in rows:
                        out[row["key"]] = _row_to_result(row)
            except (sqlite3.Error, OSError) as e:
                raise CacheReadError(f"canon_cache read failed: {e}") from e

        if out:
            self._bump_hits(list(out))
        return out

    def _bump_hits(self, keys: list[str]) -> None:
        """Increment hit counters; losing an increment is acceptable.

        Never waits for the lock: if another reader or writer holds it, this
        round of increments is dropped.
        """
        if not self._lock.acquire(blocking=False):
            logger.debug("canon_cache busy; skipped hit count for %d keys", len(keys))
            return
        try:
            conn = self._get_conn()
            for chunk in _chunks(keys):
                marks = ",".join("?" * len(chunk))
                conn.execute(
                    f"UPDATE canon_cache SET hits = hits + 1 WHERE key IN ({marks})",
                    chunk,
                )
            conn.commit()
        except sqlite3.Error:
            logger.warning("canon_cache hit count update failed", exc_info=True)
        finally:
            self._lock.release()

    def upsert_many(self, rows: Iterable[CanonResult]) -> None:
        params = [
            (
                r.key,
                r.canonical_name,
                r.status,
                r.kind,
                r.ingredient_type,
                r.confidence,
                r.source,
                now_ms(),
            )
            for r in rows
        ]
        if not params:
            return

        with self._lock:
            try:
                conn = self._get_conn()
                conn.executemany(
                    """INSERT INTO canon_cache
                       (key, canonical_name, status, kind, ingredient_type,
                        confidence, source, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                       ON CONFLICT(key) DO UPDATE SET
                         canonical_name=excluded.canonical_name,
                         status=excluded.status,
                         kind=excluded.kind,
                         ingredient_type=excluded.ingredient_type,
                         confidence=excluded.confidence,
                         source=excluded.source,
                         updated_at=MAX(excluded.updated_at, canon_cache.updated_at + 1)""",
                    params,
                )
                conn.commit()
            except (sqlite3.Error, OSError) as e:
                raise CacheWriteError(f"canon_cache write failed: {e}") from e

    def get_row(self, key: str) -> dict | None:
        """Return the raw row for *key* (including ``hits``), or None."""
        with self._lock:
            row = self._get_conn().execute(
                "SELECT * FROM canon_cache WHERE key = ?", (key,)
            ).fetchone()
        return dict(row) if row else None

    def stats(self) -> dict:
        """Row count, total hits and per-status counts."""
        with self._lock:
            conn = self._get_conn()
            total = conn.execute(
                "SELECT COUNT(*) AS n, COALESCE(SUM(hits), 0) AS hits FROM canon_cache"
            ).fetchone()
            by_status = conn.execute(
                "SELECT status, COUNT(*) AS n FROM canon_cache GROUP BY status"
            ).fetchall()
        return {
            "rows": total["n"],
            "hits": total["hits"],
            "by_status": {r["status"]: r["n"] for r in by_status},
        }

    def clear(self) -> int:
        """Delete every cached row. Returns the number of rows removed."""
        with self._lock:
            conn = self._get_conn()
            cur = conn.execute("DELETE FROM canon_cache")
            conn.commit()
        return cur.rowcount


def _row_to_result(row: sqlite3.Row) -> CanonResult:
    return CanonResult(
        key=row["key"],
        canonical_name=row["canonical_name"],
        status=row["status"],
        kind=row["kind"],
        ingredient_type=row["ingredient_type"],
        confidence=row["confidence"],
        updated_at=row["updated_at"],
        source="cache",
    )
