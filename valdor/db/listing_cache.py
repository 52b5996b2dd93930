"""Short-lived cache for API listings (categories, menu) backed by SQLite."""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .schema import ensure_schema

logger = logging.getLogger(__name__)


class ListingCache:
    """Caches listing responses so repeated CLI runs skip the network.

    Entries older than ``ttl_seconds`` read as misses. Writers that change
    server-side data call :meth:`invalidate` for the affected keys.
    """

    def __init__(
        self,
        db_path: str | Path = "~/.config/valdor/cache.db",
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db_path = db_path
        self._ttl = ttl_seconds
        self._clock = clock
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def get(self, key: str) -> Any | None:
        """Return the cached payload for a key, or None if missing or expired."""
        conn = self._get_conn()
        row = conn.execute(
            "SELECT payload_json, stored_at FROM listing_cache WHERE cache_key = ?",
            (key,),
        ).fetchone()
        if row is None:
            return None
        if self._clock() - row["stored_at"] > self._ttl:
            logger.debug("Cache entry %r expired", key)
            return None
        return json.loads(row["payload_json"])

    def put(self, key: str, payload: Any) -> None:
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO listing_cache (cache_key, payload_json, stored_at)
               VALUES (?, ?, ?)
               ON CONFLICT(cache_key) DO UPDATE SET
                 payload_json=excluded.payload_json,
                 stored_at=excluded.stored_at""",
            (key, json.dumps(payload, ensure_ascii=False), self._clock()),
        )
        conn.commit()

    def invalidate(self, *keys: str) -> None:
        conn = self._get_conn()
        conn.executemany(
            "DELETE FROM listing_cache WHERE cache_key = ?", [(k,) for k in keys]
        )
        conn.commit()
        logger.debug("Invalidated cache keys: %s", ", ".join(keys))

    def invalidate_all(self) -> None:
        conn = self._get_conn()
        conn.execute("DELETE FROM listing_cache")
        conn.commit()
