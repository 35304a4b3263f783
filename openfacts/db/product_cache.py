"""Product record cache backed by SQLite."""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

from ..config import DEFAULT_CACHE_PATH
from ..models import ProductRecord
from .schema import ensure_schema

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProductCacheDB:
    """Caches resolved product records keyed by barcode.

    A record is served only while it is younger than ``max_age_days``
    (measured from its retrieval time). Stale rows are left in place and
    overwritten on the next ``put``.
    """

    def __init__(
        self,
        db_path: str | Path = DEFAULT_CACHE_PATH,
        max_age_days: int = 7,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._db_path = db_path
        self._max_age = timedelta(days=max_age_days)
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

    def get(self, barcode: str) -> ProductRecord | None:
        """Return the cached record if present and fresh."""
        conn = self._get_conn()
        row = conn.execute(
            "SELECT record_json FROM product_cache WHERE barcode = ?",
            (barcode,),
        ).fetchone()
        if row is None:
            return None

        try:
            record = ProductRecord.from_dict(json.loads(row["record_json"]))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding unreadable cache entry for %s: %s", barcode, e)
            return None

        if not record.is_fresh(self._max_age, now=self._clock()):
            logger.debug("Cache entry for %s is stale", barcode)
            return None
        return record

    def put(self, record: ProductRecord) -> None:
        """Insert or replace the cached record for its barcode."""
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO product_cache
               (barcode, product_type, language, record_json, retrieved_at)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(barcode) DO UPDATE SET
                 product_type=excluded.product_type,
                 language=excluded.language,
                 record_json=excluded.record_json,
                 retrieved_at=excluded.retrieved_at""",
            (
                record.barcode,
                record.product_type.value,
                record.language.code,
                json.dumps(record.to_dict(), ensure_ascii=False),
                record.retrieved_at.isoformat(),
            ),
        )
        conn.commit()

    def clear(self) -> int:
        """Delete every cached record. Returns the number removed."""
        conn = self._get_conn()
        cursor = conn.execute("DELETE FROM product_cache")
        conn.commit()
        return cursor.rowcount

    def stats(self) -> dict:
        """Entry counts, overall and per product type, plus freshness."""
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT product_type, retrieved_at FROM product_cache"
        ).fetchall()

        now = self._clock()
        by_type: dict[str, int] = {}
        fresh = 0
        for row in rows:
            by_type[row["product_type"]] = by_type.get(row["product_type"], 0) + 1
            if now - datetime.fromisoformat(row["retrieved_at"]) <= self._max_age:
                fresh += 1

        return {
            "path": str(Path(self._db_path).expanduser()),
            "total": len(rows),
            "fresh": fresh,
            "stale": len(rows) - fresh,
            "by_type": by_type,
            "max_age_days": self._max_age.days,
        }
