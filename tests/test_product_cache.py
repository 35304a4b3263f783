"""Tests for the SQLite product cache."""

import json
from datetime import datetime, timedelta, timezone

from openfacts.db.product_cache import ProductCacheDB
from openfacts.db.schema import _SCHEMA_VERSION, ensure_schema
from openfacts.languages import Language
from openfacts.models import ProductRecord, ProductType

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)


def _db(tmp_path, max_age_days=7, now=NOW):
    return ProductCacheDB(tmp_path / "cache" / "products.db", max_age_days, clock=lambda: now)


def _record(barcode="3017624010701", age=timedelta(0), **kwargs):
    return ProductRecord(barcode=barcode, name="Nutella", retrieved_at=NOW - age, **kwargs)


def test_ensure_schema_creates_tables(tmp_path):
    conn = ensure_schema(tmp_path / "sub" / "test.db")
    tables = {
        row["name"]
        for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    }
    assert {"product_cache", "schema_version"} <= tables
    row = conn.execute("SELECT version FROM schema_version").fetchone()
    assert row["version"] == _SCHEMA_VERSION
    conn.close()


def test_ensure_schema_idempotent(tmp_path):
    ensure_schema(tmp_path / "test.db").close()
    conn = ensure_schema(tmp_path / "test.db")
    assert conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0] == 1
    conn.close()


def test_put_and_get(tmp_path):
    db = _db(tmp_path)
    record = _record(language=Language.FRENCH, allergens=["milk"])
    db.put(record)

    cached = db.get("3017624010701")
    assert cached == record
    db.close()


def test_get_missing(tmp_path):
    db = _db(tmp_path)
    assert db.get("0000000000000") is None
    db.close()


def test_stale_entries_are_not_served(tmp_path):
    db = _db(tmp_path, max_age_days=7)
    db.put(_record(age=timedelta(days=8)))
    assert db.get("3017624010701") is None
    db.close()


def test_put_replaces_existing(tmp_path):
    db = _db(tmp_path)
    db.put(_record(age=timedelta(days=8)))
    db.put(ProductRecord(barcode="3017624010701", name="Nutella 2", retrieved_at=NOW))
    assert db.get("3017624010701").name == "Nutella 2"
    assert db.stats()["total"] == 1
    db.close()


def test_unreadable_entry_is_discarded(tmp_path):
    db = _db(tmp_path)
    db.put(_record())
    conn = db._get_conn()
    conn.execute(
        "UPDATE product_cache SET record_json = ? WHERE barcode = ?",
        (json.dumps({"name": "no barcode"}), "3017624010701"),
    )
    conn.commit()
    assert db.get("3017624010701") is None
    db.close()


def test_stats_and_clear(tmp_path):
    db = _db(tmp_path)
    db.put(_record("1111111111111"))
    db.put(_record("2222222222222", age=timedelta(days=30)))
    db.put(_record("3333333333333", product_type=ProductType.BEAUTY))

    stats = db.stats()
    assert stats["total"] == 3
    assert stats["fresh"] == 2
    assert stats["stale"] == 1
    assert stats["by_type"] == {"food": 2, "beauty": 1}
    assert stats["max_age_days"] == 7

    assert db.clear() == 3
    assert db.stats()["total"] == 0
    db.close()
