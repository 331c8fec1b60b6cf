"""Tests for the bundled record stores."""

from __future__ import annotations

import duckdb
import pytest

from MasterDataNormalizer.commit import DuckDBRecordStore, InMemoryRecordStore
from MasterDataNormalizer.exceptions import StoreError


def test_in_memory_query_and_update(record_store: InMemoryRecordStore) -> None:
    assert len(record_store.query("creators", {"state": "U.P."})) == 2
    updated = record_store.update("creators", {"state": "U.P."}, {"state": "Uttar Pradesh"})
    assert updated == 2
    assert record_store.query("creators", {"state": "U.P."}) == []
    assert record_store.update("creators", {"state": "Nowhere"}, {"state": "Goa"}) == 0


def test_in_memory_query_returns_copies(record_store: InMemoryRecordStore) -> None:
    row = record_store.query("creators", {"id": 1})[0]
    row["state"] = "changed"
    assert record_store.query("creators", {"id": 1})[0]["state"] == "U.P."


def test_in_memory_update_requires_filter(record_store: InMemoryRecordStore) -> None:
    with pytest.raises(StoreError):
        record_store.update("creators", {}, {"state": "Goa"})


def test_in_memory_insert_creates_table() -> None:
    store = InMemoryRecordStore()
    assert store.insert("creators", [{"state": "Goa"}, {"state": "Kerala"}]) == 2
    assert len(store.query("creators", {})) == 2


@pytest.fixture
def duckdb_store(creator_rows):
    connection = duckdb.connect(":memory:")
    connection.execute("CREATE TABLE creators (id INTEGER, name TEXT, state TEXT, city TEXT)")
    store = DuckDBRecordStore(connection=connection)
    store.insert("creators", creator_rows)
    yield store
    store.close()
    connection.close()


def test_duckdb_update_reports_row_count(duckdb_store) -> None:
    assert duckdb_store.update("creators", {"state": "U.P."}, {"state": "Uttar Pradesh"}) == 2
    rows = duckdb_store.query("creators", {"state": "Uttar Pradesh"})
    assert sorted(row["id"] for row in rows) == [1, 6]


def test_duckdb_query_handles_null_filters(duckdb_store) -> None:
    rows = duckdb_store.query("creators", {"state": None})
    assert [row["name"] for row in rows] == ["Tara"]
    assert len(duckdb_store.query("creators", {})) == 7


def test_duckdb_rejects_unsafe_identifiers(duckdb_store) -> None:
    with pytest.raises(StoreError):
        duckdb_store.query("creators; DROP TABLE creators", {})
    with pytest.raises(StoreError):
        duckdb_store.update("creators", {"state": "U.P."}, {'state" = 1 --': "x"})


def test_duckdb_missing_table_is_store_error(duckdb_store) -> None:
    with pytest.raises(StoreError):
        duckdb_store.query("orders", {})
