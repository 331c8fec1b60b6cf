"""Record store protocol and bundled implementations."""

from __future__ import annotations

import logging
import re
import threading
from copy import deepcopy
from pathlib import Path
from typing import Any, Iterable, Mapping, MutableMapping, Optional, Protocol, Sequence

import duckdb

from MasterDataNormalizer.exceptions import StoreError, StoreUnavailableError

logger = logging.getLogger(__name__)

Row = MutableMapping[str, Any]

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class RecordStore(Protocol):
    """Minimal persistence contract consumed by the commit transaction."""

    def query(self, table: str, filters: Mapping[str, Any]) -> list[Row]:  # pragma: no cover - protocol
        ...

    def update(self, table: str, filters: Mapping[str, Any], values: Mapping[str, Any]) -> int:  # pragma: no cover - protocol
        ...

    def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:  # pragma: no cover - protocol
        ...


def _matches(row: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
    return all(row.get(column) == value for column, value in filters.items())


class InMemoryRecordStore:
    """Dictionary-backed store used for tests and dry runs."""

    def __init__(self, tables: Optional[Mapping[str, Iterable[Mapping[str, Any]]]] = None) -> None:
        self._tables: dict[str, list[Row]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self._lock = threading.Lock()

    def query(self, table: str, filters: Mapping[str, Any]) -> list[Row]:
        with self._lock:
            rows = self._tables.get(table, [])
            return [deepcopy(row) for row in rows if _matches(row, filters)]

    def update(self, table: str, filters: Mapping[str, Any], values: Mapping[str, Any]) -> int:
        if not filters:
            raise StoreError("Refusing to update without a filter")
        with self._lock:
            updated = 0
            for row in self._tables.get(table, []):
                if _matches(row, filters):
                    row.update(values)
                    updated += 1
            return updated

    def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        with self._lock:
            target = self._tables.setdefault(table, [])
            target.extend(dict(row) for row in rows)
            return len(rows)


def _quote(identifier: str) -> str:
    if not _IDENTIFIER.match(identifier):
        raise StoreError(f"Invalid identifier: {identifier!r}")
    return f'"{identifier}"'


def _where(filters: Mapping[str, Any]) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    for column, value in filters.items():
        if value is None:
            clauses.append(f"{_quote(column)} IS NULL")
        else:
            clauses.append(f"{_quote(column)} = ?")
            params.append(value)
    if not clauses:
        return "", params
    return " WHERE " + " AND ".join(clauses), params


class DuckDBRecordStore:
    """Record store over a DuckDB database file."""

    def __init__(
        self,
        database: Path | str = ":memory:",
        *,
        connection: Optional[duckdb.DuckDBPyConnection] = None,
    ) -> None:
        self._owns_connection = connection is None
        try:
            self._conn = connection if connection is not None else duckdb.connect(str(database))
        except duckdb.Error as exc:
            raise StoreUnavailableError(f"Cannot open DuckDB database {database}: {exc}") from exc
        self._lock = threading.Lock()

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        return self._conn

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> duckdb.DuckDBPyConnection:
        try:
            return self._conn.execute(sql, list(params))
        except duckdb.ConnectionException as exc:
            raise StoreUnavailableError(str(exc)) from exc
        except duckdb.Error as exc:
            raise StoreError(str(exc)) from exc

    def query(self, table: str, filters: Mapping[str, Any]) -> list[Row]:
        where, params = _where(filters)
        with self._lock:
            cursor = self._execute(f"SELECT * FROM {_quote(table)}{where}", params)
            columns = [description[0] for description in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def update(self, table: str, filters: Mapping[str, Any], values: Mapping[str, Any]) -> int:
        if not filters:
            raise StoreError("Refusing to update without a filter")
        if not values:
            return 0
        assignments = ", ".join(f"{_quote(column)} = ?" for column in values)
        where, params = _where(filters)
        with self._lock:
            cursor = self._execute(
                f"UPDATE {_quote(table)} SET {assignments}{where}",
                [*values.values(), *params],
            )
            result = cursor.fetchone()
        return int(result[0]) if result else 0

    def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        if not rows:
            return 0
        columns = list(rows[0])
        placeholders = ", ".join("?" for _ in columns)
        column_sql = ", ".join(_quote(column) for column in columns)
        sql = f"INSERT INTO {_quote(table)} ({column_sql}) VALUES ({placeholders})"
        with self._lock:
            for row in rows:
                self._execute(sql, [row.get(column) for column in columns])
        return len(rows)

    def close(self) -> None:
        if self._owns_connection:
            self._conn.close()


__all__ = ["DuckDBRecordStore", "InMemoryRecordStore", "RecordStore", "Row"]
