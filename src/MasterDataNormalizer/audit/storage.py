"""DuckDB-backed durable audit trail."""

from __future__ import annotations

import json
import logging
from datetime import timezone
from pathlib import Path
from typing import Any, Optional, Sequence

import duckdb

from MasterDataNormalizer.exceptions import AuditWriteError

from .models import AuditRecord, AuditStatistics, ChangeEntry, metadata_from_dict
from .trail import DEFAULT_ACTIVITY_LIMIT, DEFAULT_HISTORY_LIMIT, RECENT_ACTIVITY_SIZE, AuditTrail

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id",
    "action_type",
    "table_name",
    "record_id",
    "old_value",
    "new_value",
    "changed_by",
    "user_email",
    "session_id",
    "transaction_id",
    "timestamp",
    "metadata",
)
_SELECT = ", ".join(_COLUMNS)


class DuckDBAuditTrail(AuditTrail):
    """Persists audit records to DuckDB tables ``audit_logs`` and ``audit_changes``."""

    def __init__(
        self,
        database: Path | str = ":memory:",
        *,
        connection: Optional[duckdb.DuckDBPyConnection] = None,
    ) -> None:
        if connection is None and str(database) != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        self._owns_connection = connection is None
        self._conn = connection if connection is not None else duckdb.connect(str(database))
        self._initialize()

    def _initialize(self) -> None:
        self._conn.execute("CREATE SEQUENCE IF NOT EXISTS audit_log_seq START 1")
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS audit_logs (
                seq BIGINT DEFAULT nextval('audit_log_seq'),
                id TEXT PRIMARY KEY,
                action_type TEXT NOT NULL,
                table_name TEXT NOT NULL,
                record_id TEXT,
                old_value TEXT,
                new_value TEXT,
                changed_by TEXT,
                user_email TEXT,
                session_id TEXT,
                transaction_id TEXT,
                timestamp TIMESTAMP NOT NULL,
                metadata TEXT
            )
            """
        )
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS audit_changes (
                audit_id TEXT NOT NULL,
                record_identifier TEXT NOT NULL
            )
            """
        )

    def _append(self, record: AuditRecord) -> None:
        timestamp = record.timestamp.astimezone(timezone.utc).replace(tzinfo=None)
        try:
            self._conn.execute("BEGIN TRANSACTION")
            self._conn.execute(
                f"INSERT INTO audit_logs ({_SELECT}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id,
                    record.action_type,
                    record.table_name,
                    record.record_id,
                    record.old_value,
                    record.new_value,
                    record.changed_by,
                    record.user_email,
                    record.session_id,
                    record.transaction_id,
                    timestamp,
                    json.dumps(record.metadata.to_dict(), ensure_ascii=False, default=str),
                ),
            )
            for change in record.changes:
                self._conn.execute(
                    "INSERT INTO audit_changes VALUES (?, ?)",
                    (record.id, change.record_identifier),
                )
            self._conn.execute("COMMIT")
        except duckdb.Error as exc:
            self._rollback()
            raise AuditWriteError(f"Failed to persist audit record {record.id}: {exc}") from exc

    def _rollback(self) -> None:
        try:
            self._conn.execute("ROLLBACK")
        except duckdb.Error:
            logger.debug("No open DuckDB transaction to roll back")

    def _fetch(self, sql: str, params: Sequence[Any] = ()) -> list[AuditRecord]:
        rows = self._conn.execute(sql, list(params)).fetchall()
        records = []
        for row in rows:
            raw = dict(zip(_COLUMNS, row))
            raw["metadata"] = json.loads(raw["metadata"]) if raw["metadata"] else {}
            records.append(AuditRecord.from_dict(raw))
        return records

    def get_history(
        self,
        table_name: str,
        record_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> tuple[AuditRecord, ...]:
        return tuple(
            self._fetch(
                f"""
                SELECT {_SELECT} FROM audit_logs
                WHERE table_name = ?
                  AND (
                    record_id = ?
                    OR id IN (SELECT audit_id FROM audit_changes WHERE record_identifier = ?)
                  )
                ORDER BY timestamp DESC, seq DESC
                LIMIT ?
                """,
                (table_name, record_id, record_id, max(limit, 0)),
            )
        )

    def get_batch_details(self, identifier: str) -> tuple[ChangeEntry, ...]:
        row = self._conn.execute(
            """
            SELECT metadata FROM audit_logs
            WHERE id = ? OR (transaction_id = ? AND record_id IS NULL)
            ORDER BY seq DESC
            LIMIT 1
            """,
            [identifier, identifier],
        ).fetchone()
        if row is None or not row[0]:
            return tuple()
        metadata = metadata_from_dict(json.loads(row[0]))
        return getattr(metadata, "changes", tuple())

    def get_user_activities(self, user_id: str, limit: int = DEFAULT_ACTIVITY_LIMIT) -> tuple[AuditRecord, ...]:
        return tuple(
            self._fetch(
                f"""
                SELECT {_SELECT} FROM audit_logs
                WHERE changed_by = ?
                ORDER BY timestamp DESC, seq DESC
                LIMIT ?
                """,
                (user_id, max(limit, 0)),
            )
        )

    def statistics(self, user_id: Optional[str] = None) -> AuditStatistics:
        where = "WHERE changed_by = ?" if user_id is not None else ""
        params: list[Any] = [user_id] if user_id is not None else []
        total, earliest, latest = self._conn.execute(
            f"SELECT count(*), min(timestamp), max(timestamp) FROM audit_logs {where}",
            params,
        ).fetchone()
        actions = self._conn.execute(
            f"SELECT action_type, count(*) FROM audit_logs {where} GROUP BY action_type",
            params,
        ).fetchall()
        tables = self._conn.execute(
            f"SELECT table_name, count(*) FROM audit_logs {where} GROUP BY table_name",
            params,
        ).fetchall()
        recent = self._fetch(
            f"SELECT {_SELECT} FROM audit_logs {where} ORDER BY timestamp DESC, seq DESC LIMIT ?",
            [*params, RECENT_ACTIVITY_SIZE],
        )
        return AuditStatistics(
            total_logs=int(total),
            counts_by_action_type={action: int(count) for action, count in actions},
            counts_by_table_name={table: int(count) for table, count in tables},
            recent_activity=tuple(recent),
            earliest=earliest.replace(tzinfo=timezone.utc) if earliest else None,
            latest=latest.replace(tzinfo=timezone.utc) if latest else None,
        )

    def clear(self) -> None:
        self._conn.execute("DELETE FROM audit_changes")
        self._conn.execute("DELETE FROM audit_logs")

    def close(self) -> None:
        if self._owns_connection:
            self._conn.close()


__all__ = ["DuckDBAuditTrail"]
