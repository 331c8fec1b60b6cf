"""Append-only audit trail interface and in-memory implementation."""

from __future__ import annotations

import itertools
import logging
import uuid
from abc import ABC, abstractmethod
from collections import Counter, deque
from dataclasses import replace
from typing import Deque, Iterable, Optional, Sequence

from .models import AuditRecord, AuditStatistics, BatchChangeMetadata, ChangeEntry

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50
DEFAULT_ACTIVITY_LIMIT = 100
RECENT_ACTIVITY_SIZE = 10


def new_audit_id(prefix: str = "audit") -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


class AuditTrail(ABC):
    """Append-only log of changes and batch metadata.

    Writes complete synchronously: ``log_change`` and ``log_batch_change``
    return only once the record is stored, and raise ``AuditWriteError``
    otherwise.
    """

    def log_change(self, record: AuditRecord) -> str:
        """Append a single-row record, generating its id when absent."""

        stored = record if record.id else replace(record, id=new_audit_id("audit"))
        self._append(stored)
        logger.debug("Audit record %s appended (%s)", stored.id, stored.action_type)
        return stored.id  # type: ignore[return-value]

    def log_batch_change(self, record: AuditRecord) -> str:
        """Append a batch record covering many rows; ``record_id`` is always cleared."""

        metadata = record.metadata
        if not isinstance(metadata, BatchChangeMetadata):
            metadata = BatchChangeMetadata(changes=tuple(), attributes=metadata.to_dict())
        stored = replace(
            record,
            id=record.id or new_audit_id("batch_audit"),
            record_id=None,
            old_value=None,
            new_value=None,
            metadata=metadata,
        )
        self._append(stored)
        logger.debug(
            "Batch audit record %s appended (%s, %d changes)",
            stored.id,
            stored.action_type,
            metadata.batch_size,
        )
        return stored.id  # type: ignore[return-value]

    @staticmethod
    def generate_transaction_id() -> str:
        return f"txn_{uuid.uuid4().hex}"

    @abstractmethod
    def _append(self, record: AuditRecord) -> None:
        ...

    @abstractmethod
    def get_history(
        self,
        table_name: str,
        record_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> tuple[AuditRecord, ...]:
        """Records touching ``record_id`` in ``table_name``, newest first."""

    @abstractmethod
    def get_batch_details(self, identifier: str) -> tuple[ChangeEntry, ...]:
        """Itemized changes of the batch with audit id or transaction id ``identifier``."""

    @abstractmethod
    def get_user_activities(self, user_id: str, limit: int = DEFAULT_ACTIVITY_LIMIT) -> tuple[AuditRecord, ...]:
        ...

    @abstractmethod
    def statistics(self, user_id: Optional[str] = None) -> AuditStatistics:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


def summarize(records_newest_first: Sequence[AuditRecord]) -> AuditStatistics:
    """Build statistics from records already ordered newest first."""

    actions = Counter(record.action_type for record in records_newest_first)
    tables = Counter(record.table_name for record in records_newest_first)
    return AuditStatistics(
        total_logs=len(records_newest_first),
        counts_by_action_type=dict(actions),
        counts_by_table_name=dict(tables),
        recent_activity=tuple(records_newest_first[:RECENT_ACTIVITY_SIZE]),
        earliest=records_newest_first[-1].timestamp if records_newest_first else None,
        latest=records_newest_first[0].timestamp if records_newest_first else None,
    )


class InMemoryAuditTrail(AuditTrail):
    """Bounded ring buffer of audit records for tests and demos."""

    def __init__(self, capacity: int = 1000) -> None:
        if capacity <= 0:
            raise ValueError("Audit trail capacity must be positive")
        self._capacity = capacity
        self._records: Deque[tuple[int, AuditRecord]] = deque(maxlen=capacity)
        self._sequence = itertools.count()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._records)

    def _append(self, record: AuditRecord) -> None:
        self._records.append((next(self._sequence), record))

    def _newest_first(self, records: Optional[Iterable[tuple[int, AuditRecord]]] = None) -> list[AuditRecord]:
        rows = self._records if records is None else records
        ordered = sorted(rows, key=lambda item: (item[1].timestamp, item[0]), reverse=True)
        return [record for _, record in ordered]

    def records(self) -> tuple[AuditRecord, ...]:
        return tuple(self._newest_first())

    def get_history(
        self,
        table_name: str,
        record_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> tuple[AuditRecord, ...]:
        matches = [
            item
            for item in self._records
            if item[1].table_name == table_name and item[1].touches(record_id)
        ]
        return tuple(self._newest_first(matches)[: max(limit, 0)])

    def get_batch_details(self, identifier: str) -> tuple[ChangeEntry, ...]:
        for _, record in reversed(self._records):
            if record.id == identifier or (record.is_batch and record.transaction_id == identifier):
                return record.changes
        return tuple()

    def get_user_activities(self, user_id: str, limit: int = DEFAULT_ACTIVITY_LIMIT) -> tuple[AuditRecord, ...]:
        matches = [item for item in self._records if item[1].changed_by == user_id]
        return tuple(self._newest_first(matches)[: max(limit, 0)])

    def statistics(self, user_id: Optional[str] = None) -> AuditStatistics:
        records = self._newest_first()
        if user_id is not None:
            records = [record for record in records if record.changed_by == user_id]
        return summarize(records)

    def clear(self) -> None:
        self._records.clear()


__all__ = ["AuditTrail", "InMemoryAuditTrail", "new_audit_id", "summarize"]
