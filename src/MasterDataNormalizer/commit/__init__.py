"""Public API for the bulk commit module."""

from .store import DuckDBRecordStore, InMemoryRecordStore, RecordStore, Row
from .transaction import STATUS_FAILED, STATUS_SUCCESS, BulkCommitTransaction, CommitResult, MappingOutcome

__all__ = [
    "BulkCommitTransaction",
    "CommitResult",
    "DuckDBRecordStore",
    "InMemoryRecordStore",
    "MappingOutcome",
    "RecordStore",
    "Row",
    "STATUS_FAILED",
    "STATUS_SUCCESS",
]
