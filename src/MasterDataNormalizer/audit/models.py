"""Audit record models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Mapping, MutableMapping, Optional, Union

from pydantic import BaseModel, Field


class AuditActionType(str, Enum):
    """Audit actions emitted by the normalization engine."""

    STATE_MAPPING_UPDATE = "STATE_MAPPING_UPDATE"
    CITY_MAPPING_UPDATE = "CITY_MAPPING_UPDATE"
    STATE_MAPPING_AUTO_SELECT = "STATE_MAPPING_AUTO_SELECT"
    CITY_MAPPING_AUTO_SELECT = "CITY_MAPPING_AUTO_SELECT"


def mapping_update_action(category: str) -> str:
    """Return the action type recorded when ``category`` mappings are committed."""

    return f"{category.strip().upper()}_MAPPING_UPDATE"


def mapping_auto_select_action(category: str) -> str:
    return f"{category.strip().upper()}_MAPPING_AUTO_SELECT"


def _default_session_id() -> str:
    return f"session_{uuid.uuid4().hex[:12]}"


class AuditContext(BaseModel):
    """Identity of the operator performing an audited change."""

    user_id: str = "anonymous"
    user_email: str = "anonymous@example.com"
    session_id: str = Field(default_factory=_default_session_id)


@dataclass(frozen=True, slots=True)
class ChangeEntry:
    """One underlying row-level change inside a batch audit record."""

    record_identifier: str
    old_value: Optional[str]
    new_value: Optional[str]
    confidence: Optional[int] = None
    auto_selected: bool = False
    status: str = "success"

    def to_dict(self) -> MutableMapping[str, object]:
        data: MutableMapping[str, object] = {
            "record_identifier": self.record_identifier,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "auto_selected": self.auto_selected,
            "status": self.status,
        }
        if self.confidence is not None:
            data["confidence"] = self.confidence
        return data

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ChangeEntry":
        confidence = raw.get("confidence")
        return cls(
            record_identifier=str(raw["record_identifier"]),
            old_value=raw.get("old_value"),
            new_value=raw.get("new_value"),
            confidence=int(confidence) if confidence is not None else None,
            auto_selected=bool(raw.get("auto_selected", False)),
            status=str(raw.get("status", "success")),
        )


@dataclass(frozen=True, slots=True)
class SingleChangeMetadata:
    """Free-form attributes attached to a single-row audit record."""

    kind: ClassVar[str] = "single"
    attributes: Mapping[str, object] = field(default_factory=dict)

    def to_dict(self) -> MutableMapping[str, object]:
        return dict(self.attributes)


@dataclass(frozen=True, slots=True)
class BatchChangeMetadata:
    """Itemized changes plus attributes attached to a batch audit record."""

    kind: ClassVar[str] = "batch"
    changes: tuple[ChangeEntry, ...] = field(default_factory=tuple)
    attributes: Mapping[str, object] = field(default_factory=dict)

    @property
    def batch_size(self) -> int:
        return len(self.changes)

    def to_dict(self) -> MutableMapping[str, object]:
        data: MutableMapping[str, object] = dict(self.attributes)
        data["changes"] = [change.to_dict() for change in self.changes]
        data["batch_size"] = self.batch_size
        return data


AuditMetadata = Union[SingleChangeMetadata, BatchChangeMetadata]


def metadata_from_dict(raw: Mapping[str, Any] | None) -> AuditMetadata:
    """Rebuild typed metadata from its serialized form."""

    data = dict(raw or {})
    if "changes" in data:
        changes = tuple(ChangeEntry.from_dict(change) for change in data.pop("changes") or [])
        data.pop("batch_size", None)
        return BatchChangeMetadata(changes=changes, attributes=data)
    return SingleChangeMetadata(attributes=data)


@dataclass(frozen=True, slots=True)
class AuditRecord:
    """Immutable audit log entry."""

    action_type: str
    table_name: str
    changed_by: str
    user_email: str
    session_id: str
    record_id: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    transaction_id: Optional[str] = None
    metadata: AuditMetadata = field(default_factory=SingleChangeMetadata)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.action_type, Enum):
            object.__setattr__(self, "action_type", self.action_type.value)

    @property
    def is_batch(self) -> bool:
        return isinstance(self.metadata, BatchChangeMetadata)

    @property
    def changes(self) -> tuple[ChangeEntry, ...]:
        if isinstance(self.metadata, BatchChangeMetadata):
            return self.metadata.changes
        return tuple()

    def touches(self, record_id: str) -> bool:
        """Return whether this record covers ``record_id`` directly or through a batch."""

        if self.record_id == record_id:
            return True
        return any(change.record_identifier == record_id for change in self.changes)

    def to_dict(self) -> MutableMapping[str, object]:
        return {
            "id": self.id,
            "action_type": self.action_type,
            "table_name": self.table_name,
            "record_id": self.record_id,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "changed_by": self.changed_by,
            "user_email": self.user_email,
            "session_id": self.session_id,
            "transaction_id": self.transaction_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "AuditRecord":
        timestamp = raw.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        if isinstance(timestamp, datetime) and timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            id=raw.get("id"),
            action_type=str(raw["action_type"]),
            table_name=str(raw["table_name"]),
            record_id=raw.get("record_id"),
            old_value=raw.get("old_value"),
            new_value=raw.get("new_value"),
            changed_by=str(raw.get("changed_by", "")),
            user_email=str(raw.get("user_email", "")),
            session_id=str(raw.get("session_id", "")),
            transaction_id=raw.get("transaction_id"),
            metadata=metadata_from_dict(raw.get("metadata")),
            timestamp=timestamp or datetime.now(timezone.utc),
        )


@dataclass(frozen=True, slots=True)
class AuditStatistics:
    """Aggregate view over a set of audit records."""

    total_logs: int
    counts_by_action_type: Mapping[str, int]
    counts_by_table_name: Mapping[str, int]
    recent_activity: tuple[AuditRecord, ...]
    earliest: Optional[datetime]
    latest: Optional[datetime]

    @property
    def time_range(self) -> tuple[Optional[datetime], Optional[datetime]]:
        return (self.earliest, self.latest)


__all__ = [
    "AuditActionType",
    "AuditContext",
    "AuditMetadata",
    "AuditRecord",
    "AuditStatistics",
    "BatchChangeMetadata",
    "ChangeEntry",
    "SingleChangeMetadata",
    "mapping_auto_select_action",
    "mapping_update_action",
    "metadata_from_dict",
]
