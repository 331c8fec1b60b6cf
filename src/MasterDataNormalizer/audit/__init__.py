"""Public API for the audit module."""

from .models import (
    AuditActionType,
    AuditContext,
    AuditMetadata,
    AuditRecord,
    AuditStatistics,
    BatchChangeMetadata,
    ChangeEntry,
    SingleChangeMetadata,
    mapping_auto_select_action,
    mapping_update_action,
)
from .storage import DuckDBAuditTrail
from .trail import AuditTrail, InMemoryAuditTrail

__all__ = [
    "AuditActionType",
    "AuditContext",
    "AuditMetadata",
    "AuditRecord",
    "AuditStatistics",
    "AuditTrail",
    "BatchChangeMetadata",
    "ChangeEntry",
    "DuckDBAuditTrail",
    "InMemoryAuditTrail",
    "SingleChangeMetadata",
    "mapping_auto_select_action",
    "mapping_update_action",
]
