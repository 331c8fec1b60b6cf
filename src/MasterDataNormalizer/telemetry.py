"""Telemetry hooks for the normalization engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping


@dataclass(slots=True)
class NormalizationTelemetry:
    """Emits structured normalization events to the logging system."""

    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("MasterDataNormalizer.telemetry"))

    def emit_event(self, name: str, payload: Mapping[str, object], *, level: int = logging.INFO) -> None:
        self.logger.log(level, name, extra={"payload": dict(payload)})

    def record_batch_match(self, category: str, metrics: Mapping[str, float]) -> None:
        enriched = dict(metrics)
        total = metrics.get("total_processed", 0.0)
        selected = metrics.get("auto_selected", 0.0)
        enriched.setdefault("auto_select_rate", selected / total if total else 0.0)
        self.emit_event("normalization.batch_match", {"category": category, "metrics": enriched})

    def record_commit(
        self,
        *,
        category: str,
        transaction_id: str,
        attempted: int,
        failed: int,
        total_updated: int,
        audit_written: bool,
    ) -> None:
        self.emit_event(
            "normalization.commit",
            {
                "category": category,
                "transaction_id": transaction_id,
                "attempted": attempted,
                "failed": failed,
                "total_updated": total_updated,
                "audit_written": audit_written,
            },
        )

    def record_audit_failure(self, transaction_id: str, reason: str) -> None:
        self.emit_event(
            "normalization.audit_failure",
            {"transaction_id": transaction_id, "reason": reason},
            level=logging.WARNING,
        )


__all__ = ["NormalizationTelemetry"]
