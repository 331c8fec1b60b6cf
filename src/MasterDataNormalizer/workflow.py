"""Normalization workflow assembly."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from MasterDataNormalizer.audit.models import AuditContext, AuditRecord, BatchChangeMetadata, ChangeEntry
from MasterDataNormalizer.audit.trail import AuditTrail
from MasterDataNormalizer.commit.store import RecordStore
from MasterDataNormalizer.commit.transaction import BulkCommitTransaction, CommitResult
from MasterDataNormalizer.config import CategoryConfig, EngineConfig
from MasterDataNormalizer.exceptions import AuditWriteError, ValidationError
from MasterDataNormalizer.matching.matcher import Matcher, partition_compound_labels
from MasterDataNormalizer.matching.models import HIGH_CONFIDENCE, BatchMatchResult
from MasterDataNormalizer.session.models import MappingEntry
from MasterDataNormalizer.session.session import MISSING_MAPPING_ERROR, MappingSession
from MasterDataNormalizer.telemetry import NormalizationTelemetry

logger = logging.getLogger(__name__)

AUTO_SELECT_STATUS = "proposed"


@dataclass(frozen=True, slots=True)
class AutoSelectReport:
    """Summary of one auto-select pass."""

    applied: int
    excluded_labels: tuple[str, ...]
    batch: BatchMatchResult
    audit_id: Optional[str] = None

    @property
    def excluded(self) -> int:
        return len(self.excluded_labels)


@dataclass(slots=True)
class NormalizationWorkflow:
    """Coordinates discovery, matching, review and commit for one category."""

    category: CategoryConfig
    store: RecordStore
    audit_trail: AuditTrail
    matcher: Matcher
    transaction: BulkCommitTransaction
    session: MappingSession = field(default_factory=MappingSession)
    auto_select_threshold: int = HIGH_CONFIDENCE
    telemetry: NormalizationTelemetry | None = None

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        category_name: str,
        *,
        store: RecordStore,
        audit_trail: AuditTrail,
        telemetry: NormalizationTelemetry | None = None,
    ) -> "NormalizationWorkflow":
        category = config.category(category_name)
        matcher = Matcher(
            canonical_set=category.canonical_set(),
            abbreviations=category.abbreviation_table(),
            compound_separators=config.compound_separators,
            max_workers=config.match_workers,
        )
        transaction = BulkCommitTransaction(
            store,
            audit_trail,
            category,
            telemetry=telemetry,
            max_workers=config.commit_workers,
            item_timeout=config.store_timeout_seconds,
            audit_attempts=config.audit_attempts,
        )
        return cls(
            category=category,
            store=store,
            audit_trail=audit_trail,
            matcher=matcher,
            transaction=transaction,
            auto_select_threshold=config.auto_select_threshold,
            telemetry=telemetry,
        )

    def discover_raw_labels(self) -> tuple[str, ...]:
        """Distinct non-blank column values that are not already canonical."""

        canonical = self.matcher.canonical_set
        seen: dict[str, None] = {}
        for row in self.store.query(self.category.table_name, {}):
            value = row.get(self.category.column)
            if not isinstance(value, str) or not value.strip():
                continue
            if value in canonical or value in seen:
                continue
            seen[value] = None
        logger.info(
            "Discovered %d raw %s labels in %s",
            len(seen),
            self.category.name,
            self.category.table_name,
        )
        return tuple(seen)

    def start_session(self, raw_labels: Optional[Iterable[str]] = None) -> MappingSession:
        labels = self.discover_raw_labels() if raw_labels is None else raw_labels
        self.session.initialize(labels)
        if self.telemetry:
            self.telemetry.emit_event(
                "normalization.session_started",
                {"category": self.category.name, "raw_labels": len(self.session)},
            )
        return self.session

    def auto_select(
        self,
        *,
        audit_context: Optional[AuditContext] = None,
        threshold: Optional[int] = None,
    ) -> AutoSelectReport:
        """Match unmapped labels and accept confident results into the session.

        Labels containing a compound separator are left for manual review.
        When ``audit_context`` is given the accepted proposals are recorded as
        one batch audit entry; a failed write is logged and otherwise ignored.
        """

        cutoff = self.auto_select_threshold if threshold is None else threshold
        unmapped = [label for label in self.session.raw_labels if not self.session.entry(label).is_mapped]
        eligible, excluded = partition_compound_labels(unmapped, self.matcher.compound_separators)
        batch = self.matcher.batch_match(eligible, confidence_threshold=cutoff)
        applied = self.session.auto_select_high_confidence(batch.selected_results(), cutoff)
        if excluded:
            logger.info("Skipped %d compound %s labels", len(excluded), self.category.name)
        if self.telemetry:
            self.telemetry.record_batch_match(
                self.category.name,
                {
                    "total_processed": float(batch.total_processed),
                    "auto_selected": float(applied),
                    "high_confidence": float(batch.high_confidence),
                    "medium_confidence": float(batch.medium_confidence),
                    "low_confidence": float(batch.low_confidence),
                    "excluded": float(len(excluded)),
                },
            )

        audit_id = None
        if audit_context is not None and applied:
            audit_id = self._log_auto_select(batch, audit_context, cutoff)
        return AutoSelectReport(applied=applied, excluded_labels=excluded, batch=batch, audit_id=audit_id)

    def _log_auto_select(self, batch: BatchMatchResult, audit_context: AuditContext, threshold: int) -> Optional[str]:
        changes = tuple(
            ChangeEntry(
                record_identifier=result.raw_label,
                old_value=result.raw_label,
                new_value=result.canonical_label,
                confidence=result.confidence,
                auto_selected=True,
                status=AUTO_SELECT_STATUS,
            )
            for result in batch.selected_results()
        )
        record = AuditRecord(
            action_type=self.category.auto_select_action,
            table_name=self.category.table_name,
            changed_by=audit_context.user_id,
            user_email=audit_context.user_email,
            session_id=audit_context.session_id,
            metadata=BatchChangeMetadata(
                changes=changes,
                attributes={"category": self.category.name, "threshold": threshold},
            ),
        )
        try:
            return self.audit_trail.log_batch_change(record)
        except AuditWriteError as exc:
            logger.warning("Auto-select audit for %s not written: %s", self.category.name, exc)
            return None

    def save(
        self,
        audit_context: AuditContext,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> CommitResult:
        """Validate the session, commit its mappings and drop what was applied."""

        validation = self.session.validate()
        validation.raise_for_errors()
        result = self.transaction.commit(validation.valid_mappings, audit_context, cancel_event=cancel_event)
        self.session.discard(result.committed_labels)
        return result

    def bulk_assign(
        self,
        raw_labels: Sequence[str],
        target_label: str,
        audit_context: AuditContext,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> CommitResult:
        """Map every label in ``raw_labels`` to ``target_label`` and commit."""

        labels = list(dict.fromkeys(label for label in raw_labels if label))
        errors = []
        if not labels:
            errors.append(MISSING_MAPPING_ERROR)
        if target_label not in self.matcher.canonical_set:
            errors.append(f"'{target_label}' is not a canonical {self.category.name} label")
        if errors:
            raise ValidationError(errors)
        entries = [MappingEntry(raw_label=label, proposed_label=target_label, confidence=100) for label in labels]
        result = self.transaction.commit(entries, audit_context, cancel_event=cancel_event)
        self.session.discard(result.committed_labels)
        return result


__all__ = ["AUTO_SELECT_STATUS", "AutoSelectReport", "NormalizationWorkflow"]
