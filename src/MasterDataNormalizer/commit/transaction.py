"""Best-effort bulk update of mapped labels with a batch audit record."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Optional, Sequence

from MasterDataNormalizer.audit.models import AuditContext, AuditRecord, BatchChangeMetadata, ChangeEntry
from MasterDataNormalizer.audit.trail import AuditTrail
from MasterDataNormalizer.config import CategoryConfig
from MasterDataNormalizer.exceptions import (
    AuditWriteError,
    StoreError,
    StoreUnavailableError,
    ValidationError,
)
from MasterDataNormalizer.session.models import MappingEntry
from MasterDataNormalizer.session.session import MISSING_MAPPING_ERROR
from MasterDataNormalizer.telemetry import NormalizationTelemetry

from .store import RecordStore

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"


@dataclass(frozen=True, slots=True)
class MappingOutcome:
    """Result of applying one mapping to the store."""

    raw_label: str
    proposed_label: str
    updated_count: int
    status: str
    error: Optional[str] = None
    unreachable: bool = field(default=False, repr=False)

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SUCCESS


@dataclass(frozen=True, slots=True)
class CommitResult:
    """Outcome of a bulk commit.

    ``success`` is false only when the audit record could not be written or
    the store was unreachable for every attempted mapping. Individual
    failures are reported in ``per_mapping_results``.
    """

    success: bool
    transaction_id: str
    total_updated: int
    per_mapping_results: tuple[MappingOutcome, ...]
    audit_id: Optional[str] = None
    audit_warning: Optional[str] = None
    cancelled: bool = False

    @property
    def failed(self) -> tuple[MappingOutcome, ...]:
        return tuple(outcome for outcome in self.per_mapping_results if not outcome.succeeded)

    @property
    def committed_labels(self) -> tuple[str, ...]:
        return tuple(outcome.raw_label for outcome in self.per_mapping_results if outcome.succeeded)


class BulkCommitTransaction:
    """Applies validated mappings to a record store and audits the batch.

    Each mapping is one ``UPDATE ... SET column = proposed WHERE column = raw``
    against the category table. Updates are not atomic as a group: a failed
    mapping is logged and reported while the rest continue, and nothing
    already applied is rolled back. Exactly one batch audit record is written
    after every attempted mapping, covering only what was attempted.
    """

    def __init__(
        self,
        store: RecordStore,
        audit_trail: AuditTrail,
        category: CategoryConfig,
        *,
        telemetry: Optional[NormalizationTelemetry] = None,
        max_workers: Optional[int] = None,
        item_timeout: Optional[float] = None,
        audit_attempts: int = 2,
    ) -> None:
        self._store = store
        self._audit_trail = audit_trail
        self._category = category
        self._telemetry = telemetry
        self._max_workers = max_workers
        self._item_timeout = item_timeout
        self._audit_attempts = max(audit_attempts, 1)

    @property
    def category(self) -> CategoryConfig:
        return self._category

    def commit(
        self,
        valid_mappings: Sequence[MappingEntry],
        audit_context: AuditContext,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> CommitResult:
        """Apply ``valid_mappings`` and record one batch audit entry."""

        mappings = [mapping for mapping in valid_mappings if mapping.proposed_label]
        if not mappings:
            raise ValidationError([MISSING_MAPPING_ERROR])

        transaction_id = self._audit_trail.generate_transaction_id()
        logger.info(
            "Committing %d %s mappings (transaction %s)",
            len(mappings),
            self._category.name,
            transaction_id,
        )
        if self._max_workers and self._max_workers > 1 and len(mappings) > 1:
            attempted = self._apply_concurrently(mappings, cancel_event)
        else:
            attempted = self._apply_sequentially(mappings, cancel_event)
        cancelled = len(attempted) < len(mappings)
        if cancelled:
            logger.warning(
                "Transaction %s cancelled after %d of %d mappings",
                transaction_id,
                len(attempted),
                len(mappings),
            )

        outcomes = tuple(outcome for _, outcome in attempted)
        total_updated = sum(outcome.updated_count for outcome in outcomes)
        failed = [outcome for outcome in outcomes if not outcome.succeeded]
        store_unreachable = bool(outcomes) and all(outcome.unreachable for outcome in outcomes)

        audit_id: Optional[str] = None
        audit_warning: Optional[str] = None
        if attempted:
            audit_id, audit_warning = self._write_audit(
                attempted,
                audit_context,
                transaction_id=transaction_id,
                total_updated=total_updated,
                cancelled=cancelled,
            )

        if self._telemetry:
            self._telemetry.record_commit(
                category=self._category.name,
                transaction_id=transaction_id,
                attempted=len(outcomes),
                failed=len(failed),
                total_updated=total_updated,
                audit_written=audit_id is not None,
            )
        return CommitResult(
            success=not store_unreachable and audit_warning is None,
            transaction_id=transaction_id,
            total_updated=total_updated,
            per_mapping_results=outcomes,
            audit_id=audit_id,
            audit_warning=audit_warning,
            cancelled=cancelled,
        )

    # ------------------------------------------------------------------
    # Store updates
    # ------------------------------------------------------------------

    def _apply_one(self, mapping: MappingEntry) -> MappingOutcome:
        column = self._category.column
        try:
            updated = self._store.update(
                self._category.table_name,
                {column: mapping.raw_label},
                {column: mapping.proposed_label},
            )
        except (StoreError, TimeoutError) as exc:
            logger.warning(
                "Update %r -> %r failed: %s",
                mapping.raw_label,
                mapping.proposed_label,
                exc,
            )
            return self._failed(mapping, exc)
        except Exception as exc:
            logger.exception(
                "Update %r -> %r raised an unexpected store error",
                mapping.raw_label,
                mapping.proposed_label,
            )
            return self._failed(mapping, exc)
        logger.debug("Updated %d rows %r -> %r", updated, mapping.raw_label, mapping.proposed_label)
        return MappingOutcome(
            raw_label=mapping.raw_label,
            proposed_label=mapping.proposed_label,
            updated_count=int(updated or 0),
            status=STATUS_SUCCESS,
        )

    @staticmethod
    def _failed(mapping: MappingEntry, exc: Exception) -> MappingOutcome:
        return MappingOutcome(
            raw_label=mapping.raw_label,
            proposed_label=mapping.proposed_label,
            updated_count=0,
            status=STATUS_FAILED,
            error=str(exc) or exc.__class__.__name__,
            unreachable=isinstance(exc, StoreUnavailableError),
        )

    def _apply_sequentially(
        self,
        mappings: Sequence[MappingEntry],
        cancel_event: Optional[threading.Event],
    ) -> list[tuple[MappingEntry, MappingOutcome]]:
        attempted: list[tuple[MappingEntry, MappingOutcome]] = []
        for mapping in mappings:
            if cancel_event is not None and cancel_event.is_set():
                break
            attempted.append((mapping, self._apply_one(mapping)))
        return attempted

    def _apply_concurrently(
        self,
        mappings: Sequence[MappingEntry],
        cancel_event: Optional[threading.Event],
    ) -> list[tuple[MappingEntry, MappingOutcome]]:
        executor = ThreadPoolExecutor(max_workers=self._max_workers)
        futures: list[tuple[MappingEntry, Future[MappingOutcome]]] = []
        try:
            for mapping in mappings:
                if cancel_event is not None and cancel_event.is_set():
                    break
                futures.append((mapping, executor.submit(self._apply_one, mapping)))
            attempted: list[tuple[MappingEntry, MappingOutcome]] = []
            for mapping, future in futures:
                if cancel_event is not None and cancel_event.is_set() and future.cancel():
                    continue
                attempted.append((mapping, self._await(mapping, future)))
            return attempted
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _await(self, mapping: MappingEntry, future: Future[MappingOutcome]) -> MappingOutcome:
        try:
            return future.result(timeout=self._item_timeout)
        except FutureTimeoutError:
            logger.warning("Update %r -> %r timed out", mapping.raw_label, mapping.proposed_label)
            return MappingOutcome(
                raw_label=mapping.raw_label,
                proposed_label=mapping.proposed_label,
                updated_count=0,
                status=STATUS_FAILED,
                error="timeout",
            )

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def _write_audit(
        self,
        attempted: Sequence[tuple[MappingEntry, MappingOutcome]],
        audit_context: AuditContext,
        *,
        transaction_id: str,
        total_updated: int,
        cancelled: bool,
    ) -> tuple[Optional[str], Optional[str]]:
        changes = tuple(
            ChangeEntry(
                record_identifier=mapping.raw_label,
                old_value=mapping.raw_label,
                new_value=mapping.proposed_label,
                confidence=mapping.confidence if mapping.auto_selected else None,
                auto_selected=mapping.auto_selected,
                status=outcome.status,
            )
            for mapping, outcome in attempted
        )
        record = AuditRecord(
            action_type=self._category.update_action,
            table_name=self._category.table_name,
            changed_by=audit_context.user_id,
            user_email=audit_context.user_email,
            session_id=audit_context.session_id,
            transaction_id=transaction_id,
            metadata=BatchChangeMetadata(
                changes=changes,
                attributes={
                    "transaction_id": transaction_id,
                    "category": self._category.name,
                    "column": self._category.column,
                    "total_updated": total_updated,
                    "failed_count": sum(1 for change in changes if change.status != STATUS_SUCCESS),
                    "cancelled": cancelled,
                },
            ),
        )
        last_error = ""
        for attempt in range(1, self._audit_attempts + 1):
            try:
                return self._audit_trail.log_batch_change(record), None
            except AuditWriteError as exc:
                last_error = str(exc)
                logger.warning(
                    "Audit write for transaction %s failed (attempt %s/%s): %s",
                    transaction_id,
                    attempt,
                    self._audit_attempts,
                    exc,
                )
            except Exception as exc:
                # Updates are already applied; report, never raise.
                last_error = str(exc) or exc.__class__.__name__
                logger.exception(
                    "Audit write for transaction %s raised an unexpected error (attempt %s/%s)",
                    transaction_id,
                    attempt,
                    self._audit_attempts,
                )
        warning = f"Audit record for transaction {transaction_id} was not written: {last_error}"
        if self._telemetry:
            self._telemetry.record_audit_failure(transaction_id, last_error)
        return None, warning


__all__ = [
    "BulkCommitTransaction",
    "CommitResult",
    "MappingOutcome",
    "STATUS_FAILED",
    "STATUS_SUCCESS",
]
