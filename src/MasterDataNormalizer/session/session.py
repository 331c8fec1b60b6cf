"""Working set of raw-to-canonical mappings with dirty tracking."""

from __future__ import annotations

from collections import Counter
from typing import Callable, Iterable, Sequence

from MasterDataNormalizer.exceptions import UnknownKeyError
from MasterDataNormalizer.matching.models import HIGH_CONFIDENCE, MEDIUM_CONFIDENCE, MatchResult

from .models import MappingEntry, SessionStatistics, ValidationResult

SessionObserver = Callable[[SessionStatistics], None]

MISSING_MAPPING_ERROR = "At least one mapping is required"


class MappingSession:
    """Tracks proposed mappings for one normalization workflow.

    A session is owned by a single caller. ``mappings``, ``original_mappings``
    and ``confidence_scores`` always share the same keys, in discovery order.
    A raw label is pending when its current proposal differs from the
    snapshot taken at ``initialize``; ``clear_all`` marks every label pending.
    Observers registered with ``subscribe`` receive fresh statistics after
    every mutation.
    """

    def __init__(self, raw_labels: Iterable[str] | None = None) -> None:
        self._mappings: dict[str, str] = {}
        self._original: dict[str, str] = {}
        self._confidence: dict[str, int] = {}
        self._original_confidence: dict[str, int] = {}
        self._auto_selected: dict[str, bool] = {}
        self._pending: set[str] = set()
        self._observers: list[SessionObserver] = []
        if raw_labels is not None:
            self.initialize(raw_labels)

    # ------------------------------------------------------------------
    # State views
    # ------------------------------------------------------------------

    @property
    def mappings(self) -> dict[str, str]:
        return dict(self._mappings)

    @property
    def original_mappings(self) -> dict[str, str]:
        return dict(self._original)

    @property
    def confidence_scores(self) -> dict[str, int]:
        return dict(self._confidence)

    @property
    def pending_changes(self) -> frozenset[str]:
        return frozenset(self._pending)

    @property
    def is_dirty(self) -> bool:
        return bool(self._pending)

    @property
    def raw_labels(self) -> tuple[str, ...]:
        return tuple(self._mappings)

    def __contains__(self, raw_label: object) -> bool:
        return raw_label in self._mappings

    def __len__(self) -> int:
        return len(self._mappings)

    def entry(self, raw_label: str) -> MappingEntry:
        if raw_label not in self._mappings:
            raise UnknownKeyError(raw_label)
        return MappingEntry(
            raw_label=raw_label,
            proposed_label=self._mappings[raw_label],
            confidence=self._confidence[raw_label],
            auto_selected=self._auto_selected[raw_label],
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def initialize(self, raw_labels: Iterable[str]) -> None:
        """Start a fresh session with every label unmapped."""

        labels = list(dict.fromkeys(raw_labels))
        self._mappings = {label: "" for label in labels}
        self._original = dict(self._mappings)
        self._confidence = {label: 0 for label in labels}
        self._original_confidence = dict(self._confidence)
        self._auto_selected = {label: False for label in labels}
        self._pending = set()
        self._notify()

    def update(
        self,
        raw_label: str,
        proposed_label: str,
        confidence: int = 0,
        *,
        auto_selected: bool = False,
    ) -> None:
        """Set the proposal for one raw label."""

        if raw_label not in self._mappings:
            raise UnknownKeyError(raw_label)
        self._apply(raw_label, proposed_label, confidence, auto_selected)
        if self._mappings[raw_label] != self._original[raw_label]:
            self._pending.add(raw_label)
        else:
            self._pending.discard(raw_label)
        self._notify()

    def batch_update(self, entries: Iterable[MappingEntry]) -> int:
        """Apply several proposals at once; unknown labels are ignored.

        Returns the number of entries applied.
        """

        applied = 0
        for entry in entries:
            if entry.raw_label not in self._mappings:
                continue
            self._apply(entry.raw_label, entry.proposed_label, entry.confidence, entry.auto_selected)
            applied += 1
        self._pending = {
            label for label, proposed in self._mappings.items() if proposed != self._original[label]
        }
        self._notify()
        return applied

    def auto_select_high_confidence(
        self,
        matches: Sequence[MatchResult],
        threshold: int = HIGH_CONFIDENCE,
    ) -> int:
        """Accept every match at or above ``threshold`` and return how many were applied."""

        entries = [
            MappingEntry(
                raw_label=match.raw_label,
                proposed_label=match.canonical_label,
                confidence=match.confidence,
                auto_selected=True,
            )
            for match in matches
            if match.confidence >= threshold and match.canonical_label
        ]
        return self.batch_update(entries)

    def clear_all(self) -> None:
        """Blank every proposal and mark every label pending."""

        for label in self._mappings:
            self._apply(label, "", 0, False)
        self._pending = set(self._mappings)
        self._notify()

    def reset(self) -> None:
        """Restore the snapshot taken at ``initialize``."""

        self._mappings = dict(self._original)
        self._confidence = dict(self._original_confidence)
        self._auto_selected = {label: False for label in self._mappings}
        self._pending = set()
        self._notify()

    def discard(self, raw_labels: Iterable[str]) -> int:
        """Drop labels from the session, typically after they were committed."""

        removed = 0
        for label in raw_labels:
            if label not in self._mappings:
                continue
            del self._mappings[label]
            del self._original[label]
            del self._confidence[label]
            del self._original_confidence[label]
            del self._auto_selected[label]
            self._pending.discard(label)
            removed += 1
        if removed:
            self._notify()
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def valid_mappings(self) -> tuple[MappingEntry, ...]:
        return tuple(self.entry(label) for label, proposed in self._mappings.items() if proposed)

    def validate(self) -> ValidationResult:
        """Check the session is ready to commit.

        At least one label must be mapped, and no two raw labels may target
        the same canonical label. All failures are reported together.
        """

        valid = self.valid_mappings()
        errors: list[str] = []
        if not valid:
            errors.append(MISSING_MAPPING_ERROR)
        targets = Counter(entry.proposed_label for entry in valid)
        duplicates = [f"{label} ({count} times)" for label, count in targets.items() if count > 1]
        if duplicates:
            errors.append(f"Duplicate mappings detected: {', '.join(duplicates)}")
        return ValidationResult(is_valid=not errors, errors=tuple(errors), valid_mappings=valid)

    def statistics(self) -> SessionStatistics:
        scores = list(self._confidence.values())
        total = len(self._mappings)
        mapped = sum(1 for proposed in self._mappings.values() if proposed)
        return SessionStatistics(
            total=total,
            mapped=mapped,
            unmapped=total - mapped,
            pending_count=len(self._pending),
            high_confidence=sum(1 for score in scores if score >= HIGH_CONFIDENCE),
            medium_confidence=sum(1 for score in scores if MEDIUM_CONFIDENCE <= score < HIGH_CONFIDENCE),
            low_confidence=sum(1 for score in scores if score < MEDIUM_CONFIDENCE),
            is_dirty=self.is_dirty,
        )

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, observer: SessionObserver) -> Callable[[], None]:
        """Register ``observer`` and return a callable that unregisters it."""

        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def _notify(self) -> None:
        if not self._observers:
            return
        snapshot = self.statistics()
        for observer in tuple(self._observers):
            observer(snapshot)

    def _apply(self, raw_label: str, proposed_label: str, confidence: int, auto_selected: bool) -> None:
        self._mappings[raw_label] = proposed_label or ""
        self._confidence[raw_label] = int(confidence)
        self._auto_selected[raw_label] = bool(auto_selected) and bool(proposed_label)


__all__ = ["MISSING_MAPPING_ERROR", "MappingSession", "SessionObserver"]
