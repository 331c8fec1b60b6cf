"""Data models produced by the matcher."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Sequence

HIGH_CONFIDENCE = 90
MEDIUM_CONFIDENCE = 70
ALTERNATIVE_FLOOR = 50


class MatchType(str, Enum):
    """How a match was obtained, or how strong the fuzzy match is."""

    ABBREVIATION = "abbreviation"
    HIGH_CONFIDENCE = "high_confidence"
    MEDIUM_CONFIDENCE = "medium_confidence"
    LOW_CONFIDENCE = "low_confidence"

    @classmethod
    def classify(cls, confidence: int) -> "MatchType":
        if confidence >= HIGH_CONFIDENCE:
            return cls.HIGH_CONFIDENCE
        if confidence >= MEDIUM_CONFIDENCE:
            return cls.MEDIUM_CONFIDENCE
        return cls.LOW_CONFIDENCE


@dataclass(frozen=True, slots=True)
class RankedCandidate:
    """A canonical label scored against one raw label."""

    label: str
    confidence: int


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Best canonical match for a single raw label."""

    raw_label: str
    canonical_label: str
    confidence: int
    match_type: MatchType
    alternatives: tuple[RankedCandidate, ...] = field(default_factory=tuple)
    auto_selected: bool = False

    @property
    def is_match(self) -> bool:
        return bool(self.canonical_label)

    def with_auto_selected(self, auto_selected: bool) -> "MatchResult":
        return replace(self, auto_selected=auto_selected)


@dataclass(frozen=True, slots=True)
class BatchMatchResult:
    """Aggregated outcome of matching a list of raw labels."""

    results: tuple[MatchResult, ...]
    auto_selected: tuple[str, ...]
    total_processed: int
    high_confidence: int
    medium_confidence: int
    low_confidence: int
    compound_labels: tuple[str, ...] = field(default_factory=tuple)

    def selected_results(self) -> tuple[MatchResult, ...]:
        """Return the results flagged for auto-selection, in input order."""

        return tuple(result for result in self.results if result.auto_selected)

    @classmethod
    def from_results(
        cls,
        results: Sequence[MatchResult],
        *,
        confidence_threshold: int,
        compound_labels: Sequence[str] = (),
    ) -> "BatchMatchResult":
        high = sum(1 for result in results if result.confidence >= confidence_threshold)
        medium = sum(
            1 for result in results if MEDIUM_CONFIDENCE <= result.confidence < confidence_threshold
        )
        low = sum(1 for result in results if result.confidence < MEDIUM_CONFIDENCE)
        return cls(
            results=tuple(results),
            auto_selected=tuple(result.raw_label for result in results if result.auto_selected),
            total_processed=len(results),
            high_confidence=high,
            medium_confidence=medium,
            low_confidence=low,
            compound_labels=tuple(compound_labels),
        )


__all__ = [
    "ALTERNATIVE_FLOOR",
    "BatchMatchResult",
    "HIGH_CONFIDENCE",
    "MEDIUM_CONFIDENCE",
    "MatchResult",
    "MatchType",
    "RankedCandidate",
]
