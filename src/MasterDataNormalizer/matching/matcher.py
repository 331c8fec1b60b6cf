"""Abbreviation-aware fuzzy matcher over a canonical set."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from .abbreviations import AbbreviationTable
from .canonical import CanonicalSet
from .models import (
    ALTERNATIVE_FLOOR,
    HIGH_CONFIDENCE,
    BatchMatchResult,
    MatchResult,
    MatchType,
    RankedCandidate,
)
from .similarity import similarity

DEFAULT_COMPOUND_SEPARATORS: tuple[str, ...] = ("/",)


def find_best_match(raw_label: str, canonical_set: Iterable[str]) -> MatchResult:
    """Score ``raw_label`` against every canonical label and keep the best.

    Ties go to the label that appears first in the canonical set. The result
    also carries every candidate scoring at least 50, ranked, so callers can
    offer alternatives.
    """

    labels = tuple(canonical_set)
    if not raw_label or not labels:
        return MatchResult(raw_label or "", "", 0, MatchType.LOW_CONFIDENCE)

    scored = [RankedCandidate(label=label, confidence=similarity(raw_label, label)) for label in labels]
    ranked = sorted(scored, key=lambda candidate: candidate.confidence, reverse=True)
    best = ranked[0]
    return MatchResult(
        raw_label=raw_label,
        canonical_label=best.label,
        confidence=best.confidence,
        match_type=MatchType.classify(best.confidence),
        alternatives=tuple(candidate for candidate in ranked if candidate.confidence >= ALTERNATIVE_FLOOR),
    )


def is_compound_label(raw_label: str, separators: Sequence[str] = DEFAULT_COMPOUND_SEPARATORS) -> bool:
    return any(separator in raw_label for separator in separators)


def partition_compound_labels(
    raw_labels: Iterable[str],
    separators: Sequence[str] = DEFAULT_COMPOUND_SEPARATORS,
) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Split labels into those eligible for auto-selection and compound ones."""

    eligible: list[str] = []
    excluded: list[str] = []
    for label in raw_labels:
        (excluded if is_compound_label(label, separators) else eligible).append(label)
    return tuple(eligible), tuple(excluded)


@dataclass(slots=True)
class Matcher:
    """Resolves raw labels for one category against its canonical set."""

    canonical_set: CanonicalSet
    abbreviations: AbbreviationTable = field(default_factory=AbbreviationTable)
    compound_separators: tuple[str, ...] = DEFAULT_COMPOUND_SEPARATORS
    max_workers: int | None = None

    def match(self, raw_label: str) -> MatchResult:
        """Match one raw label, consulting the abbreviation table first."""

        if not raw_label:
            return MatchResult("", "", 0, MatchType.LOW_CONFIDENCE)
        expansion = self.abbreviations.lookup(raw_label)
        if expansion is not None:
            return MatchResult(
                raw_label=raw_label,
                canonical_label=expansion,
                confidence=100,
                match_type=MatchType.ABBREVIATION,
            )
        return find_best_match(raw_label, self.canonical_set)

    def batch_match(
        self,
        raw_labels: Sequence[str],
        *,
        confidence_threshold: int = HIGH_CONFIDENCE,
        auto_select: bool = True,
    ) -> BatchMatchResult:
        """Match every label, flagging confident non-compound ones for auto-selection."""

        labels = list(raw_labels)
        if self.max_workers and self.max_workers > 1 and len(labels) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                matched = list(executor.map(self.match, labels))
        else:
            matched = [self.match(label) for label in labels]

        compound: list[str] = []
        results: list[MatchResult] = []
        for result in matched:
            if is_compound_label(result.raw_label, self.compound_separators):
                compound.append(result.raw_label)
                results.append(result)
                continue
            selected = auto_select and result.is_match and result.confidence >= confidence_threshold
            results.append(result.with_auto_selected(selected) if selected else result)
        return BatchMatchResult.from_results(
            results,
            confidence_threshold=confidence_threshold,
            compound_labels=compound,
        )


__all__ = [
    "DEFAULT_COMPOUND_SEPARATORS",
    "Matcher",
    "find_best_match",
    "is_compound_label",
    "partition_compound_labels",
]
