"""Value objects exchanged with a mapping session."""

from __future__ import annotations

from dataclasses import dataclass, field

from MasterDataNormalizer.exceptions import ValidationError


@dataclass(frozen=True, slots=True)
class MappingEntry:
    """A proposed raw-to-canonical mapping."""

    raw_label: str
    proposed_label: str = ""
    confidence: int = 0
    auto_selected: bool = False

    @property
    def is_mapped(self) -> bool:
        return bool(self.proposed_label)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of validating a session before commit."""

    is_valid: bool
    errors: tuple[str, ...] = field(default_factory=tuple)
    valid_mappings: tuple[MappingEntry, ...] = field(default_factory=tuple)

    def raise_for_errors(self) -> None:
        if not self.is_valid:
            raise ValidationError(self.errors)


@dataclass(frozen=True, slots=True)
class SessionStatistics:
    """Snapshot of counters derived from the session state."""

    total: int
    mapped: int
    unmapped: int
    pending_count: int
    high_confidence: int
    medium_confidence: int
    low_confidence: int
    is_dirty: bool


__all__ = ["MappingEntry", "SessionStatistics", "ValidationResult"]
