"""Exception taxonomy for the normalization engine."""

from __future__ import annotations

from typing import Sequence


class NormalizationError(Exception):
    """Base exception for master-data normalization failures."""


class ValidationError(NormalizationError):
    """Raised when a mapping session fails validation before commit."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = tuple(errors)
        super().__init__("; ".join(self.errors) or "Mapping validation failed")


class UnknownKeyError(NormalizationError, KeyError):
    """Raised when a session is updated with a raw label it does not track."""

    def __init__(self, raw_label: str) -> None:
        self.raw_label = raw_label
        super().__init__(f"Raw label {raw_label!r} is not part of the mapping session")

    def __str__(self) -> str:
        return self.args[0]


class StoreError(NormalizationError):
    """Raised by record stores when a single operation fails."""


class StoreUnavailableError(StoreError):
    """Raised when the record store cannot be reached at all."""


class AuditWriteError(NormalizationError):
    """Raised when an audit record cannot be persisted."""


class ConfigError(NormalizationError):
    """Raised when engine configuration is malformed."""


__all__ = [
    "AuditWriteError",
    "ConfigError",
    "NormalizationError",
    "StoreError",
    "StoreUnavailableError",
    "UnknownKeyError",
    "ValidationError",
]
