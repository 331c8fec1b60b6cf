"""Public API for the mapping session module."""

from .models import MappingEntry, SessionStatistics, ValidationResult
from .session import MISSING_MAPPING_ERROR, MappingSession, SessionObserver

__all__ = [
    "MISSING_MAPPING_ERROR",
    "MappingEntry",
    "MappingSession",
    "SessionObserver",
    "SessionStatistics",
    "ValidationResult",
]
