"""Public API for the matching module."""

from .abbreviations import CITY_ALIASES, STATE_ABBREVIATIONS, AbbreviationTable, normalize_key
from .canonical import INDIAN_CITIES, INDIAN_STATES, CanonicalSet, CanonicalSetProvider
from .matcher import Matcher, find_best_match, is_compound_label, partition_compound_labels
from .models import BatchMatchResult, MatchResult, MatchType, RankedCandidate
from .similarity import distance, similarity

__all__ = [
    "AbbreviationTable",
    "BatchMatchResult",
    "CITY_ALIASES",
    "CanonicalSet",
    "CanonicalSetProvider",
    "INDIAN_CITIES",
    "INDIAN_STATES",
    "MatchResult",
    "MatchType",
    "Matcher",
    "RankedCandidate",
    "STATE_ABBREVIATIONS",
    "distance",
    "find_best_match",
    "is_compound_label",
    "normalize_key",
    "partition_compound_labels",
    "similarity",
]
