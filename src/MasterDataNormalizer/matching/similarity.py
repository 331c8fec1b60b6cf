"""Edit-distance based similarity scoring for free-text labels."""

from __future__ import annotations

import math

from rapidfuzz.distance import Levenshtein

SUBSTRING_FLOOR = 85
WORD_OVERLAP_WEIGHT = 20


def distance(a: str, b: str) -> int:
    """Return the Levenshtein distance between ``a`` and ``b`` (case-sensitive)."""

    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> int:
    """Score how likely two labels denote the same entity, from 0 to 100.

    Exact matches (after case folding and trimming) score 100. A label that
    contains the other scores at least 85, and shared words lift the
    edit-distance score by up to 20 points.
    """

    if not a or not b:
        return 0
    left = a.lower().strip()
    right = b.lower().strip()
    if left == right:
        return 100
    if not left or not right:
        return 0

    max_length = max(len(left), len(right))
    base = (max_length - distance(left, right)) / max_length * 100
    score = base

    if left in right or right in left:
        score = max(score, SUBSTRING_FLOOR)

    left_words = set(left.split())
    right_words = set(right.split())
    common = left_words & right_words
    if common:
        word_bonus = len(common) / max(len(left_words), len(right_words)) * WORD_OVERLAP_WEIGHT
        score = max(score, base + word_bonus)

    return _round_half_up(min(max(score, 0.0), 100.0))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


__all__ = ["distance", "similarity"]
