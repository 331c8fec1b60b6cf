"""Tests for the abbreviation-aware matcher."""

from __future__ import annotations

import pytest

from MasterDataNormalizer.matching import (
    AbbreviationTable,
    CanonicalSet,
    CanonicalSetProvider,
    Matcher,
    MatchType,
    find_best_match,
    is_compound_label,
    normalize_key,
    partition_compound_labels,
)
from MasterDataNormalizer.matching.canonical import INDIAN_STATES


def state_matcher(**kwargs) -> Matcher:
    return Matcher(
        canonical_set=CanonicalSet("state", INDIAN_STATES),
        abbreviations=AbbreviationTable.for_states(),
        **kwargs,
    )


def test_end_to_end_matching_scenario() -> None:
    matcher = Matcher(
        canonical_set=CanonicalSet("mixed", ("Uttar Pradesh", "Kolkata", "Bangalore")),
        abbreviations=AbbreviationTable({"up": "Uttar Pradesh"}),
    )

    up = matcher.match("U.P.")
    assert up.canonical_label == "Uttar Pradesh"
    assert up.confidence == 100
    assert up.match_type is MatchType.ABBREVIATION

    kolkata = matcher.match("Kolkata")
    assert kolkata.canonical_label == "Kolkata"
    assert kolkata.confidence == 100
    assert kolkata.match_type is MatchType.HIGH_CONFIDENCE

    blr = matcher.match("Blr")
    assert blr.confidence < 90
    assert blr.match_type is MatchType.LOW_CONFIDENCE


def test_abbreviation_keys_ignore_case_dots_and_spaces() -> None:
    assert normalize_key(" U. P. ") == "up"
    table = AbbreviationTable({"J&K": "Jammu and Kashmir"})
    assert table.lookup("j&k") == "Jammu and Kashmir"
    assert "J & K" in table
    assert table.lookup("") is None


def test_find_best_match_prefers_first_label_on_ties() -> None:
    result = find_best_match("ab", ["ac", "ad"])
    assert result.canonical_label == "ac"
    assert result.confidence == 50
    assert [candidate.label for candidate in result.alternatives] == ["ac", "ad"]


def test_find_best_match_alternatives_respect_floor() -> None:
    result = find_best_match("Maharastra", INDIAN_STATES)
    assert result.canonical_label == "Maharashtra"
    assert result.confidence == 91
    assert result.match_type is MatchType.HIGH_CONFIDENCE
    assert all(candidate.confidence >= 50 for candidate in result.alternatives)
    confidences = [candidate.confidence for candidate in result.alternatives]
    assert confidences == sorted(confidences, reverse=True)


def test_find_best_match_with_empty_input() -> None:
    result = find_best_match("", INDIAN_STATES)
    assert result.canonical_label == ""
    assert result.confidence == 0
    assert result.match_type is MatchType.LOW_CONFIDENCE
    assert not result.is_match


def test_matcher_abbreviation_wins_over_fuzzy_score() -> None:
    result = state_matcher().match("TN")
    assert result.canonical_label == "Tamil Nadu"
    assert result.match_type is MatchType.ABBREVIATION
    assert result.alternatives == ()


def test_compound_label_detection() -> None:
    assert is_compound_label("Delhi/NCR")
    assert not is_compound_label("Delhi NCR")
    assert is_compound_label("Delhi|NCR", separators=("|",))
    eligible, excluded = partition_compound_labels(["Goa", "Delhi/NCR", "Kerala"])
    assert eligible == ("Goa", "Kerala")
    assert excluded == ("Delhi/NCR",)


def test_batch_match_counts_and_auto_selection() -> None:
    batch = state_matcher().batch_match(["U.P.", "Maharastra", "Delhi/NCR", "Xyz"])

    assert batch.total_processed == 4
    assert batch.auto_selected == ("U.P.", "Maharastra")
    assert batch.high_confidence == 2
    assert batch.medium_confidence == 1
    assert batch.low_confidence == 1
    assert batch.compound_labels == ("Delhi/NCR",)
    assert [result.raw_label for result in batch.selected_results()] == ["U.P.", "Maharastra"]


def test_batch_match_never_auto_selects_compound_labels() -> None:
    matcher = state_matcher(compound_separators=("/", "&"))
    batch = matcher.batch_match(["J&K", "Goa"], confidence_threshold=90)
    assert batch.results[0].confidence == 100
    assert not batch.results[0].auto_selected
    assert batch.auto_selected == ("Goa",)


def test_batch_match_without_auto_select() -> None:
    batch = state_matcher().batch_match(["Goa"], auto_select=False)
    assert batch.auto_selected == ()
    assert batch.high_confidence == 1


def test_batch_match_threshold_moves_band_boundaries() -> None:
    batch = state_matcher().batch_match(["Maharastra"], confidence_threshold=95)
    assert batch.auto_selected == ()
    assert batch.high_confidence == 0
    assert batch.medium_confidence == 1


def test_parallel_batch_match_preserves_order() -> None:
    labels = ["Maharastra", "U.P.", "Tamilnadu", "Kerla", "Xyz", "Delhi/NCR"]
    sequential = state_matcher().batch_match(labels)
    parallel = state_matcher(max_workers=4).batch_match(labels)
    assert parallel == sequential
    assert [result.raw_label for result in parallel.results] == labels


def test_canonical_set_provider() -> None:
    provider = CanonicalSetProvider.default()
    assert provider.categories() == ("state", "city")
    assert "Goa" in provider.get("state")
    assert len(provider.get("state")) == 36
    with pytest.raises(KeyError, match="country"):
        provider.get("country")


def test_canonical_set_drops_duplicates_and_blanks() -> None:
    canonical = CanonicalSet("state", ("Goa", "", "Goa", "Kerala"))
    assert tuple(canonical) == ("Goa", "Kerala")
