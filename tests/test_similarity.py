"""
Tests for title similarity scoring.
"""

import pytest

from breachwatch.incidents.similarity import levenshtein_distance, similarity


class TestLevenshteinDistance:
    """Tests for the edit distance."""

    @pytest.mark.parametrize(
        "a, b, expected",
        [
            ("", "", 0),
            ("abc", "", 3),
            ("", "abc", 3),
            ("kitten", "sitting", 3),
            ("flaw", "lawn", 2),
            ("breach", "breach", 0),
            ("500,000", "500000", 1),
        ],
    )
    def test_known_distances(self, a: str, b: str, expected: int) -> None:
        assert levenshtein_distance(a, b) == expected

    def test_symmetric(self) -> None:
        assert levenshtein_distance("ransomware", "ransom") == levenshtein_distance(
            "ransom", "ransomware"
        )

    def test_case_sensitive(self) -> None:
        """The raw distance does not fold case; similarity does."""
        assert levenshtein_distance("Breach", "breach") == 1


class TestSimilarity:
    """Tests for normalized similarity."""

    def test_identical_titles(self) -> None:
        assert similarity("Critical Security Breach", "Critical Security Breach") == 1.0

    def test_case_insensitive(self) -> None:
        assert similarity("Hello World", "hello world") == 1.0

    def test_both_empty(self) -> None:
        assert similarity("", "") == 1.0

    def test_one_empty(self) -> None:
        assert similarity("", "breach") == 0.0

    def test_completely_different(self) -> None:
        assert similarity("abc", "xyz") == 0.0

    def test_normalized_by_longest(self) -> None:
        # One deletion over a 7-character string.
        assert similarity("500,000", "500000") == pytest.approx(1 - 1 / 7)

    def test_near_duplicate_headlines(self) -> None:
        score = similarity(
            "Major data breach affects 500,000 users",
            "Major data breach impacts 500000 users",
        )
        assert score == pytest.approx(1 - 5 / 39)
        assert score > 0.85

    def test_unrelated_headlines(self) -> None:
        score = similarity(
            "Critical Security Breach in Banking Sector",
            "New vulnerability in open source library",
        )
        assert score < 0.5

    def test_range(self) -> None:
        for a, b in [("a", "b"), ("abc", "abd"), ("long title", "short")]:
            assert 0.0 <= similarity(a, b) <= 1.0
