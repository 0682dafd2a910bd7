"""Tests for string similarity, keyword extraction and slugs."""

import re

import pytest

from app.services.text_similarity import keywords, normalize, similarity, slugify


class TestSimilarity:
    """Normalized Levenshtein similarity."""

    @pytest.mark.parametrize("text", ["Jazz Festival", "", "  x ", "Lindy Focus"])
    def test_reflexive(self, text):
        assert similarity(text, text) == 1.0

    @pytest.mark.parametrize("a,b", [
        ("Lindy Focus", "Lindy Fokus"),
        ("Camp Hollywood", "Hollywood Camp"),
        ("abc", ""),
        ("Herräng", "Herrang"),
    ])
    def test_symmetric(self, a, b):
        assert similarity(a, b) == similarity(b, a)

    def test_case_insensitive(self):
        assert similarity("Jazz Festival", "jazz festival") == 1.0

    def test_trims_whitespace(self):
        assert similarity("  Lindy Focus ", "lindy focus") == 1.0

    def test_both_empty_is_identical(self):
        assert similarity("", "   ") == 1.0
        assert similarity(None, "") == 1.0

    def test_one_empty_is_zero(self):
        assert similarity("abc", "") == 0.0

    def test_single_edit(self):
        # one substitution over ten characters
        assert similarity("abcdefghij", "abcdefghiX") == pytest.approx(0.9)

    def test_completely_different(self):
        assert similarity("abc", "xyz") == 0.0

    def test_range(self):
        score = similarity("Frankie 100", "Frankie 95")
        assert 0.0 <= score <= 1.0

    def test_normalize(self):
        assert normalize("  MiXeD  ") == "mixed"
        assert normalize(None) == ""


class TestKeywords:
    """Keyword extraction for "contains" queries."""

    def test_drops_stop_words_and_short_tokens(self):
        assert keywords("The Swing Festival of Seattle") == ["seattle"]

    def test_preserves_order(self):
        assert keywords("Lindy Hop Camp Portland") == ["lindy", "hop", "camp", "portland"]

    def test_punctuation_becomes_separator(self):
        assert keywords("Rock-That-Swing, Munich!") == ["rock", "that", "munich"]

    def test_all_stop_words_yields_empty(self):
        assert keywords("Swing & Blues Festival") == []

    def test_empty(self):
        assert keywords("") == []
        assert keywords(None) == []

    def test_lowercases(self):
        assert keywords("SPRING Camp") == ["spring", "camp"]


class TestSlugify:
    """Timestamped slugs."""

    def test_explicit_timestamp(self):
        assert slugify("Spring Swing Camp", timestamp_ms=1700000000000) == "spring-swing-camp-1700000000000"

    def test_strips_disallowed_characters(self):
        assert slugify("Café & Co.", timestamp_ms=1) == "caf-co-1"

    def test_collapses_whitespace(self):
        assert slugify("a   b\tc", timestamp_ms=5) == "a-b-c-5"

    def test_default_timestamp_suffix(self):
        slug = slugify("Lindy Focus")
        assert re.fullmatch(r"lindy-focus-\d{13}", slug)
