"""Tests for sport parsing."""

import pytest

from lib.sports import detect_sports, normalize_sport, parse_sports


class TestNormalizeSport:

    @pytest.mark.parametrize("token, expected", [
        ("Football", "soccer"),
        (" 5-a-side ", "soccer"),
        ("Table Tennis", "table_tennis"),
        ("table_tennis", "table_tennis"),
        ("TENNIS", "tennis"),
        ("", ""),
    ])
    def test_synonyms(self, token, expected):
        assert normalize_sport(token) == expected


class TestParseSports:

    def test_delimiters(self):
        assert parse_sports("Tennis; Squash / netball, tennis") == ["netball", "squash", "tennis"]

    def test_and_separator(self):
        assert parse_sports("Tennis and Pickleball") == ["pickleball", "tennis"]

    def test_jsonish_array(self):
        assert parse_sports("['tennis', \"Football\"]") == ["soccer", "tennis"]

    def test_list_input(self):
        assert parse_sports(["Basketball", "", None]) == ["basketball"]

    def test_empty(self):
        assert parse_sports(None) == []
        assert parse_sports("  ") == []

    def test_known_filter(self):
        assert parse_sports("tennis;curling", known={"tennis"}) == ["tennis"]


class TestDetectSports:

    def test_free_text(self):
        assert detect_sports("Indoor 5-a-side and futsal, plus a 25m pool") == ["futsal", "soccer", "swimming"]

    def test_nothing(self):
        assert detect_sports("Community hall") == []
