"""
Unit tests for free-text query classification.
"""

import pytest

from recordguard.classifier import (
    NO_QUERY_FOUND,
    classify,
    extract_name,
    find_code,
    match_proper_name,
    template_matcher,
    trim_stop_words,
)
from recordguard.models import CodeLookup, IntentKind, NameLookup, Rejected


# ── Tests: code detection ────────────────────────────────────────────

@pytest.mark.parametrize("text, code", [
    ("Check ABC1234", "ABC1234"),
    ("status of abc123 please", "ABC123"),
    ("AUR9K2", "AUR9K2"),
    ("my code is 12345678!", "12345678"),
    ("(ref: zx9k2q1wer)", "ZX9K2Q1WER"),
    ("Check ABCDEF", "ABCDEF"),
])
def test_classify_code(text, code):
    assert classify(text) == CodeLookup(code)


def test_code_glued_to_letters_is_ignored():
    assert find_code("JoséAB12345") is None


def test_code_too_short_or_too_long_is_ignored():
    assert find_code("AB123") is None
    assert find_code("ABCDEFG123456") is None


def test_ordinary_words_are_not_codes():
    assert find_code("please check my booking") is None
    assert find_code("How is Laura Martinez doing?") is None


def test_code_with_digits_beats_capitalised_word():
    assert find_code("URGENT: check AUR1234") == "AUR1234"


def test_code_wins_over_name():
    assert classify("How is Laura Perez doing with AUR1234?") == CodeLookup("AUR1234")


# ── Tests: name detection ────────────────────────────────────────────

@pytest.mark.parametrize("text, name", [
    ("How is Laura Perez doing?", "Laura Perez"),
    ("How is Laura Martinez doing?", "Laura Martinez"),
    ("Check Status For Laura Perez", "Laura Perez"),
    ("check status for laura perez", "laura perez"),
    ("how is maria doing", "maria"),
    ("find carlos booking", "carlos"),
    ("tell me about ana's appointment", "ana"),
    ("any news on the appointment for jorge", "jorge"),
])
def test_classify_name(text, name):
    assert classify(text) == NameLookup(name)


def test_match_proper_name_needs_two_words():
    assert match_proper_name("Hello there") is None
    assert match_proper_name("ask José Pérez now") == "José Pérez"


def test_trim_stop_words():
    assert trim_stop_words("booking for Laura Perez status") == "Laura Perez"
    assert trim_stop_words("check find") == ""


def test_single_character_candidate_is_rejected():
    assert classify("booking for a") == Rejected(NO_QUERY_FOUND)


def test_first_matching_rule_wins():
    first = template_matcher(r"ask\s+(\w+)")
    second = template_matcher(r"ask\s+\w+\s+(\w+)")
    assert extract_name("ask carla diaz", (first, second)) == "carla"
    assert extract_name("ask carla diaz", (second, first)) == "diaz"


def test_rule_yielding_only_stop_words_falls_through():
    empty = template_matcher(r"(booking)")
    later = template_matcher(r"for\s+(\w+)")
    assert extract_name("booking for pedro", (empty, later)) == "pedro"


# ── Tests: rejection / idempotence ───────────────────────────────────

@pytest.mark.parametrize("text", ["", "   ", "hello", "please check my booking", "123"])
def test_no_query(text):
    intent = classify(text)
    assert isinstance(intent, Rejected)
    assert intent.reason == NO_QUERY_FOUND
    assert intent.kind is None


def test_classify_is_idempotent():
    for text in ["Check ABC1234", "How is Laura Perez doing?", "hello"]:
        assert classify(text) == classify(text)


def test_intent_kinds():
    assert CodeLookup("ABC123").kind == IntentKind.CODE
    assert NameLookup("Laura").kind == IntentKind.NAME
