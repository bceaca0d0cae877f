"""
Free-text query classification: booking codes and name lookups.

The classifier is role-agnostic. It only turns text into a SearchIntent;
whether the caller may act on that intent is decided by the authorizer.
"""

import re
from typing import Callable, Optional, Tuple

from recordguard.config import CODE_MAX_LENGTH, CODE_MIN_LENGTH, NAME_STOP_WORDS
from recordguard.models import CodeLookup, NameLookup, Rejected, SearchIntent

NO_QUERY_FOUND = "no query found"

NameMatcher = Callable[[str], Optional[str]]


# ── Code detection ───────────────────────────────────────────────────

_ALNUM_RUN = re.compile(r"[A-Za-z0-9]+")


def code_candidates(text: str):
    """Yield 6-10 char alphanumeric tokens that are not glued to letters."""
    for m in _ALNUM_RUN.finditer(text):
        token = m.group(0)
        if not CODE_MIN_LENGTH <= len(token) <= CODE_MAX_LENGTH:
            continue
        before = text[m.start() - 1] if m.start() > 0 else ""
        after = text[m.end()] if m.end() < len(text) else ""
        if before.isalpha() or after.isalpha():
            continue
        yield token


def find_code(text: str) -> Optional[str]:
    """Return the first code-shaped token, uppercased, or None.

    Tokens carrying a digit win. An all-letter token only counts when it is
    written in capitals and is not an ordinary word, so that "please" or
    "Martinez" are never read as codes.
    """
    tokens = list(code_candidates(text))
    for token in tokens:
        if any(ch.isdigit() for ch in token):
            return token.upper()
    for token in tokens:
        if token.isupper() and token.lower() not in NAME_STOP_WORDS:
            return token
    return None


# ── Name detection ───────────────────────────────────────────────────

_CAPITALISED = r"[A-ZÁÉÍÓÚÑÜ][a-záéíóúñü]+"
_PROPER_NAME = re.compile(rf"\b({_CAPITALISED}(?:\s+{_CAPITALISED})+)\b")

_LETTERS = r"[A-Za-zÀ-ÿ\s]"


def match_proper_name(text: str) -> Optional[str]:
    """Two or more capitalised words in a row, e.g. ``Laura Perez``."""
    m = _PROPER_NAME.search(text)
    return m.group(1) if m else None


def template_matcher(pattern: str) -> NameMatcher:
    compiled = re.compile(pattern, re.IGNORECASE)

    def matcher(text: str) -> Optional[str]:
        m = compiled.search(text)
        return m.group(1) if m else None

    matcher.__name__ = f"template_matcher({pattern!r})"
    return matcher


# First match wins.
NAME_MATCHERS: Tuple[NameMatcher, ...] = (
    match_proper_name,
    template_matcher(rf"(?:how is|how's)\s+({_LETTERS}+?)\s+doing\b"),
    template_matcher(rf"(?:how is|how's)\s+({_LETTERS}+?)(?:'s)?\s+(?:booking|appointment|reservation)"),
    template_matcher(rf"(?:tell me about|give me info on|info about)\s+({_LETTERS}+?)(?:'s)?\s+(?:booking|appointment)"),
    template_matcher(rf"(?:booking|appointment|reservation)\s+(?:for|of|about)\s+({_LETTERS}+)"),
    template_matcher(rf"(?:what is the status of|check status for|status of|status for)\s+({_LETTERS}+)"),
    template_matcher(rf"(?:look up|find|search for)\s+({_LETTERS}+?)(?:'s)?\s+(?:booking|appointment)"),
)


def trim_stop_words(candidate: str) -> str:
    """Drop booking/status words from both ends of a name candidate."""
    words = candidate.split()
    while words and words[0].lower() in NAME_STOP_WORDS:
        words.pop(0)
    while words and words[-1].lower() in NAME_STOP_WORDS:
        words.pop()
    return " ".join(words)


def extract_name(text: str, matchers: Tuple[NameMatcher, ...] = NAME_MATCHERS) -> Optional[str]:
    for matcher in matchers:
        candidate = matcher(text)
        if not candidate:
            continue
        name = trim_stop_words(candidate)
        if len(name) > 1:
            return name
    return None


# ── Entry point ──────────────────────────────────────────────────────

def classify(text: str) -> SearchIntent:
    """Turn raw user text into exactly one SearchIntent."""
    if not text or not text.strip():
        return Rejected(NO_QUERY_FOUND)

    code = find_code(text)
    if code:
        return CodeLookup(code)

    name = extract_name(text)
    if name:
        return NameLookup(name)

    return Rejected(NO_QUERY_FOUND)
