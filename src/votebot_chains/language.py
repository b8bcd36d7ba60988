"""Small natural-language helpers for SMS answers.

Answers arrive as free text ("Yep!", "nope", "STOP").  These helpers
normalize case and punctuation and match against short word tables.
"""

from __future__ import annotations

import re

_YES_WORDS = {
    "y", "yes", "yeah", "yea", "yep", "yup", "ya", "sure", "ok", "okay",
    "correct", "true", "affirmative", "absolutely", "definitely", "si",
}
_YES_PHRASES = {"i am", "i do", "of course", "that's right", "thats right"}

_NO_WORDS = {
    "n", "no", "nope", "nah", "negative", "false", "never", "not",
}
_NO_PHRASES = {"i am not", "i'm not", "im not", "i do not", "i don't", "i dont"}

# Carrier-standard SMS opt-out keywords.
_CANCEL_WORDS = {"stop", "stopall", "cancel", "quit", "unsubscribe", "end"}

# Canonical gender labels and the spellings that map to them.
_GENDERS: dict[str, str] = {
    "m": "Male",
    "male": "Male",
    "man": "Male",
    "boy": "Male",
    "guy": "Male",
    "f": "Female",
    "female": "Female",
    "woman": "Female",
    "girl": "Female",
    "lady": "Female",
}

_PUNCT = re.compile(r"[^\w\s']+")


def normalize(text: str | None) -> str:
    """Lower-case, strip punctuation and collapse whitespace."""
    if not text:
        return ""
    cleaned = _PUNCT.sub(" ", text.lower())
    return " ".join(cleaned.split())


def _matches(text: str | None, words: set[str], phrases: set[str]) -> bool:
    norm = normalize(text)
    if not norm:
        return False
    if norm in words or norm in phrases:
        return True
    if any(norm.startswith(p + " ") for p in phrases):
        return True
    return norm.split(" ", 1)[0] in words


def is_yes(text: str | None) -> bool:
    """True if the answer reads as an affirmative."""
    if _matches(text, set(), _NO_PHRASES):
        return False
    return _matches(text, _YES_WORDS, _YES_PHRASES)


def is_no(text: str | None) -> bool:
    """True if the answer reads as a negative."""
    return _matches(text, _NO_WORDS, _NO_PHRASES)


def is_cancel(text: str | None) -> bool:
    """True only when the whole message is an opt-out keyword."""
    return normalize(text) in _CANCEL_WORDS


def get_gender(text: str | None) -> str | None:
    """Map a free-text gender answer to "Male"/"Female", or None."""
    return _GENDERS.get(normalize(text))
