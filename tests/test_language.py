"""Tests for the SMS answer helpers in votebot_chains.language."""

import pytest

from votebot_chains import language


class TestYesNo:
    """is_yes / is_no on the answers people actually text."""

    @pytest.mark.parametrize("text", ["yes", "Yes!", "YEP", "y", "sure thing", "I am", "ok"])
    def test_affirmatives(self, text):
        assert language.is_yes(text), f"{text!r} should read as yes"
        assert not language.is_no(text), f"{text!r} should not read as no"

    @pytest.mark.parametrize("text", ["no", "Nope.", "n", "nah", "I'm not", "i do not"])
    def test_negatives(self, text):
        assert language.is_no(text), f"{text!r} should read as no"
        assert not language.is_yes(text), f"{text!r} should not read as yes"

    @pytest.mark.parametrize("text", ["maybe", "purple", "", None, "   "])
    def test_neither(self, text):
        assert not language.is_yes(text), f"{text!r} should not read as yes"
        assert not language.is_no(text), f"{text!r} should not read as no"


class TestCancel:
    """Opt-out keywords only count as the whole message."""

    @pytest.mark.parametrize("text", ["stop", "STOP", "Cancel.", " quit ", "unsubscribe", "stopall"])
    def test_cancel_words(self, text):
        assert language.is_cancel(text), f"{text!r} should cancel"

    @pytest.mark.parametrize("text", ["stop asking me", "don't stop", "94110", "", None])
    def test_not_cancel(self, text):
        assert not language.is_cancel(text), f"{text!r} should not cancel"


class TestGender:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("male", "Male"),
            ("M", "Male"),
            ("Man", "Male"),
            ("female", "Female"),
            ("f", "Female"),
            ("Woman.", "Female"),
        ],
    )
    def test_canonical_labels(self, text, expected):
        assert language.get_gender(text) == expected, f"{text!r} should map to {expected}"

    def test_unknown_returns_none(self):
        assert language.get_gender("dunno") is None, "Unknown answers map to None"
