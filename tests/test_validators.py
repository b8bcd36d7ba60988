"""Tests for the validator registry and the validate_step pipeline.

Validators are exercised directly with a ValidationContext; the zip
validator gets a FakeLookup so no network is needed.
"""

import pytest

from helpers.fakes import FailingLookup, FakeLookup

from votebot_chains.constants import NOT_ELIGIBLE_MESSAGE
from votebot_chains.errors import (
    RecoverableDataError,
    TerminalDataError,
    TransportError,
)
from votebot_chains.models.chain import StepDefinition
from votebot_chains.models.transition import Validated
from votebot_chains.validators import (
    VALIDATORS,
    ValidationContext,
    validate_boolean,
    validate_boolean_no,
    validate_boolean_yes,
    validate_date,
    validate_email,
    validate_gender,
    validate_ssn,
    validate_step,
    validate_zip,
)


@pytest.fixture
def ctx():
    return ValidationContext(lookup=FakeLookup())


# =====================================================================
# Field validators
# =====================================================================


class TestDate:
    """Dates are normalized to YYYY/MM/DD."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("06/15/1990", "1990/06/15"),
            ("6-15-1990", "1990/06/15"),
            ("06/15/90", "1990/06/15"),
            ("1990-06-15", "1990/06/15"),
            ("June 5th, 1990", "1990/06/05"),
            ("Jun 5 1990", "1990/06/05"),
        ],
    )
    async def test_accepted_formats(self, ctx, text, expected):
        result = await validate_date(text, ctx)
        assert result.value == expected, f"{text!r} should normalize to {expected}"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["yesterday", "13/45/1990", "1990"])
    async def test_unreadable_dates(self, ctx, text):
        with pytest.raises(RecoverableDataError):
            await validate_date(text, ctx)


class TestEmail:
    @pytest.mark.asyncio
    async def test_valid_email_kept_as_entered(self, ctx):
        result = await validate_email("Ada@Example.com", ctx)
        assert result.value == "Ada@Example.com", "Email should be stored as entered"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["ada", "ada@", "ada@example", "a da@example.com"])
    async def test_invalid_email(self, ctx, text):
        with pytest.raises(RecoverableDataError):
            await validate_email(text, ctx)


class TestBooleans:
    """Plain yes/no and the two eligibility variants."""

    @pytest.mark.asyncio
    async def test_boolean_three_outcomes(self, ctx):
        assert (await validate_boolean("yes", ctx)).value is True, "yes -> True"
        assert (await validate_boolean("nope", ctx)).value is False, "nope -> False"
        with pytest.raises(RecoverableDataError):
            await validate_boolean("purple", ctx)

    @pytest.mark.asyncio
    async def test_boolean_yes_accepts_yes(self, ctx):
        result = await validate_boolean_yes("Yep", ctx)
        assert result.value is True, "A yes should continue with True"

    @pytest.mark.asyncio
    async def test_boolean_yes_no_is_terminal(self, ctx):
        with pytest.raises(TerminalDataError) as exc_info:
            await validate_boolean_yes("no", ctx)
        assert exc_info.value.message == NOT_ELIGIBLE_MESSAGE, "Wrong terminal message"
        assert exc_info.value.end_conversation, "Terminal errors end the conversation"

    @pytest.mark.asyncio
    async def test_boolean_yes_unparseable_is_recoverable(self, ctx):
        with pytest.raises(RecoverableDataError) as exc_info:
            await validate_boolean_yes("what?", ctx)
        assert not exc_info.value.end_conversation, "Recoverable errors keep the conversation"

    @pytest.mark.asyncio
    async def test_boolean_no_mirrors_boolean_yes(self, ctx):
        assert (await validate_boolean_no("no", ctx)).value is False, "A no should continue"
        with pytest.raises(TerminalDataError):
            await validate_boolean_no("yes", ctx)
        with pytest.raises(RecoverableDataError):
            await validate_boolean_no("hmm", ctx)


class TestZip:
    """Syntax check, lookup, and city/state auto-fill."""

    @pytest.mark.asyncio
    async def test_single_place_fills_city_and_state(self, ctx):
        result = await validate_zip("90210", ctx)
        assert result.value == "90210", "Zip value mismatch"
        assert result.extra == {
            "user.settings.city": "Beverly Hills",
            "user.settings.state": "CA",
        }, "Single match should auto-fill city/state"

    @pytest.mark.asyncio
    async def test_multiple_places_leave_city_and_state(self, ctx):
        result = await validate_zip("42223", ctx)
        assert result.value == "42223", "Zip value mismatch"
        assert result.extra == {}, "Ambiguous zip must not auto-fill"

    @pytest.mark.asyncio
    async def test_zero_places_leave_city_and_state(self):
        ctx = ValidationContext(lookup=FakeLookup({"12345": []}))
        result = await validate_zip("12345", ctx)
        assert result.extra == {}, "A zip with no places must not auto-fill"

    @pytest.mark.asyncio
    async def test_zip_plus_four_is_reduced(self, ctx):
        result = await validate_zip("90210-1234", ctx)
        assert result.value == "90210", "ZIP+4 should be cut to five digits"
        assert ctx.lookup.calls == ["90210"], "Lookup should see the five-digit code"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["abc", "9021", "902100"])
    async def test_malformed_zip(self, ctx, text):
        with pytest.raises(RecoverableDataError):
            await validate_zip(text, ctx)
        assert ctx.lookup.calls == [], "Malformed zips never reach the lookup"

    @pytest.mark.asyncio
    async def test_unknown_zip_is_recoverable(self, ctx):
        with pytest.raises(RecoverableDataError) as exc_info:
            await validate_zip("99999", ctx)
        assert "couldn't find" in exc_info.value.message, "Not-found should be explained"

    @pytest.mark.asyncio
    async def test_without_lookup_accepts_valid_syntax(self):
        result = await validate_zip("90210", ValidationContext())
        assert result.value == "90210", "Zip should be accepted as-is"
        assert result.extra == {}, "No lookup means no auto-fill"

    @pytest.mark.asyncio
    async def test_lookup_outage_propagates(self):
        with pytest.raises(TransportError):
            await validate_zip("90210", ValidationContext(lookup=FailingLookup()))


class TestGenderAndSsn:
    @pytest.mark.asyncio
    async def test_gender_canonicalized(self, ctx):
        assert (await validate_gender("f", ctx)).value == "Female", "f -> Female"
        with pytest.raises(RecoverableDataError):
            await validate_gender("banana", ctx)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["123-45-6789", "123456789", "it's 123-456789"])
    async def test_ssn_normalized(self, ctx, text):
        result = await validate_ssn(text, ctx)
        assert result.value == "123-45-6789", f"{text!r} should normalize"

    @pytest.mark.asyncio
    async def test_ssn_missing(self, ctx):
        with pytest.raises(RecoverableDataError):
            await validate_ssn("12-34", ctx)


# =====================================================================
# Pipeline
# =====================================================================


class TestValidateStep:
    """validate_step wraps a validator into a Transition."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("validator", [None, *sorted(VALIDATORS)])
    @pytest.mark.parametrize("body", ["", "   ", "\n\t", None])
    async def test_blank_input_always_recoverable(self, ctx, validator, body):
        step = StepDefinition(name="q", msg="?", errormsg="Answer me", validator=validator, next="q")
        with pytest.raises(RecoverableDataError) as exc_info:
            await validate_step(step, body, ctx)
        assert exc_info.value.message == "Answer me", "Blank input uses the step's errormsg"
        assert ctx.lookup.calls == [], "Blank input never reaches a lookup"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["Ada", "  Ada  ", "123 Main St, Apt 4"])
    async def test_no_validator_stores_trimmed_text(self, ctx, body):
        step = StepDefinition(name="nickname", msg="?", next="done")
        transition = await validate_step(step, body, ctx)
        assert transition.next == "done", "Should advance to the declared next step"
        assert len(transition.assignments) == 1, "Exactly one write expected"
        assignment = transition.assignments[0]
        assert assignment.target == "user.settings.nickname", "Default store target mismatch"
        assert assignment.value == body.strip(), "Value should be the trimmed text"

    @pytest.mark.asyncio
    async def test_explicit_store_target(self, ctx):
        step = StepDefinition(name="intro", msg="?", store="user.first_name", next="x")
        transition = await validate_step(step, "Ada", ctx)
        assert transition.assignments[0].record == "user", "Record kind mismatch"
        assert transition.assignments[0].path == "first_name", "Path mismatch"

    @pytest.mark.asyncio
    async def test_auxiliary_assignments_included(self, ctx):
        step = StepDefinition(name="zip", msg="?", validator="zip", next="address")
        transition = await validate_step(step, "94110", ctx)
        targets = {a.target: a.value for a in transition.assignments}
        assert targets == {
            "user.settings.city": "San Francisco",
            "user.settings.state": "CA",
            "user.settings.zip": "94110",
        }, "Zip answer plus auto-filled city/state expected"

    @pytest.mark.asyncio
    async def test_empty_validator_message_falls_back_to_errormsg(self, ctx, monkeypatch):
        async def picky(text, ctx):
            raise RecoverableDataError()

        monkeypatch.setitem(VALIDATORS, "picky", picky)
        step = StepDefinition(name="q", msg="?", errormsg="Try harder", validator="picky", next="q")
        with pytest.raises(RecoverableDataError) as exc_info:
            await validate_step(step, "something", ctx)
        assert exc_info.value.message == "Try harder", "errormsg should fill an empty message"

    @pytest.mark.asyncio
    async def test_validator_message_wins_over_errormsg(self, ctx):
        step = StepDefinition(name="zip", msg="?", errormsg="Zip please", validator="zip", next="a")
        with pytest.raises(RecoverableDataError) as exc_info:
            await validate_step(step, "abc", ctx)
        assert exc_info.value.message == "That zip code isn't valid", "Validator message expected"

    @pytest.mark.asyncio
    async def test_custom_validator_extras(self, ctx, monkeypatch):
        async def tagging(text, ctx):
            return Validated(value=text.upper(), extra={"conversation.data.tag": "x"})

        monkeypatch.setitem(VALIDATORS, "tagging", tagging)
        step = StepDefinition(name="code", msg="?", validator="tagging", next="b")
        transition = await validate_step(step, "abc", ctx)
        assert [a.target for a in transition.assignments] == [
            "conversation.data.tag",
            "user.settings.code",
        ], "Extras come before the step's own write"
        assert transition.assignments[1].value == "ABC", "Own value should be normalized"
