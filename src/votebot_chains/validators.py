"""Validator pipeline — turns a raw SMS answer into a :class:`Transition`.

Every step answer goes through :func:`validate_step`:

  1. trim the message; blank input is always a ``RecoverableDataError``
  2. run the step's named validator (or keep the trimmed text verbatim)
  3. build the transition: the step's ``next`` plus one assignment for the
     step's own field and one per auxiliary value the validator returned

Validators are ``async (text, ctx) -> Validated`` and raise only
``RecoverableDataError`` or ``TerminalDataError``.  They are registered by
name in :data:`VALIDATORS`, which is what chain YAML files refer to.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable

from votebot_chains import language
from votebot_chains.constants import NOT_ELIGIBLE_MESSAGE
from votebot_chains.errors import (
    LookupNotFoundError,
    RecoverableDataError,
    TerminalDataError,
)
from votebot_chains.interfaces import PlaceLookup
from votebot_chains.models.chain import StepDefinition
from votebot_chains.models.transition import FieldAssignment, Transition, Validated

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationContext:
    """Services a validator may need.  ``lookup`` backs the zip validator."""

    lookup: PlaceLookup | None = None


Validator = Callable[[str, ValidationContext], Awaitable[Validated]]


# Accepted date spellings, tried in order.  Month-first, as users in the
# US write them.
_DATE_FORMATS = [
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%m.%d.%Y",
    "%m/%d/%y",
    "%m-%d-%y",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
]

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_ZIP_RE = re.compile(r"^[0-9]{5}$")
_SSN_RE = re.compile(r"([0-9]{3})-?([0-9]{2})-?([0-9]{4})")


# ----------------------------------------------------------------------
# Field validators
# ----------------------------------------------------------------------

async def validate_text(text: str, ctx: ValidationContext) -> Validated:
    """Free text — blank input is already rejected by the pipeline."""
    return Validated(value=text)


async def validate_date(text: str, ctx: ValidationContext) -> Validated:
    """Parse a date and normalize it to ``YYYY/MM/DD``."""
    # "June 5th, 1990" -> "June 5 1990"
    cleaned = re.sub(r"(\d)(st|nd|rd|th)\b", r"\1", text.replace(",", " "), flags=re.I)
    cleaned = " ".join(cleaned.split())
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
        return Validated(value=parsed.strftime("%Y/%m/%d"))
    raise RecoverableDataError("We couldn't read that date")


async def validate_email(text: str, ctx: ValidationContext) -> Validated:
    if not _EMAIL_RE.match(text):
        raise RecoverableDataError("Please enter your email address")
    return Validated(value=text)


def _parse_yes_no(text: str) -> bool | None:
    """Return True/False for yes/no, or None when the answer is neither."""
    yes = language.is_yes(text)
    no = language.is_no(text)
    if yes == no:
        return None
    return yes


async def validate_boolean(text: str, ctx: ValidationContext) -> Validated:
    """Plain yes/no question."""
    answer = _parse_yes_no(text)
    if answer is None:
        raise RecoverableDataError("Please answer yes or no")
    return Validated(value=answer)


async def validate_boolean_yes(text: str, ctx: ValidationContext) -> Validated:
    """Eligibility question where only "yes" lets the user continue."""
    answer = _parse_yes_no(text)
    if answer is None:
        raise RecoverableDataError("Please answer yes or no")
    if not answer:
        raise TerminalDataError(NOT_ELIGIBLE_MESSAGE)
    return Validated(value=True)


async def validate_boolean_no(text: str, ctx: ValidationContext) -> Validated:
    """Eligibility question where only "no" lets the user continue."""
    answer = _parse_yes_no(text)
    if answer is None:
        raise RecoverableDataError("Please answer yes or no")
    if answer:
        raise TerminalDataError(NOT_ELIGIBLE_MESSAGE)
    return Validated(value=False)


async def validate_zip(text: str, ctx: ValidationContext) -> Validated:
    """Check a US zip code and auto-fill city/state when it is unambiguous.

    ZIP+4 input ("90210-1234") is reduced to the five-digit code.  City
    and state are only filled in when the code maps to exactly one place;
    zero or several places leave them for the user to answer.
    """
    code = re.sub(r"-.*", "", text).strip()
    if not _ZIP_RE.match(code):
        raise RecoverableDataError("That zip code isn't valid")
    if ctx.lookup is None:
        # No lookup configured: accept the syntactically valid code as-is
        return Validated(value=code)

    try:
        found = await ctx.lookup.find(code)
    except LookupNotFoundError:
        raise RecoverableDataError("We couldn't find that zip code")

    extra: dict[str, str] = {}
    if len(found.places) == 1:
        place = found.places[0]
        if place.city:
            extra["user.settings.city"] = place.city
        if place.state:
            extra["user.settings.state"] = place.state
    else:
        logger.debug("zip %s maps to %d places, not auto-filling", code, len(found.places))
    return Validated(value=found.code or code, extra=extra)


async def validate_gender(text: str, ctx: ValidationContext) -> Validated:
    gender = language.get_gender(text)
    if not gender:
        raise RecoverableDataError("Please enter your gender as male or female")
    return Validated(value=gender)


async def validate_ssn(text: str, ctx: ValidationContext) -> Validated:
    """Find an SSN in the text and normalize it to ``NNN-NN-NNNN``."""
    match = _SSN_RE.search(text)
    if match is None:
        raise RecoverableDataError("Please enter your SSN")
    return Validated(value="-".join(match.groups()))


# Registry used by chain YAML files (``validator: zip``).
VALIDATORS: dict[str, Validator] = {
    "text": validate_text,
    "date": validate_date,
    "email": validate_email,
    "boolean": validate_boolean,
    "boolean_yes": validate_boolean_yes,
    "boolean_no": validate_boolean_no,
    "zip": validate_zip,
    "gender": validate_gender,
    "ssn": validate_ssn,
}


# ----------------------------------------------------------------------
# Pipeline
# ----------------------------------------------------------------------

async def validate_step(
    step: StepDefinition,
    body: str | None,
    ctx: ValidationContext,
) -> Transition:
    """Validate ``body`` against ``step`` and build the resulting transition.

    Raises:
        RecoverableDataError: blank or invalid input.  Falls back to the
            step's ``errormsg`` when the validator gave no message.
        TerminalDataError: disqualifying input.
    """
    text = (body or "").strip()
    if not text:
        raise RecoverableDataError(step.errormsg)

    if step.validator is None:
        validated = Validated(value=text)
    else:
        validator = VALIDATORS[step.validator]
        try:
            validated = await validator(text, ctx)
        except RecoverableDataError as exc:
            if not exc.message and step.errormsg:
                raise RecoverableDataError(step.errormsg) from exc
            raise

    assignments = [FieldAssignment.parse(target, value) for target, value in validated.extra.items()]
    assignments.append(FieldAssignment.parse(step.store_path, validated.value))
    return Transition(next=step.next, assignments=assignments)
