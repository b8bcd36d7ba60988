"""Exception taxonomy for the conversation chain SDK.

Four classes of failure flow through a turn:

  - RecoverableDataError: the user's answer is malformed or invalid for the
    current step.  The conversation stays put and the user is asked again.
  - TerminalDataError: the answer is valid but disqualifying.  The user gets
    a final message and the conversation is closed.
  - ConfigurationError: a chain references a missing step, validator or
    hook, or a pre-transition chain never settles.  Operators see these in
    the logs; users only ever see the generic apology.
  - TransportError: a collaborator (store, lookup service) failed.  Logged,
    answered with the generic apology, state not advanced.

Validators raise only the two data errors.  The turn engine is the single
place that converts the others into a user-facing apology.
"""

from __future__ import annotations


class ChainError(Exception):
    """Base class for every error raised by the chain SDK."""


class DataError(ChainError):
    """A problem with the data the user handed us, not with the code.

    ``message`` is user-facing and may be empty, in which case the engine
    falls back to the step's ``errormsg`` or to a generic retry prompt.
    """

    #: Whether this error ends the conversation.
    end_conversation: bool = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class RecoverableDataError(DataError):
    """Bad or ambiguous input — retry the same step."""


class TerminalDataError(DataError):
    """Valid but disqualifying input — end the dialogue."""

    end_conversation = True


class ConfigurationError(ChainError):
    """Missing or inconsistent chain definition.  Fatal, never user-facing."""


class TransportError(ChainError):
    """A storage or lookup collaborator failed to deliver."""


class LookupNotFoundError(ChainError):
    """Raised by a lookup collaborator when the requested key is unknown.

    Validators translate this into a :class:`RecoverableDataError`.
    """
