"""QuestionScheduler — picks the next jurisdiction-specific question.

Different jurisdictions need different extra answers before a
registration can go through (citizenship, ID numbers, county...).  Rather
than branch the chain per jurisdiction, the chain contains one router
step whose pre-transition hook asks the scheduler where to go:

  - the first field in the jurisdiction's requirement list that the user
    has not answered yet, or
  - the router step's ``next`` (the generic continuation) once every
    field is present or the jurisdiction has no list.

Each per-field step stores into ``user.settings.<its own name>`` and
transitions back to the router, so the scan resumes after every answer.
The chain store enforces that contract at load time.
"""

from __future__ import annotations

import logging

from votebot_chains.models.chain import JurisdictionConfig
from votebot_chains.models.conversation import User

logger = logging.getLogger(__name__)


class QuestionScheduler:
    """Jurisdiction-keyed scan over required user settings.

    Args:
        config: the chain's ``jurisdiction`` block
        continuation: step to route to once nothing is left to ask
    """

    def __init__(self, config: JurisdictionConfig, continuation: str) -> None:
        self._field = config.field
        self._continuation = continuation
        # Keys are matched case-insensitively
        self._requirements = {
            key.strip().lower(): list(fields)
            for key, fields in config.requirements.items()
        }

    @property
    def continuation(self) -> str:
        return self._continuation

    def jurisdiction(self, user: User) -> str | None:
        """Return the user's normalized jurisdiction key, if any."""
        value = user.settings.get(self._field)
        if not isinstance(value, str) or not value.strip():
            return None
        return value.strip().lower()

    def requirements_for(self, jurisdiction: str | None) -> list[str]:
        if jurisdiction is None:
            return []
        return self._requirements.get(jurisdiction, [])

    def next_field(self, user: User) -> str | None:
        """Return the first required field the user has not answered.

        Only a missing key counts as unanswered: an empty string or
        ``False`` is an answer.
        """
        for field in self.requirements_for(self.jurisdiction(user)):
            if field not in user.settings:
                return field
        return None

    def next_step(self, user: User) -> str:
        """Step the router should hand over to."""
        field = self.next_field(user)
        if field is None:
            logger.debug(
                "No questions left for jurisdiction %r, continuing to %s",
                self.jurisdiction(user), self._continuation,
            )
            return self._continuation
        return field
