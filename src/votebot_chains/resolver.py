"""StepResolver — turns a requested next step into the step actually shown.

A requested step may carry a pre-transition hook that redirects to a
different step (skip an answered question, route through the
jurisdiction questions).  The resolver follows redirects until it reaches
a step that keeps itself, then hands that step back to the engine.

The walk is synchronous and does no I/O.  It is bounded: a chain whose
hooks keep redirecting (a cycle) fails with a ``ConfigurationError``
after ``max_redirects`` hops instead of recursing forever.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from votebot_chains.catalog import Chain
from votebot_chains.constants import MAX_REDIRECTS
from votebot_chains.errors import ConfigurationError
from votebot_chains.models.chain import StepDefinition
from votebot_chains.models.conversation import Conversation, User
from votebot_chains.models.transition import Transition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedStep:
    """The concrete step to show, with its name."""

    name: str
    step: StepDefinition


class StepResolver:
    """Follows pre-transition redirects to a concrete step.

    Args:
        max_redirects: hooks may redirect at most this many times per call
    """

    def __init__(self, max_redirects: int = MAX_REDIRECTS) -> None:
        self._max_redirects = max_redirects

    def resolve(
        self,
        chain: Chain,
        name: str,
        *,
        transition: Transition | None = None,
        conversation: Conversation | None = None,
        user: User,
    ) -> ResolvedStep:
        """Resolve ``name`` in ``chain``.

        Raises:
            ConfigurationError: unknown step, too many redirects, or the
                resolved step has no message to show.
        """
        if transition is None:
            transition = Transition(next=name)

        path = [name]
        current = name
        while True:
            step = chain.get_step(current)
            hook = chain.hook_for(current)
            override = hook(transition, conversation, user) if hook is not None else None
            if override is None:
                break

            if len(path) > self._max_redirects:
                raise ConfigurationError(
                    f"{chain.name}: pre-transition redirects did not settle after "
                    f"{self._max_redirects} hops ({' -> '.join(path)})"
                )
            logger.debug("%s.%s redirected to %s", chain.name, current, override)
            # Hooks further down see the redirected request
            transition = transition.model_copy(update={"next": override})
            current = override
            path.append(current)

        if not step.msg:
            raise ConfigurationError(f"{chain.name}.{current}: resolved step has no message")
        return ResolvedStep(name=current, step=step)
