"""Pre-transition hooks — step-level redirects evaluated before a step is shown.

A hook is bound to its step when the chain is loaded and is then called
as ``hook(transition, conversation, user)``.  It returns the name of a
step to go to instead, or ``None`` to show its own step.  Hooks are pure
functions of their arguments and perform no I/O.

Chain YAML refers to hooks by name (``pre_transition: jurisdiction``);
:data:`HOOKS` maps each name to a factory that binds the hook to a step.
"""

from __future__ import annotations

from typing import Callable, Optional

from votebot_chains.assignments import get_path
from votebot_chains.errors import ConfigurationError
from votebot_chains.models.chain import ChainDefinition, StepDefinition
from votebot_chains.models.conversation import Conversation, User
from votebot_chains.models.transition import Transition
from votebot_chains.scheduler import QuestionScheduler

PreTransitionHook = Callable[[Transition, Optional[Conversation], User], Optional[str]]
HookFactory = Callable[[StepDefinition, ChainDefinition], PreTransitionHook]


def skip_when_answered(step: StepDefinition, chain: ChainDefinition) -> PreTransitionHook:
    """Skip the step when its own user field already holds a value.

    Used for city/state, which the zip lookup may have filled in already.
    """
    record, _, path = step.store_path.partition(".")
    if record != "user":
        raise ConfigurationError(
            f"{chain.name}.{step.name}: skip_when_answered needs a user.* store, "
            f"got '{step.store_path}'"
        )
    if not step.next:
        raise ConfigurationError(f"{chain.name}.{step.name}: skip_when_answered needs a next step")

    def hook(transition: Transition, conversation: Conversation | None, user: User) -> str | None:
        if get_path(user.model_dump(), path):
            return step.next
        return None

    return hook


def jurisdiction(step: StepDefinition, chain: ChainDefinition) -> PreTransitionHook:
    """Route through the jurisdiction's outstanding questions.

    The hook always overrides: to the next unanswered field, or to the
    step's ``next`` once none remain.  The router step itself is never
    shown.
    """
    if chain.jurisdiction is None or chain.jurisdiction.step != step.name:
        raise ConfigurationError(
            f"{chain.name}.{step.name}: jurisdiction hook used on a step that is "
            f"not the chain's jurisdiction router"
        )
    if not step.next:
        raise ConfigurationError(
            f"{chain.name}.{step.name}: jurisdiction router needs a continuation (next)"
        )
    scheduler = QuestionScheduler(chain.jurisdiction, continuation=step.next)

    def hook(transition: Transition, conversation: Conversation | None, user: User) -> str | None:
        return scheduler.next_step(user)

    return hook


HOOKS: dict[str, HookFactory] = {
    "skip_when_answered": skip_when_answered,
    "jurisdiction": jurisdiction,
}
