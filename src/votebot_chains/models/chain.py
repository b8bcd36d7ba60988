"""Chain definition models — the typed form of ``chains/*.yaml``.

A chain is an ordered list of steps.  Each step asks one question
(``msg``), validates the answer (``validator``), stores it (``store``) and
names the step that follows (``next``).  A step may also carry a
``pre_transition`` hook that can redirect the conversation before the step
is shown; this is how conditional skipping and the jurisdiction scheduler
work.

The models are frozen: a loaded chain never changes at runtime.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from votebot_chains.constants import DEFAULT_STORE_PREFIX


class StepDefinition(BaseModel):
    """One named step of a chain."""

    model_config = ConfigDict(frozen=True)

    name: str
    # jinja2 template rendered against the user record, e.g.
    # "What's your {{settings.state}} driver's license number?"
    msg: Optional[str] = None
    # Shown (with a retry suffix) when the answer fails validation
    errormsg: str = ""
    # Dotted target for the answer; defaults to user.settings.<name>
    store: Optional[str] = None
    next: Optional[str] = None
    # Names resolved against the validator / hook registries at load time
    validator: Optional[str] = None
    pre_transition: Optional[str] = None
    final: bool = False

    @property
    def store_path(self) -> str:
        """Dotted path the step's answer is written to."""
        return self.store or f"{DEFAULT_STORE_PREFIX}{self.name}"


class JurisdictionConfig(BaseModel):
    """Per-jurisdiction question scheduling for one chain.

    ``requirements`` maps a jurisdiction key (e.g. "ca") to the ordered
    list of step names that must be answered before the router step lets
    the conversation continue to its ``next``.
    """

    model_config = ConfigDict(frozen=True)

    step: str
    field: str = "state"
    requirements: dict[str, list[str]] = Field(default_factory=dict)


class ChainDefinition(BaseModel):
    """A full dialogue script as loaded from YAML."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    start: str
    # Optional text sent back when the user cancels
    cancel_msg: Optional[str] = None
    jurisdiction: Optional[JurisdictionConfig] = None
    steps: list[StepDefinition]
