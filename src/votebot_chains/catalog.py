"""ChainStore — loads chain YAML files into typed, validated chains.

This is the single source of truth for chain data at runtime.  The store
is loaded once at startup and provides lookup by chain and step name.

Usage::

    store = ChainStore()            # defaults to the packaged chains/ dir
    store.load()                    # parse and validate every *.yaml

    chain = store.get_chain("vote_1")
    step = chain.get_step("zip")

Chain-authoring contracts are checked here, at load time, rather than
discovered at runtime as a stuck or looping conversation (see
:meth:`ChainStore._validate`).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from votebot_chains.assignments import RecordWriters
from votebot_chains.constants import CHAINS_DIR, DEFAULT_STORE_PREFIX
from votebot_chains.errors import ConfigurationError
from votebot_chains.hooks import HOOKS, PreTransitionHook
from votebot_chains.models.chain import ChainDefinition, StepDefinition
from votebot_chains.models.transition import FieldAssignment
from votebot_chains.validators import VALIDATORS

logger = logging.getLogger(__name__)

# Hook name that marks a step as the jurisdiction router
_ROUTER_HOOK = "jurisdiction"


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


class Chain:
    """A loaded chain: its definition plus the hooks bound to its steps."""

    def __init__(self, definition: ChainDefinition, hooks: dict[str, PreTransitionHook]) -> None:
        self.definition = definition
        self._steps = {step.name: step for step in definition.steps}
        self._hooks = hooks

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def start(self) -> str:
        return self.definition.start

    @property
    def steps(self) -> list[StepDefinition]:
        """Steps in YAML order."""
        return list(self.definition.steps)

    def has_step(self, name: str) -> bool:
        return name in self._steps

    def get_step(self, name: str) -> StepDefinition:
        """Look up a step by name.

        Raises:
            ConfigurationError: if the chain has no such step.
        """
        try:
            return self._steps[name]
        except KeyError:
            raise ConfigurationError(f"Could not load step: {self.name}.{name}") from None

    def hook_for(self, name: str) -> PreTransitionHook | None:
        return self._hooks.get(name)

    def __repr__(self) -> str:
        return f"<Chain(name={self.name!r}, steps={len(self._steps)})>"


class ChainStore:
    """Loads every ``*.yaml`` chain in a directory and provides typed lookup.

    Attributes populated after :meth:`load`:

        chains — dict[name, Chain]
    """

    def __init__(self, chains_dir: str | Path | None = None) -> None:
        self._base = Path(chains_dir) if chains_dir is not None else CHAINS_DIR
        self._writers = RecordWriters()
        self.chains: dict[str, Chain] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Parse and validate every chain file under the chain directory.

        Raises ``FileNotFoundError`` if the directory is missing and
        ``ConfigurationError`` if any chain breaks an authoring contract.
        """
        if not self._base.is_dir():
            raise FileNotFoundError(f"Missing chain directory: {self._base}")
        for path in sorted(self._base.glob("*.yaml")):
            self.add(load_yaml(path), source=path.name)
        logger.info(
            "ChainStore loaded: %d chains (%s)",
            len(self.chains), ", ".join(sorted(self.chains)),
        )

    def add(self, raw: dict[str, Any] | ChainDefinition, *, source: str = "<memory>") -> Chain:
        """Validate one chain definition and register it."""
        if isinstance(raw, ChainDefinition):
            definition = raw
        else:
            try:
                definition = ChainDefinition(**raw)
            except (TypeError, ValidationError) as exc:
                raise ConfigurationError(f"Invalid chain definition in {source}: {exc}") from exc

        self._validate(definition)
        hooks = {
            step.name: HOOKS[step.pre_transition](step, definition)
            for step in definition.steps
            if step.pre_transition
        }
        chain = Chain(definition, hooks)
        self.chains[chain.name] = chain
        return chain

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(self, chain: ChainDefinition) -> None:
        """Enforce the chain-authoring contracts.

        - step names are unique; ``start`` and every ``next`` exist
        - every shown step has a message; every non-final step a ``next``
        - validator / hook names exist in their registries
        - store targets name a writable record kind
        - the jurisdiction router has no message, and every step it can
          route to stores into ``user.settings.<own name>`` and returns to
          the router (otherwise the scheduler would ask forever)
        """
        name = chain.name
        steps: dict[str, StepDefinition] = {}
        for step in chain.steps:
            if step.name in steps:
                raise ConfigurationError(f"{name}: duplicate step '{step.name}'")
            steps[step.name] = step

        if chain.start not in steps:
            raise ConfigurationError(f"{name}: start step '{chain.start}' does not exist")

        for step in chain.steps:
            where = f"{name}.{step.name}"
            is_router = step.pre_transition == _ROUTER_HOOK

            if step.next is not None and step.next not in steps:
                raise ConfigurationError(f"{where}: next step '{step.next}' does not exist")
            if not step.final and not step.next:
                raise ConfigurationError(f"{where}: non-final step has no next step")
            if not is_router and not step.msg:
                raise ConfigurationError(f"{where}: step has no message")
            if is_router and step.msg:
                raise ConfigurationError(f"{where}: jurisdiction router must not have a message")

            if step.validator is not None and step.validator not in VALIDATORS:
                raise ConfigurationError(f"{where}: unknown validator '{step.validator}'")
            if step.pre_transition is not None and step.pre_transition not in HOOKS:
                raise ConfigurationError(f"{where}: unknown pre_transition hook '{step.pre_transition}'")

            try:
                target = FieldAssignment.parse(step.store_path, None)
            except ValueError as exc:
                raise ConfigurationError(f"{where}: {exc}") from exc
            if target.record not in self._writers.kinds:
                raise ConfigurationError(
                    f"{where}: store target '{step.store_path}' names an unknown record"
                )
            if target.path.split(".", 1)[0] not in self._writers.writable(target.record):
                raise ConfigurationError(
                    f"{where}: store target '{step.store_path}' is not writable from a chain"
                )

        if chain.jurisdiction is not None:
            self._validate_jurisdiction(chain, steps)

    def _validate_jurisdiction(self, chain: ChainDefinition, steps: dict[str, StepDefinition]) -> None:
        config = chain.jurisdiction
        router = steps.get(config.step)
        if router is None:
            raise ConfigurationError(
                f"{chain.name}: jurisdiction router '{config.step}' does not exist"
            )
        if router.pre_transition != _ROUTER_HOOK:
            raise ConfigurationError(
                f"{chain.name}.{router.name}: jurisdiction router must use the "
                f"'{_ROUTER_HOOK}' pre_transition hook"
            )

        for key, fields in config.requirements.items():
            for field in fields:
                where = f"{chain.name}: jurisdiction '{key}' field '{field}'"
                step = steps.get(field)
                if step is None:
                    raise ConfigurationError(f"{where} has no step of the same name")
                if step.store_path != f"{DEFAULT_STORE_PREFIX}{field}":
                    raise ConfigurationError(
                        f"{where} must store into '{DEFAULT_STORE_PREFIX}{field}', "
                        f"not '{step.store_path}'"
                    )
                if step.next != router.name:
                    raise ConfigurationError(
                        f"{where} must return to '{router.name}', not '{step.next}'"
                    )

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def chain_names(self) -> list[str]:
        return sorted(self.chains)

    def get_chain(self, name: str) -> Chain:
        """Look up a loaded chain by name.

        Raises:
            ConfigurationError: if no chain with that name was loaded.
        """
        try:
            return self.chains[name]
        except KeyError:
            raise ConfigurationError(f"Could not load chain: {name}") from None
