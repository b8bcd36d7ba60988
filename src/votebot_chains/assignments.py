"""Field assignment — applies a transition's writes to their owning records.

Each :class:`FieldAssignment` names a record kind (``user``,
``conversation``) and a dotted path inside it.  :class:`RecordWriters`
groups a transition's assignments by kind and hands each group to the
writer registered for that kind, which merges the values into the record
and persists them with a single store update.

Only a whitelisted set of top-level fields is writable per kind; the
engine owns the rest (ids, the current step, the status).
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from votebot_chains.errors import ConfigurationError
from votebot_chains.interfaces import Stores
from votebot_chains.models.transition import FieldAssignment

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Dotted-path helpers
# ----------------------------------------------------------------------

def get_path(data: Any, path: str) -> Any:
    """Return ``data[a][b]...`` for ``path`` "a.b...", or None if absent."""
    current = data
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def set_path(data: dict[str, Any], path: str, value: Any) -> None:
    """Set ``data[a][b]... = value``, creating intermediate dicts."""
    keys = path.split(".")
    current = data
    for key in keys[:-1]:
        child = current.get(key)
        if not isinstance(child, dict):
            child = {}
            current[key] = child
        current = child
    current[keys[-1]] = value


# ----------------------------------------------------------------------
# Writers
# ----------------------------------------------------------------------

class RecordWriter(ABC):
    """Merges assignments into one record kind and persists them."""

    #: Top-level fields chains are allowed to write.
    writable: frozenset[str] = frozenset()

    def build_patch(self, record: BaseModel, assignments: list[FieldAssignment]) -> dict[str, Any]:
        """Return the partial record (touched top-level keys only)."""
        data = record.model_dump()
        touched: list[str] = []
        for assignment in assignments:
            top = assignment.path.split(".", 1)[0]
            if top not in self.writable:
                raise ConfigurationError(
                    f"Field '{assignment.target}' is not writable from a chain"
                )
            if top not in touched:
                touched.append(top)
                # Deep-copy so the caller's record is never mutated in place
                data[top] = copy.deepcopy(data[top])
            set_path(data, assignment.path, assignment.value)
        return {key: data[key] for key in touched}

    @abstractmethod
    async def write(self, stores: Stores, record: Any, assignments: list[FieldAssignment]) -> Any:
        ...


class UserWriter(RecordWriter):
    writable = frozenset({"first_name", "last_name", "settings"})

    async def write(self, stores, record, assignments):
        patch = self.build_patch(record, assignments)
        return await stores.users.update(record.id, patch)


class ConversationWriter(RecordWriter):
    writable = frozenset({"data"})

    async def write(self, stores, record, assignments):
        patch = self.build_patch(record, assignments)
        return await stores.conversations.update(record.id, patch)


class RecordWriters:
    """Registry of writable record kinds.

    Args:
        writers: kind → writer mapping.  Defaults to ``user`` and
            ``conversation``.
    """

    def __init__(self, writers: dict[str, RecordWriter] | None = None) -> None:
        if writers is None:
            writers = {"user": UserWriter(), "conversation": ConversationWriter()}
        self._writers = writers

    @property
    def kinds(self) -> set[str]:
        return set(self._writers)

    def writable(self, kind: str) -> frozenset[str]:
        """Top-level fields of ``kind`` a chain may write."""
        return self._writers[kind].writable

    async def apply(
        self,
        stores: Stores,
        assignments: list[FieldAssignment],
        records: dict[str, Any],
    ) -> dict[str, Any]:
        """Apply ``assignments`` and return ``records`` with updated values.

        ``records`` maps kind → current record (e.g. ``{"user": user}``).
        Assignments to a kind with no writer, or with no record in
        ``records``, are logged and dropped.
        """
        grouped: dict[str, list[FieldAssignment]] = {}
        for assignment in assignments:
            if assignment.record not in self._writers or records.get(assignment.record) is None:
                logger.warning(
                    "Dropping assignment to unsupported record '%s'", assignment.target,
                )
                continue
            grouped.setdefault(assignment.record, []).append(assignment)

        updated = dict(records)
        for kind, group in grouped.items():
            updated[kind] = await self._writers[kind].write(stores, updated[kind], group)
        return updated
