"""Transition models — the validated outcome of one turn.

A validator produces a :class:`Validated` value; the pipeline turns it into
a :class:`Transition` naming the next step and the field writes to apply.
Field writes are ``(record, path, value)`` triples so a single turn can
update more than one record kind.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class FieldAssignment(BaseModel):
    """One field write, e.g. record="user", path="settings.city"."""

    record: str
    path: str
    value: Any = None

    @classmethod
    def parse(cls, target: str, value: Any) -> "FieldAssignment":
        """Split a dotted target such as ``user.settings.city``.

        The first segment names the record kind; the rest is the path
        inside that record.
        """
        record, sep, path = target.partition(".")
        if not sep or not record or not path:
            raise ValueError(f"Invalid assignment target: '{target}'")
        return cls(record=record, path=path, value=value)

    @property
    def target(self) -> str:
        return f"{self.record}.{self.path}"


class Validated(BaseModel):
    """Result of a successful validator run.

    ``value`` is the normalized answer for the step's own field.
    ``extra`` holds auxiliary writes keyed by dotted target (for instance
    the city/state a postal code resolves to).
    """

    value: Any
    extra: dict[str, Any] = Field(default_factory=dict)


class Transition(BaseModel):
    """Pending move to ``next`` plus the writes that go with it."""

    next: Optional[str] = None
    assignments: list[FieldAssignment] = Field(default_factory=list)
