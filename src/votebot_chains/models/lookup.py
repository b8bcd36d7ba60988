"""Lookup models — what a postal-code lookup collaborator returns."""

from pydantic import BaseModel, Field


class Place(BaseModel):
    """A city/state pair a postal code maps to."""

    city: str | None = None
    state: str | None = None


class PostalCode(BaseModel):
    """A resolved postal code with every place it covers.

    A code may span several places; callers must not assume a location
    unless exactly one is returned.
    """

    code: str
    places: list[Place] = Field(default_factory=list)
