"""MessageRenderer — renders step messages against the user record.

Step messages are Jinja2 templates over the user's fields, for example
``"What's your {{ settings.state }} driver's license number?"`` or
``"Ok {{ first_name }}, what's your last name?"``.  Missing values render
as empty strings rather than failing the turn.
"""

from __future__ import annotations

from typing import Any

import jinja2

from votebot_chains.models.conversation import User


def _finalize(value: Any) -> Any:
    # Render None (e.g. a missing last_name) as an empty string
    return "" if value is None else value


class MessageRenderer:
    """Compiles step templates once and renders them per turn."""

    def __init__(self) -> None:
        self._env = jinja2.Environment(
            undefined=jinja2.ChainableUndefined,
            finalize=_finalize,
            autoescape=False,
            keep_trailing_newline=False,
        )
        self._templates: dict[str, jinja2.Template] = {}

    def context(self, user: User) -> dict[str, Any]:
        """Template variables: the user's fields plus ``fullname``."""
        data = user.model_dump()
        data["fullname"] = " ".join(p for p in (user.first_name, user.last_name) if p)
        return data

    def render(self, template: str, user: User) -> str:
        compiled = self._templates.get(template)
        if compiled is None:
            compiled = self._env.from_string(template)
            self._templates[template] = compiled
        return compiled.render(**self.context(user)).strip()
