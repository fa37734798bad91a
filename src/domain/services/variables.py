"""Variable substitution for ``{{name}}`` placeholders in step templates."""

import re
from collections.abc import Mapping

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


def substitute_variables(text: str, variables: Mapping[str, str]) -> str:
    """Replace ``{{name}}`` with ``variables[name]``.

    Placeholders naming unknown variables are kept verbatim. Never raises.
    """

    def _replace(match: re.Match[str]) -> str:
        value = variables.get(match.group(1))
        return match.group(0) if value is None else value

    return PLACEHOLDER_PATTERN.sub(_replace, text)


def find_placeholders(text: str) -> list[str]:
    """Variable names referenced in ``text``, in order of first appearance."""
    seen: dict[str, None] = {}
    for name in PLACEHOLDER_PATTERN.findall(text):
        seen.setdefault(name, None)
    return list(seen)
