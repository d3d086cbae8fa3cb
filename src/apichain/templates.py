"""Template substitution for request URLs, header values and string bodies."""

import re
from collections.abc import Mapping
from typing import Any

from .utils import lookup_path, to_json_text

# Pattern for matching template tokens with named groups
TEMPLATE_PATTERN = r"(?P<open>\{\{)\s*(?P<path>[\w.]+)\s*(?P<close>\}\})"
TEMPLATE_REGEX = re.compile(TEMPLATE_PATTERN)


def contains_template(value: str) -> bool:
    """Check if a string contains any template token."""
    return TEMPLATE_REGEX.search(value) is not None


def render_value(value: Any) -> str:
    match value:
        case None:
            return ""
        case str():
            return value
        case bool():
            return "true" if value else "false"
        case float() if value.is_integer():
            return str(int(value))
        case dict() | list():
            return to_json_text(value)
        case _:
            return str(value)


def resolve(template: str, scope: Mapping[str, Any]) -> str:
    """Substitute every ``{{ path }}`` token in ``template`` with its value from ``scope``.

    The first path segment names a scope entry and the remaining segments walk
    nested object fields. A missing value renders as an empty string.
    """

    def _repl(match: re.Match[str]) -> str:
        return render_value(lookup_path(scope, match.group("path")))

    return TEMPLATE_REGEX.sub(_repl, template)


def resolve_headers(headers: Mapping[str, str], scope: Mapping[str, Any]) -> dict[str, str]:
    return {name: resolve(value, scope) for name, value in headers.items()}
