import json
from collections.abc import Mapping
from functools import lru_cache
from typing import Any

import jmespath
import jmespath.parser


@lru_cache(maxsize=256)
def compile_dot_path(path: str) -> jmespath.parser.ParsedResult:
    """Compile a dot-separated field path into a JMESPath expression.

    Every segment becomes a quoted identifier, so keys containing dashes,
    spaces or digits are addressed literally and array indexing is not
    available.
    """
    expression = ".".join(json.dumps(segment) for segment in path.split("."))
    return jmespath.compile(expression)


def lookup_path(obj: Any, path: str) -> Any:
    """Walk ``path`` through nested objects, returning None when any segment is missing."""
    if not isinstance(obj, Mapping):
        return None
    return compile_dot_path(path).search(obj)


def to_json_text(value: Any) -> str:
    """Compact JSON serialization used wherever a structured value is compared or sent as text."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
