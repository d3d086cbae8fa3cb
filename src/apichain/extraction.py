import logging
from collections.abc import Mapping
from typing import Any

from pydantic import JsonValue

from .utils import lookup_path

logger = logging.getLogger(__name__)


def extract_fields(body: JsonValue, extract_map: Mapping[str, str]) -> dict[str, JsonValue]:
    """Pull named values out of a parsed response body by dot-path.

    A missing segment yields None for that variable instead of an error.
    """
    result: dict[str, JsonValue] = {}
    for var_name, path in extract_map.items():
        value = lookup_path(body, path)
        if value is None:
            logger.info(f"Path '{path}' not found in response body, {var_name} = None")
        else:
            logger.info(f"Saved {var_name} = {value}")
        result[var_name] = value
    return result


def build_step_scope(
    name: str,
    extracted: Mapping[str, JsonValue],
    body: JsonValue,
    status: int,
    content_type: str,
) -> dict[str, Any]:
    """Build the scope updates contributed by one finished step.

    Extracted values land both as flat names and inside an object keyed by the
    step name, which also carries the step's body, status and content type.
    """
    updates: dict[str, Any] = dict(extracted)
    updates[name] = {
        **extracted,
        "body": body,
        "status": status,
        "contentType": content_type,
    }
    return updates
