"""Response validation against declarative expectations.

Mismatches are reported as data (booleans plus a reason), never raised. The
only exception is ``ExpectationError`` for an expectation that cannot be
evaluated at all, such as a body regex that does not compile.
"""

import logging
import re

from pydantic import JsonValue

from .exceptions import ExpectationError
from .models import BodyValidation, Expectation, ResponseValidation
from .utils import to_json_text

logger = logging.getLogger(__name__)

NO_EXPECTATION = "No body expectation set."
PARTIAL_MATCH_SUCCEEDED = "Partial/exact body match succeeded."
PARTIAL_MATCH_FAILED = "Partial/exact body match failed."
STRING_MATCH_SUCCEEDED = "Exact string match succeeded."
STRING_MATCH_FAILED = "Exact string match failed."
TYPE_MISMATCH = "Body type mismatch."
REGEX_MATCH_SUCCEEDED = "Regex match succeeded."
REGEX_MATCH_FAILED = "Regex match failed."


def json_equal(a: JsonValue, b: JsonValue) -> bool:
    """Structural equality over JSON values.

    Booleans never equal numbers, ints and floats compare numerically, object
    key order is irrelevant and arrays compare element-wise.
    """
    match a, b:
        case bool(), bool():
            return a == b
        case (bool(), _) | (_, bool()):
            return False
        case int() | float(), int() | float():
            return a == b
        case dict(), dict():
            return a.keys() == b.keys() and all(json_equal(a[key], b[key]) for key in a)
        case list(), list():
            return len(a) == len(b) and all(json_equal(x, y) for x, y in zip(a, b))
        case _:
            return type(a) is type(b) and a == b


def partial_mismatches(expected: dict | list, actual: dict | list) -> list[str] | None:
    """Return the expected keys that are absent or different in ``actual``.

    Objects are compared by key and arrays by index. Returns None when the two
    containers are of different kinds.
    """
    match expected, actual:
        case dict(), dict():
            return [key for key, value in expected.items() if key not in actual or not json_equal(actual[key], value)]
        case list(), list():
            return [str(i) for i, value in enumerate(expected) if i >= len(actual) or not json_equal(actual[i], value)]
        case _:
            return None


def validate_response(status_code: int, content_type: str, expect: Expectation | None) -> ResponseValidation:
    """Check status code (exact) and content type (substring)."""
    if expect is None:
        return ResponseValidation(status=True, content_type=True)

    return ResponseValidation(
        status=expect.status is None or status_code == expect.status,
        content_type=expect.content_type is None or expect.content_type in content_type,
    )


def validate_body(body: JsonValue, expect: Expectation | None) -> BodyValidation:
    """Check a parsed or raw response body against the body expectation.

    ``body_regex`` takes priority over ``body``. An object expectation is a
    partial match, a string expectation is an exact match against the raw text
    or its JSON form.

    Raises:
        ExpectationError: If ``body_regex`` is not a valid regular expression.
    """
    if expect is None:
        return BodyValidation(matched=True, reason=NO_EXPECTATION)

    if expect.body_regex:
        return _validate_regex(body, expect.body_regex)

    match expect.body, body:
        case None, _:
            return BodyValidation(matched=True, reason=NO_EXPECTATION)

        case dict() | list(), dict() | list():
            mismatched = partial_mismatches(expect.body, body)
            if mismatched is None:
                return BodyValidation(matched=False, reason=PARTIAL_MATCH_FAILED)
            if mismatched:
                logger.info(f"Body partial match failed on keys {mismatched}")
                return BodyValidation(matched=False, reason=PARTIAL_MATCH_FAILED, mismatched_keys=mismatched)
            return BodyValidation(matched=True, reason=PARTIAL_MATCH_SUCCEEDED)

        case str(), _:
            matched = body == expect.body or to_json_text(body) == expect.body
            return BodyValidation(matched=matched, reason=STRING_MATCH_SUCCEEDED if matched else STRING_MATCH_FAILED)

        case _:
            return BodyValidation(matched=False, reason=TYPE_MISMATCH)


def _validate_regex(body: JsonValue, pattern: str) -> BodyValidation:
    try:
        regex = re.compile(pattern)
    except re.error as e:
        raise ExpectationError(f"Invalid body regex '{pattern}': {str(e)}") from None

    target = body if isinstance(body, str) else to_json_text(body)
    matched = regex.search(target) is not None
    return BodyValidation(matched=matched, reason=REGEX_MATCH_SUCCEEDED if matched else REGEX_MATCH_FAILED)
