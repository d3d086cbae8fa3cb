"""HTTP execution on top of httpx.

The executor performs exactly one request per call and reports transport
failures as ``TransportError`` or ``RequestTimeoutError``. Redirects follow
the httpx default (not followed).
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import JsonValue

from .constants import JSON_CONTENT_TYPE
from .exceptions import RequestTimeoutError, TransportError
from .utils import to_json_text

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    raw_body: str = ""
    elapsed_ms: float = 0

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")


def encode_body(data: JsonValue) -> tuple[bytes, str] | None:
    """Encode request data and pick its default content type.

    Returns None when there is nothing to send, which includes falsy scalars
    such as ``false`` and ``0``. Objects and arrays are sent as
    compact JSON, everything else as plain text.
    """
    match data:
        case None | "" | False | 0:
            return None
        case str():
            return data.encode("utf-8"), "text/plain"
        case dict() | list():
            return to_json_text(data).encode("utf-8"), JSON_CONTENT_TYPE
        case _:
            return to_json_text(data).encode("utf-8"), "text/plain"


def build_request_kwargs(
    method: str,
    url: str,
    headers: dict[str, str],
    data: JsonValue,
    timeout_ms: int,
    user_agent: str,
) -> dict[str, Any]:
    request_headers = httpx.Headers(headers)
    if "user-agent" not in request_headers:
        request_headers["User-Agent"] = user_agent

    request_kwargs: dict[str, Any] = {
        "method": method,
        "url": url,
        "timeout": timeout_ms / 1000,
    }

    encoded = encode_body(data)
    if encoded is not None:
        content, default_content_type = encoded
        request_headers["Content-Length"] = str(len(content))
        if "content-type" not in request_headers:
            request_headers["Content-Type"] = default_content_type
        request_kwargs["content"] = content

    request_kwargs["headers"] = request_headers
    return request_kwargs


class HttpExecutor:
    """Performs single HTTP requests with a shared httpx client."""

    def __init__(self, user_agent: str, transport: httpx.BaseTransport | None = None):
        self.user_agent = user_agent
        self._client = httpx.Client(transport=transport)

    def __enter__(self) -> "HttpExecutor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def execute(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        data: JsonValue = None,
        timeout_ms: int = 30000,
    ) -> HttpResponse:
        """Execute one request and return its status, headers and raw body.

        Raises:
            RequestTimeoutError: If no response arrives within ``timeout_ms``.
            TransportError: On DNS, connection, TLS, protocol or URL errors.
        """
        request_kwargs = build_request_kwargs(method, url, headers or {}, data, timeout_ms, self.user_agent)
        logger.info(f"{method} {url}")

        start = time.perf_counter()
        try:
            response = self._client.request(**request_kwargs)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"{method} {url}: request timed out after {timeout_ms}ms ({str(e) or type(e).__name__})") from None
        except httpx.ConnectError as e:
            raise TransportError(f"{method} {url}: connection error: {str(e)}") from None
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise TransportError(f"{method} {url}: invalid URL: {str(e)}") from None
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url}: request failed: {str(e)}") from None

        result = HttpResponse(
            status_code=response.status_code,
            headers={name.lower(): value for name, value in response.headers.items()},
            raw_body=response.text,
            elapsed_ms=(time.perf_counter() - start) * 1000,
        )
        logger.info(f"{method} {url} -> {result.status_code} in {result.elapsed_ms:.0f}ms")
        return result
