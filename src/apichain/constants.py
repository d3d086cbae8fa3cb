from enum import StrEnum
from importlib.metadata import PackageNotFoundError, version

try:
    VERSION = version("apichain")
except PackageNotFoundError:
    VERSION = "unknown"


class ToolNames(StrEnum):
    """Names of the tools exposed by the registry."""

    API_REQUEST = "api_request"
    API_SESSION_STATUS = "api_session_status"
    API_SESSION_REPORT = "api_session_report"


SUPPORTED_METHODS = frozenset({"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"})

JSON_CONTENT_TYPE = "application/json"
