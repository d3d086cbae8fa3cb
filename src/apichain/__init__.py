from .client import HttpExecutor, HttpResponse
from .config import Settings
from .constants import VERSION
from .engine import ChainExecutor, ChainState
from .exceptions import (
    ApiChainError,
    ChainExecutionError,
    ExpectationError,
    RequestError,
    RequestTimeoutError,
    ToolExecutionError,
    TransportError,
)
from .models import (
    ApiRequest,
    ApiRequestInput,
    ChainRequest,
    ChainStep,
    Expectation,
    LogEntry,
    LogKind,
    Session,
    SessionNotFound,
    SessionStatus,
    StepResult,
)
from .sessions import SessionStore
from .templates import resolve

__version__ = VERSION

__all__ = [
    "ApiChainError",
    "ApiRequest",
    "ApiRequestInput",
    "ChainExecutionError",
    "ChainExecutor",
    "ChainRequest",
    "ChainState",
    "ChainStep",
    "Expectation",
    "ExpectationError",
    "HttpExecutor",
    "HttpResponse",
    "LogEntry",
    "LogKind",
    "RequestError",
    "RequestTimeoutError",
    "Session",
    "SessionNotFound",
    "SessionStatus",
    "SessionStore",
    "Settings",
    "StepResult",
    "ToolExecutionError",
    "TransportError",
    "resolve",
]
