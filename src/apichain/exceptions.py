"""Exception classes for apichain."""


class ApiChainError(Exception):
    """Base exception for all apichain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RequestError(ApiChainError):
    """An error making HTTP request."""


class TransportError(RequestError):
    """DNS, connection, TLS or protocol failure before a response arrived."""


class RequestTimeoutError(RequestError):
    """No response arrived within the request timeout."""


class ExpectationError(ApiChainError):
    """A malformed expectation, e.g. a body regex that does not compile."""


class ChainExecutionError(ApiChainError):
    """A fatal failure that aborted a single request or a chain.

    Carries enough context to diagnose the failure without re-running it.
    """

    def __init__(self, message: str, operation: str, session_id: str, step: str | None = None):
        super().__init__(message)
        self.operation = operation
        self.session_id = session_id
        self.step = step

    def __str__(self) -> str:
        location = f"step '{self.step}' of " if self.step else ""
        return f"{self.operation} failed at {location}session '{self.session_id}': {self.message}"


class ToolExecutionError(ApiChainError):
    """An error raised while dispatching a registered tool."""

    def __init__(self, tool_name: str, original_error: str):
        super().__init__(f"Tool '{tool_name}' execution failed: {original_error}")
        self.tool_name = tool_name
        self.original_error = original_error
