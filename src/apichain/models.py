"""Data model shared by the engine, the session store and their consumers.

Field names are snake_case in Python and camelCase on the wire
(``sessionId``, ``contentType``, ``bodyRegex``...). Response bodies, request
data and extracted values are ``JsonValue``: null, bool, number, string,
array or object.
"""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal, Self

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, JsonValue, PositiveInt, model_validator
from pydantic.alias_generators import to_camel

from .constants import SUPPORTED_METHODS


def validate_http_method(v: str) -> str:
    method = v.upper()
    if method not in SUPPORTED_METHODS:
        raise ValueError(f"Unsupported HTTP method: '{v}'")
    return method


HttpMethod = Annotated[str, AfterValidator(validate_http_method)]


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenWireModel(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class SessionStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class LogKind(StrEnum):
    SINGLE = "single"
    CHAIN_STEP = "chain-step"
    CHAIN_SUMMARY = "chain-summary"


class Expectation(WireModel):
    """Declarative assertions checked against one response."""

    status: int | None = Field(default=None, description="Expected HTTP status code.")
    content_type: str | None = Field(default=None, description="Expected content type (substring match).")
    body: JsonValue = Field(default=None, description="Expected body: object for partial match, string for exact match.")
    body_regex: str | None = Field(default=None, description="Regular expression searched in the body; overrides body.")


class ChainStep(WireModel):
    name: str = Field(description="Step name, also the scope namespace of its results.")
    method: HttpMethod = Field(default="GET")
    url: str = Field(description="URL with {{ path }} template support.")
    headers: dict[str, str] = Field(default_factory=dict)
    data: JsonValue = Field(default=None, description="Request body; only string bodies are template-resolved.")
    expect: Expectation = Field(default_factory=Expectation)
    extract: dict[str, str] = Field(default_factory=dict, description="Variable name mapped to a dot-path in the response body.")


class ApiRequest(WireModel):
    """Single request mode input."""

    session_id: str | None = None
    method: HttpMethod = Field(default="GET")
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    data: JsonValue = None
    expect: Expectation = Field(default_factory=Expectation)
    timeout: PositiveInt | None = Field(default=None, description="Request timeout in milliseconds.")


class ChainRequest(WireModel):
    """Chain mode input."""

    session_id: str | None = None
    chain: list[ChainStep] = Field(min_length=1)
    timeout: PositiveInt | None = Field(default=None, description="Per-request timeout in milliseconds.")


class ApiRequestInput(WireModel):
    """Combined input contract of the api_request tool.

    A non-empty ``chain`` selects chain mode, otherwise ``url`` is required.
    """

    session_id: str | None = None
    method: HttpMethod = Field(default="GET")
    url: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    data: JsonValue = None
    expect: Expectation = Field(default_factory=Expectation)
    chain: list[ChainStep] | None = None
    timeout: PositiveInt | None = None

    @model_validator(mode="after")
    def validate_mode(self) -> Self:
        if not self.chain and not self.url:
            raise ValueError("URL is required for single request mode")
        return self

    def to_request(self) -> ApiRequest | ChainRequest:
        if self.chain:
            return ChainRequest(session_id=self.session_id, chain=self.chain, timeout=self.timeout)
        return ApiRequest(
            session_id=self.session_id,
            method=self.method,
            url=self.url,
            headers=self.headers,
            data=self.data,
            expect=self.expect,
            timeout=self.timeout,
        )


class ResponseValidation(FrozenWireModel):
    status: bool
    content_type: bool


class BodyValidation(FrozenWireModel):
    matched: bool
    reason: str
    mismatched_keys: list[str] = Field(default_factory=list)


class SingleResult(FrozenWireModel):
    ok: bool
    status: int
    content_type: str
    body: JsonValue
    validation: ResponseValidation
    body_validation: BodyValidation


class StepResult(FrozenWireModel):
    name: str
    ok: bool
    status: int
    content_type: str
    body: JsonValue
    validation: ResponseValidation
    body_validation: BodyValidation
    extracted: dict[str, JsonValue] = Field(default_factory=dict)


class RequestSnapshot(FrozenWireModel):
    method: str
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    data: JsonValue = None


class ResponseSnapshot(FrozenWireModel):
    status: int
    content_type: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: JsonValue = None


class LogEntry(FrozenWireModel):
    """One immutable record in a session log."""

    kind: LogKind
    timestamp: datetime
    step: str | None = None
    request: RequestSnapshot | None = None
    response: ResponseSnapshot | None = None
    validation: ResponseValidation | None = None
    body_validation: BodyValidation | None = None
    elapsed_ms: float | None = None
    error: str | None = None
    steps: tuple[StepResult, ...] = ()

    @property
    def passed(self) -> bool:
        """Whether every check of a request entry passed."""
        if self.validation is None or self.body_validation is None:
            return False
        return self.validation.status and self.validation.content_type and self.body_validation.matched


class Session(FrozenWireModel):
    """Read-only snapshot of a session."""

    session_id: str
    start_time: datetime
    end_time: datetime | None = None
    status: SessionStatus
    error: str | None = None
    execution_time_ms: float | None = None
    logs: tuple[LogEntry, ...] = ()


class SessionSummary(FrozenWireModel):
    session_id: str
    status: SessionStatus
    start_time: datetime
    request_count: int
    log_count: int


class SessionNotFound(FrozenWireModel):
    found: Literal[False] = False
    session_id: str
    available_sessions: list[str] = Field(default_factory=list)


class SingleResponse(WireModel):
    success: bool = True
    session_id: str
    mode: Literal["single"] = "single"
    result: SingleResult
    request_count: int = 1
    execution_time: float = Field(description="Total execution time in milliseconds.")


class ChainResponse(WireModel):
    success: bool = True
    session_id: str
    mode: Literal["chain"] = "chain"
    results: list[StepResult]
    request_count: int
    execution_time: float = Field(description="Total execution time in milliseconds.")
