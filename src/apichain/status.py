"""Read-only session status queries.

An unknown session id is a normal outcome: the query returns a not-found
result carrying the ids that do exist.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any, Literal

from pydantic import Field, PositiveInt

from .models import LogEntry, LogKind, Session, SessionNotFound, SessionStatus, StepResult, WireModel
from .sessions import REQUEST_KINDS, SessionStore

logger = logging.getLogger(__name__)

LogFilter = Literal["all", "single", "chain-step", "chain-summary"]


class NotFoundResult(WireModel):
    success: bool = False
    found: Literal[False] = False
    message: str
    available_sessions: list[str] = Field(default_factory=list)

    @classmethod
    def from_lookup(cls, lookup: SessionNotFound) -> "NotFoundResult":
        return cls(message=f"Session not found: {lookup.session_id}", available_sessions=lookup.available_sessions)


class SessionMetadata(WireModel):
    session_id: str
    status: SessionStatus
    start_time: datetime
    end_time: datetime | None = None
    execution_time: float | None = None
    error: str | None = None

    @classmethod
    def from_session(cls, session: Session) -> "SessionMetadata":
        return cls(
            session_id=session.session_id,
            status=session.status,
            start_time=session.start_time,
            end_time=session.end_time,
            execution_time=session.execution_time_ms,
            error=session.error,
        )


class RequestSummary(WireModel):
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    chain_steps: int = 0
    single_requests: int = 0
    log_entries: int = 0

    @property
    def success_rate(self) -> float:
        return round(self.successful_requests / self.total_requests, 2) if self.total_requests else 0


class ValidationSummary(WireModel):
    passed_validations: int = 0
    failed_validations: int = 0
    total_validations: int = 0
    validation_rate: float = 0


class StatusResult(WireModel):
    success: bool = True
    found: Literal[True] = True
    session: SessionMetadata
    summary: RequestSummary
    validation_summary: ValidationSummary
    logs: list[dict[str, Any]]
    log_count: int
    total_log_count: int


class RequestTiming(WireModel):
    request_index: int
    timestamp: datetime
    interval_ms: float


class TimingAnalysis(WireModel):
    total_requests: int
    session_duration: float
    average_interval: float
    timings: list[RequestTiming]


def request_entries(logs: Iterable[LogEntry]) -> list[LogEntry]:
    return [entry for entry in logs if entry.kind in REQUEST_KINDS]


def summarize_requests(logs: tuple[LogEntry, ...]) -> RequestSummary:
    summary = RequestSummary(log_entries=len(logs))
    for entry in request_entries(logs):
        summary.total_requests += 1
        if entry.kind == LogKind.SINGLE:
            summary.single_requests += 1
        else:
            summary.chain_steps += 1

        if entry.passed:
            summary.successful_requests += 1
        else:
            summary.failed_requests += 1
    return summary


def summarize_validations(logs: tuple[LogEntry, ...]) -> ValidationSummary:
    entries = [entry for entry in request_entries(logs) if entry.validation and entry.body_validation]
    passed = sum(1 for entry in entries if entry.passed)
    total = len(entries)
    return ValidationSummary(
        passed_validations=passed,
        failed_validations=total - passed,
        total_validations=total,
        validation_rate=round(passed / total, 2) if total else 0,
    )


def _strip_step(step: StepResult) -> dict[str, Any]:
    return {
        "name": step.name,
        "ok": step.ok,
        "status": step.status,
        "contentType": step.content_type,
        "validation": step.validation.model_dump(by_alias=True),
        "bodyValidation": {"matched": step.body_validation.matched, "reason": step.body_validation.reason},
    }


def strip_details(entry: LogEntry) -> dict[str, Any]:
    """Reduce a log entry to metadata, replacing headers and bodies with presence flags."""
    stripped: dict[str, Any] = {"kind": entry.kind.value, "timestamp": entry.timestamp.isoformat()}

    if entry.step is not None:
        stripped["step"] = entry.step

    if entry.request:
        stripped["request"] = {
            "method": entry.request.method,
            "url": entry.request.url,
            "hasHeaders": bool(entry.request.headers),
            "hasData": entry.request.data not in (None, ""),
        }

    if entry.response:
        stripped["response"] = {
            "status": entry.response.status,
            "contentType": entry.response.content_type,
            "hasBody": entry.response.body not in (None, ""),
        }

    if entry.validation:
        stripped["validation"] = entry.validation.model_dump(by_alias=True)

    if entry.body_validation:
        stripped["bodyValidation"] = {"matched": entry.body_validation.matched, "reason": entry.body_validation.reason}

    if entry.error:
        stripped["error"] = entry.error

    if entry.steps:
        stripped["steps"] = [_strip_step(step) for step in entry.steps]

    return stripped


def session_status(
    store: SessionStore,
    session_id: str,
    include_details: bool = True,
    filter_by_type: LogFilter = "all",
    limit: PositiveInt = 50,
) -> StatusResult | NotFoundResult:
    """Summarize a session and return a filtered view of its most recent log entries."""
    session = store.get(session_id)
    if isinstance(session, SessionNotFound):
        logger.info(f"Status requested for unknown session {session_id}")
        return NotFoundResult.from_lookup(session)

    filtered = [entry for entry in session.logs if filter_by_type == "all" or entry.kind == filter_by_type]
    recent = filtered[-limit:]

    if include_details:
        logs = [entry.model_dump(mode="json", by_alias=True) for entry in recent]
    else:
        logs = [strip_details(entry) for entry in recent]

    return StatusResult(
        session=SessionMetadata.from_session(session),
        summary=summarize_requests(session.logs),
        validation_summary=summarize_validations(session.logs),
        logs=logs,
        log_count=len(logs),
        total_log_count=len(session.logs),
    )


def request_details(store: SessionStore, session_id: str, request_index: int) -> LogEntry | None:
    """Return the n-th request entry (single or chain-step) of a session."""
    session = store.get(session_id)
    if isinstance(session, SessionNotFound):
        return None

    requests = request_entries(session.logs)
    if not 0 <= request_index < len(requests):
        return None
    return requests[request_index]


def timing_analysis(store: SessionStore, session_id: str) -> TimingAnalysis | NotFoundResult:
    """Intervals between consecutive requests, the first measured from session start."""
    session = store.get(session_id)
    if isinstance(session, SessionNotFound):
        return NotFoundResult.from_lookup(session)

    timings = []
    previous = session.start_time
    for index, entry in enumerate(request_entries(session.logs)):
        timings.append(
            RequestTiming(
                request_index=index,
                timestamp=entry.timestamp,
                interval_ms=(entry.timestamp - previous).total_seconds() * 1000,
            )
        )
        previous = entry.timestamp

    return TimingAnalysis(
        total_requests=len(timings),
        session_duration=session.execution_time_ms or 0,
        average_interval=sum(t.interval_ms for t in timings) / len(timings) if timings else 0,
        timings=timings,
    )
