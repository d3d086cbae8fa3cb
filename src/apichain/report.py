"""Session report generation.

Reads the full log of a session and writes either a JSON report (session
metadata, request summary, processed log entries, timing) or, for ``.har``
output paths, an HTTP Archive 1.2 log built from the request and response
snapshots.
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal
from urllib.parse import parse_qs, urlparse

from .constants import VERSION
from .models import LogEntry, SessionNotFound, WireModel
from .status import (
    NotFoundResult,
    RequestSummary,
    SessionMetadata,
    TimingAnalysis,
    request_entries,
    strip_details,
    summarize_requests,
    summarize_validations,
    timing_analysis,
)
from .sessions import SessionStore
from .utils import to_json_text

logger = logging.getLogger(__name__)


class ReportSummary(WireModel):
    request_count: int
    success_rate: float
    total_duration: float


class ReportResult(WireModel):
    success: Literal[True] = True
    report_path: str
    file_size: int
    session_summary: ReportSummary
    report_url: str


class ReportFailure(WireModel):
    success: Literal[False] = False
    error: str


def _process_entry(entry: LogEntry, include_request_data: bool, include_response_data: bool) -> dict[str, Any]:
    full = entry.model_dump(mode="json", by_alias=True, exclude_none=True)
    stripped = strip_details(entry)
    processed = {**full}

    if entry.request and not include_request_data:
        processed["request"] = stripped["request"]
    if entry.response and not include_response_data:
        processed["response"] = stripped["response"]
    if entry.steps and not include_response_data:
        processed["steps"] = stripped["steps"]

    return processed


def build_report_data(
    store: SessionStore,
    session_id: str,
    title: str = "API Test Session Report",
    include_request_data: bool = True,
    include_response_data: bool = True,
    include_timing: bool = True,
) -> dict[str, Any] | NotFoundResult:
    session = store.get(session_id)
    if isinstance(session, SessionNotFound):
        return NotFoundResult.from_lookup(session)

    summary: RequestSummary = summarize_requests(session.logs)
    validations = summarize_validations(session.logs)

    timing: TimingAnalysis | None = None
    if include_timing:
        analysis = timing_analysis(store, session_id)
        timing = analysis if isinstance(analysis, TimingAnalysis) else None

    return {
        "title": title,
        "session": SessionMetadata.from_session(session).model_dump(mode="json", by_alias=True),
        "summary": {
            **summary.model_dump(by_alias=True),
            "successRate": summary.success_rate,
            **validations.model_dump(by_alias=True),
        },
        "logs": [_process_entry(entry, include_request_data, include_response_data) for entry in session.logs],
        "timing": timing.model_dump(mode="json", by_alias=True) if timing else None,
        "metadata": {
            "generatedAt": datetime.now(UTC).isoformat(),
            "includeRequestData": include_request_data,
            "includeResponseData": include_response_data,
            "includeTiming": include_timing,
        },
    }


def _format_headers(headers: dict[str, str]) -> list[dict[str, str]]:
    return [{"name": name, "value": value} for name, value in headers.items()]


def _format_query_string(url: str) -> list[dict[str, str]]:
    params = parse_qs(urlparse(url).query, keep_blank_values=True)
    return [{"name": name, "value": value} for name, values in params.items() for value in values]


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else to_json_text(value)


def log_entry_to_har_entry(entry: LogEntry) -> dict[str, Any]:
    """Convert a request log entry to a HAR entry."""
    request = entry.request
    response = entry.response
    elapsed_ms = entry.elapsed_ms or 0

    har_entry: dict[str, Any] = {
        "startedDateTime": entry.timestamp.isoformat(),
        "time": elapsed_ms,
        "request": {
            "method": request.method,
            "url": request.url,
            "httpVersion": "HTTP/1.1",
            "cookies": [],
            "headers": _format_headers(request.headers),
            "queryString": _format_query_string(request.url),
            "headersSize": -1,
            "bodySize": len(_as_text(request.data).encode("utf-8")) if request.data is not None else 0,
        },
        "response": {
            "status": response.status,
            "statusText": "",
            "httpVersion": "HTTP/1.1",
            "cookies": [],
            "headers": _format_headers(response.headers),
            "content": {
                "size": len(_as_text(response.body).encode("utf-8")) if response.body is not None else 0,
                "mimeType": response.content_type.split(";")[0].strip() or "application/octet-stream",
                "text": _as_text(response.body) if response.body is not None else "",
            },
            "redirectURL": response.headers.get("location", ""),
            "headersSize": -1,
            "bodySize": -1,
        },
        "cache": {},
        "timings": {"send": -1, "wait": elapsed_ms if elapsed_ms > 0 else -1, "receive": -1},
    }

    if request.data is not None:
        har_entry["request"]["postData"] = {
            "mimeType": next((value for name, value in request.headers.items() if name.lower() == "content-type"), ""),
            "text": _as_text(request.data),
        }

    if entry.step:
        har_entry["comment"] = entry.step

    return har_entry


def create_har_log(entries: list[dict[str, Any]], comment: str | None = None) -> dict[str, Any]:
    har: dict[str, Any] = {
        "log": {
            "version": "1.2",
            "creator": {"name": "apichain", "version": VERSION},
            "entries": entries,
        }
    }
    if comment:
        har["log"]["comment"] = comment
    return har


def resolve_report_path(report_dir: Path, output_path: str | Path) -> Path:
    """Place ``output_path`` under ``report_dir``.

    Absolute paths are re-rooted under the report directory. A path that still
    resolves outside it, e.g. through ``..``, raises ValueError.
    """
    relative = Path(output_path)
    if relative.anchor:
        relative = relative.relative_to(relative.anchor)

    root = report_dir.resolve()
    full_path = (root / relative).resolve()
    if not full_path.is_relative_to(root):
        raise ValueError(f"Report path escapes the report directory: {output_path}")
    return full_path


def generate_report(
    store: SessionStore,
    session_id: str,
    output_path: str | Path,
    report_dir: Path,
    title: str = "API Test Session Report",
    include_request_data: bool = True,
    include_response_data: bool = True,
    include_timing: bool = True,
) -> ReportResult | ReportFailure | NotFoundResult:
    """Write a report for ``session_id`` to ``report_dir / output_path``."""
    session = store.get(session_id)
    if isinstance(session, SessionNotFound):
        return NotFoundResult.from_lookup(session)

    try:
        full_path = resolve_report_path(report_dir, output_path)
    except ValueError as e:
        logger.error(f"Rejected report path for session {session_id}: {str(e)}")
        return ReportFailure(error=f"Failed to generate report: {str(e)}")

    if full_path.suffix == ".har":
        # requests that never got a response have no HAR representation
        entries = [log_entry_to_har_entry(entry) for entry in request_entries(session.logs) if entry.response]
        document: dict[str, Any] = create_har_log(entries, comment=f"{title}: {session_id}")
    else:
        report_data = build_report_data(store, session_id, title, include_request_data, include_response_data, include_timing)
        if isinstance(report_data, NotFoundResult):
            return report_data
        document = report_data

    try:
        full_path.parent.mkdir(parents=True, exist_ok=True)
        with open(full_path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, ensure_ascii=False)
        file_size = full_path.stat().st_size
    except OSError as e:
        logger.error(f"Failed to write report for session {session_id}: {str(e)}")
        return ReportFailure(error=f"Failed to generate report: {str(e)}")

    summary = summarize_requests(session.logs)
    logger.info(f"Wrote report for session {session_id} to {full_path}")
    return ReportResult(
        report_path=str(full_path),
        file_size=file_size,
        session_summary=ReportSummary(
            request_count=summary.total_requests,
            success_rate=summary.success_rate,
            total_duration=session.execution_time_ms or 0,
        ),
        report_url=full_path.resolve().as_uri(),
    )
