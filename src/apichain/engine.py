"""Chain execution for single requests and ordered request chains.

Per step the executor:
1. Resolves URL, header and string-body templates against the scope
2. Executes the HTTP request
3. Parses the body as JSON only for ``application/json`` responses
4. Validates the response against the step expectation
5. Extracts variables into the scope
6. Appends a log entry for the step

Validation mismatches never stop a chain. Transport and timeout failures, and
expectations that cannot be evaluated, abort the invocation: the failing step
is logged with its error, no further steps run, and the session is marked
failed.

A single request runs the same pipeline with no scope: no template
resolution and no extraction.

Exceptions:
- ChainExecutionError: raised to the caller for every fatal failure, unexpected
  errors included; the session is always left failed, never running
"""

import json
import logging
import time
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, NoReturn

from pydantic import JsonValue

from .client import HttpExecutor
from .config import Settings
from .constants import JSON_CONTENT_TYPE
from .exceptions import ApiChainError, ChainExecutionError, ExpectationError, RequestError
from .extraction import build_step_scope, extract_fields
from .models import (
    ApiRequest,
    ApiRequestInput,
    ChainRequest,
    ChainResponse,
    ChainStep,
    LogEntry,
    LogKind,
    RequestSnapshot,
    ResponseSnapshot,
    SingleResponse,
    SingleResult,
    StepResult,
)
from .sessions import SessionStore
from .templates import resolve, resolve_headers
from .validation import validate_body, validate_response

logger = logging.getLogger(__name__)

SINGLE_STEP_NAME = "request"


class ChainState(StrEnum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class StepFailure(Exception):
    """Internal signal carrying a fatal step error out of ``_run_step``."""

    def __init__(self, error: ApiChainError):
        super().__init__(error.message)
        self.error = error


def parse_body(raw_body: str, content_type: str) -> JsonValue:
    """Parse JSON bodies; anything else, or JSON that fails to parse, stays raw text."""
    if JSON_CONTENT_TYPE not in content_type:
        return raw_body
    try:
        return json.loads(raw_body)
    except json.JSONDecodeError:
        return raw_body


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class ChainExecutor:
    """Runs single requests and chains, recording every result in the session store."""

    def __init__(self, store: SessionStore, client: HttpExecutor, settings: Settings):
        self.store = store
        self.client = client
        self.settings = settings

    def run(self, arguments: ApiRequestInput) -> SingleResponse | ChainResponse:
        """Dispatch on the presence of a non-empty chain."""
        request = arguments.to_request()
        if isinstance(request, ChainRequest):
            return self.run_chain(request)
        return self.run_single(request)

    def run_single(self, request: ApiRequest) -> SingleResponse:
        session_id = self.store.get_or_create(request.session_id).session_id
        timeout_ms = request.timeout or self.settings.default_timeout_ms
        step = ChainStep(
            name=SINGLE_STEP_NAME,
            method=request.method,
            url=request.url,
            headers=request.headers,
            data=request.data,
            expect=request.expect,
        )
        start = time.perf_counter()

        with self.store.session_lock(session_id):
            try:
                self._start(session_id)
                self._transition(session_id, ChainState.RUNNING, 0)
                step_result, _ = self._run_step(session_id, LogKind.SINGLE, step, None, timeout_ms)
                execution_time = _elapsed_ms(start)
                self._complete(session_id, execution_time)
            except StepFailure as e:
                self._fail(session_id, "api_request", None, e.error.message, start, e.error)
            except Exception as e:
                self._fail(session_id, "api_request", None, f"Unexpected error: {type(e).__name__}: {str(e)}", start, e)

        result = SingleResult(
            ok=step_result.ok,
            status=step_result.status,
            content_type=step_result.content_type,
            body=step_result.body,
            validation=step_result.validation,
            body_validation=step_result.body_validation,
        )
        return SingleResponse(session_id=session_id, result=result, execution_time=execution_time)

    def run_chain(self, request: ChainRequest) -> ChainResponse:
        """Execute chain steps strictly in order, threading the scope between them."""
        session_id = self.store.get_or_create(request.session_id).session_id
        timeout_ms = request.timeout or self.settings.default_timeout_ms
        scope: dict[str, Any] = {}
        results: list[StepResult] = []
        start = time.perf_counter()

        with self.store.session_lock(session_id):
            current: str | None = None
            try:
                self._start(session_id)
                for index, step in enumerate(request.chain):
                    current = step.name
                    self._transition(session_id, ChainState.RUNNING, index)
                    step_result, scope_update = self._run_step(session_id, LogKind.CHAIN_STEP, step, scope, timeout_ms)
                    results.append(step_result)
                    scope.update(scope_update)

                current = None
                self.store.append(
                    session_id,
                    LogEntry(kind=LogKind.CHAIN_SUMMARY, timestamp=datetime.now(UTC), steps=tuple(results)),
                )
                execution_time = _elapsed_ms(start)
                self._complete(session_id, execution_time)
            except StepFailure as e:
                self._fail(session_id, "api_request chain", current, e.error.message, start, e.error)
            except Exception as e:
                self._fail(session_id, "api_request chain", current, f"Unexpected error: {type(e).__name__}: {str(e)}", start, e)

        return ChainResponse(
            session_id=session_id,
            results=results,
            request_count=len(results),
            execution_time=execution_time,
        )

    def _run_step(
        self,
        session_id: str,
        kind: LogKind,
        step: ChainStep,
        scope: dict[str, Any] | None,
        timeout_ms: int,
    ) -> tuple[StepResult, dict[str, Any]]:
        """Run one step against a read-only view of the scope.

        Returns the step result and the scope updates it contributes; the
        caller merges them only after the step has finished. With no scope,
        templates are left as written and nothing is extracted.

        Raises:
            StepFailure: After logging the step, on a transport, timeout or expectation error
        """
        if scope is None:
            url, headers, data = step.url, step.headers, step.data
        else:
            url = resolve(step.url, scope)
            headers = resolve_headers(step.headers, scope)
            # structured bodies are sent as given
            data = resolve(step.data, scope) if isinstance(step.data, str) else step.data

        entry_base: dict[str, Any] = {
            "kind": kind,
            "step": step.name if kind == LogKind.CHAIN_STEP else None,
            "request": RequestSnapshot(method=step.method, url=url, headers=headers, data=data),
        }

        try:
            response = self.client.execute(step.method, url, headers, data, timeout_ms)
        except RequestError as e:
            self.store.append(session_id, LogEntry(**entry_base, timestamp=datetime.now(UTC), error=e.message))
            raise StepFailure(e) from None

        body = parse_body(response.raw_body, response.content_type)
        entry_base["response"] = ResponseSnapshot(
            status=response.status_code,
            content_type=response.content_type,
            headers=response.headers,
            body=body,
        )
        entry_base["elapsed_ms"] = response.elapsed_ms

        try:
            validation = validate_response(response.status_code, response.content_type, step.expect)
            body_validation = validate_body(body, step.expect)
        except ExpectationError as e:
            self.store.append(session_id, LogEntry(**entry_base, timestamp=datetime.now(UTC), error=e.message))
            raise StepFailure(e) from None

        extracted = extract_fields(body, step.extract) if scope is not None and step.extract else {}

        self.store.append(
            session_id,
            LogEntry(
                **entry_base,
                timestamp=datetime.now(UTC),
                validation=validation,
                body_validation=body_validation,
            ),
        )

        step_result = StepResult(
            name=step.name,
            ok=validation.status and validation.content_type and body_validation.matched,
            status=response.status_code,
            content_type=response.content_type,
            body=body,
            validation=validation,
            body_validation=body_validation,
            extracted=extracted,
        )
        if not step_result.ok:
            logger.info(f"Session {session_id}: step '{step.name}' expectations not met: {validation}, {body_validation.reason}")

        scope_update = build_step_scope(step.name, extracted, body, response.status_code, response.content_type) if scope is not None else {}
        return step_result, scope_update

    def _start(self, session_id: str) -> None:
        self.store.mark_running(session_id)

    def _complete(self, session_id: str, execution_time: float) -> None:
        self.store.mark_completed(session_id, execution_time)
        self._transition(session_id, ChainState.COMPLETED)

    def _fail(
        self,
        session_id: str,
        operation: str,
        step: str | None,
        message: str,
        start: float,
        cause: BaseException,
    ) -> NoReturn:
        try:
            self.store.mark_failed(session_id, message, _elapsed_ms(start))
        except KeyError:
            logger.warning(f"Session {session_id} was cleared during execution")
        self._transition(session_id, ChainState.FAILED)
        error = ChainExecutionError(message, operation=operation, session_id=session_id, step=step)
        logger.error(str(error))
        raise error from cause

    @staticmethod
    def _transition(session_id: str, state: ChainState, index: int | None = None) -> None:
        if index is None:
            logger.info(f"Session {session_id} -> {state}")
        else:
            logger.info(f"Session {session_id} -> {state}({index})")
