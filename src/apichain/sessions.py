"""In-memory session store.

One ``SessionStore`` is shared by the chain executor (writer) and the status
and report consumers (readers). The id map is guarded by one lock and every
session by two re-entrant locks: a data lock held only while its fields are
read or written, and an invocation lock that serializes whole runs on one id.
Operations on different sessions never block each other. Nothing survives a
process restart.
"""

import logging
import threading
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime

from .models import LogEntry, LogKind, Session, SessionNotFound, SessionStatus, SessionSummary

logger = logging.getLogger(__name__)

REQUEST_KINDS = frozenset({LogKind.SINGLE, LogKind.CHAIN_STEP})


def generate_session_id() -> str:
    return f"session-{time.time_ns() // 1_000_000}-{uuid.uuid4().hex[:8]}"


@dataclass
class _SessionRecord:
    session_id: str
    start_time: datetime
    lock: threading.RLock = field(default_factory=threading.RLock)
    run_lock: threading.RLock = field(default_factory=threading.RLock)
    status: SessionStatus = SessionStatus.RUNNING
    end_time: datetime | None = None
    error: str | None = None
    execution_time_ms: float | None = None
    logs: list[LogEntry] = field(default_factory=list)

    def snapshot(self) -> Session:
        return Session(
            session_id=self.session_id,
            start_time=self.start_time,
            end_time=self.end_time,
            status=self.status,
            error=self.error,
            execution_time_ms=self.execution_time_ms,
            logs=tuple(self.logs),
        )


class SessionStore:
    """Process-wide map from session id to an append-only result log."""

    def __init__(self):
        self._sessions: dict[str, _SessionRecord] = {}
        self._lock = threading.Lock()

    def _record(self, session_id: str) -> _SessionRecord:
        with self._lock:
            record = self._sessions.get(session_id)
        if record is None:
            raise KeyError(f"Unknown session: {session_id}")
        return record

    def get_or_create(self, session_id: str | None = None) -> Session:
        """Return the session for ``session_id``, creating it on first reference.

        A fresh id is generated when none is given.
        """
        with self._lock:
            if session_id is None:
                session_id = generate_session_id()
                while session_id in self._sessions:
                    session_id = generate_session_id()

            record = self._sessions.get(session_id)
            if record is None:
                record = _SessionRecord(session_id=session_id, start_time=datetime.now(UTC))
                self._sessions[session_id] = record
                logger.info(f"Created session {session_id}")

        with record.lock:
            return record.snapshot()

    @contextmanager
    def session_lock(self, session_id: str) -> Iterator[None]:
        """Hold a session exclusively for a whole invocation.

        Only other invocations on the same id wait; reads and single appends
        take the short data lock and never block behind network I/O.
        """
        record = self._record(session_id)
        with record.run_lock:
            yield

    def append(self, session_id: str, entry: LogEntry) -> None:
        record = self._record(session_id)
        with record.lock:
            record.logs.append(entry)

    def mark_running(self, session_id: str) -> None:
        record = self._record(session_id)
        with record.lock:
            record.status = SessionStatus.RUNNING
            record.end_time = None
            record.error = None

    def mark_completed(self, session_id: str, execution_time_ms: float | None = None) -> None:
        record = self._record(session_id)
        with record.lock:
            record.status = SessionStatus.COMPLETED
            record.end_time = datetime.now(UTC)
            record.execution_time_ms = execution_time_ms

    def mark_failed(self, session_id: str, error: str, execution_time_ms: float | None = None) -> None:
        record = self._record(session_id)
        with record.lock:
            record.status = SessionStatus.FAILED
            record.error = error
            record.end_time = datetime.now(UTC)
            record.execution_time_ms = execution_time_ms

    def get(self, session_id: str) -> Session | SessionNotFound:
        """Return a snapshot of the session, or a not-found result listing known ids."""
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                return SessionNotFound(session_id=session_id, available_sessions=list(self._sessions))
        with record.lock:
            return record.snapshot()

    def session_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def clear(self, session_id: str) -> bool:
        """Remove a session; returns whether it existed."""
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info(f"Cleared session {session_id}")
        return removed is not None

    def list_sessions(self) -> list[SessionSummary]:
        with self._lock:
            records = list(self._sessions.values())

        summaries = []
        for record in records:
            with record.lock:
                summaries.append(
                    SessionSummary(
                        session_id=record.session_id,
                        status=record.status,
                        start_time=record.start_time,
                        request_count=sum(1 for entry in record.logs if entry.kind in REQUEST_KINDS),
                        log_count=len(record.logs),
                    )
                )
        return summaries
