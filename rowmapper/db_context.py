import logging
import os
import traceback
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import asyncpg

logger = logging.getLogger("rowmapper")

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))

# Connection bound by the caller for the current context
_current_connection: ContextVar[asyncpg.Connection | None] = ContextVar(
    "current_connection", default=None
)


def _caller_stack() -> str:
    """Format the current stack without the frames inside this package"""
    frames = [
        frame
        for frame in traceback.extract_stack()
        if not os.path.abspath(frame.filename).startswith(_PACKAGE_DIR + os.sep)
    ]
    return "".join(traceback.format_list(frames))


@dataclass
class QueryLog:
    """One statement sent to the connection"""

    query: str
    params: list[Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    stack_trace: str | None = None


class QueryTracker:
    """Collects the statements executed while tracking is enabled"""

    def __init__(self):
        self.queries: list[QueryLog] = []
        self._enabled = False

    def enable(self):
        self._enabled = True

    def disable(self):
        self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled

    def log_query(self, query: str, params: list[Any], stack_trace: str | None = None):
        """Record a statement; ignored while tracking is disabled"""
        if self._enabled:
            self.queries.append(QueryLog(query, list(params), stack_trace=stack_trace))

    def get_queries(self) -> list[QueryLog]:
        """Return a copy of the recorded statements, oldest first"""
        return list(self.queries)

    def clear(self):
        self.queries.clear()

    def count(self) -> int:
        return len(self.queries)


_query_tracker: ContextVar[QueryTracker | None] = ContextVar(
    "query_tracker", default=None
)


class DatabaseManager:
    """Binds caller-owned connections to the current context and tracks queries.

    The manager never opens or closes connections; their lifecycle belongs to
    the caller.
    """

    @classmethod
    def get_current_connection(cls) -> asyncpg.Connection | None:
        """Get the connection bound to the current context"""
        return _current_connection.get()

    @classmethod
    def get_query_tracker(cls) -> QueryTracker | None:
        """Get the current query tracker from context"""
        return _query_tracker.get()

    @classmethod
    def log_query(cls, query: str, params: list[Any]):
        """Log a statement on the package logger and record it on the active tracker.

        The recorded stack trace ends at the caller's frame; frames inside
        rowmapper are left out.
        """
        logger.debug("Executing %s with params %r", query, params)
        tracker = _query_tracker.get()
        if tracker is not None and tracker.is_enabled():
            tracker.log_query(query, params, _caller_stack())

    @classmethod
    @asynccontextmanager
    async def use_connection(cls, conn: asyncpg.Connection):
        """Context manager binding an open connection to the current context.

        Mappers created without an explicit connection pick this one up. The
        previous binding is restored on exit; the connection is left open.

        async with DatabaseManager.use_connection(conn):
            await users.persist(user)
        """
        token = _current_connection.set(conn)
        try:
            yield conn
        finally:
            _current_connection.reset(token)

    @classmethod
    @asynccontextmanager
    async def track_queries(cls):
        """Record every statement executed inside the block.

        A block nested in another tracking block shares the outer tracker.

        async with DatabaseManager.track_queries() as tracker:
            await users.find_first("user_id = $1", 7)
        print(tracker.count())
        """
        tracker = _query_tracker.get()
        if tracker is not None and tracker.is_enabled():
            yield tracker
            return

        tracker = QueryTracker()
        tracker.enable()
        token = _query_tracker.set(tracker)
        try:
            yield tracker
        finally:
            tracker.disable()
            _query_tracker.reset(token)
