from typing import Any

import asyncpg

from rowmapper.db_context import DatabaseManager
from rowmapper.exceptions import ConfigurationError, ExecutionError


def affected_rows(status: str) -> int:
    """Extract the row count from a command status such as 'UPDATE 3' or 'INSERT 0 1'"""
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


class DatabaseOperations:
    """Composition class for database operations.

    Every statement goes through here: it is logged, executed on the
    connection, and driver errors are raised as ExecutionError. The connection
    is never closed.
    """

    def __init__(self, connection: asyncpg.Connection | None = None):
        self._connection = connection

    def get_connection(self) -> asyncpg.Connection:
        """Return the explicit connection, or the one bound to the current context"""
        conn = self._connection or DatabaseManager.get_current_connection()
        if conn is None:
            raise ConfigurationError(
                "No connection available. Pass one to the mapper or bind one with "
                "DatabaseManager.use_connection()."
            )
        return conn

    async def _run(self, method: str, query: str, params: list[Any]) -> Any:
        conn = self.get_connection()
        DatabaseManager.log_query(query, params)
        try:
            return await getattr(conn, method)(query, *params)
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
            raise ExecutionError(
                f"Statement failed: {exc}",
                query=query,
                params=params,
                sqlstate=getattr(exc, "sqlstate", None),
            ) from exc

    async def fetch_all(self, query: str, params: list[Any]) -> list[Any]:
        """Execute query and fetch all rows"""
        return await self._run("fetch", query, params)

    async def fetch_one(self, query: str, params: list[Any]) -> Any:
        """Execute a query and fetch one row"""
        return await self._run("fetchrow", query, params)

    async def fetch_value(self, query: str, params: list[Any]) -> Any:
        """Execute query and fetch single value"""
        return await self._run("fetchval", query, params)

    async def execute_query(self, query: str, params: list[Any]) -> str:
        """Execute query and return the command status"""
        return await self._run("execute", query, params)
