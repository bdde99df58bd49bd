"""Exceptions raised by the entity mapper"""

from typing import Any


class MapperError(Exception):
    """Base class for every error raised by rowmapper"""


class ConfigurationError(MapperError):
    """Row type metadata is missing or malformed"""


class NotFoundError(MapperError):
    """An operation required a stored row that does not exist"""


class MappingError(MapperError):
    """A value could not be coerced between a column and a field"""


class ExecutionError(MapperError):
    """The connection rejected a statement.

    The driver exception is chained as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        query: str | None = None,
        params: list[Any] | None = None,
        sqlstate: str | None = None,
    ):
        super().__init__(message)
        self.query = query
        self.params = params or []
        self.sqlstate = sqlstate
