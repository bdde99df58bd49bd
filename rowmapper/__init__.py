"""rowmapper: single-table entity mapper for asyncpg"""

from rowmapper.config import MapperConfig
from rowmapper.db_context import DatabaseManager, QueryLog, QueryTracker
from rowmapper.exceptions import (
    ConfigurationError,
    ExecutionError,
    MapperError,
    MappingError,
    NotFoundError,
)
from rowmapper.mapper import EntityMapper
from rowmapper.metadata import (
    Column,
    ColumnDescriptor,
    ColumnType,
    EntityMapping,
    PrimaryKey,
    PrimaryKeyDescriptor,
    columns,
    get_mapping,
    primary_key,
    register_mapping,
    resolve_mapping,
    table,
    table_name,
)
from rowmapper.query_builder import QueryBuilder, render_sql

__all__ = [
    "Column",
    "ColumnDescriptor",
    "ColumnType",
    "ConfigurationError",
    "DatabaseManager",
    "EntityMapper",
    "EntityMapping",
    "ExecutionError",
    "MapperConfig",
    "MapperError",
    "MappingError",
    "NotFoundError",
    "PrimaryKey",
    "PrimaryKeyDescriptor",
    "QueryBuilder",
    "QueryLog",
    "QueryTracker",
    "columns",
    "get_mapping",
    "primary_key",
    "register_mapping",
    "render_sql",
    "resolve_mapping",
    "table",
    "table_name",
]
