"""EntityMapper class"""

from typing import Any, Generic, TypeVar

import asyncpg

from rowmapper.change_detector import ChangeDetector
from rowmapper.config import MapperConfig
from rowmapper.database_operations import DatabaseOperations, affected_rows
from rowmapper.exceptions import NotFoundError
from rowmapper.hydrator import (
    ResultHydrator,
    coerce,
    read_entity_value,
    write_entity_value,
)
from rowmapper.metadata import EntityMapping, get_mapping
from rowmapper.query_builder import (
    QueryBuilder,
    build_count,
    build_delete,
    build_insert,
    build_select,
    build_update,
)

T = TypeVar("T")


class EntityMapper(Generic[T]):
    """Persists and retrieves instances of one row type.

    An entity whose primary key is None or not positive is transient and
    persist() inserts it; otherwise persist() updates only the columns that
    differ from the stored row.

    Usage:
        users = EntityMapper(User, conn)
        user = User(name="Alice", email="a@x.com")
        await users.persist(user)  # INSERT, user.id is assigned
        user.name = "Alice2"
        await users.persist(user)  # UPDATE users SET name = $1 WHERE user_id = $2
        first = await users.find_first("email = $1", "a@x.com")

    Predicates passed to find(), find_first(), count() and exists() are SQL
    text over stored column names; values must be passed as parameters and
    referenced as $1, $2, ...
    """

    def __init__(
        self,
        entity_class: type[T],
        connection: asyncpg.Connection | None = None,
        config: MapperConfig | None = None,
        mapping: EntityMapping[T] | None = None,
    ):
        if entity_class is None:
            raise ValueError("entity_class is required")

        self.entity_class = entity_class
        self.mapping = mapping or get_mapping(entity_class)
        self.config = config or MapperConfig()
        self.table = self.config.qualify(self.mapping.table_name)

        # Composition: Inject dependencies
        self.db_ops = DatabaseOperations(connection)
        self.hydrator = ResultHydrator(self.mapping)
        self.change_detector = ChangeDetector(self.mapping, self.db_ops, self.table)

    def primary_key_value(self, entity: T) -> int | None:
        """Return the entity's primary key as an integer, or None when unset"""
        primary_key = self.mapping.primary_key
        return coerce(read_entity_value(entity, primary_key), primary_key)

    def is_transient(self, entity: T) -> bool:
        """Whether the entity has not been persisted yet"""
        key = self.primary_key_value(entity)
        return key is None or key <= 0

    async def persist(self, entity: T) -> bool:
        """Insert a transient entity or update a persisted one.

        Returns:
            True if a row was inserted or matched by the update
        """
        if self.is_transient(entity):
            return await self._insert(entity)
        return await self._update(entity)

    async def _insert(self, entity: T) -> bool:
        primary_key = self.mapping.primary_key
        values = [read_entity_value(entity, column) for column in self.mapping.columns]
        query, params = build_insert(
            self.table,
            self.mapping.column_names,
            values,
            returning=primary_key.column_name,
        )
        key = await self.db_ops.fetch_value(query, params)
        if key is None:
            return False
        write_entity_value(entity, primary_key, coerce(key, primary_key))
        return True

    async def _update(self, entity: T) -> bool:
        set_clauses = await self.changes(entity)
        query, params = build_update(
            self.table,
            set_clauses,
            self.mapping.primary_key.column_name,
            self.primary_key_value(entity),
        )
        status = await self.db_ops.execute_query(query, params)
        return affected_rows(status) > 0

    async def changes(self, entity: T) -> list[tuple[str, Any]]:
        """Return the (column, value) pairs an update of this entity would write"""
        if self.is_transient(entity):
            raise NotFoundError(
                f"{type(entity).__name__} has no primary key value; it was never persisted"
            )
        if not self.config.detect_changes:
            return [
                (column.column_name, read_entity_value(entity, column))
                for column in self.mapping.columns
            ]
        return await self.change_detector.changed_columns(entity)

    async def find(self, where: str | None = None, *params: Any) -> list[T]:
        """Return every row, optionally filtered, as entities in result order"""
        query, query_params = build_select(self.table, where, params)
        rows = await self.db_ops.fetch_all(query, query_params)
        return list(self.hydrator.map_rows_to_entities(rows))

    async def find_first(self, where: str | None = None, *params: Any) -> T:
        """Return the first matching entity.

        Raises:
            NotFoundError: no row matches
        """
        query, query_params = build_select(self.table, where, params, limit_one=True)
        row = await self.db_ops.fetch_one(query, query_params)
        if row is None:
            condition = f" matching {where}" if where else ""
            raise NotFoundError(f"No row in {self.table}{condition}")
        return self.hydrator.map_row_to_entity(row)

    async def find_by_id(self, key: int) -> T | None:
        """Find entity by primary key, None when absent"""
        column = self.mapping.primary_key.column_name
        query, params = build_select(self.table, f"{column} = $1", [key], limit_one=True)
        row = await self.db_ops.fetch_one(query, params)
        if row is None:
            return None
        return self.hydrator.map_row_to_entity(row)

    async def find_by(self, **criteria: Any) -> list[T]:
        """Find entities whose fields equal the given values.

        Keyword names are field names; they are translated to column names.
        A None value matches NULL.
        """
        builder = QueryBuilder(self.table)
        for field_name, value in criteria.items():
            column = self.mapping.descriptor_for(field_name)
            builder = builder.where(column.column_name, value)
        query, params = builder.build()
        rows = await self.db_ops.fetch_all(query, params)
        return list(self.hydrator.map_rows_to_entities(rows))

    async def count(self, where: str | None = None, *params: Any) -> int:
        """Return the number of matching rows"""
        query, query_params = build_count(self.table, where, params)
        result = await self.db_ops.fetch_value(query, query_params)
        return result or 0

    async def exists(self, where: str | None = None, *params: Any) -> bool:
        """Check if any row matches"""
        return await self.count(where, *params) > 0

    async def delete(self, entity: T) -> bool:
        """Delete the entity's row by primary key.

        On success the entity becomes transient again (its key is reset to None).

        Returns:
            True if a row was deleted, False if no row had that key

        Raises:
            NotFoundError: the entity is transient
        """
        if self.is_transient(entity):
            raise NotFoundError(
                f"{type(entity).__name__} has no primary key value; nothing to delete"
            )
        primary_key = self.mapping.primary_key
        query, params = build_delete(
            self.table, primary_key.column_name, self.primary_key_value(entity)
        )
        status = await self.db_ops.execute_query(query, params)
        deleted = affected_rows(status) > 0
        if deleted:
            write_entity_value(entity, primary_key, None)
        return deleted
