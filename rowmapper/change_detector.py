"""Change detection for partial updates.

The stored row is fetched by primary key and compared column by column with
the entity being persisted. Only the columns that differ end up in the SET
clause. A stored value that cannot be read counts as changed.
"""

from typing import Any, Generic, TypeVar

from rowmapper.database_operations import DatabaseOperations
from rowmapper.exceptions import MappingError, NotFoundError
from rowmapper.hydrator import coerce, read_column, read_entity_value
from rowmapper.metadata import ColumnDescriptor, EntityMapping
from rowmapper.query_builder import build_select

T = TypeVar("T")


class ChangeDetector(Generic[T]):
    """Composition class computing the changed-column set of an entity"""

    def __init__(self, mapping: EntityMapping[T], db_ops: DatabaseOperations, table: str):
        self.mapping = mapping
        self.db_ops = db_ops
        self.table = table

    async def fetch_stored_row(self, key_value: int) -> Any:
        """Fetch the stored row for a primary key value"""
        key_column = self.mapping.primary_key.column_name
        query, params = build_select(
            self.table, f"{key_column} = $1", [key_value], limit_one=True
        )
        row = await self.db_ops.fetch_one(query, params)
        if row is None:
            raise NotFoundError(
                f"No row in {self.table} with {key_column} = {key_value}"
            )
        return row

    def diff(self, entity: T, stored_row: Any) -> list[tuple[str, Any]]:
        """Return (column name, new value) for every column that differs.

        Columns keep their declaration order.
        """
        changes: list[tuple[str, Any]] = []
        for column in self.mapping.columns:
            new_value = read_entity_value(entity, column)
            if self._is_changed(column, new_value, stored_row):
                changes.append((column.column_name, new_value))
        return changes

    @staticmethod
    def _is_changed(column: ColumnDescriptor, new_value: Any, stored_row: Any) -> bool:
        try:
            stored_value = read_column(stored_row, column)
            current_value = coerce(new_value, column)
        except MappingError:
            return True
        return current_value != stored_value

    async def changed_columns(self, entity: T) -> list[tuple[str, Any]]:
        """Fetch the stored row for the entity and diff against it"""
        key_value = self.mapping.primary_key.get(entity)
        stored_row = await self.fetch_stored_row(key_value)
        return self.diff(entity, stored_row)
