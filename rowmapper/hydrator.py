from collections.abc import Iterable, Iterator
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Generic, TypeVar

from rowmapper.exceptions import MappingError
from rowmapper.metadata import ColumnDescriptor, ColumnType, EntityMapping

T = TypeVar("T")

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def _to_integer(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("booleans are not integers")
    if isinstance(value, float | Decimal) and value != int(value):
        raise ValueError(f"{value!r} is not integral")
    result = int(value)
    if not INT64_MIN <= result <= INT64_MAX:
        raise OverflowError(f"{result} does not fit in 64 bits")
    return result


def _to_text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode()
    return str(value)


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise TypeError(f"cannot read {type(value).__name__} as a date")


_COERCERS = {
    ColumnType.INTEGER: _to_integer,
    ColumnType.TEXT: _to_text,
    ColumnType.DATE: _to_date,
}


def coerce(value: Any, column: ColumnDescriptor) -> Any:
    """Coerce a stored value to the column's semantic type. None stays None."""
    if value is None:
        return None
    try:
        return _COERCERS[column.column_type](value)
    except (TypeError, ValueError, OverflowError, UnicodeDecodeError) as exc:
        raise MappingError(
            f"Cannot map value {value!r} of column '{column.column_name}' "
            f"to {column.column_type.value}: {exc}"
        ) from exc


def read_column(row: Any, column: ColumnDescriptor) -> Any:
    """Read a column from a result row by its stored name and coerce it"""
    try:
        value = row[column.column_name]
    except (KeyError, IndexError) as exc:
        raise MappingError(
            f"Result row has no column '{column.column_name}'"
        ) from exc
    return coerce(value, column)


def read_entity_value(entity: Any, column: ColumnDescriptor) -> Any:
    """Read a field value through the column accessor"""
    try:
        return column.get(entity)
    except Exception as exc:
        raise MappingError(
            f"Field '{column.field_name}' of {type(entity).__name__} cannot be read"
        ) from exc


def write_entity_value(entity: Any, column: ColumnDescriptor, value: Any) -> None:
    """Assign a field value through the column mutator"""
    try:
        column.set(entity, value)
    except Exception as exc:
        raise MappingError(
            f"Field '{column.field_name}' of {type(entity).__name__} cannot be "
            f"assigned {value!r}"
        ) from exc


class ResultHydrator(Generic[T]):
    """Composition class turning result rows into row type instances"""

    def __init__(self, mapping: EntityMapping[T]):
        self.mapping = mapping

    def map_row_to_entity(self, row: Any) -> T:
        """Map a database row to a new entity"""
        entity = self.mapping.create()
        primary_key = self.mapping.primary_key
        write_entity_value(entity, primary_key, read_column(row, primary_key))
        for column in self.mapping.columns:
            write_entity_value(entity, column, read_column(row, column))
        return entity

    def map_rows_to_entities(self, rows: Iterable[Any]) -> Iterator[T]:
        """Lazily map database rows to entities, one per row, in row order"""
        for row in rows:
            yield self.map_row_to_entity(row)
