"""
Statement builders for single-table CRUD.
The goal is to produce SQL text and bound parameters without execution.

Values are always bound as asyncpg placeholders ($1, $2, ...); only
identifiers and caller-supplied predicate text end up in the statement.
"""

import re
from collections.abc import Sequence
from datetime import date, datetime
from typing import Any

SELECT_QUERY_TEMPLATE = "SELECT * FROM {table}"
COUNT_QUERY_TEMPLATE = "SELECT COUNT(*) FROM {table}"
INSERT_QUERY_TEMPLATE = "INSERT INTO {table}({columns}) VALUES({placeholders})"
INSERT_DEFAULTS_QUERY_TEMPLATE = "INSERT INTO {table} DEFAULT VALUES"
UPDATE_QUERY_TEMPLATE = "UPDATE {table} SET {assignments} WHERE {key} = ${index}"
DELETE_QUERY_TEMPLATE = "DELETE FROM {table} WHERE {key} = $1"

_PLACEHOLDER = re.compile(r"\$(\d+)")


def build_select(
    table: str,
    predicate: str | None = None,
    params: Sequence[Any] = (),
    limit_one: bool = False,
) -> tuple[str, list[Any]]:
    """Build SELECT * FROM table [WHERE predicate] [LIMIT 1].

    The predicate is caller text referencing $1..$n, bound to params.
    """
    query = SELECT_QUERY_TEMPLATE.format(table=table)
    if predicate:
        query = f"{query} WHERE {predicate}"
    if limit_one:
        query = f"{query} LIMIT 1"
    return query, list(params)


def build_count(
    table: str, predicate: str | None = None, params: Sequence[Any] = ()
) -> tuple[str, list[Any]]:
    """Build SELECT COUNT(*) FROM table [WHERE predicate]"""
    query = COUNT_QUERY_TEMPLATE.format(table=table)
    if predicate:
        query = f"{query} WHERE {predicate}"
    return query, list(params)


def build_insert(
    table: str,
    column_names: Sequence[str],
    column_values: Sequence[Any],
    returning: str | None = None,
) -> tuple[str, list[Any]]:
    """Build INSERT INTO table(columns) VALUES($1, ...) [RETURNING column]"""
    if len(column_names) != len(column_values):
        raise ValueError(
            f"Got {len(column_names)} column names but {len(column_values)} values"
        )

    if column_names:
        placeholders = ", ".join(f"${i + 1}" for i in range(len(column_values)))
        query = INSERT_QUERY_TEMPLATE.format(
            table=table, columns=", ".join(column_names), placeholders=placeholders
        )
    else:
        query = INSERT_DEFAULTS_QUERY_TEMPLATE.format(table=table)

    if returning:
        query = f"{query} RETURNING {returning}"
    return query, list(column_values)


def build_update(
    table: str,
    set_clauses: Sequence[tuple[str, Any]],
    key_column: str,
    key_value: Any,
) -> tuple[str, list[Any]]:
    """Build UPDATE table SET col = $1, ... WHERE key = $n.

    With no set clauses the statement assigns the key to itself: a valid
    update that matches the row without modifying it.
    """
    if not set_clauses:
        query = UPDATE_QUERY_TEMPLATE.format(
            table=table,
            assignments=f"{key_column} = {key_column}",
            key=key_column,
            index=1,
        )
        return query, [key_value]

    assignments = ", ".join(
        f"{column} = ${i + 1}" for i, (column, _) in enumerate(set_clauses)
    )
    params = [value for _, value in set_clauses]
    params.append(key_value)
    query = UPDATE_QUERY_TEMPLATE.format(
        table=table, assignments=assignments, key=key_column, index=len(params)
    )
    return query, params


def build_delete(table: str, key_column: str, key_value: Any) -> tuple[str, list[Any]]:
    """Build DELETE FROM table WHERE key = $1"""
    return DELETE_QUERY_TEMPLATE.format(table=table, key=key_column), [key_value]


def _literal(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int | float):
        return str(value)
    if isinstance(value, datetime | date):
        return f"'{value.isoformat()}'"
    text = str(value).replace("'", "''")
    return f"'{text}'"


def render_sql(query: str, params: Sequence[Any]) -> str:
    """Inline bound parameters as SQL literals, for logs and debugging only.

    render_sql("UPDATE users SET name = $1 WHERE user_id = $2", ["Alice2", 7])
    -> "UPDATE users SET name = 'Alice2' WHERE user_id = 7"
    """

    def replace_param(match):
        index = int(match.group(1)) - 1
        if 0 <= index < len(params):
            return _literal(params[index])
        return match.group(0)

    return _PLACEHOLDER.sub(replace_param, query)


class QueryBuilder:
    """
    Immutable builder for SELECT statements with AND-ed conditions.

    Usage:
        builder = QueryBuilder("users")
        query, params = builder.where("email", "a@x.com").where("user_id", ">", 3).build()
    """

    def __init__(self, table_name: str):
        self.table_name = table_name
        self.where_conditions: list[str] = []
        self.params: list[Any] = []

    def _clone(self) -> "QueryBuilder":
        """Create a copy of the current QueryBuilder instance"""
        new_builder = QueryBuilder(self.table_name)
        new_builder.where_conditions = self.where_conditions.copy()
        new_builder.params = self.params.copy()
        return new_builder

    def _add_condition(self, field: str, value: Any, operator: str) -> "QueryBuilder":
        """Add a condition to the WHERE clause"""
        new_builder = self._clone()

        # Handle None values with IS NULL / IS NOT NULL
        if value is None and operator == "=":
            condition = f"{field} IS NULL"
        elif value is None and operator in ("!=", "<>"):
            condition = f"{field} IS NOT NULL"
        else:
            new_builder.params.append(value)
            condition = f"{field} {operator} ${len(new_builder.params)}"

        new_builder.where_conditions.append(condition)
        return new_builder

    def where(self, field: str, *args: Any) -> "QueryBuilder":
        """Add a WHERE condition.

        Supports both of the following call styles:
        - where(field, value) -> operator defaults to '='
        - where(field, operator, value) -> explicit operator in the second place
        """
        if len(args) == 2:
            operator, value = args
            return self._add_condition(field, value, operator)
        if len(args) == 1:
            return self._add_condition(field, args[0], "=")
        raise TypeError("where() expects (field, value) or (field, operator, value)")

    def build(self) -> tuple[str, list[Any]]:
        """Build the final SQL query and parameters"""
        query = SELECT_QUERY_TEMPLATE.format(table=self.table_name)
        if self.where_conditions:
            query = f"{query} WHERE {' AND '.join(self.where_conditions)}"
        return query, list(self.params)
