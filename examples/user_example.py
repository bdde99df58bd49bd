"""
User Example

Walks a User through its lifecycle: insert, partial update, queries and
delete, printing every statement the mapper issues.

Run from the repository root with: python -m examples.user_example
"""

import asyncio
from typing import Annotated

from pydantic import BaseModel

from examples.db_setup import cleanup_example_data, connect, setup_example_schema
from rowmapper import (
    Column,
    DatabaseManager,
    EntityMapper,
    NotFoundError,
    PrimaryKey,
    render_sql,
    table,
)


@table("users")
class User(BaseModel):
    id: Annotated[int | None, PrimaryKey("user_id")] = None
    name: Annotated[str, Column("name")] = ""
    email: Annotated[str, Column("email")] = ""


async def main():
    conn = await connect()
    try:
        await setup_example_schema(conn)
        await cleanup_example_data(conn)

        users = EntityMapper(User, conn)

        async with DatabaseManager.track_queries() as tracker:
            alice = User(name="Alice", email="a@x.com")
            await users.persist(alice)
            print(f"\nInserted user with id {alice.id}")

            alice.name = "Alice2"
            await users.persist(alice)

            found = await users.find_first("user_id = $1", alice.id)
            print(f"Found: {found}")

            await users.persist(User(name="Bob", email="b@x.com"))
            print(f"All users: {await users.find()}")

            await users.delete(alice)
            try:
                await users.find_first("name = $1", "Alice2")
            except NotFoundError as e:
                print(f"After delete: {e}")

        print(f"\nTotal queries executed: {tracker.count()}")
        for i, query_log in enumerate(tracker.get_queries(), 1):
            print(f"  {i}. {render_sql(query_log.query, query_log.params)}")
    finally:
        await conn.close()


if __name__ == "__main__":
    asyncio.run(main())
