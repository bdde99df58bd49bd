from datetime import date
from typing import Annotated

from pydantic import BaseModel

from rowmapper import Column, PrimaryKey, table


@table("users")
class User(BaseModel):
    id: Annotated[int | None, PrimaryKey("user_id")] = None
    name: Annotated[str, Column("name")] = ""
    email: Annotated[str, Column("email")] = ""
    # Not mapped: invisible to the mapper
    nickname: str = ""


@table("events")
class Event(BaseModel):
    id: Annotated[int | None, PrimaryKey("event_id")] = None
    title: Annotated[str, Column()] = ""
    attendees: Annotated[int | None, Column("attendee_count")] = None
    held_on: Annotated[date | None, Column("held_on")] = None


def user_row(user_id: int, name: str, email: str) -> dict:
    return {"user_id": user_id, "name": name, "email": email}
