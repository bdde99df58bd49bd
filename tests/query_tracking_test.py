"""Tests for query tracking and the connection context"""

import logging
import os

import pytest

from rowmapper import DatabaseManager, EntityMapper, QueryTracker
from tests.fakes import FakeConnection
from tests.user_entities import User, user_row


@pytest.mark.asyncio
async def test_basic_query_tracking(conn):
    """Every statement issued by the mapper is tracked in order"""
    users = EntityMapper(User, conn)
    conn.queue(7, user_row(7, "Alice", "a@x.com"))

    async with DatabaseManager.track_queries() as tracker:
        user = User(name="Alice", email="a@x.com")
        await users.persist(user)
        await users.find_first("user_id = $1", user.id)

        queries = tracker.get_queries()
        assert tracker.count() == 2
        assert queries[0].query.startswith("INSERT INTO users")
        assert queries[0].params == ["Alice", "a@x.com"]
        assert queries[1].query == "SELECT * FROM users WHERE user_id = $1 LIMIT 1"
        assert queries[1].params == [7]
        assert queries[0].stack_trace


@pytest.mark.asyncio
async def test_queries_outside_tracking_are_not_recorded(conn):
    users = EntityMapper(User, conn)

    await users.find()
    async with DatabaseManager.track_queries() as tracker:
        await users.count()

    assert [log.query for log in tracker.get_queries()] == ["SELECT COUNT(*) FROM users"]
    assert DatabaseManager.get_query_tracker() is None


@pytest.mark.asyncio
async def test_nested_tracking_reuses_tracker(conn):
    users = EntityMapper(User, conn)

    async with DatabaseManager.track_queries() as outer:
        await users.find()
        async with DatabaseManager.track_queries() as inner:
            await users.find()

    assert inner is outer
    assert outer.count() == 2


@pytest.mark.asyncio
async def test_queries_are_logged(conn, caplog):
    users = EntityMapper(User, conn)

    with caplog.at_level(logging.DEBUG, logger="rowmapper"):
        await users.find("name = $1", "Alice")

    assert "SELECT * FROM users WHERE name = $1" in caplog.text
    assert "'Alice'" in caplog.text


def test_tracker_ignores_queries_while_disabled():
    tracker = QueryTracker()
    tracker.log_query("SELECT 1", [])
    assert tracker.count() == 0

    tracker.enable()
    tracker.log_query("SELECT 1", (1,))
    [entry] = tracker.get_queries()
    assert entry.query == "SELECT 1"
    assert entry.params == [1]
    assert entry.timestamp is not None

    tracker.clear()
    assert tracker.count() == 0


@pytest.mark.asyncio
async def test_stack_trace_ends_at_the_caller(conn):
    users = EntityMapper(User, conn)

    async with DatabaseManager.track_queries() as tracker:
        await users.find()

    trace = tracker.get_queries()[0].stack_trace
    frames = [line for line in trace.splitlines() if line.lstrip().startswith("File ")]
    last_frame = frames[-1]
    assert "query_tracking_test.py" in last_frame
    assert "test_stack_trace_ends_at_the_caller" in last_frame
    assert "rowmapper" + os.sep + "mapper.py" not in trace


class TestUseConnection:
    @pytest.mark.asyncio
    async def test_get_current_connection_no_context(self):
        assert DatabaseManager.get_current_connection() is None

    @pytest.mark.asyncio
    async def test_binding_is_restored_on_exit(self, conn):
        async with DatabaseManager.use_connection(conn) as bound:
            assert bound is conn
            assert DatabaseManager.get_current_connection() is conn

        assert DatabaseManager.get_current_connection() is None
        assert conn.closed is False

    @pytest.mark.asyncio
    async def test_binding_is_restored_on_error(self, conn):
        with pytest.raises(RuntimeError):
            async with DatabaseManager.use_connection(conn):
                raise RuntimeError("boom")

        assert DatabaseManager.get_current_connection() is None

    @pytest.mark.asyncio
    async def test_explicit_connection_wins_over_context(self, conn):
        other = FakeConnection()
        users = EntityMapper(User, conn)

        async with DatabaseManager.use_connection(other):
            await users.find()

        assert len(conn.calls) == 1
        assert other.calls == []
