import pytest

from tests.fakes import FakeConnection


@pytest.fixture
def conn():
    """A fresh recording connection for each test."""
    return FakeConnection()
