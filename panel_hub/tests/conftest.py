"""
Shared fixtures for hub unit tests.
"""
import pytest

from hub_testing import FakeClock
from panel_hub.db import Database


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / 'panel.db'))
    database.init_schema()
    yield database
    database.close()


@pytest.fixture
def clock():
    return FakeClock()
