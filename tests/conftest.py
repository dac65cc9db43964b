"""Pytest fixtures shared across the test suite."""

import pytest

from routes import auth as routes_auth
from routes import games as routes_games
from routes import lists as routes_lists
from routes import logs as routes_logs
from tests.app_helpers import create_test_db

ROUTE_MODULES = (routes_games, routes_auth, routes_lists, routes_logs)


@pytest.fixture
def db(tmp_path):
    """Yield a migrated SQLite database for a single test."""

    engine_wrapper = create_test_db(tmp_path)
    yield engine_wrapper
    engine_wrapper.dispose()


@pytest.fixture(autouse=True)
def reset_route_context():
    """Drop services wired into the route modules by earlier tests."""

    for module in ROUTE_MODULES:
        module._context.clear()
    yield
    for module in ROUTE_MODULES:
        module._context.clear()
