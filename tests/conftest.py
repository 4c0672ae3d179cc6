"""
Shared pytest configuration and fixtures for all tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to sys.path to enable importing project modules
# This allows tests to import from 'compose', 'migrate', 'core', 'utils' without installation
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: Unit tests - isolated function-level tests")
    config.addinivalue_line("markers", "integration: Integration tests - component interactions")
    config.addinivalue_line("markers", "smoke: Smoke tests - basic functionality checks")
    config.addinivalue_line("markers", "edge_case: Edge case tests - boundary conditions")
    config.addinivalue_line("markers", "regression: Regression tests - previously fixed bugs")


@pytest.fixture
def qb():
    """QueryBuilder without an executor; renders only."""
    from compose.builder import QueryBuilder

    return QueryBuilder()


@pytest.fixture
def sqlite_executor():
    """SQLAlchemyExecutor over a private in-memory SQLite database.

    StaticPool keeps the single in-memory connection alive across
    transactions so tables survive between execute() calls.
    """
    from sqlalchemy import create_engine
    from sqlalchemy.pool import StaticPool

    from utils.executors import SQLAlchemyExecutor

    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool
    )
    executor = SQLAlchemyExecutor(engine)
    yield executor
    executor.dispose()
