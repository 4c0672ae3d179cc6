"""
Shared fixtures and fakes for migration tests.

Key fixtures:
- fake_executor: in-memory stand-in for a database that tracks applied names.
- fake_executor_factory: builds fakes with a custom table name or failing statement.
- async_fake_executor: the same fake exposed through coroutine methods.
- sample_migrations: three ordered migrations.
"""

import pytest


class FakeExecutor:
    """
    Executor double that emulates the tracking table.

    SELECTs return the recorded rows; batches containing the tracking
    insert append a row. A batch containing ``fail_on`` raises before
    anything in it is recorded, the way a rolled back transaction would.
    """

    def __init__(self, table_name='migrations', fail_on=None):
        self.table_name = table_name
        self.fail_on = fail_on
        self.rows = []
        self.queries = []
        self.batches = []

    def execute(self, query):
        self.queries.append(query)
        if query.sql.startswith('SELECT'):
            return [dict(row) for row in self.rows]
        return None

    def execute_batch(self, queries):
        queries = list(queries)
        if self.fail_on and any(self.fail_on in query.sql for query in queries):
            raise RuntimeError(f"statement failed: {self.fail_on}")

        self.batches.append(queries)
        for query in queries:
            if query.sql.startswith(f'INSERT INTO {self.table_name}'):
                self.rows.append({
                    'id': len(self.rows) + 1,
                    'name': query.args[0],
                    'applied_at': '2024-01-01 00:00:00'
                })
        return [None for _ in queries]


class AsyncFakeExecutor:
    """Coroutine facade over FakeExecutor."""

    def __init__(self, inner):
        self.inner = inner

    async def execute(self, query):
        return self.inner.execute(query)

    async def execute_batch(self, queries):
        return self.inner.execute_batch(queries)


@pytest.fixture
def fake_executor():
    return FakeExecutor()


@pytest.fixture
def fake_executor_factory():
    """Factory for FakeExecutor instances with custom table or failure settings."""
    return FakeExecutor


@pytest.fixture
def async_fake_executor():
    return AsyncFakeExecutor(FakeExecutor())


@pytest.fixture
def sample_migrations():
    from migrate.runner import Migration

    return [
        Migration('0001_users', 'CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)'),
        Migration('0002_email', 'ALTER TABLE users ADD COLUMN email TEXT'),
        Migration('0003_index', [
            'CREATE INDEX users_name ON users (name)',
            'CREATE INDEX users_email ON users (email)',
        ]),
    ]
