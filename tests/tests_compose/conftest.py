"""
Shared fixtures for composition tests.

Key fixtures:
- recording_executor: executor that records every Query and returns canned results.
- projects_subquery: reusable SelectBuilder used as a nested select.
"""

import pytest


class RecordingExecutor:
    """Executor that stores queries instead of running them."""

    def __init__(self, result=None):
        self.result = result
        self.queries = []
        self.batches = []

    def execute(self, query):
        self.queries.append(query)
        return self.result

    def execute_batch(self, queries):
        self.batches.append(list(queries))
        return [self.result for _ in queries]


@pytest.fixture
def recording_executor():
    return RecordingExecutor(result=[{'id': 1}])


@pytest.fixture
def projects_subquery(qb):
    """SELECT id FROM projects WHERE status = ? ('active')."""
    return qb.select('projects').fields('id').where('status = ?', 'active')
