"""
=============================================
Pytest suite for compose/builder.py
=============================================

Sections:
---------
1. Unit tests - Chaining, accumulation, immutability
2. Integration tests - Execution through executors
3. Edge case tests - where_in corner cases, missing executor

Available markers:
------------------
unit, integration, edge_case, smoke

Test Coverage:
--------------
- SelectBuilder accumulation rules and immutability
- where_in for one and several columns
- get_query_all / get_query_one / get_count_query
- QueryBuilder raw, DDL, execute and execute_batch
- Async executors through FunctionExecutor

How to Execute:
---------------
All tests:          pytest tests/tests_compose/test_builder.py -v
By category:        pytest tests/tests_compose/test_builder.py -m unit
"""

import asyncio

import pytest

from compose.builder import QueryBuilder, SelectBuilder
from compose.executor import Executor, FunctionExecutor
from compose.types import FetchType, Query, Raw
from core.exceptions import InvalidConfigurationError, ParameterMismatchError, QueryBuilderError

# ================
# 0. SMOKE TESTS
# ================

@pytest.mark.smoke
def test_select_builder_default_query(qb):
    """Smoke test: Verify the simplest select."""
    query = qb.select('t').get_query_all()

    assert query == Query(sql='SELECT * FROM t', args=(), fetch_type=FetchType.MANY)


# ===============
# 1. UNIT TESTS
# ===============

@pytest.mark.unit
def test_builder_calls_do_not_mutate_original(qb):
    """Unit test: Verify every chained call returns a new builder."""
    base = qb.select('t')
    filtered = base.where('a = ?', 1)
    limited = filtered.limit(5)

    assert base.get_query_all().sql == 'SELECT * FROM t'
    assert filtered.get_query_all().sql == 'SELECT * FROM t WHERE a = ?1'
    assert limited.get_query_all().sql == 'SELECT * FROM t WHERE a = ?1 LIMIT 5'
    assert base is not filtered


@pytest.mark.unit
def test_shared_template_builds_independent_queries(qb):
    """Unit test: Verify a partially configured builder can be reused."""
    template = qb.select('tasks').where('owner = ?', 'ada')

    open_tasks = template.where('state = ?', 'open').get_query_all()
    done_tasks = template.where('state = ?', 'done').get_query_all()

    assert open_tasks.args == ('ada', 'open')
    assert done_tasks.args == ('ada', 'done')
    assert template.get_query_all().args == ('ada',)


@pytest.mark.unit
def test_where_calls_accumulate_as_and_groups(qb):
    """Unit test: Verify each where() adds one parenthesized group."""
    query = qb.select('t').where('a = ?', 1).where('b = ? OR c = ?', [2, 3]).get_query_all()

    assert query.sql == 'SELECT * FROM t WHERE (a = ?1) AND (b = ?2 OR c = ?3)'
    assert query.args == (1, 2, 3)


@pytest.mark.unit
def test_numbered_placeholders_are_per_group(qb):
    """Unit test: Verify ?1 in a later group addresses that group's params."""
    query = (
        qb.select('t')
        .where('a = ?1 OR b = ?1', 'x')
        .where('c = ?1', 'y')
        .get_query_all()
    )

    assert query.sql == 'SELECT * FROM t WHERE (a = ?1 OR b = ?1) AND (c = ?2)'
    assert query.args == ('x', 'y')


@pytest.mark.unit
def test_where_with_list_of_conditions(qb):
    """Unit test: Verify a list of fragments shares one param list."""
    query = qb.select('t').where(['a = ?', 'b = ?'], [1, 2]).get_query_all()

    assert query.sql == 'SELECT * FROM t WHERE (a = ?1) AND (b = ?2)'


@pytest.mark.unit
def test_where_in_single_column(qb):
    """Unit test: Verify where_in for one column."""
    query = qb.select('t').where_in('id', [1, 2, 3]).get_query_all()

    assert query.sql == 'SELECT * FROM t WHERE (id) IN (VALUES (?1), (?2), (?3))'
    assert query.args == (1, 2, 3)


@pytest.mark.unit
def test_where_in_several_columns(qb):
    """Unit test: Verify where_in tuple matching flattens rows in order."""
    query = qb.select('t').where_in(['a', 'b'], [[1, 2], [3, 4]]).get_query_all()

    assert query.sql == 'SELECT * FROM t WHERE (a, b) IN (VALUES (?1, ?2), (?3, ?4))'
    assert query.args == (1, 2, 3, 4)


@pytest.mark.unit
def test_append_and_replace_rules(qb):
    """Unit test: Verify which options append and which replace."""
    query = (
        qb.select('old')
        .table_name('t')
        .fields('id')
        .fields(['name', 'email'])
        .group_by('name')
        .group_by('email')
        .order_by('name')
        .order_by({'id': 'DESC'})
        .limit(10)
        .limit(5)
        .offset(1)
        .get_query_all()
    )

    assert query.sql == 'SELECT id, name, email FROM t GROUP BY name, email ORDER BY name, id DESC LIMIT 5 OFFSET 1'


@pytest.mark.unit
def test_join_calls_append(qb):
    """Unit test: Verify join() appends joins in call order."""
    query = (
        qb.select('a')
        .join({'table': 'b', 'on': 'b.a_id = a.id'})
        .join({'table': 'c', 'on': 'c.b_id = b.id', 'type': 'LEFT'})
        .get_query_all()
    )

    assert query.sql == 'SELECT * FROM a JOIN b ON b.a_id = a.id LEFT JOIN c ON c.b_id = b.id'


@pytest.mark.unit
def test_get_query_one_and_count(qb):
    """Unit test: Verify the single-row and count companions of a builder."""
    builder = qb.select('t').where('a = ?', 1).limit(10).offset(20)

    one = builder.get_query_one()
    count = builder.get_count_query()

    assert one.sql == 'SELECT * FROM t WHERE a = ?1 LIMIT 1 OFFSET 20'
    assert one.fetch_type == FetchType.ONE
    assert count.sql == 'SELECT count(*) as total FROM t WHERE a = ?1 LIMIT 1'
    assert count.fetch_type == FetchType.ONE


@pytest.mark.unit
def test_builders_compare_by_options(qb):
    """Unit test: Verify equal chains give equal builders."""
    assert qb.select('t').where('a = ?', 1) == qb.select('t').where('a = ?', 1)
    assert qb.select('t') != qb.select('u')


@pytest.mark.unit
def test_raw_query(qb):
    """Unit test: Verify raw SQL passes through with its args and cardinality."""
    query = qb.raw('SELECT * FROM t WHERE id = ?1', [5], FetchType.ONE)

    assert query == Query(sql='SELECT * FROM t WHERE id = ?1', args=(5,), fetch_type=FetchType.ONE)
    assert qb.raw('VACUUM').fetch_type == FetchType.NONE
    assert qb.raw('SELECT 1', fetch_type='MANY').fetch_type == FetchType.MANY


@pytest.mark.unit
def test_ddl_helpers(qb):
    """Unit test: Verify CREATE TABLE and DROP TABLE text."""
    create = qb.create_table('users', 'id INTEGER PRIMARY KEY, name TEXT', if_not_exists=True)
    drop = qb.drop_table('users', if_exists=True)

    assert create.sql == 'CREATE TABLE IF NOT EXISTS users (id INTEGER PRIMARY KEY, name TEXT)'
    assert qb.create_table('users', 'id INTEGER').sql == 'CREATE TABLE users (id INTEGER)'
    assert drop.sql == 'DROP TABLE IF EXISTS users'
    assert qb.drop_table('users').sql == 'DROP TABLE users'


# ======================
# 2. INTEGRATION TESTS
# ======================

@pytest.mark.integration
def test_builder_execution_hands_queries_to_executor(recording_executor):
    """Integration test: Verify all/one/count pass rendered queries through."""
    qb = QueryBuilder(recording_executor)
    builder = qb.select('t').where('a = ?', 1)

    assert builder.all() == [{'id': 1}]
    builder.one()
    builder.count()
    builder.execute()

    sqls = [query.sql for query in recording_executor.queries]
    assert sqls == [
        'SELECT * FROM t WHERE a = ?1',
        'SELECT * FROM t WHERE a = ?1 LIMIT 1',
        'SELECT count(*) as total FROM t WHERE a = ?1 LIMIT 1',
        'SELECT * FROM t WHERE a = ?1',
    ]


@pytest.mark.integration
def test_query_builder_execute_batch(recording_executor):
    """Integration test: Verify execute_batch forwards the whole list."""
    qb = QueryBuilder(recording_executor)
    queries = [
        qb.insert(table_name='t', data={'a': 1}),
        qb.update(table_name='t', data={'a': 2}, where='a = 1'),
    ]

    qb.execute_batch(queries)

    assert recording_executor.batches == [queries]


@pytest.mark.integration
def test_function_executor_adapts_callables():
    """Integration test: Verify FunctionExecutor satisfies the Executor protocol."""
    seen = []
    executor = FunctionExecutor(lambda query: seen.append(query.sql) or len(seen))
    qb = QueryBuilder(executor)

    assert isinstance(executor, Executor)
    assert qb.execute(qb.raw('SELECT 1')) == 1
    assert qb.execute_batch([qb.raw('SELECT 2'), qb.raw('SELECT 3')]) == [2, 3]
    assert seen == ['SELECT 1', 'SELECT 2', 'SELECT 3']


@pytest.mark.integration
def test_async_executor_results_are_awaitable():
    """Integration test: Verify builders return whatever an async executor returns."""
    async def run(query):
        return {'sql': query.sql}

    async def run_batch(queries):
        return [query.sql for query in queries]

    qb = QueryBuilder(FunctionExecutor(run, run_batch))

    assert asyncio.run(qb.select('t').all()) == {'sql': 'SELECT * FROM t'}
    assert asyncio.run(qb.execute_batch([qb.raw('SELECT 1')])) == ['SELECT 1']


@pytest.mark.integration
def test_migrations_helper_uses_builder_executor(recording_executor):
    """Integration test: Verify migrations() binds the runner to this executor."""
    qb = QueryBuilder(recording_executor)

    runner = qb.migrations([{'name': '0001', 'sql': 'CREATE TABLE a (id INTEGER)'}], table_name='versions')

    assert runner.executor is recording_executor
    assert runner.table_name == 'versions'


# ====================
# 3. EDGE CASE TESTS
# ====================

@pytest.mark.edge_case
def test_where_in_empty_values_is_noop(qb):
    """Edge case: Verify an empty value list returns the same builder."""
    builder = qb.select('t')

    assert builder.where_in('id', []) is builder


@pytest.mark.edge_case
def test_where_in_row_length_mismatch_raises(qb):
    """Edge case: Verify every where_in row matches the column count."""
    with pytest.raises(InvalidConfigurationError):
        qb.select('t').where_in(['a', 'b'], [[1, 2], [3]])


@pytest.mark.edge_case
def test_where_param_mismatch_raises_immediately(qb):
    """Edge case: Verify bad params fail at where() time."""
    with pytest.raises(ParameterMismatchError):
        qb.select('t').where('a = ? AND b = ?', [1])


@pytest.mark.edge_case
def test_where_without_placeholders(qb):
    """Edge case: Verify fragments without placeholders need no params."""
    query = qb.select('t').where('deleted_at IS NULL').get_query_all()

    assert query.sql == 'SELECT * FROM t WHERE deleted_at IS NULL'
    assert query.args == ()


@pytest.mark.edge_case
def test_where_with_raw_param(qb):
    """Edge case: Verify Raw params are inlined by the builder too."""
    query = qb.select('t').where('created_at < ?', Raw("datetime('now')")).get_query_all()

    assert query.sql == "SELECT * FROM t WHERE created_at < datetime('now')"
    assert query.args == ()


@pytest.mark.edge_case
def test_execution_without_executor_raises(qb):
    """Edge case: Verify a render-only builder refuses to execute."""
    with pytest.raises(QueryBuilderError) as exc_info:
        qb.select('t').all()

    assert "No executor configured" in str(exc_info.value)
    with pytest.raises(QueryBuilderError):
        qb.execute(qb.raw('SELECT 1'))


@pytest.mark.edge_case
def test_raw_query_rejects_raw_args(qb):
    """Edge case: Verify Raw values cannot be passed as raw query args."""
    with pytest.raises(InvalidConfigurationError):
        qb.raw('SELECT ?1', [Raw('1')])


@pytest.mark.edge_case
def test_select_builder_without_table_fails_on_render():
    """Edge case: Verify a builder without a table fails when rendered."""
    from core.exceptions import MissingDataError

    with pytest.raises(MissingDataError):
        SelectBuilder().fields('id').get_query_all()
