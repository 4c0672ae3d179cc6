"""
===========================
SQL statement renderers.
===========================

Turns statement descriptions into Query values (SQL text, ordered args,
fetch cardinality). All functions are pure: identical input always yields
identical output, and nothing is handed on unless the whole statement
rendered successfully.

Renderers:
- render_select: SELECT ... (cardinality chosen by the caller)
- render_fetch_one: SELECT ... LIMIT 1 with cardinality ONE
- render_count: SELECT count(*) as total ... companion query
- render_insert: INSERT [OR ...] INTO ... VALUES ... [ON CONFLICT ...] [RETURNING ...]
- render_update: UPDATE [OR ...] t SET ... [WHERE ...] [RETURNING ...]
- render_delete: DELETE FROM t [WHERE ...] [RETURNING ...] [ORDER BY ...] [LIMIT/OFFSET]
- render_raw: pass-through for caller-written SQL
- render: dispatch on the statement variant

Argument order per statement:
    SELECT: joins, WHERE, HAVING (text order)
    UPDATE: WHERE, then SET
    INSERT: upsert WHERE, upsert SET, then each row's VALUES
    DELETE: WHERE

Example:
    >>> from compose.renderers import render_update
    >>> from compose.types import UpdateSpec
    >>>
    >>> query = render_update(UpdateSpec(
    ...     table_name='t',
    ...     data={'my_field': 'test_data'},
    ...     where={'conditions': 'field = ?1', 'params': ['test_where']}
    ... ))
    >>> query.sql
    'UPDATE t SET my_field = ?2 WHERE field = ?1'
    >>> query.args
    ('test_where', 'test_data')
"""

import logging
from dataclasses import replace
from typing import Optional, Sequence, Union

from compose.conditions import render_conditions
from compose.conflicts import render_assignments, render_resolution, render_upsert
from compose.joins import render_joins
from compose.placeholders import PlaceholderAllocator
from compose.subqueries import SubqueryResolver
from compose.types import (
    DeleteSpec,
    FetchType,
    InsertSpec,
    Query,
    QuerySpec,
    Raw,
    RawSpec,
    SelectSpec,
    UpdateSpec,
)
from core.exceptions import InvalidConfigurationError, MissingDataError

logger = logging.getLogger(__name__)

COUNT_FIELD = 'count(*) as total'


def _require_table(table_name: Optional[str], operation: str) -> str:
    if not table_name:
        raise MissingDataError(operation, 'table_name')
    return table_name


def _fields(value: Union[str, Sequence[str], None]) -> str:
    if not value:
        return '*'
    if isinstance(value, str):
        return value
    return ', '.join(value)


def _listing(keyword: str, values: Sequence[str]) -> str:
    if not values:
        return ''
    return f" {keyword} {', '.join(values)}"


def _paging(limit: Optional[int], offset: Optional[int]) -> str:
    sql = ''
    if limit:
        sql += f" LIMIT {limit}"
    if offset:
        sql += f" OFFSET {offset}"
    return sql


def _finish(operation: str, sql: str, allocator: PlaceholderAllocator, fetch_type: FetchType) -> Query:
    query = Query(sql=sql, args=allocator.args, fetch_type=fetch_type)
    logger.debug(f"Rendered {operation}: {query.sql} | args={len(query.args)} | fetch={fetch_type.value}")
    return query


def compile_select(spec: SelectSpec, allocator: PlaceholderAllocator) -> str:
    """Render SELECT text, binding its values into ``allocator``.

    Used both for top-level selects and, through SubqueryResolver, for every
    nested select; each nested spec resolves its own subquery tokens.
    """
    table = _require_table(spec.table_name, 'select')
    resolver = SubqueryResolver(compile_select, spec.subqueries)

    return (
        f"SELECT {_fields(spec.fields)} FROM {table}"
        + render_joins(spec.join, allocator, resolver)
        + render_conditions('WHERE', spec.where, allocator, resolver)
        + _listing('GROUP BY', spec.group_by)
        + render_conditions('HAVING', spec.having, allocator, resolver)
        + _listing('ORDER BY', spec.order_by)
        + _paging(spec.limit, spec.offset)
    )


def render_select(spec: SelectSpec, fetch_type: FetchType = FetchType.MANY) -> Query:
    """Render a SELECT; cardinality is declared by the caller, never inferred."""
    allocator = PlaceholderAllocator()
    sql = compile_select(spec, allocator)
    return _finish('select', sql, allocator, FetchType(fetch_type))


def render_fetch_one(spec: SelectSpec) -> Query:
    return render_select(replace(spec, limit=1), FetchType.ONE)


def render_count(spec: SelectSpec) -> Query:
    """Render the ``count(*) as total`` companion of a select."""
    count_spec = replace(spec, fields=COUNT_FIELD, offset=None, group_by=(), limit=1)
    return render_select(count_spec, FetchType.ONE)


def render_insert(spec: InsertSpec) -> Query:
    """Render an INSERT of one row or a batch.

    Columns come from the first row; every other row must carry the same
    keys. Fetch cardinality: ONE for a single row with RETURNING, MANY for a
    batch with RETURNING or a batch of more than one row, otherwise NONE.

    Raises:
        MissingDataError: No table name or no rows
        InvalidConfigurationError: Rows with differing columns
    """
    table = _require_table(spec.table_name, 'insert')
    if not spec.data or not spec.data[0]:
        raise MissingDataError('insert', 'data')

    columns = list(spec.data[0].keys())
    for index, row in enumerate(spec.data[1:], start=2):
        if set(row.keys()) != set(columns):
            raise InvalidConfigurationError(
                f"Insert row {index} columns do not match the first row",
                hint=f"Every row must provide exactly: {', '.join(columns)}"
            )

    allocator = PlaceholderAllocator()
    resolver = SubqueryResolver(compile_select)

    # upsert values are numbered ahead of the inserted rows
    upsert_sql = render_upsert(spec.on_conflict, allocator, resolver)

    rows = []
    for row in spec.data:
        values = ', '.join(allocator.value_sql(row[column], resolver) for column in columns)
        rows.append(f"({values})")

    sql = (
        f"INSERT {render_resolution(spec.on_conflict)}INTO {table} ({', '.join(columns)})"
        f" VALUES {', '.join(rows)}"
        + upsert_sql
        + _listing('RETURNING', spec.returning)
    )

    if spec.returning:
        fetch_type = FetchType.MANY if spec.batch else FetchType.ONE
    elif len(spec.data) > 1:
        fetch_type = FetchType.MANY
    else:
        fetch_type = FetchType.NONE

    return _finish('insert', sql, allocator, fetch_type)


def render_update(spec: UpdateSpec) -> Query:
    """Render an UPDATE; WHERE values are numbered before SET values.

    Raises:
        MissingDataError: No table name or empty data
    """
    table = _require_table(spec.table_name, 'update')
    if not spec.data:
        raise MissingDataError('update', 'data')

    allocator = PlaceholderAllocator()
    resolver = SubqueryResolver(compile_select)

    where_sql = render_conditions('WHERE', spec.where, allocator, resolver)
    set_sql = render_assignments(spec.data, allocator, resolver)

    sql = (
        f"UPDATE {render_resolution(spec.on_conflict)}{table} SET {set_sql}"
        + where_sql
        + _listing('RETURNING', spec.returning)
    )
    fetch_type = FetchType.MANY if spec.returning else FetchType.NONE
    return _finish('update', sql, allocator, fetch_type)


def render_delete(spec: DeleteSpec) -> Query:
    """Render a DELETE. An empty where (NO_FILTER) deletes every row."""
    table = _require_table(spec.table_name, 'delete')

    allocator = PlaceholderAllocator()
    resolver = SubqueryResolver(compile_select)

    where_sql = render_conditions('WHERE', spec.where, allocator, resolver)
    if not where_sql:
        logger.warning(f"Rendering DELETE without WHERE on {table}")

    sql = (
        f"DELETE FROM {table}"
        + where_sql
        + _listing('RETURNING', spec.returning)
        + _listing('ORDER BY', spec.order_by)
        + _paging(spec.limit, spec.offset)
    )
    fetch_type = FetchType.MANY if spec.returning else FetchType.NONE
    return _finish('delete', sql, allocator, fetch_type)


def render_raw(spec: RawSpec) -> Query:
    for value in spec.args:
        if isinstance(value, Raw):
            raise InvalidConfigurationError(
                "Raw values cannot be bound as raw query arguments",
                hint="Write the literal SQL directly into the raw query text"
            )
    return Query(sql=spec.sql, args=spec.args, fetch_type=spec.fetch_type)


def render(spec: QuerySpec) -> Query:
    """Render any statement description.

    Selects render with cardinality MANY; use render_fetch_one for ONE.
    """
    if isinstance(spec, SelectSpec):
        return render_select(spec)
    if isinstance(spec, InsertSpec):
        return render_insert(spec)
    if isinstance(spec, UpdateSpec):
        return render_update(spec)
    if isinstance(spec, DeleteSpec):
        return render_delete(spec)
    if isinstance(spec, RawSpec):
        return render_raw(spec)
    raise InvalidConfigurationError(f"Cannot render {type(spec).__name__}")
