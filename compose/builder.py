"""
====================================
Fluent query builders.
====================================

QueryBuilder is the entry point: it turns option sets into Query values and,
when constructed with an executor, hands those queries on for execution.
SelectBuilder is an immutable accumulator: every chained call returns a new
builder and the original is never touched, so a partially configured
builder can be shared as a template by any number of callers.

Accumulation rules:
    - where()/having(): each call adds one more AND-group
    - fields()/join()/group_by()/order_by(): each call appends
    - table_name()/limit()/offset(): each call replaces

Example:
    >>> from compose.builder import QueryBuilder
    >>>
    >>> qb = QueryBuilder()
    >>> active = qb.select('projects').fields('id').where('status = ?', 'active')
    >>> query = qb.select('tasks').where('project_id IN ?', [active]).get_query_all()
    >>> query.sql
    'SELECT * FROM tasks WHERE project_id IN (SELECT id FROM projects WHERE status = ?1)'
"""

import logging
from dataclasses import replace
from typing import Any, List, Optional, Sequence, Union

from compose import ddl
from compose.executor import Executor
from compose.renderers import (
    render_count,
    render_delete,
    render_fetch_one,
    render_insert,
    render_raw,
    render_select,
    render_update,
)
from compose.subqueries import tokenize_subqueries
from compose.types import (
    ConditionGroup,
    DeleteSpec,
    FetchType,
    InsertSpec,
    Query,
    RawSpec,
    Renderable,
    SelectSpec,
    UpdateSpec,
    WhereClause,
    as_tuple,
    parse_joins,
    parse_order_by,
)
from core.exceptions import InvalidConfigurationError, QueryBuilderError

logger = logging.getLogger(__name__)


def _require_executor(executor: Optional[Executor]) -> Executor:
    if executor is None:
        raise QueryBuilderError(
            "No executor configured",
            hint="Construct QueryBuilder(executor=...) or render queries and run them yourself"
        )
    return executor


class SelectBuilder(Renderable):
    """Immutable, chainable SELECT accumulator.

    Attributes:
        options: The accumulated SelectSpec
    """

    def __init__(self, options: Optional[SelectSpec] = None, executor: Optional[Executor] = None):
        self._options = options if options is not None else SelectSpec()
        self._executor = executor

    @property
    def options(self) -> SelectSpec:
        return self._options

    def as_select(self) -> SelectSpec:
        return self._options

    def _with(self, **changes) -> 'SelectBuilder':
        return SelectBuilder(replace(self._options, **changes), self._executor)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SelectBuilder):
            return NotImplemented
        return self._options == other._options and self._executor is other._executor

    __hash__ = None

    def __repr__(self) -> str:
        return f"SelectBuilder({self._options!r})"

    # Chainable options

    def table_name(self, table_name: str) -> 'SelectBuilder':
        return self._with(table_name=table_name)

    def fields(self, fields: Union[str, Sequence[str]]) -> 'SelectBuilder':
        current = self._options.fields
        if current is None:
            existing = ()
        elif isinstance(current, str):
            existing = (current,)
        else:
            existing = current
        return self._with(fields=existing + as_tuple(fields))

    def where(self, conditions: Union[str, Sequence[str]], params: Any = None) -> 'SelectBuilder':
        """Add one AND-group of conditions.

        Args:
            conditions: One fragment or a list of fragments using ? / ?N
            params: One value or a list of values; a builder or SelectSpec
                value is embedded as a subquery

        Raises:
            ParameterMismatchError: If placeholders and params disagree
        """
        return self._add_conditions('where', 'WHERE', conditions, params)

    def having(self, conditions: Union[str, Sequence[str]], params: Any = None) -> 'SelectBuilder':
        """Add one AND-group of HAVING conditions (same rules as where())."""
        return self._add_conditions('having', 'HAVING', conditions, params)

    def where_in(self, fields: Union[str, Sequence[str]], values: Sequence[Any]) -> 'SelectBuilder':
        """Add ``(cols) IN (VALUES (?, ...), ...)``; an empty value list is a no-op.

        Args:
            fields: One column, or a list of columns for tuple matching
            values: Values for one column, or one sequence per row for several

        Example:
            >>> qb.select('t').where_in(['a', 'b'], [[1, 2], [3, 4]])
            # WHERE (a, b) IN (VALUES (?1, ?2), (?3, ?4))
        """
        if not values:
            return self

        if isinstance(fields, str):
            condition = f"({fields}) IN (VALUES {', '.join('(?)' for _ in values)})"
            params = list(values)
        else:
            columns = list(fields)
            row_sql = '(' + ', '.join('?' for _ in columns) + ')'
            params = []
            for row in values:
                row = as_tuple(row)
                if len(row) != len(columns):
                    raise InvalidConfigurationError(
                        f"where_in row {row!r} does not match columns ({', '.join(columns)})",
                        hint="Every row needs one value per column"
                    )
                params.extend(row)
            condition = f"({', '.join(columns)}) IN (VALUES {', '.join(row_sql for _ in values)})"

        return self.where(condition, params)

    def join(self, join: Any) -> 'SelectBuilder':
        return self._with(join=self._options.join + parse_joins(join))

    def group_by(self, group_by: Union[str, Sequence[str]]) -> 'SelectBuilder':
        return self._with(group_by=self._options.group_by + as_tuple(group_by))

    def order_by(self, order_by: Any) -> 'SelectBuilder':
        return self._with(order_by=self._options.order_by + parse_order_by(order_by))

    def limit(self, limit: Optional[int]) -> 'SelectBuilder':
        return self._with(limit=limit)

    def offset(self, offset: Optional[int]) -> 'SelectBuilder':
        return self._with(offset=offset)

    def _add_conditions(self, attribute: str, clause: str, conditions: Any, params: Any) -> 'SelectBuilder':
        registry = dict(self._options.subqueries)
        group = tokenize_subqueries(
            ConditionGroup(as_tuple(conditions), as_tuple(params)), clause, registry
        )
        if not group.conditions:
            return self
        current: WhereClause = getattr(self._options, attribute)
        return self._with(**{
            attribute: current.extend(WhereClause((group,))),
            'subqueries': registry,
        })

    # Rendering

    def get_query_all(self) -> Query:
        return render_select(self._options, FetchType.MANY)

    def get_query_one(self) -> Query:
        return render_fetch_one(self._options)

    def get_count_query(self) -> Query:
        return render_count(self._options)

    # Execution

    def all(self) -> Any:
        return _require_executor(self._executor).execute(self.get_query_all())

    execute = all

    def one(self) -> Any:
        return _require_executor(self._executor).execute(self.get_query_one())

    def count(self) -> Any:
        return _require_executor(self._executor).execute(self.get_count_query())


class QueryBuilder:
    """Entry point producing queries and, optionally, executing them.

    Every statement method accepts either a ready-made *Spec object or its
    fields as keyword arguments and returns a Query. The execute helpers
    return whatever the executor returns: plain results for synchronous
    executors, awaitables for asynchronous ones.

    Args:
        executor: Optional Executor used by execute()/execute_batch(), the
            select builders and migrations()

    Example:
        >>> qb = QueryBuilder()
        >>> qb.insert(table_name='users', data={'name': 'Ada'}, returning='id').sql
        'INSERT INTO users (name) VALUES (?1) RETURNING id'
    """

    def __init__(self, executor: Optional[Executor] = None):
        self.executor = executor

    def execute(self, query: Query) -> Any:
        return _require_executor(self.executor).execute(query)

    def execute_batch(self, queries: Sequence[Query]) -> Any:
        return _require_executor(self.executor).execute_batch(list(queries))

    def select(self, table_name: str) -> SelectBuilder:
        return SelectBuilder(SelectSpec(table_name=table_name), self.executor)

    def fetch_all(self, spec: Optional[SelectSpec] = None, **options) -> Query:
        return render_select(spec or SelectSpec(**options), FetchType.MANY)

    def fetch_one(self, spec: Optional[SelectSpec] = None, **options) -> Query:
        return render_fetch_one(spec or SelectSpec(**options))

    def count(self, spec: Optional[SelectSpec] = None, **options) -> Query:
        return render_count(spec or SelectSpec(**options))

    def insert(self, spec: Optional[InsertSpec] = None, **options) -> Query:
        return render_insert(spec or InsertSpec(**options))

    def update(self, spec: Optional[UpdateSpec] = None, **options) -> Query:
        return render_update(spec or UpdateSpec(**options))

    def delete(self, spec: Optional[DeleteSpec] = None, **options) -> Query:
        return render_delete(spec or DeleteSpec(**options))

    def raw(self, sql: str, args: Any = None, fetch_type: FetchType = FetchType.NONE) -> Query:
        return render_raw(RawSpec(sql=sql, args=args, fetch_type=fetch_type))

    def create_table(self, table_name: str, schema: str, if_not_exists: bool = False) -> Query:
        return ddl.create_table(table_name, schema, if_not_exists=if_not_exists)

    def drop_table(self, table_name: str, if_exists: bool = False) -> Query:
        return ddl.drop_table(table_name, if_exists=if_exists)

    def migrations(self, migrations: List[Any], table_name: Optional[str] = None):
        """Build a MigrationRunner bound to this builder's executor."""
        from migrate.runner import MigrationRunner

        return MigrationRunner(_require_executor(self.executor), migrations, table_name=table_name)
