"""
======================================================
Query-composition engine: declarative specs to SQL.
======================================================

This package turns statement descriptions into parameterized SQL text plus
an ordered argument list and a fetch cardinality. It never talks to a
database; executors (see compose.executor) do that.

The package follows a clear organization:
    - types.py: statement descriptions, Raw, enums and the Query result
    - placeholders.py: ?N numbering and argument binding
    - conditions.py: WHERE / HAVING composition
    - subqueries.py: nested selects as parameters and join targets
    - conflicts.py: OR <keyword> prefixes and ON CONFLICT upserts
    - joins.py: JOIN clauses
    - renderers.py: SELECT / INSERT / UPDATE / DELETE / raw renderers
    - builder.py: QueryBuilder entry point and immutable SelectBuilder
    - ddl.py: CREATE TABLE / DROP TABLE
    - executor.py: Executor protocol

Example:
    >>> from compose import QueryBuilder, Raw
    >>>
    >>> qb = QueryBuilder()
    >>> query = qb.update(
    ...     table_name='counters',
    ...     data={'hits': Raw('hits + 1')},
    ...     where={'conditions': 'id = ?', 'params': [7]}
    ... )
    >>> query.sql
    'UPDATE counters SET hits = hits + 1 WHERE id = ?1'
"""

__version__ = "0.1.0"
__all__ = [
    # Builders
    'QueryBuilder', 'SelectBuilder',
    # Descriptions and values
    'SelectSpec', 'InsertSpec', 'UpdateSpec', 'DeleteSpec', 'RawSpec',
    'JoinSpec', 'ConflictUpsert', 'WhereClause', 'ConditionGroup',
    'Raw', 'Query', 'NO_FILTER',
    'FetchType', 'ConflictType', 'JoinType', 'OrderType',
    # Rendering
    'render', 'render_select', 'render_fetch_one', 'render_count',
    'render_insert', 'render_update', 'render_delete', 'render_raw',
    # Execution
    'Executor', 'FunctionExecutor',
]

from .builder import QueryBuilder, SelectBuilder
from .executor import Executor, FunctionExecutor
from .renderers import (
    render,
    render_count,
    render_delete,
    render_fetch_one,
    render_insert,
    render_raw,
    render_select,
    render_update,
)
from .types import (
    NO_FILTER,
    ConditionGroup,
    ConflictType,
    ConflictUpsert,
    DeleteSpec,
    FetchType,
    InsertSpec,
    JoinSpec,
    JoinType,
    OrderType,
    Query,
    Raw,
    RawSpec,
    SelectSpec,
    UpdateSpec,
    WhereClause,
)
