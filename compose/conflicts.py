"""
=====================================
Conflict clauses and SET assignments.
=====================================

Keyword resolutions render as an ``OR <KEYWORD> `` prefix placed before the
table name (``INSERT OR IGNORE INTO t``, ``UPDATE OR REPLACE t``). Upserts
render as ``ON CONFLICT (cols) DO UPDATE SET ... [WHERE ...]``; the upsert
WHERE is numbered before its SET list, and both before the inserted rows.
"""

from typing import Any, Mapping, Optional

from compose.conditions import render_conditions
from compose.placeholders import PlaceholderAllocator, SubqueryResolverLike
from compose.types import Conflict, ConflictType, ConflictUpsert


def render_assignments(
    data: Mapping[str, Any],
    allocator: PlaceholderAllocator,
    resolver: Optional[SubqueryResolverLike] = None
) -> str:
    """Render ``col = ?N, ...``; Raw values are inlined without a placeholder."""
    return ', '.join(
        f"{column} = {allocator.value_sql(value, resolver)}"
        for column, value in data.items()
    )


def render_resolution(conflict: Optional[Conflict]) -> str:
    if isinstance(conflict, ConflictType):
        return f"OR {conflict.value} "
    return ''


def render_upsert(
    conflict: Optional[Conflict],
    allocator: PlaceholderAllocator,
    resolver: Optional[SubqueryResolverLike] = None
) -> str:
    """Render the ON CONFLICT branch of an insert, or '' for other forms."""
    if not isinstance(conflict, ConflictUpsert):
        return ''

    where_sql = render_conditions('WHERE', conflict.where, allocator, resolver)
    set_sql = render_assignments(conflict.data, allocator, resolver)
    columns = ', '.join(conflict.column)
    return f" ON CONFLICT ({columns}) DO UPDATE SET {set_sql}{where_sql}"
