"""
=================
JOIN rendering.
=================

Each JoinSpec renders as ``[TYPE ]JOIN <target>[ AS <alias>][ ON <predicate>]``
in declaration order. Subquery targets render through the resolver, so
joins nested inside joined subqueries work at any depth.
"""

from typing import Sequence

from compose.placeholders import PlaceholderAllocator, SubqueryResolverLike
from compose.types import JoinSpec


def render_join(join: JoinSpec, allocator: PlaceholderAllocator, resolver: SubqueryResolverLike) -> str:
    join_type = f"{join.type} " if join.type else ''
    if isinstance(join.table, str):
        target = join.table
    else:
        target = resolver.resolve(join.table, allocator)
    alias = f" AS {join.alias}" if join.alias else ''
    predicate = f" ON {join.on}" if join.on else ''
    return f"{join_type}JOIN {target}{alias}{predicate}"


def render_joins(
    joins: Sequence[JoinSpec],
    allocator: PlaceholderAllocator,
    resolver: SubqueryResolverLike
) -> str:
    """Render all joins with a leading space, or '' when there are none."""
    if not joins:
        return ''
    return ' ' + ' '.join(render_join(join, allocator, resolver) for join in joins)
