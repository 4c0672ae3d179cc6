"""
=============================
WHERE / HAVING composition.
=============================

Zero fragments omit the clause, a single fragment is emitted verbatim, and
two or more fragments are each parenthesized and joined with AND:

    compose_conditions([])                 -> ''
    compose_conditions(['a = ?1'])         -> 'a = ?1'
    compose_conditions(['a = ?1', 'b'])    -> '(a = ?1) AND (b)'
"""

from typing import Optional, Sequence

from compose.placeholders import PlaceholderAllocator, SubqueryResolverLike
from compose.types import WhereClause


def compose_conditions(fragments: Sequence[str]) -> str:
    if not fragments:
        return ''
    if len(fragments) == 1:
        return fragments[0]
    return '(' + ') AND ('.join(fragments) + ')'


def render_conditions(
    keyword: str,
    clause: WhereClause,
    allocator: PlaceholderAllocator,
    resolver: Optional[SubqueryResolverLike] = None
) -> str:
    """Render a WHERE or HAVING clause, numbering its placeholders.

    Args:
        keyword: 'WHERE' or 'HAVING'
        clause: Decoded condition groups
        allocator: Statement allocator receiving the bound values
        resolver: Subquery resolver for nested selects

    Returns:
        ' WHERE ...' (leading space) or '' when there are no conditions
    """
    fragments = []
    for group in clause.groups:
        fragments.extend(allocator.allocate(group, keyword, resolver))

    body = compose_conditions(fragments)
    return f" {keyword} {body}" if body else ''
