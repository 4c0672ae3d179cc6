"""
==========================
Subquery embedding.
==========================

A nested select may stand wherever a condition parameter is expected, or as
a JOIN target. It is rendered as ``(SELECT ...)`` against the outer
statement's allocator, so its own arguments land exactly where its text
lands and the outer arguments after it shift along.

Two addressing modes are supported and render identically:
- Inline: a Renderable value sits in a condition group's params and is
  rendered when its placeholder is reached.
- Token: the builder replaces the placeholder with a generated
  ``__SUBQUERY_TOKEN_N__`` token during where()/having() and registers the
  nested select on the SelectSpec; the token is resolved at render time.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from compose.placeholders import (
    SUBQUERY_TOKEN_PREFIX,
    PlaceholderAllocator,
    Slot,
    SubqueryResolverLike,
    SubqueryToken,
    check_params,
    parse_group,
)
from compose.types import ConditionGroup, Renderable, SelectSpec
from core.exceptions import MissingSubqueryContextError, SubqueryTokenError

logger = logging.getLogger(__name__)

SelectCompiler = Callable[[SelectSpec, PlaceholderAllocator], str]


class SubqueryResolver(SubqueryResolverLike):
    """Renders nested selects into the statement being composed.

    Attributes:
        compile_select: Renders a SelectSpec's SQL against an allocator
        registry: Token-to-select mapping of the statement, or None when the
            statement cannot carry tokens (INSERT/UPDATE/DELETE)
    """

    def __init__(
        self,
        compile_select: SelectCompiler,
        registry: Optional[Mapping[str, SelectSpec]] = None
    ):
        self.compile_select = compile_select
        self.registry = registry

    def resolve(self, value: Renderable, allocator: PlaceholderAllocator) -> str:
        return f"({self.compile_select(value.as_select(), allocator)})"

    def resolve_token(self, token: str, allocator: PlaceholderAllocator) -> str:
        if self.registry is None:
            raise MissingSubqueryContextError()
        spec = self.registry.get(token)
        if spec is None:
            raise SubqueryTokenError(token)
        logger.debug(f"Resolving {token} against {spec.table_name}")
        return self.resolve(spec, allocator)


def tokenize_subqueries(
    group: ConditionGroup,
    clause: str,
    registry: Dict[str, SelectSpec]
) -> ConditionGroup:
    """Move nested selects out of a group's params and into ``registry``.

    Each slot whose parameter is Renderable is replaced in the text by a
    fresh token; the remaining slots are renumbered compactly in
    first-occurrence order so they keep addressing the right values.

    Args:
        group: Condition group as passed to where()/having()
        clause: Clause name used in error messages
        registry: Token registry to extend (mutated in place)

    Returns:
        Group containing only primitive params

    Raises:
        ParameterMismatchError: If placeholders and params disagree
    """
    parsed, slots = parse_group(group.conditions)
    check_params(clause, group.conditions, slots, group.params)

    if not any(isinstance(value, Renderable) for value in group.params):
        return group

    tokens: Dict[int, str] = {}
    renumbered: Dict[int, int] = {}
    params: List[Any] = []
    for number in slots:
        value = group.params[number - 1]
        if isinstance(value, Renderable):
            token = f"{SUBQUERY_TOKEN_PREFIX}{len(registry)}__"
            registry[token] = value.as_select()
            tokens[number] = token
        else:
            params.append(value)
            renumbered[number] = len(params)

    conditions: List[str] = []
    for parts in parsed:
        pieces = []
        for part in parts:
            if isinstance(part, Slot):
                pieces.append(tokens.get(part.number) or f"?{renumbered[part.number]}")
            elif isinstance(part, SubqueryToken):
                pieces.append(part.name)
            else:
                pieces.append(part)
        conditions.append(''.join(pieces))

    return ConditionGroup(tuple(conditions), tuple(params))
