"""
=====================================
Placeholder numbering and binding.
=====================================

A statement owns exactly one PlaceholderAllocator. Every bound value is
appended to its argument list and receives the next ``?N`` number, so
numbering never restarts between clauses and the argument list always
lines up 1:1 with the distinct placeholder numbers in the final SQL.

Inside a condition group, a bare ``?`` takes the slot after the highest
slot seen so far and an explicit ``?N`` addresses the group's N-th
parameter. A slot used several times (``owner_id = ?1 OR assignee_id = ?1``)
is bound once and every occurrence reuses the same number. Slots are bound
in the order they first appear in the text.

Example:
    >>> allocator = PlaceholderAllocator()
    >>> allocator.allocate(ConditionGroup(('a = ?1 OR b = ?1',), ('x',)), 'WHERE')
    ['a = ?1 OR b = ?1']
    >>> allocator.args
    ('x',)
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from compose.types import ConditionGroup, Raw, Renderable
from core.exceptions import (
    InvalidConfigurationError,
    MissingSubqueryContextError,
    ParameterMismatchError,
)

SUBQUERY_TOKEN_PREFIX = '__SUBQUERY_TOKEN_'
SUBQUERY_TOKEN_RE = re.compile(r"__SUBQUERY_TOKEN_\d+__")
_SPLIT_RE = re.compile(r"(__SUBQUERY_TOKEN_\d+__|\?\d*)")


@dataclass(frozen=True)
class Slot:
    """A placeholder occurrence addressing the group's N-th parameter."""

    number: int


@dataclass(frozen=True)
class SubqueryToken:
    """A registered subquery reference left in the text by the builder."""

    name: str


Part = Union[str, Slot, SubqueryToken]


def parse_group(fragments: Sequence[str]) -> Tuple[List[List[Part]], List[int]]:
    """Split fragments into text, slots and tokens.

    Returns:
        Tuple of (parts per fragment, distinct slot numbers in first-occurrence order)
    """
    highest = 0
    seen: List[int] = []
    parsed: List[List[Part]] = []

    for fragment in fragments:
        parts: List[Part] = []
        for piece in _SPLIT_RE.split(fragment):
            if not piece:
                continue
            if SUBQUERY_TOKEN_RE.fullmatch(piece):
                parts.append(SubqueryToken(piece))
            elif piece.startswith('?'):
                number = int(piece[1:]) if len(piece) > 1 else highest + 1
                if number < 1:
                    raise InvalidConfigurationError(
                        f"Invalid placeholder {piece} in: {fragment}",
                        hint="Numbered placeholders start at ?1"
                    )
                highest = max(highest, number)
                if number not in seen:
                    seen.append(number)
                parts.append(Slot(number))
            else:
                parts.append(piece)
        parsed.append(parts)

    return parsed, seen


def check_params(clause: str, fragments: Sequence[str], slots: Sequence[int], params: Sequence[Any]) -> None:
    """Ensure every distinct slot has exactly one parameter.

    Raises:
        ParameterMismatchError: When counts differ or a ?N points past the params
    """
    received = len(params)
    if len(slots) != received:
        expected = len(slots)
    elif slots and max(slots) > received:
        expected = max(slots)
    else:
        return
    raise ParameterMismatchError(
        clause=clause,
        query=' AND '.join(fragments),
        expected_params=expected,
        received_params=received
    )


class PlaceholderAllocator:
    """Running placeholder counter and argument list for one statement."""

    def __init__(self):
        self._args: List[Any] = []

    @property
    def args(self) -> Tuple[Any, ...]:
        return tuple(self._args)

    @property
    def next_number(self) -> int:
        return len(self._args) + 1

    def bind(self, value: Any) -> str:
        """Append a value and return its placeholder."""
        self._args.append(value)
        return f"?{len(self._args)}"

    def value_sql(self, value: Any, resolver: Optional['SubqueryResolverLike'] = None) -> str:
        """Return SQL for a SET/VALUES entry: inline Raw, subquery, or a new placeholder."""
        if isinstance(value, Raw):
            return value.content
        if isinstance(value, Renderable):
            return _require(resolver).resolve(value, self)
        return self.bind(value)

    def allocate(
        self,
        group: ConditionGroup,
        clause: str,
        resolver: Optional['SubqueryResolverLike'] = None
    ) -> List[str]:
        """Number one condition group against this statement.

        Args:
            group: Fragments and their parameters
            clause: Clause name used in error messages
            resolver: Renders nested selects found in params or tokens

        Returns:
            The group's fragments with every placeholder renumbered

        Raises:
            ParameterMismatchError: If placeholders and params disagree
        """
        parsed, slots = parse_group(group.conditions)
        check_params(clause, group.conditions, slots, group.params)

        assigned: Dict[int, str] = {}
        fragments = []
        for parts in parsed:
            pieces = []
            for part in parts:
                if isinstance(part, str):
                    pieces.append(part)
                elif isinstance(part, SubqueryToken):
                    pieces.append(_require(resolver).resolve_token(part.name, self))
                else:
                    value = group.params[part.number - 1]
                    if isinstance(value, (Raw, Renderable)):
                        pieces.append(self.value_sql(value, resolver))
                    else:
                        if part.number not in assigned:
                            assigned[part.number] = self.bind(value)
                        pieces.append(assigned[part.number])
            fragments.append(''.join(pieces))
        return fragments


class SubqueryResolverLike(ABC):
    """Interface the allocator needs from a subquery resolver."""

    @abstractmethod
    def resolve(self, value: Renderable, allocator: PlaceholderAllocator) -> str:
        """Render a nested select as a parenthesized subquery."""

    @abstractmethod
    def resolve_token(self, token: str, allocator: PlaceholderAllocator) -> str:
        """Render the nested select registered under a subquery token."""


def _require(resolver: Optional[SubqueryResolverLike]) -> SubqueryResolverLike:
    if resolver is None:
        raise MissingSubqueryContextError()
    return resolver
