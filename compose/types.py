"""
===================================
Statement descriptions and values.
===================================

Declarative, immutable descriptions of the statements this package renders.
Each description is a frozen dataclass; every loose input shape (a string,
a list of strings, a plain dict) is decoded once in __post_init__ into a
single canonical form, so the renderers never inspect caller shapes.

Statement variants:
- SelectSpec: SELECT with joins, conditions, grouping, ordering, paging
- InsertSpec: INSERT of one row or a batch, with RETURNING and conflicts
- UpdateSpec: UPDATE with SET data, conditions and RETURNING
- DeleteSpec: DELETE with mandatory (possibly NO_FILTER) conditions
- RawSpec: caller-written SQL passed through with its arguments

Values and sub-structures:
- Raw: literal SQL spliced inline, never bound as a parameter
- ConditionGroup / WhereClause: condition fragments and their parameters
- JoinSpec: one JOIN target (table name or nested select)
- ConflictUpsert: ON CONFLICT ... DO UPDATE description
- Query: rendered SQL text, ordered arguments and fetch cardinality

Example:
    >>> from compose.types import SelectSpec, Raw
    >>>
    >>> spec = SelectSpec(
    ...     table_name='users',
    ...     fields=['id', 'name'],
    ...     where={'conditions': 'status = ?', 'params': ['active']},
    ...     order_by={'created_at': 'DESC'}
    ... )
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from core.exceptions import InvalidConfigurationError


class FetchType(str, Enum):
    """How many rows a statement is expected to return."""

    NONE = 'NONE'
    ONE = 'ONE'
    MANY = 'MANY'


class ConflictType(str, Enum):
    """Keyword conflict resolutions rendered as ``OR <KEYWORD>``."""

    ROLLBACK = 'ROLLBACK'
    ABORT = 'ABORT'
    FAIL = 'FAIL'
    IGNORE = 'IGNORE'
    REPLACE = 'REPLACE'


class JoinType(str, Enum):
    INNER = 'INNER'
    LEFT = 'LEFT'
    RIGHT = 'RIGHT'
    FULL = 'FULL'
    CROSS = 'CROSS'


class OrderType(str, Enum):
    ASC = 'ASC'
    DESC = 'DESC'


def keyword(value: Union[str, Enum]) -> str:
    """Return the SQL text of an enum member or plain string."""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


@dataclass(frozen=True)
class Raw:
    """Literal SQL spliced into the statement instead of a placeholder.

    Example:
        >>> Raw('CURRENT_TIMESTAMP')
        >>> Raw('counter + 1')
    """

    content: str


class Renderable(ABC):
    """Anything that can stand in for a parameter as a nested SELECT."""

    @abstractmethod
    def as_select(self) -> 'SelectSpec':
        """Return the select description to render as a subquery."""


class _NoFilter:
    """Marker for a DELETE that intentionally targets every row."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'NO_FILTER'


NO_FILTER = _NoFilter()


def as_tuple(value: Any) -> Tuple[Any, ...]:
    """Normalize a scalar-or-sequence option to a tuple.

    None becomes an empty tuple; strings, Raw values and nested queries
    count as a single item.
    """
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


def _string_tuple(value: Any, option: str) -> Tuple[str, ...]:
    items = as_tuple(value)
    for item in items:
        if not isinstance(item, str):
            raise InvalidConfigurationError(
                f"{option} entries must be strings, got {type(item).__name__}",
                hint=f"Pass {option} as a string or a list of strings"
            )
    return items


@dataclass(frozen=True)
class ConditionGroup:
    """Condition fragments sharing one ordered parameter list.

    Placeholders inside the fragments (``?`` or ``?N``) address ``params``
    left to right; ``?N`` addresses the N-th parameter of this group.
    """

    conditions: Tuple[str, ...]
    params: Tuple[Any, ...] = ()

    def __post_init__(self):
        conditions = _string_tuple(self.conditions, 'conditions')
        if any(not fragment.strip() for fragment in conditions):
            raise InvalidConfigurationError(
                f"Condition fragments must not be blank, got {list(conditions)!r}",
                hint="Remove empty strings from the condition list"
            )
        object.__setattr__(self, 'conditions', conditions)
        object.__setattr__(self, 'params', as_tuple(self.params))


@dataclass(frozen=True)
class WhereClause:
    """An ordered collection of condition groups, ANDed together."""

    groups: Tuple[ConditionGroup, ...] = ()

    @property
    def conditions(self) -> Tuple[str, ...]:
        return tuple(fragment for group in self.groups for fragment in group.conditions)

    def extend(self, other: 'WhereClause') -> 'WhereClause':
        return WhereClause(self.groups + other.groups)

    def __bool__(self) -> bool:
        return bool(self.conditions)


def parse_where(value: Any) -> WhereClause:
    """Decode any accepted WHERE/HAVING shape into a WhereClause.

    Accepted shapes:
        - None: no conditions
        - 'a = 1': one fragment
        - ['a = 1', 'b = 2']: several fragments, ANDed
        - {'conditions': ..., 'params': ...}: fragments with parameters
        - WhereClause / ConditionGroup: already decoded

    Raises:
        InvalidConfigurationError: For any other shape
    """
    if value is None:
        return WhereClause()
    if isinstance(value, WhereClause):
        return value
    if isinstance(value, ConditionGroup):
        return WhereClause((value,))
    if isinstance(value, str):
        if not value.strip():
            return WhereClause()
        return WhereClause((ConditionGroup((value,)),))
    if isinstance(value, (list, tuple)):
        if not value:
            return WhereClause()
        return WhereClause((ConditionGroup(tuple(value)),))
    if isinstance(value, Mapping):
        if 'conditions' not in value:
            raise InvalidConfigurationError(
                "Condition object is missing 'conditions'",
                hint="Use {'conditions': 'col = ?', 'params': [value]}"
            )
        conditions = value['conditions']
        if isinstance(conditions, str) and not conditions.strip():
            conditions = None
        conditions = as_tuple(conditions)
        if not conditions:
            return WhereClause()
        return WhereClause((ConditionGroup(conditions, as_tuple(value.get('params'))),))
    raise InvalidConfigurationError(
        f"Unsupported condition type: {type(value).__name__}",
        hint="Pass a string, a list of strings or a {'conditions', 'params'} object"
    )


def parse_order_by(value: Any) -> Tuple[str, ...]:
    """Decode ORDER BY input into a tuple of ``expr [ASC|DESC]`` strings."""
    entries = []
    for item in as_tuple(value):
        if isinstance(item, Mapping):
            entries.extend(f"{column} {keyword(direction)}" for column, direction in item.items())
        elif isinstance(item, str):
            entries.append(item)
        else:
            raise InvalidConfigurationError(
                f"order_by entries must be strings or mappings, got {type(item).__name__}"
            )
    return tuple(entries)


@dataclass(frozen=True)
class JoinSpec:
    """One JOIN clause.

    Attributes:
        table: Table name, or a nested select (builder or SelectSpec)
        on: Join predicate (omitted for CROSS joins)
        type: Optional join type (INNER, LEFT, ...)
        alias: Name for the joined target; required for subquery targets
    """

    table: Union[str, 'SelectSpec']
    on: Optional[str] = None
    type: Optional[str] = None
    alias: Optional[str] = None

    def __post_init__(self):
        table = self.table
        if isinstance(table, Mapping):
            table = SelectSpec(**table)
        if isinstance(table, Renderable):
            table = table.as_select()
            if not self.alias:
                raise InvalidConfigurationError(
                    "Subquery joins require an alias",
                    hint="Add alias='name' so the joined subquery can be referenced"
                )
        elif not isinstance(table, str) or not table:
            raise InvalidConfigurationError(
                f"Join table must be a table name or a nested select, got {table!r}"
            )
        object.__setattr__(self, 'table', table)
        if self.type is not None:
            object.__setattr__(self, 'type', keyword(self.type).upper())


def parse_joins(value: Any) -> Tuple[JoinSpec, ...]:
    joins = []
    for item in as_tuple(value):
        if isinstance(item, JoinSpec):
            joins.append(item)
        elif isinstance(item, Mapping):
            unknown = set(item) - {'table', 'on', 'type', 'alias'}
            if unknown:
                raise InvalidConfigurationError(
                    f"Unknown join option(s): {', '.join(sorted(unknown))}"
                )
            joins.append(JoinSpec(**item))
        else:
            raise InvalidConfigurationError(
                f"Join must be a JoinSpec or a mapping, got {type(item).__name__}"
            )
    return tuple(joins)


@dataclass(frozen=True)
class ConflictUpsert:
    """ON CONFLICT (<column(s)>) DO UPDATE SET ... [WHERE ...]."""

    column: Tuple[str, ...]
    data: Mapping[str, Any]
    where: WhereClause = WhereClause()

    def __post_init__(self):
        columns = _string_tuple(self.column, 'column')
        if not columns:
            raise InvalidConfigurationError("Upsert requires at least one conflict column")
        if not isinstance(self.data, Mapping) or not self.data:
            raise InvalidConfigurationError(
                "Upsert requires a non-empty data mapping",
                hint="Pass data={'column': value} for the DO UPDATE SET list"
            )
        object.__setattr__(self, 'column', columns)
        object.__setattr__(self, 'data', MappingProxyType(dict(self.data)))
        object.__setattr__(self, 'where', parse_where(self.where))


Conflict = Union[ConflictType, ConflictUpsert]


def parse_conflict(value: Any) -> Optional[Conflict]:
    """Decode an on_conflict option into a ConflictType or ConflictUpsert."""
    if value is None or isinstance(value, (ConflictType, ConflictUpsert)):
        return value
    if isinstance(value, str):
        try:
            return ConflictType(value.strip().upper())
        except ValueError:
            raise InvalidConfigurationError(
                f"Unknown conflict resolution: {value}",
                hint=f"Use one of {', '.join(member.value for member in ConflictType)}"
            )
    if isinstance(value, Mapping):
        column = value.get('column', value.get('columns'))
        return ConflictUpsert(column=column, data=value.get('data'), where=value.get('where'))
    raise InvalidConfigurationError(
        f"Unsupported on_conflict value: {type(value).__name__}"
    )


def _row(value: Any, operation: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise InvalidConfigurationError(
            f"{operation} rows must be mappings of column to value, got {type(value).__name__}"
        )
    return MappingProxyType(dict(value))


@dataclass(frozen=True)
class SelectSpec(Renderable):
    """Description of a SELECT statement."""

    table_name: Optional[str] = None
    fields: Union[str, Tuple[str, ...], None] = None
    where: WhereClause = WhereClause()
    join: Tuple[JoinSpec, ...] = ()
    group_by: Tuple[str, ...] = ()
    having: WhereClause = WhereClause()
    order_by: Tuple[str, ...] = ()
    limit: Optional[int] = None
    offset: Optional[int] = None
    subqueries: Mapping[str, 'SelectSpec'] = field(default_factory=dict)

    def __post_init__(self):
        if self.fields is not None and not isinstance(self.fields, str):
            object.__setattr__(self, 'fields', _string_tuple(self.fields, 'fields'))
        object.__setattr__(self, 'where', parse_where(self.where))
        object.__setattr__(self, 'join', parse_joins(self.join))
        object.__setattr__(self, 'group_by', _string_tuple(self.group_by, 'group_by'))
        object.__setattr__(self, 'having', parse_where(self.having))
        object.__setattr__(self, 'order_by', parse_order_by(self.order_by))
        object.__setattr__(self, 'subqueries', MappingProxyType(dict(self.subqueries)))

    def as_select(self) -> 'SelectSpec':
        return self


@dataclass(frozen=True)
class InsertSpec:
    """Description of an INSERT of one row or a batch of rows.

    Attributes:
        table_name: Target table
        data: One row mapping, or a list of rows sharing the first row's keys
        returning: Columns for RETURNING
        on_conflict: Keyword resolution or upsert description
        batch: True when data was given as a list (set automatically)
    """

    table_name: Optional[str] = None
    data: Any = None
    returning: Tuple[str, ...] = ()
    on_conflict: Optional[Conflict] = None
    batch: Optional[bool] = None

    def __post_init__(self):
        if self.batch is None:
            object.__setattr__(self, 'batch', isinstance(self.data, (list, tuple)))
        rows = tuple(_row(row, 'insert') for row in as_tuple(self.data))
        object.__setattr__(self, 'data', rows)
        object.__setattr__(self, 'returning', _string_tuple(self.returning, 'returning'))
        object.__setattr__(self, 'on_conflict', parse_conflict(self.on_conflict))


@dataclass(frozen=True)
class UpdateSpec:
    """Description of an UPDATE statement."""

    table_name: Optional[str] = None
    data: Mapping[str, Any] = field(default_factory=dict)
    where: WhereClause = WhereClause()
    returning: Tuple[str, ...] = ()
    on_conflict: Optional[ConflictType] = None

    def __post_init__(self):
        object.__setattr__(self, 'data', _row(self.data if self.data is not None else {}, 'update'))
        object.__setattr__(self, 'where', parse_where(self.where))
        object.__setattr__(self, 'returning', _string_tuple(self.returning, 'returning'))
        conflict = parse_conflict(self.on_conflict)
        if isinstance(conflict, ConflictUpsert):
            raise InvalidConfigurationError(
                "UPDATE only supports keyword conflict resolutions",
                hint="Use on_conflict='IGNORE' or similar; upserts belong to INSERT"
            )
        object.__setattr__(self, 'on_conflict', conflict)


@dataclass(frozen=True)
class DeleteSpec:
    """Description of a DELETE statement.

    ``where`` is mandatory: pass NO_FILTER to delete every row on purpose.
    """

    table_name: Optional[str] = None
    where: Union[WhereClause, _NoFilter, Any] = None
    returning: Tuple[str, ...] = ()
    order_by: Tuple[str, ...] = ()
    limit: Optional[int] = None
    offset: Optional[int] = None

    def __post_init__(self):
        if self.where is None:
            raise InvalidConfigurationError(
                "DELETE requires an explicit where",
                hint="Pass where=NO_FILTER to delete every row in the table"
            )
        where = WhereClause() if self.where is NO_FILTER else parse_where(self.where)
        if not where and self.where is not NO_FILTER:
            raise InvalidConfigurationError(
                "DELETE where decoded to no conditions",
                hint="Pass where=NO_FILTER to delete every row in the table"
            )
        object.__setattr__(self, 'where', where)
        object.__setattr__(self, 'returning', _string_tuple(self.returning, 'returning'))
        object.__setattr__(self, 'order_by', parse_order_by(self.order_by))


@dataclass(frozen=True)
class RawSpec:
    """Caller-written SQL with its ordered arguments."""

    sql: str
    args: Tuple[Any, ...] = ()
    fetch_type: FetchType = FetchType.NONE

    def __post_init__(self):
        object.__setattr__(self, 'args', as_tuple(self.args))
        object.__setattr__(self, 'fetch_type', FetchType(self.fetch_type))


QuerySpec = Union[SelectSpec, InsertSpec, UpdateSpec, DeleteSpec, RawSpec]


@dataclass(frozen=True)
class Query:
    """A rendered statement, ready to hand to an executor.

    Attributes:
        sql: Statement text with ``?N`` placeholders
        args: Values for the placeholders, in placeholder-number order
        fetch_type: Expected result cardinality
    """

    sql: str
    args: Tuple[Any, ...] = ()
    fetch_type: FetchType = FetchType.NONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sql': self.sql,
            'args': list(self.args),
            'fetch_type': self.fetch_type.value
        }
