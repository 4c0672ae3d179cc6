"""
=========================================
Ordered, idempotent schema migrations.
=========================================

A migration is a named SQL change applied at most once. Applied names are
recorded in a tracking table (``migrations`` by default, configurable through
QB_MIGRATIONS_TABLE). Names are the idempotency keys; migration content is
never hashed or compared.

Lifecycle:
    uninitialized -> tracking table ready -> (apply cycle)*

Each migration's statements and its tracking insert are sent to the
executor as one batch, which the executor runs atomically. Separate
migrations in the same apply() call are not atomic with each other, and
apply() does not lock: callers serialize concurrent runs themselves.

Classes:
    Migration: Name plus one statement or an ordered list of statements
    MigrationRecord: One row of the tracking table
    MigrationRunner: Synchronous runner
    AsyncMigrationRunner: Same lifecycle for executors returning awaitables

Example:
    >>> from migrate.runner import Migration, MigrationRunner
    >>> from utils.executors import create_executor
    >>>
    >>> runner = MigrationRunner(create_executor('sqlite:///app.db'), [
    ...     Migration('0001_users', 'CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)'),
    ...     Migration('0002_email', 'ALTER TABLE users ADD COLUMN email TEXT'),
    ... ])
    >>> [m.name for m in runner.apply()]
    ['0001_users', '0002_email']
    >>> runner.apply()
    []
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from compose.ddl import create_table
from compose.executor import Executor
from compose.renderers import render_insert, render_raw, render_select
from compose.types import FetchType, InsertSpec, Query, RawSpec, SelectSpec, as_tuple
from core.config import config
from core.exceptions import InvalidConfigurationError, MigrationError

logger = logging.getLogger(__name__)

TRACKING_TABLE_SCHEMA = """id         INTEGER PRIMARY KEY AUTOINCREMENT,
    name       TEXT UNIQUE,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL"""


@dataclass(frozen=True)
class Migration:
    """A named schema change.

    Attributes:
        name: Unique name; also the idempotency key
        sql: One statement, or an ordered list of statements
    """

    name: str
    sql: Union[str, Tuple[str, ...]]

    def __post_init__(self):
        if not self.name:
            raise InvalidConfigurationError("Migration name must not be empty")
        statements = as_tuple(self.sql)
        if not statements or not all(isinstance(s, str) and s.strip() for s in statements):
            raise InvalidConfigurationError(
                f"Migration '{self.name}' has no SQL",
                hint="Provide a statement or a list of statements"
            )
        object.__setattr__(self, 'sql', self.sql if isinstance(self.sql, str) else statements)

    @property
    def statements(self) -> Tuple[str, ...]:
        return as_tuple(self.sql)


@dataclass(frozen=True)
class MigrationRecord:
    """One applied migration as stored in the tracking table."""

    name: str
    id: Optional[int] = None
    applied_at: Any = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'MigrationRecord':
        return cls(name=row['name'], id=row.get('id'), applied_at=row.get('applied_at'))


def _coerce_migrations(migrations: Iterable[Any]) -> List[Migration]:
    coerced = []
    for migration in migrations:
        if isinstance(migration, Mapping):
            migration = Migration(name=migration.get('name'), sql=migration.get('sql'))
        elif not isinstance(migration, Migration):
            raise InvalidConfigurationError(
                f"Unsupported migration type: {type(migration).__name__}"
            )
        coerced.append(migration)

    names = [migration.name for migration in coerced]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise InvalidConfigurationError(
            f"Duplicate migration name(s): {', '.join(duplicates)}",
            hint="Migration names are idempotency keys and must be unique"
        )
    return coerced


class _MigrationStatements:
    """Statement construction shared by the sync and async runners."""

    def __init__(self, executor: Executor, migrations: Iterable[Any], table_name: Optional[str] = None):
        self.executor = executor
        self.migrations = _coerce_migrations(migrations)
        self.table_name = table_name or config.migrations_table

    def _initialize_query(self) -> Query:
        return create_table(self.table_name, TRACKING_TABLE_SCHEMA, if_not_exists=True)

    def _applied_query(self) -> Query:
        return render_select(SelectSpec(table_name=self.table_name, order_by='id'), FetchType.MANY)

    def _apply_batch(self, migration: Migration) -> List[Query]:
        queries = [render_raw(RawSpec(sql=statement)) for statement in migration.statements]
        queries.append(render_insert(InsertSpec(table_name=self.table_name, data={'name': migration.name})))
        return queries

    def _records(self, rows: Optional[Sequence[Mapping[str, Any]]]) -> List[MigrationRecord]:
        return [MigrationRecord.from_row(row) for row in rows or []]

    def _pending(self, applied: Sequence[MigrationRecord]) -> List[Migration]:
        applied_names = {record.name for record in applied}
        return [migration for migration in self.migrations if migration.name not in applied_names]

    def _failed(self, migration: Migration, error: Exception) -> MigrationError:
        logger.error(f"❌ Migration {migration.name} failed: {error}")
        return MigrationError(migration.name, str(error))


class MigrationRunner(_MigrationStatements):
    """Applies pending migrations through a synchronous executor.

    Args:
        executor: Executor whose execute_batch() is atomic
        migrations: Migrations (or {'name', 'sql'} mappings) in apply order
        table_name: Tracking table; defaults to config.migrations_table
    """

    def initialize(self) -> None:
        """Create the tracking table if it does not exist (idempotent)."""
        self.executor.execute(self._initialize_query())
        logger.info(f"📋 Migration tracking table {self.table_name} ready")

    def get_applied(self) -> List[MigrationRecord]:
        """Initialize, then return the recorded migrations in application order."""
        self.initialize()
        return self._records(self.executor.execute(self._applied_query()))

    def get_unapplied(self) -> List[Migration]:
        """Return declared migrations whose name is not recorded, in declared order."""
        return self._pending(self.get_applied())

    def apply(self) -> List[Migration]:
        """Apply every pending migration, in order, exactly once.

        Returns:
            The migrations applied by this call

        Raises:
            MigrationError: When a migration fails; earlier ones stay applied
        """
        pending = self.get_unapplied()
        if not pending:
            logger.info(f"✅ No pending migrations in {self.table_name}")
            return []

        logger.info(f"🚀 Applying {len(pending)} migration(s)...")
        applied = []
        for migration in pending:
            logger.info(f"Applying migration {migration.name}")
            try:
                self.executor.execute_batch(self._apply_batch(migration))
            except Exception as e:
                raise self._failed(migration, e) from e
            applied.append(migration)

        logger.info(f"✅ Applied {len(applied)} migration(s)")
        return applied


class AsyncMigrationRunner(_MigrationStatements):
    """MigrationRunner counterpart for executors returning awaitables."""

    async def initialize(self) -> None:
        await self.executor.execute(self._initialize_query())
        logger.info(f"📋 Migration tracking table {self.table_name} ready")

    async def get_applied(self) -> List[MigrationRecord]:
        await self.initialize()
        return self._records(await self.executor.execute(self._applied_query()))

    async def get_unapplied(self) -> List[Migration]:
        return self._pending(await self.get_applied())

    async def apply(self) -> List[Migration]:
        pending = await self.get_unapplied()
        if not pending:
            logger.info(f"✅ No pending migrations in {self.table_name}")
            return []

        logger.info(f"🚀 Applying {len(pending)} migration(s)...")
        applied = []
        for migration in pending:
            logger.info(f"Applying migration {migration.name}")
            try:
                await self.executor.execute_batch(self._apply_batch(migration))
            except Exception as e:
                raise self._failed(migration, e) from e
            applied.append(migration)

        logger.info(f"✅ Applied {len(applied)} migration(s)")
        return applied
