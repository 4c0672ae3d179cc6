"""
==========================================
SQLAlchemy reference executor.
==========================================

Runs rendered Query values through a SQLAlchemy engine. This is the one
concrete Executor shipped with the project; it is what the integration
tests and the migration examples use.

Placeholders are translated at this boundary according to the driver's
DB-API paramstyle:
    - qmark (sqlite3): ``?N`` is native SQLite syntax and passes through
    - numeric: ``?N`` -> ``:N``
    - named: ``?N`` -> ``:pN`` with a dict of parameters
    - format / pyformat (psycopg2, pymysql): ``?N`` -> ``%s`` with the
      arguments expanded per occurrence, and literal ``%`` escaped

Result shapes:
    - FetchType.MANY: list of dicts (empty when the statement returns no rows)
    - FetchType.ONE: dict or None
    - FetchType.NONE: affected row count

Example:
    >>> from utils.executors import create_executor
    >>> from compose import QueryBuilder
    >>>
    >>> qb = QueryBuilder(create_executor('sqlite://'))
    >>> qb.execute(qb.create_table('t', 'id INTEGER PRIMARY KEY, name TEXT'))
    >>> qb.execute(qb.insert(table_name='t', data={'name': 'Ada'}))
    >>> qb.select('t').all()
    [{'id': 1, 'name': 'Ada'}]
"""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from compose.types import FetchType, Query
from core.config import config
from core.exceptions import ExecutorError

logger = logging.getLogger(__name__)

_NUMBERED_PLACEHOLDER = re.compile(r"\?(\d+)")

DriverParams = Union[Tuple[Any, ...], Dict[str, Any]]


def translate_placeholders(sql: str, args: Sequence[Any], paramstyle: str) -> Tuple[str, DriverParams]:
    """Rewrite ``?N`` placeholders for a DB-API paramstyle.

    Args:
        sql: Statement text using ``?N`` placeholders
        args: Arguments in placeholder-number order
        paramstyle: DB-API paramstyle of the target driver

    Returns:
        Tuple of (driver SQL, driver parameters)

    Raises:
        ExecutorError: For an unsupported paramstyle or a placeholder
            pointing past the arguments
    """
    args = tuple(args)
    if not args or paramstyle == 'qmark':
        return sql, args

    def lookup(match) -> Any:
        number = int(match.group(1))
        if number > len(args):
            raise ExecutorError(f"Placeholder ?{number} has no argument", query=sql)
        return args[number - 1]

    if paramstyle == 'numeric':
        return _NUMBERED_PLACEHOLDER.sub(lambda m: f":{m.group(1)}", sql), args

    if paramstyle == 'named':
        params: Dict[str, Any] = {}

        def to_named(match) -> str:
            params[f"p{match.group(1)}"] = lookup(match)
            return f":p{match.group(1)}"

        return _NUMBERED_PLACEHOLDER.sub(to_named, sql), params

    if paramstyle in ('format', 'pyformat'):
        ordered: List[Any] = []

        def to_format(match) -> str:
            ordered.append(lookup(match))
            return '%s'

        return _NUMBERED_PLACEHOLDER.sub(to_format, sql.replace('%', '%%')), tuple(ordered)

    raise ExecutorError(f"Unsupported paramstyle: {paramstyle}", query=sql)


class SQLAlchemyExecutor:
    """Executor backed by a SQLAlchemy Engine.

    Every execute() call runs in its own transaction; execute_batch() runs
    all of its queries in a single transaction and rolls back on failure.

    Attributes:
        engine: SQLAlchemy Engine used for all connections
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def execute(self, query: Query) -> Any:
        with self.engine.begin() as connection:
            return self._run(connection, query)

    def execute_batch(self, queries: Sequence[Query]) -> List[Any]:
        with self.engine.begin() as connection:
            return [self._run(connection, query) for query in queries]

    def dispose(self) -> None:
        """Close all pooled connections."""
        self.engine.dispose()

    def _run(self, connection: Connection, query: Query) -> Any:
        sql, params = translate_placeholders(query.sql, query.args, connection.dialect.paramstyle)
        logger.debug(f"Executing: {sql} | params={params!r}")

        try:
            if params:
                result = connection.exec_driver_sql(sql, params)
            else:
                result = connection.exec_driver_sql(sql)

            # batch inserts without RETURNING are MANY but return no rows
            if query.fetch_type == FetchType.MANY:
                if not result.returns_rows:
                    return []
                return [dict(row) for row in result.mappings().all()]
            if query.fetch_type == FetchType.ONE:
                row = result.mappings().first() if result.returns_rows else None
                return dict(row) if row is not None else None
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Failed to execute statement: {e}")
            raise ExecutorError(f"Failed to execute statement: {e}", query=query.sql) from e


def create_executor(url: Optional[str] = None, echo: Optional[bool] = None) -> SQLAlchemyExecutor:
    """Create a SQLAlchemyExecutor.

    Args:
        url: SQLAlchemy URL (defaults to config.database_url / QB_DATABASE_URL)
        echo: Enable SQLAlchemy statement echo (defaults to QB_DATABASE_ECHO)

    Returns:
        Configured SQLAlchemyExecutor
    """
    url = url or config.database_url
    echo = config.db.echo if echo is None else echo
    logger.debug(f"Creating executor for {url}")
    return SQLAlchemyExecutor(create_engine(url, echo=echo))
