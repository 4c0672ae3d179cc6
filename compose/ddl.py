"""
=======================================
Table DDL statements.
=======================================

Functions:
    create_table: CREATE TABLE [IF NOT EXISTS] <table> (<schema>)
    drop_table: DROP TABLE [IF EXISTS] <table>

Example:
    >>> from compose.ddl import create_table
    >>> create_table('migrations', 'id INTEGER PRIMARY KEY', if_not_exists=True).sql
    'CREATE TABLE IF NOT EXISTS migrations (id INTEGER PRIMARY KEY)'
"""

from compose.types import FetchType, Query
from core.exceptions import MissingDataError


def create_table(table_name: str, schema: str, if_not_exists: bool = False) -> Query:
    """Generate a CREATE TABLE statement.

    Args:
        table_name: Table to create
        schema: Column and constraint definitions, written as SQL
        if_not_exists: If True, add IF NOT EXISTS

    Returns:
        Query with no arguments and cardinality NONE
    """
    if not table_name:
        raise MissingDataError('create table', 'table_name')
    if not schema or not schema.strip():
        raise MissingDataError('create table', 'schema')

    guard = 'IF NOT EXISTS ' if if_not_exists else ''
    return Query(sql=f"CREATE TABLE {guard}{table_name} ({schema.strip()})", fetch_type=FetchType.NONE)


def drop_table(table_name: str, if_exists: bool = False) -> Query:
    """Generate a DROP TABLE statement."""
    if not table_name:
        raise MissingDataError('drop table', 'table_name')

    guard = 'IF EXISTS ' if if_exists else ''
    return Query(sql=f"DROP TABLE {guard}{table_name}", fetch_type=FetchType.NONE)
