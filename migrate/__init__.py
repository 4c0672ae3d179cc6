"""
======================================
Schema migration package for sql-compose.
======================================

Modules:
    runner: Migration, MigrationRecord, MigrationRunner, AsyncMigrationRunner
"""

__all__ = ['Migration', 'MigrationRecord', 'MigrationRunner', 'AsyncMigrationRunner']

from .runner import AsyncMigrationRunner, Migration, MigrationRecord, MigrationRunner
