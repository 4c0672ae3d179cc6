"""
==========================================
Configuration management for sql-compose.
==========================================

Loads settings from environment variables (optionally from a .env file at
the project root) and exposes them through a module-level Config singleton.

Only the ambient pieces are configurable here: the default migration
tracking table, the database URL used by the reference executor, and the
default log level. Statement composition itself takes no configuration.

Environment variables:
    QB_MIGRATIONS_TABLE: Default migration tracking table (migrations)
    QB_DATABASE_URL: SQLAlchemy URL for the reference executor (sqlite://)
    QB_LOG_LEVEL: Default logging level (INFO)

Example:
    >>> from core.config import config
    >>>
    >>> print(config.migrations_table)
    >>> print(config.database_url)
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

DEFAULT_MIGRATIONS_TABLE = 'migrations'
DEFAULT_DATABASE_URL = 'sqlite://'
DEFAULT_LOG_LEVEL = 'INFO'


@dataclass
class MigrationConfig:
    """Migration tracking settings.

    Attributes:
        table_name: Name of the table recording applied migrations
    """

    table_name: str


@dataclass
class DatabaseConfig:
    """Settings for the reference executor.

    Attributes:
        url: SQLAlchemy database URL
        echo: Whether SQLAlchemy echoes statements
    """

    url: str
    echo: bool


@dataclass
class LoggingConfig:
    """Logging defaults.

    Attributes:
        level: Level name used when setup_logging() gets no explicit level
    """

    level: str


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Centralized configuration manager.

    Attributes:
        migrations: MigrationConfig instance
        db: DatabaseConfig instance
        logging: LoggingConfig instance

    Example:
        >>> config = Config()
        >>> config.migrations_table
        'migrations'
    """

    def __init__(self):
        """Read every setting from the environment once."""
        self.migrations = MigrationConfig(
            table_name=os.getenv('QB_MIGRATIONS_TABLE', DEFAULT_MIGRATIONS_TABLE)
        )
        self.db = DatabaseConfig(
            url=os.getenv('QB_DATABASE_URL', DEFAULT_DATABASE_URL),
            echo=_env_flag('QB_DATABASE_ECHO')
        )
        self.logging = LoggingConfig(
            level=os.getenv('QB_LOG_LEVEL', DEFAULT_LOG_LEVEL).upper()
        )

    @property
    def migrations_table(self) -> str:
        """Get the default migration tracking table name."""
        return self.migrations.table_name

    @property
    def database_url(self) -> str:
        """Get the reference executor database URL."""
        return self.db.url

    @property
    def log_level(self) -> str:
        """Get the default log level name."""
        return self.logging.level


# Global configuration instance
config = Config()
