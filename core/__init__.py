"""
==========================================
Core infrastructure package for sql-compose.
==========================================

Modules:
    config: Configuration loaded from environment variables
    logger: Logging setup helpers
    exceptions: Error taxonomy shared by every package

Example:
    >>> from core.config import config
    >>> from core.logger import get_logger
    >>>
    >>> logger = get_logger(__name__)
    >>> logger.info(f"Tracking migrations in {config.migrations_table}")
"""

__version__ = "0.1.0"
__all__ = [
    'config', 'Config',
    'get_logger', 'setup_logging',
    'QueryBuilderError', 'ParameterMismatchError', 'MissingDataError',
    'InvalidConfigurationError', 'SubqueryTokenError',
    'MissingSubqueryContextError', 'MigrationError', 'ExecutorError',
]

from core.config import Config, config
from core.exceptions import (
    ExecutorError,
    InvalidConfigurationError,
    MigrationError,
    MissingDataError,
    MissingSubqueryContextError,
    ParameterMismatchError,
    QueryBuilderError,
    SubqueryTokenError,
)
from core.logger import get_logger, setup_logging
