"""
Utility modules for running composed queries.

Modules:
    executors: SQLAlchemy-backed reference executor
"""

__all__ = ['SQLAlchemyExecutor', 'create_executor', 'translate_placeholders']

from utils.executors import SQLAlchemyExecutor, create_executor, translate_placeholders
