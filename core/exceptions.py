"""
=========================================
Error taxonomy for the composition engine.
=========================================

Every failure raised by this project derives from QueryBuilderError. Errors
are raised synchronously while a statement is being constructed or rendered,
so no partially composed SQL ever reaches an executor.

Classes:
    QueryBuilderError: Base error with clause/query/count/hint context
    ParameterMismatchError: Placeholder count differs from supplied params
    MissingDataError: Table name or insert/update data is absent
    InvalidConfigurationError: Malformed option combination
    SubqueryTokenError: Registered subquery token could not be resolved
    MissingSubqueryContextError: Token found without a subquery registry
    MigrationError: A migration failed while being applied
    ExecutorError: The reference executor failed to run a statement

Example:
    >>> from core.exceptions import ParameterMismatchError
    >>> err = ParameterMismatchError(
    ...     clause='WHERE', query='id = ?', expected_params=1, received_params=0
    ... )
    >>> print(err)
"""

from typing import Optional


class QueryBuilderError(Exception):
    """Base error carrying optional context about the failing statement.

    The rendered message lists every piece of context that was supplied so
    a caller can fix the call site without reading the source.

    Attributes:
        clause: Clause being rendered (WHERE, HAVING, ...)
        query: Offending fragment or statement text
        expected_params: Number of parameters the text requires
        received_params: Number of parameters supplied
        hint: Corrective suggestion
    """

    def __init__(
        self,
        message: str,
        clause: Optional[str] = None,
        query: Optional[str] = None,
        expected_params: Optional[int] = None,
        received_params: Optional[int] = None,
        hint: Optional[str] = None
    ):
        self.clause = clause
        self.query = query
        self.expected_params = expected_params
        self.received_params = received_params
        self.hint = hint

        lines = [f"{type(self).__name__}: {message}"]
        if clause:
            lines.append(f"  Clause: {clause}")
        if query:
            lines.append(f"  Query: {query}")
        if expected_params is not None:
            lines.append(f"  Expected: {expected_params} parameter(s)")
        if received_params is not None:
            lines.append(f"  Received: {received_params} parameter(s)")
        if hint:
            lines.append(f"  Hint: {hint}")

        super().__init__("\n".join(lines))


class ParameterMismatchError(QueryBuilderError):
    """Raised when placeholders and parameters do not line up."""

    def __init__(
        self,
        clause: str,
        expected_params: int,
        received_params: int,
        query: Optional[str] = None
    ):
        if received_params > expected_params:
            hint = "Remove extra parameters or add more placeholders (?) to your query"
        else:
            hint = "Add missing parameters or remove extra placeholders (?) from your query"
        super().__init__(
            "Parameter count mismatch",
            clause=clause,
            query=query,
            expected_params=expected_params,
            received_params=received_params,
            hint=hint
        )


class MissingDataError(QueryBuilderError):
    """Raised when a required field is missing for an operation."""

    def __init__(self, operation: str, field: str):
        self.operation = operation
        self.field = field
        super().__init__(
            f"{field} is required for {operation} operation",
            hint=f"Provide a valid {field} parameter"
        )


class InvalidConfigurationError(QueryBuilderError):
    """Raised when options are combined in a way that cannot be rendered."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message, hint=hint)


class SubqueryTokenError(QueryBuilderError):
    """Raised when a subquery token has no registered query."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(
            f"Subquery token {token} not found in placeholders",
            hint="Ensure the subquery is properly registered before referencing it"
        )


class MissingSubqueryContextError(QueryBuilderError):
    """Raised when tokens are rendered without a subquery registry."""

    def __init__(self):
        super().__init__(
            "Subquery context not provided for token processing",
            hint="This is likely an internal error. Please report it."
        )


class MigrationError(QueryBuilderError):
    """Raised when applying a single migration fails."""

    def __init__(self, migration_name: str, reason: str):
        self.migration_name = migration_name
        super().__init__(
            f"Migration '{migration_name}' failed: {reason}",
            hint="Earlier migrations in this run stay applied; fix the failing one and re-run"
        )


class ExecutorError(QueryBuilderError):
    """Raised by the reference executor when the driver rejects a statement."""

    def __init__(self, message: str, query: Optional[str] = None):
        super().__init__(message, query=query)
