"""
=================
Executor contract.
=================

The composition engine never performs I/O. Anything that actually runs a
Query implements the Executor protocol; results are passed back to the
caller untouched, so an executor may be synchronous or return awaitables.

Result shapes the migration runner relies on:
    - FetchType.MANY: a sequence of row mappings
    - FetchType.ONE: a row mapping or None
    - FetchType.NONE: driver-defined

execute_batch() must run its queries as one atomic unit (one transaction).
"""

from typing import Any, Callable, List, Optional, Protocol, Sequence, runtime_checkable

from compose.types import Query


@runtime_checkable
class Executor(Protocol):
    """Runs rendered queries against a concrete database."""

    def execute(self, query: Query) -> Any:
        ...

    def execute_batch(self, queries: Sequence[Query]) -> Any:
        ...


class FunctionExecutor:
    """Adapts plain callables to the Executor protocol.

    Args:
        func: Called with each Query
        batch_func: Called with a list of Queries; when omitted, batches run
            one query at a time through ``func`` and are NOT atomic.
            Async callables must supply ``batch_func``.

    Example:
        >>> executor = FunctionExecutor(lambda query: print(query.sql))
    """

    def __init__(
        self,
        func: Callable[[Query], Any],
        batch_func: Optional[Callable[[List[Query]], Any]] = None
    ):
        self.func = func
        self.batch_func = batch_func

    def execute(self, query: Query) -> Any:
        return self.func(query)

    def execute_batch(self, queries: Sequence[Query]) -> Any:
        if self.batch_func is not None:
            return self.batch_func(list(queries))
        return [self.func(query) for query in queries]
