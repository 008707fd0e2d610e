"""
Applies a batch of DDL statements to the database.
"""

import logging
import time
from contextlib import AsyncExitStack
from dataclasses import dataclass
from typing import Sequence

from .connection import ConnectionPool
from ..exceptions import ExecutionError


logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Outcome of an executed batch."""

    statements_executed: int
    rows_affected: int
    execution_time_ms: float = 0.0


def rows_from_status(status: str) -> int:
    """Extract the row count from a command status tag such as ``UPDATE 3``."""
    if not status:
        return 0
    last = status.rsplit(" ", 1)[-1]
    return int(last) if last.isdigit() else 0


class SchemaExecutor:
    """Runs statements sequentially on a single connection.

    No transaction is opened unless ``atomic`` is requested; a failure
    part way through leaves the preceding statements applied.
    """

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    async def execute(self, statements: Sequence[str], atomic: bool = False) -> ExecutionResult:
        start_time = time.time()
        executed = 0
        rows = 0

        if not statements:
            return ExecutionResult(statements_executed=0, rows_affected=0)

        async with self.pool.acquire() as conn:
            async with AsyncExitStack() as stack:
                if atomic:
                    await stack.enter_async_context(conn.transaction())

                for statement in statements:
                    try:
                        logger.debug(f"Executing: {statement}")
                        status = await conn.execute(statement)
                    except Exception as e:
                        logger.error(
                            f"Statement {executed + 1} of {len(statements)} failed: {e}"
                        )
                        raise ExecutionError(
                            0 if atomic else executed, statement, cause=e
                        ) from e
                    executed += 1
                    rows += rows_from_status(status)

        result = ExecutionResult(
            statements_executed=executed,
            rows_affected=rows,
            execution_time_ms=(time.time() - start_time) * 1000,
        )
        logger.info(
            f"Executed {result.statements_executed} statement(s), "
            f"{result.rows_affected} row(s) affected ({result.execution_time_ms:.1f}ms)"
        )
        return result
