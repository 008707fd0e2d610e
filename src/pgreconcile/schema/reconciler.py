"""
Schema reconciliation core logic for pgreconcile.

Coordinates introspection, diffing and execution so that the live
database matches a list of declared tables.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..database.connection import ConnectionPool
from ..database.executor import ExecutionResult, SchemaExecutor
from ..database.introspection import SchemaIntrospector
from ..exceptions import SchemaError
from .differ import ChangeType, SchemaChange, compute_changes, join_statement_blocks
from .model import Column, Table


logger = logging.getLogger(__name__)


@dataclass
class TablePlan:
    """Changes planned for a single table."""

    table: str
    changes: List[SchemaChange] = field(default_factory=list)

    @property
    def created(self) -> bool:
        return any(c.change_type == ChangeType.CREATE_TABLE for c in self.changes)

    @property
    def sql(self) -> str:
        return "\n".join(change.sql for change in self.changes)


@dataclass
class ReconciliationPlan:
    """Ordered changes for every declared table."""

    tables: List[TablePlan] = field(default_factory=list)

    @property
    def changes(self) -> List[SchemaChange]:
        return [change for plan in self.tables for change in plan.changes]

    @property
    def statements(self) -> List[str]:
        return [change.sql for change in self.changes]

    @property
    def destructive_changes(self) -> List[SchemaChange]:
        return [change for change in self.changes if change.is_destructive]

    @property
    def is_empty(self) -> bool:
        return not self.changes

    @property
    def sql(self) -> str:
        """The whole batch: table blocks separated by a blank line, trimmed."""
        return join_statement_blocks([plan.sql for plan in self.tables])


@dataclass
class ReconciliationResult:
    """Result of a reconciliation run."""

    plan: ReconciliationPlan
    execution: Optional[ExecutionResult] = None
    dry_run: bool = False

    @property
    def statements_executed(self) -> int:
        return self.execution.statements_executed if self.execution else 0

    @property
    def rows_affected(self) -> int:
        return self.execution.rows_affected if self.execution else 0


def build_plan(
    tables: Sequence[Table], live: Sequence[Optional[List[Column]]]
) -> ReconciliationPlan:
    """Diff each declared table against its live columns, preserving declared order."""
    return ReconciliationPlan(
        tables=[
            TablePlan(table=table.name, changes=compute_changes(table, columns))
            for table, columns in zip(tables, live)
        ]
    )


class SchemaReconciler:
    """
    Core schema reconciliation engine.

    Introspection is issued concurrently across tables, bounded by the
    pool size. The resulting batch is executed sequentially; it is only
    wrapped in a transaction when the caller asks for ``atomic``.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        namespace: str = "public",
        max_concurrency: Optional[int] = None,
    ):
        self.pool = pool
        self.namespace = namespace
        self.max_concurrency = max_concurrency or pool.max_size

        self.introspector = SchemaIntrospector(pool)
        self.executor = SchemaExecutor(pool)

    async def fetch_live(self, tables: Sequence[Table]) -> List[Optional[List[Column]]]:
        """Introspect every declared table; results follow declared order."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def fetch_one(table: Table) -> Optional[List[Column]]:
            async with semaphore:
                return await self.introspector.fetch(self.namespace, table.name)

        tasks = [asyncio.ensure_future(fetch_one(table)) for table in tables]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            # Stop issuing further catalog queries once one has failed
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def plan(self, tables: Sequence[Table]) -> ReconciliationPlan:
        """Compute the changes required for all declared tables."""
        live = await self.fetch_live(tables)
        plan = build_plan(tables, live)

        for table_plan in plan.tables:
            if table_plan.created:
                logger.info(f"Table {self.namespace}.{table_plan.table} is missing, will be created")
            elif table_plan.changes:
                logger.info(
                    f"Table {self.namespace}.{table_plan.table}: "
                    f"{len(table_plan.changes)} change(s) required"
                )
            else:
                logger.info(f"No changes needed for {self.namespace}.{table_plan.table}")

        return plan

    async def apply(
        self,
        plan: ReconciliationPlan,
        atomic: bool = False,
        allow_destructive: bool = True,
    ) -> ExecutionResult:
        """Execute a previously computed plan."""
        destructive = plan.destructive_changes
        if destructive and not allow_destructive:
            raise SchemaError(
                f"Plan contains {len(destructive)} destructive change(s); "
                f"destructive changes are not allowed",
                details={"changes": ", ".join(c.change_id for c in destructive)},
            )

        return await self.executor.execute(plan.statements, atomic=atomic)

    async def reconcile(
        self,
        tables: Sequence[Table],
        dry_run: bool = False,
        atomic: bool = False,
        allow_destructive: bool = True,
    ) -> ReconciliationResult:
        """
        Bring the database in line with the declared tables.

        Args:
            tables: Declared tables, in the order their DDL should run
            dry_run: Plan only, do not execute
            atomic: Run the batch inside a single transaction
            allow_destructive: Permit drops and type changes

        Returns:
            ReconciliationResult with the plan and, unless dry run, its execution
        """
        plan = await self.plan(tables)
        result = ReconciliationResult(plan=plan, dry_run=dry_run)

        if dry_run:
            logger.info(f"DRY RUN: {len(plan.statements)} statement(s) not executed")
            for statement in plan.statements:
                logger.info(f"SQL: {statement}")
            return result

        if plan.is_empty:
            result.execution = ExecutionResult(statements_executed=0, rows_affected=0)
            return result

        result.execution = await self.apply(
            plan, atomic=atomic, allow_destructive=allow_destructive
        )
        return result

    def summarize(self, plan: ReconciliationPlan) -> Dict[str, int]:
        """Count planned changes by type."""
        summary: Dict[str, int] = {}
        for change in plan.changes:
            summary[change.change_type.value] = summary.get(change.change_type.value, 0) + 1
        return summary
