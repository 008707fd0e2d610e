"""
Schema diffing for pgreconcile.

Compares a declared table with the columns introspected from the live
database and produces the ordered DDL statements that bring the live
table in line with the declaration. Pure computation: no database I/O.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .emitter import render_column, render_create_table
from .model import Column, Table


logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    """Types of schema changes."""

    CREATE_TABLE = "create_table"
    ADD_COLUMN = "add_column"
    ALTER_TYPE = "alter_type"
    SET_NOT_NULL = "set_not_null"
    DROP_NOT_NULL = "drop_not_null"
    SET_DEFAULT = "set_default"
    DROP_DEFAULT = "drop_default"
    ADD_UNIQUE = "add_unique"
    DROP_UNIQUE = "drop_unique"
    ADD_FOREIGN_KEY = "add_foreign_key"
    DROP_FOREIGN_KEY = "drop_foreign_key"
    DROP_COLUMN = "drop_column"


DESTRUCTIVE_CHANGES = frozenset({
    ChangeType.ALTER_TYPE,
    ChangeType.DROP_UNIQUE,
    ChangeType.DROP_FOREIGN_KEY,
    ChangeType.DROP_COLUMN,
})


@dataclass(frozen=True)
class SchemaChange:
    """A single DDL statement and what it does."""

    change_type: ChangeType
    table: str
    sql: str
    column: Optional[str] = None

    @property
    def is_destructive(self) -> bool:
        """Whether the change can discard data or constraints."""
        return self.change_type in DESTRUCTIVE_CHANGES

    @property
    def change_id(self) -> str:
        target = self.column or "table"
        return f"{self.change_type.value}_{self.table}_{target}"


def unique_constraint_name(table: str, column: str) -> str:
    return f"{table}_{column}_key"


def foreign_key_constraint_name(table: str, column: str) -> str:
    return f"{table}_{column}_fkey"


def compute_changes(
    declared: Table, live: Optional[Sequence[Column]]
) -> List[SchemaChange]:
    """
    Compute the changes needed to turn ``live`` into ``declared``.

    Args:
        declared: The desired table definition
        live: Columns currently in the database, or None if the table is absent

    Returns:
        Changes in execution order: per declared column in declaration
        order, then drops for leftover live columns in live order
    """
    if not live:
        return [
            SchemaChange(
                change_type=ChangeType.CREATE_TABLE,
                table=declared.name,
                sql=render_create_table(declared),
            )
        ]

    table = declared.name
    live_by_name: Dict[str, Column] = {column.name: column for column in live}
    changes: List[SchemaChange] = []

    for column in declared.columns:
        live_column = live_by_name.get(column.name)
        if live_column is None:
            changes.append(
                SchemaChange(
                    change_type=ChangeType.ADD_COLUMN,
                    table=table,
                    column=column.name,
                    sql=f"ALTER TABLE {table} ADD COLUMN {render_column(column)};",
                )
            )
            continue

        changes.extend(_compare_column(table, column, live_column))

    declared_names = set(declared.column_names)
    for live_column in live:
        if live_column.name not in declared_names:
            changes.append(
                SchemaChange(
                    change_type=ChangeType.DROP_COLUMN,
                    table=table,
                    column=live_column.name,
                    sql=f"ALTER TABLE {table} DROP COLUMN {live_column.name};",
                )
            )

    logger.debug(f"Computed {len(changes)} change(s) for table {table}")
    return changes


def _compare_column(table: str, declared: Column, live: Column) -> List[SchemaChange]:
    """Compare one column attribute by attribute.

    Check constraints are deliberately not compared.
    """
    name = declared.name
    alter = f"ALTER TABLE {table} ALTER COLUMN {name}"
    changes: List[SchemaChange] = []

    def add(change_type: ChangeType, sql: str) -> None:
        changes.append(SchemaChange(change_type=change_type, table=table, column=name, sql=sql))

    if declared.type != live.type:
        ty = declared.type.render()
        add(ChangeType.ALTER_TYPE, f"{alter} TYPE {ty} USING {name}::{ty};")

    if declared.nullable != live.nullable:
        if declared.nullable:
            add(ChangeType.DROP_NOT_NULL, f"{alter} DROP NOT NULL;")
        else:
            add(ChangeType.SET_NOT_NULL, f"{alter} SET NOT NULL;")

    if declared.default != live.default:
        if declared.default is not None:
            add(ChangeType.SET_DEFAULT, f"{alter} SET DEFAULT {declared.default.render()};")
        else:
            add(ChangeType.DROP_DEFAULT, f"{alter} DROP DEFAULT;")

    if declared.unique != live.unique:
        constraint = unique_constraint_name(table, name)
        if live.unique:
            add(ChangeType.DROP_UNIQUE, f"ALTER TABLE {table} DROP CONSTRAINT {constraint};")
        else:
            add(
                ChangeType.ADD_UNIQUE,
                f"ALTER TABLE {table} ADD CONSTRAINT {constraint} UNIQUE ({name});",
            )

    if declared.references != live.references:
        constraint = foreign_key_constraint_name(table, name)
        if live.references is not None:
            add(
                ChangeType.DROP_FOREIGN_KEY,
                f"ALTER TABLE {table} DROP CONSTRAINT {constraint};",
            )
        if declared.references is not None:
            ref_table, ref_column = declared.references
            add(
                ChangeType.ADD_FOREIGN_KEY,
                f"ALTER TABLE {table} ADD CONSTRAINT {constraint} "
                f"FOREIGN KEY ({name}) REFERENCES {ref_table} ({ref_column});",
            )

    return changes


def diff(declared: Table, live: Optional[Sequence[Column]]) -> str:
    """Render the changes for one table as newline-separated SQL."""
    return "\n".join(change.sql for change in compute_changes(declared, live))


def join_statement_blocks(blocks: Sequence[str]) -> str:
    """Join per-table SQL blocks with a blank line, skipping empty blocks."""
    return "\n\n".join(block for block in blocks if block.strip()).strip()


def compile_database(tables: Sequence[Table]) -> str:
    """Render CREATE TABLE statements for every table, as for an empty database."""
    return join_statement_blocks([diff(table, None) for table in tables])
