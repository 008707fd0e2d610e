"""
Schema management package for pgreconcile.

This package provides:
- The column type and default vocabulary
- The table/column model
- SQL rendering of column and table definitions
- Diffing of declared against live tables
- Reconciliation of a whole set of tables
"""

from .types import ColumnKind, ColumnType, ColumnDefault, DefaultKind
from .model import Column, Table, default_columns
from .emitter import render_column, render_create_table
from .differ import ChangeType, SchemaChange, compute_changes, diff, compile_database

__all__ = [
    "ColumnKind",
    "ColumnType",
    "ColumnDefault",
    "DefaultKind",
    "Column",
    "Table",
    "default_columns",
    "render_column",
    "render_create_table",
    "ChangeType",
    "SchemaChange",
    "compute_changes",
    "diff",
    "compile_database",
]
