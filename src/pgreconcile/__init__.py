"""
pgreconcile: declarative PostgreSQL schema reconciliation.

pgreconcile compares the tables your application declares with the
structure of a live database and produces the ordered DDL needed to
bring the database in line.
"""

__version__ = "0.1.0"

from .config import ReconcileConfig
from .exceptions import (
    ReconcileError,
    ConfigurationError,
    DatabaseError,
    SchemaError,
    UnsupportedTypeError,
    IntrospectionError,
    ExecutionError,
)
from .schema import Column, ColumnDefault, ColumnType, Table, diff

__all__ = [
    "__version__",
    "ReconcileConfig",
    "ReconcileError",
    "ConfigurationError",
    "DatabaseError",
    "SchemaError",
    "UnsupportedTypeError",
    "IntrospectionError",
    "ExecutionError",
    "Column",
    "ColumnDefault",
    "ColumnType",
    "Table",
    "diff",
]
