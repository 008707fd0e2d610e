"""
Database integration package for pgreconcile.

This package provides:
- Async PostgreSQL connection pooling
- Catalog introspection of live tables
- Sequential execution of DDL batches
"""

from .connection import ConnectionConfig, ConnectionPool
from .introspection import SchemaIntrospector, ColumnInfo
from .executor import SchemaExecutor, ExecutionResult

__all__ = [
    "ConnectionConfig",
    "ConnectionPool",
    "SchemaIntrospector",
    "ColumnInfo",
    "SchemaExecutor",
    "ExecutionResult",
]
