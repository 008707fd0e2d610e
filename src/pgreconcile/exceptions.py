"""
Exception classes for pgreconcile.
"""

from typing import Any, Dict, Optional


class ReconcileError(Exception):
    """Base exception for all pgreconcile errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(ReconcileError):
    """Raised when there's an error in configuration."""

    pass


class ValidationError(ReconcileError):
    """Raised when a declared table or column is malformed."""

    pass


class DatabaseError(ReconcileError):
    """Raised when there's an error with database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when there's an error establishing or maintaining database connections."""

    pass


class DatabaseConfigurationError(DatabaseError):
    """Raised when there's an error in database configuration."""

    pass


class SchemaError(DatabaseError):
    """Raised when there's an error with database schema operations."""

    pass


class UnsupportedTypeError(SchemaError):
    """Raised when a live column has a native type outside the type model."""

    def __init__(
        self,
        table_name: str,
        column_name: str,
        native_type: Optional[str] = None,
    ) -> None:
        details = {}
        if native_type:
            details["native_type"] = native_type

        super().__init__(
            f"Database has unsupported type in {table_name}.{column_name}",
            details,
        )
        self.table_name = table_name
        self.column_name = column_name
        self.native_type = native_type


class IntrospectionError(SchemaError):
    """Raised when the catalog cannot be read for a table."""

    def __init__(
        self,
        table_name: str,
        namespace: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        qualified = f"{namespace}.{table_name}" if namespace else table_name
        super().__init__(
            f"Failed to introspect table '{qualified}'",
            cause=cause,
        )
        self.table_name = table_name
        self.namespace = namespace


class ExecutionError(DatabaseError):
    """Raised when applying a batch of DDL statements fails partway."""

    def __init__(
        self,
        statements_executed: int,
        statement: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        details: Dict[str, Any] = {"statements_executed": statements_executed}
        if statement:
            details["statement"] = statement

        super().__init__(
            f"Schema batch failed after {statements_executed} statement(s)",
            details,
            cause,
        )
        self.statements_executed = statements_executed
        self.statement = statement
