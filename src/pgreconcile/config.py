"""
Configuration system for pgreconcile using Pydantic.
"""

import os
import re
from pathlib import Path
from typing import Any, List, Literal, Optional, Tuple, Union

import yaml
from pydantic import (
    BaseModel,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from .database.connection import ConnectionConfig
from .exceptions import ConfigurationError
from .schema.model import Column, Table, default_columns
from .schema.types import ColumnDefault, ColumnType


_REFERENCE_PATTERN = re.compile(
    r"^(?:(?P<dot_table>\w+)\.(?P<dot_column>\w+)"
    r"|(?P<table>\w+)\s*\(\s*(?P<column>\w+)\s*\))$"
)


def parse_reference(value: str) -> Tuple[str, str]:
    """Parse ``table.column`` or ``table(column)``."""
    match = _REFERENCE_PATTERN.match(value.strip())
    if not match:
        raise ValueError(
            f"Invalid reference '{value}', expected 'table.column' or 'table(column)'"
        )
    if match.group("dot_table"):
        return match.group("dot_table"), match.group("dot_column")
    return match.group("table"), match.group("column")


class ColumnConfig(BaseModel):
    """Declared column."""

    name: str = Field(..., description="Column name")
    type: str = Field(..., description="Column type, e.g. 'bigint' or 'varchar(256)'")
    nullable: bool = Field(False, description="Allow NULL values")
    default: Optional[Union[StrictBool, StrictInt, StrictStr]] = Field(
        None, description="Literal default value"
    )
    default_expr: Optional[str] = Field(
        None, description="Raw SQL default expression, e.g. 'NOW()'"
    )
    unique: bool = Field(False, description="Single-column unique constraint")
    check: Optional[str] = Field(None, description="CHECK constraint expression")
    primary_key: bool = Field(False, description="Primary key column")
    references: Optional[str] = Field(
        None, description="Foreign key target as 'table.column'"
    )

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if ColumnType.parse(v) is None:
            raise ValueError(f"Unsupported column type: {v}")
        return v

    @field_validator("default")
    @classmethod
    def check_default_range(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            if not -(2 ** 63) <= v <= 2 ** 64 - 1:
                raise ValueError(f"Integer default out of range: {v}")
        return v

    @field_validator("references")
    @classmethod
    def validate_references(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            parse_reference(v)
        return v

    @model_validator(mode="after")
    def validate_single_default(self) -> "ColumnConfig":
        if self.default is not None and self.default_expr is not None:
            raise ValueError(
                f"Column '{self.name}' sets both 'default' and 'default_expr'"
            )
        return self

    def column_default(self) -> Optional[ColumnDefault]:
        if self.default_expr is not None:
            return ColumnDefault.from_raw(self.default_expr)
        value = self.default
        if value is None:
            return None
        if isinstance(value, bool):
            return ColumnDefault.from_bool(value)
        if isinstance(value, int):
            if value >= 0:
                return ColumnDefault.from_int(value)
            return ColumnDefault.from_float(value)
        return ColumnDefault.from_string(value)

    def to_column(self) -> Column:
        return Column(
            name=self.name,
            type=ColumnType.parse(self.type),
            nullable=self.nullable,
            default=self.column_default(),
            unique=self.unique,
            constraint=self.check,
            primary_key=self.primary_key,
            references=parse_reference(self.references) if self.references else None,
        )


class TableConfig(BaseModel):
    """Declared table."""

    name: str = Field(..., description="Table name")
    columns: List[ColumnConfig] = Field(..., description="Columns in declaration order")
    default_columns: bool = Field(
        False, description="Prepend id, created_at and updated_at columns"
    )

    @model_validator(mode="after")
    def validate_columns(self) -> "TableConfig":
        names = self.column_names
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(
                f"Table '{self.name}' has duplicate columns: {', '.join(duplicates)}"
            )
        return self

    @property
    def column_names(self) -> List[str]:
        names = [column.name for column in default_columns()] if self.default_columns else []
        return names + [column.name for column in self.columns]

    def to_table(self) -> Table:
        columns = default_columns() if self.default_columns else []
        columns.extend(column.to_column() for column in self.columns)
        return Table(name=self.name, columns=columns)


class PoolConfig(BaseModel):
    """Connection pool configuration."""

    min_size: int = Field(1, description="Minimum connections in pool")
    max_size: int = Field(10, description="Maximum connections in pool")
    command_timeout: Optional[float] = Field(
        None, description="Command timeout in seconds"
    )


class ExecutionConfig(BaseModel):
    """How a computed plan is applied."""

    atomic: bool = Field(False, description="Run the whole batch in one transaction")
    allow_destructive: bool = Field(
        False, description="Allow column drops, type changes and constraint drops"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")


class ReconcileConfig(BaseSettings):
    """Main pgreconcile configuration."""

    database_url: Optional[str] = Field(None, description="PostgreSQL connection string")
    namespace: str = Field("public", description="Database schema holding the tables")
    dry_run: bool = Field(False, description="Plan only, never execute")

    tables: List[TableConfig] = Field(
        default_factory=list, description="Declared tables, in DDL order"
    )

    pool: PoolConfig = Field(default_factory=PoolConfig, description="Pool configuration")
    execution: ExecutionConfig = Field(
        default_factory=ExecutionConfig, description="Execution configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PGRECONCILE_",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ReconcileConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            # Expand environment variables in the data
            data = cls._expand_env_vars(data)

            return cls(**data)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {path}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    def get_table(self, name: str) -> TableConfig:
        """Get a declared table by name."""
        for table in self.tables:
            if table.name == name:
                return table
        raise ConfigurationError(f"Table '{name}' is not declared")

    def declared_tables(self) -> List[Table]:
        """Build the table model for every declared table, in order."""
        return [table.to_table() for table in self.tables]

    def validate_config(self) -> None:
        """Validate the configuration for consistency across tables."""
        seen = set()
        for table in self.tables:
            if table.name in seen:
                raise ConfigurationError(f"Table '{table.name}' is declared more than once")
            seen.add(table.name)

        declared = {table.name: table for table in self.tables}
        for table in self.tables:
            for column in table.columns:
                if not column.references:
                    continue
                ref_table, ref_column = parse_reference(column.references)
                target = declared.get(ref_table)
                if target is not None and ref_column not in target.column_names:
                    raise ConfigurationError(
                        f"Column {table.name}.{column.name} references unknown "
                        f"column {ref_table}.{ref_column}"
                    )

    def connection_config(self, database_url: Optional[str] = None) -> ConnectionConfig:
        """Build connection settings, preferring an explicit URL over the configured one."""
        url = database_url or self.database_url
        if not url:
            raise ConfigurationError(
                "No database URL configured; set database_url, "
                "PGRECONCILE_DATABASE_URL or pass --database-url"
            )
        return ConnectionConfig.from_url(
            url,
            min_size=self.pool.min_size,
            max_size=self.pool.max_size,
            command_timeout=self.pool.command_timeout,
        )

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(mode="json", exclude_none=True),
                f,
                default_flow_style=False,
                indent=2,
                sort_keys=False,
            )
