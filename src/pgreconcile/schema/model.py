"""
In-memory table model shared by declared and introspected schemas.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..exceptions import ValidationError
from .types import ColumnDefault, ColumnKind, ColumnType


@dataclass(frozen=True)
class Column:
    """A single table column."""

    name: str
    type: ColumnType
    nullable: bool = False
    default: Optional[ColumnDefault] = None
    unique: bool = False
    # Rendered on CREATE/ADD but never compared when diffing.
    constraint: Optional[str] = None
    primary_key: bool = False
    references: Optional[Tuple[str, str]] = None  # (table, column)

    def __post_init__(self):
        if not self.name:
            raise ValidationError("Column name is required")
        if self.references is not None:
            if len(self.references) != 2:
                raise ValidationError(
                    f"Column '{self.name}' reference must be a (table, column) pair"
                )
            object.__setattr__(self, "references", tuple(self.references))


@dataclass(frozen=True)
class Table:
    """A table: a name and its columns in declaration order."""

    name: str
    columns: Tuple[Column, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.name:
            raise ValidationError("Table name is required")
        # Accept any iterable of columns but store an immutable tuple
        object.__setattr__(self, "columns", tuple(self.columns))

        seen = set()
        for column in self.columns:
            if column.name in seen:
                raise ValidationError(
                    f"Duplicate column '{column.name}' in table '{self.name}'"
                )
            seen.add(column.name)

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    def has_column(self, column_name: str) -> bool:
        return self.get_column(column_name) is not None

    def get_column(self, column_name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == column_name:
                return column
        return None


def default_columns() -> List[Column]:
    """Conventional identity and audit columns a table may opt in to."""
    return [
        Column(
            name="id",
            type=ColumnType(ColumnKind.UUID),
            default=ColumnDefault.from_raw("uuid_generate_v4()"),
            primary_key=True,
        ),
        Column(
            name="created_at",
            type=ColumnType(ColumnKind.TIMESTAMPTZ),
            default=ColumnDefault.from_raw("NOW()"),
        ),
        Column(
            name="updated_at",
            type=ColumnType(ColumnKind.TIMESTAMPTZ),
            default=ColumnDefault.from_raw("NOW()"),
        ),
    ]
