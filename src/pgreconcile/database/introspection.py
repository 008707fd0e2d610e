"""
Database schema introspection for pgreconcile.

Reads PostgreSQL's information_schema views to rebuild the column model
of a live table so it can be diffed against its declaration.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from .connection import ConnectionPool
from ..exceptions import IntrospectionError
from ..schema.model import Column
from ..schema.types import ColumnDefault, ColumnKind, ColumnType


logger = logging.getLogger(__name__)


# One row per physical column. The foreign key is reported only when the
# column is the sole column of exactly one foreign key constraint.
COLUMNS_QUERY = """
    SELECT
        c.column_name,
        c.data_type,
        c.is_nullable = 'YES' AS is_nullable,
        c.column_default,
        c.character_maximum_length,
        c.numeric_precision,
        c.numeric_scale,
        EXISTS (
            SELECT 1
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
                ON kcu.constraint_schema = tc.constraint_schema
                AND kcu.constraint_name = tc.constraint_name
                AND kcu.table_schema = tc.table_schema
                AND kcu.table_name = tc.table_name
            WHERE tc.table_schema = c.table_schema
                AND tc.table_name = c.table_name
                AND tc.constraint_type = 'PRIMARY KEY'
                AND kcu.column_name = c.column_name
        ) AS is_primary_key,
        EXISTS (
            SELECT 1
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
                ON kcu.constraint_schema = tc.constraint_schema
                AND kcu.constraint_name = tc.constraint_name
                AND kcu.table_schema = tc.table_schema
                AND kcu.table_name = tc.table_name
            WHERE tc.table_schema = c.table_schema
                AND tc.table_name = c.table_name
                AND tc.constraint_type = 'UNIQUE'
                AND kcu.column_name = c.column_name
                AND (
                    SELECT count(*)
                    FROM information_schema.key_column_usage k2
                    WHERE k2.constraint_schema = tc.constraint_schema
                        AND k2.constraint_name = tc.constraint_name
                        AND k2.table_schema = tc.table_schema
                        AND k2.table_name = tc.table_name
                ) = 1
        ) AS is_unique,
        (
            SELECT CASE WHEN count(*) = 1 THEN max(rt.relname || ':' || ra.attname) END
            FROM pg_catalog.pg_constraint con
            JOIN pg_catalog.pg_class t ON t.oid = con.conrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = t.relnamespace
            JOIN pg_catalog.pg_attribute a
                ON a.attrelid = con.conrelid AND a.attnum = con.conkey[1]
            JOIN pg_catalog.pg_class rt ON rt.oid = con.confrelid
            JOIN pg_catalog.pg_attribute ra
                ON ra.attrelid = con.confrelid AND ra.attnum = con.confkey[1]
            WHERE con.contype = 'f'
                AND array_length(con.conkey, 1) = 1
                AND n.nspname = c.table_schema
                AND t.relname = c.table_name
                AND a.attname = c.column_name
        ) AS foreign_key
    FROM information_schema.columns c
    WHERE c.table_schema = $1 AND c.table_name = $2
    ORDER BY c.ordinal_position
"""

_UNSIGNED_LITERAL = re.compile(r"^\+?[0-9]+$")
_SIGNED_LITERAL = re.compile(r"^[+-]?[0-9]+$")
_UINT64_MAX = 2 ** 64 - 1
_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1


def parse_default(raw: Optional[str]) -> Optional[ColumnDefault]:
    """
    Classify a default expression as stored in the catalog.

    Quoted literals become STRING (any trailing ``::type`` cast is
    dropped), ``true``/``false`` become BOOL, non-negative integers INT,
    other integers FLOAT, and anything else is kept as a RAW expression.
    """
    if raw is None:
        return None

    if raw.startswith("'"):
        literal = _unquote(raw)
        if literal is not None:
            return ColumnDefault.from_string(literal)
        return ColumnDefault.from_raw(raw)

    if raw in ("true", "false"):
        return ColumnDefault.from_bool(raw == "true")

    if _UNSIGNED_LITERAL.match(raw) and int(raw) <= _UINT64_MAX:
        return ColumnDefault.from_int(int(raw))

    if _SIGNED_LITERAL.match(raw) and _INT64_MIN <= int(raw) <= _INT64_MAX:
        return ColumnDefault.from_float(int(raw))

    return ColumnDefault.from_raw(raw)


def _unquote(raw: str) -> Optional[str]:
    """Extract the contents of a leading single-quoted SQL literal."""
    chars = []
    i = 1
    while i < len(raw):
        ch = raw[i]
        if ch == "'":
            if raw[i + 1:i + 2] == "'":
                chars.append("'")
                i += 2
                continue
            return "".join(chars)
        chars.append(ch)
        i += 1
    return None


def parse_foreign_key(value: Optional[str]) -> Optional[Tuple[str, str]]:
    """Split a ``table:column`` foreign key target."""
    if not value:
        return None
    table, sep, column = value.partition(":")
    if not sep or not table or not column:
        return None
    return table, column


@dataclass
class ColumnInfo:
    """A column as reported by the catalog, before type resolution."""

    name: str
    data_type: str
    is_nullable: bool
    default_value: Optional[str] = None
    max_length: Optional[int] = None
    numeric_precision: Optional[int] = None
    numeric_scale: Optional[int] = None
    is_primary_key: bool = False
    is_unique: bool = False
    foreign_key: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ColumnInfo":
        return cls(
            name=row["column_name"],
            data_type=row["data_type"],
            is_nullable=bool(row["is_nullable"]),
            default_value=row["column_default"],
            max_length=row["character_maximum_length"],
            numeric_precision=row["numeric_precision"],
            numeric_scale=row["numeric_scale"],
            is_primary_key=bool(row["is_primary_key"]),
            is_unique=bool(row["is_unique"]),
            foreign_key=row["foreign_key"],
        )

    def to_column(self, table: str) -> Column:
        """Resolve into the column model, raising UnsupportedTypeError on unknown types."""
        column_type = ColumnType.parse_or_raise(self.data_type, table, self.name)

        if column_type.kind == ColumnKind.TEXT and self.max_length:
            column_type = ColumnType.text(self.max_length)
        elif column_type.kind == ColumnKind.NUMERIC and self.numeric_precision:
            column_type = ColumnType.numeric(self.numeric_precision, self.numeric_scale or 0)

        return Column(
            name=self.name,
            type=column_type,
            nullable=self.is_nullable,
            default=parse_default(self.default_value),
            unique=self.is_unique,
            primary_key=self.is_primary_key,
            references=parse_foreign_key(self.foreign_key),
        )


class SchemaIntrospector:
    """Reads live table definitions from the database catalog."""

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    async def get_columns(self, namespace: str, table: str) -> List[ColumnInfo]:
        """Get raw catalog information for every column of a table."""
        try:
            rows = await self.pool.fetch(COLUMNS_QUERY, namespace, table)
        except Exception as e:
            logger.error(f"Error getting columns for {namespace}.{table}: {e}")
            raise IntrospectionError(table, namespace, cause=e) from e

        return [ColumnInfo.from_row(row) for row in rows]

    async def fetch(self, namespace: str, table: str) -> Optional[List[Column]]:
        """
        Reconstruct the live columns of a table.

        Returns:
            Columns in ordinal order, or None if the table does not exist
        """
        infos = await self.get_columns(namespace, table)
        if not infos:
            logger.debug(f"Table {namespace}.{table} does not exist")
            return None

        logger.debug(f"Introspected {len(infos)} column(s) for {namespace}.{table}")
        return columns_from_info(table, infos)


def columns_from_info(table: str, infos: Sequence[ColumnInfo]) -> List[Column]:
    return [info.to_column(table) for info in infos]
