"""
Portable column types and literal defaults for pgreconcile.

Maps the closed vocabulary of column types the reconciler understands
to and from PostgreSQL's native type names, and models column default
values as tagged literals.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from ..exceptions import UnsupportedTypeError, ValidationError


class ColumnKind(str, Enum):
    """Column type variants, valued by their canonical native spelling."""

    SMALLINT = "smallint"
    INTEGER = "integer"
    BIGINT = "bigint"
    NUMERIC = "numeric"
    FLOAT = "real"
    DOUBLE = "double precision"
    MONEY = "money"
    TEXT = "character varying"
    BINARY = "bytea"
    TIMESTAMP = "timestamp"
    TIMESTAMPTZ = "timestamp with time zone"
    DATE = "date"
    TIME = "time"
    TIMETZ = "time with time zone"
    BOOL = "boolean"
    UUID = "uuid"


# Spellings accepted from the catalog and from declared configuration.
# Matching is case-sensitive: the catalog always reports lower case.
NATIVE_TYPE_NAMES = {
    "smallint": ColumnKind.SMALLINT,
    "int2": ColumnKind.SMALLINT,
    "integer": ColumnKind.INTEGER,
    "int": ColumnKind.INTEGER,
    "int4": ColumnKind.INTEGER,
    "bigint": ColumnKind.BIGINT,
    "int8": ColumnKind.BIGINT,
    "numeric": ColumnKind.NUMERIC,
    "decimal": ColumnKind.NUMERIC,
    "real": ColumnKind.FLOAT,
    "float4": ColumnKind.FLOAT,
    "double precision": ColumnKind.DOUBLE,
    "float8": ColumnKind.DOUBLE,
    "money": ColumnKind.MONEY,
    "character": ColumnKind.TEXT,
    "char": ColumnKind.TEXT,
    "character varying": ColumnKind.TEXT,
    "charvar": ColumnKind.TEXT,
    "varchar": ColumnKind.TEXT,
    "bytea": ColumnKind.BINARY,
    "timestamp": ColumnKind.TIMESTAMP,
    "timestamp without time zone": ColumnKind.TIMESTAMP,
    "timestamp with time zone": ColumnKind.TIMESTAMPTZ,
    "timestamptz": ColumnKind.TIMESTAMPTZ,
    "date": ColumnKind.DATE,
    "time": ColumnKind.TIME,
    "time without time zone": ColumnKind.TIME,
    "time with time zone": ColumnKind.TIMETZ,
    "timetz": ColumnKind.TIMETZ,
    "boolean": ColumnKind.BOOL,
    "bool": ColumnKind.BOOL,
    "uuid": ColumnKind.UUID,
}

_PARAMETERISED_TYPE = re.compile(r"^(?P<base>[a-z][a-z ]*?)\s*\((?P<args>[^()]*)\)$")

_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1
_UINT64_MAX = 2 ** 64 - 1


@dataclass(frozen=True)
class ColumnType:
    """A column type: a kind plus the parameters that kind may carry.

    ``length`` is only meaningful for TEXT and ``precision`` (a
    ``(precision, scale)`` pair) only for NUMERIC. Both take part in
    equality, so ``character varying`` and ``character varying(256)``
    are different types.
    """

    kind: ColumnKind
    length: Optional[int] = None
    precision: Optional[Tuple[int, int]] = None

    def __post_init__(self):
        if self.length is not None:
            if self.kind != ColumnKind.TEXT:
                raise ValidationError(f"Type {self.kind.value} does not take a length")
            if isinstance(self.length, bool) or not isinstance(self.length, int) or self.length <= 0:
                raise ValidationError(f"Invalid text length: {self.length!r}")
        if self.precision is not None:
            if self.kind != ColumnKind.NUMERIC:
                raise ValidationError(f"Type {self.kind.value} does not take a precision")
            precision, scale = self.precision
            if precision <= 0 or scale < 0:
                raise ValidationError(f"Invalid numeric precision: {self.precision!r}")

    @classmethod
    def text(cls, length: Optional[int] = None) -> "ColumnType":
        return cls(ColumnKind.TEXT, length=length)

    @classmethod
    def numeric(cls, precision: Optional[int] = None, scale: int = 0) -> "ColumnType":
        if precision is None:
            return cls(ColumnKind.NUMERIC)
        return cls(ColumnKind.NUMERIC, precision=(precision, scale))

    @classmethod
    def parse(cls, native_name: str) -> Optional["ColumnType"]:
        """Parse a native type name, returning None when it is not recognized."""
        kind = NATIVE_TYPE_NAMES.get(native_name)
        if kind is not None:
            return cls(kind)

        match = _PARAMETERISED_TYPE.match(native_name)
        if not match:
            return None

        kind = NATIVE_TYPE_NAMES.get(match.group("base"))
        args = [arg.strip() for arg in match.group("args").split(",")]
        if kind is None or not all(arg.isdigit() for arg in args):
            return None

        values = [int(arg) for arg in args]
        try:
            if kind == ColumnKind.TEXT and len(values) == 1:
                return cls.text(values[0])
            if kind == ColumnKind.NUMERIC and len(values) in (1, 2):
                return cls.numeric(*values)
        except ValidationError:
            return None
        return None

    @classmethod
    def parse_or_raise(cls, native_name: str, table: str, column: str) -> "ColumnType":
        """Parse a native type name reported for ``table.column``."""
        column_type = cls.parse(native_name)
        if column_type is None:
            raise UnsupportedTypeError(table, column, native_name)
        return column_type

    def render(self) -> str:
        if self.length is not None:
            return f"{self.kind.value}({self.length})"
        if self.precision is not None:
            return f"{self.kind.value}({self.precision[0]}, {self.precision[1]})"
        return self.kind.value

    def __str__(self) -> str:
        return self.render()


class DefaultKind(str, Enum):
    """Kinds of column default."""

    BOOL = "bool"
    INT = "int"
    # Holds signed integer literals; the name is historical.
    FLOAT = "float"
    STRING = "string"
    RAW = "raw"


@dataclass(frozen=True, eq=False)
class ColumnDefault:
    """A column default: a tagged literal or a raw SQL expression.

    RAW defaults compare case-insensitively because the catalog does not
    preserve the casing of function calls (``NOW()`` is stored as ``now()``).
    Every other kind compares by exact value.
    """

    kind: DefaultKind
    value: Union[bool, int, str]

    def __post_init__(self):
        value = self.value
        if self.kind == DefaultKind.BOOL:
            valid = isinstance(value, bool)
        elif self.kind == DefaultKind.INT:
            valid = (
                isinstance(value, int) and not isinstance(value, bool)
                and 0 <= value <= _UINT64_MAX
            )
        elif self.kind == DefaultKind.FLOAT:
            valid = (
                isinstance(value, int) and not isinstance(value, bool)
                and _INT64_MIN <= value <= _INT64_MAX
            )
        else:
            valid = isinstance(value, str)
        if not valid:
            raise ValidationError(f"Invalid {self.kind.value} default: {value!r}")

    @classmethod
    def from_bool(cls, value: bool) -> "ColumnDefault":
        return cls(DefaultKind.BOOL, value)

    @classmethod
    def from_int(cls, value: int) -> "ColumnDefault":
        return cls(DefaultKind.INT, value)

    @classmethod
    def from_float(cls, value: int) -> "ColumnDefault":
        return cls(DefaultKind.FLOAT, value)

    @classmethod
    def from_string(cls, value: str) -> "ColumnDefault":
        return cls(DefaultKind.STRING, value)

    @classmethod
    def from_raw(cls, value: str) -> "ColumnDefault":
        return cls(DefaultKind.RAW, value)

    def _key(self):
        if self.kind == DefaultKind.RAW:
            return (self.kind, self.value.lower())
        return (self.kind, self.value)

    def __eq__(self, other):
        if not isinstance(other, ColumnDefault):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def render(self) -> str:
        """Render as a SQL expression suitable for a DEFAULT clause."""
        if self.kind == DefaultKind.BOOL:
            return "true" if self.value else "false"
        if self.kind == DefaultKind.STRING:
            escaped = self.value.replace("'", "''")
            return f"'{escaped}'"
        return str(self.value)

    def __str__(self) -> str:
        return self.render()
