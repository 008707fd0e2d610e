"""
SQL rendering for column and table definitions.
"""

from .model import Column, Table


def render_column(column: Column) -> str:
    """Render a column definition as used by CREATE TABLE and ADD COLUMN.

    Clause order is fixed: type, NOT NULL, DEFAULT, CHECK, PRIMARY KEY,
    REFERENCES. Clauses that do not apply are omitted.
    """
    parts = [column.name, column.type.render()]

    if not column.nullable:
        parts.append("NOT NULL")
    if column.default is not None:
        parts.append(f"DEFAULT {column.default.render()}")
    if column.constraint:
        parts.append(f"CHECK ({column.constraint})")
    if column.primary_key:
        parts.append("PRIMARY KEY")
    if column.references is not None:
        ref_table, ref_column = column.references
        parts.append(f"REFERENCES {ref_table}({ref_column})")

    return " ".join(parts)


def render_create_table(table: Table) -> str:
    """Render a CREATE TABLE IF NOT EXISTS statement, one column per line."""
    column_lines = ",\n".join(f"  {render_column(column)}" for column in table.columns)
    return f"CREATE TABLE IF NOT EXISTS {table.name} (\n{column_lines}\n);"
