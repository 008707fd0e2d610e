"""
Unit tests for SQL rendering of column and table definitions.
"""

from pgreconcile.schema.emitter import render_column, render_create_table
from pgreconcile.schema.model import Column, Table
from pgreconcile.schema.types import ColumnDefault, ColumnKind, ColumnType


class TestRenderColumn:
    """Test column definitions."""

    def test_not_null_column(self):
        column = Column(name="name", type=ColumnType.text())
        assert render_column(column) == "name character varying NOT NULL"

    def test_nullable_column_has_no_null_clause(self):
        column = Column(name="description", type=ColumnType.text(256), nullable=True)
        assert render_column(column) == "description character varying(256)"

    def test_clause_order(self):
        column = Column(
            name="owner_id",
            type=ColumnType(ColumnKind.INTEGER),
            default=ColumnDefault.from_int(1),
            constraint="owner_id > 0",
            primary_key=True,
            references=("account", "id"),
        )

        assert render_column(column) == (
            "owner_id integer NOT NULL DEFAULT 1 CHECK (owner_id > 0) "
            "PRIMARY KEY REFERENCES account(id)"
        )

    def test_string_default_is_quoted(self):
        column = Column(
            name="status",
            type=ColumnType.text(),
            default=ColumnDefault.from_string("new"),
        )
        assert render_column(column) == "status character varying NOT NULL DEFAULT 'new'"


class TestRenderCreateTable:
    """Test CREATE TABLE statements."""

    def test_product_table(self, product_table):
        assert render_create_table(product_table) == (
            "CREATE TABLE IF NOT EXISTS product (\n"
            "  id uuid NOT NULL DEFAULT uuid_generate_v4() PRIMARY KEY,\n"
            "  name character varying NOT NULL,\n"
            "  price bigint NOT NULL DEFAULT 0,\n"
            "  description character varying(256)\n"
            ");"
        )

    def test_single_column_table(self):
        table = Table(name="tag", columns=[Column(name="label", type=ColumnType.text(32))])

        assert render_create_table(table) == (
            "CREATE TABLE IF NOT EXISTS tag (\n"
            "  label character varying(32) NOT NULL\n"
            ");"
        )
