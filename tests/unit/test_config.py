"""
Unit tests for configuration loading.
"""

import os
import tempfile
from unittest.mock import patch

import pytest
import yaml
from pydantic import ValidationError as PydanticValidationError

from pgreconcile.config import (
    ColumnConfig,
    ReconcileConfig,
    TableConfig,
    parse_reference,
)
from pgreconcile.exceptions import ConfigurationError
from pgreconcile.schema.differ import diff
from pgreconcile.schema.types import ColumnDefault, DefaultKind


def _write_yaml(content: str) -> str:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        f.write(content)
        return f.name


class TestParseReference:
    """Test foreign key reference syntax."""

    @pytest.mark.parametrize("value", ["product.id", "product(id)", " product ( id ) "])
    def test_valid(self, value):
        assert parse_reference(value) == ("product", "id")

    @pytest.mark.parametrize("value", ["product", "product.", "a.b.c", "(id)"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_reference(value)


class TestColumnConfig:
    """Test cases for ColumnConfig."""

    def test_to_column(self):
        column = ColumnConfig(
            name="product_id", type="uuid", references="product(id)", unique=True
        ).to_column()

        assert column.references == ("product", "id")
        assert column.unique
        assert not column.nullable

    @pytest.mark.parametrize("value,kind", [
        (True, DefaultKind.BOOL),
        (0, DefaultKind.INT),
        (-3, DefaultKind.FLOAT),
        ("new", DefaultKind.STRING),
    ])
    def test_literal_defaults(self, value, kind):
        column = ColumnConfig(name="c", type="bigint", default=value)
        assert column.column_default().kind == kind

    def test_default_expr(self):
        column = ColumnConfig(name="created_at", type="timestamptz", default_expr="NOW()")
        assert column.column_default() == ColumnDefault.from_raw("now()")

    def test_both_defaults_rejected(self):
        with pytest.raises(PydanticValidationError, match="both 'default' and 'default_expr'"):
            ColumnConfig(name="c", type="bigint", default=1, default_expr="1")

    def test_unsupported_type(self):
        with pytest.raises(PydanticValidationError, match="Unsupported column type"):
            ColumnConfig(name="c", type="jsonb")

    def test_default_out_of_range(self):
        with pytest.raises(PydanticValidationError):
            ColumnConfig(name="c", type="bigint", default=2 ** 64)

    def test_invalid_reference(self):
        with pytest.raises(PydanticValidationError, match="Invalid reference"):
            ColumnConfig(name="c", type="uuid", references="product")


class TestTableConfig:
    """Test cases for TableConfig."""

    def test_duplicate_columns(self):
        with pytest.raises(PydanticValidationError, match="duplicate columns: sku"):
            TableConfig(
                name="product",
                columns=[
                    ColumnConfig(name="sku", type="varchar"),
                    ColumnConfig(name="sku", type="varchar(10)"),
                ],
            )

    def test_default_columns_prepended(self):
        table = TableConfig(
            name="product",
            default_columns=True,
            columns=[ColumnConfig(name="sku", type="varchar")],
        ).to_table()

        assert table.column_names == ["id", "created_at", "updated_at", "sku"]

    def test_default_columns_clash(self):
        with pytest.raises(PydanticValidationError, match="duplicate columns: id"):
            TableConfig(
                name="product",
                default_columns=True,
                columns=[ColumnConfig(name="id", type="bigint")],
            )


class TestReconcileConfig:
    """Test cases for ReconcileConfig."""

    def test_from_yaml(self, temp_config_file, product_table):
        config = ReconcileConfig.from_yaml(temp_config_file)

        assert config.namespace == "public"
        assert config.execution.atomic is True
        assert config.execution.allow_destructive is False
        assert [t.name for t in config.tables] == ["product", "variant"]

        tables = config.declared_tables()
        assert tables[0] == product_table
        assert diff(tables[0], None) == diff(product_table, None)

    def test_from_yaml_expands_env_vars(self):
        path = _write_yaml("database_url: ${TEST_PGRECONCILE_URL}\ntables: []\n")
        try:
            with patch.dict(os.environ, {"TEST_PGRECONCILE_URL": "postgresql://h/db"}):
                config = ReconcileConfig.from_yaml(path)
        finally:
            os.unlink(path)

        assert config.database_url == "postgresql://h/db"

    def test_from_yaml_empty_file(self):
        path = _write_yaml("")
        try:
            config = ReconcileConfig.from_yaml(path)
        finally:
            os.unlink(path)

        assert config.tables == []

    def test_from_yaml_missing_file(self):
        with pytest.raises(ConfigurationError, match="not found"):
            ReconcileConfig.from_yaml("/nonexistent/pgreconcile.yaml")

    def test_from_yaml_invalid_yaml(self):
        path = _write_yaml("tables: [unclosed\n")
        try:
            with pytest.raises(ConfigurationError, match="Invalid YAML"):
                ReconcileConfig.from_yaml(path)
        finally:
            os.unlink(path)

    def test_from_yaml_invalid_config(self):
        path = _write_yaml("tables:\n  - name: t\n    columns:\n      - name: c\n        type: jsonb\n")
        try:
            with pytest.raises(ConfigurationError, match="Invalid configuration"):
                ReconcileConfig.from_yaml(path)
        finally:
            os.unlink(path)

    def test_env_prefix(self):
        with patch.dict(os.environ, {"PGRECONCILE_NAMESPACE": "inventory"}):
            config = ReconcileConfig()

        assert config.namespace == "inventory"

    def test_get_table(self, temp_config_file):
        config = ReconcileConfig.from_yaml(temp_config_file)

        assert config.get_table("variant").name == "variant"
        with pytest.raises(ConfigurationError):
            config.get_table("order")

    def test_validate_duplicate_tables(self):
        table = TableConfig(name="product", columns=[ColumnConfig(name="sku", type="varchar")])
        config = ReconcileConfig(tables=[table, table])

        with pytest.raises(ConfigurationError, match="declared more than once"):
            config.validate_config()

    def test_validate_unknown_reference_column(self):
        config = ReconcileConfig(tables=[
            TableConfig(name="product", columns=[ColumnConfig(name="sku", type="varchar")]),
            TableConfig(
                name="variant",
                columns=[ColumnConfig(name="product_id", type="uuid", references="product.id")],
            ),
        ])

        with pytest.raises(ConfigurationError, match="unknown column product.id"):
            config.validate_config()

    def test_validate_reference_to_undeclared_table(self):
        config = ReconcileConfig(tables=[
            TableConfig(
                name="variant",
                columns=[ColumnConfig(name="account_id", type="uuid", references="account.id")],
            ),
        ])

        config.validate_config()

    def test_connection_config(self, temp_config_file):
        config = ReconcileConfig.from_yaml(temp_config_file)

        connection = config.connection_config()
        assert connection.database == "shop"
        assert connection.max_size == 10

        override = config.connection_config("postgresql://other/inventory")
        assert override.database == "inventory"

    def test_connection_config_missing_url(self):
        config = ReconcileConfig(database_url=None)

        with pytest.raises(ConfigurationError, match="No database URL"):
            config.connection_config()

    def test_to_yaml(self, temp_config_file):
        config = ReconcileConfig.from_yaml(temp_config_file)
        path = _write_yaml("")
        try:
            config.to_yaml(path)
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
            reloaded = ReconcileConfig.from_yaml(path)
        finally:
            os.unlink(path)

        assert data["tables"][1]["columns"][1]["references"] == "product.id"
        assert reloaded.declared_tables() == config.declared_tables()
