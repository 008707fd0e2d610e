"""
Command-line interface for pgreconcile.
"""

import asyncio
import logging
import sys
from functools import wraps
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import ColumnConfig, LoggingConfig, ReconcileConfig, TableConfig
from .exceptions import ConfigurationError, ReconcileError


console = Console()
err_console = Console(stderr=True)


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ReconcileError as e:
            err_console.print(f"[red]Error:[/red] {escape(str(e))}")
            sys.exit(1)
        except KeyboardInterrupt:
            err_console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(130)
    return wrapper


def configure_logging(config: LoggingConfig, debug: bool = False) -> None:
    """Configure the root logger from the logging section of the configuration."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    level = logging.DEBUG if debug else getattr(logging, config.level)
    root.setLevel(level)

    console_handler = RichHandler(console=err_console, show_path=False)
    console_handler.setLevel(level)
    root.addHandler(console_handler)

    if config.file:
        file_handler = RotatingFileHandler(
            config.file,
            maxBytes=config.max_size,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(config.format))
        file_handler.setLevel(level)
        root.addHandler(file_handler)


def _load_config(ctx: click.Context, path: str) -> ReconcileConfig:
    config = ReconcileConfig.from_yaml(path)
    config.validate_config()
    configure_logging(config.logging, debug=ctx.obj.get("debug", False))
    return config


config_option = click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Configuration file path",
)
database_url_option = click.option(
    "--database-url",
    envvar="DATABASE_URL",
    help="PostgreSQL connection string (overrides the configuration file)",
)
namespace_option = click.option(
    "--namespace",
    "-n",
    help="Database schema holding the tables (overrides the configuration file)",
)


@click.group()
@click.version_option(__version__)
@click.option(
    "--debug", is_flag=True, help="Enable debug logging"
)
@click.pass_context
def main(ctx, debug):
    """pgreconcile: declarative PostgreSQL schema reconciliation."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="pgreconcile.yaml",
    help="Output configuration file path",
)
@handle_errors
def init(output: str):
    """Write an example configuration file."""
    if Path(output).exists():
        if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
            return

    _create_default_config().to_yaml(output)
    console.print(f"[green]✓[/green] Configuration file created: {output}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Declare your tables in the configuration file")
    console.print("2. Set DATABASE_URL or database_url")
    console.print(f"3. Run: pgreconcile plan -c {output}")


@main.command()
@config_option
@click.pass_context
@handle_errors
def validate_config(ctx, config: str):
    """Validate configuration file."""
    console.print(f"Validating configuration: {config}")

    try:
        reconcile_config = _load_config(ctx, config)
        reconcile_config.declared_tables()
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Configuration error: {escape(str(e))}")
        sys.exit(1)

    console.print("[green]✓[/green] Configuration is valid")
    _display_config_summary(reconcile_config)


@main.command()
@config_option
@click.pass_context
@handle_errors
def compile(ctx, config: str):
    """Print CREATE TABLE statements for every declared table."""
    from .schema.differ import compile_database

    reconcile_config = _load_config(ctx, config)
    click.echo(compile_database(reconcile_config.declared_tables()))


@main.command()
@config_option
@database_url_option
@namespace_option
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    help="Write the SQL to a file instead of stdout",
)
@click.pass_context
@handle_errors
def plan(ctx, config: str, database_url: Optional[str], namespace: Optional[str], output: Optional[str]):
    """Show the DDL needed to reconcile the database."""
    reconcile_config = _load_config(ctx, config)

    async def run_plan():
        from .database.connection import ConnectionPool
        from .schema.reconciler import SchemaReconciler

        async with ConnectionPool(reconcile_config.connection_config(database_url)) as pool:
            reconciler = SchemaReconciler(pool, namespace or reconcile_config.namespace)
            return await reconciler.plan(reconcile_config.declared_tables())

    schema_plan = asyncio.run(run_plan())

    if output:
        Path(output).write_text(schema_plan.sql + "\n" if schema_plan.sql else "", encoding="utf-8")
        console.print(f"[green]✓[/green] Wrote {len(schema_plan.statements)} statement(s) to {output}")
    elif schema_plan.is_empty:
        err_console.print("[green]✓[/green] Database is up to date")
    else:
        click.echo(schema_plan.sql)

    for change in schema_plan.destructive_changes:
        err_console.print(f"[yellow]Destructive:[/yellow] {change.sql}")


@main.command()
@config_option
@database_url_option
@namespace_option
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be done without making changes",
)
@click.option(
    "--atomic",
    is_flag=True,
    help="Apply all statements in a single transaction",
)
@click.option(
    "--allow-destructive",
    is_flag=True,
    help="Allow column drops, type changes and constraint drops",
)
@click.pass_context
@handle_errors
def apply(
    ctx,
    config: str,
    database_url: Optional[str],
    namespace: Optional[str],
    dry_run: bool,
    atomic: bool,
    allow_destructive: bool,
):
    """Reconcile the database schema with the declared tables."""
    reconcile_config = _load_config(ctx, config)
    dry_run = dry_run or reconcile_config.dry_run
    atomic = atomic or reconcile_config.execution.atomic
    allow_destructive = allow_destructive or reconcile_config.execution.allow_destructive

    if dry_run:
        err_console.print("[yellow]Dry run mode - no changes will be made[/yellow]")

    async def run_apply():
        from .database.connection import ConnectionPool
        from .schema.reconciler import SchemaReconciler

        async with ConnectionPool(reconcile_config.connection_config(database_url)) as pool:
            reconciler = SchemaReconciler(pool, namespace or reconcile_config.namespace)
            return await reconciler.reconcile(
                reconcile_config.declared_tables(),
                dry_run=dry_run,
                atomic=atomic,
                allow_destructive=allow_destructive,
            )

    result = asyncio.run(run_apply())

    if result.plan.is_empty:
        console.print("[green]✓[/green] Database is up to date")
        return

    if dry_run:
        click.echo(result.plan.sql)
        return

    console.print(
        f"[green]✓[/green] Executed {result.statements_executed} statement(s), "
        f"{result.rows_affected} row(s) affected"
    )


def _create_default_config() -> ReconcileConfig:
    """Create an example configuration."""
    product = TableConfig(
        name="product",
        columns=[
            ColumnConfig(
                name="id", type="uuid", default_expr="uuid_generate_v4()", primary_key=True
            ),
            ColumnConfig(name="name", type="varchar"),
            ColumnConfig(name="price", type="bigint", default=0),
            ColumnConfig(name="description", type="varchar(256)", nullable=True),
        ],
    )
    variant = TableConfig(
        name="variant",
        columns=[
            ColumnConfig(
                name="id", type="uuid", default_expr="uuid_generate_v4()", primary_key=True
            ),
            ColumnConfig(name="product_id", type="uuid", references="product.id"),
            ColumnConfig(name="name", type="varchar"),
            ColumnConfig(name="price", type="bigint"),
        ],
    )

    return ReconcileConfig(
        database_url="${DATABASE_URL}",
        tables=[product, variant],
    )


def _display_config_summary(config: ReconcileConfig):
    """Display a summary of the configuration."""
    console.print("\n[blue]Configuration Summary[/blue]")
    console.print(f"  Namespace: {config.namespace}")

    table_table = Table(title="Declared Tables")
    table_table.add_column("Table", style="cyan")
    table_table.add_column("Columns", style="magenta")
    table_table.add_column("Primary Key", style="green")
    table_table.add_column("References", style="yellow")

    for table in config.declared_tables():
        primary = [c.name for c in table.columns if c.primary_key]
        references = [
            f"{c.name} → {c.references[0]}({c.references[1]})"
            for c in table.columns if c.references
        ]
        table_table.add_row(
            table.name,
            str(len(table.columns)),
            ", ".join(primary) or "-",
            ", ".join(references) or "-",
        )

    console.print(table_table)


if __name__ == "__main__":
    main()
