"""
Command-line interface for schemasync.
"""

import asyncio
import sys
from functools import wraps
from pathlib import Path
from typing import List, Tuple

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import (
    ColumnSpec,
    ConnectionConfig,
    PrimaryKeySpec,
    SchemaSyncConfig,
    TableSpec,
    configure_logging,
)
from .database.connection import ConnectionPool
from .exceptions import ConfigurationError, SchemaSyncError
from .schema.structure import DatabaseStructure, SchemaChange


console = Console()


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SchemaSyncError as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(0)
        except Exception as e:
            console.print(f"[red]Unexpected error:[/red] {e}")
            if "--debug" in sys.argv:
                import traceback
                traceback.print_exc()
            sys.exit(1)
    return wrapper


@click.group()
@click.version_option(__version__)
@click.option(
    "--debug", is_flag=True, help="Enable debug mode"
)
@click.pass_context
def main(ctx, debug):
    """schemasync: Declarative table definitions synchronized with PostgreSQL."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="schemasync.yaml",
    help="Output configuration file path",
)
@handle_errors
def init(output: str):
    """Initialize a new schemasync configuration file."""
    if Path(output).exists():
        if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
            return

    config = _create_default_config()
    config.to_yaml(output)
    console.print(f"[green]✓[/green] Configuration file created: {output}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Edit the configuration file with your database and table definitions")
    console.print(f"2. Run: schemasync validate-config -c {output}")
    console.print(f"3. Run: schemasync sync -c {output} --capture")


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@handle_errors
def validate_config(config: str):
    """Validate configuration file."""
    console.print(f"Validating configuration: {config}")

    try:
        sync_config = SchemaSyncConfig.from_yaml(config)
        sync_config.validate_config()

        console.print("[green]✓[/green] Configuration is valid")

        _display_config_summary(sync_config)

    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Configuration error: {e}")
        sys.exit(1)


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@click.option(
    "--table",
    "-t",
    "tables",
    multiple=True,
    help="Only synchronize these tables (repeatable)",
)
@click.option(
    "--explicit",
    is_flag=True,
    help="Drop columns that are not declared",
)
@click.option(
    "--drop",
    is_flag=True,
    help="Drop and recreate existing tables",
)
@click.option(
    "--capture",
    is_flag=True,
    help="Print the statements instead of executing them",
)
@click.pass_context
@handle_errors
def sync(ctx, config: str, tables: Tuple[str, ...], explicit: bool, drop: bool, capture: bool):
    """Synchronize declared tables with the database."""
    sync_config = SchemaSyncConfig.from_yaml(config)
    sync_config.validate_config()
    configure_logging(sync_config.logging, debug=ctx.obj.get("debug", False) or sync_config.debug)

    specs = [sync_config.get_table(name) for name in tables] if tables else sync_config.tables
    if not specs:
        console.print("[yellow]No tables declared[/yellow]")
        return

    if capture:
        console.print("[yellow]Capture mode - no changes will be made[/yellow]")

    structure_config = sync_config.structure.model_copy(
        update={"capture_only": capture or sync_config.structure.capture_only}
    )

    async def run_sync() -> Tuple[List[Tuple[str, List[SchemaChange]]], List[str]]:
        results = []
        async with ConnectionPool(sync_config.database) as pool:
            structure = DatabaseStructure(pool, structure_config)
            for spec in specs:
                structure.reset().define(spec)
                changes = await structure.synchronize(
                    explicit=explicit or spec.explicit,
                    drop=drop or spec.drop,
                )
                results.append((spec.name, changes))
            return results, pool.clear_captured()

    results, captured = asyncio.run(run_sync())
    _display_sync_results(results)

    if captured:
        console.print("\n[bold cyan]Captured statements[/bold cyan]")
        for sql in captured:
            console.print(sql, markup=False, highlight=False)
            console.print()


@main.command()
@click.argument("table")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@click.pass_context
@handle_errors
def inspect(ctx, table: str, config: str):
    """Show the live definition of a table."""
    sync_config = SchemaSyncConfig.from_yaml(config)
    if sync_config.database is None:
        raise ConfigurationError("No database connection configured")
    configure_logging(sync_config.logging, debug=ctx.obj.get("debug", False) or sync_config.debug)

    async def run_inspect():
        async with ConnectionPool(sync_config.database) as pool:
            structure = DatabaseStructure(pool, sync_config.structure)
            structure.table(table)
            if not await structure.table_exists():
                return None
            return await structure.get()

    columns = asyncio.run(run_inspect())
    if columns is None:
        console.print(f"[red]✗[/red] Table {table} not found")
        sys.exit(1)

    result = Table(title=f"Table {sync_config.structure.prefixed(table)}")
    result.add_column("Column", style="cyan")
    result.add_column("Type", style="magenta")
    result.add_column("Null", style="green")
    result.add_column("Default", style="yellow")
    result.add_column("Keys", style="blue")

    for column in columns.values():
        type_string = column.type_string()
        if isinstance(type_string, list):
            type_string = f"enum({', '.join(type_string)})"
        if column.auto_increment:
            type_string += " identity"
        result.add_row(
            column.name,
            type_string,
            "yes" if column.allow_null else "no",
            "" if column.default is None else str(column.default),
            ", ".join(column.key_type),
        )

    console.print(result)


def _create_default_config() -> SchemaSyncConfig:
    """Create a default configuration."""
    return SchemaSyncConfig(
        database=ConnectionConfig(
            host="localhost",
            port=5432,
            database="app",
            user="postgres",
            password="${POSTGRES_PASSWORD}",
        ),
        tables=[
            TableSpec(
                name="Example",
                primary_key=PrimaryKeySpec(name="ExampleID"),
                columns=[
                    ColumnSpec(name="Name", type="varchar(100)", null_default=False, key="unique"),
                    ColumnSpec(name="Status", type=["active", "archived"], null_default="active"),
                    ColumnSpec(name="DateInserted", type="datetime", null_default=False, key="index"),
                ],
            )
        ],
    )


def _display_config_summary(config: SchemaSyncConfig):
    """Display a summary of the configuration."""
    console.print("\n[blue]Configuration Summary[/blue]")

    if config.database:
        console.print(
            f"Database: {config.database.host}:{config.database.port}/{config.database.database}"
        )
    console.print(f"Schema: {config.structure.schema_name}")
    if config.structure.table_prefix:
        console.print(f"Table prefix: {config.structure.table_prefix}")

    table_table = Table(title="Tables")
    table_table.add_column("Table", style="cyan")
    table_table.add_column("Columns", style="magenta")
    table_table.add_column("Primary Key", style="green")
    table_table.add_column("Mode", style="yellow")

    for spec in config.tables:
        mode = "drop" if spec.drop else ("explicit" if spec.explicit else "additive")
        table_table.add_row(
            config.structure.prefixed(spec.name),
            str(spec.column_count),
            spec.primary_key.name if spec.primary_key else "",
            mode,
        )

    console.print(table_table)


def _display_sync_results(results: List[Tuple[str, List[SchemaChange]]]):
    """Display what each table synchronization did."""
    result_table = Table(title="Synchronization")
    result_table.add_column("Table", style="cyan")
    result_table.add_column("Changes", style="magenta")
    result_table.add_column("Status", style="green")

    for name, changes in results:
        if not changes:
            result_table.add_row(name, "-", "up to date")
            continue
        status = "captured" if all(c.captured for c in changes) else "applied"
        result_table.add_row(
            name,
            ", ".join(c.change_type.value for c in changes),
            status,
        )

    console.print(result_table)


if __name__ == "__main__":
    main()
