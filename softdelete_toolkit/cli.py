#!/usr/bin/env python3
"""
Command-line interface for the soft-delete toolkit.

Provides inspection tools for soft-delete models and configuration.
"""

import importlib
import sys
from typing import Any

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import get_config
from .soft_delete.fields import SoftDeleteField, parse_zero_value
from .soft_delete.types import DeletedAtType
from .statement.exceptions import UnsupportedValueError
from .statement.schema import Schema

console = Console()


def _import_model(path: str) -> Any:
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise click.BadParameter("expected MODULE:CLASS", param_hint="MODEL")
    module = importlib.import_module(module_name)
    return getattr(module, attr)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Soft Delete Toolkit - timestamp-based soft delete for SQLAlchemy."""
    if ctx.invoked_subcommand is None:
        console.print(
            Panel.fit(
                f"[bold blue]Soft Delete Toolkit[/bold blue] v{__version__}\n"
                "[dim]Timestamp-based soft delete for SQLAlchemy[/dim]\n\n"
                "Use [bold]softdelete --help[/bold] to see available commands.",
                border_style="blue",
            )
        )


@cli.command("inspect")
@click.argument("model")
def inspect_model(model: str) -> None:
    """Show the soft-delete settings of MODEL (module:Class)."""
    try:
        schema = Schema.parse(_import_model(model))
    except (ImportError, AttributeError, UnsupportedValueError) as e:
        console.print(f"[red]Cannot load {model}: {escape(str(e))}[/red]")
        sys.exit(1)

    fields = [f for f in schema.fields if isinstance(f.type, DeletedAtType)]
    if not fields:
        console.print(f"[yellow]{schema.name} has no DeletedAt column[/yellow]")
        sys.exit(1)

    table = Table(title=f"{schema.name} ({schema.table.name})", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Column", style="green")
    table.add_column("Not deleted when")
    table.add_column("Actor column")

    for schema_field in fields:
        settings = SoftDeleteField.from_field(schema_field)
        sentinel = (
            f"= {settings.zero_value!r}"
            if settings.zero_value is not None
            else "IS NULL"
        )
        actor = settings.actor_field.db_name if settings.actor_field else "-"
        table.add_row(schema_field.name, settings.db_name, sentinel, actor)

    console.print(table)
    console.print(f"Primary key: {', '.join(schema.primary_field_db_names) or '-'}")


@cli.command("zero-value")
@click.argument("literal")
def zero_value(literal: str) -> None:
    """Show how LITERAL resolves as a zero_value tag."""
    resolved = parse_zero_value({"zero_value": literal})
    if resolved is None:
        console.print(f"[yellow]{literal!r} is not a date; falls back to NULL[/yellow]")
    else:
        console.print(f"[green]Sentinel: {resolved}[/green]")


@cli.group()
def config() -> None:
    """Inspect toolkit configuration."""
    pass


@config.command("show")
@click.option("--format", type=click.Choice(["table", "json", "yaml"]), default="table")
def config_show(format: str) -> None:
    """Display current configuration."""
    try:
        config_dict = get_config().to_dict()
    except ValueError as e:
        console.print(f"[red]Error loading configuration: {escape(str(e))}[/red]")
        sys.exit(1)

    if format == "json":
        console.print_json(data=config_dict)
    elif format == "yaml":
        console.print(yaml.dump(config_dict, default_flow_style=False))
    else:
        table = Table(title="Soft Delete Configuration", show_header=True)
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")
        for key, value in config_dict.items():
            if isinstance(value, bool):
                value = "✓" if value else "✗"
            table.add_row(key, str(value))
        console.print(table)


if __name__ == "__main__":
    cli()
