"""``key`` commands: the process-wide key vault."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..workflows import keys as workflow
from .common import command_context, console, reporting_errors

app = typer.Typer(help="Manage private keys shared by every environment")


@app.command()
def create(ctx: typer.Context, name: str) -> None:
    """Generate a new private key under NAME."""
    with reporting_errors():
        key = workflow.create_key(command_context(ctx), name)
    console.print(f"created [bold]{key.alias}[/] {key.address}")


@app.command()
def store(
    ctx: typer.Context,
    name: str,
    stdin: bool = typer.Option(False, "--stdin", help="Read the hex private key from stdin"),
) -> None:
    """Store an existing hex private key under NAME."""
    if stdin:
        value = sys.stdin.readline().strip()
    else:
        value = typer.prompt("Private key (hex)", hide_input=True)
    with reporting_errors():
        key = workflow.store_key(command_context(ctx), name, value)
    console.print(f"stored [bold]{key.alias}[/] {key.address}")


@app.command("list")
def list_keys(ctx: typer.Context) -> None:
    """List key aliases and their addresses."""
    with reporting_errors():
        keys = workflow.list_keys(command_context(ctx))
    table = Table(title="Keys")
    table.add_column("Alias", style="bold")
    table.add_column("Address")
    for key in keys:
        table.add_row(key.alias, key.address)
    console.print(table)


@app.command()
def delete(ctx: typer.Context, name: str) -> None:
    """Delete NAME, or the first alias starting with the prefix in ``NAME*``."""
    with reporting_errors():
        removed = workflow.delete_key(command_context(ctx), name)
    console.print(f"deleted [bold]{removed.alias}[/]")


@app.command("import-ganache")
def import_ganache(ctx: typer.Context, path: Path) -> None:
    """Import the accounts from a ganache ``--account_keys_path`` file."""
    with reporting_errors():
        imported = workflow.import_ganache(command_context(ctx), path)
    for key in imported:
        console.print(f"imported [bold]{key.alias}[/] {key.address}")


@app.command("import-geth")
def import_geth(
    ctx: typer.Context,
    name: str,
    path: Path,
    password: Optional[Path] = typer.Option(None, "--password", help="File holding the keystore password"),
) -> None:
    """Decrypt a geth keystore file, or every file in a keystore directory."""
    with reporting_errors():
        imported = workflow.import_geth(command_context(ctx), name, path, password)
    for key in imported:
        console.print(f"imported [bold]{key.alias}[/] {key.address}")
