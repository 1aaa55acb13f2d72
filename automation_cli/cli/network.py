"""``network`` commands: bootstrap, participants, funding and listing."""

from __future__ import annotations

from typing import Optional

import typer
from rich.table import Table

from ..node.orchestrator import management_url
from ..util import parse_exp
from ..workflows import network as workflow
from .common import command_context, console, receipt_summary, reporting_errors, run

app = typer.Typer(help="Bring up and manage the node roster")
bootstrap_app = typer.Typer(help="The bootstrap node")
participant_app = typer.Typer(help="Participant nodes")

app.add_typer(bootstrap_app, name="bootstrap")
app.add_typer(participant_app, name="participant")

LOG_LEVEL_OPTION = typer.Option(workflow.DEFAULT_NODE_LOG_LEVEL, "--log-level", help="Node log level")


@bootstrap_app.command("set")
def set_bootstrap(
    ctx: typer.Context,
    image: str,
    log_level: str = LOG_LEVEL_OPTION,
    reset: bool = typer.Option(False, "--reset", help="Recreate the containers from scratch"),
) -> None:
    """Bring up the bootstrap node with IMAGE."""
    command = command_context(ctx)
    with reporting_errors():
        node = run(
            command,
            lambda cancel: workflow.set_bootstrap(command, image, log_level=log_level, reset=reset, cancel=cancel),
        )
    console.print(f"bootstrap ready at [bold]{node.bootstrap_address}[/]")


@participant_app.command("add")
def add_participant(
    ctx: typer.Context,
    image: str,
    count: int = typer.Option(1, "--count", min=1, help="Participants to add"),
    log_level: str = LOG_LEVEL_OPTION,
    key: Optional[str] = typer.Option(None, "--key", help="Vault alias to import as the sending key"),
    mercury_legacy_url: Optional[str] = typer.Option(None, "--mercury-legacy-url"),
    mercury_url: Optional[str] = typer.Option(None, "--mercury-url"),
    mercury_id: Optional[str] = typer.Option(None, "--mercury-id"),
    mercury_key: Optional[str] = typer.Option(None, "--mercury-key"),
) -> None:
    """Add COUNT participants running IMAGE."""
    command = command_context(ctx)
    with reporting_errors():
        nodes = run(
            command,
            lambda cancel: workflow.add_participants(
                command,
                image,
                count=count,
                log_level=log_level,
                key_alias=key,
                mercury_legacy_url=mercury_legacy_url,
                mercury_url=mercury_url,
                mercury_id=mercury_id,
                mercury_key=mercury_key,
                cancel=cancel,
            )
        )
    for node in nodes:
        console.print(f"[bold]{node.name}[/] ready at {node.management_url} with address {node.address}")


@participant_app.command("reset")
def reset_participant(
    ctx: typer.Context,
    ident: str = typer.Argument(..., help="Participant index or name"),
    image: str = typer.Argument(...),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Node log level"),
    key: Optional[str] = typer.Option(None, "--key", help="Vault alias to import as the sending key"),
) -> None:
    """Recreate one participant in place."""
    command = command_context(ctx)
    with reporting_errors():
        node = run(
            command,
            lambda cancel: workflow.reset_participant(
                command, ident, image, log_level=log_level, key_alias=key, cancel=cancel
            )
        )
    console.print(f"[bold]{node.name}[/] reset with address {node.address}")


@participant_app.command("remove")
def remove_participant(
    ctx: typer.Context,
    remove_all: bool = typer.Option(False, "--all", help="Remove every participant and the bootstrap"),
) -> None:
    """Remove the most recently added participant."""
    command = command_context(ctx)
    with reporting_errors():
        removed = run(command, lambda _cancel: workflow.remove_participants(command, remove_all=remove_all))
    console.print(f"removed {', '.join(removed) or 'nothing'}")


@app.command()
def fund(ctx: typer.Context, ident: str, amount: str) -> None:
    """Send AMOUNT of native currency to a node's sending address."""
    command = command_context(ctx)
    with reporting_errors():
        value = parse_exp(amount)
        receipt = run(command, lambda _cancel: workflow.fund_node(command, ident, value))
    console.print(f"funded {ident} with {value}{receipt_summary(receipt)}")


@app.command("list")
def list_nodes(ctx: typer.Context) -> None:
    """List the bootstrap and participant nodes."""
    command = command_context(ctx)
    with reporting_errors():
        nodes = workflow.list_nodes(command)
        group = command.load().group_name or command.environment_name
    table = Table(title="Nodes")
    table.add_column("Container", style="bold")
    table.add_column("URL")
    table.add_column("Address")
    for node in nodes:
        table.add_row(f"{group}-{node.name}", node.management_url or management_url(node), node.address or "-")
    console.print(table)
