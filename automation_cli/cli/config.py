"""``config`` commands: set up, inspect and delete the environment record."""

from __future__ import annotations

import json
import sys

import typer

from ..errors import ReadConfigError
from ..state.models import DEFAULT_CHAIN_ID, DEFAULT_KEY_ALIAS
from ..workflows import config as workflow
from .common import command_context, console, reporting_errors

app = typer.Typer(help="Create, inspect and delete the environment record")


def _read_setup_json() -> dict:
    text = sys.stdin.read()
    try:
        payload = json.loads(text or "{}")
    except json.JSONDecodeError as exc:
        raise ReadConfigError(f"setup input is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ReadConfigError("setup input must be a JSON object")
    try:
        chain_id = int(payload.get("chain_id") or 0)
    except (TypeError, ValueError) as exc:
        raise ReadConfigError(f"chain_id must be an integer, got {payload.get('chain_id')!r}") from exc
    return {
        "chain_id": chain_id or None,
        "private_key_alias": str(payload.get("private_key_alias") or ""),
        "http_url": str(payload.get("http_rpc") or ""),
        "ws_url": str(payload.get("ws_rpc") or ""),
    }


@app.command()
def setup(
    ctx: typer.Context,
    json_input: bool = typer.Option(
        False, "--json", help="Read {chain_id, private_key_alias, http_rpc, ws_rpc} from stdin"
    ),
) -> None:
    """Write the environment header (chain id, key alias and RPC endpoints)."""
    with reporting_errors():
        if json_input:
            values = _read_setup_json()
        else:
            values = {
                "chain_id": typer.prompt("Chain ID", default=DEFAULT_CHAIN_ID, type=int),
                "private_key_alias": typer.prompt("Private key alias", default=DEFAULT_KEY_ALIAS),
                "http_url": typer.prompt("HTTP RPC URL", default="", show_default=False),
                "ws_url": typer.prompt("WS RPC URL", default="", show_default=False),
            }
        command = command_context(ctx)
        environment = workflow.setup(command, **values)
    console.print(
        f"environment [bold]{command.environment_name}[/] configured for chain {environment.chain_id}"
    )


@app.command()
def delete(ctx: typer.Context) -> None:
    """Delete the environment directory and everything in it."""
    command = command_context(ctx)
    with reporting_errors():
        workflow.delete(command)
    console.print(f"environment [bold]{command.environment_name}[/] deleted")


@app.command("set")
def set_value(ctx: typer.Context, key: str, value: str) -> None:
    """Set one value by dotted key, e.g. ``registry.ocrnetwork.maxfaultynodes``."""
    with reporting_errors():
        stored = workflow.set_value(command_context(ctx), key, value)
    typer.echo(workflow.render(stored))


@app.command("get")
def get_value(ctx: typer.Context, key: str) -> None:
    """Print one value by dotted key."""
    with reporting_errors():
        value = workflow.get_value(command_context(ctx), key)
    typer.echo(workflow.render(value))
