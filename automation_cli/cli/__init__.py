"""Typer entry point for automation-cli."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import typer

from ..logging_utils import configure_logging
from ..state.store import DEFAULT_STATE_DIRECTORY, StateStore
from ..workflows.context import DEFAULT_ENVIRONMENT, CommandContext
from . import config, contracts, keys, network, service

app = typer.Typer(help="Provision an automation oracle network on an EVM chain", no_args_is_help=True)
app.add_typer(config.app, name="config")
app.add_typer(keys.app, name="key")
app.add_typer(contracts.app, name="contract")
app.add_typer(network.app, name="network")
app.add_typer(service.app, name="service")


class LogFormat(str, Enum):
    RICH = "rich"
    JSON = "json"


@app.callback()
def root(
    ctx: typer.Context,
    state_directory: Path = typer.Option(
        Path(DEFAULT_STATE_DIRECTORY), "--state-directory", help="Where keys and environments are stored"
    ),
    environment: str = typer.Option(DEFAULT_ENVIRONMENT, "--environment", help="Environment name"),
    key: str = typer.Option("", "--key", help="Private key alias overriding the environment default"),
    log_level: str = typer.Option("WARNING", "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
    log_format: LogFormat = typer.Option(LogFormat.RICH, "--log-format", help="rich or json"),
) -> None:
    configure_logging(log_level, json_output=log_format is LogFormat.JSON)
    ctx.obj = CommandContext(store=StateStore(state_directory), environment_name=environment, key_override=key)


def main() -> None:
    app()


__all__ = ["app", "main"]
