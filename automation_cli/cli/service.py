"""``service`` commands: local mock services."""

from __future__ import annotations

import typer

from ..service import mercury as mercury_service
from .common import console

app = typer.Typer(help="Run local mock services")


@app.command()
def mercury(
    listen: str = typer.Option(mercury_service.DEFAULT_LISTEN, "--listen", "-l", help="Listen address"),
    port: int = typer.Option(mercury_service.DEFAULT_PORT, "--port", "-p", help="Listen port"),
) -> None:
    """Run a mocked Mercury server that answers every lookup with a fixed report."""
    console.print(f"mock mercury listening on http://{listen}:{port}")
    mercury_service.serve(listen, port)
