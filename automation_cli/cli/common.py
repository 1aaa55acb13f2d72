"""Console, error reporting and async plumbing shared by every command group."""

from __future__ import annotations

import asyncio
import signal
from contextlib import contextmanager, suppress
from typing import Any, Awaitable, Callable, Iterator, Mapping, TypeVar

import typer
from rich.console import Console
from rich.text import Text

from ..errors import AutomationError
from ..util import CancelToken
from ..workflows.context import CommandContext

T = TypeVar("T")

console = Console()
error_console = Console(stderr=True)


def command_context(ctx: typer.Context) -> CommandContext:
    return ctx.find_root().obj


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Turn tool errors into a red message and exit code 1."""

    try:
        yield
    except AutomationError as exc:
        error_console.print(Text(f"error: {exc}", style="bold red"))
        raise typer.Exit(code=1) from exc
    except asyncio.CancelledError as exc:
        error_console.print(Text("cancelled", style="yellow"))
        raise typer.Exit(code=130) from exc


def run(command: CommandContext, workflow: Callable[[CancelToken], Awaitable[T]]) -> T:
    """Run one async workflow; ``Ctrl-C`` sets its cancellation token.

    The token is also bound to ``command`` so the chain gateways it hands out
    stop waiting on the RPC once it is set.
    """

    async def runner() -> T:
        cancel = asyncio.Event()
        command.cancel = cancel
        loop = asyncio.get_running_loop()
        with suppress(NotImplementedError, RuntimeError, ValueError):
            loop.add_signal_handler(signal.SIGINT, cancel.set)
        try:
            return await workflow(cancel)
        finally:
            with suppress(NotImplementedError, RuntimeError, ValueError):
                loop.remove_signal_handler(signal.SIGINT)

    return asyncio.run(runner())


def receipt_summary(receipt: Any) -> str:
    tx_hash = receipt.get("transactionHash") if isinstance(receipt, Mapping) else None
    if tx_hash is None:
        return ""
    text = tx_hash.hex() if isinstance(tx_hash, (bytes, bytearray)) else str(tx_hash)
    if not text.startswith("0x"):
        text = f"0x{text}"
    return f" (tx {text})"


__all__ = ["command_context", "console", "error_console", "receipt_summary", "reporting_errors", "run"]
