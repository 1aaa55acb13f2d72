"""``contract`` commands: LINK, feeds, registry, registrar and verifiable load."""

from __future__ import annotations

from typing import Optional

import typer
from rich.table import Table

from ..contracts.load import PERCENTILES, DelayStats
from ..state.models import LoadType, RegistryMode
from ..util import parse_exp
from ..workflows import contracts as workflow
from .common import command_context, console, receipt_summary, reporting_errors, run

app = typer.Typer(help="Deploy and drive the on-chain contracts")
link_app = typer.Typer(help="LINK token and price feeds")
registry_app = typer.Typer(help="Automation registry")
registrar_app = typer.Typer(help="Automation registrar")
load_app = typer.Typer(help="Verifiable-load test contracts")

app.add_typer(link_app, name="link")
app.add_typer(registry_app, name="registry")
app.add_typer(registrar_app, name="registrar")
app.add_typer(load_app, name="verifiable-load")

TYPE_OPTION = typer.Option(LoadType.CONDITIONAL, "--type", help="conditional or log-trigger")


def _mode(value: Optional[str]) -> Optional[RegistryMode]:
    if value is None:
        return None
    name = value.strip().upper()
    if name not in RegistryMode.__members__:
        raise typer.BadParameter(f"expected one of {', '.join(RegistryMode.__members__)}", param_hint="--mode")
    return RegistryMode[name]


# LINK ---------------------------------------------------------------------------


@link_app.command("deploy-token")
def deploy_token(ctx: typer.Context) -> None:
    """Deploy a mock LINK token owned by the signing key."""
    command = command_context(ctx)
    with reporting_errors():
        address = run(command, lambda _cancel: workflow.deploy_link_token(command))
    console.print(f"LINK token deployed at [bold]{address}[/]")


@link_app.command()
def mint(ctx: typer.Context, amount: str) -> None:
    """Mint AMOUNT (e.g. ``1000e18``) to the signing key."""
    command = command_context(ctx)
    with reporting_errors():
        value = parse_exp(amount)
        run(command, lambda _cancel: workflow.mint_link(command, value))
    console.print(f"minted {value} LINK juels")


@link_app.command()
def send(ctx: typer.Context, to: str, amount: str) -> None:
    """Transfer AMOUNT of LINK to address TO."""
    command = command_context(ctx)
    with reporting_errors():
        value = parse_exp(amount)
        run(command, lambda _cancel: workflow.send_link(command, to, value))
    console.print(f"sent {value} LINK juels to {to}")


@link_app.command()
def balance(ctx: typer.Context, address: Optional[str] = typer.Argument(None)) -> None:
    """Print the LINK balance of ADDRESS, or of the signing key."""
    command = command_context(ctx)
    with reporting_errors():
        holder, amount = run(command, lambda _cancel: workflow.link_balance(command, address))
    console.print(f"{holder}: {amount}")


@link_app.command("set-token-address")
def set_token_address(ctx: typer.Context, address: str) -> None:
    """Adopt an existing LINK token."""
    with reporting_errors():
        stored = workflow.set_link_token(command_context(ctx), address)
    console.print(f"LINK token set to [bold]{stored}[/]")


@link_app.command("deploy-feed")
def deploy_feed(
    ctx: typer.Context,
    feed: str = typer.Argument(..., help="link-eth or fast-gas"),
    answer: str = typer.Option("2e18", "--answer", help="Answer the mock feed reports"),
) -> None:
    """Deploy a mock price feed."""
    command = command_context(ctx)
    with reporting_errors():
        value = parse_exp(answer)
        address = run(command, lambda _cancel: workflow.deploy_feed(command, feed, value))
    console.print(f"{feed} feed deployed at [bold]{address}[/]")


@link_app.command("set-link-eth-feed-address")
def set_link_eth_feed(ctx: typer.Context, address: str) -> None:
    """Adopt an existing LINK/ETH feed."""
    with reporting_errors():
        stored = workflow.set_feed(command_context(ctx), "link-eth", address)
    console.print(f"link-eth feed set to [bold]{stored}[/]")


@link_app.command("set-fast-gas-feed-address")
def set_fast_gas_feed(ctx: typer.Context, address: str) -> None:
    """Adopt an existing fast-gas feed."""
    with reporting_errors():
        stored = workflow.set_feed(command_context(ctx), "fast-gas", address)
    console.print(f"fast-gas feed set to [bold]{stored}[/]")


# Registry -----------------------------------------------------------------------


@registry_app.command("deploy")
def deploy_registry(
    ctx: typer.Context,
    mode: Optional[str] = typer.Option(None, "--mode", help="DEFAULT, ARBITRUM or OPTIMISM"),
) -> None:
    """Deploy the registry logic contracts and the registry itself."""
    command = command_context(ctx)
    registry_mode = _mode(mode)
    with reporting_errors():
        address = run(command, lambda _cancel: workflow.deploy_registry(command, registry_mode))
    console.print(f"registry deployed at [bold]{address}[/]")


@registry_app.command("set-address")
def set_registry_address(
    ctx: typer.Context,
    address: str,
    mode: Optional[str] = typer.Option(None, "--mode", help="DEFAULT, ARBITRUM or OPTIMISM"),
) -> None:
    """Adopt an existing registry."""
    registry_mode = _mode(mode)
    with reporting_errors():
        stored = workflow.set_registry_address(command_context(ctx), address, registry_mode)
    console.print(f"registry set to [bold]{stored}[/]")


@registry_app.command("set-config")
def set_registry_config(
    ctx: typer.Context,
    max_faulty: Optional[int] = typer.Option(None, "--max-faulty", min=0, help="Faulty oracles to tolerate"),
) -> None:
    """Collect every participant's keys and submit one setConfig transaction."""
    command = command_context(ctx)
    with reporting_errors():
        receipt = run(
            command, lambda cancel: workflow.set_registry_config(command, max_faulty=max_faulty, cancel=cancel)
        )
    console.print(f"registry configured{receipt_summary(receipt)}")


# Registrar ----------------------------------------------------------------------


@registrar_app.command("deploy")
def deploy_registrar(ctx: typer.Context) -> None:
    """Deploy a registrar bound to the registry and LINK token."""
    command = command_context(ctx)
    with reporting_errors():
        address = run(command, lambda _cancel: workflow.deploy_registrar(command))
    console.print(f"registrar deployed at [bold]{address}[/]")


@registrar_app.command("set-address")
def set_registrar_address(ctx: typer.Context, address: str) -> None:
    """Adopt an existing registrar."""
    with reporting_errors():
        stored = workflow.set_registrar_address(command_context(ctx), address)
    console.print(f"registrar set to [bold]{stored}[/]")


# Verifiable load ----------------------------------------------------------------


@load_app.command("deploy")
def deploy_load(
    ctx: typer.Context,
    load_type: LoadType = TYPE_OPTION,
    mercury: bool = typer.Option(False, "--mercury", help="Request Mercury lookups"),
    arbitrum: bool = typer.Option(False, "--arbitrum", help="Use Arbitrum block numbers"),
) -> None:
    """Deploy a verifiable-load contract."""
    command = command_context(ctx)
    with reporting_errors():
        address = run(
            command,
            lambda _cancel: workflow.deploy_load(command, load_type, use_mercury=mercury, use_arbitrum=arbitrum)
        )
    console.print(f"{load_type.value} load contract deployed at [bold]{address}[/]")


@load_app.command("set-address")
def set_load_address(ctx: typer.Context, address: str, load_type: LoadType = TYPE_OPTION) -> None:
    """Adopt an existing verifiable-load contract."""
    with reporting_errors():
        stored = workflow.set_load_address(command_context(ctx), load_type, address)
    console.print(f"{load_type.value} load contract set to [bold]{stored}[/]")


@load_app.command("register-upkeeps")
def register_upkeeps(
    ctx: typer.Context,
    load_type: LoadType = TYPE_OPTION,
    count: int = typer.Option(5, "--count", min=1, help="Upkeeps to register"),
    interval: int = typer.Option(15, "--interval", min=1, help="Blocks between performs"),
    send_link: bool = typer.Option(False, "--send-link", help="Fund the load contract with LINK first"),
    cancel_upkeeps: bool = typer.Option(False, "--cancel-upkeeps", help="Cancel active upkeeps first"),
) -> None:
    """Register upkeeps on the load contract."""
    command = command_context(ctx)
    with reporting_errors():
        ids = run(
            command,
            lambda _cancel: workflow.register_upkeeps(
                command,
                load_type,
                count=count,
                interval=interval,
                send_link=send_link,
                cancel_existing=cancel_upkeeps,
            )
        )
    console.print(f"registered {len(ids)} upkeeps")


@load_app.command("cancel-upkeeps")
def cancel_upkeeps(ctx: typer.Context, load_type: LoadType = TYPE_OPTION) -> None:
    """Cancel every active upkeep of the load contract."""
    command = command_context(ctx)
    with reporting_errors():
        ids = run(command, lambda _cancel: workflow.cancel_upkeeps(command, load_type))
    console.print(f"cancelled {len(ids)} upkeeps")


def _stats_row(stats: DelayStats) -> list:
    return [
        stats.label,
        str(stats.performs),
        f"{stats.total:.0f}",
        f"{stats.average:.2f}",
        f"{stats.maximum:.0f}",
        *(f"{value:.2f}" for value in stats.percentiles()),
    ]


@load_app.command("get-stats")
def get_stats(ctx: typer.Context, load_type: LoadType = TYPE_OPTION) -> None:
    """Print perform delays (in blocks) per upkeep and in total."""
    command = command_context(ctx)
    with reporting_errors():
        stats = run(command, lambda cancel: workflow.load_stats(command, load_type, cancel))
    table = Table(title=f"{load_type.value} upkeeps at block {stats.block}")
    for column in ("Upkeep", "Performs", "Total delay", "Average", "Max"):
        table.add_column(column)
    for percentile in PERCENTILES:
        table.add_column(f"p{percentile}")
    for upkeep in stats.upkeeps:
        table.add_row(*_stats_row(upkeep))
    table.add_row(*_stats_row(stats.totals()), style="bold")
    console.print(table)
