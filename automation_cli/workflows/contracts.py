"""Contract workflows: deploy, adopt, configure and drive the on-chain pieces."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

from ..contracts.catalog import (
    ContractKind,
    Deployable,
    FeedSpec,
    LinkTokenSpec,
    LoadSpec,
    RegistrarSpec,
    RegistrySpec,
)
from ..contracts.link import LinkToken
from ..contracts.load import LoadStats, VerifiableLoad
from ..contracts.ocr import OracleIdentity
from ..contracts.registry import Registry
from ..errors import AutomationError, PreconditionError
from ..node.orchestrator import participant_keys
from ..state.models import (
    Environment,
    FeedContract,
    LinkTokenContract,
    LoadType,
    NodeConfig,
    RegistrarContract,
    RegistryContract,
    RegistryMode,
    VerifiableLoadContract,
    checksum_address,
    default_auto_approvals,
)
from ..util import CancelToken, Parallel
from .context import CommandContext

LOGGER = logging.getLogger(__name__)

DEFAULT_FEED_ANSWER = 2 * 10**18
KEY_COLLECTION_WORKERS = 10

FEED_KINDS = {
    "link-eth": ContractKind.LINK_ETH_FEED,
    "fast-gas": ContractKind.FAST_GAS_FEED,
}

LOAD_KINDS = {
    LoadType.CONDITIONAL: ContractKind.CONDITIONAL_LOAD,
    LoadType.LOG_TRIGGER: ContractKind.LOG_TRIGGER_LOAD,
}


# LINK token and feeds ---------------------------------------------------------


async def deploy_link_token(ctx: CommandContext) -> str:
    environment = ctx.load()
    gateway = ctx.gateway(environment)
    address = await Deployable(ContractKind.LINK_TOKEN, LinkTokenSpec()).deploy(
        gateway, ctx.artifacts(environment), environment.verifier
    )
    environment.link_token = LinkTokenContract(address=address, mocked=True)
    ctx.save(environment)
    LOGGER.info("LINK token deployed at %s", address)
    return address


def set_link_token(ctx: CommandContext, address: str) -> str:
    environment = ctx.load()
    environment.link_token = LinkTokenContract(address=checksum_address(address), mocked=False)
    ctx.save(environment)
    return environment.link_token.address


def _link(ctx: CommandContext, environment: Environment) -> LinkToken:
    return LinkToken(ctx.gateway(environment), environment.require_link_token().address)


async def mint_link(ctx: CommandContext, amount: int) -> None:
    environment = ctx.load()
    await _link(ctx, environment).mint(amount)


async def send_link(ctx: CommandContext, to: str, amount: int) -> None:
    environment = ctx.load()
    await _link(ctx, environment).transfer(checksum_address(to), amount)


async def link_balance(ctx: CommandContext, owner: Optional[str] = None) -> Tuple[str, int]:
    environment = ctx.load()
    token = _link(ctx, environment)
    holder = checksum_address(owner) if owner else token.gateway.address
    return holder, await token.balance(holder)


async def deploy_feed(ctx: CommandContext, feed: str, answer: int = DEFAULT_FEED_ANSWER) -> str:
    try:
        kind = FEED_KINDS[feed]
    except KeyError as exc:
        raise PreconditionError(f"unknown feed {feed!r}; expected one of {', '.join(FEED_KINDS)}") from exc
    environment = ctx.load()
    gateway = ctx.gateway(environment)
    address = await Deployable(kind, FeedSpec(answer=answer)).deploy(
        gateway, ctx.artifacts(environment), environment.verifier
    )
    record = FeedContract(address=address, mocked=True, default_answer=answer)
    if kind is ContractKind.LINK_ETH_FEED:
        environment.link_eth = record
    else:
        environment.fast_gas = record
    ctx.save(environment)
    LOGGER.info("%s feed deployed at %s", feed, address)
    return address


def set_feed(ctx: CommandContext, feed: str, address: str) -> str:
    if feed not in FEED_KINDS:
        raise PreconditionError(f"unknown feed {feed!r}; expected one of {', '.join(FEED_KINDS)}")
    environment = ctx.load()
    record = FeedContract(address=checksum_address(address), mocked=False)
    if FEED_KINDS[feed] is ContractKind.LINK_ETH_FEED:
        environment.link_eth = record
    else:
        environment.fast_gas = record
    ctx.save(environment)
    return record.address


# Registry ---------------------------------------------------------------------


def _registry_spec(environment: Environment, mode: RegistryMode) -> RegistrySpec:
    return RegistrySpec(
        link=environment.require_link_token().address,
        link_native_feed=environment.require_link_eth().address,
        fast_gas_feed=environment.require_fast_gas().address,
        mode=mode,
    )


async def deploy_registry(ctx: CommandContext, mode: Optional[RegistryMode] = None) -> str:
    environment = ctx.load()
    current = environment.registry
    mode = mode if mode is not None else (current.mode if current is not None else RegistryMode.DEFAULT)
    spec = _registry_spec(environment, mode)
    gateway = ctx.gateway(environment)
    address = await Deployable(ContractKind.REGISTRY, spec).deploy(
        gateway, ctx.artifacts(environment), environment.verifier
    )
    record = current.model_copy(update={"address": address, "mode": mode}) if current else RegistryContract(
        address=address, mode=mode
    )
    environment.set_registry(record)
    ctx.save(environment)
    LOGGER.info("registry deployed at %s", address)
    return address


def set_registry_address(ctx: CommandContext, address: str, mode: Optional[RegistryMode] = None) -> str:
    environment = ctx.load()
    current = environment.registry
    address = checksum_address(address)
    update = {"address": address}
    if mode is not None:
        update["mode"] = mode
    record = current.model_copy(update=update) if current else RegistryContract(
        address=address, mode=mode or RegistryMode.DEFAULT
    )
    environment.set_registry(record)
    ctx.save(environment)
    return address


async def collect_oracles(
    ctx: CommandContext,
    environment: Environment,
    cancel: Optional[CancelToken] = None,
) -> List[OracleIdentity]:
    """Fetch every participant's public keys, in roster order.

    Any participant that cannot be reached aborts the whole collection.
    """

    participants = list(environment.participants)
    if not participants:
        raise PreconditionError("no participants in the environment; run 'network participant add' first")
    for node in participants:
        if not node.address:
            raise PreconditionError(f"{node.name} has no transmitter address; re-create it with 'participant reset'")

    def job(position: int, node: NodeConfig):
        async def run(_token: CancelToken) -> Tuple[int, NodeConfig]:
            try:
                return position, await participant_keys(node, ctx.client_factory)
            except AutomationError as exc:
                raise exc.with_context(f"failed to get participant info from {node.name}") from exc

        return run

    jobs = [job(position, node) for position, node in enumerate(participants)]
    results = await Parallel[Tuple[int, NodeConfig]](KEY_COLLECTION_WORKERS).run(jobs, cancel)
    results.sort(key=lambda item: item[0])
    return [
        OracleIdentity(
            onchain_public_key=node.onchain_public_key,
            off_chain_public_key=node.off_chain_public_key,
            config_public_key=node.config_public_key,
            peer_id=node.p2p_key_id,
            transmitter=node.address,
        )
        for _, node in results
    ]


async def set_registry_config(
    ctx: CommandContext,
    *,
    max_faulty: Optional[int] = None,
    cancel: Optional[CancelToken] = None,
) -> Any:
    """Collect participant keys and submit one ``setConfig`` transaction."""

    environment = ctx.load()
    registry_record = environment.require_registry()
    environment.require_link_token()
    environment.require_link_eth()
    environment.require_fast_gas()
    if max_faulty is not None:
        registry_record.ocr_network.max_faulty_nodes = max_faulty

    gateway = ctx.gateway(environment)
    Deployable(ContractKind.REGISTRY, _registry_spec(environment, registry_record.mode)).connect(
        registry_record.address, gateway
    )
    registry = Registry(gateway, registry_record.address)

    oracles = await collect_oracles(ctx, environment, cancel)
    receipt = await registry.set_offchain_config(
        oracles, registry_record.onchain, registry_record.offchain, registry_record.ocr_network
    )
    if max_faulty is not None:
        ctx.save(environment)
    return receipt


# Registrar --------------------------------------------------------------------


async def deploy_registrar(ctx: CommandContext) -> str:
    environment = ctx.load()
    registry = environment.require_registry()
    current = environment.registrar
    spec = RegistrarSpec(
        link=environment.require_link_token().address,
        registry=registry.address,
        min_link=current.min_link if current is not None else 0,
        auto_approvals=tuple(current.auto_approvals if current is not None else default_auto_approvals()),
    )
    gateway = ctx.gateway(environment)
    address = await Deployable(ContractKind.REGISTRAR, spec).deploy(
        gateway, ctx.artifacts(environment), environment.verifier
    )
    record = current.model_copy(update={"address": address}) if current is not None else RegistrarContract(address=address)
    environment.set_registrar(record)
    ctx.save(environment)
    LOGGER.info("registrar deployed at %s", address)
    return address


def set_registrar_address(ctx: CommandContext, address: str) -> str:
    environment = ctx.load()
    address = checksum_address(address)
    current = environment.registrar
    record = current.model_copy(update={"address": address}) if current else RegistrarContract(address=address)
    environment.set_registrar(record)
    ctx.save(environment)
    return address


# Verifiable load --------------------------------------------------------------


async def deploy_load(
    ctx: CommandContext,
    load_type: LoadType,
    *,
    use_mercury: bool = False,
    use_arbitrum: bool = False,
) -> str:
    environment = ctx.load()
    registrar = environment.require_registrar()
    spec = LoadSpec(registrar=registrar.address, use_arbitrum=use_arbitrum, use_mercury=use_mercury)
    gateway = ctx.gateway(environment)
    address = await Deployable(LOAD_KINDS[load_type], spec).deploy(
        gateway, ctx.artifacts(environment), environment.verifier
    )
    environment.set_load_contract(
        VerifiableLoadContract(address=address, load_type=load_type, use_mercury=use_mercury, use_arbitrum=use_arbitrum)
    )
    ctx.save(environment)
    LOGGER.info("%s load contract deployed at %s", load_type.value, address)
    return address


def set_load_address(ctx: CommandContext, load_type: LoadType, address: str) -> str:
    environment = ctx.load()
    current = environment.load_contract(load_type)
    address = checksum_address(address)
    record = (
        current.model_copy(update={"address": address})
        if current is not None
        else VerifiableLoadContract(address=address, load_type=load_type)
    )
    environment.set_load_contract(record)
    ctx.save(environment)
    return address


def _load(ctx: CommandContext, environment: Environment, load_type: LoadType) -> VerifiableLoad:
    record = environment.load_contract(load_type)
    if record is None:
        raise PreconditionError(f"no {load_type.value} load contract; deploy or set its address first")
    return VerifiableLoad(ctx.gateway(environment), record.address, load_type)


async def register_upkeeps(
    ctx: CommandContext,
    load_type: LoadType,
    *,
    count: int = 5,
    interval: int = 15,
    send_link: bool = False,
    cancel_existing: bool = False,
) -> List[int]:
    environment = ctx.load()
    load = _load(ctx, environment, load_type)
    link = LinkToken(load.gateway, environment.require_link_token().address) if send_link else None
    return await load.register_upkeeps(
        count, interval, link=link, send_link=send_link, cancel_existing=cancel_existing
    )


async def cancel_upkeeps(ctx: CommandContext, load_type: LoadType) -> List[int]:
    environment = ctx.load()
    return await _load(ctx, environment, load_type).cancel_upkeeps()


async def load_stats(ctx: CommandContext, load_type: LoadType, cancel: Optional[CancelToken] = None) -> LoadStats:
    environment = ctx.load()
    return await _load(ctx, environment, load_type).stats(cancel)


__all__ = [
    "DEFAULT_FEED_ANSWER",
    "cancel_upkeeps",
    "collect_oracles",
    "deploy_feed",
    "deploy_link_token",
    "deploy_load",
    "deploy_registrar",
    "deploy_registry",
    "link_balance",
    "load_stats",
    "mint_link",
    "register_upkeeps",
    "send_link",
    "set_feed",
    "set_link_token",
    "set_load_address",
    "set_registrar_address",
    "set_registry_address",
    "set_registry_config",
]
