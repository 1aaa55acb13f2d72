"""Node roster workflows: bootstrap, participants, funding and listing."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..errors import NodeNotFoundError, PreconditionError
from ..node.orchestrator import NodeOrchestrator
from ..state.models import (
    BOOTSTRAP_LISTEN_PORT,
    BOOTSTRAP_NAME,
    BOOTSTRAP_P2P_PORT,
    PARTICIPANT_BASE_PORT,
    Environment,
    NodeConfig,
    participant_name,
)
from ..util import CancelToken
from .context import CommandContext

LOGGER = logging.getLogger(__name__)

DEFAULT_NODE_LOG_LEVEL = "error"


def _chain_fields(environment: Environment) -> Dict[str, Any]:
    return {
        "chain_id": environment.chain_id,
        "ws_url": environment.ws_url,
        "http_url": environment.http_url,
    }


def _mercury_fields(
    legacy_url: Optional[str], url: Optional[str], mercury_id: Optional[str], key: Optional[str]
) -> Dict[str, str]:
    overrides = {
        "mercury_legacy_url": legacy_url,
        "mercury_url": url,
        "mercury_id": mercury_id,
        "mercury_key": key,
    }
    return {name: value for name, value in overrides.items() if value}


async def set_bootstrap(
    ctx: CommandContext,
    image: str,
    *,
    log_level: str = DEFAULT_NODE_LOG_LEVEL,
    reset: bool = False,
    cancel: Optional[CancelToken] = None,
) -> NodeConfig:
    """Bring up (or re-adopt) the bootstrap node and record its P2P address."""

    environment = ctx.load()
    registry = environment.require_registry()
    fields = {"image": image, "log_level": log_level, "is_bootstrap": True, **_chain_fields(environment)}
    if environment.bootstrap is not None:
        node = environment.bootstrap.model_copy(update=fields)
    else:
        node = NodeConfig(
            name=BOOTSTRAP_NAME,
            listen_port=BOOTSTRAP_LISTEN_PORT,
            bootstrap_listen_port=BOOTSTRAP_P2P_PORT,
            **fields,
        )

    engine = ctx.engine()
    try:
        orchestrator = ctx.orchestrator(environment, engine)
        node = await orchestrator.create_bootstrap(
            node, registry.address, ctx.node_directory(node.name), reset=reset, cancel=cancel
        )
    finally:
        await engine.close()

    environment.bootstrap = node
    ctx.save(environment)
    LOGGER.info("bootstrap available at %s", node.bootstrap_address)
    return node


async def add_participants(
    ctx: CommandContext,
    image: str,
    *,
    count: int = 1,
    log_level: str = DEFAULT_NODE_LOG_LEVEL,
    key_alias: Optional[str] = None,
    mercury_legacy_url: Optional[str] = None,
    mercury_url: Optional[str] = None,
    mercury_id: Optional[str] = None,
    mercury_key: Optional[str] = None,
    cancel: Optional[CancelToken] = None,
) -> List[NodeConfig]:
    """Append ``count`` participants to the roster, one node fully up before the next."""

    if count < 1:
        raise PreconditionError("participant count must be at least 1")
    environment = ctx.load()
    registry = environment.require_registry()
    bootstrap = environment.require_bootstrap()
    key_alias = key_alias or ctx.key_override or None
    private_key = ctx.require_key(key_alias).value if key_alias else None
    mercury = _mercury_fields(mercury_legacy_url, mercury_url, mercury_id, mercury_key)

    added: List[NodeConfig] = []
    engine = ctx.engine()
    try:
        orchestrator = ctx.orchestrator(environment, engine)
        for _ in range(count):
            index = environment.next_participant_index()
            node = NodeConfig(
                name=participant_name(index),
                image=image,
                listen_port=PARTICIPANT_BASE_PORT + index,
                log_level=log_level,
                private_key_alias=key_alias or "",
                **_chain_fields(environment),
                **mercury,
            )
            node = await orchestrator.create_participant(
                node,
                registry.address,
                bootstrap,
                ctx.node_directory(node.name),
                private_key=private_key,
                cancel=cancel,
            )
            environment.participants.append(node)
            added.append(node)
            LOGGER.info("participant %s up with address %s", node.name, node.address)
    finally:
        await engine.close()

    ctx.save(environment)
    return added


async def reset_participant(
    ctx: CommandContext,
    ident: str,
    image: str,
    *,
    log_level: Optional[str] = None,
    key_alias: Optional[str] = None,
    cancel: Optional[CancelToken] = None,
) -> NodeConfig:
    """Tear down and recreate one participant in place, keeping its roster slot."""

    environment = ctx.load()
    registry = environment.require_registry()
    bootstrap = environment.require_bootstrap()
    position = environment.find_participant(ident)
    current = environment.participants[position]

    alias = key_alias or ctx.key_override or current.private_key_alias
    private_key = ctx.require_key(alias).value if alias else None
    update: Dict[str, Any] = {"image": image, "private_key_alias": alias or "", **_chain_fields(environment)}
    if log_level:
        update["log_level"] = log_level
    node = current.model_copy(update=update)

    engine = ctx.engine()
    try:
        orchestrator = ctx.orchestrator(environment, engine)
        node = await orchestrator.create_participant(
            node,
            registry.address,
            bootstrap,
            ctx.node_directory(node.name),
            private_key=private_key,
            reset=True,
            cancel=cancel,
        )
    finally:
        await engine.close()

    environment.participants[position] = node
    ctx.save(environment)
    return node


async def remove_participants(ctx: CommandContext, *, remove_all: bool = False) -> List[str]:
    """Remove the newest participant, or with ``remove_all`` every node including the bootstrap."""

    environment = ctx.load()
    if remove_all:
        targets = list(reversed(environment.participants))
        if environment.bootstrap is not None:
            targets.append(environment.bootstrap)
    else:
        if not environment.participants:
            raise NodeNotFoundError("no participants to remove")
        targets = [environment.participants[-1]]

    engine = ctx.engine()
    try:
        orchestrator: NodeOrchestrator = ctx.orchestrator(environment, engine)
        for node in targets:
            await orchestrator.remove(node)
    finally:
        await engine.close()

    if remove_all:
        environment.participants = []
        environment.bootstrap = None
    else:
        environment.participants.pop()
    ctx.save(environment)
    return [node.name for node in targets]


async def fund_node(ctx: CommandContext, ident: str, amount: int) -> Any:
    environment = ctx.load()
    node = environment.find_node(ident)
    if not node.address:
        raise PreconditionError(f"{node.name} has no address to fund")
    gateway = ctx.gateway(environment)
    return await gateway.send_native(node.address, amount)


def list_nodes(ctx: CommandContext) -> List[NodeConfig]:
    return ctx.load().nodes()


__all__ = [
    "DEFAULT_NODE_LOG_LEVEL",
    "add_participants",
    "fund_node",
    "list_nodes",
    "remove_participants",
    "reset_participant",
    "set_bootstrap",
]
