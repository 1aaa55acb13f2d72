"""Bring a node from nothing to a running, authenticated, job-installed state."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..errors import AutomationError, FilesystemError, NodeConnectionError
from ..settings import Settings
from ..state.models import NodeConfig, checksum_address
from ..state.store import ensure_directory, write_file
from ..util import CancelToken
from .client import NodeClient
from .engine import BindMount, ContainerEngine, ContainerSpec
from .templates import automation_job, bootstrap_job, node_toml, p2p_toml, secret_toml

LOGGER = logging.getLogger(__name__)

DATABASE_IMAGE = "postgres:latest"
DATABASE_PORT = 5432
DATABASE_USER = "postgres"
DATABASE_PASSWORD = "verylongdatabasepassword"
NODE_HTTP_PORT = "6688/tcp"
SECRETS_MOUNT = "/run/secrets"
API_CREDENTIALS_FILE = "chainlink-node-api"
PASSWORD_FILE = "chainlink-node-password"
CONFIG_FILE = "01-config.toml"
SECRET_FILE = "01-secret.toml"

ClientFactory = Callable[[NodeConfig], NodeClient]


@dataclass
class ContainerState:
    name: str
    created: bool = False
    running: bool = False
    id: Optional[str] = None

    def clear(self) -> None:
        self.created = False
        self.running = False
        self.id = None


@dataclass
class NodeContainers:
    database: ContainerState
    main: ContainerState

    def vector(self) -> tuple:
        return (self.database.created, self.database.running, self.main.created, self.main.running)


def management_url(node: NodeConfig) -> str:
    return f"http://localhost:{node.listen_port}"


def default_client_factory(node: NodeConfig) -> NodeClient:
    return NodeClient(
        node.management_url or management_url(node),
        login=node.login_name,
        password=node.login_password,
    )


async def authenticate(node: NodeConfig, client_factory: Optional[ClientFactory] = None) -> NodeClient:
    """Return a client for ``node`` holding a fresh session cookie."""

    client = (client_factory or default_client_factory)(node)
    try:
        await client.authenticate()
    except BaseException:
        await client.aclose()
        raise
    return client


async def participant_keys(node: NodeConfig, client_factory: Optional[ClientFactory] = None) -> NodeConfig:
    """Fetch a running participant's OCR public keys and peer id."""

    client = await authenticate(node, client_factory)
    async with client:
        try:
            bundle = await client.ocr2_bundle()
            peer_id = await client.p2p_key_id()
        except AutomationError as exc:
            raise exc.with_context(f"participant {node.name}") from exc
    return node.model_copy(
        update={
            "off_chain_public_key": bundle.off_chain_public_key,
            "config_public_key": bundle.config_public_key,
            "onchain_public_key": bundle.onchain_public_key,
            "p2p_key_id": peer_id,
        }
    )


def _targets(job: Dict[str, Any], job_type: str, contract: str) -> bool:
    attributes = job.get("attributes") or {}
    if str(attributes.get("type", "")).lower() != job_type:
        return False
    wanted = contract.lower()
    for value in attributes.values():
        if isinstance(value, dict) and str(value.get("contractID", "")).lower() == wanted:
            return True
    return False


class NodeOrchestrator:
    """Drives the container engine and the node API for one node group.

    Nodes are identified by ``(group, node name, listen port)``. Every node
    owns a database container ``<group>-<name>-postgres`` and a main container
    ``<group>-<name>`` on the shared network ``<group>-local``.
    """

    def __init__(
        self,
        engine: ContainerEngine,
        group: str,
        *,
        settings: Optional[Settings] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.engine = engine
        self.group = group
        self.settings = settings or Settings()
        self.client_factory = client_factory or default_client_factory

    @property
    def network(self) -> str:
        return f"{self.group}-local"

    def container_name(self, node: NodeConfig) -> str:
        return f"{self.group}-{node.name}"

    def database_name(self, node: NodeConfig) -> str:
        return f"{self.group}-{node.name}-postgres"

    # Container lifecycle ----------------------------------------------------

    async def inspect(self, node: NodeConfig) -> NodeContainers:
        containers = NodeContainers(
            database=ContainerState(self.database_name(node)),
            main=ContainerState(self.container_name(node)),
        )
        for summary in await self.engine.list_containers(self.container_name(node)):
            for state in (containers.database, containers.main):
                if summary.name.lstrip("/") == state.name:
                    state.created = True
                    state.running = summary.running
                    state.id = summary.id
        LOGGER.debug("%s state vector %s", self.container_name(node), containers.vector())
        return containers

    async def _ensure_database_image(self) -> None:
        if not await self.engine.image_present(DATABASE_IMAGE):
            await self.engine.pull_image(DATABASE_IMAGE)

    async def _ensure_network(self) -> None:
        if self.network not in await self.engine.network_names():
            await self.engine.create_network(self.network)

    async def _reset(self, state: ContainerState) -> None:
        if state.id is None:
            return
        LOGGER.info("resetting container %s", state.name)
        await self.engine.remove_container(state.id)
        state.clear()

    async def _ensure_database(self, state: ContainerState, cancel: Optional[CancelToken]) -> None:
        if not state.created:
            state.id = await self.engine.create_container(
                ContainerSpec(
                    name=state.name,
                    image=DATABASE_IMAGE,
                    command=["postgres", "-c", "max_connections=1000"],
                    environment={"POSTGRES_USER": DATABASE_USER, "POSTGRES_PASSWORD": DATABASE_PASSWORD},
                    network=self.network,
                    aliases=[state.name],
                )
            )
            state.created = True
        if not state.running:
            await self.engine.start_container(state.id)
            state.running = True
            await self._pause(self.settings.database_grace, cancel)

    def write_secrets(self, node: NodeConfig, directory: Path) -> Path:
        """Write the credential and TOML files the main container mounts."""

        secrets = directory / "secrets"
        files = {
            API_CREDENTIALS_FILE: f"{node.login_name}\n{node.login_password}",
            PASSWORD_FILE: node.login_password,
            CONFIG_FILE: node_toml(node),
            SECRET_FILE: secret_toml(node),
        }
        try:
            ensure_directory(secrets)
            for filename, content in files.items():
                write_file(secrets / filename, content)
        except OSError as exc:
            raise FilesystemError(f"failed to write node secrets under {secrets}: {exc}") from exc
        return secrets

    async def _ensure_main(
        self,
        node: NodeConfig,
        state: ContainerState,
        database: ContainerState,
        secrets: Path,
        extra_toml: str,
    ) -> None:
        if not state.created:
            state.id = await self.engine.create_container(
                ContainerSpec(
                    name=state.name,
                    image=node.image,
                    command=[
                        "-s", f"{SECRETS_MOUNT}/{SECRET_FILE}",
                        "-c", f"{SECRETS_MOUNT}/{CONFIG_FILE}",
                        "local", "n",
                        "-a", f"{SECRETS_MOUNT}/{API_CREDENTIALS_FILE}",
                    ],
                    environment={
                        "CL_CONFIG": extra_toml,
                        "CL_PASSWORD_KEYSTORE": node.login_password,
                        "CL_DATABASE_URL": (
                            f"postgresql://{DATABASE_USER}:{DATABASE_PASSWORD}@{database.name}:"
                            f"{DATABASE_PORT}/postgres?sslmode=disable"
                        ),
                    },
                    network=self.network,
                    aliases=[state.name],
                    ports={NODE_HTTP_PORT: node.listen_port},
                    mounts=[BindMount(source=str(secrets.resolve()), target=SECRETS_MOUNT, read_only=True)],
                )
            )
            state.created = True
        if not state.running:
            await self.engine.start_container(state.id)
            state.running = True

    async def _pause(self, seconds: float, cancel: Optional[CancelToken]) -> None:
        if cancel is None:
            await asyncio.sleep(seconds)
            return
        try:
            await asyncio.wait_for(cancel.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise asyncio.CancelledError("node bring-up cancelled")

    async def wait_healthy(self, node: NodeConfig, client: NodeClient, cancel: Optional[CancelToken] = None) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.health_timeout
        while True:
            if await client.healthy():
                LOGGER.info("%s is healthy", self.container_name(node))
                return
            if loop.time() >= deadline:
                raise NodeConnectionError(
                    f"timed out waiting for {self.container_name(node)} to start, "
                    f"waited {self.settings.health_timeout:g} seconds"
                )
            await self._pause(self.settings.health_interval, cancel)

    async def bring_up(
        self,
        node: NodeConfig,
        directory: Path,
        *,
        extra_toml: str,
        reset: bool = False,
        cancel: Optional[CancelToken] = None,
    ) -> NodeClient:
        """Run the container half of bring-up and return an authenticated client."""

        await self._ensure_database_image()
        await self._ensure_network()
        containers = await self.inspect(node)
        if reset:
            await self._reset(containers.main)
            await self._reset(containers.database)
        await self._ensure_database(containers.database, cancel)
        secrets = self.write_secrets(node, directory)
        await self._ensure_main(node, containers.main, containers.database, secrets, extra_toml)

        client = self.client_factory(node)
        try:
            await self.wait_healthy(node, client, cancel)
            await client.authenticate()
        except BaseException:
            await client.aclose()
            raise
        return client

    async def remove(self, node: NodeConfig) -> None:
        containers = await self.inspect(node)
        for state in (containers.main, containers.database):
            if state.id is not None:
                await self.engine.remove_container(state.id)
        LOGGER.info("removed node %s", self.container_name(node))

    # Node API ---------------------------------------------------------------

    async def _install_job(self, client: NodeClient, job_type: str, contract: str, spec: str) -> None:
        existing: List[Dict[str, Any]] = await client.jobs()
        if any(_targets(job, job_type, contract) for job in existing):
            LOGGER.info("%s job for %s already installed on %s", job_type, contract, client.base_url)
            return
        job_id = await client.create_job(spec)
        LOGGER.info("installed %s job %s on %s", job_type, job_id, client.base_url)

    async def create_bootstrap(
        self,
        node: NodeConfig,
        registry: str,
        directory: Path,
        *,
        reset: bool = False,
        cancel: Optional[CancelToken] = None,
    ) -> NodeConfig:
        """Bring up the bootstrap node and return its record with the P2P address filled in."""

        node = node.model_copy(update={"management_url": management_url(node)})
        registry = checksum_address(registry)
        client = await self.bring_up(
            node, directory, extra_toml=p2p_toml(node.bootstrap_listen_port), reset=reset, cancel=cancel
        )
        async with client:
            try:
                peer_id = await client.p2p_key_id()
                await self._install_job(client, "bootstrap", registry, bootstrap_job(registry, node.chain_id))
            except AutomationError as exc:
                raise exc.with_context(f"bootstrap {self.container_name(node)}") from exc
        return node.model_copy(
            update={
                "p2p_key_id": peer_id,
                "bootstrap_address": f"{peer_id}@{self.container_name(node)}:{node.bootstrap_listen_port}",
            }
        )

    async def create_participant(
        self,
        node: NodeConfig,
        registry: str,
        bootstrap: NodeConfig,
        directory: Path,
        *,
        private_key: Optional[str] = None,
        reset: bool = False,
        cancel: Optional[CancelToken] = None,
    ) -> NodeConfig:
        """Bring up one participant, provision its sending key and install the automation job."""

        node = node.model_copy(update={"management_url": management_url(node)})
        registry = checksum_address(registry)
        client = await self.bring_up(
            node, directory, extra_toml=p2p_toml(bootstrap.bootstrap_listen_port), reset=reset, cancel=cancel
        )
        async with client:
            try:
                if private_key is not None:
                    address = await client.import_eth_key(private_key, node.chain_id)
                else:
                    address = await client.first_eth_address()
                address = checksum_address(address)
                bundle = await client.ocr2_bundle()
                spec = automation_job(registry, bundle.id, address, bootstrap.bootstrap_address, node.chain_id)
                await self._install_job(client, "offchainreporting2", registry, spec)
                peer_id = await client.p2p_key_id()
            except AutomationError as exc:
                raise exc.with_context(f"participant {self.container_name(node)}") from exc
        return node.model_copy(
            update={
                "address": address,
                "off_chain_public_key": bundle.off_chain_public_key,
                "config_public_key": bundle.config_public_key,
                "onchain_public_key": bundle.onchain_public_key,
                "p2p_key_id": peer_id,
            }
        )


__all__ = [
    "ContainerState",
    "DATABASE_IMAGE",
    "NodeContainers",
    "NodeOrchestrator",
    "authenticate",
    "default_client_factory",
    "management_url",
    "participant_keys",
]
