"""Container engine capability and its Docker implementation."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import docker
from docker.errors import DockerException, ImageNotFound, NotFound
from docker.types import Mount

from ..errors import ContainerEngineError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContainerSummary:
    id: str
    name: str
    image: str
    status: str

    @property
    def running(self) -> bool:
        return self.status == "running"


@dataclass(frozen=True)
class BindMount:
    source: str
    target: str
    read_only: bool = True


@dataclass
class ContainerSpec:
    """Everything needed to create one container."""

    name: str
    image: str
    command: List[str] = field(default_factory=list)
    environment: Dict[str, str] = field(default_factory=dict)
    network: Optional[str] = None
    aliases: List[str] = field(default_factory=list)
    # container port ("6688/tcp") -> host port
    ports: Dict[str, int] = field(default_factory=dict)
    mounts: List[BindMount] = field(default_factory=list)


class ContainerEngine(Protocol):
    async def image_present(self, image: str) -> bool:
        ...

    async def pull_image(self, image: str) -> None:
        ...

    async def network_names(self) -> List[str]:
        ...

    async def create_network(self, name: str) -> None:
        ...

    async def list_containers(self, name_prefix: str) -> List[ContainerSummary]:
        ...

    async def create_container(self, spec: ContainerSpec) -> str:
        ...

    async def start_container(self, container_id: str) -> None:
        ...

    async def remove_container(self, container_id: str) -> None:
        ...

    async def close(self) -> None:
        ...


class DockerEngine:
    """``ContainerEngine`` backed by the local Docker daemon.

    The Docker SDK is synchronous; every call runs on a worker thread so the
    orchestrator's event loop keeps servicing cancellation.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_env(cls) -> "DockerEngine":
        try:
            client = docker.from_env()
            client.ping()
        except DockerException as exc:
            raise ContainerEngineError(f"failed to reach the docker daemon: {exc}") from exc
        return cls(client)

    async def _call(self, description: str, func: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except DockerException as exc:
            raise ContainerEngineError(f"failed to {description}: {exc}") from exc

    async def image_present(self, image: str) -> bool:
        try:
            await asyncio.to_thread(self._client.images.get, image)
        except ImageNotFound:
            return False
        except DockerException as exc:
            raise ContainerEngineError(f"failed to inspect image {image}: {exc}") from exc
        return True

    async def pull_image(self, image: str) -> None:
        LOGGER.info("pulling image %s", image)
        await self._call(f"pull image {image}", self._client.images.pull, image)

    async def network_names(self) -> List[str]:
        networks = await self._call("list networks", self._client.networks.list)
        return [network.name for network in networks]

    async def create_network(self, name: str) -> None:
        LOGGER.info("creating network %s", name)
        await self._call(f"create network {name}", self._client.networks.create, name, driver="bridge")

    async def list_containers(self, name_prefix: str) -> List[ContainerSummary]:
        containers = await self._call(
            "list containers",
            self._client.containers.list,
            all=True,
            filters={"name": f"^/{re.escape(name_prefix)}"},
        )
        summaries = []
        for container in containers:
            config = container.attrs.get("Config") or {}
            summaries.append(
                ContainerSummary(
                    id=container.id,
                    name=container.name,
                    image=config.get("Image", ""),
                    status=container.status,
                )
            )
        return summaries

    def _create(self, spec: ContainerSpec) -> str:
        container = self._client.containers.create(
            spec.image,
            command=spec.command or None,
            name=spec.name,
            environment=spec.environment or None,
            ports={port: ("0.0.0.0", host_port) for port, host_port in spec.ports.items()} or None,
            mounts=[
                Mount(target=mount.target, source=mount.source, type="bind", read_only=mount.read_only)
                for mount in spec.mounts
            ],
        )
        if spec.network:
            network = self._client.networks.get(spec.network)
            network.connect(container, aliases=spec.aliases or None)
        return container.id

    async def create_container(self, spec: ContainerSpec) -> str:
        container_id = await self._call(f"create container {spec.name}", self._create, spec)
        LOGGER.info("created container %s (%s)", spec.name, container_id[:12])
        return container_id

    async def start_container(self, container_id: str) -> None:
        def start() -> None:
            self._client.containers.get(container_id).start()

        await self._call(f"start container {container_id[:12]}", start)

    async def remove_container(self, container_id: str) -> None:
        def remove() -> None:
            try:
                container = self._client.containers.get(container_id)
            except NotFound:
                return
            container.remove(force=True, v=True)

        await self._call(f"remove container {container_id[:12]}", remove)
        LOGGER.info("removed container %s", container_id[:12])

    async def close(self) -> None:
        await asyncio.to_thread(self._client.close)


__all__ = ["BindMount", "ContainerEngine", "ContainerSpec", "ContainerSummary", "DockerEngine"]
