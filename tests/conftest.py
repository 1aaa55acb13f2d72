"""Shared fakes: an in-memory container engine, a recording chain gateway and a mock node API."""

from __future__ import annotations

import itertools
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from eth_account import Account
from web3 import Web3

from automation_cli.contracts.catalog import (
    ARTIFACT_NAMES,
    FORWARDER_LOGIC_ARTIFACT,
    REGISTRY_LOGIC_A_ARTIFACT,
    REGISTRY_LOGIC_B_ARTIFACT,
)
from automation_cli.node.client import NodeClient
from automation_cli.node.engine import ContainerSpec, ContainerSummary
from automation_cli.node.orchestrator import management_url
from automation_cli.settings import Settings
from automation_cli.state.models import NodeConfig
from automation_cli.state.store import StateStore
from automation_cli.workflows.context import CommandContext

DEPLOYER_KEY = "4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
FAST_SETTINGS = Settings(health_timeout=1.0, health_interval=0.0, database_grace=0.0)


# Container engine ---------------------------------------------------------------


@dataclass
class FakeContainer:
    id: str
    spec: ContainerSpec
    status: str = "created"


class FakeContainerEngine:
    """In-memory ``ContainerEngine`` recording every call it receives."""

    def __init__(self) -> None:
        self.images: set = set()
        self.networks: List[str] = []
        self.containers: Dict[str, FakeContainer] = {}
        self.calls: List[Tuple[str, str]] = []
        self.closed = False
        self._ids = itertools.count(1)

    async def image_present(self, image: str) -> bool:
        return image in self.images

    async def pull_image(self, image: str) -> None:
        self.calls.append(("pull", image))
        self.images.add(image)

    async def network_names(self) -> List[str]:
        return list(self.networks)

    async def create_network(self, name: str) -> None:
        self.calls.append(("network", name))
        self.networks.append(name)

    async def list_containers(self, name_prefix: str) -> List[ContainerSummary]:
        return [
            ContainerSummary(id=item.id, name=f"/{item.spec.name}", image=item.spec.image, status=item.status)
            for item in self.containers.values()
            if item.spec.name.startswith(name_prefix)
        ]

    async def create_container(self, spec: ContainerSpec) -> str:
        container_id = f"container-{next(self._ids)}"
        self.containers[container_id] = FakeContainer(id=container_id, spec=spec)
        self.calls.append(("create", spec.name))
        return container_id

    async def start_container(self, container_id: str) -> None:
        self.containers[container_id].status = "running"
        self.calls.append(("start", self.containers[container_id].spec.name))

    async def remove_container(self, container_id: str) -> None:
        removed = self.containers.pop(container_id, None)
        if removed is not None:
            self.calls.append(("remove", removed.spec.name))

    async def close(self) -> None:
        self.closed = True

    def by_name(self, name: str) -> Optional[FakeContainer]:
        for item in self.containers.values():
            if item.spec.name == name:
                return item
        return None


# Chain gateway ------------------------------------------------------------------


class FakeGateway:
    """Records deployments and transactions; contract objects are real web3 bindings."""

    def __init__(self, chain_id: int = 1337) -> None:
        self.web3 = Web3()
        self.chain_id = chain_id
        self.address = Account.from_key(f"0x{DEPLOYER_KEY}").address
        self.deployments: List[Tuple[str, tuple]] = []
        self.transactions: List[Tuple[str, tuple]] = []
        self.transfers: List[Tuple[str, int]] = []
        self.call_results: Dict[str, Any] = {}

    async def deploy(self, abi: Any, bytecode: str, *args: Any, label: str = "contract") -> str:
        self.deployments.append((label, args))
        return Web3.to_checksum_address(f"0x{len(self.deployments):040x}")

    def contract(self, address: str, abi: Any) -> Any:
        return self.web3.eth.contract(address=Web3.to_checksum_address(address), abi=list(abi))

    async def transact(self, function: Any, *, value: int = 0) -> Dict[str, Any]:
        self.transactions.append((function.fn_name, tuple(function.args)))
        return {"status": 1, "transactionHash": bytes([len(self.transactions)]) * 32}

    async def call(self, function: Any, *, block_identifier: Any = "latest") -> Any:
        result = self.call_results[function.fn_name]
        return result(*function.args) if callable(result) else result

    async def send_native(self, to_address: str, amount: int) -> Dict[str, Any]:
        self.transfers.append((to_address, amount))
        return {"status": 1, "transactionHash": b"\x0f" * 32}

    async def block_number(self) -> int:
        return 100


# Node API -----------------------------------------------------------------------


def _ocr_key_material(index: int) -> Dict[str, str]:
    config_key = X25519PrivateKey.generate().public_key().public_bytes_raw().hex()
    return {
        "onchainPublicKey": "ocr2on_evm_" + f"{index + 1:040x}",
        "offChainPublicKey": "ocr2off_evm_" + f"{index + 1:064x}",
        "configPublicKey": "ocr2cfg_evm_" + config_key,
    }


@dataclass
class FakeNode:
    """State behind one mocked node REST API."""

    index: int
    eth_address: str
    cookie: str = "session-token"
    healthy: bool = True
    jobs: List[Dict[str, Any]] = field(default_factory=list)
    imported: List[Dict[str, Any]] = field(default_factory=list)
    requests: List[Tuple[str, str]] = field(default_factory=list)
    expire_next: int = 0
    unreachable: bool = False
    keys: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.keys:
            self.keys = _ocr_key_material(self.index)

    @property
    def peer_id(self) -> str:
        return f"12D3KooWPeer{self.index}"

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        path = request.url.path
        if path == "/health":
            return httpx.Response(200 if self.healthy else 503, json={})
        if path == "/sessions":
            body = json.loads(request.content)
            if body.get("Password") is None:
                return httpx.Response(401, json={"errors": [{"detail": "unauthorized"}]})
            return httpx.Response(
                200,
                json={"data": {"type": "session"}},
                headers={"Set-Cookie": f"clsession={self.cookie}; Path=/"},
            )
        if request.headers.get("Cookie") != f"clsession={self.cookie}":
            return httpx.Response(401, json={"errors": [{"detail": "unauthorized"}]})
        if self.expire_next:
            self.expire_next -= 1
            return httpx.Response(401, json={"errors": [{"detail": "session expired"}]})
        if path == "/v2/keys/eth":
            return httpx.Response(200, json={"data": [{"id": self.eth_address, "attributes": {"address": self.eth_address}}]})
        if path == "/v2/keys/ocr2":
            return httpx.Response(
                200,
                json={
                    "data": [
                        {"id": "solana-bundle", "attributes": {"chainType": "solana"}},
                        {"id": f"bundle-{self.index}", "attributes": {"chainType": "evm", **self.keys}},
                    ]
                },
            )
        if path == "/v2/keys/p2p":
            return httpx.Response(200, json={"data": [{"id": self.peer_id}]})
        if path == "/v2/keys/evm/import":
            keystore = json.loads(request.content)
            self.imported.append(keystore)
            address = Web3.to_checksum_address("0x" + keystore["address"])
            return httpx.Response(200, json={"data": {"id": address, "attributes": {"address": address}}})
        if path == "/v2/jobs" and request.method == "GET":
            return httpx.Response(200, json={"data": self.jobs})
        if path == "/v2/jobs" and request.method == "POST":
            spec = json.loads(request.content)["toml"]
            job_type = "bootstrap" if 'type = "bootstrap"' in spec else "offchainreporting2"
            contract = spec.split('contractID = "', 1)[1].split('"', 1)[0]
            job = {
                "id": str(len(self.jobs) + 1),
                "attributes": {"type": job_type, "spec": {"contractID": contract}, "toml": spec},
            }
            self.jobs.append(job)
            return httpx.Response(200, json={"data": job})
        return httpx.Response(404, json={"errors": [{"detail": f"no route {path}"}]})


class FakeNodeNetwork:
    """Hands out ``NodeClient``s wired to per-node ``FakeNode`` handlers."""

    def __init__(self) -> None:
        self.nodes: Dict[str, FakeNode] = {}

    def node(self, name: str) -> FakeNode:
        if name not in self.nodes:
            index = len(self.nodes)
            address = Web3.to_checksum_address(f"0x{0xA0 + index:040x}")
            self.nodes[name] = FakeNode(index=index, eth_address=address)
        return self.nodes[name]

    def client_factory(self, node: NodeConfig) -> NodeClient:
        fake = self.node(node.name)
        return NodeClient(
            management_url(node),
            login=node.login_name,
            password=node.login_password,
            transport=httpx.MockTransport(fake.handle),
        )


# Fixtures -----------------------------------------------------------------------


@pytest.fixture
def fake_engine() -> FakeContainerEngine:
    return FakeContainerEngine()


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def fake_nodes() -> FakeNodeNetwork:
    return FakeNodeNetwork()


@pytest.fixture
def artifacts_dir(tmp_path: Path) -> Path:
    root = tmp_path / "artifacts"
    root.mkdir()
    names = list(ARTIFACT_NAMES.values()) + [
        FORWARDER_LOGIC_ARTIFACT,
        REGISTRY_LOGIC_A_ARTIFACT,
        REGISTRY_LOGIC_B_ARTIFACT,
    ]
    for name in names:
        (root / f"{name}.json").write_text(json.dumps({"abi": [], "bytecode": "0x6080"}), encoding="utf-8")
    return root


@pytest.fixture
def command(tmp_path: Path, fake_engine, fake_gateway, fake_nodes, artifacts_dir) -> CommandContext:
    settings = Settings(
        health_timeout=1.0,
        health_interval=0.0,
        database_grace=0.0,
        contracts_directory=artifacts_dir,
    )
    return CommandContext(
        store=StateStore(tmp_path / "state"),
        environment_name="dev",
        settings=settings,
        gateway_factory=lambda _environment, _key: fake_gateway,
        engine_factory=lambda: fake_engine,
        client_factory=fake_nodes.client_factory,
    )


@pytest.fixture
def keyed_command(command: CommandContext) -> CommandContext:
    """``command`` with the deployer key stored under the default alias."""

    from automation_cli.workflows.keys import store_key

    store_key(command, "default", DEPLOYER_KEY)
    return command


@pytest.fixture
def deployer_key() -> str:
    return DEPLOYER_KEY


@pytest.fixture
def make_node():
    """Build a standalone ``FakeNode`` for client-level tests."""

    def factory(index: int = 0, **overrides: Any) -> FakeNode:
        address = Web3.to_checksum_address(f"0x{0xA0 + index:040x}")
        return FakeNode(index=index, eth_address=address, **overrides)

    return factory
