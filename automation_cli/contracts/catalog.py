"""The closed set of deployable contract kinds.

Every kind is described by a :class:`Deployable`: a :class:`ContractKind` tag
plus the typed configuration that kind needs. All kinds share the same two
operations, ``deploy`` and ``connect``. The registry is composite: deploying
it deploys the forwarder logic, logic B and logic A first, then the registry
itself, and finally binds the registry interface at the resulting address.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, Union

from ..chain.verify import log_verify_hint
from ..errors import AutomationError, ContractConnectionError
from ..state.models import AutoApproval, RegistryMode, Verifier, checksum_address, default_auto_approvals
from . import abi
from .artifacts import ArtifactStore

LOGGER = logging.getLogger(__name__)


class Gateway(Protocol):
    """The parts of :class:`~automation_cli.chain.ChainGateway` the catalog uses."""

    async def deploy(self, abi: Sequence[Dict[str, Any]], bytecode: str, *args: Any, label: str = ...) -> str: ...

    def contract(self, address: str, abi: Sequence[Dict[str, Any]]) -> Any: ...


class ContractKind(str, Enum):
    LINK_TOKEN = "link-token"
    LINK_ETH_FEED = "link-eth-feed"
    FAST_GAS_FEED = "fast-gas-feed"
    REGISTRY = "registry"
    REGISTRAR = "registrar"
    CONDITIONAL_LOAD = "conditional-load"
    LOG_TRIGGER_LOAD = "log-trigger-load"


ARTIFACT_NAMES: Dict[ContractKind, str] = {
    ContractKind.LINK_TOKEN: "LinkToken",
    ContractKind.LINK_ETH_FEED: "MockETHLINKAggregator",
    ContractKind.FAST_GAS_FEED: "MockGASAggregator",
    ContractKind.REGISTRY: "KeeperRegistry2_1",
    ContractKind.REGISTRAR: "AutomationRegistrar2_1",
    ContractKind.CONDITIONAL_LOAD: "VerifiableLoadUpkeep",
    ContractKind.LOG_TRIGGER_LOAD: "VerifiableLoadLogTriggerUpkeep",
}

FORWARDER_LOGIC_ARTIFACT = "AutomationForwarderLogic"
REGISTRY_LOGIC_B_ARTIFACT = "KeeperRegistryLogicB2_1"
REGISTRY_LOGIC_A_ARTIFACT = "KeeperRegistryLogicA2_1"

ABIS: Dict[ContractKind, List[Dict[str, Any]]] = {
    ContractKind.LINK_TOKEN: abi.LINK_TOKEN_ABI,
    ContractKind.LINK_ETH_FEED: abi.MOCK_FEED_ABI,
    ContractKind.FAST_GAS_FEED: abi.MOCK_FEED_ABI,
    ContractKind.REGISTRY: abi.REGISTRY_ABI,
    ContractKind.REGISTRAR: abi.REGISTRAR_ABI,
    ContractKind.CONDITIONAL_LOAD: abi.CONDITIONAL_LOAD_ABI,
    ContractKind.LOG_TRIGGER_LOAD: abi.LOG_TRIGGER_LOAD_ABI,
}


@dataclass(frozen=True)
class LinkTokenSpec:
    pass


@dataclass(frozen=True)
class FeedSpec:
    answer: int


@dataclass(frozen=True)
class RegistrySpec:
    link: str
    link_native_feed: str
    fast_gas_feed: str
    mode: RegistryMode = RegistryMode.DEFAULT


@dataclass(frozen=True)
class RegistrarSpec:
    link: str
    registry: str
    min_link: int = 0
    auto_approvals: Tuple[AutoApproval, ...] = field(default_factory=lambda: tuple(default_auto_approvals()))


@dataclass(frozen=True)
class LoadSpec:
    registrar: str
    use_arbitrum: bool = False
    use_mercury: bool = False


Spec = Union[LinkTokenSpec, FeedSpec, RegistrySpec, RegistrarSpec, LoadSpec]

_SPEC_TYPES: Dict[ContractKind, type] = {
    ContractKind.LINK_TOKEN: LinkTokenSpec,
    ContractKind.LINK_ETH_FEED: FeedSpec,
    ContractKind.FAST_GAS_FEED: FeedSpec,
    ContractKind.REGISTRY: RegistrySpec,
    ContractKind.REGISTRAR: RegistrarSpec,
    ContractKind.CONDITIONAL_LOAD: LoadSpec,
    ContractKind.LOG_TRIGGER_LOAD: LoadSpec,
}


def _deployment_abi(artifact_abi: List[Dict[str, Any]], bundled: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return artifact_abi or bundled


@dataclass(frozen=True)
class Deployable:
    """One contract kind together with the configuration it deploys with."""

    kind: ContractKind
    spec: Spec = field(default_factory=LinkTokenSpec)

    def __post_init__(self) -> None:
        expected = _SPEC_TYPES[self.kind]
        if not isinstance(self.spec, expected):
            raise TypeError(f"{self.kind.value} expects {expected.__name__}, got {type(self.spec).__name__}")

    @property
    def abi(self) -> List[Dict[str, Any]]:
        return ABIS[self.kind]

    def constructor_args(self) -> Tuple[Any, ...]:
        spec = self.spec
        if isinstance(spec, FeedSpec):
            return (int(spec.answer),)
        if isinstance(spec, RegistrarSpec):
            triggers = [
                (rule.trigger_type, rule.auto_approve_type, rule.auto_approve_max_allowed) for rule in spec.auto_approvals
            ]
            return (
                checksum_address(spec.link),
                checksum_address(spec.registry),
                int(spec.min_link),
                triggers,
            )
        if isinstance(spec, LoadSpec):
            if self.kind is ContractKind.LOG_TRIGGER_LOAD:
                return (checksum_address(spec.registrar), spec.use_arbitrum, spec.use_mercury)
            return (checksum_address(spec.registrar), spec.use_arbitrum)
        return ()

    async def deploy(self, gateway: Gateway, artifacts: ArtifactStore, verifier: Optional[Verifier] = None) -> str:
        """Deploy this kind and return the address of the contract to record."""

        if self.kind is ContractKind.REGISTRY:
            address = await self._deploy_registry(gateway, artifacts, verifier)
        else:
            artifact = artifacts.load(ARTIFACT_NAMES[self.kind])
            args = self.constructor_args()
            address = await gateway.deploy(
                _deployment_abi(artifact.abi, self.abi), artifact.bytecode, *args, label=artifact.name
            )
            log_verify_hint(verifier, address, *args)
        return self.connect(address, gateway)

    def connect(self, address: str, gateway: Gateway) -> str:
        """Bind the interface at ``address`` and return the address back."""

        self.bind(address, gateway)
        return checksum_address(address)

    def bind(self, address: str, gateway: Gateway) -> Any:
        try:
            return gateway.contract(checksum_address(address), self.abi)
        except AutomationError:
            raise
        except Exception as exc:
            raise ContractConnectionError(f"failed to bind {self.kind.value} at {address}: {exc}") from exc

    async def _deploy_registry(self, gateway: Gateway, artifacts: ArtifactStore, verifier: Optional[Verifier]) -> str:
        spec = self.spec
        assert isinstance(spec, RegistrySpec)

        forwarder = artifacts.load(FORWARDER_LOGIC_ARTIFACT)
        forwarder_address = await gateway.deploy(
            _deployment_abi(forwarder.abi, abi.FORWARDER_LOGIC_ABI), forwarder.bytecode, label=forwarder.name
        )
        log_verify_hint(verifier, forwarder_address)

        logic_b = artifacts.load(REGISTRY_LOGIC_B_ARTIFACT)
        logic_b_args = (
            int(spec.mode),
            checksum_address(spec.link),
            checksum_address(spec.link_native_feed),
            checksum_address(spec.fast_gas_feed),
            forwarder_address,
        )
        logic_b_address = await gateway.deploy(
            _deployment_abi(logic_b.abi, abi.REGISTRY_LOGIC_B_ABI), logic_b.bytecode, *logic_b_args, label=logic_b.name
        )
        log_verify_hint(verifier, logic_b_address, *logic_b_args)

        logic_a = artifacts.load(REGISTRY_LOGIC_A_ARTIFACT)
        logic_a_address = await gateway.deploy(
            _deployment_abi(logic_a.abi, abi.REGISTRY_LOGIC_A_ABI), logic_a.bytecode, logic_b_address, label=logic_a.name
        )
        log_verify_hint(verifier, logic_a_address, logic_b_address)

        registry = artifacts.load(ARTIFACT_NAMES[ContractKind.REGISTRY])
        registry_address = await gateway.deploy(
            _deployment_abi(registry.abi, abi.REGISTRY_ABI), registry.bytecode, logic_a_address, label=registry.name
        )
        log_verify_hint(verifier, registry_address, logic_a_address)
        LOGGER.info("registry stack deployed: logic B %s, logic A %s, registry %s", logic_b_address, logic_a_address, registry_address)
        return registry_address


__all__ = [
    "ABIS",
    "ARTIFACT_NAMES",
    "ContractKind",
    "Deployable",
    "FeedSpec",
    "Gateway",
    "LinkTokenSpec",
    "LoadSpec",
    "RegistrarSpec",
    "RegistrySpec",
    "Spec",
]
