"""Per-invocation context threaded through every workflow."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from ..chain.gateway import ChainGateway
from ..contracts.artifacts import ArtifactStore
from ..errors import KeyNotFoundError
from ..node.engine import ContainerEngine, DockerEngine
from ..node.orchestrator import ClientFactory, NodeOrchestrator
from ..settings import Settings
from ..state.models import DEFAULT_KEY_ALIAS, Environment, Key, PrivateKeys
from ..state.store import StateStore
from ..util import CancelToken

LOGGER = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT = "default"

GatewayFactory = Callable[[Environment, Key], Any]
EngineFactory = Callable[[], ContainerEngine]


@dataclass
class CommandContext:
    """Where state lives and how to reach the chain and the container engine.

    The factories are seams for tests; production code leaves them unset.
    """

    store: StateStore
    environment_name: str = DEFAULT_ENVIRONMENT
    key_override: str = ""
    settings: Settings = field(default_factory=Settings.from_env)
    gateway_factory: Optional[GatewayFactory] = None
    engine_factory: Optional[EngineFactory] = None
    client_factory: Optional[ClientFactory] = None
    cancel: Optional[CancelToken] = None

    # State ------------------------------------------------------------------

    def load(self) -> Environment:
        environment = self.store.load_environment(self.environment_name)
        if not environment.group_name:
            environment.group_name = self.environment_name
        return environment

    def save(self, environment: Environment) -> Path:
        return self.store.save_environment(self.environment_name, environment)

    def vault(self) -> PrivateKeys:
        return self.store.load_key_vault()

    def node_directory(self, node_name: str) -> Path:
        return self.store.node_directory(self.environment_name, node_name)

    # Keys -------------------------------------------------------------------

    def key_alias(self, environment: Environment) -> str:
        return self.key_override or environment.private_key_alias or DEFAULT_KEY_ALIAS

    def signing_key(self, environment: Environment) -> Key:
        alias = self.key_alias(environment)
        return self.require_key(alias)

    def require_key(self, alias: str) -> Key:
        key = self.vault().get(alias)
        if key is None:
            raise KeyNotFoundError(f"no private key stored under alias {alias!r}; use 'key store' or 'key create'")
        return key

    # Collaborators ----------------------------------------------------------

    def gateway(self, environment: Environment) -> Any:
        key = self.signing_key(environment)
        if self.gateway_factory is not None:
            return self.gateway_factory(environment, key)
        return ChainGateway.connect(
            environment.http_url,
            chain_id=environment.chain_id,
            private_key=key.value,
            gas_limit=environment.gas_limit,
            gas_premium_percent=self.settings.gas_premium_percent,
            receipt_timeout=self.settings.receipt_timeout,
            poll_interval=self.settings.receipt_poll_interval,
            cancel=self.cancel,
        )

    def artifacts(self, environment: Environment) -> ArtifactStore:
        root = self.settings.contracts_directory
        if root is None and environment.verifier is not None and environment.verifier.contracts_directory:
            root = Path(environment.verifier.contracts_directory)
        return ArtifactStore(root)

    def engine(self) -> ContainerEngine:
        if self.engine_factory is not None:
            return self.engine_factory()
        return DockerEngine.from_env()

    def orchestrator(self, environment: Environment, engine: ContainerEngine) -> NodeOrchestrator:
        return NodeOrchestrator(
            engine,
            environment.group_name or self.environment_name,
            settings=self.settings,
            client_factory=self.client_factory,
        )


__all__ = ["CommandContext", "DEFAULT_ENVIRONMENT"]
