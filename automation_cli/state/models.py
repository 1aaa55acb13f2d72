"""Persisted models: the environment record, node records and the key vault."""

from __future__ import annotations

import re
from datetime import timedelta
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_pascal
from web3 import Web3

from ..errors import BootstrapNotAvailable, InvalidAddressError, MissingContractError, NodeNotFoundError, RegistrarNotAvailable

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

DEFAULT_CHAIN_ID = 1337
DEFAULT_KEY_ALIAS = "default"
DEFAULT_DEPLOYER_GAS_LIMIT = 80_000_000

DEFAULT_NODE_LOGIN = "notreal@fakeemail.ch"
DEFAULT_NODE_PASSWORD = "fj293fbBnlQ!f9vNs~#"
DEFAULT_MERCURY_LEGACY_URL = "https://chain2.old.link"
DEFAULT_MERCURY_URL = "https://chain2.link"
DEFAULT_MERCURY_ID = "username2"
DEFAULT_MERCURY_KEY = "password2"

BOOTSTRAP_NAME = "bootstrap"
BOOTSTRAP_LISTEN_PORT = 5688
BOOTSTRAP_P2P_PORT = 8000
PARTICIPANT_BASE_PORT = 6688
PARTICIPANT_PREFIX = "participant-"

_HEX_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")
_DURATION = re.compile(r"^(\d+(?:\.\d+)?)(ns|us|ms|s|m|h)$")
_UNIT_SECONDS = {"ns": 1e-9, "us": 1e-6, "ms": 1e-3, "s": 1.0, "m": 60.0, "h": 3600.0}


def checksum_address(value: str) -> str:
    """Validate ``value`` as a 20-byte hex address and return its checksum form."""

    text = value.strip() if isinstance(value, str) else ""
    if not _HEX_ADDRESS.match(text):
        raise InvalidAddressError(f"not a 20-byte hex address: {value!r}")
    return Web3.to_checksum_address(text)


def parse_duration(value: Any) -> timedelta:
    """Parse ``"400ms"``/``"5s"`` style strings; numbers are taken as seconds."""

    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    match = _DURATION.match(str(value).strip())
    if match is None:
        raise ValueError(f"invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=float(amount) * _UNIT_SECONDS[unit])


def format_duration(value: timedelta) -> str:
    millis = round(value.total_seconds() * 1000)
    if millis % 1000 == 0:
        return f"{millis // 1000}s"
    return f"{millis}ms"


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True, extra="ignore")


class _Contract(_Record):
    address: str

    @field_validator("address")
    @classmethod
    def validate_address(cls, value: str) -> str:
        return checksum_address(value)


class LinkTokenContract(_Contract):
    mocked: bool = False


class FeedContract(_Contract):
    mocked: bool = False
    default_answer: int = 0


class RegistryMode(int, Enum):
    DEFAULT = 0
    ARBITRUM = 1
    OPTIMISM = 2

    @classmethod
    def from_name(cls, name: str) -> "RegistryMode":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            return cls.DEFAULT


class OnchainConfig(_Record):
    payment_premium_ppb: int = Field(200_000_000, alias="PaymentPremiumPPB")
    flat_fee_micro_link: int = 1
    check_gas_limit: int = 6_500_000
    staleness_seconds: int = 90_000
    gas_ceiling_multiplier: int = 1
    min_upkeep_spend: int = 0
    max_perform_gas: int = 5_000_000
    max_check_data_size: int = 5_000
    max_perform_data_size: int = 5_000
    max_revert_data_size: int = 5_000
    fallback_gas_price: int = 200_000_000
    fallback_link_price: int = 5_000_000_000_000_000_000
    transcoder: str = ZERO_ADDRESS
    registrars: List[str] = Field(default_factory=list)
    upkeep_privilege_manager: str = ZERO_ADDRESS

    @field_validator("transcoder", "upkeep_privilege_manager")
    @classmethod
    def validate_optional_address(cls, value: str) -> str:
        if value in ("", "0x"):
            return ZERO_ADDRESS
        return checksum_address(value)

    @field_validator("registrars")
    @classmethod
    def validate_registrars(cls, value: List[str]) -> List[str]:
        return [checksum_address(item) for item in value]


class OffchainConfig(_Record):
    perform_lockout_window: int = 75_000
    min_confirmations: int = 0
    target_probability: str = "0.999"
    target_in_rounds: int = 1
    gas_limit_per_report: int = 5_300_000
    gas_overhead_per_upkeep: int = 300_000
    max_upkeep_batch_size: int = 1
    mercury_lookup: bool = False

    def plugin_config(self) -> dict:
        """Reporting-plugin configuration as the nodes expect it."""

        return {
            "performLockoutWindow": self.perform_lockout_window,
            "targetProbability": self.target_probability,
            "targetInRounds": self.target_in_rounds,
            "minConfirmations": self.min_confirmations,
            "gasLimitPerReport": self.gas_limit_per_report,
            "gasOverheadPerUpkeep": self.gas_overhead_per_upkeep,
            "maxUpkeepBatchSize": self.max_upkeep_batch_size,
            "mercuryLookup": self.mercury_lookup,
        }


_NETWORK_DEFAULTS = {
    "delta_progress": timedelta(seconds=5),
    "delta_resend": timedelta(seconds=10),
    "delta_initial": timedelta(milliseconds=400),
    "delta_round": timedelta(milliseconds=2500),
    "delta_grace": timedelta(milliseconds=40),
    "delta_certified_commit_request": timedelta(milliseconds=300),
    "delta_stage": timedelta(seconds=30),
    "max_rounds": 50,
    "max_duration_query": timedelta(milliseconds=20),
    "max_duration_observation": timedelta(milliseconds=1600),
    "max_duration_should_accept_finalized_report": timedelta(milliseconds=20),
    "max_duration_should_transmit_accepted_report": timedelta(milliseconds=20),
    "max_faulty_nodes": 1,
}
_DURATION_FIELDS = tuple(name for name, default in _NETWORK_DEFAULTS.items() if isinstance(default, timedelta))


class NetworkConfig(_Record):
    """OCR3 protocol timing and fault tolerance."""

    delta_progress: timedelta = _NETWORK_DEFAULTS["delta_progress"]
    delta_resend: timedelta = _NETWORK_DEFAULTS["delta_resend"]
    delta_initial: timedelta = _NETWORK_DEFAULTS["delta_initial"]
    delta_round: timedelta = _NETWORK_DEFAULTS["delta_round"]
    delta_grace: timedelta = _NETWORK_DEFAULTS["delta_grace"]
    delta_certified_commit_request: timedelta = _NETWORK_DEFAULTS["delta_certified_commit_request"]
    delta_stage: timedelta = _NETWORK_DEFAULTS["delta_stage"]
    max_rounds: int = _NETWORK_DEFAULTS["max_rounds"]
    max_duration_query: timedelta = _NETWORK_DEFAULTS["max_duration_query"]
    max_duration_observation: timedelta = _NETWORK_DEFAULTS["max_duration_observation"]
    max_duration_should_accept_finalized_report: timedelta = _NETWORK_DEFAULTS["max_duration_should_accept_finalized_report"]
    max_duration_should_transmit_accepted_report: timedelta = _NETWORK_DEFAULTS["max_duration_should_transmit_accepted_report"]
    max_faulty_nodes: int = _NETWORK_DEFAULTS["max_faulty_nodes"]

    @field_validator(*_DURATION_FIELDS, mode="before")
    @classmethod
    def validate_duration(cls, value: Any) -> timedelta:
        return parse_duration(value)

    @field_serializer(*_DURATION_FIELDS)
    def serialize_duration(self, value: timedelta) -> str:
        return format_duration(value)

    def with_defaults(self) -> "NetworkConfig":
        """Return a copy where zero values are replaced by the protocol defaults."""

        updates = {}
        for name, default in _NETWORK_DEFAULTS.items():
            current = getattr(self, name)
            if not current:
                updates[name] = default
        return self.model_copy(update=updates)


class RegistryContract(_Contract):
    version: str = "v2.1"
    mode: RegistryMode = RegistryMode.DEFAULT
    onchain: OnchainConfig = Field(default_factory=OnchainConfig)
    offchain: OffchainConfig = Field(default_factory=OffchainConfig)
    ocr_network: NetworkConfig = Field(default_factory=NetworkConfig, alias="OCRNetwork")


class AutoApproval(_Record):
    trigger_type: int
    auto_approve_type: int
    auto_approve_max_allowed: int


def default_auto_approvals() -> List[AutoApproval]:
    return [
        AutoApproval(trigger_type=0, auto_approve_type=2, auto_approve_max_allowed=1000),
        AutoApproval(trigger_type=1, auto_approve_type=2, auto_approve_max_allowed=1000),
    ]


class RegistrarContract(_Contract):
    version: str = "v2.1"
    min_link: int = 0
    auto_approvals: List[AutoApproval] = Field(default_factory=default_auto_approvals)


class LoadType(str, Enum):
    CONDITIONAL = "conditional"
    LOG_TRIGGER = "log-trigger"


class VerifiableLoadContract(_Contract):
    load_type: LoadType
    use_mercury: bool = False
    use_arbitrum: bool = False


class Verifier(_Record):
    contracts_directory: str = ""
    explorer_api_key: str = ""
    network_name: str = ""


class NodeConfig(_Record):
    """One containerised node of the environment."""

    host_type: str = "docker"
    name: str
    image: str
    management_url: str = Field("", alias="ManagementURL")
    log_level: str = "error"
    listen_port: int
    login_name: str = DEFAULT_NODE_LOGIN
    login_password: str = DEFAULT_NODE_PASSWORD

    is_bootstrap: bool = False
    bootstrap_address: str = ""
    bootstrap_listen_port: int = BOOTSTRAP_P2P_PORT

    private_key_alias: str = ""
    address: str = ""
    chain_id: int = Field(DEFAULT_CHAIN_ID, alias="ChainID")
    ws_url: str = Field("", alias="WSURL")
    http_url: str = Field("", alias="HTTPURL")

    mercury_legacy_url: str = Field(DEFAULT_MERCURY_LEGACY_URL, alias="MercuryLegacyURL")
    mercury_url: str = Field(DEFAULT_MERCURY_URL, alias="MercuryURL")
    mercury_id: str = Field(DEFAULT_MERCURY_ID, alias="MercuryID")
    mercury_key: str = DEFAULT_MERCURY_KEY

    off_chain_public_key: str = ""
    config_public_key: str = ""
    onchain_public_key: str = ""
    p2p_key_id: str = Field("", alias="P2PKeyID")

    @field_validator("address")
    @classmethod
    def validate_address(cls, value: str) -> str:
        return checksum_address(value) if value else ""


def participant_name(index: int) -> str:
    return f"{PARTICIPANT_PREFIX}{index}"


class Environment(BaseModel):
    """Everything the tool knows about one named environment."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    group_name: str = Field("", alias="group-name")
    ws_url: str = Field("", alias="ws-url")
    http_url: str = Field("", alias="http-url")
    chain_id: int = Field(DEFAULT_CHAIN_ID, alias="chain-id")
    private_key_alias: str = Field(DEFAULT_KEY_ALIAS, alias="private-key-alias")
    gas_limit: int = Field(DEFAULT_DEPLOYER_GAS_LIMIT, alias="deployer-gas-limit")
    verifier: Optional[Verifier] = Field(None, alias="Verifier")

    link_token: Optional[LinkTokenContract] = Field(None, alias="LinkToken")
    link_eth: Optional[FeedContract] = Field(None, alias="LinkETH")
    fast_gas: Optional[FeedContract] = Field(None, alias="FastGas")
    registry: Optional[RegistryContract] = Field(None, alias="Registry")
    registrar: Optional[RegistrarContract] = Field(None, alias="Registrar")
    log_load: Optional[VerifiableLoadContract] = Field(None, alias="LogLoad")
    conditional_load: Optional[VerifiableLoadContract] = Field(None, alias="ConditionalLoad")

    bootstrap: Optional[NodeConfig] = Field(None, alias="Bootstrap")
    participants: List[NodeConfig] = Field(default_factory=list, alias="Participants")

    @classmethod
    def new(cls, name: str) -> "Environment":
        return cls(group_name=name)

    @model_validator(mode="after")
    def check_invariants(self) -> "Environment":
        for index, node in enumerate(self.participants):
            if node.name != participant_name(index):
                raise ValueError(f"participant at position {index} is named {node.name!r}")
            if node.listen_port != PARTICIPANT_BASE_PORT + index:
                raise ValueError(f"{node.name} must listen on {PARTICIPANT_BASE_PORT + index}, not {node.listen_port}")
        if self.registry is not None:
            expected = [self.registrar.address] if self.registrar is not None else []
            if self.registry.onchain.registrars != expected:
                self.registry.onchain.registrars = expected
        return self

    # Persistence ------------------------------------------------------------

    def to_document(self) -> dict:
        """Return the TOML-ready mapping for this record."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    # Contract preconditions ---------------------------------------------------

    def require_link_token(self) -> LinkTokenContract:
        if self.link_token is None:
            raise MissingContractError("link token not available; deploy or set its address first")
        return self.link_token

    def require_link_eth(self) -> FeedContract:
        if self.link_eth is None:
            raise MissingContractError("link-eth feed not available; deploy or set its address first")
        return self.link_eth

    def require_fast_gas(self) -> FeedContract:
        if self.fast_gas is None:
            raise MissingContractError("fast-gas feed not available; deploy or set its address first")
        return self.fast_gas

    def require_registry(self) -> RegistryContract:
        if self.registry is None:
            raise MissingContractError("registry not available; deploy or set its address first")
        return self.registry

    def require_registrar(self) -> RegistrarContract:
        if self.registrar is None:
            raise RegistrarNotAvailable("registrar not available; deploy or set its address first")
        return self.registrar

    def require_bootstrap(self) -> NodeConfig:
        if self.bootstrap is None or not self.bootstrap.bootstrap_address:
            raise BootstrapNotAvailable("bootstrap node not available; run 'network bootstrap set' first")
        return self.bootstrap

    def load_contract(self, load_type: LoadType) -> Optional[VerifiableLoadContract]:
        if load_type is LoadType.CONDITIONAL:
            return self.conditional_load
        return self.log_load

    def set_load_contract(self, contract: VerifiableLoadContract) -> None:
        if contract.load_type is LoadType.CONDITIONAL:
            self.conditional_load = contract
        else:
            self.log_load = contract

    def set_registrar(self, registrar: Optional[RegistrarContract]) -> None:
        self.registrar = registrar
        if self.registry is not None:
            self.registry.onchain.registrars = [registrar.address] if registrar is not None else []

    def set_registry(self, registry: Optional[RegistryContract]) -> None:
        self.registry = registry
        if registry is not None:
            registry.onchain.registrars = [self.registrar.address] if self.registrar is not None else []

    # Node roster --------------------------------------------------------------

    def next_participant_index(self) -> int:
        return len(self.participants)

    def find_participant(self, ident: str) -> int:
        """Return the roster position of a participant given its index or name."""

        text = ident.strip()
        for position, node in enumerate(self.participants):
            if text in (node.name, str(position)):
                return position
        raise NodeNotFoundError(f"no participant named or numbered {ident!r}")

    def find_node(self, ident: str) -> NodeConfig:
        if self.bootstrap is not None and ident.strip() == self.bootstrap.name:
            return self.bootstrap
        return self.participants[self.find_participant(ident)]

    def nodes(self) -> List[NodeConfig]:
        roster = [self.bootstrap] if self.bootstrap is not None else []
        return roster + list(self.participants)


class Key(BaseModel):
    alias: str
    value: str
    address: str


class PrivateKeys(BaseModel):
    """The process-wide key vault."""

    keys: List[Key] = Field(default_factory=list)

    @model_validator(mode="after")
    def collapse_duplicate_aliases(self) -> "PrivateKeys":
        # Later entries win, at the slot of the first one, as with put().
        collapsed = {}
        for key in self.keys:
            collapsed[key.alias] = key
        if len(collapsed) != len(self.keys):
            self.keys = list(collapsed.values())
        return self

    def aliases(self) -> List[str]:
        return [key.alias for key in self.keys]

    def get(self, alias: str) -> Optional[Key]:
        for key in self.keys:
            if key.alias == alias:
                return key
        return None

    def put(self, key: Key) -> None:
        """Insert ``key``, replacing any entry that already uses its alias."""

        for position, existing in enumerate(self.keys):
            if existing.alias == key.alias:
                self.keys[position] = key
                return
        self.keys.append(key)

    def delete(self, pattern: str) -> Optional[Key]:
        """Remove the first key matching ``pattern``; ``name*`` matches by prefix."""

        if pattern.endswith("*"):
            prefix = pattern[:-1]
            matches = [key for key in self.keys if key.alias.startswith(prefix)]
        else:
            matches = [key for key in self.keys if key.alias == pattern]
        if not matches:
            return None
        self.keys.remove(matches[0])
        return matches[0]


__all__ = [
    "AutoApproval",
    "BOOTSTRAP_LISTEN_PORT",
    "BOOTSTRAP_NAME",
    "BOOTSTRAP_P2P_PORT",
    "DEFAULT_CHAIN_ID",
    "DEFAULT_DEPLOYER_GAS_LIMIT",
    "DEFAULT_KEY_ALIAS",
    "DEFAULT_NODE_LOGIN",
    "DEFAULT_NODE_PASSWORD",
    "Environment",
    "FeedContract",
    "Key",
    "LinkTokenContract",
    "LoadType",
    "NetworkConfig",
    "NodeConfig",
    "OffchainConfig",
    "OnchainConfig",
    "PARTICIPANT_BASE_PORT",
    "PrivateKeys",
    "RegistrarContract",
    "RegistryContract",
    "RegistryMode",
    "VerifiableLoadContract",
    "Verifier",
    "ZERO_ADDRESS",
    "checksum_address",
    "default_auto_approvals",
    "format_duration",
    "parse_duration",
    "participant_name",
]
