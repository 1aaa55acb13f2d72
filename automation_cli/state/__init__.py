"""State store: key vault, environment records and node records."""

from .models import (
    Environment,
    FeedContract,
    Key,
    LinkTokenContract,
    LoadType,
    NodeConfig,
    PrivateKeys,
    RegistrarContract,
    RegistryContract,
    RegistryMode,
    VerifiableLoadContract,
)
from .store import StateStore

__all__ = [
    "Environment",
    "FeedContract",
    "Key",
    "LinkTokenContract",
    "LoadType",
    "NodeConfig",
    "PrivateKeys",
    "RegistrarContract",
    "RegistryContract",
    "RegistryMode",
    "StateStore",
    "VerifiableLoadContract",
]
