"""Contract catalog: deployable kinds and the interactions built on them."""

from .artifacts import Artifact, ArtifactStore
from .catalog import ContractKind, Deployable, FeedSpec, LinkTokenSpec, LoadSpec, RegistrarSpec, RegistrySpec
from .link import LinkToken
from .load import DelayStats, LoadStats, VerifiableLoad
from .ocr import OracleIdentity, build_set_config_args
from .registry import Registry

__all__ = [
    "Artifact",
    "ArtifactStore",
    "ContractKind",
    "Deployable",
    "DelayStats",
    "FeedSpec",
    "LinkToken",
    "LinkTokenSpec",
    "LoadSpec",
    "LoadStats",
    "OracleIdentity",
    "Registry",
    "RegistrarSpec",
    "RegistrySpec",
    "VerifiableLoad",
    "build_set_config_args",
]
