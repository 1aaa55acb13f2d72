"""Fixed TOML documents handed to the node at bring-up."""

from __future__ import annotations

from ..state.models import NodeConfig

MERCURY_CREDENTIAL_NAME = "cred1"
CONTRACT_VERSION = "v2.1"

NODE_TOML = """[Log]
JSONConsole = true
Level = '{log_level}'
[WebServer]
AllowOrigins = '*'
SecureCookies = false
SessionTimeout = '999h0m0s'
[WebServer.TLS]
HTTPSPort = 0
[Feature]
LogPoller = true
[OCR2]
Enabled = true
[P2P]
[P2P.V2]
Enabled = true
[Keeper]
TurnLookBack = 0
[[EVM]]
ChainID = '{chain_id}'
[[EVM.Nodes]]
Name = 'node-0'
WSURL = '{ws_url}'
HTTPURL = '{http_url}'
"""

SECRET_TOML = """
[Mercury.Credentials.{credential}]
LegacyURL = '{legacy_url}'
URL = '{url}'
Username = '{username}'
Password = '{password}'
"""

P2P_TOML = """[P2P]
[P2P.V2]
ListenAddresses = ["0.0.0.0:{port}"]"""

BOOTSTRAP_JOB = """type = "bootstrap"
schemaVersion = 1
name = "ocr2keeper bootstrap node"
contractID = "{contract}"
relay = "evm"

[relayConfig]
chainID = {chain_id}"""

AUTOMATION_JOB = """type = "offchainreporting2"
pluginType = "ocr2automation"
relay = "evm"
name = "ocr2-automation"
forwardingAllowed = false
schemaVersion = 1
contractID = "{contract}"
contractConfigTrackerPollInterval = "15s"
ocrKeyBundleID = "{bundle_id}"
transmitterID = "{transmitter}"
p2pv2Bootstrappers = [
  "{bootstrapper}"
]

[relayConfig]
chainID = {chain_id}

[pluginConfig]
maxServiceWorkers = 100
cacheEvictionInterval = "1s"
contractVersion = "{version}"
mercuryCredentialName = "{credential}\""""


def node_toml(node: NodeConfig) -> str:
    return NODE_TOML.format(
        log_level=node.log_level,
        chain_id=node.chain_id,
        ws_url=node.ws_url,
        http_url=node.http_url,
    )


def secret_toml(node: NodeConfig) -> str:
    return SECRET_TOML.format(
        credential=MERCURY_CREDENTIAL_NAME,
        legacy_url=node.mercury_legacy_url,
        url=node.mercury_url,
        username=node.mercury_id,
        password=node.mercury_key,
    )


def p2p_toml(port: int) -> str:
    return P2P_TOML.format(port=port)


def bootstrap_job(contract: str, chain_id: int) -> str:
    return BOOTSTRAP_JOB.format(contract=contract, chain_id=chain_id)


def automation_job(
    contract: str,
    bundle_id: str,
    transmitter: str,
    bootstrapper: str,
    chain_id: int,
    *,
    version: str = CONTRACT_VERSION,
    credential: str = MERCURY_CREDENTIAL_NAME,
) -> str:
    return AUTOMATION_JOB.format(
        contract=contract,
        bundle_id=bundle_id,
        transmitter=transmitter,
        bootstrapper=bootstrapper,
        chain_id=chain_id,
        version=version,
        credential=credential,
    )


__all__ = [
    "AUTOMATION_JOB",
    "BOOTSTRAP_JOB",
    "CONTRACT_VERSION",
    "MERCURY_CREDENTIAL_NAME",
    "automation_job",
    "bootstrap_job",
    "node_toml",
    "p2p_toml",
    "secret_toml",
]
