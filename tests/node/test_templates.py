from __future__ import annotations

import tomllib

from automation_cli.node.templates import automation_job, bootstrap_job, node_toml, p2p_toml, secret_toml
from automation_cli.state.models import NodeConfig

REGISTRY = "0x" + "12" * 20


def test_automation_job_is_valid_toml():
    document = tomllib.loads(
        automation_job(REGISTRY, "bundle-1", "0x" + "ab" * 20, "12D3KooWPeer0@dev-bootstrap:8000", 1337)
    )

    assert document["type"] == "offchainreporting2"
    assert document["contractID"] == REGISTRY
    assert document["p2pv2Bootstrappers"] == ["12D3KooWPeer0@dev-bootstrap:8000"]
    assert document["relayConfig"] == {"chainID": 1337}
    assert document["pluginConfig"]["contractVersion"] == "v2.1"
    assert document["pluginConfig"]["mercuryCredentialName"] == "cred1"


def test_bootstrap_job_targets_contract():
    document = tomllib.loads(bootstrap_job(REGISTRY, 5))

    assert document["type"] == "bootstrap"
    assert document["contractID"] == REGISTRY
    assert document["relayConfig"]["chainID"] == 5


def test_node_and_secret_documents():
    node = NodeConfig(
        name="participant-1",
        image="chainlink",
        listen_port=6689,
        log_level="debug",
        chain_id=31337,
        ws_url="ws://127.0.0.1:8546",
        http_url="http://127.0.0.1:8545",
        mercury_id="operator",
    )

    config = tomllib.loads(node_toml(node))
    assert config["Log"]["Level"] == "debug"
    assert config["EVM"][0]["ChainID"] == "31337"
    assert config["EVM"][0]["Nodes"][0]["WSURL"] == "ws://127.0.0.1:8546"

    secrets = tomllib.loads(secret_toml(node))
    assert secrets["Mercury"]["Credentials"]["cred1"]["Username"] == "operator"

    assert tomllib.loads(p2p_toml(8000))["P2P"]["V2"]["ListenAddresses"] == ["0.0.0.0:8000"]
