"""Bootstrap and participant roster management against fake containers and nodes."""

from __future__ import annotations

import asyncio

import pytest
from eth_account import Account

from automation_cli.errors import (
    AuthenticationError,
    BootstrapNotAvailable,
    MissingContractError,
    NodeNotFoundError,
    PreconditionError,
)
from automation_cli.workflows import network
from automation_cli.workflows.contracts import set_registry_address
from automation_cli.workflows.keys import store_key

REGISTRY = "0x" + "12" * 20
IMAGE = "smartcontract/chainlink:2.5.0"


def _bring_up(command, participants: int = 0) -> None:
    set_registry_address(command, REGISTRY)
    asyncio.run(network.set_bootstrap(command, IMAGE))
    if participants:
        asyncio.run(network.add_participants(command, IMAGE, count=participants))


def test_bootstrap_requires_registry(command):
    with pytest.raises(MissingContractError):
        asyncio.run(network.set_bootstrap(command, IMAGE))


def test_participants_require_bootstrap(command):
    set_registry_address(command, REGISTRY)

    with pytest.raises(BootstrapNotAvailable):
        asyncio.run(network.add_participants(command, IMAGE))


def test_count_must_be_positive(command):
    with pytest.raises(PreconditionError):
        asyncio.run(network.add_participants(command, IMAGE, count=0))


def test_bootstrap_is_recorded(command, fake_engine, fake_nodes):
    _bring_up(command)

    bootstrap = command.load().bootstrap
    assert bootstrap.bootstrap_address == f"{fake_nodes.node('bootstrap').peer_id}@dev-bootstrap:8000"
    assert bootstrap.listen_port == 5688
    assert bootstrap.is_bootstrap
    assert fake_engine.closed


def test_participants_get_consecutive_indices_and_ports(command, fake_nodes):
    _bring_up(command, participants=2)
    asyncio.run(network.add_participants(command, IMAGE))

    participants = command.load().participants
    assert [node.name for node in participants] == ["participant-0", "participant-1", "participant-2"]
    assert [node.listen_port for node in participants] == [6688, 6689, 6690]
    assert [node.address for node in participants] == [
        fake_nodes.node(node.name).eth_address for node in participants
    ]
    assert all(node.management_url == f"http://localhost:{node.listen_port}" for node in participants)


def test_participant_imports_requested_key(keyed_command, deployer_key):
    _bring_up(keyed_command)

    (node,) = asyncio.run(network.add_participants(keyed_command, IMAGE, key_alias="default"))

    assert node.address == Account.from_key(f"0x{deployer_key}").address
    assert keyed_command.load().participants[0].private_key_alias == "default"


def test_participant_add_uses_global_key(command, deployer_key):
    _bring_up(command)
    store_key(command, "ops", deployer_key)
    command.key_override = "ops"

    (node,) = asyncio.run(network.add_participants(command, IMAGE))

    assert node.address == Account.from_key(f"0x{deployer_key}").address
    assert command.load().participants[0].private_key_alias == "ops"


def test_participant_reset_uses_global_key(command, deployer_key):
    _bring_up(command, participants=1)
    store_key(command, "ops", deployer_key)
    command.key_override = "ops"

    node = asyncio.run(network.reset_participant(command, "0", IMAGE))

    assert node.private_key_alias == "ops"
    assert node.address == Account.from_key(f"0x{deployer_key}").address


def test_failed_add_saves_nothing_and_rerun_adopts_containers(command, fake_engine, fake_nodes):
    _bring_up(command)
    fake_nodes.node("participant-0")
    fake_nodes.node("participant-1").expire_next = 2

    with pytest.raises(AuthenticationError):
        asyncio.run(network.add_participants(command, IMAGE, count=2))
    assert command.load().participants == []
    first_id = fake_engine.by_name("dev-participant-0").id

    asyncio.run(network.add_participants(command, IMAGE, count=2))

    assert [node.name for node in command.load().participants] == ["participant-0", "participant-1"]
    assert fake_engine.by_name("dev-participant-0").id == first_id
    assert len(fake_nodes.node("participant-0").jobs) == 1


def test_reset_participant_keeps_slot(command, fake_engine):
    _bring_up(command, participants=2)
    before = fake_engine.by_name("dev-participant-1").id

    node = asyncio.run(network.reset_participant(command, "1", IMAGE, log_level="debug"))

    assert node.name == "participant-1"
    assert node.log_level == "debug"
    assert fake_engine.by_name("dev-participant-1").id != before
    assert [item.name for item in command.load().participants] == ["participant-0", "participant-1"]


def test_reset_unknown_participant(command):
    _bring_up(command, participants=1)

    with pytest.raises(NodeNotFoundError):
        asyncio.run(network.reset_participant(command, "participant-7", IMAGE))


def test_remove_last_participant(command, fake_engine):
    _bring_up(command, participants=2)

    removed = asyncio.run(network.remove_participants(command))

    assert removed == ["participant-1"]
    assert fake_engine.by_name("dev-participant-1") is None
    assert fake_engine.by_name("dev-participant-1-postgres") is None
    assert [node.name for node in command.load().participants] == ["participant-0"]


def test_remove_with_no_participants(command):
    _bring_up(command)

    with pytest.raises(NodeNotFoundError):
        asyncio.run(network.remove_participants(command))


def test_remove_all(command, fake_engine):
    _bring_up(command, participants=2)

    removed = asyncio.run(network.remove_participants(command, remove_all=True))

    assert removed == ["participant-1", "participant-0", "bootstrap"]
    assert fake_engine.containers == {}
    environment = command.load()
    assert environment.participants == []
    assert environment.bootstrap is None


def test_fund_participant(keyed_command, fake_gateway):
    _bring_up(keyed_command, participants=1)
    address = keyed_command.load().participants[0].address

    asyncio.run(network.fund_node(keyed_command, "participant-0", 10**18))

    assert fake_gateway.transfers == [(address, 10**18)]


def test_bootstrap_has_nothing_to_fund(keyed_command):
    _bring_up(keyed_command)

    with pytest.raises(PreconditionError):
        asyncio.run(network.fund_node(keyed_command, "bootstrap", 1))


def test_list_nodes_puts_bootstrap_first(command):
    _bring_up(command, participants=1)

    assert [node.name for node in network.list_nodes(command)] == ["bootstrap", "participant-0"]
