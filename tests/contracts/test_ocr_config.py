"""setConfig argument assembly."""

from __future__ import annotations

import json
from dataclasses import replace

import pytest
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from eth_utils import keccak

from automation_cli.contracts.ocr import OFFCHAIN_CONFIG_VERSION, OracleIdentity, build_set_config_args
from automation_cli.contracts.offchain_proto import OffchainConfigProto
from automation_cli.errors import PreconditionError, PublicKeyCastingError
from automation_cli.state.models import NetworkConfig, OffchainConfig, OnchainConfig

SECRET = bytes(range(16))


def _oracles(count):
    private_keys = [X25519PrivateKey.generate() for _ in range(count)]
    oracles = [
        OracleIdentity(
            onchain_public_key=f"ocr2on_evm_{index + 1:040x}",
            off_chain_public_key=f"ocr2off_evm_{index + 1:064x}",
            config_public_key="ocr2cfg_evm_" + key.public_key().public_bytes_raw().hex(),
            peer_id=f"peer-{index}",
            transmitter=f"0x{0xA0 + index:040x}",
        )
        for index, key in enumerate(private_keys)
    ]
    return oracles, private_keys


def test_arguments_preserve_oracle_order():
    oracles, _ = _oracles(4)
    args = build_set_config_args(oracles, OnchainConfig(), OffchainConfig(), NetworkConfig(), shared_secret=SECRET)

    assert [signer.lower() for signer in args.signers] == [f"0x{index + 1:040x}" for index in range(4)]
    assert [item.lower() for item in args.transmitters] == [f"0x{0xA0 + index:040x}" for index in range(4)]
    assert args.f == 1
    assert args.offchain_config_version == OFFCHAIN_CONFIG_VERSION

    config = OffchainConfigProto.FromString(args.offchain_config)
    assert list(config.peer_ids) == ["peer-0", "peer-1", "peer-2", "peer-3"]
    assert list(config.offchain_public_keys) == [(index + 1).to_bytes(32, "big") for index in range(4)]
    assert list(config.s) == [1, 1, 1, 1]
    assert json.loads(config.reporting_plugin_config)["performLockoutWindow"] == 75_000


def test_offchain_config_is_a_protobuf_message_with_nanosecond_durations():
    oracles, _ = _oracles(4)
    args = build_set_config_args(oracles, OnchainConfig(), OffchainConfig(), NetworkConfig(), shared_secret=SECRET)

    assert not args.offchain_config.startswith(b"{")
    config = OffchainConfigProto.FromString(args.offchain_config)
    assert config.delta_progress_nanoseconds == 5_000_000_000
    assert config.delta_initial_nanoseconds == 400_000_000
    assert config.delta_round_nanoseconds == 2_500_000_000
    assert config.delta_grace_nanoseconds == 40_000_000
    assert config.delta_certified_commit_request_nanoseconds == 300_000_000
    assert config.r_max == 50
    assert config.max_duration_observation_nanoseconds == 1_600_000_000
    assert config.SerializeToString(deterministic=True) == args.offchain_config


def test_every_participant_can_recover_the_shared_secret():
    oracles, private_keys = _oracles(4)
    args = build_set_config_args(oracles, OnchainConfig(), OffchainConfig(), NetworkConfig(), shared_secret=SECRET)
    encryptions = OffchainConfigProto.FromString(args.offchain_config).shared_secret_encryptions
    point = X25519PublicKey.from_public_bytes(encryptions.diffieHellmanPoint)

    assert len(encryptions.encryptions) == 4
    for private_key, ciphertext in zip(private_keys, encryptions.encryptions):
        key = keccak(private_key.exchange(point))[:16]
        decryptor = Cipher(algorithms.AES(key), modes.ECB()).decryptor()
        assert decryptor.update(ciphertext) + decryptor.finalize() == SECRET
    assert encryptions.sharedSecretHash == keccak(SECRET)


def test_too_few_oracles_for_fault_tolerance():
    oracles, _ = _oracles(3)
    with pytest.raises(PreconditionError, match="cannot tolerate 1"):
        build_set_config_args(oracles, OnchainConfig(), OffchainConfig(), NetworkConfig())


def test_zero_faulty_nodes_takes_the_default():
    oracles, _ = _oracles(4)
    args = build_set_config_args(oracles, OnchainConfig(), OffchainConfig(), NetworkConfig(max_faulty_nodes=0))
    assert args.f == 1


def test_malformed_key_is_rejected():
    oracles, _ = _oracles(4)
    broken = replace(oracles[0], onchain_public_key="ocr2on_evm_1234")
    with pytest.raises(PublicKeyCastingError):
        build_set_config_args([broken, *oracles[1:]], OnchainConfig(), OffchainConfig(), NetworkConfig())
