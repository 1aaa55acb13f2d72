"""Assembly of the OCR3 ``setConfig`` arguments for the registry."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, List, Optional, Sequence, Tuple

from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from eth_utils import keccak

from ..errors import PreconditionError, PublicKeyCastingError
from ..state.models import NetworkConfig, OffchainConfig, OnchainConfig, checksum_address
from .offchain_proto import OffchainConfigProto, SharedSecretEncryptionsProto

OFFCHAIN_CONFIG_VERSION = 30

OFFCHAIN_KEY_PREFIX = "ocr2off_evm_"
CONFIG_KEY_PREFIX = "ocr2cfg_evm_"
ONCHAIN_KEY_PREFIX = "ocr2on_evm_"

SHARED_SECRET_SIZE = 16


@dataclass(frozen=True)
class OracleIdentity:
    """Public material one participant contributes to the oracle set."""

    onchain_public_key: str
    off_chain_public_key: str
    config_public_key: str
    peer_id: str
    transmitter: str


@dataclass(frozen=True)
class SetConfigArgs:
    signers: List[str]
    transmitters: List[str]
    f: int
    onchain_config: Tuple[Any, ...]
    offchain_config_version: int
    offchain_config: bytes


def _decode_key(value: str, prefix: str, size: int, label: str) -> bytes:
    text = value.strip().removeprefix(prefix).removeprefix("0x")
    try:
        raw = bytes.fromhex(text)
    except ValueError as exc:
        raise PublicKeyCastingError(f"{label} {value!r} is not hex") from exc
    if len(raw) != size:
        raise PublicKeyCastingError(f"{label} {value!r} decodes to {len(raw)} bytes, expected {size}")
    return raw


def _nanoseconds(value: timedelta) -> int:
    return round(value.total_seconds() * 1_000_000_000)


def encrypt_shared_secret(
    config_keys: Sequence[bytes],
    shared_secret: bytes,
    ephemeral: Optional[X25519PrivateKey] = None,
) -> SharedSecretEncryptionsProto:
    """Encrypt ``shared_secret`` once for every participant's X25519 config key.

    Each participant derives the AES-128 key as the first 16 bytes of the
    keccak hash of its X25519 exchange with ``diffieHellmanPoint``.
    """

    if len(shared_secret) != SHARED_SECRET_SIZE:
        raise ValueError("shared secret must be 16 bytes")
    secret_key = ephemeral or X25519PrivateKey.generate()
    encryptions = []
    for public in config_keys:
        point = secret_key.exchange(X25519PublicKey.from_public_bytes(public))
        key = keccak(point)[:SHARED_SECRET_SIZE]
        encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
        encryptions.append(encryptor.update(shared_secret) + encryptor.finalize())
    return SharedSecretEncryptionsProto(
        diffieHellmanPoint=secret_key.public_key().public_bytes_raw(),
        sharedSecretHash=keccak(shared_secret),
        encryptions=encryptions,
    )


def onchain_config_tuple(onchain: OnchainConfig) -> Tuple[Any, ...]:
    """Positional tuple matching the registry's ``OnchainConfig`` struct."""

    return (
        onchain.payment_premium_ppb,
        onchain.flat_fee_micro_link,
        onchain.check_gas_limit,
        onchain.staleness_seconds,
        onchain.gas_ceiling_multiplier,
        onchain.min_upkeep_spend,
        onchain.max_perform_gas,
        onchain.max_check_data_size,
        onchain.max_perform_data_size,
        onchain.max_revert_data_size,
        onchain.fallback_gas_price,
        onchain.fallback_link_price,
        checksum_address(onchain.transcoder),
        [checksum_address(address) for address in onchain.registrars],
        checksum_address(onchain.upkeep_privilege_manager),
    )


def build_set_config_args(
    oracles: Sequence[OracleIdentity],
    onchain: OnchainConfig,
    offchain: OffchainConfig,
    network: NetworkConfig,
    *,
    shared_secret: Optional[bytes] = None,
    ephemeral: Optional[X25519PrivateKey] = None,
) -> SetConfigArgs:
    """Turn participant key bundles and the three config blocks into call arguments.

    The order of ``oracles`` is the on-chain oracle order and is preserved.
    """

    network = network.with_defaults()
    f = network.max_faulty_nodes
    if not oracles:
        raise PreconditionError("no participants to configure")
    if len(oracles) <= 3 * f:
        raise PreconditionError(f"{len(oracles)} participants cannot tolerate {f} faulty nodes; need more than {3 * f}")

    signers: List[str] = []
    transmitters: List[str] = []
    offchain_keys: List[bytes] = []
    config_keys: List[bytes] = []
    peer_ids: List[str] = []
    for oracle in oracles:
        onchain_key = _decode_key(oracle.onchain_public_key, ONCHAIN_KEY_PREFIX, 20, "on-chain public key")
        signers.append(checksum_address("0x" + onchain_key.hex()))
        offchain_keys.append(_decode_key(oracle.off_chain_public_key, OFFCHAIN_KEY_PREFIX, 32, "off-chain public key"))
        config_keys.append(_decode_key(oracle.config_public_key, CONFIG_KEY_PREFIX, 32, "config public key"))
        peer_ids.append(oracle.peer_id)
        transmitters.append(checksum_address(oracle.transmitter))

    secret = shared_secret if shared_secret is not None else os.urandom(SHARED_SECRET_SIZE)
    config = OffchainConfigProto(
        delta_progress_nanoseconds=_nanoseconds(network.delta_progress),
        delta_resend_nanoseconds=_nanoseconds(network.delta_resend),
        delta_initial_nanoseconds=_nanoseconds(network.delta_initial),
        delta_round_nanoseconds=_nanoseconds(network.delta_round),
        delta_grace_nanoseconds=_nanoseconds(network.delta_grace),
        delta_certified_commit_request_nanoseconds=_nanoseconds(network.delta_certified_commit_request),
        delta_stage_nanoseconds=_nanoseconds(network.delta_stage),
        r_max=network.max_rounds,
        s=[1] * len(oracles),
        offchain_public_keys=offchain_keys,
        peer_ids=peer_ids,
        reporting_plugin_config=json.dumps(offchain.plugin_config(), separators=(",", ":")).encode("utf-8"),
        max_duration_query_nanoseconds=_nanoseconds(network.max_duration_query),
        max_duration_observation_nanoseconds=_nanoseconds(network.max_duration_observation),
        max_duration_should_accept_attested_report_nanoseconds=_nanoseconds(
            network.max_duration_should_accept_finalized_report
        ),
        max_duration_should_transmit_accepted_report_nanoseconds=_nanoseconds(
            network.max_duration_should_transmit_accepted_report
        ),
        shared_secret_encryptions=encrypt_shared_secret(config_keys, secret, ephemeral),
    )
    blob = config.SerializeToString(deterministic=True)

    return SetConfigArgs(
        signers=signers,
        transmitters=transmitters,
        f=f,
        onchain_config=onchain_config_tuple(onchain),
        offchain_config_version=OFFCHAIN_CONFIG_VERSION,
        offchain_config=blob,
    )


__all__ = [
    "OFFCHAIN_CONFIG_VERSION",
    "OracleIdentity",
    "SetConfigArgs",
    "build_set_config_args",
    "encrypt_shared_secret",
    "onchain_config_tuple",
]
