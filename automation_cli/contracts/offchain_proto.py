"""Protobuf messages for the OCR3 offchain config the nodes decode after setConfig.

The descriptor is assembled at import time instead of shipping generated
``_pb2`` code. Field numbers and types must stay identical to the oracle
library's ``OffchainConfigProto``; only the wire format is shared.
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "offchainreporting3_config"

_FIELD = descriptor_pb2.FieldDescriptorProto

_SHARED_SECRET_FIELDS = (
    ("diffieHellmanPoint", 1, _FIELD.TYPE_BYTES, _FIELD.LABEL_OPTIONAL),
    ("sharedSecretHash", 2, _FIELD.TYPE_BYTES, _FIELD.LABEL_OPTIONAL),
    ("encryptions", 3, _FIELD.TYPE_BYTES, _FIELD.LABEL_REPEATED),
)

_OFFCHAIN_CONFIG_FIELDS = (
    ("delta_progress_nanoseconds", 1, _FIELD.TYPE_UINT64, _FIELD.LABEL_OPTIONAL),
    ("delta_resend_nanoseconds", 2, _FIELD.TYPE_UINT64, _FIELD.LABEL_OPTIONAL),
    ("delta_initial_nanoseconds", 3, _FIELD.TYPE_UINT64, _FIELD.LABEL_OPTIONAL),
    ("delta_round_nanoseconds", 4, _FIELD.TYPE_UINT64, _FIELD.LABEL_OPTIONAL),
    ("delta_grace_nanoseconds", 5, _FIELD.TYPE_UINT64, _FIELD.LABEL_OPTIONAL),
    ("delta_certified_commit_request_nanoseconds", 6, _FIELD.TYPE_UINT64, _FIELD.LABEL_OPTIONAL),
    ("delta_stage_nanoseconds", 7, _FIELD.TYPE_UINT64, _FIELD.LABEL_OPTIONAL),
    ("r_max", 8, _FIELD.TYPE_UINT64, _FIELD.LABEL_OPTIONAL),
    ("s", 9, _FIELD.TYPE_UINT32, _FIELD.LABEL_REPEATED),
    ("offchain_public_keys", 10, _FIELD.TYPE_BYTES, _FIELD.LABEL_REPEATED),
    ("peer_ids", 11, _FIELD.TYPE_STRING, _FIELD.LABEL_REPEATED),
    ("reporting_plugin_config", 12, _FIELD.TYPE_BYTES, _FIELD.LABEL_OPTIONAL),
    ("max_duration_query_nanoseconds", 13, _FIELD.TYPE_UINT64, _FIELD.LABEL_OPTIONAL),
    ("max_duration_observation_nanoseconds", 14, _FIELD.TYPE_UINT64, _FIELD.LABEL_OPTIONAL),
    ("max_duration_should_accept_attested_report_nanoseconds", 15, _FIELD.TYPE_UINT64, _FIELD.LABEL_OPTIONAL),
    ("max_duration_should_transmit_accepted_report_nanoseconds", 16, _FIELD.TYPE_UINT64, _FIELD.LABEL_OPTIONAL),
)


def _add_fields(message: descriptor_pb2.DescriptorProto, fields) -> None:
    for name, number, kind, label in fields:
        message.field.add(name=name, number=number, type=kind, label=label)


def _file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    document = descriptor_pb2.FileDescriptorProto(
        name="automation_cli/offchain_config.proto",
        package=PACKAGE,
        syntax="proto3",
    )
    secrets = document.message_type.add(name="SharedSecretEncryptionsProto")
    _add_fields(secrets, _SHARED_SECRET_FIELDS)

    config = document.message_type.add(name="OffchainConfigProto")
    _add_fields(config, _OFFCHAIN_CONFIG_FIELDS)
    config.field.add(
        name="shared_secret_encryptions",
        number=17,
        type=_FIELD.TYPE_MESSAGE,
        label=_FIELD.LABEL_OPTIONAL,
        type_name=f".{PACKAGE}.SharedSecretEncryptionsProto",
    )
    return document


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_file_descriptor().SerializeToString())

SharedSecretEncryptionsProto = message_factory.GetMessageClass(
    _POOL.FindMessageTypeByName(f"{PACKAGE}.SharedSecretEncryptionsProto")
)
OffchainConfigProto = message_factory.GetMessageClass(_POOL.FindMessageTypeByName(f"{PACKAGE}.OffchainConfigProto"))


__all__ = ["OffchainConfigProto", "SharedSecretEncryptionsProto"]
