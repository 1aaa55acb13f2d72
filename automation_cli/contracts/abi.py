"""Minimal ABIs for the contract functions the CLI calls."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple

Param = Tuple[str, str]


def _param(name: str, kind: str, components: Sequence[Param] = ()) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"name": name, "type": kind, "internalType": kind}
    if components:
        entry["components"] = [_param(sub_name, sub_kind) for sub_name, sub_kind in components]
        entry["internalType"] = "struct"
    return entry


def _constructor(*inputs: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "constructor", "inputs": list(inputs), "stateMutability": "nonpayable"}


def _function(
    name: str,
    inputs: Sequence[Dict[str, Any]] = (),
    outputs: Sequence[Dict[str, Any]] = (),
    mutability: str = "nonpayable",
) -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": list(inputs),
        "outputs": list(outputs),
        "stateMutability": mutability,
    }


LINK_TOKEN_ABI: List[Dict[str, Any]] = [
    _constructor(),
    _function("transfer", [_param("to", "address"), _param("value", "uint256")], [_param("", "bool")]),
    _function("approve", [_param("spender", "address"), _param("value", "uint256")], [_param("", "bool")]),
    _function("balanceOf", [_param("account", "address")], [_param("", "uint256")], "view"),
    _function("getMinters", [], [_param("", "address[]")], "view"),
    _function("grantMintRole", [_param("minter", "address")]),
    _function("mint", [_param("account", "address"), _param("amount", "uint256")]),
]

MOCK_FEED_ABI: List[Dict[str, Any]] = [
    _constructor(_param("_answer", "int256")),
    _function("updateAnswer", [_param("_answer", "int256")]),
]

FORWARDER_LOGIC_ABI: List[Dict[str, Any]] = [_constructor()]

REGISTRY_LOGIC_B_ABI: List[Dict[str, Any]] = [
    _constructor(
        _param("mode", "uint8"),
        _param("link", "address"),
        _param("linkNativeFeed", "address"),
        _param("fastGasFeed", "address"),
        _param("automationForwarderLogic", "address"),
    ),
]

REGISTRY_LOGIC_A_ABI: List[Dict[str, Any]] = [_constructor(_param("logicB", "address"))]

ONCHAIN_CONFIG_COMPONENTS: List[Param] = [
    ("paymentPremiumPPB", "uint32"),
    ("flatFeeMicroLink", "uint32"),
    ("checkGasLimit", "uint32"),
    ("stalenessSeconds", "uint24"),
    ("gasCeilingMultiplier", "uint16"),
    ("minUpkeepSpend", "uint96"),
    ("maxPerformGas", "uint32"),
    ("maxCheckDataSize", "uint32"),
    ("maxPerformDataSize", "uint32"),
    ("maxRevertDataSize", "uint32"),
    ("fallbackGasPrice", "uint256"),
    ("fallbackLinkPrice", "uint256"),
    ("transcoder", "address"),
    ("registrars", "address[]"),
    ("upkeepPrivilegeManager", "address"),
]

REGISTRY_ABI: List[Dict[str, Any]] = [
    _constructor(_param("logicA", "address")),
    _function(
        "setConfigTypeSafe",
        [
            _param("signers", "address[]"),
            _param("transmitters", "address[]"),
            _param("f", "uint8"),
            _param("onchainConfig", "tuple", ONCHAIN_CONFIG_COMPONENTS),
            _param("offchainConfigVersion", "uint64"),
            _param("offchainConfig", "bytes"),
        ],
    ),
    _function("typeAndVersion", [], [_param("", "string")], "view"),
]

REGISTRAR_ABI: List[Dict[str, Any]] = [
    _constructor(
        _param("LINKAddress", "address"),
        _param("keeperRegistry", "address"),
        _param("minLINKJuels", "uint96"),
        _param(
            "triggerConfigs",
            "tuple[]",
            [("triggerType", "uint8"), ("autoApproveType", "uint8"), ("autoApproveMaxAllowed", "uint32")],
        ),
    ),
    _function("typeAndVersion", [], [_param("", "string")], "view"),
]

_LOAD_FUNCTIONS: List[Dict[str, Any]] = [
    _function(
        "batchRegisterUpkeeps",
        [
            _param("number", "uint8"),
            _param("gasLimit", "uint32"),
            _param("triggerType", "uint8"),
            _param("triggerConfig", "bytes"),
            _param("amount", "uint96"),
            _param("checkGasToBurn", "uint256"),
            _param("performGasToBurn", "uint256"),
        ],
    ),
    _function(
        "getActiveUpkeepIDsDeployedByThisContract",
        [_param("startIndex", "uint256"), _param("maxCount", "uint256")],
        [_param("", "uint256[]")],
        "view",
    ),
    _function("batchSetIntervals", [_param("upkeepIds", "uint256[]"), _param("interval", "uint32")]),
    _function("batchUpdatePipelineData", [_param("upkeepIds", "uint256[]")]),
    _function(
        "batchPreparingUpkeepsSimple",
        [_param("upkeepIds", "uint256[]"), _param("log", "uint8"), _param("selector", "uint8")],
    ),
    _function("batchSendLogs", [_param("log", "uint8")]),
    _function("batchCancelUpkeeps", [_param("upkeepIds", "uint256[]")]),
    _function("buckets", [_param("", "uint256")], [_param("", "uint16")], "view"),
    _function(
        "getBucketedDelays",
        [_param("upkeepId", "uint256"), _param("bucket", "uint16")],
        [_param("", "uint256[]")],
        "view",
    ),
]

CONDITIONAL_LOAD_ABI: List[Dict[str, Any]] = [
    _constructor(_param("_registrar", "address"), _param("_useArb", "bool")),
    *_LOAD_FUNCTIONS,
]

LOG_TRIGGER_LOAD_ABI: List[Dict[str, Any]] = [
    _constructor(_param("_registrar", "address"), _param("_useArb", "bool"), _param("_useMercury", "bool")),
    *_LOAD_FUNCTIONS,
]


__all__ = [
    "CONDITIONAL_LOAD_ABI",
    "FORWARDER_LOGIC_ABI",
    "LINK_TOKEN_ABI",
    "LOG_TRIGGER_LOAD_ABI",
    "MOCK_FEED_ABI",
    "ONCHAIN_CONFIG_COMPONENTS",
    "REGISTRAR_ABI",
    "REGISTRY_ABI",
    "REGISTRY_LOGIC_A_ABI",
    "REGISTRY_LOGIC_B_ABI",
]
