"""Block-explorer links for well-known chains."""

from __future__ import annotations

from typing import Dict

_ETHERSCAN = {
    1: "https://etherscan.io",
    4: "https://rinkeby.etherscan.io",
    5: "https://goerli.etherscan.io",
    42: "https://kovan.etherscan.io",
    11155111: "https://sepolia.etherscan.io",
    420: "https://goerli-optimism.etherscan.io",
}

_ARBISCAN = {
    421613: "https://goerli.arbiscan.io",
    42161: "https://arbiscan.io",
}

_BSCSCAN = {
    56: "https://bscscan.com",
    97: "https://testnet.bscscan.com",
}

_POLYGONSCAN = {
    137: "https://polygonscan.com",
    80001: "https://mumbai.polygonscan.com",
}

_FTMSCAN = {
    250: "https://ftmscan.com",
    4002: "https://testnet.ftmscan.com",
}

_SNOWTRACE = {
    43114: "https://snowtrace.io",
    43113: "https://testnet.snowtrace.io",
}

_DEFI_KINGDOMS = {
    335: "https://subnets-test.avax.network/defi-kingdoms",
    53935: "https://subnets.avax.network/defi-kingdoms",
}

_HARMONY = {
    **{chain_id: "https://explorer.harmony.one" for chain_id in range(1666600000, 1666600004)},
    **{chain_id: "https://explorer.testnet.harmony.one" for chain_id in range(1666700000, 1666700004)},
}

_BASESCAN = {
    84531: "https://goerli.basescan.org",
    8453: "https://basescan.org",
}

EXPLORERS: Dict[int, str] = {
    **_ETHERSCAN,
    **_ARBISCAN,
    **_BSCSCAN,
    **_POLYGONSCAN,
    **_FTMSCAN,
    **_SNOWTRACE,
    **_DEFI_KINGDOMS,
    **_HARMONY,
    **_BASESCAN,
}


def explorer_link(chain_id: int, tx_hash: str) -> str:
    """Return ``<explorer>/tx/<hash>``, or the bare hash for unknown chains."""

    prefix = EXPLORERS.get(int(chain_id))
    if prefix is None:
        return tx_hash
    return f"{prefix}/tx/{tx_hash}"


__all__ = ["EXPLORERS", "explorer_link"]
