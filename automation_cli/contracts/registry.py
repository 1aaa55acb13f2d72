"""Registry interactions beyond deployment."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from ..chain.gateway import ChainGateway
from ..state.models import NetworkConfig, OffchainConfig, OnchainConfig, checksum_address
from .abi import REGISTRY_ABI
from .ocr import OracleIdentity, SetConfigArgs, build_set_config_args

LOGGER = logging.getLogger(__name__)


class Registry:
    def __init__(self, gateway: ChainGateway, address: str) -> None:
        self.gateway = gateway
        self.address = checksum_address(address)
        self.contract = gateway.contract(self.address, REGISTRY_ABI)

    async def set_offchain_config(
        self,
        oracles: Sequence[OracleIdentity],
        onchain: OnchainConfig,
        offchain: OffchainConfig,
        network: NetworkConfig,
    ) -> Any:
        """Submit one ``setConfigTypeSafe`` transaction and wait for it."""

        args = build_set_config_args(oracles, onchain, offchain, network)
        return await self.submit(args)

    async def submit(self, args: SetConfigArgs) -> Any:
        function = self.contract.functions.setConfigTypeSafe(
            args.signers,
            args.transmitters,
            args.f,
            args.onchain_config,
            args.offchain_config_version,
            args.offchain_config,
        )
        receipt = await self.gateway.transact(function)
        LOGGER.info("registry %s configured with %d oracles (f=%d)", self.address, len(args.signers), args.f)
        return receipt


__all__ = ["Registry"]
