"""LINK token interactions."""

from __future__ import annotations

import logging
from typing import Any

from ..chain.gateway import ChainGateway
from ..state.models import checksum_address
from .abi import LINK_TOKEN_ABI

LOGGER = logging.getLogger(__name__)


class LinkToken:
    def __init__(self, gateway: ChainGateway, address: str) -> None:
        self.gateway = gateway
        self.address = checksum_address(address)
        self.contract = gateway.contract(self.address, LINK_TOKEN_ABI)

    async def balance(self, owner: str) -> int:
        return int(await self.gateway.call(self.contract.functions.balanceOf(checksum_address(owner))))

    async def transfer(self, to: str, amount: int) -> Any:
        """Send ``amount`` juels to ``to``; a zero amount sends nothing."""

        if amount <= 0:
            LOGGER.debug("skipping zero LINK transfer to %s", to)
            return None
        receipt = await self.gateway.transact(self.contract.functions.transfer(checksum_address(to), int(amount)))
        LOGGER.info("sent %d juels of LINK to %s", amount, to)
        return receipt

    async def approve(self, spender: str, amount: int) -> Any:
        return await self.gateway.transact(self.contract.functions.approve(checksum_address(spender), int(amount)))

    async def mint(self, amount: int) -> Any:
        """Mint ``amount`` to the deployer, granting it the minter role first if needed."""

        deployer = self.gateway.address
        minters = await self.gateway.call(self.contract.functions.getMinters())
        if deployer.lower() not in {str(minter).lower() for minter in minters}:
            LOGGER.info("granting mint role to %s", deployer)
            await self.gateway.transact(self.contract.functions.grantMintRole(deployer))
        receipt = await self.gateway.transact(self.contract.functions.mint(deployer, int(amount)))
        LOGGER.info("minted %d juels of LINK to %s", amount, deployer)
        return receipt


__all__ = ["LinkToken"]
