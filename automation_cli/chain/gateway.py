"""Narrow façade over web3 used by every on-chain command."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Sequence, TypeVar

from eth_account import Account
from web3 import Web3
from web3.contract.contract import Contract, ContractFunction
from web3.exceptions import TransactionNotFound
from web3.middleware import geth_poa_middleware

from ..errors import (
    ChainTransactionError,
    ClientInteractionError,
    ContractConnectionError,
    ContractCreationError,
    NetworkConnectionError,
    PublicKeyCastingError,
)
from ..state.models import ZERO_ADDRESS, checksum_address
from ..util import CancelToken
from .explorer import explorer_link

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

NATIVE_TRANSFER_GAS = 50_000


def _hex(value: Any) -> str:
    if hasattr(value, "hex") and callable(value.hex):
        text = value.hex()
    else:
        text = str(value)
    return text if text.startswith("0x") else f"0x{text}"


def _raw(signed: Any) -> bytes:
    raw = getattr(signed, "raw_transaction", None)
    if raw is None:
        raw = signed.rawTransaction
    return raw


class ChainGateway:
    """Builds, signs and waits for transactions on behalf of one deployer key.

    The gateway holds no state beyond the client reference, the account and
    the caller's cancellation token: every transaction fetches a fresh
    pending nonce, so sequential calls within one command are naturally FIFO
    ordered. Each RPC races the token, and receipts are polled so a set token
    stops the wait within one poll interval.
    """

    def __init__(
        self,
        web3: Web3,
        *,
        chain_id: int,
        private_key: str,
        gas_limit: int,
        gas_premium_percent: int = 20,
        receipt_timeout: float = 600.0,
        poll_interval: float = 1.0,
        cancel: Optional[CancelToken] = None,
    ) -> None:
        self.web3 = web3
        self.chain_id = int(chain_id)
        self.gas_limit = int(gas_limit)
        self.gas_premium_percent = int(gas_premium_percent)
        self.receipt_timeout = receipt_timeout
        self.poll_interval = poll_interval
        self.cancel = cancel
        key = private_key.strip()
        if not key.startswith("0x"):
            key = f"0x{key}"
        try:
            self._account = Account.from_key(key)
        except (ValueError, TypeError) as exc:
            raise PublicKeyCastingError("private key is not a valid secp256k1 scalar") from exc

    @classmethod
    def connect(cls, rpc_url: str, **kwargs: Any) -> "ChainGateway":
        """Open an HTTP connection to ``rpc_url`` and return a gateway over it."""

        if not rpc_url:
            raise NetworkConnectionError("no HTTP RPC url configured; run 'config setup' first")
        web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": 30}))
        web3.middleware_onion.inject(geth_poa_middleware, layer=0)
        try:
            connected = web3.is_connected()
        except Exception as exc:  # pragma: no cover - provider specific
            raise NetworkConnectionError(f"failed to reach {rpc_url}: {exc}") from exc
        if not connected:
            raise NetworkConnectionError(f"unable to connect to RPC endpoint {rpc_url}")
        LOGGER.debug("chain gateway connected to %s", rpc_url)
        return cls(web3, **kwargs)

    @property
    def address(self) -> str:
        return self._account.address

    def _check_cancelled(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise asyncio.CancelledError("chain interaction cancelled")

    async def _guarded(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a blocking web3 call in a thread, abandoning it once the token is set."""

        self._check_cancelled()
        if self.cancel is None:
            return await asyncio.to_thread(func, *args, **kwargs)
        task = asyncio.ensure_future(asyncio.to_thread(func, *args, **kwargs))
        waiter = asyncio.ensure_future(self.cancel.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
        if task not in done:
            task.cancel()
            raise asyncio.CancelledError("chain interaction cancelled")
        return task.result()

    async def _sleep(self, seconds: float) -> None:
        if self.cancel is None:
            await asyncio.sleep(seconds)
            return
        try:
            await asyncio.wait_for(self.cancel.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise asyncio.CancelledError("chain interaction cancelled")

    async def block_number(self) -> int:
        try:
            return int(await self._guarded(lambda: self.web3.eth.block_number))
        except Exception as exc:
            raise ClientInteractionError(f"failed to read the block number: {exc}") from exc

    def explorer_link(self, tx_hash: str) -> str:
        return explorer_link(self.chain_id, tx_hash)

    def gas_price_with_premium(self, suggested: int) -> int:
        return suggested + suggested * self.gas_premium_percent // 100

    async def build_tx_options(self) -> Dict[str, Any]:
        """Fresh nonce, boosted gas price, deployer gas limit and chain id."""

        try:
            nonce = await self._guarded(self.web3.eth.get_transaction_count, self.address, "pending")
            suggested = await self._guarded(lambda: self.web3.eth.gas_price)
        except Exception as exc:
            raise ClientInteractionError(f"failed to prepare transaction options: {exc}") from exc
        return {
            "from": self.address,
            "nonce": int(nonce),
            "gasPrice": self.gas_price_with_premium(int(suggested)),
            "gas": self.gas_limit,
            "chainId": self.chain_id,
            "value": 0,
        }

    async def _submit(self, tx: Dict[str, Any]) -> str:
        self._check_cancelled()
        signed = self._account.sign_transaction(tx)
        try:
            # Once handed to the node the transaction is out; finish the send.
            tx_hash = await asyncio.to_thread(self.web3.eth.send_raw_transaction, _raw(signed))
        except Exception as exc:
            raise ClientInteractionError(f"failed to send transaction: {exc}") from exc
        tx_hash_hex = _hex(tx_hash)
        LOGGER.debug("transaction %s submitted", tx_hash_hex)
        return tx_hash_hex

    async def _receipt(self, tx_hash: str) -> Any:
        deadline = asyncio.get_running_loop().time() + self.receipt_timeout
        while True:
            try:
                return await self._guarded(self.web3.eth.get_transaction_receipt, tx_hash)
            except TransactionNotFound:
                pass
            except asyncio.CancelledError:
                LOGGER.warning("stopped waiting for %s", self.explorer_link(tx_hash))
                raise
            except Exception as exc:
                raise ClientInteractionError(f"failed waiting for {tx_hash}: {exc}") from exc
            if asyncio.get_running_loop().time() >= deadline:
                raise ClientInteractionError(
                    f"transaction not mined after {self.receipt_timeout:.0f}s: {self.explorer_link(tx_hash)}"
                )
            try:
                await self._sleep(self.poll_interval)
            except asyncio.CancelledError:
                LOGGER.warning("stopped waiting for %s", self.explorer_link(tx_hash))
                raise

    async def wait_mined(self, tx_hash: str) -> Any:
        """Block until ``tx_hash`` is included; raise if it reverted."""

        receipt = await self._receipt(tx_hash)
        if int(receipt["status"]) != 1:
            link = self.explorer_link(tx_hash)
            raise ChainTransactionError(f"transaction failed: {link}", tx_hash=tx_hash, link=link)
        return receipt

    async def wait_deployed(self, tx_hash: str) -> str:
        """Wait for a contract-creation transaction and return the new address."""

        try:
            receipt = await self.wait_mined(tx_hash)
        except ChainTransactionError as exc:
            raise ContractCreationError(f"contract creation failed: {exc.link}") from exc
        address = receipt.get("contractAddress")
        if not address or address == ZERO_ADDRESS:
            raise ContractCreationError(f"no contract address in receipt: {self.explorer_link(tx_hash)}")
        return checksum_address(str(address))

    async def send_native(self, to_address: str, amount: int) -> Any:
        options = await self.build_tx_options()
        tx = {**options, "to": checksum_address(to_address), "value": int(amount), "gas": NATIVE_TRANSFER_GAS}
        tx_hash = await self._submit(tx)
        receipt = await self.wait_mined(tx_hash)
        LOGGER.info("sent %d wei to %s (%s)", amount, tx["to"], self.explorer_link(tx_hash))
        return receipt

    def contract(self, address: str, abi: Sequence[Dict[str, Any]]) -> Contract:
        """Bind ``abi`` at ``address``."""

        try:
            return self.web3.eth.contract(address=checksum_address(address), abi=list(abi))
        except Exception as exc:
            raise ContractConnectionError(f"failed to bind contract at {address}: {exc}") from exc

    async def deploy(self, abi: Sequence[Dict[str, Any]], bytecode: str, *args: Any, label: str = "contract") -> str:
        """Send the creation transaction for ``bytecode`` and return its address."""

        options = await self.build_tx_options()
        factory = self.web3.eth.contract(abi=list(abi), bytecode=bytecode)
        try:
            tx = await self._guarded(factory.constructor(*args).build_transaction, options)
        except Exception as exc:
            raise ContractCreationError(f"failed to build {label} deployment: {exc}") from exc
        tx_hash = await self._submit(tx)
        address = await self.wait_deployed(tx_hash)
        LOGGER.info("%s deployed at %s", label, address)
        return address

    async def transact(self, function: ContractFunction, *, value: int = 0) -> Any:
        """Send ``function`` as a transaction and wait for a successful receipt."""

        options = await self.build_tx_options()
        if value:
            options["value"] = int(value)
        try:
            tx = await self._guarded(function.build_transaction, options)
        except Exception as exc:
            raise ClientInteractionError(f"failed to build {function.fn_name} transaction: {exc}") from exc
        tx_hash = await self._submit(tx)
        receipt = await self.wait_mined(tx_hash)
        LOGGER.debug("%s mined in block %s", function.fn_name, receipt.get("blockNumber"))
        return receipt

    async def call(self, function: ContractFunction, *, block_identifier: Any = "latest") -> Any:
        try:
            return await self._guarded(function.call, block_identifier=block_identifier)
        except Exception as exc:
            raise ClientInteractionError(f"{function.fn_name} call failed: {exc}") from exc


__all__ = ["ChainGateway", "NATIVE_TRANSFER_GAS"]
