"""Explorer links, gas premium, transaction options, receipt waits and cancellation."""

from __future__ import annotations

import asyncio
import time
from types import SimpleNamespace

import pytest
from web3 import Web3
from web3.exceptions import TransactionNotFound

from automation_cli.chain.explorer import explorer_link
from automation_cli.chain.gateway import ChainGateway
from automation_cli.chain.verify import verify_command
from automation_cli.errors import (
    ChainTransactionError,
    ClientInteractionError,
    ContractCreationError,
    NetworkConnectionError,
    PublicKeyCastingError,
)
from automation_cli.state.models import ZERO_ADDRESS, Verifier

KEY = "4f3edf983ac636a65a842ce7c78d9aa706d3b113bce9c46f30d7d21715b23b1d"
DEPLOYER = "0x90F8bf6A479f320ead074411a4B0e7944Ea8c9C1"
TX_HASH = "0x" + "ab" * 32


def test_explorer_link_for_known_chain():
    assert explorer_link(5, "0xdead") == "https://goerli.etherscan.io/tx/0xdead"
    assert explorer_link(42161, "0xbeef") == "https://arbiscan.io/tx/0xbeef"


def test_explorer_link_for_unknown_chain_is_bare_hash():
    assert explorer_link(1337, "0xdead") == "0xdead"


def test_gas_premium_is_added_to_suggestion():
    gateway = ChainGateway(Web3(), chain_id=1337, private_key=KEY, gas_limit=80_000_000)
    assert gateway.gas_price_with_premium(1_000) == 1_200
    boosted = ChainGateway(Web3(), chain_id=1337, private_key=KEY, gas_limit=1, gas_premium_percent=50)
    assert boosted.gas_price_with_premium(1_000) == 1_500


def test_gateway_derives_deployer_address():
    gateway = ChainGateway(Web3(), chain_id=1337, private_key=f"0x{KEY}", gas_limit=1)
    assert gateway.address == "0x90F8bf6A479f320ead074411a4B0e7944Ea8c9C1"


def test_invalid_private_key_is_rejected():
    with pytest.raises(PublicKeyCastingError):
        ChainGateway(Web3(), chain_id=1337, private_key="zz", gas_limit=1)


def test_connect_without_url_fails():
    with pytest.raises(NetworkConnectionError):
        ChainGateway.connect("", chain_id=1337, private_key=KEY, gas_limit=1)


def test_verify_command_needs_network_and_directory():
    assert verify_command(None, "0x" + "11" * 20) is None
    verifier = Verifier(contracts_directory="/work/contracts", network_name="sepolia")
    command = verify_command(verifier, "0xabc", 1, "two")
    assert command == "cd /work/contracts && npx hardhat verify --network sepolia 0xabc 1 two"


class StubEth:
    """Just enough of ``web3.eth`` for the transaction half of the gateway."""

    def __init__(self, receipts=(), nonce=7, gas_price=1_000, failing=False, receipt_delay=0.0):
        self.receipts = list(receipts)
        self.nonce = nonce
        self.suggested = gas_price
        self.failing = failing
        self.receipt_delay = receipt_delay
        self.nonce_requests = []
        self.receipt_requests = 0

    @property
    def gas_price(self):
        if self.failing:
            raise ConnectionError("rpc down")
        return self.suggested

    def get_transaction_count(self, address, block_identifier):
        if self.failing:
            raise ConnectionError("rpc down")
        self.nonce_requests.append((address, block_identifier))
        return self.nonce

    def get_transaction_receipt(self, tx_hash):
        self.receipt_requests += 1
        if self.receipt_delay:
            time.sleep(self.receipt_delay)
        if not self.receipts:
            raise TransactionNotFound(f"{tx_hash} not found")
        receipt = self.receipts.pop(0)
        if receipt is None:
            raise TransactionNotFound(f"{tx_hash} not found")
        return receipt


def _gateway(eth, **overrides):
    options = {"chain_id": 5, "private_key": KEY, "gas_limit": 500_000, "poll_interval": 0.0}
    options.update(overrides)
    return ChainGateway(SimpleNamespace(eth=eth), **options)


def test_tx_options_use_pending_nonce_and_boosted_gas_price():
    eth = StubEth(nonce=12, gas_price=1_000)
    options = asyncio.run(_gateway(eth).build_tx_options())
    assert options == {
        "from": DEPLOYER,
        "nonce": 12,
        "gasPrice": 1_200,
        "gas": 500_000,
        "chainId": 5,
        "value": 0,
    }
    assert eth.nonce_requests == [(DEPLOYER, "pending")]


def test_tx_options_rpc_failure_is_client_interaction_error():
    with pytest.raises(ClientInteractionError):
        asyncio.run(_gateway(StubEth(failing=True)).build_tx_options())


def test_wait_mined_polls_until_receipt_appears():
    eth = StubEth(receipts=[None, None, {"status": 1, "blockNumber": 9}])
    receipt = asyncio.run(_gateway(eth).wait_mined(TX_HASH))
    assert receipt["blockNumber"] == 9
    assert eth.receipt_requests == 3


def test_wait_mined_reverted_receipt_carries_explorer_link():
    eth = StubEth(receipts=[{"status": 0}])
    with pytest.raises(ChainTransactionError) as excinfo:
        asyncio.run(_gateway(eth).wait_mined(TX_HASH))
    assert excinfo.value.link == explorer_link(5, TX_HASH)
    assert excinfo.value.tx_hash == TX_HASH


def test_wait_mined_times_out():
    with pytest.raises(ClientInteractionError, match="not mined"):
        asyncio.run(_gateway(StubEth(), receipt_timeout=0.0).wait_mined(TX_HASH))


@pytest.mark.parametrize("address", [None, ZERO_ADDRESS])
def test_wait_deployed_without_contract_address_fails(address):
    eth = StubEth(receipts=[{"status": 1, "contractAddress": address}])
    with pytest.raises(ContractCreationError):
        asyncio.run(_gateway(eth).wait_deployed(TX_HASH))


def test_wait_deployed_reverted_creation_fails():
    eth = StubEth(receipts=[{"status": 0, "contractAddress": None}])
    with pytest.raises(ContractCreationError):
        asyncio.run(_gateway(eth).wait_deployed(TX_HASH))


def test_wait_deployed_returns_checksummed_address():
    eth = StubEth(receipts=[{"status": 1, "contractAddress": DEPLOYER.lower()}])
    assert asyncio.run(_gateway(eth).wait_deployed(TX_HASH)) == DEPLOYER


def test_set_token_stops_receipt_polling():
    async def scenario():
        cancel = asyncio.Event()
        gateway = _gateway(StubEth(), cancel=cancel, poll_interval=5.0)
        asyncio.get_running_loop().call_later(0.05, cancel.set)
        started = time.monotonic()
        with pytest.raises(asyncio.CancelledError):
            await gateway.wait_mined(TX_HASH)
        return time.monotonic() - started

    assert asyncio.run(scenario()) < 1.0


def test_set_token_abandons_blocking_receipt_call():
    async def scenario():
        cancel = asyncio.Event()
        gateway = _gateway(StubEth(receipt_delay=1.5), cancel=cancel)
        asyncio.get_running_loop().call_later(0.05, cancel.set)
        started = time.monotonic()
        with pytest.raises(asyncio.CancelledError):
            await gateway.wait_mined(TX_HASH)
        return time.monotonic() - started

    assert asyncio.run(scenario()) < 1.0


def test_set_token_prevents_new_transactions():
    eth = StubEth()

    async def scenario():
        cancel = asyncio.Event()
        cancel.set()
        with pytest.raises(asyncio.CancelledError):
            await _gateway(eth, cancel=cancel).send_native(DEPLOYER, 1)

    asyncio.run(scenario())
    assert eth.nonce_requests == []
