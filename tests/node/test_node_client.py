"""Session handling and decoding in the node REST client."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from eth_account import Account

from automation_cli.errors import AuthenticationError, EncodingError, NodeConnectionError
from automation_cli.node.client import NodeClient


def _client(node, password: str = "secret") -> NodeClient:
    return NodeClient(
        "http://localhost:6688",
        login="user@example.com",
        password=password,
        transport=httpx.MockTransport(node.handle),
    )


def _sessions(node) -> int:
    return sum(1 for _method, path in node.requests if path == "/sessions")


def test_first_request_authenticates_and_reuses_cookie(make_node):
    node = make_node()

    async def runner():
        async with _client(node) as client:
            await client.p2p_key_id()
            return await client.p2p_key_id()

    assert asyncio.run(runner()) == "12D3KooWPeer0"
    assert _sessions(node) == 1


def test_expired_session_is_renewed_exactly_once(make_node):
    node = make_node(expire_next=1)

    async def runner():
        async with _client(node) as client:
            await client.authenticate()
            return await client.eth_addresses()

    assert asyncio.run(runner()) == [node.eth_address]
    assert _sessions(node) == 2


def test_second_unauthorised_response_fails(make_node):
    node = make_node(expire_next=2)

    async def runner():
        async with _client(node) as client:
            await client.eth_addresses()

    with pytest.raises(AuthenticationError):
        asyncio.run(runner())
    assert _sessions(node) == 2


def test_error_envelope_becomes_encoding_error(make_node):
    node = make_node()

    async def runner():
        async with _client(node) as client:
            await client.get("/v2/unknown")

    with pytest.raises(EncodingError) as info:
        asyncio.run(runner())
    assert info.value.status == 404
    assert "no route /v2/unknown" in str(info.value)


def test_ocr2_bundle_picks_the_evm_bundle(make_node):
    node = make_node(index=2)

    async def runner():
        async with _client(node) as client:
            return await client.ocr2_bundle()

    bundle = asyncio.run(runner())
    assert bundle.id == "bundle-2"
    assert bundle.onchain_public_key == node.keys["onchainPublicKey"]
    assert bundle.config_public_key.startswith("ocr2cfg_evm_")


def test_unreachable_node_is_unhealthy_and_a_connection_error(make_node):
    node = make_node(unreachable=True)

    async def runner():
        async with _client(node) as client:
            assert await client.healthy() is False
            await client.authenticate()

    with pytest.raises(NodeConnectionError):
        asyncio.run(runner())


def test_healthy_follows_status(make_node):
    node = make_node(healthy=False)

    async def runner():
        async with _client(node) as client:
            return await client.healthy()

    assert asyncio.run(runner()) is False


def test_import_eth_key_posts_keystore_and_returns_address(make_node, deployer_key):
    node = make_node()

    async def runner():
        async with _client(node) as client:
            return await client.import_eth_key(deployer_key, 1337)

    address = asyncio.run(runner())
    assert address == Account.from_key(f"0x{deployer_key}").address
    assert len(node.imported) == 1
    decrypted = bytes(Account.decrypt(node.imported[0], "secret"))
    assert decrypted.hex() == deployer_key
