"""Session-cookie authenticated client for the node's management API."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

import httpx
from eth_account import Account

from ..errors import AuthenticationError, EncodingError, NodeConnectionError

LOGGER = logging.getLogger(__name__)

SESSION_COOKIE = "clsession"
ETH_KEYS_ENDPOINT = "/v2/keys/eth"
OCR2_KEYS_ENDPOINT = "/v2/keys/ocr2"
P2P_KEYS_ENDPOINT = "/v2/keys/p2p"
EVM_IMPORT_ENDPOINT = "/v2/keys/evm/import"
JOBS_ENDPOINT = "/v2/jobs"
# light scrypt work factor for keystores that only travel to a local node
KEYSTORE_SCRYPT_N = 2


class CookieStore(Protocol):
    def save(self, cookie: str) -> None:
        ...

    def retrieve(self) -> Optional[str]:
        ...

    def reset(self) -> None:
        ...


class MemoryCookieStore:
    def __init__(self) -> None:
        self._cookie: Optional[str] = None

    def save(self, cookie: str) -> None:
        self._cookie = cookie

    def retrieve(self) -> Optional[str]:
        return self._cookie

    def reset(self) -> None:
        self._cookie = None


@dataclass(frozen=True)
class OCR2KeyBundle:
    id: str
    onchain_public_key: str
    off_chain_public_key: str
    config_public_key: str


def _error_detail(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0]
            if isinstance(first, dict):
                return str(first.get("detail", ""))
            return str(first)
    return None


def decode_response(response: httpx.Response) -> Any:
    """Return the JSON body, surfacing the node's error envelope as ``EncodingError``."""

    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise EncodingError(
            f"undecodable response from {response.request.url.path} [{response.status_code}]",
            status=response.status_code,
        ) from exc
    detail = _error_detail(body)
    if detail is not None:
        raise EncodingError(f"error returned from api: {detail}", status=response.status_code)
    if response.status_code >= 400:
        raise EncodingError(
            f"unexpected status {response.status_code} from {response.request.url.path}",
            status=response.status_code,
        )
    return body


def _data(body: Any) -> Any:
    if not isinstance(body, dict) or "data" not in body:
        raise EncodingError("not a data response")
    return body["data"]


class NodeClient:
    """Async client for one node.

    Every request carries the session cookie; a ``401`` triggers exactly one
    re-authentication and replay of the request.
    """

    def __init__(
        self,
        base_url: str,
        *,
        login: str,
        password: str,
        cookie_store: Optional[CookieStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._login = login
        self._password = password
        self._cookies = cookie_store or MemoryCookieStore()
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "NodeClient":
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise NodeConnectionError(f"{method} {self.base_url}{path} failed: {exc}") from exc

    async def authenticate(self) -> None:
        response = await self._send(
            "POST",
            "/sessions",
            json={"Email": self._login, "Password": self._password},
        )
        self._client.cookies.clear()
        if response.status_code in (401, 403):
            raise AuthenticationError(f"node {self.base_url} rejected the credentials [{response.status_code}]")
        if response.status_code >= 400:
            try:
                detail = _error_detail(response.json())
            except (json.JSONDecodeError, UnicodeDecodeError):
                detail = None
            raise AuthenticationError(
                f"session request failed [{response.status_code}]: {detail or response.text}"
            )
        cookie = response.cookies.get(SESSION_COOKIE)
        if not cookie:
            raise AuthenticationError(f"node {self.base_url} did not return a session cookie")
        self._cookies.save(cookie)
        LOGGER.debug("authenticated against %s", self.base_url)

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        retried = False
        while True:
            cookie = self._cookies.retrieve()
            if cookie is None:
                await self.authenticate()
                cookie = self._cookies.retrieve()
            headers = {"Content-Type": "application/json", "Cookie": f"{SESSION_COOKIE}={cookie}"}
            response = await self._send(method, path, headers=headers, **kwargs)
            self._client.cookies.clear()
            LOGGER.debug("%s %s -> %d", method, path, response.status_code)
            if response.status_code == 401 and not retried:
                retried = True
                self._cookies.reset()
                continue
            if response.status_code in (401, 403):
                raise AuthenticationError(f"{method} {path} unauthorised [{response.status_code}]")
            return response

    async def get(self, path: str, **kwargs: Any) -> Any:
        return decode_response(await self.request("GET", path, **kwargs))

    async def post(self, path: str, **kwargs: Any) -> Any:
        return decode_response(await self.request("POST", path, **kwargs))

    async def healthy(self) -> bool:
        """Unauthenticated ``/health`` probe; transport failures count as not ready."""

        try:
            response = await self._client.get("/health")
        except httpx.TransportError:
            return False
        return response.status_code == 200

    async def eth_addresses(self) -> List[str]:
        keys = _data(await self.get(ETH_KEYS_ENDPOINT))
        return [key["attributes"]["address"] for key in keys]

    async def first_eth_address(self) -> str:
        addresses = await self.eth_addresses()
        if not addresses:
            raise EncodingError("node has no eth keys")
        return addresses[0]

    async def ocr2_bundle(self) -> OCR2KeyBundle:
        bundles = _data(await self.get(OCR2_KEYS_ENDPOINT))
        for bundle in bundles:
            attributes = bundle.get("attributes", {})
            if attributes.get("chainType") == "evm":
                return OCR2KeyBundle(
                    id=bundle["id"],
                    onchain_public_key=attributes.get("onchainPublicKey", ""),
                    off_chain_public_key=attributes.get("offChainPublicKey", ""),
                    config_public_key=attributes.get("configPublicKey", ""),
                )
        raise EncodingError("node has no evm OCR2 key bundle")

    async def p2p_key_id(self) -> str:
        keys = _data(await self.get(P2P_KEYS_ENDPOINT))
        if not keys:
            raise EncodingError("node has no p2p keys")
        return keys[0]["id"]

    async def import_eth_key(self, private_key: str, chain_id: int) -> str:
        """Import ``private_key`` as an EVM sending key and return its address."""

        if not private_key.lower().startswith("0x"):
            private_key = f"0x{private_key}"
        keystore = Account.encrypt(private_key, self._password, kdf="scrypt", iterations=KEYSTORE_SCRYPT_N)
        address = Account.from_key(private_key).address
        await self.post(
            EVM_IMPORT_ENDPOINT,
            params={"oldpassword": self._password, "evmChainID": str(chain_id)},
            content=json.dumps(keystore).encode("utf-8"),
        )
        LOGGER.info("imported sending key %s into %s", address, self.base_url)
        return address

    async def jobs(self) -> List[Dict[str, Any]]:
        return list(_data(await self.get(JOBS_ENDPOINT)))

    async def create_job(self, toml: str) -> str:
        body = await self.post(JOBS_ENDPOINT, json={"toml": toml})
        return str(_data(body).get("id", ""))


__all__ = ["CookieStore", "MemoryCookieStore", "NodeClient", "OCR2KeyBundle", "decode_response"]
