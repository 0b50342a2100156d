"""An executor that broadcasts signed raw transactions over JSON-RPC."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Optional, Union

import httpx
from Crypto.Hash import keccak

from burberry.types import Executor

logger = logging.getLogger(__name__)

RawTransaction = Union[bytes, bytearray, memoryview]


class _RpcError(RuntimeError):
    """The node answered a JSON-RPC request with an error."""

    def __init__(self, method: str, error: Any) -> None:
        super().__init__(f"{method} failed: {error}")
        self.method = method
        self.error = error


def _keccak256(data: bytes) -> str:
    return "0x" + keccak.new(digest_bits=256, data=data).hexdigest()


def _to_hex(raw: Union[RawTransaction, str]) -> str:
    if isinstance(raw, str):
        return raw if raw.startswith("0x") else "0x" + raw
    return "0x" + bytes(raw).hex()


def _to_bytes(raw: Union[RawTransaction, str]) -> bytes:
    if isinstance(raw, str):
        return bytes.fromhex(raw[2:] if raw.startswith("0x") else raw)
    return bytes(raw)


class HttpProvider:
    """A minimal JSON-RPC client over HTTP."""

    def __init__(self, url: str, client: Optional[httpx.AsyncClient] = None) -> None:
        parsed = httpx.URL(url)
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise ValueError(f"invalid http url: {url!r}")
        self.url = url
        self._client = client
        self._ids = itertools.count(1)

    async def request(self, method: str, params: Any) -> Any:
        """Call ``method`` with ``params`` and return the result."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        if self._client is not None:
            response = await self._client.post(self.url, json=payload)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(self.url, json=payload)
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise _RpcError(method, f"malformed response: {body!r}")
        if body.get("error") is not None:
            raise _RpcError(method, body["error"])
        if "result" not in body:
            raise _RpcError(method, f"malformed response: {body!r}")
        return body["result"]

    async def send_raw_transaction(self, raw: Union[RawTransaction, str]) -> Any:
        """Broadcast a signed transaction and return its hash."""
        return await self.request("eth_sendRawTransaction", [_to_hex(raw)])


class RawTransactionSender(Executor[bytes]):
    """Sends each signed raw transaction through a provider; failures are logged."""

    name = "RawTransactionSender"

    def __init__(self, provider: Any) -> None:
        self.provider = provider

    @classmethod
    def new_http(cls, url: str) -> RawTransactionSender:
        return cls(HttpProvider(url))

    @classmethod
    def with_flashbots(cls) -> RawTransactionSender:
        return cls.new_http("https://rpc.flashbots.net/fast")

    @classmethod
    def with_bsc_bloxroute(cls) -> RawTransactionSender:
        return cls.new_http("https://bsc.rpc.blxrbdn.com")

    @classmethod
    def with_48club(cls) -> RawTransactionSender:
        return cls.new_http("https://rpc-bsc.48.club")

    @classmethod
    def with_polygon_bloxroute(cls) -> RawTransactionSender:
        return cls.new_http("https://polygon.rpc.blxrbdn.com")

    @classmethod
    def with_arbitrum_sequencer(cls) -> RawTransactionSender:
        return cls.new_http("https://arb1-sequencer.arbitrum.io/rpc")

    async def execute(self, action: Union[RawTransaction, str]) -> None:
        try:
            tx_hash = await self.provider.send_raw_transaction(action)
        except Exception as err:
            logger.error("tx=%s failed to send tx: %s", _keccak256(_to_bytes(action)), err)
            return
        logger.info("tx=%s sent tx", tx_hash)