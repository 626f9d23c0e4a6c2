"""
Ethereum JSON-RPC client.

Single aiohttp.ClientSession shared for all requests.
Connection is pre-warmed at startup and kept alive via periodic pings.
Every contract read and transaction submission goes through this module.
"""

from __future__ import annotations
import asyncio
import itertools
import logging
import socket
import time
from typing import Any
from urllib.parse import urlparse

import aiohttp

from chain.auth import RpcAuth

log = logging.getLogger(__name__)


class RpcError(Exception):
    """JSON-RPC level error returned by the node (HTTP 200 with an error body)."""

    def __init__(self, method: str, code: int, message: str, data: Any = None) -> None:
        super().__init__(f"{method} failed ({code}): {message}")
        self.method = method
        self.code = code
        self.message = message
        self.data = data


class JsonRpcClient:
    """
    Async JSON-RPC 2.0 client for an Ethereum node.

    Call startup() before use. The session and TCP connector are created once
    and reused for every call.
    """

    def __init__(
        self,
        rpc_url: str,
        auth: RpcAuth | None = None,
        keepalive_interval_s: float = 30,
        request_timeout_s: float = 10,
    ) -> None:
        self._rpc_url = rpc_url
        self._auth = auth
        self._keepalive_interval_s = keepalive_interval_s
        self._request_timeout_s = request_timeout_s
        self._session: aiohttp.ClientSession | None = None
        self._keepalive_task: asyncio.Task | None = None
        self._ids = itertools.count(1)
        self.chain_id: int | None = None

    async def startup(self) -> None:
        """
        Open the connection pool and learn the chain id.
        Must be awaited before any other method.
        """
        parsed = urlparse(self._rpc_url)
        host = parsed.hostname or "localhost"
        port = parsed.port or (443 if parsed.scheme == "https" else 80)
        loop = asyncio.get_running_loop()
        infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
        log.info("DNS pre-resolved %s -> %s", host, infos[0][4] if infos else "?")

        self._session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=10, keepalive_timeout=60, ttl_dns_cache=300),
            timeout=aiohttp.ClientTimeout(total=self._request_timeout_s, connect=3),
        )

        # Warm the connection and learn which chain we are on
        self.chain_id = await self.get_chain_id()
        log.info("RPC connection warmed up chain_id=%d", self.chain_id)

        if self._keepalive_interval_s > 0:
            self._keepalive_task = asyncio.create_task(self._keepalive_loop(), name="rpc-keepalive")

    async def shutdown(self) -> None:
        if self._keepalive_task:
            self._keepalive_task.cancel()
            await asyncio.gather(self._keepalive_task, return_exceptions=True)
        if self._session:
            await self._session.close()

    async def _keepalive_loop(self) -> None:
        while True:
            await asyncio.sleep(self._keepalive_interval_s)
            try:
                await self.get_block_number()
            except Exception as exc:
                log.warning("Keepalive ping failed: %s", exc)

    async def request(self, method: str, params: list | None = None) -> Any:
        assert self._session, "Call startup() first"
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        headers = self._auth.get_headers() if self._auth else None
        async with self._session.post(self._rpc_url, json=body, headers=headers) as resp:
            resp.raise_for_status()
            payload = await resp.json(content_type=None)
        error = payload.get("error")
        if error:
            raise RpcError(method, error.get("code", 0), error.get("message", ""), error.get("data"))
        return payload.get("result")

    # ------------------------------------------------------------------
    # Public API methods
    # ------------------------------------------------------------------

    async def get_chain_id(self) -> int:
        return int(await self.request("eth_chainId"), 16)

    async def get_block_number(self) -> int:
        return int(await self.request("eth_blockNumber"), 16)

    async def call(self, to: str, data: str, block: str = "latest") -> str:
        """eth_call; returns the raw 0x-prefixed return data."""
        return await self.request("eth_call", [{"to": to, "data": data}, block])

    async def send_transaction(
        self,
        from_address: str,
        to: str,
        data: str,
        value: int = 0,
    ) -> str:
        """
        Submit a transaction signed by the node-side wallet of from_address.
        Returns the transaction hash.
        """
        tx = {"from": from_address, "to": to, "data": data, "value": hex(value)}
        sent_at = time.monotonic_ns()
        tx_hash = await self.request("eth_sendTransaction", [tx])
        log.info(
            "Transaction sent to=%s value_wei=%d tx=%s latency_ms=%.2f",
            to, value, tx_hash, (time.monotonic_ns() - sent_at) / 1_000_000,
        )
        return tx_hash

    async def get_transaction_receipt(self, tx_hash: str) -> dict | None:
        """Receipt dict, or None while the transaction is still pending."""
        return await self.request("eth_getTransactionReceipt", [tx_hash])
