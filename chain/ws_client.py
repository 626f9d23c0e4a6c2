"""
WebSocket client for new-block notifications.

Subscribes to eth_subscribe("newHeads") and wakes anyone waiting for the
next block. The receipt waiter uses this instead of a fixed poll interval so
a confirmation is noticed in the same block it lands.

Features:
- Persistent connection with exponential backoff reconnect
- Optional JWT auth on the handshake (same secret as the HTTP endpoint)
- Heartbeat ping every 20s
"""

from __future__ import annotations
import asyncio
import json
import logging

import websockets
from websockets.exceptions import ConnectionClosed

from chain.auth import RpcAuth

log = logging.getLogger(__name__)


class NewHeadsClient:
    """
    Persistent newHeads subscription.

    Usage:
        heads = NewHeadsClient(ws_url)
        task = asyncio.create_task(heads.run())
        arrived = await heads.wait_for_head(timeout_s=2.0)
    """

    PING_INTERVAL_S = 20
    MAX_BACKOFF_S = 5.0

    def __init__(self, ws_url: str, auth: RpcAuth | None = None) -> None:
        self._ws_url = ws_url
        self._auth = auth
        self._shutdown_event = asyncio.Event()
        self._new_head = asyncio.Condition()
        self.latest_block: int | None = None
        self.connected = False

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    async def wait_for_head(self, timeout_s: float) -> bool:
        """
        Wait until the next head arrives. Returns False on timeout, so callers
        fall back to polling when the socket is down.
        """
        async with self._new_head:
            try:
                await asyncio.wait_for(self._new_head.wait(), timeout=timeout_s)
            except asyncio.TimeoutError:
                return False
        return True

    async def run(self) -> None:
        """Main loop - reconnects automatically on disconnect."""
        backoff = 0.5
        while not self._shutdown_event.is_set():
            try:
                await self._connect_and_consume()
                backoff = 0.5
            except ConnectionClosed as exc:
                log.warning("newHeads WebSocket closed: %s - reconnecting in %.1fs", exc, backoff)
            except Exception as exc:
                log.error("newHeads WebSocket error: %s - reconnecting in %.1fs", exc, backoff)
            finally:
                self.connected = False
            if self._shutdown_event.is_set():
                break
            await asyncio.sleep(backoff)
            backoff = min(backoff * 2, self.MAX_BACKOFF_S)

    async def _connect_and_consume(self) -> None:
        headers = self._auth.get_headers() if self._auth else None
        async with websockets.connect(
            self._ws_url,
            additional_headers=headers,
            ping_interval=self.PING_INTERVAL_S,
            ping_timeout=10,
        ) as ws:
            await ws.send(json.dumps(
                {"jsonrpc": "2.0", "id": 1, "method": "eth_subscribe", "params": ["newHeads"]}
            ))
            self.connected = True
            log.info("newHeads WebSocket connected")
            async for raw in ws:
                if self._shutdown_event.is_set():
                    break
                await self._handle_message(raw)

    async def _handle_message(self, raw: str | bytes) -> None:
        try:
            msg = json.loads(raw)
        except json.JSONDecodeError:
            log.warning("Malformed WS message: %.80s", raw)
            return

        if "error" in msg:
            log.error("newHeads subscription error: %s", msg["error"])
            return
        if msg.get("method") != "eth_subscription":
            if "result" in msg:
                log.info("newHeads subscription id=%s", msg["result"])
            return

        head = msg.get("params", {}).get("result", {})
        number = head.get("number")
        if number is None:
            return
        self.latest_block = int(number, 16)
        log.debug("New head block=%d", self.latest_block)
        async with self._new_head:
            self._new_head.notify_all()
