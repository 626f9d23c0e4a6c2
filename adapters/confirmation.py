"""
Receipt-polling confirmation waiter.

Polls eth_getTransactionReceipt until the node reports a terminal status.
Between polls it either sleeps for poll_interval_s or, when a NewHeadsClient
is connected, waits for the next block (whichever comes first), so a receipt
is usually picked up in the block that includes it.

The overall wait is bounded by timeout_s; on expiry ConfirmationTimeoutError
is raised. Transient RPC errors while polling are logged and polled through.
"""

from __future__ import annotations
import asyncio
import logging
import time

from adapters.base import ConfirmationWaiter
from chain.rpc_client import JsonRpcClient
from chain.ws_client import NewHeadsClient
from engine.errors import ConfirmationTimeoutError
from models.events import TransactionReceipt

log = logging.getLogger(__name__)


class ReceiptWaiter(ConfirmationWaiter):
    def __init__(
        self,
        rpc: JsonRpcClient,
        poll_interval_s: float = 1.0,
        timeout_s: float = 120.0,
        heads: NewHeadsClient | None = None,
    ) -> None:
        self._rpc = rpc
        self._poll_interval_s = poll_interval_s
        self._timeout_s = timeout_s
        self._heads = heads

    async def await_confirmation(self, transaction_handle: str) -> TransactionReceipt:
        try:
            return await asyncio.wait_for(self._poll(transaction_handle), timeout=self._timeout_s)
        except asyncio.TimeoutError as exc:
            raise ConfirmationTimeoutError(transaction_handle, self._timeout_s) from exc

    async def _poll(self, transaction_handle: str) -> TransactionReceipt:
        started = time.monotonic()
        consecutive_errors = 0
        while True:
            try:
                raw = await self._rpc.get_transaction_receipt(transaction_handle)
                consecutive_errors = 0
            except Exception as exc:
                raw = None
                consecutive_errors += 1
                # Log first error and every 10th after that to avoid spam
                if consecutive_errors == 1 or consecutive_errors % 10 == 0:
                    log.warning("Receipt poll error for %s (×%d): %s",
                                transaction_handle, consecutive_errors, exc)

            if raw is not None:
                receipt = _to_receipt(transaction_handle, raw)
                log.info(
                    "Receipt for %s status=%s block=%s after %.1fs",
                    transaction_handle, receipt.status, receipt.block_number,
                    time.monotonic() - started,
                )
                return receipt

            await self._pause()

    async def _pause(self) -> None:
        if self._heads is not None and self._heads.connected:
            await self._heads.wait_for_head(self._poll_interval_s)
        else:
            await asyncio.sleep(self._poll_interval_s)


def _to_receipt(transaction_handle: str, raw: dict) -> TransactionReceipt:
    status = "success" if int(raw.get("status", "0x0"), 16) == 1 else "reverted"
    block = raw.get("blockNumber")
    return TransactionReceipt(
        transaction_handle=transaction_handle,
        status=status,
        block_number=int(block, 16) if block else None,
    )
