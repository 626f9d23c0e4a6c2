"""
Plain random-number draw.

No commitment, no pricing: submit generateRandomNumber(), wait for the
receipt, read the delivered number. Single-flight like RequestCoordinator.
"""

from __future__ import annotations
import asyncio
import logging

from adapters.base import ConfirmationWaiter, DrawSubmitter, NumberReader
from bus.event_bus import EventBus
from engine.errors import (
    ConfirmationTimeoutError,
    RandomnessReadError,
    RequestAlreadyInFlightError,
    RequestFailedError,
    SubmissionRejectedError,
    TransactionRevertedError,
)
from models.events import DrawResult

log = logging.getLogger(__name__)


class RandomNumberDraw:
    def __init__(
        self,
        submitter: DrawSubmitter,
        waiter: ConfirmationWaiter,
        reader: NumberReader,
        bus: EventBus | None = None,
    ) -> None:
        self._submitter = submitter
        self._waiter = waiter
        self._reader = reader
        self._bus = bus
        self._in_flight = False
        self.last_result: DrawResult | None = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def draw(self) -> DrawResult:
        if self._in_flight:
            raise RequestAlreadyInFlightError("a draw is already in flight")
        self._in_flight = True
        try:
            result = await self._draw()
        finally:
            self._in_flight = False
        self.last_result = result
        if self._bus is not None:
            self._bus.publish_draw_result(result)
        return result

    async def _draw(self) -> DrawResult:
        try:
            handle = await self._submitter.submit_draw()
        except Exception as exc:
            raise SubmissionRejectedError(f"draw submission rejected: {exc}") from exc
        log.info("Draw submitted tx=%s", handle)

        try:
            receipt = await self._waiter.await_confirmation(handle)
        except RequestFailedError:
            raise
        except asyncio.TimeoutError as exc:
            raise ConfirmationTimeoutError(handle) from exc
        except Exception as exc:
            raise RequestFailedError(f"confirmation wait failed for {handle}: {exc}") from exc
        if not receipt.succeeded:
            raise TransactionRevertedError(handle)

        try:
            value = await self._reader.current_number()
        except Exception as exc:
            raise RandomnessReadError(f"random number read failed: {exc}") from exc
        log.info("Draw resolved tx=%s block=%s", handle, receipt.block_number)
        return DrawResult(transaction_handle=handle, value=value, block_number=receipt.block_number)
