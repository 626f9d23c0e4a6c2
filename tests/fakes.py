"""In-memory stand-ins for the external capabilities the engine consumes."""

from __future__ import annotations
import asyncio

from adapters.base import (
    ConfirmationWaiter,
    DrawSubmitter,
    NumberReader,
    PricingOracle,
    RandomnessReader,
    TransactionSubmitter,
)
from models.events import RequestParams, TransactionReceipt


class FakePricing(PricingOracle):
    def __init__(self, price: int = 1_000, error: Exception | None = None) -> None:
        self._price = price
        self._error = error
        self.calls: list[int] = []

    async def price(self, gas_budget: int) -> int:
        self.calls.append(gas_budget)
        if self._error:
            raise self._error
        return self._price


class FakeSubmitter(TransactionSubmitter, DrawSubmitter):
    def __init__(self, handle: str = "0xfeed", error: Exception | None = None) -> None:
        self._handle = handle
        self._error = error
        self.calls: list[tuple[RequestParams, int]] = []
        self.draw_calls = 0

    async def submit(self, params: RequestParams, payment: int) -> str:
        self.calls.append((params, payment))
        if self._error:
            raise self._error
        return self._handle

    async def submit_draw(self) -> str:
        self.draw_calls += 1
        if self._error:
            raise self._error
        return self._handle


class FakeWaiter(ConfirmationWaiter):
    """
    Resolves with the configured status. When gate is given, the wait
    suspends until the test sets it.
    """

    def __init__(
        self,
        status: str = "success",
        error: BaseException | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self._status = status
        self._error = error
        self.gate = gate
        self.handles: list[str] = []

    async def await_confirmation(self, transaction_handle: str) -> TransactionReceipt:
        self.handles.append(transaction_handle)
        if self.gate is not None:
            await self.gate.wait()
        if self._error:
            raise self._error
        return TransactionReceipt(transaction_handle=transaction_handle, status=self._status, block_number=7)


class FakeReader(RandomnessReader, NumberReader):
    def __init__(self, value: bytes = b"\x01", number: int = 42, error: Exception | None = None) -> None:
        self._value = value
        self._number = number
        self._error = error
        self.reads = 0

    async def current_value(self) -> bytes:
        self.reads += 1
        if self._error:
            raise self._error
        return self._value

    async def current_number(self) -> int:
        self.reads += 1
        if self._error:
            raise self._error
        return self._number
