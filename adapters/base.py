"""
Abstract interfaces for the external capabilities the engine consumes.

The engine depends only on these classes. Chain-backed implementations live
next to this module; tests substitute in-memory fakes.
"""

from __future__ import annotations
from abc import ABC, abstractmethod

from models.events import RequestParams, TransactionReceipt


class PricingOracle(ABC):
    @abstractmethod
    async def price(self, gas_budget: int) -> int:
        """
        Amount (wei) required to fund a request whose callback may spend up
        to gas_budget gas. May fail transiently.
        """
        ...


class TransactionSubmitter(ABC):
    @abstractmethod
    async def submit(self, params: RequestParams, payment: int) -> str:
        """
        Submit the funded request, attaching payment atomically.
        Returns an opaque transaction handle. Raises if the submission is
        rejected (user declined, insufficient funds, node rejection).
        """
        ...


class ConfirmationWaiter(ABC):
    @abstractmethod
    async def await_confirmation(self, transaction_handle: str) -> TransactionReceipt:
        """
        Suspend until the transaction's terminal status is known.
        Any timeout is enforced here, not by the engine.
        """
        ...


class RandomnessReader(ABC):
    @abstractmethod
    async def current_value(self) -> bytes:
        """
        Most recently delivered random value. Read after confirmation; the
        oracle guarantees it corresponds to the confirmed request.
        """
        ...


class DrawSubmitter(ABC):
    @abstractmethod
    async def submit_draw(self) -> str:
        """Submit an unfunded plain draw. Returns the transaction handle."""
        ...


class NumberReader(ABC):
    @abstractmethod
    async def current_number(self) -> int:
        """Most recently delivered random number, as an unsigned integer."""
        ...
