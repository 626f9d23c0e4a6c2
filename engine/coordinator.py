"""
Request Coordinator - drives one randomness request to resolution.

State machine (per request):
  idle → pricing → submitting → awaitingConfirmation → awaitingValue → resolved
Every non-terminal state can exit into failed.

Latency budget:
  - pricing (eth_call):            ~50-200ms
  - submitting (wallet + node):    ~0.1-30s (user may need to approve)
  - awaitingConfirmation:          seconds to tens of seconds (dominant)
  - awaitingValue (eth_call):      ~50-200ms

One coordinator handles exactly one request. It is single-use: a second
run() while the first is in flight is rejected, never queued.
"""

from __future__ import annotations
import asyncio
import logging
import time
from typing import Sequence

from adapters.base import ConfirmationWaiter, PricingOracle, RandomnessReader, TransactionSubmitter
from engine.deriver import reconcile
from engine.errors import (
    ConfirmationTimeoutError,
    PricingUnavailableError,
    RandomnessReadError,
    RequestAlreadyInFlightError,
    RequestFailedError,
    SubmissionRejectedError,
    TransactionRevertedError,
)
from models.events import Outcome, RequestParams
from models.state import CHOICE_ORDER, Choice, CoordinatorState, RandomnessRequest

log = logging.getLogger(__name__)


class RequestCoordinator:
    """
    Owns the lifecycle of a single RandomnessRequest.

    The waiter and reader calls are the suspension points; control returns to
    the caller's event loop while the chain catches up.
    """

    def __init__(
        self,
        pricing: PricingOracle,
        submitter: TransactionSubmitter,
        waiter: ConfirmationWaiter,
        reader: RandomnessReader,
        ordering: Sequence[Choice] = CHOICE_ORDER,
    ) -> None:
        self._pricing = pricing
        self._submitter = submitter
        self._waiter = waiter
        self._reader = reader
        self._ordering = tuple(ordering)
        self._state = CoordinatorState.IDLE
        self.request: RandomnessRequest | None = None
        self.random_value: bytes | None = None
        self.outcome: Outcome | None = None
        self.error: BaseException | None = None

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._state is not CoordinatorState.IDLE and not self._state.is_terminal

    async def run(self, params: RequestParams, committed: Choice) -> Outcome:
        if self._state is not CoordinatorState.IDLE:
            raise RequestAlreadyInFlightError(f"coordinator already used (state={self._state.value})")

        started_at = time.monotonic_ns()
        try:
            price = await self._price(params)
            await self._submit(params, price)
            await self._await_confirmation()
            value = await self._read_value()
            outcome = reconcile(value, committed, self._ordering)
        except asyncio.CancelledError:
            self._transition(CoordinatorState.FAILED)
            raise
        except Exception as exc:
            self._fail(exc)
            raise

        self.outcome = outcome
        self._transition(CoordinatorState.RESOLVED)
        log.info(
            "Request resolved tx=%s position=%s match=%s latency_ms=%.1f",
            self.request.transaction_handle if self.request else "?",
            outcome.derived_position.value, outcome.is_match,
            (time.monotonic_ns() - started_at) / 1_000_000,
        )
        return outcome

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _price(self, params: RequestParams) -> int:
        self._transition(CoordinatorState.PRICING)
        try:
            price = await self._pricing.price(params.callback_gas_limit)
        except RequestFailedError:
            raise
        except Exception as exc:
            raise PricingUnavailableError(f"pricing oracle unavailable: {exc}") from exc
        if price < 0:
            raise PricingUnavailableError(f"pricing oracle returned a negative price: {price}")
        log.info("Priced request gas_budget=%d price_wei=%d", params.callback_gas_limit, price)
        return price

    async def _submit(self, params: RequestParams, price: int) -> None:
        self._transition(CoordinatorState.SUBMITTING)
        try:
            handle = await self._submitter.submit(params, price)
        except RequestFailedError:
            raise
        except Exception as exc:
            raise SubmissionRejectedError(f"submission rejected: {exc}") from exc
        self.request = RandomnessRequest(
            gas_budget=params.callback_gas_limit,
            price=price,
            transaction_handle=handle,
        )
        log.info("Request submitted tx=%s", handle)

    async def _await_confirmation(self) -> None:
        assert self.request is not None
        handle = self.request.transaction_handle
        self._transition(CoordinatorState.AWAITING_CONFIRMATION)
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
        self.request.confirm()
        log.info("Request confirmed tx=%s block=%s", handle, receipt.block_number)

    async def _read_value(self) -> bytes:
        self._transition(CoordinatorState.AWAITING_VALUE)
        try:
            value = bytes(await self._reader.current_value())
        except RequestFailedError:
            raise
        except Exception as exc:
            raise RandomnessReadError(f"randomness read failed: {exc}") from exc
        self.random_value = value
        log.debug("Random value read len=%d", len(value))
        return value

    # ------------------------------------------------------------------

    def _transition(self, new_state: CoordinatorState) -> None:
        log.debug("Coordinator %s -> %s", self._state.value, new_state.value)
        self._state = new_state

    def _fail(self, exc: BaseException) -> None:
        failed_in = self._state
        self.error = exc
        if self.request is not None:
            self.request.fail()
        self._transition(CoordinatorState.FAILED)
        log.error("Request failed in state=%s: %s: %s", failed_in.value, type(exc).__name__, exc)
