from __future__ import annotations

import asyncio

import pytest

from engine.coordinator import RequestCoordinator
from engine.errors import (
    ConfirmationTimeoutError,
    EmptyRandomnessError,
    PricingUnavailableError,
    RandomnessReadError,
    RequestAlreadyInFlightError,
    SubmissionRejectedError,
    TransactionRevertedError,
)
from fakes import FakePricing, FakeReader, FakeSubmitter, FakeWaiter
from models.events import RequestParams
from models.state import Choice, CoordinatorState, RequestStatus

PARAMS = RequestParams(callback_gas_limit=700_000)


def _coordinator(**overrides) -> RequestCoordinator:
    return RequestCoordinator(
        pricing=overrides.get("pricing", FakePricing(price=5_000)),
        submitter=overrides.get("submitter", FakeSubmitter(handle="0xabc")),
        waiter=overrides.get("waiter", FakeWaiter()),
        reader=overrides.get("reader", FakeReader(value=b"\x02")),
    )


@pytest.mark.asyncio
async def test_happy_path_resolves():
    pricing = FakePricing(price=5_000)
    submitter = FakeSubmitter(handle="0xabc")
    coordinator = _coordinator(pricing=pricing, submitter=submitter)

    outcome = await coordinator.run(PARAMS, Choice.RIGHT)

    assert outcome.derived_position is Choice.RIGHT
    assert outcome.is_match is True
    assert coordinator.state is CoordinatorState.RESOLVED
    assert coordinator.state.is_terminal
    assert not coordinator.in_flight
    assert pricing.calls == [700_000]
    # Price is attached as payment to the same submission
    assert submitter.calls == [(PARAMS, 5_000)]
    assert coordinator.request.status is RequestStatus.CONFIRMED
    assert coordinator.request.price == 5_000
    assert coordinator.random_value == b"\x02"
    assert coordinator.outcome == outcome


@pytest.mark.asyncio
async def test_pricing_failure():
    submitter = FakeSubmitter()
    coordinator = _coordinator(pricing=FakePricing(error=ConnectionError("down")), submitter=submitter)

    with pytest.raises(PricingUnavailableError):
        await coordinator.run(PARAMS, Choice.LEFT)

    assert coordinator.state is CoordinatorState.FAILED
    assert coordinator.request is None
    assert submitter.calls == []


@pytest.mark.asyncio
async def test_submission_rejected():
    waiter = FakeWaiter()
    coordinator = _coordinator(submitter=FakeSubmitter(error=RuntimeError("user rejected")), waiter=waiter)

    with pytest.raises(SubmissionRejectedError) as exc_info:
        await coordinator.run(PARAMS, Choice.LEFT)

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert coordinator.state is CoordinatorState.FAILED
    assert coordinator.request is None
    assert waiter.handles == []


@pytest.mark.asyncio
async def test_reverted_transaction():
    reader = FakeReader()
    coordinator = _coordinator(waiter=FakeWaiter(status="reverted"), reader=reader)

    with pytest.raises(TransactionRevertedError):
        await coordinator.run(PARAMS, Choice.LEFT)

    assert coordinator.request.status is RequestStatus.FAILED
    assert reader.reads == 0
    assert coordinator.outcome is None


@pytest.mark.asyncio
async def test_empty_randomness_is_terminal():
    reader = FakeReader(value=b"")
    coordinator = _coordinator(reader=reader)

    with pytest.raises(EmptyRandomnessError):
        await coordinator.run(PARAMS, Choice.LEFT)

    assert reader.reads == 1
    assert coordinator.state.is_terminal
    assert not coordinator.in_flight
    assert coordinator.state is CoordinatorState.FAILED
    assert coordinator.request.status is RequestStatus.FAILED
    assert coordinator.outcome is None


@pytest.mark.asyncio
async def test_waiter_timeout_maps_to_confirmation_timeout():
    coordinator = _coordinator(waiter=FakeWaiter(error=asyncio.TimeoutError()))

    with pytest.raises(ConfirmationTimeoutError):
        await coordinator.run(PARAMS, Choice.LEFT)
    assert coordinator.state is CoordinatorState.FAILED


@pytest.mark.asyncio
async def test_reader_transport_failure():
    coordinator = _coordinator(reader=FakeReader(error=OSError("connection reset")))

    with pytest.raises(RandomnessReadError):
        await coordinator.run(PARAMS, Choice.LEFT)


@pytest.mark.asyncio
async def test_second_run_while_in_flight_is_rejected():
    gate = asyncio.Event()
    coordinator = _coordinator(waiter=FakeWaiter(gate=gate))

    first = asyncio.create_task(coordinator.run(PARAMS, Choice.LEFT))
    await asyncio.sleep(0)
    assert coordinator.state is CoordinatorState.AWAITING_CONFIRMATION
    assert coordinator.in_flight

    with pytest.raises(RequestAlreadyInFlightError):
        await coordinator.run(PARAMS, Choice.RIGHT)
    assert coordinator.state is CoordinatorState.AWAITING_CONFIRMATION

    gate.set()
    outcome = await first
    assert outcome.derived_position is Choice.RIGHT
    assert coordinator.state is CoordinatorState.RESOLVED


@pytest.mark.asyncio
async def test_resolved_coordinator_is_single_use():
    coordinator = _coordinator()
    await coordinator.run(PARAMS, Choice.LEFT)

    with pytest.raises(RequestAlreadyInFlightError):
        await coordinator.run(PARAMS, Choice.LEFT)


def test_only_resolved_and_failed_are_terminal():
    assert {s for s in CoordinatorState if s.is_terminal} == {CoordinatorState.RESOLVED, CoordinatorState.FAILED}
    assert not _coordinator().in_flight
