from __future__ import annotations

import asyncio

import pytest

from bus.event_bus import EventBus
from engine.coordinator import RequestCoordinator
from engine.errors import (
    EmptyRandomnessError,
    GameAlreadyResolvedError,
    NoCommitmentError,
    RequestAbandonedError,
    RequestAlreadyInFlightError,
    SubmissionRejectedError,
    TransactionRevertedError,
)
from engine.game import GameStateMachine
from fakes import FakePricing, FakeReader, FakeSubmitter, FakeWaiter
from models.state import Choice, CoordinatorState, Phase


def _game(
    value: bytes = b"\x01",
    submitter: FakeSubmitter | None = None,
    waiter: FakeWaiter | None = None,
    reader: FakeReader | None = None,
    bus: EventBus | None = None,
):
    submitter = submitter or FakeSubmitter()
    waiter = waiter or FakeWaiter()
    reader = reader or FakeReader(value=value)
    return GameStateMachine(
        coordinator_factory=lambda: RequestCoordinator(FakePricing(), submitter, waiter, reader),
        gas_budget=700_000,
        bus=bus,
    )


def _drain(queue: asyncio.Queue) -> list:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


@pytest.mark.asyncio
async def test_commit_left_shot_center_is_a_goal():
    game = _game(value=b"\x01")
    game.commit(Choice.LEFT)

    outcome = await game.shoot()

    assert game.phase is Phase.RESOLVED
    assert outcome.as_dict() == {"position": "center", "match": False}
    assert game.derived_outcome == outcome
    assert game.committed_choice is Choice.LEFT
    assert game.request is not None
    assert game.session.random_value == b"\x01"


@pytest.mark.asyncio
async def test_commit_center_shot_center_is_a_save():
    game = _game(value=b"\x01")
    game.commit("center")

    outcome = await game.shoot()

    assert outcome.derived_position is Choice.CENTER
    assert outcome.is_match is True
    assert game.phase is Phase.RESOLVED


@pytest.mark.asyncio
async def test_latest_commitment_wins():
    game = _game(value=b"\x02")
    game.commit(Choice.LEFT)
    game.commit(Choice.CENTER)
    game.commit(Choice.RIGHT)

    outcome = await game.shoot()
    assert outcome.is_match is True


@pytest.mark.asyncio
async def test_shoot_without_commitment():
    submitter = FakeSubmitter()
    game = _game(submitter=submitter)

    with pytest.raises(NoCommitmentError):
        await game.shoot()

    assert game.phase is Phase.SETUP
    assert submitter.calls == []
    assert game.last_error.user_message == "Please select a position for the goalkeeper first!"


@pytest.mark.asyncio
async def test_submission_failure_returns_to_setup():
    bus = EventBus()
    game = _game(submitter=FakeSubmitter(error=RuntimeError("insufficient funds")), bus=bus)
    game.commit(Choice.LEFT)

    with pytest.raises(SubmissionRejectedError):
        await game.shoot()

    assert game.phase is Phase.SETUP
    assert game.request is None
    assert game.derived_outcome is None
    assert isinstance(game.last_error, SubmissionRejectedError)
    # Commitment survives so the user can retry with one click
    assert game.committed_choice is Choice.LEFT

    failures = _drain(bus.request_failures)
    assert [f.error_type for f in failures] == ["SubmissionRejectedError"]
    assert failures[0].user_message == "Failed to take penalty shot. Please try again."


@pytest.mark.asyncio
async def test_empty_randomness_returns_to_setup_with_message():
    bus = EventBus()
    game = _game(value=b"", bus=bus)
    game.commit(Choice.RIGHT)

    with pytest.raises(EmptyRandomnessError):
        await game.shoot()

    assert game.phase is Phase.SETUP
    assert game.request is None
    assert game.session.random_value is None
    failure = bus.request_failures.get_nowait()
    assert failure.user_message == "Failed to generate random number. Please try again."


@pytest.mark.asyncio
async def test_retry_after_failure_uses_fresh_request():
    waiter = FakeWaiter(status="reverted")
    game = _game(waiter=waiter)
    game.commit(Choice.LEFT)
    with pytest.raises(TransactionRevertedError):
        await game.shoot()

    waiter._status = "success"
    outcome = await game.shoot()
    assert outcome.derived_position is Choice.CENTER
    assert game.phase is Phase.RESOLVED
    assert len(waiter.handles) == 2


@pytest.mark.asyncio
async def test_shoot_while_requesting_is_rejected():
    gate = asyncio.Event()
    submitter = FakeSubmitter()
    game = _game(submitter=submitter, waiter=FakeWaiter(gate=gate))
    game.commit(Choice.LEFT)

    first = asyncio.create_task(game.shoot())
    await asyncio.sleep(0)
    assert game.phase is Phase.REQUESTING
    in_flight = game.coordinator
    assert in_flight.state is CoordinatorState.AWAITING_CONFIRMATION

    with pytest.raises(RequestAlreadyInFlightError):
        await game.shoot()
    with pytest.raises(RequestAlreadyInFlightError):
        game.commit(Choice.RIGHT)

    assert game.coordinator is in_flight
    assert in_flight.state is CoordinatorState.AWAITING_CONFIRMATION
    assert game.committed_choice is Choice.LEFT
    assert len(submitter.calls) == 1

    gate.set()
    await first
    assert game.phase is Phase.RESOLVED


@pytest.mark.asyncio
async def test_resolved_game_requires_reset():
    game = _game()
    game.commit(Choice.LEFT)
    await game.shoot()

    with pytest.raises(GameAlreadyResolvedError):
        game.commit(Choice.RIGHT)
    with pytest.raises(GameAlreadyResolvedError):
        await game.shoot()

    game.reset()
    assert game.phase is Phase.SETUP
    assert game.committed_choice is None
    assert game.derived_outcome is None
    assert game.request is None
    assert game.session.random_value is None


@pytest.mark.asyncio
async def test_reset_twice_is_a_noop():
    bus = EventBus()
    game = _game(bus=bus)
    game.commit(Choice.LEFT)
    await game.shoot()
    _drain(bus.phase_changes)

    game.reset()
    generation = game.session.generation
    game.reset()

    assert game.phase is Phase.SETUP
    assert game.committed_choice is None
    assert game.session.generation == generation
    assert [(e.previous, e.current) for e in _drain(bus.phase_changes)] == [(Phase.RESOLVED, Phase.SETUP)]


@pytest.mark.asyncio
async def test_reset_mid_flight_detaches_session():
    gate = asyncio.Event()
    game = _game(waiter=FakeWaiter(gate=gate))
    game.commit(Choice.LEFT)

    shot = asyncio.create_task(game.shoot())
    await asyncio.sleep(0)
    assert game.phase is Phase.REQUESTING

    game.reset()
    assert game.phase is Phase.SETUP
    assert game.committed_choice is None

    gate.set()
    with pytest.raises(RequestAbandonedError):
        await shot

    # Late resolution must not leak into the new game
    assert game.phase is Phase.SETUP
    assert game.derived_outcome is None
    assert game.request is None


@pytest.mark.asyncio
async def test_phase_changes_are_published():
    bus = EventBus()
    game = _game(value=b"\x00", bus=bus)
    game.commit(Choice.LEFT)

    await game.shoot()

    events = _drain(bus.phase_changes)
    assert [(e.previous, e.current) for e in events] == [
        (Phase.SETUP, Phase.REQUESTING),
        (Phase.REQUESTING, Phase.RESOLVED),
    ]
    assert events[-1].outcome.is_match is True


@pytest.mark.asyncio
async def test_cancelled_shot_returns_to_setup():
    gate = asyncio.Event()
    game = _game(waiter=FakeWaiter(gate=gate))
    game.commit(Choice.LEFT)

    shot = asyncio.create_task(game.shoot())
    await asyncio.sleep(0)
    shot.cancel()
    with pytest.raises(asyncio.CancelledError):
        await shot

    assert game.phase is Phase.SETUP
    assert game.request is None


@pytest.mark.asyncio
async def test_new_shot_waits_for_detached_request_to_settle():
    gate = asyncio.Event()
    submitter = FakeSubmitter()
    game = _game(submitter=submitter, waiter=FakeWaiter(gate=gate))
    game.commit(Choice.LEFT)

    shot = asyncio.create_task(game.shoot())
    await asyncio.sleep(0)
    detached = game.coordinator
    game.reset()
    game.commit(Choice.CENTER)

    with pytest.raises(RequestAlreadyInFlightError):
        await game.shoot()
    assert game.phase is Phase.SETUP
    assert game.committed_choice is Choice.CENTER
    assert len(submitter.calls) == 1
    assert detached.in_flight

    gate.set()
    with pytest.raises(RequestAbandonedError):
        await shot
    assert not detached.in_flight

    outcome = await game.shoot()
    assert outcome.is_match is True
    assert game.coordinator is not detached
    assert len(submitter.calls) == 2


@pytest.mark.asyncio
async def test_reset_clears_last_error_even_when_nothing_to_discard():
    game = _game()
    with pytest.raises(NoCommitmentError):
        await game.shoot()
    assert game.last_error is not None

    game.reset()
    assert game.last_error is None
