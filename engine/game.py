"""
Game State Machine - user commitment, shot orchestration, and outcome.

Phases:
  setup → requesting → resolved
  resolved → setup via an explicit reset (a new game, not a resumption)

Every mutation of the GameSession happens inside commit(), shoot() or
reset(). There is no locking: the presentation layer serializes user actions
(e.g. disables the shoot button while requesting), and shoot() claims the
requesting phase before its first suspension point, so a second concurrent
shoot() is rejected instead of racing.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Callable

from bus.event_bus import EventBus
from engine.coordinator import RequestCoordinator
from engine.errors import (
    EngineError,
    GameAlreadyResolvedError,
    NoCommitmentError,
    RequestAbandonedError,
    RequestAlreadyInFlightError,
)
from models.events import Outcome, PhaseChanged, RequestFailed, RequestParams
from models.state import Choice, GameSession, Phase, RandomnessRequest

log = logging.getLogger(__name__)

CoordinatorFactory = Callable[[], RequestCoordinator]


class GameStateMachine:
    """
    Orchestrates one GameSession.

    A fresh RequestCoordinator is built for every shot; a failed request is
    never resumed.
    """

    def __init__(
        self,
        coordinator_factory: CoordinatorFactory,
        gas_budget: int,
        session: GameSession | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._coordinator_factory = coordinator_factory
        self._params = RequestParams(callback_gas_limit=gas_budget)
        self._session = session if session is not None else GameSession()
        self._bus = bus
        self._coordinator: RequestCoordinator | None = None
        # Coordinator orphaned by a mid-flight reset; blocks new shots until it settles
        self._detached: RequestCoordinator | None = None
        self._last_error: EngineError | None = None

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self._session.phase

    @property
    def committed_choice(self) -> Choice | None:
        return self._session.commitment

    @property
    def derived_outcome(self) -> Outcome | None:
        return self._session.outcome

    @property
    def request(self) -> RandomnessRequest | None:
        """The session's request, or the in-flight one while requesting."""
        if self._session.phase is Phase.REQUESTING and self._coordinator is not None:
            return self._coordinator.request
        return self._session.request

    @property
    def coordinator(self) -> RequestCoordinator | None:
        return self._coordinator

    @property
    def last_error(self) -> EngineError | None:
        return self._last_error

    @property
    def session(self) -> GameSession:
        return self._session

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def commit(self, choice: Choice | str) -> None:
        """Record the commitment. The latest selection before the shot wins."""
        choice = Choice(choice)
        self._check_not_busy()
        self._session.commitment = choice
        log.info("Committed choice=%s", choice.value)

    async def shoot(self) -> Outcome:
        session = self._session
        self._check_not_busy()
        self._check_detached_settled()
        if session.commitment is None:
            self._last_error = NoCommitmentError()
            raise self._last_error

        generation = session.generation
        committed = session.commitment
        coordinator = self._coordinator_factory()
        self._coordinator = coordinator
        self._last_error = None
        session.request = None
        session.random_value = None
        session.outcome = None
        self._set_phase(Phase.REQUESTING)

        try:
            outcome = await coordinator.run(self._params, committed)
        except asyncio.CancelledError:
            if session.generation == generation:
                self._revert_to_setup()
            else:
                self._release_detached(coordinator)
            raise
        except Exception as exc:
            if session.generation != generation:
                self._release_detached(coordinator)
                log.warning("Detached request failed after reset: %s", exc)
                raise RequestAbandonedError("session was reset before the request failed") from exc
            self._revert_to_setup(exc)
            raise

        if session.generation != generation:
            self._release_detached(coordinator)
            log.warning(
                "Dropping outcome of detached request tx=%s position=%s",
                coordinator.request.transaction_handle if coordinator.request else "?",
                outcome.derived_position.value,
            )
            raise RequestAbandonedError("session was reset before the request resolved")

        session.request = coordinator.request
        session.random_value = coordinator.random_value
        session.outcome = outcome
        self._set_phase(Phase.RESOLVED, outcome)
        log.info(
            "Shot resolved committed=%s position=%s result=%s",
            committed.value, outcome.derived_position.value, outcome.label,
        )
        return outcome

    def reset(self) -> None:
        """
        Start a new game. Discards the request, random value and outcome.
        Resetting while requesting detaches the session from the in-flight
        request; it may still complete on-chain but its result is dropped, and
        no new shot starts until it settles.
        """
        session = self._session
        self._last_error = None
        if session.phase is Phase.SETUP and session.commitment is None and session.request is None:
            return

        previous = session.phase
        if previous is Phase.REQUESTING:
            request = self.request
            log.warning(
                "Reset while requesting - detaching tx=%s",
                request.transaction_handle if request else "(not yet submitted)",
            )
            self._detached = self._coordinator
        session.generation += 1
        session.clear()
        self._coordinator = None
        if previous is not Phase.SETUP:
            self._publish_phase(previous, Phase.SETUP)
        log.info("Game reset")

    # ------------------------------------------------------------------

    def _check_not_busy(self) -> None:
        phase = self._session.phase
        if phase is Phase.REQUESTING:
            raise RequestAlreadyInFlightError("a request is already in flight for this session")
        if phase is Phase.RESOLVED:
            raise GameAlreadyResolvedError("game already resolved; reset first")

    def _check_detached_settled(self) -> None:
        # The consumer only exposes its latest value, so a second request
        # alongside the detached one could read the other's randomness.
        detached = self._detached
        if detached is None:
            return
        if detached.in_flight:
            raise RequestAlreadyInFlightError(
                f"request from a reset game is still {detached.state.value}; try again once it settles"
            )
        self._detached = None

    def _release_detached(self, coordinator: RequestCoordinator) -> None:
        if self._detached is coordinator:
            self._detached = None

    def _revert_to_setup(self, exc: BaseException | None = None) -> None:
        session = self._session
        session.request = None
        session.random_value = None
        session.outcome = None
        self._coordinator = None
        self._set_phase(Phase.SETUP)
        if exc is None:
            return
        if isinstance(exc, EngineError):
            self._last_error = exc
            user_message = exc.user_message
        else:
            user_message = EngineError.user_message
        if self._bus is not None:
            self._bus.publish_request_failure(
                RequestFailed(
                    error_type=type(exc).__name__,
                    user_message=user_message,
                    detail=str(exc),
                )
            )

    def _set_phase(self, phase: Phase, outcome: Outcome | None = None) -> None:
        previous = self._session.phase
        self._session.phase = phase
        log.debug("Phase %s -> %s", previous.value, phase.value)
        self._publish_phase(previous, phase, outcome)

    def _publish_phase(self, previous: Phase, current: Phase, outcome: Outcome | None = None) -> None:
        if self._bus is not None:
            self._bus.publish_phase_change(PhaseChanged(previous=previous, current=current, outcome=outcome))
