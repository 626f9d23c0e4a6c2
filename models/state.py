"""
Mutable state objects owned by the engine.
A GameSession is owned by the presentation boundary; only GameStateMachine
writes to it, and only from within its transitions.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from models.events import Outcome


class Choice(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


# Index i of a derived value maps to CHOICE_ORDER[i]. Never reorder.
CHOICE_ORDER: tuple[Choice, ...] = (Choice.LEFT, Choice.CENTER, Choice.RIGHT)


class Phase(str, Enum):
    SETUP = "setup"
    REQUESTING = "requesting"
    RESOLVED = "resolved"


class RequestStatus(str, Enum):
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class CoordinatorState(str, Enum):
    IDLE = "idle"
    PRICING = "pricing"
    SUBMITTING = "submitting"
    AWAITING_CONFIRMATION = "awaitingConfirmation"
    AWAITING_VALUE = "awaitingValue"
    RESOLVED = "resolved"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CoordinatorState.RESOLVED, CoordinatorState.FAILED)


@dataclass(slots=True)
class RandomnessRequest:
    """
    One in-flight request. Created at submission, discarded on reset.
    """
    gas_budget: int
    price: int                      # wei
    transaction_handle: str
    status: RequestStatus = RequestStatus.SUBMITTED

    def confirm(self) -> None:
        self.status = RequestStatus.CONFIRMED

    def fail(self) -> None:
        self.status = RequestStatus.FAILED


@dataclass(slots=True)
class GameSession:
    phase: Phase = Phase.SETUP
    commitment: Choice | None = None
    request: RandomnessRequest | None = None
    random_value: bytes | None = None
    outcome: Outcome | None = None
    # Bumped on every reset; an in-flight shot compares it to detect detachment
    generation: int = 0

    def clear(self) -> None:
        self.phase = Phase.SETUP
        self.commitment = None
        self.request = None
        self.random_value = None
        self.outcome = None
