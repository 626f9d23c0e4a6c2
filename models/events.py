"""
Core data models that cross component boundaries.
All models use __slots__ and are frozen: once published they never change.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import time
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from models.state import Choice, Phase

ReceiptStatus = Literal["success", "reverted"]


@dataclass(frozen=True, slots=True)
class RequestParams:
    """
    Arguments for one funded randomness request.
    callback_gas_limit is the caller-supplied gas budget for the oracle callback.
    """
    callback_gas_limit: int

    def __post_init__(self) -> None:
        if self.callback_gas_limit <= 0:
            raise ValueError(f"callback_gas_limit must be positive, got {self.callback_gas_limit}")


@dataclass(frozen=True, slots=True)
class TransactionReceipt:
    transaction_handle: str
    status: ReceiptStatus
    block_number: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


@dataclass(frozen=True, slots=True)
class Outcome:
    """
    Reconciliation of the derived position against the commitment.
    Created exactly once per completed request.
    """
    derived_position: "Choice"
    is_match: bool

    @property
    def label(self) -> str:
        # A keeper diving the same way as the shot makes the save
        return "save" if self.is_match else "goal"

    def as_dict(self) -> dict[str, object]:
        return {"position": self.derived_position.value, "match": self.is_match}


@dataclass(frozen=True, slots=True)
class PhaseChanged:
    """Published by GameStateMachine on every phase transition."""
    previous: "Phase"
    current: "Phase"
    outcome: Outcome | None = None
    changed_at_ns: int = field(default_factory=time.monotonic_ns)


@dataclass(frozen=True, slots=True)
class RequestFailed:
    """Published when a shot fails and the session falls back to setup."""
    error_type: str
    user_message: str
    detail: str
    failed_at_ns: int = field(default_factory=time.monotonic_ns)


@dataclass(frozen=True, slots=True)
class DrawResult:
    transaction_handle: str
    value: int
    block_number: int | None = None
