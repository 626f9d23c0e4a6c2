"""
Engine error taxonomy.

Caller misuse (local, non-fatal; the call is rejected and no state changes):
  NoCommitmentError, RequestAlreadyInFlightError, GameAlreadyResolvedError

Request-lifecycle failures (the session falls back to setup):
  PricingUnavailableError, SubmissionRejectedError, TransactionRevertedError,
  EmptyRandomnessError, ConfirmationTimeoutError, RandomnessReadError

Nothing here is retried automatically. Every lifecycle error carries a
user_message the presentation layer can show as-is.
"""

from __future__ import annotations

SHOT_FAILED_MESSAGE = "Failed to take penalty shot. Please try again."


class EngineError(Exception):
    """Base class for all engine errors."""

    user_message: str = SHOT_FAILED_MESSAGE


# ---------------------------------------------------------------------------
# Caller misuse
# ---------------------------------------------------------------------------

class NoCommitmentError(EngineError):
    user_message = "Please select a position for the goalkeeper first!"

    def __init__(self) -> None:
        super().__init__("cannot shoot without a committed choice")


class RequestAlreadyInFlightError(EngineError):
    user_message = "A shot is already in progress."


class GameAlreadyResolvedError(EngineError):
    user_message = "This game is over. Reset to play again."


# ---------------------------------------------------------------------------
# Request lifecycle
# ---------------------------------------------------------------------------

class RequestFailedError(EngineError):
    """Base class for failures of a single randomness request."""


class PricingUnavailableError(RequestFailedError):
    pass


class SubmissionRejectedError(RequestFailedError):
    pass


class TransactionRevertedError(RequestFailedError):
    def __init__(self, transaction_handle: str) -> None:
        super().__init__(f"transaction {transaction_handle} reverted")
        self.transaction_handle = transaction_handle


class ConfirmationTimeoutError(RequestFailedError):
    def __init__(self, transaction_handle: str, timeout_s: float | None = None) -> None:
        waited = f" after {timeout_s:.1f}s" if timeout_s is not None else ""
        super().__init__(f"no receipt for {transaction_handle}{waited}")
        self.transaction_handle = transaction_handle
        self.timeout_s = timeout_s


class RandomnessReadError(RequestFailedError):
    pass


class EmptyRandomnessError(RequestFailedError):
    user_message = "Failed to generate random number. Please try again."

    def __init__(self) -> None:
        super().__init__("random value is empty")


class RequestAbandonedError(EngineError):
    """
    Raised to a shoot() awaiter whose session was reset before the request
    resolved. The on-chain request may still complete; its result is dropped.
    """
    user_message = "The game was reset before the shot resolved."
