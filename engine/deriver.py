"""
Random bytes → bounded discrete outcome.

Only the first byte is consumed:

    index = value[0] % option_count

For option_count = 3 this is slightly biased, because 3 does not divide 256:
  residue 0 occurs 86 times in 256, residues 1 and 2 occur 85 times each.
The bias is kept so results match every outcome already derived on-chain.
Anything with real stakes on it should use rejection sampling or reduce a
wider slice of the value instead.

All functions here are pure and safe to call from any task.
"""

from __future__ import annotations
from typing import Sequence

from engine.errors import EmptyRandomnessError
from models.events import Outcome
from models.state import CHOICE_ORDER, Choice


def derive(value: bytes | Sequence[int], option_count: int) -> int:
    """
    Map a random value to an index in [0, option_count).

    Raises EmptyRandomnessError if the value has no bytes.
    """
    if option_count < 1:
        raise ValueError(f"option_count must be >= 1, got {option_count}")
    if len(value) == 0:
        raise EmptyRandomnessError()
    return value[0] % option_count


def derive_choice(value: bytes | Sequence[int], ordering: Sequence[Choice] = CHOICE_ORDER) -> Choice:
    return ordering[derive(value, len(ordering))]


def reconcile(
    value: bytes | Sequence[int],
    committed: Choice,
    ordering: Sequence[Choice] = CHOICE_ORDER,
) -> Outcome:
    position = derive_choice(value, ordering)
    return Outcome(derived_position=position, is_match=position == committed)
