"""
Game rules loaded from config/game.yaml.

Usage:
    from config.game import load_game_config
    game_cfg = load_game_config()
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path

import yaml

from models.state import CHOICE_ORDER, Choice

GAME_CONFIG_PATH = Path(__file__).with_name("game.yaml")
DEFAULT_CALLBACK_GAS_LIMIT = 700_000


@dataclass(frozen=True)
class GameConfig:
    options: tuple[Choice, ...]
    match_label: str
    miss_label: str
    callback_gas_limit: int | None

    def label_for(self, is_match: bool) -> str:
        return self.match_label if is_match else self.miss_label

    def gas_budget(self, env_override: int | None = None) -> int:
        """CALLBACK_GAS_LIMIT from the environment wins, then game.yaml, then the default."""
        if env_override is not None:
            return env_override
        if self.callback_gas_limit is not None:
            return self.callback_gas_limit
        return DEFAULT_CALLBACK_GAS_LIMIT


def load_game_config(path: str | Path = GAME_CONFIG_PATH) -> GameConfig:
    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    names = raw.get("options", [c.value for c in CHOICE_ORDER])
    try:
        options = tuple(Choice(name) for name in names)
    except ValueError as exc:
        raise ValueError(f"{path}: unknown option in {names!r}") from exc
    if not options or len(set(options)) != len(options):
        raise ValueError(f"{path}: options must be a non-empty list without duplicates")

    labels = raw.get("labels") or {}
    gas = raw.get("callback_gas_limit")
    return GameConfig(
        options=options,
        match_label=labels.get("match", "save"),
        miss_label=labels.get("miss", "goal"),
        callback_gas_limit=int(gas) if gas is not None else None,
    )
