"""
Environment-based configuration.
All endpoints and addresses come from environment variables - never hardcoded.

Usage:
    from config.settings import settings
    print(settings.rpc_url)
"""

from __future__ import annotations
import os
from dataclasses import dataclass


def _require(key: str) -> str:
    val = os.environ.get(key)
    if not val:
        raise EnvironmentError(f"Required environment variable '{key}' is not set.")
    return val


def _optional(key: str, default: str = "") -> str:
    return os.environ.get(key, default)


def _optional_int(key: str) -> int | None:
    val = os.environ.get(key)
    return int(val) if val else None


@dataclass(frozen=True)
class Settings:
    # --- Chain ---
    rpc_url: str                          # HTTP JSON-RPC endpoint
    ws_url: str                           # Empty = poll receipts on an interval only
    rpc_jwt_secret_path: str              # Empty = unauthenticated endpoint
    consumer_contract_address: str        # Game's randomness consumer
    sender_contract_address: str          # Randomness sender (pricing)
    from_address: str                     # Account the node-side wallet signs for

    # --- Requests ---
    callback_gas_limit: int | None        # None = use config/game.yaml
    receipt_poll_interval_s: float
    confirmation_timeout_s: float

    # --- Logging ---
    log_level: str


def load_settings() -> Settings:
    return Settings(
        rpc_url=_require("RPC_URL"),
        ws_url=_optional("WS_URL"),
        rpc_jwt_secret_path=_optional("RPC_JWT_SECRET_PATH"),
        consumer_contract_address=_require("CONSUMER_CONTRACT_ADDRESS"),
        sender_contract_address=_require("SENDER_CONTRACT_ADDRESS"),
        from_address=_require("FROM_ADDRESS"),
        callback_gas_limit=_optional_int("CALLBACK_GAS_LIMIT"),
        receipt_poll_interval_s=float(_optional("RECEIPT_POLL_INTERVAL_S", "1.0")),
        confirmation_timeout_s=float(_optional("CONFIRMATION_TIMEOUT_S", "120")),
        log_level=_optional("LOG_LEVEL", "INFO"),
    )


# Module-level singleton - loaded once at startup
settings = load_settings()
