"""
Logging setup for the engine and its chain adapters.
Call setup_logging() once at startup in main.py.
"""

from __future__ import annotations
import logging
import sys
import time

# Chatty at DEBUG; their frame-level output drowns the request lifecycle
_NOISY_LOGGERS = ("aiohttp.access", "aiohttp.client", "websockets.client")


class _MonotonicFormatter(logging.Formatter):
    """Stamps each record with elapsed ms since logging was configured."""

    def __init__(self, fmt: str, datefmt: str) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._origin_ns = time.monotonic_ns()

    def format(self, record: logging.LogRecord) -> str:
        record.elapsed_ms = (time.monotonic_ns() - self._origin_ns) / 1_000_000
        return super().format(record)


def setup_logging(level: str = "INFO") -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        _MonotonicFormatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s | +%(elapsed_ms).1fms | %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    root = logging.getLogger()
    root.setLevel(numeric)
    root.handlers.clear()
    root.addHandler(handler)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric, logging.WARNING))
