"""
Typed multi-channel event bus between the engine and the presentation layer.

The engine never reaches into rendering; it publishes here and whoever draws
the screen consumes. Uses asyncio.Queue, same process, no network hops.

Queue sizing rationale:
  phase_changes:   32 - a session makes at most three transitions per shot
  request_failures: 8 - one per failed shot; a full queue means nobody is listening
  draw_results:     8 - same as above for plain draws
"""

from __future__ import annotations
import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from models.events import DrawResult, PhaseChanged, RequestFailed

log = logging.getLogger(__name__)


class EventBus:
    __slots__ = (
        "phase_changes",
        "request_failures",
        "draw_results",
    )

    def __init__(self) -> None:
        self.phase_changes: asyncio.Queue[PhaseChanged] = asyncio.Queue(maxsize=32)
        self.request_failures: asyncio.Queue[RequestFailed] = asyncio.Queue(maxsize=8)
        self.draw_results: asyncio.Queue[DrawResult] = asyncio.Queue(maxsize=8)

    def publish_phase_change(self, event: "PhaseChanged") -> None:
        """Non-blocking publish. Drops and logs if the queue is full."""
        try:
            self.phase_changes.put_nowait(event)
        except asyncio.QueueFull:
            log.warning(
                "phase_changes queue full - dropping %s -> %s",
                event.previous.value, event.current.value,
            )

    def publish_request_failure(self, event: "RequestFailed") -> None:
        try:
            self.request_failures.put_nowait(event)
        except asyncio.QueueFull:
            log.warning("request_failures queue full - dropping %s", event.error_type)

    def publish_draw_result(self, result: "DrawResult") -> None:
        try:
            self.draw_results.put_nowait(result)
        except asyncio.QueueFull:
            log.warning("draw_results queue full - dropping result for tx=%s", result.transaction_handle)
