"""
Verifiable-randomness penalty shootout - Main Entrypoint

Boots the asyncio event loop, wires the engine to the chain, plays one round
(or one plain draw) and exits. Ctrl-C abandons tracking of an in-flight
request; the on-chain request may still complete.

Usage:
    python main.py penalty left
    python main.py draw

Startup sequence:
  1. Load settings from environment and game rules from config/game.yaml
  2. Initialize RPC auth, JSON-RPC client, optional newHeads WebSocket
  3. Build adapters, coordinator factory and game state machine
  4. Play, printing every phase change as it is published

Shutdown sequence:
  1. Stop the presenter and the newHeads stream
  2. Close network connections
"""

from __future__ import annotations
import argparse
import asyncio
import logging
import signal
import sys

from dotenv import load_dotenv

# Load .env before importing settings (settings reads env vars at import time)
load_dotenv()

from adapters.confirmation import ReceiptWaiter
from adapters.consumer import ConsumerContract
from adapters.randomness_sender import RandomnessSenderPricing
from bus.event_bus import EventBus
from chain.auth import RpcAuth
from chain.rpc_client import JsonRpcClient
from chain.ws_client import NewHeadsClient
from config.game import GameConfig, load_game_config
from config.settings import settings
from engine.coordinator import RequestCoordinator
from engine.draw import RandomNumberDraw
from engine.errors import EngineError
from engine.game import GameStateMachine
from models.state import Choice, Phase
from utils.logger import setup_logging

log = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Verifiable-randomness penalty shootout")
    sub = parser.add_subparsers(dest="command", required=True)
    penalty = sub.add_parser("penalty", help="commit a keeper dive and take one shot")
    penalty.add_argument("choice", choices=[c.value for c in Choice])
    sub.add_parser("draw", help="request and print one plain random number")
    return parser.parse_args(argv)


async def _present(bus: EventBus, game_cfg: GameConfig) -> None:
    """Stand-in presentation layer: print whatever the engine publishes."""
    while True:
        event = await bus.phase_changes.get()
        if event.current is Phase.REQUESTING:
            print("⚽ Generating random shot...")
        elif event.current is Phase.RESOLVED and event.outcome is not None:
            label = game_cfg.label_for(event.outcome.is_match)
            print(f"{label.upper()}! Shot went {event.outcome.derived_position.value}")


async def _play_penalty(game: GameStateMachine, choice: Choice) -> int:
    game.commit(choice)
    print(f"Goalkeeper position: {choice.value}")
    try:
        await game.shoot()
    except EngineError as exc:
        print(exc.user_message)
        log.error("Shot failed: %s", exc)
        return 1
    return 0


async def _play_draw(draw: RandomNumberDraw) -> int:
    try:
        result = await draw.draw()
    except EngineError as exc:
        print(exc.user_message)
        log.error("Draw failed: %s", exc)
        return 1
    print(f"Here's your verifiable random number: {result.value}")
    return 0


async def run(args: argparse.Namespace) -> int:
    setup_logging(settings.log_level)
    game_cfg = load_game_config()
    log.info("Starting %s (rpc=%s)", args.command, settings.rpc_url)

    # -----------------------------------------------------------------------
    # Infrastructure
    # -----------------------------------------------------------------------
    bus = EventBus()
    auth = RpcAuth.from_file(settings.rpc_jwt_secret_path) if settings.rpc_jwt_secret_path else None
    rpc = JsonRpcClient(rpc_url=settings.rpc_url, auth=auth)
    heads = NewHeadsClient(settings.ws_url, auth=auth) if settings.ws_url else None

    # -----------------------------------------------------------------------
    # Adapters
    # -----------------------------------------------------------------------
    consumer = ConsumerContract(
        rpc=rpc,
        consumer_address=settings.consumer_contract_address,
        from_address=settings.from_address,
    )
    pricing = RandomnessSenderPricing(rpc=rpc, sender_address=settings.sender_contract_address)
    waiter = ReceiptWaiter(
        rpc=rpc,
        poll_interval_s=settings.receipt_poll_interval_s,
        timeout_s=settings.confirmation_timeout_s,
        heads=heads,
    )

    # -----------------------------------------------------------------------
    # Startup: pre-warm connections
    # -----------------------------------------------------------------------
    await rpc.startup()
    tasks: list[asyncio.Task] = [asyncio.create_task(_present(bus, game_cfg), name="presenter")]
    if heads is not None:
        tasks.append(asyncio.create_task(heads.run(), name="new-heads"))

    loop = asyncio.get_running_loop()
    play: asyncio.Task
    if args.command == "penalty":
        game = GameStateMachine(
            coordinator_factory=lambda: RequestCoordinator(
                pricing, consumer, waiter, consumer, ordering=game_cfg.options
            ),
            gas_budget=game_cfg.gas_budget(settings.callback_gas_limit),
            bus=bus,
        )
        play = asyncio.create_task(_play_penalty(game, Choice(args.choice)), name="penalty")
    else:
        draw = RandomNumberDraw(consumer, waiter, consumer, bus=bus)
        play = asyncio.create_task(_play_draw(draw), name="draw")

    def _handle_signal(sig: signal.Signals) -> None:
        log.info("Received %s - abandoning in-flight request", sig.name)
        play.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _handle_signal, sig)

    try:
        exit_code = await play
    except asyncio.CancelledError:
        exit_code = 130
    finally:
        # Let the presenter print the last transition before stopping it
        await asyncio.sleep(0)
        if heads is not None:
            heads.request_shutdown()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await rpc.shutdown()
        log.info("Stopped cleanly.")
    return exit_code


def main() -> None:
    args = _parse_args()
    try:
        import uvloop  # type: ignore
    except ImportError:
        code = asyncio.run(run(args))
    else:
        code = uvloop.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
