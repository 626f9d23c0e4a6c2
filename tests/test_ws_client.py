from __future__ import annotations

import asyncio
import json

import pytest

from chain.ws_client import NewHeadsClient


def _head(number: int) -> str:
    return json.dumps({
        "jsonrpc": "2.0",
        "method": "eth_subscription",
        "params": {"subscription": "0x1", "result": {"number": hex(number)}},
    })


@pytest.mark.asyncio
async def test_new_head_wakes_waiters():
    heads = NewHeadsClient("ws://127.0.0.1:8546")
    waiter = asyncio.create_task(heads.wait_for_head(timeout_s=5))
    await asyncio.sleep(0)

    await heads._handle_message(_head(0x20))

    assert await waiter is True
    assert heads.latest_block == 0x20


@pytest.mark.asyncio
async def test_wait_for_head_times_out():
    heads = NewHeadsClient("ws://127.0.0.1:8546")
    assert await heads.wait_for_head(timeout_s=0.01) is False


@pytest.mark.asyncio
async def test_non_head_messages_are_ignored():
    heads = NewHeadsClient("ws://127.0.0.1:8546")
    await heads._handle_message(json.dumps({"jsonrpc": "2.0", "id": 1, "result": "0xabc"}))
    await heads._handle_message("not json")
    await heads._handle_message(json.dumps({"jsonrpc": "2.0", "id": 1, "error": {"code": -32601}}))
    assert heads.latest_block is None
