"""
Pricing oracle backed by the on-chain randomness sender contract.

The sender quotes the native-token fee for a request whose callback may
spend up to callbackGasLimit gas, at the current network gas price:

    calculateRequestPriceNative(uint32 callbackGasLimit) -> uint256 wei

The quote moves with the gas price, so it is fetched at submission time and
never cached.
"""

from __future__ import annotations
import logging

from adapters.base import PricingOracle
from chain import abi
from chain.rpc_client import JsonRpcClient

log = logging.getLogger(__name__)

PRICE_SIGNATURE = "calculateRequestPriceNative(uint32)"


class RandomnessSenderPricing(PricingOracle):
    def __init__(self, rpc: JsonRpcClient, sender_address: str) -> None:
        self._rpc = rpc
        self._sender_address = sender_address

    async def price(self, gas_budget: int) -> int:
        data = abi.encode_call(PRICE_SIGNATURE, gas_budget)
        raw = await self._rpc.call(self._sender_address, data)
        price = abi.decode_uint256(raw)
        log.debug("Sender quoted %d wei for gas_budget=%d", price, gas_budget)
        return price
