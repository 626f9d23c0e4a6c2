"""
Adapters for the randomness consumer contract.

The consumer exposes:
  generateWithDirectFunding(uint32 callbackGasLimit)  payable - funded request
  generateRandomNumber()                                         - plain draw
  randomness()   -> bytes32   latest value delivered for funded requests
  randomNumber() -> uint256   latest value delivered for plain draws

Transactions are signed by the node-side wallet of from_address
(eth_sendTransaction); key management stays outside this process.
"""

from __future__ import annotations
import logging

from adapters.base import DrawSubmitter, NumberReader, RandomnessReader, TransactionSubmitter
from chain import abi
from chain.rpc_client import JsonRpcClient
from models.events import RequestParams

log = logging.getLogger(__name__)

FUNDED_REQUEST_SIGNATURE = "generateWithDirectFunding(uint32)"
DRAW_SIGNATURE = "generateRandomNumber()"
RANDOMNESS_SIGNATURE = "randomness()"
RANDOM_NUMBER_SIGNATURE = "randomNumber()"


class ConsumerContract(TransactionSubmitter, DrawSubmitter, RandomnessReader, NumberReader):
    """
    One object per deployed consumer. Implements every consumer-side
    capability the engine needs.
    """

    def __init__(self, rpc: JsonRpcClient, consumer_address: str, from_address: str) -> None:
        self._rpc = rpc
        self._consumer_address = consumer_address
        self._from_address = from_address

    async def submit(self, params: RequestParams, payment: int) -> str:
        data = abi.encode_call(FUNDED_REQUEST_SIGNATURE, params.callback_gas_limit)
        return await self._rpc.send_transaction(
            from_address=self._from_address,
            to=self._consumer_address,
            data=data,
            value=payment,
        )

    async def submit_draw(self) -> str:
        return await self._rpc.send_transaction(
            from_address=self._from_address,
            to=self._consumer_address,
            data=abi.encode_call(DRAW_SIGNATURE),
        )

    async def current_value(self) -> bytes:
        raw = await self._rpc.call(self._consumer_address, abi.encode_call(RANDOMNESS_SIGNATURE))
        return abi.decode_bytes32(raw)

    async def current_number(self) -> int:
        raw = await self._rpc.call(self._consumer_address, abi.encode_call(RANDOM_NUMBER_SIGNATURE))
        return abi.decode_uint256(raw)
