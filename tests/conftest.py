"""Shared fixtures: an in-memory JSON-RPC node and a stub chain service."""

from __future__ import annotations

import json
import threading
from typing import Any, Callable, Optional, Union

import httpx
import pytest
from eth_hash.auto import keccak

from etherkit.errors import RpcError
from etherkit.pneuma.receipt import Receipt
from etherkit.pneuma.rpc import Provider

# Anvil / Hardhat default account 0
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
RECIPIENT = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"

GWEI = 10**9


class FakeNode:
    """
    JSON-RPC node served through ``httpx.MockTransport``.

    ``results`` maps a method name to either a fixed result or a callable
    taking the params list.  ``errors`` maps a method name to a node error
    object.  Every request is recorded in ``calls``.
    """

    def __init__(self) -> None:
        self.results: dict[str, Any] = {
            "eth_chainId": "0x1",
            "net_version": "1",
            "eth_blockNumber": "0x10",
            "eth_gasPrice": hex(20 * GWEI),
            "eth_getTransactionCount": "0x5",
            "eth_estimateGas": hex(21000),
            "eth_getBalance": hex(15 * 10**17),
            "eth_getCode": "0x",
            "eth_getTransactionReceipt": None,
            "eth_sendRawTransaction": self._hash_raw,
        }
        self.errors: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, list]] = []
        self._lock = threading.Lock()
        self.transport = httpx.MockTransport(self.handle)

    @staticmethod
    def _hash_raw(params: list) -> str:
        raw = bytes.fromhex(params[0][2:])
        return "0x" + keccak(raw).hex()

    def handle(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        method = payload["method"]
        params = payload.get("params", [])
        with self._lock:
            self.calls.append((method, params))

        if method in self.errors:
            body = {"jsonrpc": "2.0", "id": payload["id"], "error": self.errors[method]}
            return httpx.Response(200, json=body)

        result = self.results.get(method)
        if callable(result):
            result = result(params)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    def params(self, method: str) -> list[list]:
        return [params for name, params in self.calls if name == method]

    def provider(self, chain_id: Optional[int] = None) -> Provider:
        return Provider.from_url("http://node.test", chain_id=chain_id, transport=self.transport)


class StubChain:
    """
    In-memory ChainQueryService for pipeline tests.

    The pending nonce advances on every accepted broadcast.  Setting one
    of the ``*_error`` attributes makes the matching query raise.
    """

    def __init__(
        self,
        nonce: int = 5,
        gas_price: int = 20 * GWEI,
        gas: int = 21000,
        chain_id: int = 1,
    ) -> None:
        self.nonce = nonce
        self.gas_price = gas_price
        self.gas = gas
        self.chain_id = chain_id
        self.calls: list[tuple] = []
        self.sent: list[bytes] = []
        self.receipts: list[Optional[Receipt]] = []
        self.nonce_error: Optional[Exception] = None
        self.gas_price_error: Optional[Exception] = None
        self.estimate_error: Optional[Exception] = None
        self.chain_id_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None
        self.on_receipt_query: Optional[Callable[[int], None]] = None

    def get_pending_nonce(self, address: str) -> int:
        self.calls.append(("nonce", address))
        if self.nonce_error:
            raise self.nonce_error
        return self.nonce

    def get_suggested_gas_price(self) -> int:
        self.calls.append(("gas_price",))
        if self.gas_price_error:
            raise self.gas_price_error
        return self.gas_price

    def estimate_gas(self, from_address, to, nonce, gas_price, value, data) -> int:
        self.calls.append(("estimate", from_address, to, nonce, gas_price, value, data))
        if self.estimate_error:
            raise self.estimate_error
        return self.gas

    def get_chain_id(self) -> int:
        self.calls.append(("chain_id",))
        if self.chain_id_error:
            raise self.chain_id_error
        return self.chain_id

    def send_raw_transaction(self, raw_tx: Union[bytes, str]) -> str:
        self.calls.append(("send",))
        if self.send_error:
            raise self.send_error
        raw = bytes(raw_tx)
        self.sent.append(raw)
        self.nonce += 1
        return "0x" + keccak(raw).hex()

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Receipt]:
        queries = sum(1 for c in self.calls if c[0] == "receipt") + 1
        self.calls.append(("receipt", tx_hash))
        if self.on_receipt_query:
            self.on_receipt_query(queries)
        if self.receipts:
            return self.receipts.pop(0)
        return None

    def close(self) -> None:
        pass

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]


def make_receipt(tx_hash: str = "0x" + "ab" * 32, status: int = 1, block: int = 16) -> Receipt:
    return Receipt(
        transaction_hash=tx_hash,
        status=status,
        gas_used=21000,
        block_number=block,
        block_hash="0x" + "cd" * 32,
    )


def rpc_receipt(tx_hash: str, status: str = "0x1") -> dict[str, Any]:
    return {
        "transactionHash": tx_hash,
        "status": status,
        "gasUsed": hex(21000),
        "blockNumber": "0x11",
        "blockHash": "0x" + "cd" * 32,
        "contractAddress": None,
        "logs": [],
    }


@pytest.fixture()
def node() -> FakeNode:
    return FakeNode()


@pytest.fixture()
def stub_chain() -> StubChain:
    return StubChain()


@pytest.fixture()
def rpc_error() -> Callable[..., RpcError]:
    def factory(message: str = "boom", code: Optional[int] = -32000, method: str = "eth_call") -> RpcError:
        return RpcError(method, message, code=code)

    return factory
