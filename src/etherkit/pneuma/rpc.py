"""
JSON-RPC client and chain query service.

Lightweight alternative to web3.py: httpx for HTTP, hand-built JSON-RPC
payloads.  ``Provider`` is a thin forward over the node's standard
``eth_*`` methods; the only state it keeps is the chain id, which is
resolved at most once per provider.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Any, Optional, Protocol, Union

import httpx

from ..errors import RpcError
from .receipt import LogEntry, Receipt, hex_to_bytes, hex_to_int

logger = logging.getLogger(__name__)

BlockParam = Union[int, str, None]


class ChainQueryService(Protocol):
    """The slice of the node the transaction pipeline depends on."""

    def get_pending_nonce(self, address: str) -> int:
        ...

    def get_suggested_gas_price(self) -> int:
        ...

    def estimate_gas(
        self,
        from_address: str,
        to: Optional[str],
        nonce: Optional[int],
        gas_price: Optional[int],
        value: Optional[int],
        data: Union[bytes, str, None],
    ) -> int:
        ...

    def get_chain_id(self) -> int:
        ...

    def send_raw_transaction(self, raw_tx: Union[bytes, str]) -> str:
        ...

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Receipt]:
        ...


def _to_hex(value: int) -> str:
    return hex(value)


def _data_hex(data: Union[bytes, str, None]) -> str:
    if data is None:
        return "0x"
    if isinstance(data, str):
        return data if data.startswith("0x") else "0x" + data
    return "0x" + bytes(data).hex()


def _block_param(block: BlockParam) -> str:
    if block is None:
        return "latest"
    if isinstance(block, int):
        return _to_hex(block)
    return block


class JsonRpcClient:
    """
    Minimal JSON-RPC 2.0 client over HTTP.

    Args:
        url: Node endpoint
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url
        self._client = httpx.Client(timeout=timeout, transport=transport)
        self._ids = itertools.count(1)

    def request(self, method: str, params: Optional[list] = None) -> Any:
        """
        Make a JSON-RPC call.

        Returns:
            Result field from the RPC response

        Raises:
            RpcError: On transport failure or a node error object
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }
        logger.debug("rpc request %s id=%s", method, payload["id"])

        try:
            response = self._client.post(self.url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise RpcError(method, str(exc)) from exc
        except ValueError as exc:
            raise RpcError(method, f"Invalid JSON response: {exc}") from exc

        if not isinstance(data, dict):
            raise RpcError(method, f"Invalid JSON-RPC response: {data!r}")

        error = data.get("error")
        if error is not None:
            if isinstance(error, dict):
                raise RpcError(
                    method,
                    str(error.get("message", error)),
                    code=error.get("code"),
                    data=error.get("data"),
                )
            raise RpcError(method, str(error))

        return data.get("result")

    def close(self) -> None:
        self._client.close()


class Provider:
    """
    Read-only chain query service plus raw broadcast.

    Args:
        client: JSON-RPC client bound to one node
        chain_id: Known chain id; skips the ``eth_chainId`` query entirely
    """

    def __init__(self, client: JsonRpcClient, chain_id: Optional[int] = None) -> None:
        self.client = client
        self._chain_id = chain_id
        self._chain_id_lock = threading.Lock()

    @classmethod
    def from_url(
        cls,
        url: str,
        chain_id: Optional[int] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "Provider":
        return cls(JsonRpcClient(url, timeout=timeout, transport=transport), chain_id=chain_id)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "Provider":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Chain identity
    # ------------------------------------------------------------------

    def get_chain_id(self) -> int:
        """
        Chain id used for EIP-155 signing.

        Queried on first use only; later calls return the cached value.
        A failed query caches nothing, so the next call queries again.
        """
        if self._chain_id is not None:
            return self._chain_id
        with self._chain_id_lock:
            if self._chain_id is None:
                self._chain_id = hex_to_int(self.client.request("eth_chainId"))
                logger.debug("resolved chain id %d", self._chain_id)
        return self._chain_id

    def get_network_id(self) -> int:
        return int(self.client.request("net_version"))

    # ------------------------------------------------------------------
    # Blocks and transactions
    # ------------------------------------------------------------------

    def get_block_number(self) -> int:
        return hex_to_int(self.client.request("eth_blockNumber"))

    def get_block_by_number(
        self, number: BlockParam = None, full_transactions: bool = False
    ) -> Optional[dict[str, Any]]:
        return self.client.request(
            "eth_getBlockByNumber", [_block_param(number), full_transactions]
        )

    def get_block_by_hash(
        self, block_hash: str, full_transactions: bool = False
    ) -> Optional[dict[str, Any]]:
        return self.client.request("eth_getBlockByHash", [block_hash, full_transactions])

    def get_transaction_by_hash(
        self, tx_hash: str
    ) -> tuple[Optional[dict[str, Any]], bool]:
        """
        Look up a transaction.

        Returns:
            (transaction dict or None, is_pending)
        """
        tx = self.client.request("eth_getTransactionByHash", [tx_hash])
        if tx is None:
            return None, False
        return tx, tx.get("blockNumber") is None

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Receipt]:
        """Receipt for an included transaction, or None if not (yet) included."""
        result = self.client.request("eth_getTransactionReceipt", [tx_hash])
        if result is None:
            return None
        return Receipt.from_rpc(result)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def get_balance(self, address: str, block: BlockParam = None) -> int:
        """Balance in wei."""
        return hex_to_int(
            self.client.request("eth_getBalance", [address, _block_param(block)])
        )

    def get_pending_nonce(self, address: str) -> int:
        """Next usable nonce, counting transactions still in the pool."""
        return hex_to_int(
            self.client.request("eth_getTransactionCount", [address, "pending"])
        )

    def get_code(self, address: str, block: BlockParam = None) -> str:
        """Deployed bytecode as 0x-prefixed hex ("0x" for accounts without code)."""
        return self.client.request("eth_getCode", [address, _block_param(block)]) or "0x"

    def is_contract_address(self, address: str) -> bool:
        return len(hex_to_bytes(self.get_code(address))) > 0

    # ------------------------------------------------------------------
    # Gas
    # ------------------------------------------------------------------

    def get_suggested_gas_price(self) -> int:
        """Gas price in wei."""
        return hex_to_int(self.client.request("eth_gasPrice"))

    def estimate_gas(
        self,
        from_address: str,
        to: Optional[str],
        nonce: Optional[int],
        gas_price: Optional[int],
        value: Optional[int],
        data: Union[bytes, str, None],
    ) -> int:
        """
        Estimate gas for a candidate call.

        A resolved nonce and gas price are part of the simulated call.
        Most nodes ignore both for cost purposes, but some validate them,
        so ``nonce=None`` leaves the field out for the node to fill in.
        """
        call: dict[str, Any] = {
            "from": from_address,
            "data": _data_hex(data),
        }
        if to is not None:
            call["to"] = to
        if nonce is not None:
            call["nonce"] = _to_hex(nonce)
        if gas_price is not None:
            call["gasPrice"] = _to_hex(gas_price)
        if value is not None:
            call["value"] = _to_hex(value)
        return hex_to_int(self.client.request("eth_estimateGas", [call]))

    # ------------------------------------------------------------------
    # Calls, logs, broadcast
    # ------------------------------------------------------------------

    def call(
        self,
        to: str,
        data: Union[bytes, str],
        from_address: Optional[str] = None,
        value: Optional[int] = None,
        block: BlockParam = None,
    ) -> bytes:
        """Execute a read-only ``eth_call`` and return the raw return data."""
        call: dict[str, Any] = {"to": to, "data": _data_hex(data)}
        if from_address is not None:
            call["from"] = from_address
        if value is not None:
            call["value"] = _to_hex(value)
        return hex_to_bytes(self.client.request("eth_call", [call, _block_param(block)]))

    def filter_logs(
        self,
        address: Optional[str],
        event_topic: str,
        from_block: BlockParam = None,
        to_block: BlockParam = None,
        indexed_topics: Optional[list[Optional[str]]] = None,
    ) -> list[LogEntry]:
        """
        Query event logs.

        ``topics[0]`` is the event signature hash; each entry of
        ``indexed_topics`` filters the next indexed parameter (None matches
        anything).
        """
        query: dict[str, Any] = {
            "fromBlock": _block_param(from_block),
            "toBlock": _block_param(to_block),
            "topics": [event_topic, *(indexed_topics or [])],
        }
        if address is not None:
            query["address"] = address
        result = self.client.request("eth_getLogs", [query]) or []
        return [LogEntry.from_rpc(entry) for entry in result]

    def send_raw_transaction(self, raw_tx: Union[bytes, str]) -> str:
        """
        Send a signed raw transaction.

        Returns:
            Transaction hash reported by the node (0x-prefixed hex)
        """
        return self.client.request("eth_sendRawTransaction", [_data_hex(raw_tx)])
