"""
Wallet - the transaction pipeline bound to one account.

A ``Wallet`` owns a private key and a ``Provider``.  It resolves unset
transaction fields through the provider, signs with the provider's chain
id, broadcasts, and optionally waits for the receipt.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Union

import httpx

from .errors import RpcError, SigningError
from .pneuma.abi import (
    AbiSource,
    ContractABI,
    decode_result,
    encode_call,
    function_signature,
    parse_abi,
)
from .pneuma.poller import (
    DEFAULT_POLL_INTERVAL,
    CancelToken,
    Clock,
    wait_for_receipt,
)
from .pneuma.receipt import Receipt
from .pneuma.rpc import BlockParam, Provider
from .pneuma.tx import (
    SignedTransaction,
    UnsignedTransaction,
    broadcast,
    build_transaction,
    build_transaction_from_hex,
    sign_transaction,
)
from .sigil.keys import get_account, private_key_from_hex, sign_data


DEFAULT_RECEIPT_TIMEOUT = 120.0


class Wallet:
    """
    Account-bound signer and sender.

    Args:
        private_key: Hex private key (with or without 0x)
        provider: Chain query service for this wallet's network

    Raises:
        ValueError: If the private key is malformed
    """

    def __init__(self, private_key: str, provider: Provider) -> None:
        self._private_key = private_key_from_hex(private_key)
        self._account = get_account(self._private_key)
        self.provider = provider

    @classmethod
    def from_url(
        cls,
        private_key: str,
        rpc_url: str,
        chain_id: Optional[int] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "Wallet":
        provider = Provider.from_url(rpc_url, chain_id=chain_id, timeout=timeout, transport=transport)
        return cls(private_key, provider)

    def __repr__(self) -> str:
        return f"Wallet({self.address})"

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def private_key(self) -> str:
        return self._private_key

    def close(self) -> None:
        self.provider.close()

    def __enter__(self) -> "Wallet":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Account state
    # ------------------------------------------------------------------

    def get_nonce(self) -> int:
        """Pending nonce (includes transactions still in the pool)."""
        return self.provider.get_pending_nonce(self.address)

    def get_balance(self, block: BlockParam = None) -> int:
        """Balance in wei."""
        return self.provider.get_balance(self.address, block)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def build_transaction(
        self,
        to: Optional[str],
        *,
        nonce: int = 0,
        gas_limit: int = 0,
        gas_price: Optional[int] = None,
        value: Optional[int] = None,
        data: bytes = b"",
    ) -> UnsignedTransaction:
        return build_transaction(
            self.provider,
            self.address,
            to,
            nonce=nonce,
            gas_limit=gas_limit,
            gas_price=gas_price,
            value=value,
            data=data,
        )

    def build_transaction_from_hex(self, to: Optional[str], hex_data: str, **kwargs: Any) -> UnsignedTransaction:
        return build_transaction_from_hex(self.provider, self.address, to, hex_data, **kwargs)

    def sign(self, tx: UnsignedTransaction) -> SignedTransaction:
        """
        Sign with this wallet's key for the provider's chain.

        Raises:
            SigningError: If the chain id cannot be resolved or signing fails
        """
        try:
            chain_id = self.provider.get_chain_id()
        except RpcError as exc:
            raise SigningError(f"Cannot resolve chain id: {exc}") from exc
        return sign_transaction(tx, self._private_key, chain_id)

    def broadcast(self, signed: SignedTransaction) -> str:
        return broadcast(self.provider, signed)

    def send_transaction(
        self,
        to: Optional[str],
        *,
        nonce: int = 0,
        gas_limit: int = 0,
        gas_price: Optional[int] = None,
        value: Optional[int] = None,
        data: bytes = b"",
    ) -> str:
        """
        Build, sign and broadcast.

        Returns:
            Transaction hash, as soon as the node accepts it
        """
        tx = self.build_transaction(
            to, nonce=nonce, gas_limit=gas_limit, gas_price=gas_price, value=value, data=data
        )
        return self.broadcast(self.sign(tx))

    def send_transaction_from_hex(self, to: Optional[str], hex_data: str, **kwargs: Any) -> str:
        tx = self.build_transaction_from_hex(to, hex_data, **kwargs)
        return self.broadcast(self.sign(tx))

    def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = DEFAULT_RECEIPT_TIMEOUT,
        interval: float = DEFAULT_POLL_INTERVAL,
        clock: Optional[Clock] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Receipt:
        return wait_for_receipt(
            self.provider,
            tx_hash,
            timeout=timeout,
            interval=interval,
            clock=clock,
            cancel_token=cancel_token,
        )

    def send_and_wait(
        self,
        to: Optional[str],
        *,
        nonce: int = 0,
        gas_limit: int = 0,
        gas_price: Optional[int] = None,
        value: Optional[int] = None,
        data: bytes = b"",
        timeout: float = DEFAULT_RECEIPT_TIMEOUT,
        interval: float = DEFAULT_POLL_INTERVAL,
        clock: Optional[Clock] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Receipt:
        """Build, sign, broadcast, then poll for the receipt."""
        tx_hash = self.send_transaction(
            to, nonce=nonce, gas_limit=gas_limit, gas_price=gas_price, value=value, data=data
        )
        return self.wait_for_receipt(
            tx_hash, timeout=timeout, interval=interval, clock=clock, cancel_token=cancel_token
        )

    # ------------------------------------------------------------------
    # Contracts and raw signatures
    # ------------------------------------------------------------------

    def call_contract(
        self,
        contract_address: str,
        abi: Union[AbiSource, ContractABI],
        function_name: str,
        args: Sequence[Any] = (),
        from_address: Optional[str] = None,
        value: Optional[int] = None,
        block: BlockParam = None,
    ) -> tuple:
        """Read-only call (eth_call); returns the decoded outputs."""
        contract = parse_abi(abi)
        data = encode_call(contract, function_name, args)
        # Pin the overload that was encoded so decoding uses its outputs
        signature = function_signature(contract.find_function(function_name, len(args)))
        result = self.provider.call(
            contract_address, data, from_address=from_address, value=value, block=block
        )
        return decode_result(contract, signature, result)

    def sign_data(self, data: bytes) -> bytes:
        """65-byte raw signature over keccak256(data)."""
        return sign_data(data, self._private_key)
