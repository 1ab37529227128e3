"""
Transaction Builder - Build, sign, and send legacy (EIP-155) transactions.

Uses eth-account for signing and the JSON-RPC provider for every value
the caller leaves unset.  Nothing here retries: a failed query aborts the
whole operation before anything is signed or sent.

Nonce resolution reads the account's pending count and uses it later
without any lock.  Two concurrent sends from the same account that both
leave the nonce unset can pick the same value; the node then rejects one
of them.  Callers sending concurrently must assign nonces themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

import rlp
from rlp.exceptions import DecodingError as RLPDecodingError
from eth_hash.auto import keccak
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError

from ..errors import BroadcastRejectedError, RpcError, SigningError
from ..sigil.keys import get_account, to_checksum_address
from .receipt import hex_to_bytes
from .rpc import ChainQueryService

logger = logging.getLogger(__name__)

# EIP-155: v = recovery_id + 35 + 2 * chain_id
_EIP155_OFFSET = 35


def _check_non_negative(**fields: Optional[int]) -> None:
    for name, value in fields.items():
        if value is not None and value < 0:
            raise ValueError(f"{name} must be non-negative, got {value}")


@dataclass(frozen=True)
class UnsignedTransaction:
    nonce: int
    to: Optional[str]
    value: int
    gas_limit: int
    gas_price: int
    data: bytes = b""

    @property
    def is_contract_creation(self) -> bool:
        return self.to is None

    def to_dict(self, chain_id: int) -> dict[str, Any]:
        """eth-account transaction dict bound to ``chain_id``."""
        tx: dict[str, Any] = {
            "nonce": self.nonce,
            "gasPrice": self.gas_price,
            "gas": self.gas_limit,
            "value": self.value,
            "data": "0x" + self.data.hex(),
            "chainId": chain_id,
        }
        if self.to is not None:
            tx["to"] = self.to
        return tx

    def rlp_fields(self) -> list[Any]:
        to = bytes.fromhex(self.to[2:]) if self.to is not None else b""
        return [self.nonce, self.gas_price, self.gas_limit, to, self.value, self.data]


def transaction_signing_hash(tx: UnsignedTransaction, chain_id: int) -> bytes:
    """keccak256 of the EIP-155 pre-image ``rlp([..fields, chain_id, 0, 0])``."""
    return keccak(rlp.encode(tx.rlp_fields() + [chain_id, 0, 0]))


@dataclass(frozen=True)
class SignedTransaction:
    transaction: UnsignedTransaction
    chain_id: int
    v: int
    r: int
    s: int
    raw_transaction: bytes

    @property
    def hash(self) -> bytes:
        """Content hash: keccak256 of the raw signed bytes."""
        return keccak(self.raw_transaction)

    @property
    def hash_hex(self) -> str:
        return "0x" + self.hash.hex()

    @property
    def raw_hex(self) -> str:
        return "0x" + self.raw_transaction.hex()

    @property
    def recovery_id(self) -> int:
        return self.v - _EIP155_OFFSET - 2 * self.chain_id

    def _recover(self, chain_id: int) -> Optional[str]:
        recovery_id = self.v - _EIP155_OFFSET - 2 * chain_id
        if recovery_id not in (0, 1):
            return None
        try:
            signature = keys.Signature(vrs=(recovery_id, self.r, self.s))
            public_key = signature.recover_public_key_from_msg_hash(
                transaction_signing_hash(self.transaction, chain_id)
            )
        except (BadSignature, ValidationError):
            return None
        return public_key.to_checksum_address()

    @property
    def sender(self) -> str:
        """Address recovered from the signature under the signing chain id."""
        sender = self._recover(self.chain_id)
        if sender is None:
            raise SigningError("Signature does not recover to any address")
        return sender

    def verify(self, address: str, chain_id: int) -> bool:
        """True only if the signature was made by ``address`` for ``chain_id``."""
        recovered = self._recover(chain_id)
        return recovered is not None and recovered.lower() == address.lower()


def build_transaction(
    provider: ChainQueryService,
    sender: str,
    to: Optional[str],
    *,
    nonce: int = 0,
    gas_limit: int = 0,
    gas_price: Optional[int] = None,
    value: Optional[int] = None,
    data: bytes = b"",
) -> UnsignedTransaction:
    """
    Build an unsigned transaction, resolving unset fields from the node.

    Resolution order is fixed because later steps consume earlier results:
    nonce (0 means unset), then gas price (None or 0), then gas limit
    (0 means unset), estimated with the resolved nonce and price.

    Args:
        provider: Chain query service
        sender: Address the transaction will be sent from
        to: Recipient or contract address (None for contract creation)
        nonce: Transaction nonce (0 = pending count from the node)
        gas_limit: Gas limit (0 = estimate)
        gas_price: Gas price in wei (None or 0 = node suggestion)
        value: Amount in wei (None = 0)
        data: Call payload

    Returns:
        Fully populated UnsignedTransaction

    Raises:
        RpcError: If any lookup fails
        ValueError: If an address is malformed or a number is negative
    """
    _check_non_negative(nonce=nonce, gas_limit=gas_limit, gas_price=gas_price, value=value)
    recipient = to_checksum_address(to) if to is not None else None
    amount = value or 0
    payload = bytes(data)

    if nonce == 0:
        nonce = provider.get_pending_nonce(sender)
        logger.debug("resolved nonce %d for %s", nonce, sender)

    if not gas_price:
        gas_price = provider.get_suggested_gas_price()
        logger.debug("resolved gas price %d", gas_price)

    if gas_limit == 0:
        gas_limit = provider.estimate_gas(sender, recipient, nonce, gas_price, amount, payload)
        logger.debug("estimated gas limit %d", gas_limit)

    return UnsignedTransaction(
        nonce=nonce,
        to=recipient,
        value=amount,
        gas_limit=gas_limit,
        gas_price=gas_price,
        data=payload,
    )


def build_transaction_from_hex(
    provider: ChainQueryService,
    sender: str,
    to: Optional[str],
    hex_data: str,
    **kwargs: Any,
) -> UnsignedTransaction:
    """Same as :func:`build_transaction` with the payload as a hex string."""
    try:
        data = hex_to_bytes(hex_data)
    except ValueError as exc:
        raise ValueError(f"Invalid hex data: {exc}") from exc
    return build_transaction(provider, sender, to, data=data, **kwargs)


def sign_transaction(
    tx: UnsignedTransaction,
    private_key: str,
    chain_id: Optional[int],
) -> SignedTransaction:
    """
    Sign a transaction for one chain.

    Signing is deterministic (RFC 6979): the same transaction, key and
    chain id always give the same signature and hash.

    Raises:
        SigningError: If the chain id is missing or the key is invalid
    """
    if chain_id is None or chain_id <= 0:
        raise SigningError(f"Cannot sign without a valid chain id (got {chain_id})")
    try:
        account = get_account(private_key)
    except ValueError as exc:
        raise SigningError(f"Invalid key material: {exc}") from exc

    try:
        signed = account.sign_transaction(tx.to_dict(chain_id))
    except Exception as exc:
        raise SigningError(f"Signing failed: {exc}") from exc

    return SignedTransaction(
        transaction=tx,
        chain_id=chain_id,
        v=signed.v,
        r=signed.r,
        s=signed.s,
        raw_transaction=bytes(signed.raw_transaction),
    )


def decode_raw_transaction(raw_tx: Union[bytes, str]) -> SignedTransaction:
    """
    Parse an RLP-encoded signed legacy transaction.

    Raises:
        ValueError: For typed (EIP-2718) or pre-EIP-155 transactions and
                    malformed input
    """
    raw = hex_to_bytes(raw_tx) if isinstance(raw_tx, str) else bytes(raw_tx)
    if not raw:
        raise ValueError("Empty transaction")
    if raw[0] < 0xC0:
        raise ValueError(f"Typed transactions (type {raw[0]}) are not supported")
    try:
        fields = rlp.decode(raw)
    except RLPDecodingError as exc:
        raise ValueError(f"Invalid RLP: {exc}") from exc
    if not isinstance(fields, list) or len(fields) != 9:
        raise ValueError("Legacy transaction must have 9 fields")
    if not all(isinstance(field, bytes) for field in fields):
        raise ValueError("Legacy transaction fields must be byte strings")

    nonce, gas_price, gas_limit, to, value, data, v, r, s = fields
    v_int = int.from_bytes(v, "big")
    if v_int < _EIP155_OFFSET:
        raise ValueError("Pre-EIP-155 transactions carry no chain id")
    chain_id = (v_int - _EIP155_OFFSET) // 2

    tx = UnsignedTransaction(
        nonce=int.from_bytes(nonce, "big"),
        to=to_checksum_address("0x" + to.hex()) if to else None,
        value=int.from_bytes(value, "big"),
        gas_limit=int.from_bytes(gas_limit, "big"),
        gas_price=int.from_bytes(gas_price, "big"),
        data=bytes(data),
    )
    return SignedTransaction(
        transaction=tx,
        chain_id=chain_id,
        v=v_int,
        r=int.from_bytes(r, "big"),
        s=int.from_bytes(s, "big"),
        raw_transaction=raw,
    )


def broadcast(provider: ChainQueryService, signed: SignedTransaction) -> str:
    """
    Submit a signed transaction without waiting for inclusion.

    Returns:
        Transaction hash (0x-prefixed hex)

    Raises:
        BroadcastRejectedError: If the node refuses it (reason verbatim)
        RpcError: If the node could not be reached
    """
    try:
        node_hash = provider.send_raw_transaction(signed.raw_transaction)
    except RpcError as exc:
        if exc.code is None:
            raise
        raise BroadcastRejectedError(exc.message, code=exc.code) from exc

    tx_hash = signed.hash_hex
    if node_hash and node_hash.lower() != tx_hash:
        logger.warning("node reported hash %s for transaction %s", node_hash, tx_hash)
    logger.info(
        "broadcast %s nonce=%d chain=%d", tx_hash, signed.transaction.nonce, signed.chain_id
    )
    return tx_hash
