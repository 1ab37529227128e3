"""
Receipt and log models.

Receipts are only ever observed: they are built from a node's
``eth_getTransactionReceipt`` response, never constructed for a
transaction that has not been included in a block.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


def hex_to_int(value: Any) -> int:
    """Parse a JSON-RPC quantity (``"0x1a"``); ints pass through."""
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected hex quantity, got {value!r}")
    return int(value, 16)


def hex_to_bytes(value: Optional[str]) -> bytes:
    if not value:
        return b""
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


@dataclass(frozen=True)
class LogEntry:
    address: str
    topics: tuple[str, ...]
    data: bytes
    block_number: Optional[int] = None
    transaction_hash: Optional[str] = None
    log_index: Optional[int] = None

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "LogEntry":
        block_number = payload.get("blockNumber")
        log_index = payload.get("logIndex")
        return cls(
            address=payload["address"],
            topics=tuple(payload.get("topics") or ()),
            data=hex_to_bytes(payload.get("data")),
            block_number=hex_to_int(block_number) if block_number is not None else None,
            transaction_hash=payload.get("transactionHash"),
            log_index=hex_to_int(log_index) if log_index is not None else None,
        )


@dataclass(frozen=True)
class Receipt:
    transaction_hash: str
    status: int
    gas_used: int
    block_number: int
    block_hash: Optional[str] = None
    contract_address: Optional[str] = None
    logs: tuple[LogEntry, ...] = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        return self.status == 1

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "Receipt":
        # Pre-Byzantium receipts carry a state root instead of a status;
        # treat them as successful like most clients do.
        status = payload.get("status")
        return cls(
            transaction_hash=payload["transactionHash"],
            status=hex_to_int(status) if status is not None else 1,
            gas_used=hex_to_int(payload["gasUsed"]),
            block_number=hex_to_int(payload["blockNumber"]),
            block_hash=payload.get("blockHash"),
            contract_address=payload.get("contractAddress"),
            logs=tuple(LogEntry.from_rpc(log) for log in payload.get("logs") or ()),
        )
