"""
Error hierarchy for etherkit.

Every error carries an ``exit_code`` so the CLI can map failures to a
process status without inspecting messages.
"""

from __future__ import annotations

from typing import Any, Optional


class EtherKitError(RuntimeError):
    exit_code: int = 1


class RpcError(EtherKitError):
    """A JSON-RPC round-trip failed (transport error or node error object)."""

    exit_code = 2

    def __init__(
        self,
        method: str,
        message: str,
        code: Optional[int] = None,
        data: Any = None,
    ) -> None:
        self.method = method
        self.message = message
        self.code = code
        self.data = data
        if code is None:
            super().__init__(f"{method}: {message}")
        else:
            super().__init__(f"{method}: {message} (code {code})")


class SigningError(EtherKitError):
    exit_code = 3


class BroadcastRejectedError(EtherKitError):
    """The node refused a signed transaction.

    ``reason`` is the node's own message, untouched.
    """

    exit_code = 4

    def __init__(self, reason: str, code: Optional[int] = None) -> None:
        self.reason = reason
        self.code = code
        super().__init__(reason)


class ConfirmationTimeoutError(EtherKitError, TimeoutError):
    """No receipt before the deadline. The transaction may still be pending."""

    exit_code = 5

    def __init__(self, tx_hash: str, timeout: float) -> None:
        self.tx_hash = tx_hash
        self.timeout = timeout
        super().__init__(f"Transaction {tx_hash} not confirmed within {timeout}s")


class ConfirmationCancelledError(EtherKitError):
    exit_code = 6

    def __init__(self, tx_hash: str) -> None:
        self.tx_hash = tx_hash
        super().__init__(f"Waiting for transaction {tx_hash} was cancelled")


class AbiError(EtherKitError, ValueError):
    exit_code = 7


class AbiEncodeError(AbiError):
    pass


class AbiDecodeError(AbiError):
    pass


class ConversionError(ValueError):
    pass


__all__ = [
    "AbiDecodeError",
    "AbiEncodeError",
    "AbiError",
    "BroadcastRejectedError",
    "ConfirmationCancelledError",
    "ConfirmationTimeoutError",
    "ConversionError",
    "EtherKitError",
    "RpcError",
    "SigningError",
]
