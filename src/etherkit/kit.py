"""
Kit - one object for the common cases.

``Kit`` holds a ``Wallet`` and the ``Provider`` it talks to and forwards
calls to them explicitly.  Methods that reach the node say so through
the provider call they make; nothing is promoted implicitly.

Amounts in and out of the convenience methods are ``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Sequence, Union

import httpx

from .config import Settings
from .pneuma.abi import AbiSource, ContractABI, encode_call, parse_abi
from .pneuma.poller import DEFAULT_POLL_INTERVAL, CancelToken, Clock
from .pneuma.receipt import LogEntry, Receipt
from .pneuma.rpc import BlockParam, Provider
from .pneuma.tx import SignedTransaction, UnsignedTransaction
from .sigil.keys import generate_private_key, is_valid_address, verify_signature
from .units import (
    ETHER_DECIMALS,
    GWEI_DECIMALS,
    format_amount,
    to_base_units,
    to_decimal,
)
from .wallet import DEFAULT_RECEIPT_TIMEOUT, Wallet


@dataclass(frozen=True)
class ChainInfo:
    chain_id: int
    network_id: int
    block_number: int


def _require_address(address: str, what: str) -> None:
    if not is_valid_address(address):
        raise ValueError(f"Invalid {what} address: {address!r}")


def _require_function(function_name: str) -> None:
    if not function_name:
        raise ValueError("Function name cannot be empty")


def _parse_abi_json(abi_json: str) -> ContractABI:
    if not abi_json:
        raise ValueError("ABI JSON string cannot be empty")
    return parse_abi(abi_json)


class Kit:
    """
    Wallet plus provider behind one object.

    Args:
        wallet: Account-bound pipeline
        provider: Chain query service (normally ``wallet.provider``)
    """

    def __init__(self, wallet: Wallet, provider: Optional[Provider] = None) -> None:
        self.wallet = wallet
        self.provider = provider or wallet.provider

    @classmethod
    def from_private_key(
        cls,
        private_key: str,
        rpc_url: str,
        chain_id: Optional[int] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "Kit":
        provider = Provider.from_url(rpc_url, chain_id=chain_id, timeout=timeout, transport=transport)
        return cls(Wallet(private_key, provider), provider)

    @classmethod
    def with_generated_key(
        cls,
        rpc_url: str,
        chain_id: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "Kit":
        return cls.from_private_key(generate_private_key(), rpc_url, chain_id=chain_id, transport=transport)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "Kit":
        if not settings.private_key:
            raise ValueError("Settings carry no private key")
        return cls.from_private_key(
            settings.private_key,
            settings.rpc_url,
            chain_id=settings.chain_id,
            timeout=settings.rpc_timeout,
            transport=transport,
        )

    def __repr__(self) -> str:
        return f"Kit({self.address})"

    def close(self) -> None:
        self.provider.close()

    def __enter__(self) -> "Kit":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ============ Wallet forwards ============

    @property
    def address(self) -> str:
        return self.wallet.address

    def get_nonce(self) -> int:
        return self.wallet.get_nonce()

    def get_balance(self, block: BlockParam = None) -> int:
        return self.wallet.get_balance(block)

    def build_transaction(self, to: Optional[str], **kwargs: Any) -> UnsignedTransaction:
        return self.wallet.build_transaction(to, **kwargs)

    def sign(self, tx: UnsignedTransaction) -> SignedTransaction:
        return self.wallet.sign(tx)

    def broadcast(self, signed: SignedTransaction) -> str:
        return self.wallet.broadcast(signed)

    def send_transaction(self, to: Optional[str], **kwargs: Any) -> str:
        return self.wallet.send_transaction(to, **kwargs)

    def send_transaction_from_hex(self, to: Optional[str], hex_data: str, **kwargs: Any) -> str:
        return self.wallet.send_transaction_from_hex(to, hex_data, **kwargs)

    def send_and_wait(self, to: Optional[str], **kwargs: Any) -> Receipt:
        return self.wallet.send_and_wait(to, **kwargs)

    def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = DEFAULT_RECEIPT_TIMEOUT,
        interval: float = DEFAULT_POLL_INTERVAL,
        clock: Optional[Clock] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Receipt:
        return self.wallet.wait_for_receipt(
            tx_hash, timeout=timeout, interval=interval, clock=clock, cancel_token=cancel_token
        )

    def send_transaction_from_hex_and_wait(
        self,
        to: Optional[str],
        hex_data: str,
        timeout: float = DEFAULT_RECEIPT_TIMEOUT,
        **kwargs: Any,
    ) -> Receipt:
        tx_hash = self.wallet.send_transaction_from_hex(to, hex_data, **kwargs)
        return self.wait_for_receipt(tx_hash, timeout=timeout)

    # ============ Provider forwards ============

    def get_chain_id(self) -> int:
        return self.provider.get_chain_id()

    def get_network_id(self) -> int:
        return self.provider.get_network_id()

    def get_block_number(self) -> int:
        return self.provider.get_block_number()

    def get_block_by_number(self, number: BlockParam = None, full_transactions: bool = False) -> Optional[dict]:
        return self.provider.get_block_by_number(number, full_transactions)

    def get_block_by_hash(self, block_hash: str, full_transactions: bool = False) -> Optional[dict]:
        return self.provider.get_block_by_hash(block_hash, full_transactions)

    def get_transaction_by_hash(self, tx_hash: str) -> tuple[Optional[dict], bool]:
        return self.provider.get_transaction_by_hash(tx_hash)

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Receipt]:
        return self.provider.get_transaction_receipt(tx_hash)

    def get_suggested_gas_price(self) -> int:
        return self.provider.get_suggested_gas_price()

    def filter_logs(
        self,
        address: Optional[str],
        event_topic: str,
        from_block: BlockParam = None,
        to_block: BlockParam = None,
        indexed_topics: Optional[list[Optional[str]]] = None,
    ) -> list[LogEntry]:
        return self.provider.filter_logs(address, event_topic, from_block, to_block, indexed_topics)

    def is_contract(self, address: str) -> bool:
        return self.provider.is_contract_address(address)

    def get_contract_bytecode(self, address: str) -> str:
        return self.provider.get_code(address)

    # ============ Amounts ============

    def get_balance_in_ether(self) -> Decimal:
        return to_decimal(self.get_balance(), ETHER_DECIMALS)

    def get_balance_in_gwei(self) -> Decimal:
        return to_decimal(self.get_balance(), GWEI_DECIMALS)

    def get_formatted_balance(self) -> str:
        """Balance as e.g. ``"1.5 ETH"``."""
        return format_amount(self.get_balance(), ETHER_DECIMALS, "ETH")

    def get_suggested_gas_price_in_gwei(self) -> Decimal:
        return to_decimal(self.get_suggested_gas_price(), GWEI_DECIMALS)

    def transfer_ether(self, to: str, amount: Decimal) -> str:
        """
        Send ``amount`` ether with every other field resolved by the node.

        Raises:
            ValueError: If the address is malformed or the amount negative
        """
        _require_address(to, "receiver")
        value = to_base_units(amount, ETHER_DECIMALS)
        return self.wallet.send_transaction(to, value=value)

    def transfer_ether_and_wait(
        self,
        to: str,
        amount: Decimal,
        timeout: float = DEFAULT_RECEIPT_TIMEOUT,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> Receipt:
        tx_hash = self.transfer_ether(to, amount)
        return self.wait_for_receipt(tx_hash, timeout=timeout, interval=interval)

    def estimate_gas_for_transfer(self, to: str, amount: Decimal) -> int:
        _require_address(to, "receiver")
        value = to_base_units(amount, ETHER_DECIMALS)
        return self.provider.estimate_gas(self.address, to, None, None, value, b"")

    # ============ Chain info ============

    def get_chain_info(self) -> ChainInfo:
        return ChainInfo(
            chain_id=self.provider.get_chain_id(),
            network_id=self.provider.get_network_id(),
            block_number=self.provider.get_block_number(),
        )

    def get_network_status(self) -> dict[str, int]:
        return {
            "chain_id": self.provider.get_chain_id(),
            "network_id": self.provider.get_network_id(),
            "block_number": self.provider.get_block_number(),
            "gas_price": self.provider.get_suggested_gas_price(),
        }

    def get_latest_block(self) -> Optional[dict]:
        return self.provider.get_block_by_number(self.provider.get_block_number())

    # ============ Contracts ============

    def static_call(
        self,
        contract_address: str,
        abi: Union[AbiSource, ContractABI],
        function_name: str,
        args: Sequence[Any] = (),
        block: BlockParam = None,
        from_address: Optional[str] = None,
        value: Optional[int] = None,
    ) -> tuple:
        """Read-only contract call; ``from`` defaults to this kit's address."""
        _require_address(contract_address, "contract")
        _require_function(function_name)
        if from_address is not None:
            _require_address(from_address, "from")
        return self.wallet.call_contract(
            contract_address,
            abi,
            function_name,
            args,
            from_address=from_address or self.address,
            value=value,
            block=block,
        )

    def static_call_with_abi_json(
        self,
        contract_address: str,
        abi_json: str,
        function_name: str,
        args: Sequence[Any] = (),
        **kwargs: Any,
    ) -> tuple:
        _require_function(function_name)
        return self.static_call(contract_address, _parse_abi_json(abi_json), function_name, args, **kwargs)

    def invoke_contract(
        self,
        contract_address: str,
        abi: Union[AbiSource, ContractABI],
        function_name: str,
        args: Sequence[Any] = (),
        *,
        nonce: int = 0,
        gas_limit: int = 0,
        gas_price: Optional[int] = None,
        value: Optional[int] = None,
    ) -> str:
        """Encode a contract call and send it as a transaction."""
        _require_address(contract_address, "contract")
        _require_function(function_name)
        data = encode_call(abi, function_name, args)
        return self.wallet.send_transaction(
            contract_address,
            nonce=nonce,
            gas_limit=gas_limit,
            gas_price=gas_price,
            value=value,
            data=data,
        )

    def invoke_contract_with_abi_json(
        self,
        contract_address: str,
        abi_json: str,
        function_name: str,
        args: Sequence[Any] = (),
        **kwargs: Any,
    ) -> str:
        _require_function(function_name)
        return self.invoke_contract(contract_address, _parse_abi_json(abi_json), function_name, args, **kwargs)

    # ============ Signatures ============

    def sign_message(self, message: bytes) -> bytes:
        return self.wallet.sign_data(message)

    def verify_message(self, message: bytes, signature: bytes) -> bool:
        return verify_signature(self.address, message, signature)
