__all__ = [
    # Facade
    "Kit",
    "ChainInfo",
    "Wallet",
    # Provider
    "Provider",
    "JsonRpcClient",
    "ChainQueryService",
    "Receipt",
    "LogEntry",
    # Transactions
    "UnsignedTransaction",
    "SignedTransaction",
    "build_transaction",
    "sign_transaction",
    "decode_raw_transaction",
    "broadcast",
    # Polling
    "ConfirmationPoller",
    "PollState",
    "CancelToken",
    "SystemClock",
    "VirtualClock",
    "wait_for_receipt",
    # ABI
    "ContractABI",
    "parse_abi",
    "load_abi",
    "encode_call",
    "decode_result",
    "decode_log",
    "method_id",
    "method_selector",
    "event_topic",
    # Units
    "ETHER_DECIMALS",
    "GWEI_DECIMALS",
    "to_decimal",
    "to_base_units",
    "format_amount",
    # Keys
    "generate_eoa",
    "generate_private_key",
    "private_key_from_hex",
    "private_key_from_mnemonic",
    "get_address",
    "sign_data",
    "verify_signature",
    # Config
    "Settings",
    "load_settings",
    # Errors
    "EtherKitError",
    "RpcError",
    "SigningError",
    "BroadcastRejectedError",
    "ConfirmationTimeoutError",
    "ConfirmationCancelledError",
    "AbiError",
    "AbiEncodeError",
    "AbiDecodeError",
    "ConversionError",
]

from .errors import (
    AbiDecodeError,
    AbiEncodeError,
    AbiError,
    BroadcastRejectedError,
    ConfirmationCancelledError,
    ConfirmationTimeoutError,
    ConversionError,
    EtherKitError,
    RpcError,
    SigningError,
)
from .config import Settings, load_settings
from .units import ETHER_DECIMALS, GWEI_DECIMALS, format_amount, to_base_units, to_decimal
from .sigil.keys import (
    generate_eoa,
    generate_private_key,
    get_address,
    private_key_from_hex,
    private_key_from_mnemonic,
    sign_data,
    verify_signature,
)
from .pneuma.abi import (
    ContractABI,
    decode_log,
    decode_result,
    encode_call,
    event_topic,
    load_abi,
    method_id,
    method_selector,
    parse_abi,
)
from .pneuma.receipt import LogEntry, Receipt
from .pneuma.rpc import ChainQueryService, JsonRpcClient, Provider
from .pneuma.tx import (
    SignedTransaction,
    UnsignedTransaction,
    broadcast,
    build_transaction,
    decode_raw_transaction,
    sign_transaction,
)
from .pneuma.poller import (
    CancelToken,
    ConfirmationPoller,
    PollState,
    SystemClock,
    VirtualClock,
    wait_for_receipt,
)
from .wallet import Wallet
from .kit import ChainInfo, Kit
