"""
ABI handling - parse interface descriptors, encode calls, decode results.

Descriptors come from a JSON ABI (string, parsed list, or a Foundry /
Hardhat artifact with an ``abi`` key).  Encoding and decoding use eth-abi;
this module only picks the right entry and turns it into canonical types.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Sequence, Union

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError, ParseError
from eth_hash.auto import keccak

from ..errors import AbiDecodeError, AbiEncodeError, AbiError
from .receipt import LogEntry

logger = logging.getLogger(__name__)

AbiSource = Union[str, list, dict]


def canonical_type(param: dict[str, Any]) -> str:
    """Canonical type string for an ABI parameter, expanding tuples."""
    type_str = param["type"]
    if not type_str.startswith("tuple"):
        return type_str
    inner = ",".join(canonical_type(c) for c in param.get("components", []))
    return f"({inner}){type_str[len('tuple'):]}"


def function_signature(entry: dict[str, Any]) -> str:
    """``name(type1,type2,...)`` for a function or event entry."""
    types = ",".join(canonical_type(p) for p in entry.get("inputs", []))
    return f"{entry['name']}({types})"


def method_selector(signature: str) -> bytes:
    """First 4 bytes of keccak256 of the canonical signature."""
    # NOTE: Keccak-256 != SHA3-256 (NIST). Never use hashlib.sha3_256 here.
    return keccak(signature.encode("utf-8"))[:4]


def method_id(signature: str) -> str:
    """Selector as 0x-prefixed hex, e.g. ``0xa9059cbb``."""
    return "0x" + method_selector(signature).hex()


def event_topic(signature: str) -> str:
    """Full keccak256 of an event signature (topic 0), 0x-prefixed."""
    return "0x" + keccak(signature.encode("utf-8")).hex()


@dataclass(frozen=True)
class DecodedEvent:
    name: str
    args: dict[str, Any]


class ContractABI:
    """Parsed interface descriptor."""

    def __init__(self, entries: list[dict[str, Any]]) -> None:
        self.entries = entries

    def __repr__(self) -> str:
        return f"ContractABI({len(self.entries)} entries)"

    @property
    def functions(self) -> list[dict[str, Any]]:
        return [e for e in self.entries if e.get("type", "function") == "function"]

    @property
    def events(self) -> list[dict[str, Any]]:
        return [e for e in self.entries if e.get("type") == "event"]

    @property
    def constructor(self) -> dict[str, Any] | None:
        for entry in self.entries:
            if entry.get("type") == "constructor":
                return entry
        return None

    def find_function(self, name: str, arg_count: int | None = None) -> dict[str, Any]:
        """
        Look up a function by name or by full signature.

        Overloads sharing a name are told apart by ``arg_count``.

        Raises:
            AbiError: If no entry (or more than one) matches
        """
        if "(" in name:
            for entry in self.functions:
                if function_signature(entry) == name:
                    return entry
            raise AbiError(f"Function {name} not found in ABI")

        candidates = [e for e in self.functions if e.get("name") == name]
        if not candidates:
            raise AbiError(f"Function {name} not found in ABI")
        if arg_count is not None:
            candidates = [e for e in candidates if len(e.get("inputs", [])) == arg_count]
            if not candidates:
                raise AbiError(
                    f"Function {name} does not take {arg_count} argument(s)"
                )
        if len(candidates) > 1:
            sigs = ", ".join(function_signature(e) for e in candidates)
            raise AbiError(f"Function {name} is overloaded ({sigs}); use a full signature")
        return candidates[0]

    def find_event_by_topic(self, topic: str) -> dict[str, Any]:
        for entry in self.events:
            if event_topic(function_signature(entry)) == topic.lower():
                return entry
        raise AbiDecodeError(f"No event in ABI matches topic {topic}")


def parse_abi(source: AbiSource) -> ContractABI:
    """
    Parse an interface descriptor.

    Args:
        source: JSON string, list of ABI entries, or an artifact dict
                with an ``abi`` key

    Raises:
        AbiError: If the source is not a valid ABI
    """
    if isinstance(source, ContractABI):
        return source
    if isinstance(source, str):
        try:
            source = json.loads(source)
        except json.JSONDecodeError as exc:
            raise AbiError(f"ABI is not valid JSON: {exc}") from exc
    if isinstance(source, dict):
        if "abi" not in source:
            raise AbiError("Artifact has no 'abi' key")
        source = source["abi"]
    if not isinstance(source, list) or not all(isinstance(e, dict) for e in source):
        raise AbiError("ABI must be a list of entries")
    return ContractABI(source)


@lru_cache(maxsize=16)
def load_abi(path: Union[str, Path]) -> ContractABI:
    """
    Load an ABI from a JSON file (plain ABI or compiler artifact).

    Raises:
        FileNotFoundError: If the file does not exist
        AbiError: If its content is not an ABI
    """
    abi_path = Path(path)
    if not abi_path.exists():
        raise FileNotFoundError(f"ABI not found: {abi_path}")
    with abi_path.open("r", encoding="utf-8") as f:
        contract = parse_abi(json.load(f))
    logger.debug("loaded %d ABI entries from %s", len(contract.entries), abi_path)
    return contract


def _encode_args(types: list[str], args: Sequence[Any], what: str) -> bytes:
    try:
        return encode(types, list(args))
    except (EncodingError, ParseError, TypeError, ValueError, OverflowError) as exc:
        raise AbiEncodeError(f"Cannot encode arguments for {what}: {exc}") from exc


def encode_call(abi: AbiSource | ContractABI, function_name: str, args: Sequence[Any] = ()) -> bytes:
    """
    ABI-encode a function call.

    Args:
        abi: Interface descriptor
        function_name: Function name, or full signature for overloads
        args: Function arguments

    Returns:
        selector || encoded arguments

    Raises:
        AbiEncodeError: If the function is unknown or the arguments do not
                        match its inputs
    """
    contract = parse_abi(abi)
    try:
        func = contract.find_function(function_name, len(args))
    except AbiError as exc:
        raise AbiEncodeError(str(exc)) from exc

    input_types = [canonical_type(inp) for inp in func.get("inputs", [])]
    if len(args) != len(input_types):
        raise AbiEncodeError(
            f"{function_signature(func)} expects {len(input_types)} argument(s), "
            f"got {len(args)}"
        )
    signature = function_signature(func)
    return method_selector(signature) + _encode_args(input_types, args, signature)


def decode_result(abi: AbiSource | ContractABI, function_name: str, data: Union[bytes, str]) -> tuple:
    """
    ABI-decode a function call result.

    Returns:
        Tuple of decoded values, one per declared output (empty when the
        function declares none)

    Raises:
        AbiDecodeError: If the function is unknown or the data is
                        truncated / does not match the outputs
    """
    contract = parse_abi(abi)
    try:
        func = contract.find_function(function_name)
    except AbiError as exc:
        raise AbiDecodeError(str(exc)) from exc

    output_types = [canonical_type(out) for out in func.get("outputs", [])]
    if not output_types:
        return ()

    try:
        if isinstance(data, str):
            data = bytes.fromhex(data[2:] if data.startswith("0x") else data)
        return tuple(decode(output_types, data))
    except (DecodingError, ParseError, ValueError, OverflowError) as exc:
        raise AbiDecodeError(
            f"Cannot decode result of {function_signature(func)}: {exc}"
        ) from exc


def encode_constructor_args(abi: AbiSource | ContractABI, args: Sequence[Any]) -> bytes:
    """Encode constructor arguments to append to creation bytecode."""
    contract = parse_abi(abi)
    constructor = contract.constructor
    if constructor is None:
        if args:
            raise AbiEncodeError("ABI has no constructor, but constructor args were provided")
        return b""
    input_types = [canonical_type(inp) for inp in constructor.get("inputs", [])]
    if len(args) != len(input_types):
        raise AbiEncodeError(
            f"Constructor expects {len(input_types)} argument(s), got {len(args)}"
        )
    return _encode_args(input_types, args, "constructor")


def decode_log(abi: AbiSource | ContractABI, log: LogEntry) -> DecodedEvent:
    """
    Decode an event log against the ABI.

    Indexed dynamic values (strings, bytes, arrays) are stored by the chain
    as their keccak hash; they come back as the raw 32-byte topic.

    Raises:
        AbiDecodeError: If no event matches or the payload is malformed
    """
    if not log.topics:
        raise AbiDecodeError("Anonymous logs cannot be decoded by topic")
    contract = parse_abi(abi)
    event = contract.find_event_by_topic(log.topics[0])
    inputs = event.get("inputs", [])

    indexed = [p for p in inputs if p.get("indexed")]
    plain = [p for p in inputs if not p.get("indexed")]
    if len(indexed) != len(log.topics) - 1:
        raise AbiDecodeError(
            f"{event['name']} expects {len(indexed)} indexed topic(s), "
            f"got {len(log.topics) - 1}"
        )

    values: dict[str, Any] = {}
    try:
        for param, topic in zip(indexed, log.topics[1:]):
            raw = bytes.fromhex(topic[2:] if topic.startswith("0x") else topic)
            type_str = canonical_type(param)
            if type_str in ("string", "bytes") or type_str.endswith("]") or type_str.startswith("("):
                values[param["name"]] = raw
            else:
                values[param["name"]] = decode([type_str], raw)[0]
        decoded = decode([canonical_type(p) for p in plain], log.data)
    except (DecodingError, ParseError, ValueError, OverflowError) as exc:
        raise AbiDecodeError(f"Cannot decode {event['name']} log: {exc}") from exc

    for param, value in zip(plain, decoded):
        values[param["name"]] = value
    return DecodedEvent(name=event["name"], args=values)
