"""Unit tests for ABI parsing, encoding and decoding."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from eth_abi import encode

from etherkit.errors import AbiDecodeError, AbiEncodeError, AbiError
from etherkit.pneuma.abi import (
    ContractABI,
    decode_log,
    decode_result,
    encode_call,
    encode_constructor_args,
    event_topic,
    function_signature,
    load_abi,
    method_id,
    method_selector,
    parse_abi,
)
from etherkit.pneuma.receipt import LogEntry

from conftest import RECIPIENT, TEST_ADDRESS

TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

ERC20_ABI = [
    {
        "type": "function",
        "name": "transfer",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "balanceOf",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "approveAll",
        "inputs": [],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "safeTransferFrom",
        "inputs": [
            {"name": "from", "type": "address"},
            {"name": "to", "type": "address"},
            {"name": "id", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "safeTransferFrom",
        "inputs": [
            {"name": "from", "type": "address"},
            {"name": "to", "type": "address"},
            {"name": "id", "type": "uint256"},
            {"name": "data", "type": "bytes"},
        ],
        "outputs": [],
    },
    {
        "type": "event",
        "name": "Transfer",
        "inputs": [
            {"name": "from", "type": "address", "indexed": True},
            {"name": "to", "type": "address", "indexed": True},
            {"name": "value", "type": "uint256", "indexed": False},
        ],
    },
    {
        "type": "constructor",
        "inputs": [{"name": "supply", "type": "uint256"}],
    },
]


def _topic_for(address: str) -> str:
    return "0x" + "00" * 12 + address[2:].lower()


class TestSelectors:
    def test_transfer_selector(self) -> None:
        assert method_id("transfer(address,uint256)") == "0xa9059cbb"

    def test_balance_of_selector(self) -> None:
        assert method_selector("balanceOf(address)") == bytes.fromhex("70a08231")

    def test_event_topic(self) -> None:
        assert event_topic("Transfer(address,address,uint256)") == TRANSFER_TOPIC

    def test_tuple_signature(self) -> None:
        entry = {
            "name": "submit",
            "inputs": [
                {
                    "type": "tuple[]",
                    "components": [{"type": "address"}, {"type": "uint256"}],
                }
            ],
        }
        assert function_signature(entry) == "submit((address,uint256)[])"


class TestParse:
    def test_artifact_dict(self) -> None:
        abi = parse_abi({"abi": ERC20_ABI, "bytecode": "0x00"})
        assert len(abi.functions) == 5
        assert len(abi.events) == 1

    def test_json_string(self) -> None:
        abi = parse_abi(json.dumps(ERC20_ABI))
        assert abi.constructor is not None

    def test_contract_abi_passes_through(self) -> None:
        abi = ContractABI(ERC20_ABI)
        assert parse_abi(abi) is abi

    def test_invalid_json(self) -> None:
        with pytest.raises(AbiError):
            parse_abi("{not json")

    def test_not_a_list(self) -> None:
        with pytest.raises(AbiError):
            parse_abi('{"name": "x"}')

    def test_load_abi(self, tmp_path: Path) -> None:
        path = tmp_path / "Token.json"
        path.write_text(json.dumps({"abi": ERC20_ABI}), encoding="utf-8")
        assert load_abi(path).find_function("transfer")["name"] == "transfer"

    def test_load_abi_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_abi(tmp_path / "missing.json")


class TestEncodeCall:
    def test_transfer(self) -> None:
        data = encode_call(ERC20_ABI, "transfer", [RECIPIENT, 10**18])
        assert data[:4].hex() == "a9059cbb"
        assert len(data) == 4 + 64
        assert data[4:] == encode(["address", "uint256"], [RECIPIENT, 10**18])

    def test_no_arguments(self) -> None:
        data = encode_call(ERC20_ABI, "approveAll")
        assert data == method_selector("approveAll()")

    def test_unknown_function(self) -> None:
        with pytest.raises(AbiEncodeError, match="not found"):
            encode_call(ERC20_ABI, "mint", [1])

    def test_wrong_argument_count(self) -> None:
        with pytest.raises(AbiEncodeError):
            encode_call(ERC20_ABI, "transfer", [RECIPIENT])

    def test_wrong_argument_type(self) -> None:
        with pytest.raises(AbiEncodeError):
            encode_call(ERC20_ABI, "transfer", ["not-an-address", 1])

    def test_overload_by_argument_count(self) -> None:
        three = encode_call(ERC20_ABI, "safeTransferFrom", [TEST_ADDRESS, RECIPIENT, 1])
        four = encode_call(ERC20_ABI, "safeTransferFrom", [TEST_ADDRESS, RECIPIENT, 1, b"\x01"])
        assert three[:4] == method_selector("safeTransferFrom(address,address,uint256)")
        assert four[:4] == method_selector("safeTransferFrom(address,address,uint256,bytes)")

    def test_overload_by_signature(self) -> None:
        data = encode_call(
            ERC20_ABI,
            "safeTransferFrom(address,address,uint256,bytes)",
            [TEST_ADDRESS, RECIPIENT, 1, b""],
        )
        assert data[:4] == method_selector("safeTransferFrom(address,address,uint256,bytes)")

    def test_constructor_args(self) -> None:
        assert encode_constructor_args(ERC20_ABI, [1000]) == encode(["uint256"], [1000])

    def test_constructor_args_mismatch(self) -> None:
        with pytest.raises(AbiEncodeError):
            encode_constructor_args(ERC20_ABI, [])


class TestDecodeResult:
    def test_uint(self) -> None:
        data = encode(["uint256"], [12345])
        assert decode_result(ERC20_ABI, "balanceOf", data) == (12345,)

    def test_hex_string_input(self) -> None:
        data = "0x" + encode(["bool"], [True]).hex()
        assert decode_result(ERC20_ABI, "transfer", data) == (True,)

    def test_no_outputs(self) -> None:
        assert decode_result(ERC20_ABI, "approveAll", b"") == ()

    def test_truncated(self) -> None:
        with pytest.raises(AbiDecodeError):
            decode_result(ERC20_ABI, "balanceOf", b"\x00" * 16)

    def test_ambiguous_overload(self) -> None:
        with pytest.raises(AbiDecodeError, match="overloaded"):
            decode_result(ERC20_ABI, "safeTransferFrom", b"")


class TestDecodeLog:
    def test_transfer_event(self) -> None:
        log = LogEntry(
            address=RECIPIENT,
            topics=(TRANSFER_TOPIC, _topic_for(TEST_ADDRESS), _topic_for(RECIPIENT)),
            data=encode(["uint256"], [500]),
        )
        event = decode_log(ERC20_ABI, log)
        assert event.name == "Transfer"
        assert event.args["from"].lower() == TEST_ADDRESS.lower()
        assert event.args["to"].lower() == RECIPIENT.lower()
        assert event.args["value"] == 500

    def test_unknown_topic(self) -> None:
        log = LogEntry(address=RECIPIENT, topics=("0x" + "00" * 32,), data=b"")
        with pytest.raises(AbiDecodeError):
            decode_log(ERC20_ABI, log)

    def test_topic_count_mismatch(self) -> None:
        log = LogEntry(address=RECIPIENT, topics=(TRANSFER_TOPIC,), data=encode(["uint256"], [1]))
        with pytest.raises(AbiDecodeError):
            decode_log(ERC20_ABI, log)
