"""
ECDSA / secp256k1 key material and addresses.

Keys are handled as 0x-prefixed hex strings at the API boundary and turned
into eth-account ``LocalAccount`` objects for signing.  Mnemonic derivation
follows BIP-44 on the Ethereum coin type: ``m/44'/60'/0'/0/{index}``.
"""

from __future__ import annotations

import re
import secrets
from typing import Union

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from eth_hash.auto import keccak
from eth_utils import to_checksum_address as _to_checksum_address

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_PRIVATE_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")

MNEMONIC_PATH_TEMPLATE = "m/44'/60'/0'/0/{index}"

Account.enable_unaudited_hdwallet_features()


def generate_private_key() -> str:
    """Generate a new random private key (0x-prefixed hex, 66 chars)."""
    return "0x" + secrets.token_hex(32)


def generate_eoa() -> tuple[str, str]:
    """
    Generate a new ECDSA/secp256k1 keypair (EOA).

    Returns:
        Tuple of (private_key_hex, address)
    """
    private_key = generate_private_key()
    return private_key, Account.from_key(private_key).address


def private_key_from_hex(private_key_hex: str) -> str:
    """
    Normalise a hex private key, with or without 0x prefix.

    Raises:
        ValueError: If the value is not 32 bytes of hex or not a valid
                    secp256k1 scalar
    """
    raw = private_key_hex.strip()
    if raw.startswith(("0x", "0X")):
        raw = raw[2:]
    if not _PRIVATE_KEY_RE.match(raw):
        raise ValueError("Private key must be 32 bytes of hex")
    try:
        keys.PrivateKey(bytes.fromhex(raw))
    except ValidationError as exc:
        raise ValueError(f"Invalid private key: {exc}") from exc
    return "0x" + raw.lower()


def private_key_from_mnemonic(mnemonic: str, account_index: int = 0) -> str:
    """
    Derive a private key from a BIP-39 mnemonic.

    Args:
        mnemonic: 12 or 24 word phrase
        account_index: Last path component (0 is the first account)

    Returns:
        0x-prefixed hex private key

    Raises:
        ValueError: If the mnemonic is invalid or the index is negative
    """
    if account_index < 0:
        raise ValueError(f"account_index must be non-negative, got {account_index}")
    path = MNEMONIC_PATH_TEMPLATE.format(index=account_index)
    try:
        account = Account.from_mnemonic(mnemonic, account_path=path)
    except Exception as exc:
        raise ValueError(f"Cannot derive key from mnemonic: {exc}") from exc
    return "0x" + bytes(account.key).hex()


def get_account(private_key: str) -> LocalAccount:
    """Get an eth-account LocalAccount for a hex private key."""
    return Account.from_key(private_key_from_hex(private_key))


def get_address(private_key: str) -> str:
    """Checksummed address for a hex private key."""
    return get_account(private_key).address


def public_key_hex(private_key: str) -> str:
    """Uncompressed public key as 128 hex chars (no 0x04 prefix)."""
    pk = keys.PrivateKey(bytes.fromhex(private_key_from_hex(private_key)[2:]))
    return pk.public_key.to_bytes().hex()


def public_key_to_address(public_key: bytes) -> str:
    """
    Derive an address from an uncompressed public key.

    Accepts the 65-byte form with the 0x04 prefix or the bare 64 bytes.
    """
    if len(public_key) == 65 and public_key[0] == 0x04:
        public_key = public_key[1:]
    if len(public_key) != 64:
        raise ValueError(f"Public key must be 64 or 65 bytes, got {len(public_key)}")
    return _to_checksum_address(keccak(public_key)[12:])


def is_valid_address(value: object) -> bool:
    """Format check only: 0x followed by 40 hex characters."""
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value))


def to_checksum_address(address: str) -> str:
    """
    Convert an address to EIP-55 checksummed format.

    Raises:
        ValueError: If the address is not well formed
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return _to_checksum_address(address)


def sign_data(data: bytes, private_key: str) -> bytes:
    """
    Sign keccak256(data) with the raw key.

    No EIP-191 prefix is added.  Returns 65 bytes ``r || s || v`` with
    ``v`` in {0, 1}.
    """
    pk = keys.PrivateKey(bytes.fromhex(private_key_from_hex(private_key)[2:]))
    return pk.sign_msg_hash(keccak(data)).to_bytes()


def verify_signature(address: str, data: bytes, signature: Union[bytes, str]) -> bool:
    """
    Check that ``signature`` over keccak256(data) was made by ``address``.

    Accepts ``v`` as 0/1 or 27/28.  Any malformed input yields False.
    """
    if isinstance(signature, str):
        try:
            signature = bytes.fromhex(signature.removeprefix("0x"))
        except ValueError:
            return False
    if len(signature) != 65:
        return False
    v = signature[64]
    if v >= 27:
        v -= 27
    try:
        sig = keys.Signature(signature[:64] + bytes([v]))
        recovered = sig.recover_public_key_from_msg_hash(keccak(data))
    except (BadSignature, ValidationError):
        return False
    return recovered.to_checksum_address().lower() == address.lower()


def sign_message(message: str, private_key: str) -> str:
    """
    Sign a message using EIP-191 personal_sign.

    Returns:
        0x-prefixed hex signature
    """
    account = get_account(private_key)
    signed = account.sign_message(encode_defunct(text=message))
    return "0x" + bytes(signed.signature).hex()
