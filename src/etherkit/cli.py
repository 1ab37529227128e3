"""
etherkit CLI

Command-line interface for EVM accounts and legacy transactions.

Commands:
  keygen      - Generate a new private key
  whoami      - Show current wallet address
  chain-info  - Show chain id, network id, block and gas price
  balance     - Show the balance of an address
  to-wei      - Convert a decimal amount to base units
  from-wei    - Convert base units to a decimal amount
  selector    - Compute a 4-byte method selector
  transfer    - Send ether
  call        - Read-only contract call
  invoke      - Send a contract call as a transaction
  wait        - Wait for a transaction receipt
"""

from __future__ import annotations

import dataclasses
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

import click

from .config import Settings, load_settings, save_private_key
from .errors import EtherKitError
from .kit import Kit
from .pneuma.abi import (
    ContractABI,
    decode_result,
    encode_call,
    function_signature,
    load_abi,
    method_id,
)
from .pneuma.poller import wait_for_receipt
from .pneuma.receipt import Receipt
from .pneuma.rpc import Provider
from .sigil.keys import generate_eoa, get_address, is_valid_address
from .units import (
    ETHER_DECIMALS,
    GWEI_DECIMALS,
    format_amount,
    to_base_units_from_str,
    to_decimal_from_str,
    to_plain_string,
)


# ============ Constants ============

VERSION = "0.1.0"


# ============ Helpers ============


def _fail(message: str, exit_code: int = 1) -> None:
    click.secho(f"ERROR: {message}", fg="red", err=True)
    sys.exit(exit_code)


def _settings(ctx: click.Context) -> Settings:
    return ctx.obj["settings"]


def _open_provider(ctx: click.Context) -> Provider:
    settings = _settings(ctx)
    return Provider.from_url(
        settings.rpc_url,
        chain_id=settings.chain_id,
        timeout=settings.rpc_timeout,
        transport=ctx.obj.get("transport"),
    )


def _open_kit(ctx: click.Context) -> Kit:
    settings = _settings(ctx)
    try:
        return Kit.from_private_key(
            settings.require_private_key(),
            settings.rpc_url,
            chain_id=settings.chain_id,
            timeout=settings.rpc_timeout,
            transport=ctx.obj.get("transport"),
        )
    except ValueError as exc:
        _fail(str(exc))


def _parse_decimal(text: str) -> Decimal:
    try:
        return Decimal(text.strip())
    except InvalidOperation:
        raise click.BadParameter(f"not a decimal number: {text!r}") from None


def _parse_args(args_json: str) -> list[Any]:
    try:
        args = json.loads(args_json)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"invalid JSON: {exc}") from None
    if not isinstance(args, list):
        raise click.BadParameter("args must be a JSON array")
    return args


def _echo_receipt(receipt: Receipt) -> None:
    if receipt.success:
        click.secho("SUCCESS: Transaction confirmed!", fg="green")
    else:
        click.secho("FAILED: Transaction reverted", fg="red")
    click.echo(f"  TX: {receipt.transaction_hash}")
    click.echo(f"  Block: {receipt.block_number}")
    click.echo(f"  Gas used: {receipt.gas_used}")


# ============ Main CLI Group ============


@click.group()
@click.version_option(version=VERSION, prog_name="etherkit")
@click.option("--rpc-url", default=None, help="Node JSON-RPC endpoint [env: ETHERKIT_RPC_URL]")
@click.option("--chain-id", default=None, type=int, help="Chain id (skips the eth_chainId query)")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, rpc_url: Optional[str], chain_id: Optional[int], verbose: bool) -> None:
    """etherkit - EVM accounts and transactions."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    try:
        settings = load_settings()
    except ValueError as exc:
        _fail(str(exc))
    if rpc_url:
        settings = dataclasses.replace(settings, rpc_url=rpc_url)
    if chain_id is not None:
        settings = dataclasses.replace(settings, chain_id=chain_id)
    ctx.obj["settings"] = settings


# ============ Identity ============


@cli.command()
@click.option("--save", is_flag=True, help="Store the key in ~/.etherkit/.env")
def keygen(save: bool) -> None:
    """Generate a new private key."""
    private_key, address = generate_eoa()
    click.echo(f"Address: {address}")
    if save:
        path = save_private_key(private_key)
        click.echo(f"Private key saved to {path}")
    else:
        click.echo(f"Private key: {private_key}")


@cli.command()
@click.pass_context
def whoami(ctx: click.Context) -> None:
    """Show current wallet identity."""
    private_key = _settings(ctx).private_key
    if not private_key:
        click.echo("No wallet found.")
        click.echo("Run 'etherkit keygen --save' to create one.")
        sys.exit(1)
    try:
        address = get_address(private_key)
    except ValueError as exc:
        _fail(str(exc))
    click.echo(f"Address: {address}")


# ============ Chain ============


@cli.command("chain-info")
@click.pass_context
def chain_info(ctx: click.Context) -> None:
    """Show chain id, network id, latest block and gas price."""
    try:
        with _open_provider(ctx) as provider:
            chain_id = provider.get_chain_id()
            network_id = provider.get_network_id()
            block_number = provider.get_block_number()
            gas_price = provider.get_suggested_gas_price()
    except EtherKitError as exc:
        _fail(str(exc), exc.exit_code)

    click.echo(f"Chain ID:     {chain_id}")
    click.echo(f"Network ID:   {network_id}")
    click.echo(f"Block:        {block_number}")
    click.echo(f"Gas price:    {format_amount(gas_price, GWEI_DECIMALS, 'gwei')}")


@cli.command()
@click.argument("address", required=False)
@click.pass_context
def balance(ctx: click.Context, address: Optional[str]) -> None:
    """Show the balance of ADDRESS (default: own wallet)."""
    if address is None:
        try:
            address = get_address(_settings(ctx).require_private_key())
        except ValueError as exc:
            _fail(str(exc))
    elif not is_valid_address(address):
        _fail(f"Invalid address: {address}")

    try:
        with _open_provider(ctx) as provider:
            wei = provider.get_balance(address)
    except EtherKitError as exc:
        _fail(str(exc), exc.exit_code)

    click.echo(f"{address}: {format_amount(wei, ETHER_DECIMALS, 'ETH')}")


# ============ Conversions ============


@cli.command("to-wei")
@click.argument("amount")
@click.option("--decimals", default=ETHER_DECIMALS, show_default=True, type=click.IntRange(min=0))
def to_wei(amount: str, decimals: int) -> None:
    """Convert a decimal AMOUNT to base units (extra digits are truncated)."""
    try:
        click.echo(to_base_units_from_str(amount, decimals))
    except ValueError as exc:
        _fail(str(exc))


@cli.command("from-wei")
@click.argument("value")
@click.option("--decimals", default=ETHER_DECIMALS, show_default=True, type=click.IntRange(min=0))
def from_wei(value: str, decimals: int) -> None:
    """Convert a base-unit VALUE to a decimal amount."""
    try:
        click.echo(to_plain_string(to_decimal_from_str(value, decimals)))
    except ValueError as exc:
        _fail(str(exc))


@cli.command()
@click.argument("signature")
def selector(signature: str) -> None:
    """Print the 4-byte selector of a canonical SIGNATURE, e.g. 'transfer(address,uint256)'."""
    click.echo(method_id(signature))


# ============ Transactions ============


@cli.command()
@click.option("--to", "to_address", required=True, help="Recipient address")
@click.option("--amount", required=True, help="Amount in ether, e.g. 0.1")
@click.option("--wait/--no-wait", default=True, help="Wait for the receipt")
@click.option("--timeout", default=None, type=click.FloatRange(min=0), help="Seconds to wait for the receipt")
@click.pass_context
def transfer(
    ctx: click.Context,
    to_address: str,
    amount: str,
    wait: bool,
    timeout: Optional[float],
) -> None:
    """Send ether to another address."""
    value = _parse_decimal(amount)
    settings = _settings(ctx)

    kit = _open_kit(ctx)
    try:
        click.echo(f"  Sender: {kit.address}")
        click.echo(f"  To: {to_address}")
        click.echo(f"  Amount: {to_plain_string(value)} ETH")
        tx_hash = kit.transfer_ether(to_address, value)
        click.echo(f"  TX: {tx_hash}")
        if wait:
            receipt = kit.wait_for_receipt(
                tx_hash,
                timeout=timeout if timeout is not None else settings.receipt_timeout,
                interval=settings.poll_interval,
            )
            _echo_receipt(receipt)
            if not receipt.success:
                sys.exit(1)
    except EtherKitError as exc:
        _fail(str(exc), exc.exit_code)
    except ValueError as exc:
        _fail(str(exc))
    finally:
        kit.close()


def _load_contract_abi(abi_path: str) -> ContractABI:
    try:
        return load_abi(Path(abi_path))
    except (FileNotFoundError, ValueError) as exc:
        raise click.BadParameter(str(exc), param_hint="--abi") from None


@cli.command()
@click.option("--contract", required=True, help="Target contract address")
@click.option("--function", "func_name", required=True, help="Function name or full signature")
@click.option("--abi", "abi_path", required=True, type=click.Path(exists=True, dir_okay=False), help="ABI JSON file")
@click.option("--args", "args_json", default="[]", help="Function args as JSON array")
@click.option("--block", default=None, help="Block number or tag (default: latest)")
@click.pass_context
def call(
    ctx: click.Context,
    contract: str,
    func_name: str,
    abi_path: str,
    args_json: str,
    block: Optional[str],
) -> None:
    """Read-only contract call; prints the decoded outputs as JSON."""
    args = _parse_args(args_json)
    abi = _load_contract_abi(abi_path)
    block_param: Any = int(block, 0) if block and block[0].isdigit() else block

    try:
        with _open_provider(ctx) as provider:
            data = encode_call(abi, func_name, args)
            signature = function_signature(abi.find_function(func_name, len(args)))
            result = decode_result(abi, signature, provider.call(contract, data, block=block_param))
    except EtherKitError as exc:
        _fail(str(exc), exc.exit_code)

    click.echo(json.dumps(_jsonable(result)))


def _jsonable(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, bytes):
        return "0x" + value.hex()
    if isinstance(value, int) and not isinstance(value, bool) and abs(value) >= 2**53:
        return str(value)
    return value


@cli.command()
@click.option("--contract", required=True, help="Target contract address")
@click.option("--function", "func_name", required=True, help="Function name or full signature")
@click.option("--abi", "abi_path", required=True, type=click.Path(exists=True, dir_okay=False), help="ABI JSON file")
@click.option("--args", "args_json", default="[]", help="Function args as JSON array")
@click.option("--value", default=0, type=click.IntRange(min=0), help="ETH value in wei")
@click.option("--gas-limit", default=0, type=click.IntRange(min=0), help="Gas limit (0 = estimate)")
@click.option("--wait/--no-wait", default=True, help="Wait for the receipt")
@click.pass_context
def invoke(
    ctx: click.Context,
    contract: str,
    func_name: str,
    abi_path: str,
    args_json: str,
    value: int,
    gas_limit: int,
    wait: bool,
) -> None:
    """
    Execute an on-chain contract call.

    Sends a transaction from your wallet to the specified contract.
    """
    args = _parse_args(args_json)
    abi = _load_contract_abi(abi_path)
    settings = _settings(ctx)

    kit = _open_kit(ctx)
    try:
        click.echo(f"  Sender: {kit.address}")
        click.echo(f"  Target: {contract}")
        click.echo(f"  Function: {func_name}")
        click.echo(f"  Args: {args}")
        if value > 0:
            click.echo(f"  Value: {value} wei")
        tx_hash = kit.invoke_contract(
            contract, abi, func_name, args, gas_limit=gas_limit, value=value or None
        )
        click.echo(f"  TX: {tx_hash}")
        if wait:
            receipt = kit.wait_for_receipt(
                tx_hash, timeout=settings.receipt_timeout, interval=settings.poll_interval
            )
            _echo_receipt(receipt)
            if not receipt.success:
                sys.exit(1)
    except EtherKitError as exc:
        _fail(str(exc), exc.exit_code)
    except ValueError as exc:
        _fail(str(exc))
    finally:
        kit.close()


@cli.command()
@click.argument("tx_hash")
@click.option("--timeout", default=None, type=click.FloatRange(min=0), help="Seconds to wait")
@click.option("--interval", default=None, type=float, help="Seconds between polls (min 1)")
@click.pass_context
def wait(
    ctx: click.Context,
    tx_hash: str,
    timeout: Optional[float],
    interval: Optional[float],
) -> None:
    """Wait for TX_HASH to be included and print its receipt."""
    settings = _settings(ctx)
    try:
        with _open_provider(ctx) as provider:
            receipt = wait_for_receipt(
                provider,
                tx_hash,
                timeout=timeout if timeout is not None else settings.receipt_timeout,
                interval=interval if interval is not None else settings.poll_interval,
            )
    except EtherKitError as exc:
        _fail(str(exc), exc.exit_code)

    _echo_receipt(receipt)
    if not receipt.success:
        sys.exit(1)


# ============ Entry Points ============


def main() -> None:
    """etherkit CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
