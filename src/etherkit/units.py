"""
Conversion between base units and decimal amounts.

A monetary amount has two representations: an integer count of base units
(wei for the native coin) and a decimal value, related by
``decimal = base_units / 10**scale``.  The scale belongs to the asset, not
the amount, so every function takes it explicitly (18 for ether, 6 for
most stablecoins).

All arithmetic is exact.  ``decimal.Decimal`` is the only amount type
accepted by :func:`to_base_units`; strings and ints have their own named
entry points.  Floats go through :func:`to_base_units_from_float`, which is
the one lossy path: a float such as ``0.1`` has no exact binary value, so
the conversion uses its shortest ``repr`` and the result is only as good as
that representation.
"""

from __future__ import annotations

from decimal import Decimal, DecimalException, Inexact, InvalidOperation, localcontext

from .errors import ConversionError

ETHER_DECIMALS = 18
GWEI_DECIMALS = 9


def _check_scale(scale: int) -> None:
    if isinstance(scale, bool) or not isinstance(scale, int):
        raise TypeError(f"scale must be an int, got {type(scale).__name__}")
    if scale < 0:
        raise ValueError(f"scale must be non-negative, got {scale}")


def _digits(value: Decimal) -> int:
    return len(value.as_tuple().digits)


def _scale_exact(value: Decimal, exponent: int) -> Decimal:
    """``value * 10**exponent``; anything outside the Decimal range raises."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, _digits(value) + 1)
        ctx.traps[Inexact] = True
        try:
            return value.scaleb(exponent)
        except DecimalException:
            raise ConversionError(f"Amount {value} out of range for scale {abs(exponent)}") from None


def to_decimal(base_units: int, scale: int) -> Decimal:
    """
    Convert an integer amount of base units to a Decimal.

    Args:
        base_units: Non-negative integer (e.g. wei)
        scale: Number of decimals of the asset (e.g. 18)

    Returns:
        Exact Decimal, e.g. ``to_decimal(10**18, 18) == Decimal("1")``
    """
    _check_scale(scale)
    if isinstance(base_units, bool) or not isinstance(base_units, int):
        raise TypeError(
            f"base_units must be an int, got {type(base_units).__name__}"
        )
    if base_units < 0:
        raise ValueError(f"base_units must be non-negative, got {base_units}")

    return _scale_exact(Decimal(base_units), -scale)


def to_decimal_from_str(base_units: str, scale: int) -> Decimal:
    """Same as :func:`to_decimal` for base units given as a decimal string."""
    try:
        value = int(base_units.strip(), 10)
    except ValueError:
        raise ConversionError(f"Invalid base-unit integer: {base_units!r}") from None
    return to_decimal(value, scale)


def to_base_units(amount: Decimal, scale: int) -> int:
    """
    Convert a decimal amount to base units, truncating extra fractional digits.

    Args:
        amount: Non-negative Decimal (ints are accepted, they are exact)
        scale: Number of decimals of the asset

    Returns:
        Integer amount of base units

    Raises:
        TypeError: If amount is a float or another non-exact type
        ConversionError: If amount is NaN, infinite or too large
    """
    _check_scale(scale)
    if isinstance(amount, bool) or isinstance(amount, float):
        raise TypeError(
            "float amounts lose precision; use to_base_units_from_float() "
            "explicitly or pass a Decimal"
        )
    if isinstance(amount, int):
        amount = Decimal(amount)
    if not isinstance(amount, Decimal):
        raise TypeError(f"amount must be a Decimal, got {type(amount).__name__}")
    if not amount.is_finite():
        raise ConversionError(f"Amount must be finite, got {amount}")
    if amount < 0:
        raise ValueError(f"Amount must be non-negative, got {amount}")

    # int() truncates toward zero
    return int(_scale_exact(amount, scale))


def to_base_units_from_str(amount: str, scale: int) -> int:
    """Parse a decimal string such as ``"0.1"`` and convert it exactly."""
    try:
        value = Decimal(amount.strip())
    except InvalidOperation:
        raise ConversionError(f"Invalid decimal amount: {amount!r}") from None
    return to_base_units(value, scale)


def to_base_units_from_int(amount: int, scale: int) -> int:
    """Convert a whole-number amount, e.g. ``100`` tokens with 6 decimals."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(f"amount must be an int, got {type(amount).__name__}")
    return to_base_units(Decimal(amount), scale)


def to_base_units_from_float(amount: float, scale: int) -> int:
    """
    Convert a float amount.

    The float is first rendered with ``repr`` (its shortest round-tripping
    form) and then converted exactly.  Values that were already inexact as
    floats stay inexact; prefer the Decimal or string entry points.
    """
    return to_base_units(Decimal(repr(float(amount))), scale)


def to_plain_string(value: Decimal) -> str:
    """Shortest fixed-point rendering: ``Decimal("1.500")`` -> ``"1.5"``."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, _digits(value) + 1)
        value = value.normalize()
    # normalize() turns 100 into 1E+2
    return format(value, "f")


def format_amount(base_units: int, scale: int, symbol: str) -> str:
    """Render base units as ``"<decimal> <symbol>"``, e.g. ``"1.5 ETH"``."""
    return f"{to_plain_string(to_decimal(base_units, scale))} {symbol}"
