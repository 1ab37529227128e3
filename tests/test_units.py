"""Unit tests for base-unit / decimal conversion."""

from __future__ import annotations

from decimal import Decimal

import pytest

from etherkit.errors import ConversionError
from etherkit.units import (
    ETHER_DECIMALS,
    GWEI_DECIMALS,
    format_amount,
    to_base_units,
    to_base_units_from_float,
    to_base_units_from_int,
    to_base_units_from_str,
    to_decimal,
    to_decimal_from_str,
    to_plain_string,
)


class TestToDecimal:
    def test_one_ether(self) -> None:
        assert to_decimal(10**18, ETHER_DECIMALS) == Decimal("1")

    def test_one_wei(self) -> None:
        assert to_decimal(1, ETHER_DECIMALS) == Decimal("0.000000000000000001")

    def test_gwei_scale(self) -> None:
        assert to_decimal(20 * 10**9, GWEI_DECIMALS) == Decimal("20")

    def test_zero_scale(self) -> None:
        assert to_decimal(42, 0) == Decimal(42)

    def test_beyond_default_precision(self) -> None:
        """Values with more than 28 digits stay exact."""
        value = 123456789012345678901234567890123456789
        result = to_decimal(value, ETHER_DECIMALS)
        assert result == Decimal("123456789012345678901.234567890123456789")

    def test_rejects_float(self) -> None:
        with pytest.raises(TypeError):
            to_decimal(1.0, ETHER_DECIMALS)  # type: ignore[arg-type]

    def test_rejects_negative(self) -> None:
        with pytest.raises(ValueError):
            to_decimal(-1, ETHER_DECIMALS)

    def test_rejects_negative_scale(self) -> None:
        with pytest.raises(ValueError):
            to_decimal(1, -1)

    def test_from_string(self) -> None:
        assert to_decimal_from_str("1500000000000000000", 18) == Decimal("1.5")

    def test_from_bad_string(self) -> None:
        with pytest.raises(ConversionError):
            to_decimal_from_str("1.5", 18)


class TestToBaseUnits:
    def test_one_ether(self) -> None:
        assert to_base_units(Decimal("1"), ETHER_DECIMALS) == 10**18

    def test_fraction(self) -> None:
        assert to_base_units(Decimal("1.5"), ETHER_DECIMALS) == 15 * 10**17

    def test_point_one_is_exact(self) -> None:
        assert to_base_units(Decimal("0.1"), ETHER_DECIMALS) == 10**17

    def test_truncates_extra_digits(self) -> None:
        assert to_base_units(Decimal("0.0000000000000000019"), ETHER_DECIMALS) == 1
        assert to_base_units(Decimal("1.9"), 0) == 1

    def test_round_trip_large_value(self) -> None:
        value = 987654321098765432109876543210987654321
        assert to_base_units(to_decimal(value, ETHER_DECIMALS), ETHER_DECIMALS) == value

    def test_int_is_accepted(self) -> None:
        assert to_base_units(3, 6) == 3_000_000

    def test_float_is_rejected(self) -> None:
        with pytest.raises(TypeError):
            to_base_units(0.5, ETHER_DECIMALS)  # type: ignore[arg-type]

    def test_negative_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            to_base_units(Decimal("-1"), ETHER_DECIMALS)

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_is_rejected(self, value: str) -> None:
        with pytest.raises(ConversionError):
            to_base_units(Decimal(value), ETHER_DECIMALS)

    def test_from_string(self) -> None:
        assert to_base_units_from_str(" 0.25 ", ETHER_DECIMALS) == 25 * 10**16

    def test_from_bad_string(self) -> None:
        with pytest.raises(ConversionError):
            to_base_units_from_str("one", ETHER_DECIMALS)

    def test_from_int(self) -> None:
        assert to_base_units_from_int(100, 6) == 100_000_000

    def test_from_float(self) -> None:
        assert to_base_units_from_float(0.5, ETHER_DECIMALS) == 5 * 10**17

    def test_from_float_uses_shortest_repr(self) -> None:
        assert to_base_units_from_float(0.1, ETHER_DECIMALS) == 10**17

    def test_exponent_beyond_decimal_range(self) -> None:
        with pytest.raises(ConversionError, match="out of range"):
            to_base_units_from_str("1E+999990", ETHER_DECIMALS)


class TestFormatting:
    def test_format_amount(self) -> None:
        assert format_amount(15 * 10**17, ETHER_DECIMALS, "ETH") == "1.5 ETH"

    def test_format_whole_amount(self) -> None:
        assert format_amount(100 * 10**18, ETHER_DECIMALS, "ETH") == "100 ETH"

    def test_format_zero(self) -> None:
        assert format_amount(0, ETHER_DECIMALS, "ETH") == "0 ETH"

    def test_plain_string_has_no_exponent(self) -> None:
        assert to_plain_string(Decimal("1E+2")) == "100"
        assert to_plain_string(Decimal("0.000000000000000001")) == "0.000000000000000001"
