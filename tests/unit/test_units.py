"""Tests for lf_common.units — micro-unit fixed-point arithmetic."""

import pytest

from src.lf_common.units import (
    INITIAL_SHARE_PRICE,
    USDC_SCALE,
    amount_for_shares,
    bps_of,
    parse_units,
    share_price_of,
    shares_for_amount,
    units_to_display,
)


class TestBpsOf:
    def test_basic(self) -> None:
        # 10,000 USDC at 100 bps = 100 USDC
        assert bps_of(10_000 * USDC_SCALE, 100) == 100 * USDC_SCALE

    def test_floors(self) -> None:
        # 999 * 25 / 10000 = 2.4975 → 2
        assert bps_of(999, 25) == 2

    def test_zero_amount(self) -> None:
        assert bps_of(0, 300) == 0

    def test_zero_bps(self) -> None:
        assert bps_of(123_456, 0) == 0

    def test_below_one_unit_is_zero(self) -> None:
        assert bps_of(99, 100) == 0


class TestShareMath:
    def test_shares_at_initial_price_are_one_to_one(self) -> None:
        assert shares_for_amount(9_900 * USDC_SCALE, INITIAL_SHARE_PRICE) == 9_900 * USDC_SCALE

    def test_shares_truncate(self) -> None:
        # 1 micro-USDC at 1.5 USDC/share → 0.666 micro-shares → 0
        assert shares_for_amount(1, 1_500_000) == 0

    def test_shares_zero_price_raises(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            shares_for_amount(100, 0)

    def test_amount_for_shares(self) -> None:
        # 1000 shares at 1.23 = 1230 USDC
        assert amount_for_shares(1_000 * USDC_SCALE, 1_230_000) == 1_230 * USDC_SCALE

    def test_amount_truncates(self) -> None:
        assert amount_for_shares(1, 999_999) == 0

    def test_share_price_of(self) -> None:
        assert share_price_of(150 * USDC_SCALE, 100 * USDC_SCALE, INITIAL_SHARE_PRICE) == 1_500_000

    def test_share_price_fallback_without_shares(self) -> None:
        assert share_price_of(0, 0, 1_230_000) == 1_230_000


class TestParseUnits:
    def test_integer(self) -> None:
        assert parse_units("10") == 10_000_000

    def test_fraction(self) -> None:
        assert parse_units("1.5") == 1_500_000

    def test_six_decimals(self) -> None:
        assert parse_units("0.000001") == 1

    def test_too_many_decimals(self) -> None:
        with pytest.raises(ValueError, match="Precision"):
            parse_units("0.0000001")

    @pytest.mark.parametrize("bad", ["-1", "1e6", "abc", "", "1.", ".5"])
    def test_rejects_malformed(self, bad: str) -> None:
        with pytest.raises(ValueError):
            parse_units(bad)


class TestUnitsToDisplay:
    def test_basic(self) -> None:
        assert units_to_display(9_900_000_000) == "9,900.000000"

    def test_zero(self) -> None:
        assert units_to_display(0) == "0.000000"

    def test_fraction(self) -> None:
        assert units_to_display(61_500_000) == "61.500000"

    def test_negative(self) -> None:
        assert units_to_display(-61_500_000) == "-61.500000"
