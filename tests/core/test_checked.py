# [TESTER] v1

from __future__ import annotations

import pytest

from nftamm.core.checked import (
    I64_MIN,
    U64_MAX,
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
    mul_div_bps,
    narrow,
    require_u64,
)
from nftamm.core.errors import ErrorCode, MarketError


def _code(exc_info) -> ErrorCode:
    return exc_info.value.code


class TestWidths:
    def test_u64_add_overflow_fails(self) -> None:
        with pytest.raises(MarketError) as exc_info:
            checked_add(U64_MAX, 1)
        assert _code(exc_info) == ErrorCode.NUMERIC_OVERFLOW

    def test_u128_intermediate_holds_u64_overflow(self) -> None:
        assert checked_add(U64_MAX, 1, bits=128) == 1 << 64
        assert checked_mul(U64_MAX, U64_MAX, bits=128) == U64_MAX * U64_MAX

    def test_u128_mul_overflow_fails(self) -> None:
        with pytest.raises(MarketError):
            checked_mul(1 << 64, 1 << 64, bits=128)

    def test_unsigned_sub_underflow_fails(self) -> None:
        with pytest.raises(MarketError) as exc_info:
            checked_sub(0, 1)
        assert _code(exc_info) == ErrorCode.NUMERIC_OVERFLOW

    def test_signed_sub_allows_negative(self) -> None:
        assert checked_sub(0, 1, signed=True) == -1

    def test_unsupported_width_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            checked_add(1, 1, bits=32)

    def test_bool_operands_are_rejected(self) -> None:
        with pytest.raises(TypeError):
            checked_add(True, 1)


class TestDivision:
    def test_unsigned_division_rounds_down(self) -> None:
        assert checked_div(7, 2) == 3

    @pytest.mark.parametrize(
        "a,b,expected",
        [(-7, 2, -3), (7, -2, -3), (-7, -2, 3), (-1, 10_000, 0)],
    )
    def test_signed_division_truncates_toward_zero(self, a: int, b: int, expected: int) -> None:
        assert checked_div(a, b, signed=True) == expected

    def test_zero_divisor_is_a_programming_error(self) -> None:
        with pytest.raises(ZeroDivisionError):
            checked_div(1, 0)

    def test_negative_operand_in_unsigned_division_fails(self) -> None:
        with pytest.raises(MarketError):
            checked_div(-4, 2)


class TestNarrow:
    def test_narrow_u64_bounds(self) -> None:
        assert narrow(U64_MAX) == U64_MAX
        with pytest.raises(MarketError):
            narrow(U64_MAX + 1)
        with pytest.raises(MarketError):
            narrow(-1)

    def test_narrow_i64_bounds(self) -> None:
        assert narrow(I64_MIN, signed=True) == I64_MIN
        with pytest.raises(MarketError):
            narrow(1 << 63, signed=True)


def test_require_u64() -> None:
    assert require_u64("x", 0) == 0
    with pytest.raises(TypeError):
        require_u64("x", 1.0)  # type: ignore[arg-type]
    with pytest.raises(MarketError):
        require_u64("x", -1)
    with pytest.raises(MarketError):
        require_u64("x", U64_MAX + 1)


def test_mul_div_bps_rounds_down() -> None:
    assert mul_div_bps(12_345, 250) == 308
    assert mul_div_bps(U64_MAX, 10_000) == U64_MAX
