"""Checked fixed-width integer arithmetic.

Balances are stored as u64; every monetary intermediate is computed in 128
bits and narrowed back. Python ints never wrap, so each helper checks the
result against the requested width and fails with ``NumericOverflow``
instead of truncating.

Rounding:
- unsigned division rounds down,
- signed division truncates toward zero (not Python's floor).

Divisors in this codebase are fee denominators or validated curve
parameters, so a zero divisor is a programming error and raises
``ZeroDivisionError`` rather than a ``MarketError``.
"""

from __future__ import annotations

from .errors import ErrorCode, MarketError

U16_MAX: int = (1 << 16) - 1
U64_MAX: int = (1 << 64) - 1
U128_MAX: int = (1 << 128) - 1
I16_MIN: int = -(1 << 15)
I16_MAX: int = (1 << 15) - 1
I64_MIN: int = -(1 << 63)
I64_MAX: int = (1 << 63) - 1
I128_MIN: int = -(1 << 127)
I128_MAX: int = (1 << 127) - 1

BPS_DENOM: int = 10_000


def _bounds(bits: int, signed: bool) -> tuple[int, int]:
    if bits not in (16, 64, 128):
        raise ValueError(f"unsupported width: {bits}")
    if signed:
        return -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    return 0, (1 << bits) - 1


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _fit(value: int, bits: int, signed: bool, op: str) -> int:
    lo, hi = _bounds(bits, signed)
    if value < lo or value > hi:
        kind = "i" if signed else "u"
        raise MarketError(ErrorCode.NUMERIC_OVERFLOW, f"{op} out of range for {kind}{bits}")
    return value


def checked_add(a: int, b: int, *, bits: int = 64, signed: bool = False) -> int:
    _require_int("a", a)
    _require_int("b", b)
    return _fit(a + b, bits, signed, "add")


def checked_sub(a: int, b: int, *, bits: int = 64, signed: bool = False) -> int:
    _require_int("a", a)
    _require_int("b", b)
    return _fit(a - b, bits, signed, "sub")


def checked_mul(a: int, b: int, *, bits: int = 64, signed: bool = False) -> int:
    _require_int("a", a)
    _require_int("b", b)
    return _fit(a * b, bits, signed, "mul")


def checked_div(a: int, b: int, *, bits: int = 64, signed: bool = False) -> int:
    _require_int("a", a)
    _require_int("b", b)
    if b == 0:
        raise ZeroDivisionError("checked_div by zero")
    if signed:
        q = abs(a) // abs(b)
        if (a < 0) != (b < 0):
            q = -q
    else:
        if a < 0 or b < 0:
            raise MarketError(ErrorCode.NUMERIC_OVERFLOW, "negative operand in unsigned div")
        q = a // b
    return _fit(q, bits, signed, "div")


def narrow(value: int, *, bits: int = 64, signed: bool = False) -> int:
    """Convert a wide intermediate back to a storage width."""
    _require_int("value", value)
    return _fit(value, bits, signed, "narrow")


def require_u64(name: str, value: int) -> int:
    """Validate that an input fits u64 (TypeError for non-ints)."""
    _require_int(name, value)
    if not (0 <= value <= U64_MAX):
        raise MarketError(ErrorCode.NUMERIC_OVERFLOW, f"{name} out of range for u64")
    return value


def mul_div_bps(amount: int, bps: int) -> int:
    """floor(amount * bps / 10_000) in 128 bits, narrowed to u64."""
    wide = checked_mul(amount, bps, bits=128)
    return narrow(checked_div(wide, BPS_DENOM, bits=128))
