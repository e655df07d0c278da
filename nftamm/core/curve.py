"""
Bonding curve pricing.

Given a pool's curve and spot price, compute the total price of `n` units
and the spot price after the trade.

`fulfill_buy=True` means the pool is buying `n` units from a seller: prices
step *down* from spot, so the pool pays less for each successive unit.
`fulfill_buy=False` means the pool is selling `n` units: the first unit is
already one step *above* spot, which keeps a buy-then-sell round trip from
draining the pool.

Linear (delta = price step):
    buy:  total = n * (2p - (n-1)*delta) / 2,  next = p - n*delta
    sell: total = n * (2p + (n+1)*delta) / 2,  next = p + n*delta

Exponential (delta = basis points per unit):
    buy:  per unit, add p then p = p * 10000 / (10000 + delta)
    sell: per unit, p = p * (10000 + delta) / 10000 then add p

The exponential branches iterate with floor rounding at every step. A
closed-form power would round differently and drift from the per-step
result over repeated trades.
"""

from __future__ import annotations

from typing import Tuple

from ..state.pools import CurveKind, Pool
from .checked import (
    BPS_DENOM,
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
    narrow,
    require_u64,
)
from .config import DEFAULT_CONFIG, MarketConfig
from .errors import ErrorCode, MarketError


def check_curve(curve_type: int, curve_delta: int) -> None:
    """
    Validate a curve configuration (pool create/update time).

    Raises:
        MarketError(InvalidCurveType): kind is not linear/exponential
        MarketError(InvalidCurveDelta): exponential delta above 10000 bp
    """
    if curve_type not in (CurveKind.LINEAR, CurveKind.EXPONENTIAL):
        raise MarketError(ErrorCode.INVALID_CURVE_TYPE, f"curve_type={curve_type}")
    require_u64("curve_delta", curve_delta)
    if curve_type == CurveKind.EXPONENTIAL and curve_delta > BPS_DENOM:
        raise MarketError(ErrorCode.INVALID_CURVE_DELTA, f"curve_delta={curve_delta}")


def _linear_buy(p: int, delta: int, n: int) -> Tuple[int, int]:
    steps = checked_mul(checked_sub(n, 1, bits=128), delta, bits=128)
    two_p = checked_mul(p, 2, bits=128)
    total = checked_div(
        checked_mul(n, checked_sub(two_p, steps, bits=128), bits=128), 2, bits=128
    )
    next_price = checked_sub(p, checked_mul(n, delta, bits=128), bits=128)
    return narrow(total), narrow(next_price)


def _linear_sell(p: int, delta: int, n: int) -> Tuple[int, int]:
    steps = checked_mul(checked_add(n, 1, bits=128), delta, bits=128)
    two_p = checked_mul(p, 2, bits=128)
    total = checked_div(
        checked_mul(n, checked_add(two_p, steps, bits=128), bits=128), 2, bits=128
    )
    next_price = checked_add(p, checked_mul(n, delta, bits=128), bits=128)
    return narrow(total), narrow(next_price)


def _linear(p: int, delta: int, n: int, fulfill_buy: bool) -> Tuple[int, int]:
    return _linear_buy(p, delta, n) if fulfill_buy else _linear_sell(p, delta, n)


# The exponential loops stop early once the outcome is fixed: a zero price
# stays zero, a running total past the ceiling can only be rejected, and a
# price the step no longer moves adds the same amount for every remaining
# unit. Early exit never changes a result.

def _exp_buy(p: int, delta: int, n: int, ceiling: int) -> Tuple[int, int]:
    denom = checked_add(delta, BPS_DENOM, bits=128)
    total = 0
    curr = p
    done = 0
    while done < n:
        if curr == 0 or total > ceiling:
            break
        total = checked_add(total, curr, bits=128)
        done += 1
        nxt = checked_div(checked_mul(curr, BPS_DENOM, bits=128), denom, bits=128)
        if nxt == curr:
            total = checked_add(total, checked_mul(curr, n - done, bits=128), bits=128)
            break
        curr = nxt
    return total, narrow(curr)


def _exp_sell(p: int, delta: int, n: int, ceiling: int) -> Tuple[int, int]:
    factor = checked_add(delta, BPS_DENOM, bits=128)
    total = 0
    curr = p
    done = 0
    while done < n:
        if curr == 0 or total > ceiling:
            break
        nxt = checked_div(checked_mul(curr, factor, bits=128), BPS_DENOM, bits=128)
        if nxt == curr:
            total = checked_add(total, checked_mul(curr, n - done, bits=128), bits=128)
            break
        curr = narrow(nxt)
        total = checked_add(total, curr, bits=128)
        done += 1
    return total, narrow(curr)


def _exponential(p: int, delta: int, n: int, fulfill_buy: bool, ceiling: int) -> Tuple[int, int]:
    return _exp_buy(p, delta, n, ceiling) if fulfill_buy else _exp_sell(p, delta, n, ceiling)


def get_total_price_and_next_price(
    pool: Pool,
    n: int,
    fulfill_buy: bool,
    config: MarketConfig = DEFAULT_CONFIG,
) -> Tuple[int, int]:
    """
    Compute (total_price, next_spot_price) for trading `n` units.

    Raises:
        MarketError(NumericOverflow): any step over/underflows, the total is
            zero, or the total exceeds `config.max_total_price`
        MarketError(InvalidCurveType): unknown curve kind
    """
    p = require_u64("spot_price", pool.spot_price)
    delta = require_u64("curve_delta", pool.curve_delta)
    require_u64("n", n)

    if pool.curve_type == CurveKind.LINEAR:
        total_price, next_price = _linear(p, delta, n, fulfill_buy)
    elif pool.curve_type == CurveKind.EXPONENTIAL:
        total_price, next_price = _exponential(p, delta, n, fulfill_buy, config.max_total_price)
    else:
        raise MarketError(ErrorCode.INVALID_CURVE_TYPE, f"curve_type={pool.curve_type}")

    if total_price == 0:
        raise MarketError(ErrorCode.NUMERIC_OVERFLOW, "total price is zero")
    if total_price > config.max_total_price:
        raise MarketError(ErrorCode.NUMERIC_OVERFLOW, "total price exceeds protocol ceiling")
    return total_price, next_price
