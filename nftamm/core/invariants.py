"""Invariant checkers for the pool ledger.

Each function returns True when the invariant holds over a whole
MarketState, and `check_all()` returns the list of violated invariant IDs
(empty = all pass).
"""

from __future__ import annotations

from collections import defaultdict
from typing import Callable

from ..state.pools import MarketState
from .checked import U64_MAX


def inv_sellside_matches_sell_states(s: MarketState) -> bool:
    held: dict[str, int] = defaultdict(int)
    for (pool_key, _), sell_state in s.sell_states.items():
        held[pool_key] += sell_state.asset_amount
    return all(pool.sellside_asset_amount == held.get(key, 0) for key, pool in s.pools.items())


def inv_no_zero_sell_state(s: MarketState) -> bool:
    return all(ss.asset_amount > 0 for ss in s.sell_states.values())


def inv_sell_state_has_pool(s: MarketState) -> bool:
    return all(pool_key in s.pools for pool_key, _ in s.sell_states)


def inv_sell_state_key_consistent(s: MarketState) -> bool:
    return all(key == ss.key for key, ss in s.sell_states.items())


def inv_pool_key_consistent(s: MarketState) -> bool:
    return all(key == pool.key for key, pool in s.pools.items())


def inv_amounts_within_u64(s: MarketState) -> bool:
    for pool in s.pools.values():
        for v in (
            pool.spot_price,
            pool.curve_delta,
            pool.lp_fee_earned,
            pool.sellside_asset_amount,
            pool.buyside_payment_amount,
        ):
            if v > U64_MAX:
                return False
    return all(ss.asset_amount <= U64_MAX for ss in s.sell_states.values())


# ---------------------------------------------------------------------------
# Registry + check_all
# ---------------------------------------------------------------------------

INVARIANT_REGISTRY: dict[str, Callable[[MarketState], bool]] = {
    "inv_sellside_matches_sell_states": inv_sellside_matches_sell_states,
    "inv_no_zero_sell_state": inv_no_zero_sell_state,
    "inv_sell_state_has_pool": inv_sell_state_has_pool,
    "inv_sell_state_key_consistent": inv_sell_state_key_consistent,
    "inv_pool_key_consistent": inv_pool_key_consistent,
    "inv_amounts_within_u64": inv_amounts_within_u64,
}


def check_all(state: MarketState) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(state)
    ]
