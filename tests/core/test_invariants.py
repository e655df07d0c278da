from __future__ import annotations

from nftamm.core.invariants import INVARIANT_REGISTRY, check_all
from nftamm.state.pools import CurveKind, MarketState, Pool, SellState

OWNER = "0x" + "aa" * 32
MINT = "0x" + "11" * 32


def _pool(sellside: int = 0, buyside: int = 0) -> Pool:
    return Pool(
        owner=OWNER,
        uuid="inv",
        spot_price=1000,
        curve_type=CurveKind.LINEAR,
        curve_delta=1,
        sellside_asset_amount=sellside,
        buyside_payment_amount=buyside,
    )


def test_empty_state_passes() -> None:
    assert check_all(MarketState()) == []


def test_consistent_state_passes() -> None:
    pool = _pool(sellside=3)
    state = MarketState(
        pools={pool.key: pool},
        sell_states={(pool.key, MINT): SellState(pool.key, MINT, 3)},
    )
    assert check_all(state) == []


def test_sellside_mismatch() -> None:
    pool = _pool(sellside=2)
    state = MarketState(
        pools={pool.key: pool},
        sell_states={(pool.key, MINT): SellState(pool.key, MINT, 3)},
    )
    assert check_all(state) == ["inv_sellside_matches_sell_states"]


def test_zero_sell_state() -> None:
    pool = _pool()
    state = MarketState(
        pools={pool.key: pool},
        sell_states={(pool.key, MINT): SellState(pool.key, MINT, 0)},
    )
    assert check_all(state) == ["inv_no_zero_sell_state"]


def test_orphan_sell_state() -> None:
    state = MarketState(sell_states={("0xgone", MINT): SellState("0xgone", MINT, 1)})
    assert "inv_sell_state_has_pool" in check_all(state)


def test_misfiled_records() -> None:
    pool = _pool()
    state = MarketState(pools={"0xwrong": pool})
    assert check_all(state) == ["inv_pool_key_consistent"]


def test_u64_bound() -> None:
    pool = _pool(buyside=1 << 64)
    state = MarketState(pools={pool.key: pool})
    assert check_all(state) == ["inv_amounts_within_u64"]


def test_registry_ids_match_function_names() -> None:
    for inv_id, fn in INVARIANT_REGISTRY.items():
        assert fn.__name__ == inv_id
