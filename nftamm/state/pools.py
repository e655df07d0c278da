"""
Pool and per-asset inventory records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .balances import DEFAULT_ADDRESS, Address, Amount, AssetId
from .canonical import derive_address


class CurveKind(IntEnum):
    """Bonding curve families. Stored on the pool as a plain int."""
    LINEAR = 0
    EXPONENTIAL = 1


class AllowlistKind(IntEnum):
    EMPTY = 0
    FIRST_VERIFIED_CREATOR = 1
    MINT = 2
    VERIFIED_COLLECTION = 3
    METADATA_URI_PREFIX = 4


@dataclass(frozen=True)
class Allowlist:
    """
    One eligibility rule. `kind` is kept as an int so malformed entries can
    be represented (and rejected) rather than failing at construction.
    """
    kind: int
    value: Address = DEFAULT_ADDRESS

    def valid(self) -> bool:
        if not isinstance(self.kind, int) or isinstance(self.kind, bool):
            return False
        if self.kind < AllowlistKind.EMPTY or self.kind > AllowlistKind.METADATA_URI_PREFIX:
            return False
        if self.kind in (AllowlistKind.EMPTY, AllowlistKind.METADATA_URI_PREFIX):
            return True
        return self.value != DEFAULT_ADDRESS


PoolKey = str
SellStateKey = Tuple[PoolKey, AssetId]


def compute_pool_key(owner: Address, uuid: str) -> PoolKey:
    """Deterministic pool key from (owner, uuid)."""
    return derive_address("pool", owner, uuid)


def buyside_escrow_address(pool_key: PoolKey) -> Address:
    """Vault holding the pool's payment-side balance."""
    return derive_address("buyside_escrow", pool_key)


def sellside_escrow_address(pool_key: PoolKey) -> Address:
    """Vault holding the pool's asset units."""
    return derive_address("sellside_escrow", pool_key)


@dataclass(frozen=True)
class Pool:
    """
    One market record.

    Attributes:
        owner: Pool owner; receives LP fees, non-reinvested proceeds and reclaimed storage
        uuid: Owner-chosen identifier; (owner, uuid) derives the pool key
        spot_price: Current quoted unit price (u64)
        curve_type: CurveKind value (int, validated by `check_curve`)
        curve_delta: Linear step, or exponential ratio in basis points
        reinvest_fulfill_buy: Keep purchased assets in the sell-side escrow
        reinvest_fulfill_sell: Keep sale proceeds in the buy-side escrow
        lp_fee_bp: LP fee rate, charged only when the pool can trade both ways
        lp_fee_earned: Running total of LP fees paid out to the owner
        referral: Address receiving maker/taker referral fees
        buyside_creator_royalty_bp: Share of the creator royalty the pool pays when buying
        sellside_asset_amount: Asset units held in escrow
        buyside_payment_amount: Payment units held in escrow
        allowlists: Union-matched eligibility rules
    """
    owner: Address
    uuid: str
    spot_price: Amount
    curve_type: int
    curve_delta: int
    lp_fee_bp: int = 0
    buyside_creator_royalty_bp: int = 0
    reinvest_fulfill_buy: bool = False
    reinvest_fulfill_sell: bool = False
    referral: Address = DEFAULT_ADDRESS
    lp_fee_earned: Amount = 0
    sellside_asset_amount: Amount = 0
    buyside_payment_amount: Amount = 0
    allowlists: Tuple[Allowlist, ...] = ()

    def __post_init__(self):
        for name in (
            "spot_price",
            "curve_type",
            "curve_delta",
            "lp_fee_bp",
            "buyside_creator_royalty_bp",
            "lp_fee_earned",
            "sellside_asset_amount",
            "buyside_payment_amount",
        ):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")
        if not isinstance(self.allowlists, tuple):
            object.__setattr__(self, "allowlists", tuple(self.allowlists))

    @property
    def key(self) -> PoolKey:
        return compute_pool_key(self.owner, self.uuid)

    @property
    def buyside_escrow(self) -> Address:
        return buyside_escrow_address(self.key)

    @property
    def sellside_escrow(self) -> Address:
        return sellside_escrow_address(self.key)

    def is_empty(self) -> bool:
        return self.sellside_asset_amount == 0 and self.buyside_payment_amount == 0


@dataclass(frozen=True)
class SellState:
    """Units of one specific asset the pool escrows."""
    pool_key: PoolKey
    asset_mint: AssetId
    asset_amount: Amount

    def __post_init__(self):
        if not isinstance(self.asset_amount, int) or isinstance(self.asset_amount, bool):
            raise TypeError("asset_amount must be an int")
        if self.asset_amount < 0:
            raise ValueError(f"asset_amount must be non-negative: {self.asset_amount}")

    @property
    def key(self) -> SellStateKey:
        return (self.pool_key, self.asset_mint)


def _frozen(mapping: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class MarketState:
    """
    Every live pool and sell state, keyed by record key.

    Instances are never mutated; ledger operations return a new MarketState.
    """
    pools: Mapping[PoolKey, Pool] = field(default_factory=dict)
    sell_states: Mapping[SellStateKey, SellState] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "pools", _frozen(self.pools))
        object.__setattr__(self, "sell_states", _frozen(self.sell_states))

    def get_pool(self, pool_key: PoolKey) -> Optional[Pool]:
        return self.pools.get(pool_key)

    def get_sell_state(self, pool_key: PoolKey, asset_mint: AssetId) -> Optional[SellState]:
        return self.sell_states.get((pool_key, asset_mint))

    def sell_states_for(self, pool_key: PoolKey) -> Tuple[SellState, ...]:
        return tuple(
            s for k, s in sorted(self.sell_states.items()) if k[0] == pool_key
        )

    def with_pool(self, pool: Pool) -> "MarketState":
        pools = dict(self.pools)
        pools[pool.key] = pool
        return MarketState(pools=pools, sell_states=self.sell_states)

    def without_pool(self, pool_key: PoolKey) -> "MarketState":
        pools = dict(self.pools)
        pools.pop(pool_key, None)
        return MarketState(pools=pools, sell_states=self.sell_states)

    def with_sell_state(self, sell_state: SellState) -> "MarketState":
        sell_states = dict(self.sell_states)
        sell_states[sell_state.key] = sell_state
        return MarketState(pools=self.pools, sell_states=sell_states)

    def without_sell_state(self, key: SellStateKey) -> "MarketState":
        sell_states = dict(self.sell_states)
        sell_states.pop(key, None)
        return MarketState(pools=self.pools, sell_states=sell_states)

    def __repr__(self) -> str:
        return f"MarketState({len(self.pools)} pools, {len(self.sell_states)} sell states)"
