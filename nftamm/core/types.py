"""Operation arguments, effects and results for the ledger.

All types are frozen dataclasses. Units:
- `*_amount` / `*_price` are u64 payment units or asset units,
- `*_bp` are basis points (1/10_000); referral fee bp are signed i16.

Fields marked "host-filled" are supplied by the integration shell (from the
metadata provider and the custody adapter) before the core runs; callers of
the shell leave them at their defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Optional, Tuple, Union

from ..state.balances import DEFAULT_ADDRESS, Address, AssetId
from ..state.metadata import AssetMetadata, EditionMarker
from ..state.pools import Allowlist, MarketState, PoolKey, SellStateKey
from .fees import CreatorAccount, RoyaltySplit


@unique
class Event(Enum):
    POOL_CREATED = "PoolCreated"
    POOL_UPDATED = "PoolUpdated"
    BUY_DEPOSITED = "BuyDeposited"
    BUY_WITHDRAWN = "BuyWithdrawn"
    SELL_DEPOSITED = "SellDeposited"
    SELL_WITHDRAWN = "SellWithdrawn"
    FULFILLED_BUY = "FulfilledBuy"
    FULFILLED_SELL = "FulfilledSell"
    POOL_CLOSED = "PoolClosed"


@unique
class RecordKind(Enum):
    POOL = "pool"
    SELL_STATE = "sell_state"


# -- Arguments ---------------------------------------------------------------

@dataclass(frozen=True)
class CreatePoolArgs:
    owner: Address
    uuid: str
    spot_price: int
    curve_type: int
    curve_delta: int
    lp_fee_bp: int = 0
    buyside_creator_royalty_bp: int = 0
    reinvest_fulfill_buy: bool = False
    reinvest_fulfill_sell: bool = False
    referral: Address = DEFAULT_ADDRESS
    allowlists: Tuple[Allowlist, ...] = ()


@dataclass(frozen=True)
class UpdatePoolArgs:
    pool_key: PoolKey
    spot_price: int
    curve_type: int
    curve_delta: int
    lp_fee_bp: int = 0
    buyside_creator_royalty_bp: int = 0
    reinvest_fulfill_buy: bool = False
    reinvest_fulfill_sell: bool = False
    referral: Address = DEFAULT_ADDRESS
    allowlists: Tuple[Allowlist, ...] = ()


@dataclass(frozen=True)
class DepositBuyArgs:
    pool_key: PoolKey
    payment_amount: int


@dataclass(frozen=True)
class WithdrawBuyArgs:
    pool_key: PoolKey
    payment_amount: int


@dataclass(frozen=True)
class DepositSellArgs:
    pool_key: PoolKey
    asset_mint: AssetId
    asset_amount: int
    allowlist_aux: Optional[str] = None
    # programmable assets move one unit at a time under a rule set
    programmable: bool = False
    metadata: Optional[AssetMetadata] = None  # host-filled
    master_edition: Optional[EditionMarker] = None


@dataclass(frozen=True)
class WithdrawSellArgs:
    pool_key: PoolKey
    asset_mint: AssetId
    asset_amount: int
    programmable: bool = False
    metadata: Optional[AssetMetadata] = None  # host-filled


@dataclass(frozen=True)
class FulfillBuyArgs:
    """The pool buys `asset_amount` units from `seller`."""
    pool_key: PoolKey
    seller: Address
    asset_mint: AssetId
    asset_amount: int
    min_payment_amount: int
    maker_fee_bp: int = 0
    taker_fee_bp: int = 0
    allowlist_aux: Optional[str] = None
    programmable: bool = False
    creator_accounts: Tuple[CreatorAccount, ...] = ()  # balances host-filled
    metadata: Optional[AssetMetadata] = None  # host-filled
    master_edition: Optional[EditionMarker] = None


@dataclass(frozen=True)
class FulfillSellArgs:
    """The pool sells `asset_amount` units to `buyer`."""
    pool_key: PoolKey
    buyer: Address
    asset_mint: AssetId
    asset_amount: int
    max_payment_amount: int
    buyside_creator_royalty_bp: int = 0
    maker_fee_bp: int = 0
    taker_fee_bp: int = 0
    allowlist_aux: Optional[str] = None
    programmable: bool = False
    creator_accounts: Tuple[CreatorAccount, ...] = ()  # balances host-filled
    payer_balance: int = 0  # host-filled
    metadata: Optional[AssetMetadata] = None  # host-filled
    master_edition: Optional[EditionMarker] = None


@dataclass(frozen=True)
class ClosePoolArgs:
    pool_key: PoolKey


OperationArgs = Union[
    CreatePoolArgs,
    UpdatePoolArgs,
    DepositBuyArgs,
    WithdrawBuyArgs,
    DepositSellArgs,
    WithdrawSellArgs,
    FulfillBuyArgs,
    FulfillSellArgs,
    ClosePoolArgs,
]


# -- Effects -----------------------------------------------------------------

@dataclass(frozen=True)
class Transfer:
    """Move `amount` of `asset` from `source` to `destination` (custody layer)."""
    asset: AssetId
    source: Address
    destination: Address
    amount: int

    def __post_init__(self) -> None:
        if not isinstance(self.amount, int) or isinstance(self.amount, bool):
            raise TypeError("amount must be an int")
        if self.amount <= 0:
            raise ValueError(f"transfer amount must be positive: {self.amount}")


@dataclass(frozen=True)
class Reclaim:
    """A record was wiped; its backing storage goes to `recipient`."""
    kind: RecordKind
    key: Union[PoolKey, SellStateKey]
    recipient: Address


@dataclass(frozen=True)
class FulfillQuote:
    """
    Price and fee breakdown of one fulfillment.

    `payment_amount` is what the seller is owed before the taker fee
    (fulfill_buy) or what the buyer pays in total (fulfill_sell).
    """
    total_price: int
    next_price: int
    lp_fee: int
    royalty: RoyaltySplit
    maker_fee: int
    taker_fee: int
    payment_amount: int

    @property
    def referral_fee(self) -> int:
        return self.maker_fee + self.taker_fee


@dataclass(frozen=True)
class Effects:
    event: Event
    pool_key: PoolKey
    transfers: Tuple[Transfer, ...] = ()
    reclaims: Tuple[Reclaim, ...] = ()
    quote: Optional[FulfillQuote] = None


@dataclass(frozen=True)
class StepResult:
    ok: bool
    state: Optional[MarketState] = None
    effects: Optional[Effects] = None
    error: Optional[str] = None
    code: Optional[str] = None
