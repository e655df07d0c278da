"""
Fee kernels (deterministic, integer-only).

Three fee streams come out of every fulfillment:
- the LP fee, paid to the pool owner, charged only while the pool can trade
  in both directions,
- the creator royalty, split across the asset's creators in declared order
  with the last creator taking the remainder so nothing is stranded by
  rounding,
- the maker/taker referral fee, signed (a negative maker fee is a rebate).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

from ..state.balances import Address
from ..state.metadata import AssetMetadata
from ..state.pools import Pool
from .checked import (
    BPS_DENOM,
    I16_MAX,
    I16_MIN,
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
    mul_div_bps,
    narrow,
    require_u64,
)
from .config import DEFAULT_CONFIG, MarketConfig
from .errors import ErrorCode, MarketError


def get_lp_fee_bp(pool: Pool, buyside_balance: int) -> int:
    """Effective LP fee rate: zero unless the pool holds assets and can afford spot."""
    if pool.sellside_asset_amount < 1:
        return 0
    if buyside_balance < pool.spot_price:
        return 0
    return pool.lp_fee_bp


def get_lp_fee(pool: Pool, buyside_balance: int, total_price: int) -> int:
    """floor(total_price * effective_lp_fee_bp / 10_000)."""
    return mul_div_bps(require_u64("total_price", total_price), get_lp_fee_bp(pool, buyside_balance))


def get_referral_fee(total_price: int, fee_bp: int) -> int:
    """
    Signed referral fee for one side of the trade.

    Computed in 128 bits, truncated toward zero and narrowed to i64; a
    negative `fee_bp` yields a negative amount (rebate).
    """
    require_u64("total_price", total_price)
    wide = checked_mul(total_price, fee_bp, bits=128, signed=True)
    return narrow(checked_div(wide, BPS_DENOM, bits=128, signed=True), signed=True)


def assert_valid_fees_bp(
    maker_fee_bp: int,
    taker_fee_bp: int,
    config: MarketConfig = DEFAULT_CONFIG,
) -> None:
    """
    Bound check for referral fees:
        taker in [0, MAX], maker in [-MAX, MAX], maker + taker in [0, MAX]

    Raises:
        MarketError(InvalidMakerOrTakerFeeBP)
    """
    bound = config.max_referral_fee_bp
    for v in (maker_fee_bp, taker_fee_bp):
        if not isinstance(v, int) or isinstance(v, bool) or not (I16_MIN <= v <= I16_MAX):
            raise MarketError(ErrorCode.INVALID_MAKER_OR_TAKER_FEE_BP, f"fee bp {v!r} is not an i16")
    if not (0 <= taker_fee_bp <= bound):
        raise MarketError(ErrorCode.INVALID_MAKER_OR_TAKER_FEE_BP, f"taker_fee_bp={taker_fee_bp}")
    if not (-bound <= maker_fee_bp <= bound):
        raise MarketError(ErrorCode.INVALID_MAKER_OR_TAKER_FEE_BP, f"maker_fee_bp={maker_fee_bp}")
    total = maker_fee_bp + taker_fee_bp
    if not (0 <= total <= bound):
        raise MarketError(ErrorCode.INVALID_MAKER_OR_TAKER_FEE_BP, f"maker+taker={total}")


def get_buyside_seller_receives(
    total_price: int,
    lp_fee_bp: int,
    royalty_bp: int,
    buyside_creator_royalty_bp: int,
) -> int:
    """
    Payment owed to a seller when the pool buys, before the taker fee.

    The curve total has to cover the seller plus LP fee plus royalty, all
    charged on the seller's amount, so the total is grossed down:

        seller_receives = total * 10^8 / (lp_fee_bp * 10^4 + royalty_bp * creator_bp + 10^8)
    """
    require_u64("total_price", total_price)
    royalty_part = checked_mul(royalty_bp, buyside_creator_royalty_bp, bits=128)
    all_fees = checked_add(
        checked_add(checked_mul(lp_fee_bp, BPS_DENOM, bits=128), royalty_part, bits=128),
        BPS_DENOM * BPS_DENOM,
        bits=128,
    )
    wide = checked_mul(total_price, BPS_DENOM * BPS_DENOM, bits=128)
    return narrow(checked_div(wide, all_fees, bits=128))


def compute_royalty(total_price: int, metadata_royalty_bp: int, creator_royalty_bp: int) -> int:
    """
    total * metadata_royalty_bp / 10_000 * creator_royalty_bp / 10_000

    Two sequential floor reductions, each in 128 bits.
    """
    require_u64("total_price", total_price)
    step = checked_div(checked_mul(total_price, metadata_royalty_bp, bits=128), BPS_DENOM, bits=128)
    step = checked_div(checked_mul(step, creator_royalty_bp, bits=128), BPS_DENOM, bits=128)
    return narrow(step)


@dataclass(frozen=True)
class CreatorAccount:
    """An externally supplied creator account and its current payment balance."""
    address: Address
    balance: int = 0


@dataclass(frozen=True)
class CreatorPayout:
    address: Address
    share: int
    amount: int
    transferred: bool

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"amount must be non-negative: {self.amount}")


@dataclass(frozen=True)
class RoyaltySplit:
    """
    Attributes:
        royalty: Computed royalty; equals the sum of every payout amount
        paid: Sum of payouts actually transferred (what leaves the payer)
        payouts: One entry per creator, in declared order
    """
    royalty: int
    paid: int
    payouts: Tuple[CreatorPayout, ...] = ()

    @property
    def skipped(self) -> Tuple[CreatorPayout, ...]:
        return tuple(p for p in self.payouts if not p.transferred and p.amount > 0)


NO_ROYALTY = RoyaltySplit(royalty=0, paid=0)


def pay_creator_fees(
    creator_royalty_bp: int,
    total_price: int,
    metadata: AssetMetadata,
    creator_accounts: Sequence[CreatorAccount],
    payer_balance: int,
    config: MarketConfig = DEFAULT_CONFIG,
) -> RoyaltySplit:
    """
    Compute the royalty owed on `total_price` and split it across creators.

    Every creator but the last gets floor(royalty * share / 100); the last
    gets the exact remainder. A slice is marked untransferred (and stays with
    the payer) when it is zero or would leave the creator's balance at or
    below `config.min_rent_balance`.

    Raises:
        MarketError(NotEnoughBalance): payer cannot cover the royalty
        MarketError(InvalidMetadataCreatorRoyalty): declared royalty above ceiling
        MarketError(InvalidCreatorAddress): supplied account does not match creator
    """
    royalty = compute_royalty(total_price, metadata.seller_fee_basis_points, creator_royalty_bp)
    if royalty == 0:
        return NO_ROYALTY

    creators = metadata.creators
    if not creators:
        return NO_ROYALTY

    if payer_balance < royalty:
        raise MarketError(ErrorCode.NOT_ENOUGH_BALANCE, f"payer holds {payer_balance} < royalty {royalty}")

    if metadata.seller_fee_basis_points > config.max_metadata_creator_royalty_bp:
        raise MarketError(
            ErrorCode.INVALID_METADATA_CREATOR_ROYALTY,
            f"seller_fee_basis_points={metadata.seller_fee_basis_points}",
        )

    payouts = []
    allotted = 0
    paid = 0
    last = len(creators) - 1
    for index, creator in enumerate(creators):
        if index == last:
            amount = checked_sub(royalty, allotted)
        else:
            amount = narrow(checked_div(checked_mul(royalty, creator.share, bits=128), 100, bits=128))
        if index >= len(creator_accounts) or creator_accounts[index].address != creator.address:
            raise MarketError(ErrorCode.INVALID_CREATOR_ADDRESS, f"creator index {index}")
        balance_after = checked_add(creator_accounts[index].balance, amount)
        transferred = amount > 0 and balance_after > config.min_rent_balance
        payouts.append(
            CreatorPayout(address=creator.address, share=creator.share, amount=amount, transferred=transferred)
        )
        allotted = checked_add(allotted, amount)
        if transferred:
            paid = checked_add(paid, amount)

    if allotted != royalty:
        raise AssertionError("royalty split did not allot the full royalty")
    return RoyaltySplit(royalty=royalty, paid=paid, payouts=tuple(payouts))
