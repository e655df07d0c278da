"""
Pool and inventory ledger.

Pure transitions over MarketState. Each operation takes the current state
and its arguments and returns `(next_state, effects)`, or raises
MarketError. Nothing is mutated in place, so a rejected operation leaves the
caller's state exactly as it was.

Money and assets never move here. Every movement is emitted as a Transfer
for the custody layer; every wiped record is emitted as a Reclaim for the
storage layer.

Close check: after any operation that can zero a balance, a SellState at 0
is wiped first, then a Pool with both side balances at 0 is wiped. Both
reclaim to the pool owner.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple

from ..state.balances import Address
from ..state.metadata import AssetMetadata
from ..state.pools import MarketState, Pool, PoolKey, SellState, compute_pool_key
from .allowlist import assert_is_programmable, check_allowlists, check_allowlists_for_mint
from .checked import BPS_DENOM, U16_MAX, checked_add, checked_sub, mul_div_bps, require_u64
from .config import DEFAULT_CONFIG, MarketConfig
from .curve import check_curve, get_total_price_and_next_price
from .errors import ErrorCode, MarketError, MarketInvariantError
from .fees import (
    assert_valid_fees_bp,
    get_buyside_seller_receives,
    get_lp_fee,
    get_lp_fee_bp,
    get_referral_fee,
    pay_creator_fees,
)
from .invariants import check_all
from .types import (
    ClosePoolArgs,
    CreatePoolArgs,
    DepositBuyArgs,
    DepositSellArgs,
    Effects,
    Event,
    FulfillBuyArgs,
    FulfillQuote,
    FulfillSellArgs,
    OperationArgs,
    Reclaim,
    RecordKind,
    StepResult,
    Transfer,
    UpdatePoolArgs,
    WithdrawBuyArgs,
    WithdrawSellArgs,
)

Outcome = Tuple[MarketState, Effects]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_pool(state: MarketState, pool_key: PoolKey) -> Pool:
    pool = state.get_pool(pool_key)
    if pool is None:
        raise MarketError(ErrorCode.UNKNOWN_POOL, f"pool {pool_key}")
    return pool


def _require_metadata(metadata: Optional[AssetMetadata], mint: str) -> AssetMetadata:
    if metadata is None:
        raise ValueError(f"metadata for {mint} was not supplied")
    return metadata


def _require_positive(name: str, value: int) -> int:
    require_u64(name, value)
    if value == 0:
        raise ValueError(f"{name} must be positive")
    return value


def _check_programmable(metadata: AssetMetadata, n: int) -> None:
    assert_is_programmable(metadata)
    if n != 1:
        raise MarketError(ErrorCode.INVALID_MIP1_ASSET_PARAMS, f"asset_amount={n}")


def _transfers(*candidates: Tuple[str, Address, Address, int]) -> Tuple[Transfer, ...]:
    """Build Transfer effects, dropping zero-amount legs."""
    return tuple(
        Transfer(asset=asset, source=src, destination=dst, amount=amount)
        for asset, src, dst, amount in candidates
        if amount > 0
    )


def _validate_pool_config(
    curve_type: int,
    curve_delta: int,
    spot_price: int,
    lp_fee_bp: int,
    buyside_creator_royalty_bp: int,
    allowlists,
    config: MarketConfig,
) -> None:
    check_curve(curve_type, curve_delta)
    require_u64("spot_price", spot_price)
    if not isinstance(lp_fee_bp, int) or not (0 <= lp_fee_bp <= min(config.max_lp_fee_bp, U16_MAX)):
        raise MarketError(ErrorCode.INVALID_LP_FEE, f"lp_fee_bp={lp_fee_bp}")
    if not isinstance(buyside_creator_royalty_bp, int) or not (0 <= buyside_creator_royalty_bp <= BPS_DENOM):
        raise MarketError(ErrorCode.INVALID_BP, f"buyside_creator_royalty_bp={buyside_creator_royalty_bp}")
    check_allowlists(allowlists)


def _replace_pool(pool: Pool, **changes) -> Pool:
    fields = dict(
        owner=pool.owner,
        uuid=pool.uuid,
        spot_price=pool.spot_price,
        curve_type=pool.curve_type,
        curve_delta=pool.curve_delta,
        lp_fee_bp=pool.lp_fee_bp,
        buyside_creator_royalty_bp=pool.buyside_creator_royalty_bp,
        reinvest_fulfill_buy=pool.reinvest_fulfill_buy,
        reinvest_fulfill_sell=pool.reinvest_fulfill_sell,
        referral=pool.referral,
        lp_fee_earned=pool.lp_fee_earned,
        sellside_asset_amount=pool.sellside_asset_amount,
        buyside_payment_amount=pool.buyside_payment_amount,
        allowlists=pool.allowlists,
    )
    fields.update(changes)
    return Pool(**fields)


def _add_to_sell_state(state: MarketState, pool_key: PoolKey, mint: str, n: int) -> MarketState:
    current = state.get_sell_state(pool_key, mint)
    held = current.asset_amount if current is not None else 0
    return state.with_sell_state(SellState(pool_key=pool_key, asset_mint=mint, asset_amount=checked_add(held, n)))


def _take_from_sell_state(state: MarketState, pool_key: PoolKey, mint: str, n: int) -> Tuple[MarketState, SellState]:
    current = state.get_sell_state(pool_key, mint)
    held = current.asset_amount if current is not None else 0
    updated = SellState(pool_key=pool_key, asset_mint=mint, asset_amount=checked_sub(held, n))
    return state.with_sell_state(updated), updated


# ---------------------------------------------------------------------------
# Close checks
# ---------------------------------------------------------------------------

def try_close_sell_state(state: MarketState, sell_state: SellState, owner: Address) -> Tuple[MarketState, Tuple[Reclaim, ...]]:
    """Wipe `sell_state` if it holds nothing."""
    if sell_state.asset_amount != 0:
        return state, ()
    reclaim = Reclaim(kind=RecordKind.SELL_STATE, key=sell_state.key, recipient=owner)
    return state.without_sell_state(sell_state.key), (reclaim,)


def try_close_pool(state: MarketState, pool: Pool) -> Tuple[MarketState, Tuple[Reclaim, ...]]:
    """Wipe `pool` only if both of its side balances are zero."""
    if not pool.is_empty():
        return state, ()
    reclaim = Reclaim(kind=RecordKind.POOL, key=pool.key, recipient=pool.owner)
    return state.without_pool(pool.key), (reclaim,)


# ---------------------------------------------------------------------------
# Pool configuration
# ---------------------------------------------------------------------------

def create_pool(state: MarketState, args: CreatePoolArgs, config: MarketConfig = DEFAULT_CONFIG) -> Outcome:
    key = compute_pool_key(args.owner, args.uuid)
    if state.get_pool(key) is not None:
        raise MarketError(ErrorCode.POOL_ALREADY_EXISTS, f"pool {key}")
    _validate_pool_config(
        args.curve_type,
        args.curve_delta,
        args.spot_price,
        args.lp_fee_bp,
        args.buyside_creator_royalty_bp,
        args.allowlists,
        config,
    )
    pool = Pool(
        owner=args.owner,
        uuid=args.uuid,
        spot_price=args.spot_price,
        curve_type=args.curve_type,
        curve_delta=args.curve_delta,
        lp_fee_bp=args.lp_fee_bp,
        buyside_creator_royalty_bp=args.buyside_creator_royalty_bp,
        reinvest_fulfill_buy=args.reinvest_fulfill_buy,
        reinvest_fulfill_sell=args.reinvest_fulfill_sell,
        referral=args.referral,
        allowlists=tuple(args.allowlists),
    )
    return state.with_pool(pool), Effects(event=Event.POOL_CREATED, pool_key=key)


def update_pool(state: MarketState, args: UpdatePoolArgs, config: MarketConfig = DEFAULT_CONFIG) -> Outcome:
    pool = _get_pool(state, args.pool_key)
    _validate_pool_config(
        args.curve_type,
        args.curve_delta,
        args.spot_price,
        args.lp_fee_bp,
        args.buyside_creator_royalty_bp,
        args.allowlists,
        config,
    )
    updated = _replace_pool(
        pool,
        spot_price=args.spot_price,
        curve_type=args.curve_type,
        curve_delta=args.curve_delta,
        lp_fee_bp=args.lp_fee_bp,
        buyside_creator_royalty_bp=args.buyside_creator_royalty_bp,
        reinvest_fulfill_buy=args.reinvest_fulfill_buy,
        reinvest_fulfill_sell=args.reinvest_fulfill_sell,
        referral=args.referral,
        allowlists=tuple(args.allowlists),
    )
    return state.with_pool(updated), Effects(event=Event.POOL_UPDATED, pool_key=pool.key)


# ---------------------------------------------------------------------------
# Escrow deposits / withdrawals
# ---------------------------------------------------------------------------

def deposit_buy(state: MarketState, args: DepositBuyArgs, config: MarketConfig = DEFAULT_CONFIG) -> Outcome:
    pool = _get_pool(state, args.pool_key)
    amount = _require_positive("payment_amount", args.payment_amount)
    updated = _replace_pool(pool, buyside_payment_amount=checked_add(pool.buyside_payment_amount, amount))
    transfers = _transfers((config.payment_asset, pool.owner, pool.buyside_escrow, amount))
    return state.with_pool(updated), Effects(event=Event.BUY_DEPOSITED, pool_key=pool.key, transfers=transfers)


def withdraw_buy(state: MarketState, args: WithdrawBuyArgs, config: MarketConfig = DEFAULT_CONFIG) -> Outcome:
    pool = _get_pool(state, args.pool_key)
    amount = _require_positive("payment_amount", args.payment_amount)
    updated = _replace_pool(pool, buyside_payment_amount=checked_sub(pool.buyside_payment_amount, amount))
    transfers = _transfers((config.payment_asset, pool.buyside_escrow, pool.owner, amount))
    next_state, reclaims = try_close_pool(state.with_pool(updated), updated)
    return next_state, Effects(
        event=Event.BUY_WITHDRAWN, pool_key=pool.key, transfers=transfers, reclaims=reclaims
    )


def deposit_sell(state: MarketState, args: DepositSellArgs, config: MarketConfig = DEFAULT_CONFIG) -> Outcome:
    pool = _get_pool(state, args.pool_key)
    n = _require_positive("asset_amount", args.asset_amount)
    metadata = _require_metadata(args.metadata, args.asset_mint)
    if args.programmable:
        _check_programmable(metadata, n)
    check_allowlists_for_mint(pool.allowlists, args.asset_mint, metadata, args.master_edition, args.allowlist_aux)

    updated = _replace_pool(pool, sellside_asset_amount=checked_add(pool.sellside_asset_amount, n))
    next_state = _add_to_sell_state(state.with_pool(updated), pool.key, args.asset_mint, n)
    transfers = _transfers((args.asset_mint, pool.owner, pool.sellside_escrow, n))
    return next_state, Effects(event=Event.SELL_DEPOSITED, pool_key=pool.key, transfers=transfers)


def withdraw_sell(state: MarketState, args: WithdrawSellArgs, config: MarketConfig = DEFAULT_CONFIG) -> Outcome:
    pool = _get_pool(state, args.pool_key)
    n = _require_positive("asset_amount", args.asset_amount)
    if args.programmable:
        _check_programmable(_require_metadata(args.metadata, args.asset_mint), n)

    next_state, sell_state = _take_from_sell_state(state, pool.key, args.asset_mint, n)
    updated = _replace_pool(pool, sellside_asset_amount=checked_sub(pool.sellside_asset_amount, n))
    next_state = next_state.with_pool(updated)

    next_state, closed_sell = try_close_sell_state(next_state, sell_state, pool.owner)
    next_state, closed_pool = try_close_pool(next_state, updated)
    transfers = _transfers((args.asset_mint, pool.sellside_escrow, pool.owner, n))
    return next_state, Effects(
        event=Event.SELL_WITHDRAWN,
        pool_key=pool.key,
        transfers=transfers,
        reclaims=closed_sell + closed_pool,
    )


# ---------------------------------------------------------------------------
# Fulfillment
# ---------------------------------------------------------------------------

def fulfill_buy(state: MarketState, args: FulfillBuyArgs, config: MarketConfig = DEFAULT_CONFIG) -> Outcome:
    """
    The pool buys `asset_amount` units from `seller`, paying out of the
    buy-side escrow.

    The curve total is grossed down to `seller_receives` so that the seller
    payment, the LP fee and the royalty (all charged on `seller_receives`)
    fit inside it. The LP rate is read from the pool before the trade.
    """
    pool = _get_pool(state, args.pool_key)
    assert_valid_fees_bp(args.maker_fee_bp, args.taker_fee_bp, config)
    metadata = _require_metadata(args.metadata, args.asset_mint)
    if args.programmable:
        _check_programmable(metadata, args.asset_amount)
    check_allowlists_for_mint(pool.allowlists, args.asset_mint, metadata, args.master_edition, args.allowlist_aux)

    n = args.asset_amount
    total_price, next_price = get_total_price_and_next_price(pool, n, True, config)
    lp_fee_bp = get_lp_fee_bp(pool, pool.buyside_payment_amount)
    seller_receives = get_buyside_seller_receives(
        total_price, lp_fee_bp, metadata.seller_fee_basis_points, pool.buyside_creator_royalty_bp
    )
    if seller_receives < args.min_payment_amount:
        raise MarketError(
            ErrorCode.INVALID_REQUESTED_PRICE,
            f"seller_receives={seller_receives} < min_payment_amount={args.min_payment_amount}",
        )

    lp_fee = mul_div_bps(seller_receives, lp_fee_bp)
    royalty = pay_creator_fees(
        pool.buyside_creator_royalty_bp,
        seller_receives,
        metadata,
        args.creator_accounts,
        pool.buyside_payment_amount,
        config,
    )
    maker_fee = get_referral_fee(seller_receives, args.maker_fee_bp)
    taker_fee = get_referral_fee(seller_receives, args.taker_fee_bp)

    escrow_debit = seller_receives + lp_fee + royalty.paid + maker_fee
    if escrow_debit > pool.buyside_payment_amount:
        raise MarketError(
            ErrorCode.NOT_ENOUGH_BALANCE,
            f"escrow holds {pool.buyside_payment_amount} < {escrow_debit}",
        )

    pay = config.payment_asset
    escrow = pool.buyside_escrow
    asset_destination = pool.sellside_escrow if pool.reinvest_fulfill_buy else pool.owner
    transfers = _transfers(
        (pay, escrow, args.seller, seller_receives - taker_fee),
        (pay, escrow, pool.owner, lp_fee),
        *((pay, escrow, p.address, p.amount) for p in royalty.payouts if p.transferred),
        (pay, escrow, pool.referral, maker_fee + taker_fee),
        (args.asset_mint, args.seller, asset_destination, n),
    )

    updated = _replace_pool(
        pool,
        spot_price=next_price,
        lp_fee_earned=checked_add(pool.lp_fee_earned, lp_fee),
        buyside_payment_amount=checked_sub(pool.buyside_payment_amount, escrow_debit),
    )
    next_state = state
    if pool.reinvest_fulfill_buy:
        updated = _replace_pool(updated, sellside_asset_amount=checked_add(pool.sellside_asset_amount, n))
        next_state = _add_to_sell_state(next_state, pool.key, args.asset_mint, n)
    next_state, reclaims = try_close_pool(next_state.with_pool(updated), updated)

    quote = FulfillQuote(
        total_price=total_price,
        next_price=next_price,
        lp_fee=lp_fee,
        royalty=royalty,
        maker_fee=maker_fee,
        taker_fee=taker_fee,
        payment_amount=seller_receives,
    )
    return next_state, Effects(
        event=Event.FULFILLED_BUY,
        pool_key=pool.key,
        transfers=transfers,
        reclaims=reclaims,
        quote=quote,
    )


def fulfill_sell(state: MarketState, args: FulfillSellArgs, config: MarketConfig = DEFAULT_CONFIG) -> Outcome:
    """
    The pool sells `asset_amount` units from its sell-side escrow to `buyer`.

    The buyer pays the curve total plus LP fee, royalty and taker fee. The
    pool keeps the total minus the maker fee, in escrow when reinvesting.
    """
    pool = _get_pool(state, args.pool_key)
    assert_valid_fees_bp(args.maker_fee_bp, args.taker_fee_bp, config)
    if not (0 <= args.buyside_creator_royalty_bp <= BPS_DENOM):
        raise MarketError(ErrorCode.INVALID_BP, f"buyside_creator_royalty_bp={args.buyside_creator_royalty_bp}")
    metadata = _require_metadata(args.metadata, args.asset_mint)
    if args.programmable:
        _check_programmable(metadata, args.asset_amount)
    check_allowlists_for_mint(pool.allowlists, args.asset_mint, metadata, args.master_edition, args.allowlist_aux)

    n = args.asset_amount
    held = state.get_sell_state(pool.key, args.asset_mint)
    if held is None or held.asset_amount < n:
        raise MarketError(
            ErrorCode.NUMERIC_OVERFLOW,
            f"pool holds {held.asset_amount if held is not None else 0} of {args.asset_mint}, asked for {n}",
        )
    total_price, next_price = get_total_price_and_next_price(pool, n, False, config)
    lp_fee = get_lp_fee(pool, pool.buyside_payment_amount, total_price)
    royalty = pay_creator_fees(
        args.buyside_creator_royalty_bp,
        total_price,
        metadata,
        args.creator_accounts,
        args.payer_balance,
        config,
    )
    maker_fee = get_referral_fee(total_price, args.maker_fee_bp)
    taker_fee = get_referral_fee(total_price, args.taker_fee_bp)

    buyer_pays = total_price + lp_fee + royalty.paid + taker_fee
    if buyer_pays > args.max_payment_amount:
        raise MarketError(
            ErrorCode.INVALID_REQUESTED_PRICE,
            f"payment {buyer_pays} > max_payment_amount={args.max_payment_amount}",
        )
    if buyer_pays > args.payer_balance:
        raise MarketError(ErrorCode.NOT_ENOUGH_BALANCE, f"buyer holds {args.payer_balance} < {buyer_pays}")

    proceeds = total_price - maker_fee
    pay = config.payment_asset
    proceeds_destination = pool.buyside_escrow if pool.reinvest_fulfill_sell else pool.owner
    transfers = _transfers(
        (pay, args.buyer, proceeds_destination, proceeds),
        (pay, args.buyer, pool.owner, lp_fee),
        *((pay, args.buyer, p.address, p.amount) for p in royalty.payouts if p.transferred),
        (pay, args.buyer, pool.referral, maker_fee + taker_fee),
        (args.asset_mint, pool.sellside_escrow, args.buyer, n),
    )

    next_state, sell_state = _take_from_sell_state(state, pool.key, args.asset_mint, n)
    buyside = pool.buyside_payment_amount
    if pool.reinvest_fulfill_sell:
        buyside = checked_add(buyside, proceeds)
    updated = _replace_pool(
        pool,
        spot_price=next_price,
        lp_fee_earned=checked_add(pool.lp_fee_earned, lp_fee),
        sellside_asset_amount=checked_sub(pool.sellside_asset_amount, n),
        buyside_payment_amount=buyside,
    )
    next_state = next_state.with_pool(updated)
    next_state, closed_sell = try_close_sell_state(next_state, sell_state, pool.owner)
    next_state, closed_pool = try_close_pool(next_state, updated)

    quote = FulfillQuote(
        total_price=total_price,
        next_price=next_price,
        lp_fee=lp_fee,
        royalty=royalty,
        maker_fee=maker_fee,
        taker_fee=taker_fee,
        payment_amount=buyer_pays,
    )
    return next_state, Effects(
        event=Event.FULFILLED_SELL,
        pool_key=pool.key,
        transfers=transfers,
        reclaims=closed_sell + closed_pool,
        quote=quote,
    )


def close_pool(state: MarketState, args: ClosePoolArgs, config: MarketConfig = DEFAULT_CONFIG) -> Outcome:
    pool = _get_pool(state, args.pool_key)
    if pool.sellside_asset_amount != 0:
        raise MarketError(ErrorCode.NOT_EMPTY_SELL_SIDE, f"sellside_asset_amount={pool.sellside_asset_amount}")
    transfers = _transfers((config.payment_asset, pool.buyside_escrow, pool.owner, pool.buyside_payment_amount))
    reclaim = Reclaim(kind=RecordKind.POOL, key=pool.key, recipient=pool.owner)
    return state.without_pool(pool.key), Effects(
        event=Event.POOL_CLOSED, pool_key=pool.key, transfers=transfers, reclaims=(reclaim,)
    )


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

OperationFn = Callable[[MarketState, OperationArgs, MarketConfig], Outcome]

_DISPATCH: dict[type, OperationFn] = {
    CreatePoolArgs: create_pool,
    UpdatePoolArgs: update_pool,
    DepositBuyArgs: deposit_buy,
    WithdrawBuyArgs: withdraw_buy,
    DepositSellArgs: deposit_sell,
    WithdrawSellArgs: withdraw_sell,
    FulfillBuyArgs: fulfill_buy,
    FulfillSellArgs: fulfill_sell,
    ClosePoolArgs: close_pool,
}


def step(state: MarketState, args: OperationArgs, config: MarketConfig = DEFAULT_CONFIG) -> StepResult:
    """Execute one operation against the given state.

    Returns ``StepResult`` with ``ok=True`` on success, or ``ok=False`` with
    the error message and its ``ErrorCode`` value. Malformed Python inputs
    (wrong types, missing host-filled metadata) still raise.
    """
    fn = _DISPATCH.get(type(args))
    if fn is None:
        return StepResult(ok=False, error=f"unknown_operation:{type(args).__name__}")

    try:
        next_state, effects = fn(state, args, config)
    except MarketError as exc:
        return StepResult(ok=False, error=exc.message or exc.code.value, code=exc.code.value)

    violations = check_all(next_state)
    if violations:
        return StepResult(ok=False, error=f"invariant:{','.join(violations)}")
    return StepResult(ok=True, state=next_state, effects=effects)


def step_or_raise(state: MarketState, args: OperationArgs, config: MarketConfig = DEFAULT_CONFIG) -> StepResult:
    """Like ``step()`` but raises on rejection instead of returning a result.

    Raises:
        MarketError: The operation was rejected.
        MarketInvariantError: Post-state violates one or more invariants.
        TypeError: Unknown operation type.
    """
    result = step(state, args, config)
    if result.ok:
        return result

    reason = result.error or ""
    if result.code is not None:
        raise MarketError(ErrorCode(result.code), reason)
    if reason.startswith("invariant:"):
        raise MarketInvariantError(reason.removeprefix("invariant:").split(","))
    raise TypeError(reason)


def apply_all(
    state: MarketState,
    operations: List[OperationArgs],
    config: MarketConfig = DEFAULT_CONFIG,
) -> Tuple[MarketState, List[Effects]]:
    """Run `operations` in order, stopping at the first rejection."""
    effects: List[Effects] = []
    for args in operations:
        result = step_or_raise(state, args, config)
        state = result.state
        effects.append(result.effects)
    return state, effects
