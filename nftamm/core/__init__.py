"""
Core marketplace algorithms
"""

from .allowlist import check_allowlists, check_allowlists_for_mint
from .config import DEFAULT_CONFIG, MarketConfig, load_market_config
from .curve import check_curve, get_total_price_and_next_price
from .errors import ErrorCode, MarketError, MarketInvariantError
from .fees import (
    CreatorAccount,
    RoyaltySplit,
    assert_valid_fees_bp,
    get_buyside_seller_receives,
    get_lp_fee,
    get_lp_fee_bp,
    get_referral_fee,
    pay_creator_fees,
)
from .ledger import (
    close_pool,
    create_pool,
    deposit_buy,
    deposit_sell,
    fulfill_buy,
    fulfill_sell,
    step,
    step_or_raise,
    try_close_pool,
    try_close_sell_state,
    update_pool,
    withdraw_buy,
    withdraw_sell,
)
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
    Reclaim,
    RecordKind,
    StepResult,
    Transfer,
    UpdatePoolArgs,
    WithdrawBuyArgs,
    WithdrawSellArgs,
)

__all__ = [
    "check_allowlists",
    "check_allowlists_for_mint",
    "DEFAULT_CONFIG",
    "MarketConfig",
    "load_market_config",
    "check_curve",
    "get_total_price_and_next_price",
    "ErrorCode",
    "MarketError",
    "MarketInvariantError",
    "CreatorAccount",
    "RoyaltySplit",
    "assert_valid_fees_bp",
    "get_buyside_seller_receives",
    "get_lp_fee",
    "get_lp_fee_bp",
    "get_referral_fee",
    "pay_creator_fees",
    "close_pool",
    "create_pool",
    "deposit_buy",
    "deposit_sell",
    "fulfill_buy",
    "fulfill_sell",
    "step",
    "step_or_raise",
    "try_close_pool",
    "try_close_sell_state",
    "update_pool",
    "withdraw_buy",
    "withdraw_sell",
    "ClosePoolArgs",
    "CreatePoolArgs",
    "DepositBuyArgs",
    "DepositSellArgs",
    "Effects",
    "Event",
    "FulfillBuyArgs",
    "FulfillQuote",
    "FulfillSellArgs",
    "Reclaim",
    "RecordKind",
    "StepResult",
    "Transfer",
    "UpdatePoolArgs",
    "WithdrawBuyArgs",
    "WithdrawSellArgs",
]
