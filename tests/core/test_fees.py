# [TESTER] v1

from __future__ import annotations

import pytest

from nftamm.core.config import MarketConfig
from nftamm.core.errors import ErrorCode, MarketError
from nftamm.core.fees import (
    NO_ROYALTY,
    CreatorAccount,
    assert_valid_fees_bp,
    compute_royalty,
    get_buyside_seller_receives,
    get_lp_fee,
    get_lp_fee_bp,
    get_referral_fee,
    pay_creator_fees,
)
from nftamm.state.metadata import AssetMetadata, Creator
from nftamm.state.pools import CurveKind, Pool

OWNER = "0x" + "aa" * 32
MINT = "0x" + "11" * 32
CREATOR_A = "0x" + "a1" * 32
CREATOR_B = "0x" + "b2" * 32
CREATOR_C = "0x" + "c3" * 32
FUNDED = 1_000_000


def _pool(*, lp_fee_bp: int, sellside: int, buyside: int, spot_price: int = 1000) -> Pool:
    return Pool(
        owner=OWNER,
        uuid="fees",
        spot_price=spot_price,
        curve_type=CurveKind.LINEAR,
        curve_delta=10,
        lp_fee_bp=lp_fee_bp,
        sellside_asset_amount=sellside,
        buyside_payment_amount=buyside,
    )


def _three_creators(royalty_bp: int = 100) -> AssetMetadata:
    return AssetMetadata(
        mint=MINT,
        seller_fee_basis_points=royalty_bp,
        creators=(
            Creator(address=CREATOR_A, verified=True, share=33),
            Creator(address=CREATOR_B, verified=False, share=33),
            Creator(address=CREATOR_C, verified=False, share=34),
        ),
    )


def _accounts(*balances: int) -> list[CreatorAccount]:
    return [
        CreatorAccount(address=addr, balance=bal)
        for addr, bal in zip((CREATOR_A, CREATOR_B, CREATOR_C), balances)
    ]


class TestLpFee:
    def test_zero_without_assets(self) -> None:
        pool = _pool(lp_fee_bp=200, sellside=0, buyside=10**6)
        assert get_lp_fee_bp(pool, pool.buyside_payment_amount) == 0
        assert get_lp_fee(pool, pool.buyside_payment_amount, 5_000) == 0

    def test_zero_when_escrow_below_spot(self) -> None:
        pool = _pool(lp_fee_bp=200, sellside=1, buyside=999)
        assert get_lp_fee_bp(pool, 999) == 0
        assert get_lp_fee(pool, 999, 5_000) == 0

    def test_charged_when_pool_can_trade_both_ways(self) -> None:
        pool = _pool(lp_fee_bp=200, sellside=1, buyside=1000)
        assert get_lp_fee_bp(pool, 1000) == 200
        assert get_lp_fee(pool, 1000, 5_000) == 100


class TestReferralFee:
    def test_fee_bounds_accept_maker_rebate_within_taker_fee(self) -> None:
        assert_valid_fees_bp(maker_fee_bp=-20, taker_fee_bp=50)

    def test_fee_bounds_reject_rebate_larger_than_taker_fee(self) -> None:
        with pytest.raises(MarketError) as exc_info:
            assert_valid_fees_bp(maker_fee_bp=-60, taker_fee_bp=50)
        assert exc_info.value.code == ErrorCode.INVALID_MAKER_OR_TAKER_FEE_BP

    @pytest.mark.parametrize(
        "maker,taker",
        [(0, -1), (0, 501), (501, 0), (-501, 500), (300, 300)],
    )
    def test_fee_bounds_reject(self, maker: int, taker: int) -> None:
        with pytest.raises(MarketError):
            assert_valid_fees_bp(maker, taker)

    def test_fee_bound_is_configurable(self) -> None:
        assert_valid_fees_bp(0, 800, MarketConfig(max_referral_fee_bp=1000))
        with pytest.raises(MarketError):
            assert_valid_fees_bp(0, 800)

    def test_negative_fee_truncates_toward_zero(self) -> None:
        assert get_referral_fee(1000, -15) == -1
        assert get_referral_fee(999, -1) == 0
        assert get_referral_fee(1000, 15) == 1


class TestSellerReceives:
    def test_no_fees_is_identity(self) -> None:
        assert get_buyside_seller_receives(10_000, 0, 0, 0) == 10_000

    def test_grossed_down_so_fees_fit_inside_total(self) -> None:
        seller = get_buyside_seller_receives(10_000, 100, 500, 10_000)
        assert seller == 9_433
        lp_fee = seller * 100 // 10_000
        royalty = compute_royalty(seller, 500, 10_000)
        assert seller + lp_fee + royalty <= 10_000

    def test_compute_royalty_two_floor_steps(self) -> None:
        assert compute_royalty(10_000, 500, 5_000) == 250
        # 999 * 333 / 10_000 = 33, then 33 * 5_000 / 10_000 = 16
        assert compute_royalty(999, 333, 5_000) == 16


class TestCreatorSplit:
    def test_even_split_remainder_to_last(self) -> None:
        split = pay_creator_fees(10_000, 10_000, _three_creators(), _accounts(FUNDED, FUNDED, FUNDED), 10**9)
        assert split.royalty == 100
        assert [p.amount for p in split.payouts] == [33, 33, 34]
        assert split.paid == 100

    def test_uneven_royalty_leaves_no_leakage(self) -> None:
        split = pay_creator_fees(10_000, 10_100, _three_creators(), _accounts(FUNDED, FUNDED, FUNDED), 10**9)
        assert split.royalty == 101
        assert [p.amount for p in split.payouts] == [33, 33, 35]
        assert sum(p.amount for p in split.payouts) == split.royalty

    def test_payout_below_rent_minimum_is_skipped(self) -> None:
        split = pay_creator_fees(10_000, 10_100, _three_creators(), _accounts(0, FUNDED, FUNDED), 10**9)
        assert [p.transferred for p in split.payouts] == [False, True, True]
        assert split.paid == 68
        assert split.royalty == 101
        assert [p.address for p in split.skipped] == [CREATOR_A]

    def test_zero_royalty_transfers_nothing(self) -> None:
        assert pay_creator_fees(0, 10_000, _three_creators(), [], 0) is NO_ROYALTY
        assert pay_creator_fees(10_000, 10_000, _three_creators(royalty_bp=0), [], 0) is NO_ROYALTY

    def test_no_creators_transfers_nothing(self) -> None:
        metadata = AssetMetadata(mint=MINT, seller_fee_basis_points=500)
        assert pay_creator_fees(10_000, 10_000, metadata, [], 0) is NO_ROYALTY

    def test_payer_must_cover_royalty(self) -> None:
        with pytest.raises(MarketError) as exc_info:
            pay_creator_fees(10_000, 10_000, _three_creators(), _accounts(FUNDED, FUNDED, FUNDED), 99)
        assert exc_info.value.code == ErrorCode.NOT_ENOUGH_BALANCE

    def test_declared_royalty_above_ceiling(self) -> None:
        with pytest.raises(MarketError) as exc_info:
            pay_creator_fees(
                10_000, 10_000, _three_creators(royalty_bp=2_501), _accounts(FUNDED, FUNDED, FUNDED), 10**9
            )
        assert exc_info.value.code == ErrorCode.INVALID_METADATA_CREATOR_ROYALTY

    def test_accounts_must_match_creators_in_order(self) -> None:
        swapped = [
            CreatorAccount(address=CREATOR_B, balance=FUNDED),
            CreatorAccount(address=CREATOR_A, balance=FUNDED),
            CreatorAccount(address=CREATOR_C, balance=FUNDED),
        ]
        with pytest.raises(MarketError) as exc_info:
            pay_creator_fees(10_000, 10_000, _three_creators(), swapped, 10**9)
        assert exc_info.value.code == ErrorCode.INVALID_CREATOR_ADDRESS

    def test_missing_account_is_rejected(self) -> None:
        with pytest.raises(MarketError) as exc_info:
            pay_creator_fees(10_000, 10_000, _three_creators(), _accounts(FUNDED, FUNDED), 10**9)
        assert exc_info.value.code == ErrorCode.INVALID_CREATOR_ADDRESS
