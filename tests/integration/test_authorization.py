# [TESTER] v1

from __future__ import annotations

import pytest

from nftamm.core.errors import MarketError
from nftamm.core.fees import CreatorAccount
from nftamm.core.types import CreatePoolArgs, DepositBuyArgs, FulfillBuyArgs, FulfillSellArgs
from nftamm.integration.authorization import (
    AuthorizationError,
    BlsAuthorizer,
    bls_pubkey_hex,
    sign_operation,
    signer_for,
    signing_message_hash,
    signing_payload,
)
from nftamm.integration.custody import InMemoryCustody
from nftamm.integration.market_engine import MarketEngine
from nftamm.state.metadata import EditionMarker
from nftamm.state.pools import Allowlist, AllowlistKind, CurveKind, MarketState

OWNER = "0x" + "aa" * 32
SELLER = "0x" + "bb" * 32
BUYER = "0x" + "cc" * 32
MINT = "0x" + "11" * 32
CHAIN_ID = "nftamm-test"


def _create_args(**overrides) -> CreatePoolArgs:
    fields = dict(
        owner=OWNER,
        uuid="signed-pool",
        spot_price=1000,
        curve_type=CurveKind.LINEAR,
        curve_delta=100,
        allowlists=(Allowlist(AllowlistKind.MINT, MINT),),
    )
    fields.update(overrides)
    return CreatePoolArgs(**fields)


def _keypair() -> tuple[int, str]:
    pytest.importorskip("py_ecc")
    from py_ecc.bls import G2Basic

    sk = G2Basic.KeyGen(b"\x01" * 32)
    return sk, "0x" + bls_pubkey_hex(sk)


class TestSigningPayload:
    def test_payload_is_canonical_and_named(self) -> None:
        payload = signing_payload(_create_args())
        assert payload["op"] == "CreatePoolArgs"
        assert payload["args"]["allowlists"] == [{"kind": 2, "value": MINT}]

    def test_host_filled_fields_are_not_signed(self) -> None:
        base = FulfillSellArgs(
            pool_key="0xk", buyer=BUYER, asset_mint=MINT, asset_amount=1, max_payment_amount=5
        )
        hydrated = FulfillSellArgs(
            pool_key="0xk",
            buyer=BUYER,
            asset_mint=MINT,
            asset_amount=1,
            max_payment_amount=5,
            payer_balance=123,
            creator_accounts=(CreatorAccount(address=OWNER, balance=9),),
        )
        assert signing_message_hash(base, chain_id=CHAIN_ID) == signing_message_hash(hydrated, chain_id=CHAIN_ID)

    def test_chain_id_binds_the_hash(self) -> None:
        args = _create_args()
        assert signing_message_hash(args, chain_id="a") != signing_message_hash(args, chain_id="b")

    def test_master_edition_marker_is_signed(self) -> None:
        base = FulfillBuyArgs(pool_key="0xk", seller=SELLER, asset_mint=MINT, asset_amount=1, min_payment_amount=0)
        marked = FulfillBuyArgs(
            pool_key="0xk",
            seller=SELLER,
            asset_mint=MINT,
            asset_amount=1,
            min_payment_amount=0,
            master_edition=EditionMarker(bytes([6, 1])),
        )
        assert signing_payload(marked)["args"]["master_edition"] == {"data": "0x0601"}
        assert signing_message_hash(base, chain_id=CHAIN_ID) != signing_message_hash(marked, chain_id=CHAIN_ID)


class TestSignerFor:
    def test_required_signers(self) -> None:
        state = MarketState()
        assert signer_for(state, _create_args()) == OWNER
        buy = FulfillBuyArgs(pool_key="0xk", seller=SELLER, asset_mint=MINT, asset_amount=1, min_payment_amount=0)
        assert signer_for(state, buy) == SELLER

    def test_pool_operations_need_the_owner(self) -> None:
        engine = MarketEngine()
        key = engine.execute(_create_args()).effects.pool_key
        assert signer_for(engine.state, DepositBuyArgs(pool_key=key, payment_amount=1)) == OWNER
        with pytest.raises(MarketError):
            signer_for(MarketState(), DepositBuyArgs(pool_key=key, payment_amount=1))


class TestBlsAuthorizer:
    def test_valid_signature_is_accepted(self) -> None:
        sk, pk = _keypair()
        args = _create_args()
        sig = sign_operation(args, privkey=sk, chain_id=CHAIN_ID)
        BlsAuthorizer({OWNER: pk}, chain_id=CHAIN_ID).authorize(OWNER, args, sig)

    def test_tampered_args_are_rejected(self) -> None:
        sk, pk = _keypair()
        sig = sign_operation(_create_args(), privkey=sk, chain_id=CHAIN_ID)
        with pytest.raises(AuthorizationError, match="invalid signature"):
            BlsAuthorizer({OWNER: pk}, chain_id=CHAIN_ID).authorize(OWNER, _create_args(spot_price=1), sig)

    def test_signature_from_another_chain_is_rejected(self) -> None:
        sk, pk = _keypair()
        args = _create_args()
        sig = sign_operation(args, privkey=sk, chain_id="other-chain")
        with pytest.raises(AuthorizationError):
            BlsAuthorizer({OWNER: pk}, chain_id=CHAIN_ID).authorize(OWNER, args, sig)

    def test_missing_key_or_proof(self) -> None:
        sk, pk = _keypair()
        authorizer = BlsAuthorizer({}, chain_id=CHAIN_ID)
        with pytest.raises(AuthorizationError, match="no public key"):
            authorizer.authorize(OWNER, _create_args(), "00")
        authorizer.register(OWNER, pk)
        with pytest.raises(AuthorizationError, match="missing signature"):
            authorizer.authorize(OWNER, _create_args(), None)
        with pytest.raises(AuthorizationError, match="96 bytes"):
            authorizer.authorize(OWNER, _create_args(), "0x00")

    def test_engine_requires_signature(self) -> None:
        sk, pk = _keypair()
        engine = MarketEngine(custody=InMemoryCustody(), authorizer=BlsAuthorizer({OWNER: pk}, chain_id=CHAIN_ID))
        args = _create_args()

        unsigned = engine.execute(args)
        assert not unsigned.ok
        assert unsigned.error.startswith("unauthorized:")

        signed = engine.execute(args, proof=sign_operation(args, privkey=sk, chain_id=CHAIN_ID))
        assert signed.ok, signed.error
        assert engine.state.get_pool(signed.effects.pool_key) is not None
