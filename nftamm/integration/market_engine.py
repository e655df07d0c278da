"""
Market execution engine.

Imperative shell around the pure ledger. One `execute()` call:

1. asks the authorizer whether the required signer approved the operation,
2. hydrates host-filled fields (asset metadata, creator and buyer balances),
3. runs the core `step()` against the current state,
4. applies the emitted transfers through the custody adapter (atomically),
5. commits the next state,
6. hands wiped records to the storage reclaimer.

Any failure before step 5 leaves both the committed state and custody
balances untouched. Custody and state commit back to back, so reclamation
runs against a consistent ledger; an effect the reclaimer rejects with
`ReclaimError` is kept in `pending_reclaims` until `retry_reclaims()`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence

from ..core.config import DEFAULT_CONFIG, MarketConfig
from ..core.errors import MarketError
from ..core.fees import CreatorAccount
from ..core.ledger import step
from ..core.types import (
    DepositSellArgs,
    Effects,
    FulfillBuyArgs,
    FulfillSellArgs,
    OperationArgs,
    Reclaim,
    WithdrawSellArgs,
)
from ..state.metadata import InMemoryMetadataProvider, MetadataProvider, MetadataProviderError
from ..state.pools import MarketState, Pool
from .authorization import AllowAllAuthorizer, AuthorizationError, Authorizer, signer_for
from .custody import (
    CustodyAdapter,
    CustodyError,
    InMemoryCustody,
    InMemoryReclaimer,
    ReclaimError,
    StorageReclaimer,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineResult:
    ok: bool
    state: Optional[MarketState] = None
    effects: Optional[Effects] = None
    error: Optional[str] = None
    code: Optional[str] = None


def log_pool(pool: Pool, *, level: int = logging.INFO) -> None:
    """Log a one-line snapshot of a pool record."""
    logger.log(
        level,
        "pool %s owner=%s spot=%d curve=%d/%d lp_fee_bp=%d earned=%d sellside=%d buyside=%d",
        pool.key,
        pool.owner,
        pool.spot_price,
        pool.curve_type,
        pool.curve_delta,
        pool.lp_fee_bp,
        pool.lp_fee_earned,
        pool.sellside_asset_amount,
        pool.buyside_payment_amount,
    )


class MarketEngine:
    def __init__(
        self,
        *,
        config: MarketConfig = DEFAULT_CONFIG,
        custody: Optional[CustodyAdapter] = None,
        reclaimer: Optional[StorageReclaimer] = None,
        metadata_provider: Optional[MetadataProvider] = None,
        authorizer: Optional[Authorizer] = None,
        state: Optional[MarketState] = None,
    ) -> None:
        self.config = config
        self.custody = custody if custody is not None else InMemoryCustody()
        self.reclaimer = reclaimer if reclaimer is not None else InMemoryReclaimer()
        self.metadata_provider = metadata_provider if metadata_provider is not None else InMemoryMetadataProvider()
        self.authorizer = authorizer if authorizer is not None else AllowAllAuthorizer()
        self._state = state if state is not None else MarketState()
        self.pending_reclaims: List[Reclaim] = []

    @property
    def state(self) -> MarketState:
        return self._state

    def _hydrate(self, args: OperationArgs) -> OperationArgs:
        if isinstance(args, (DepositSellArgs, FulfillBuyArgs, FulfillSellArgs)) or (
            isinstance(args, WithdrawSellArgs) and args.programmable
        ):
            self.metadata_provider.load(args.asset_mint)
            metadata = self.metadata_provider.get_metadata(args.asset_mint)
            args = replace(args, metadata=metadata)
        else:
            return args

        if isinstance(args, (FulfillBuyArgs, FulfillSellArgs)):
            pay = self.config.payment_asset
            accounts = tuple(
                CreatorAccount(address=c.address, balance=self.custody.balance_of(c.address, pay))
                for c in self.metadata_provider.get_creators(args.asset_mint)
            )
            args = replace(args, creator_accounts=accounts)
        if isinstance(args, FulfillSellArgs):
            args = replace(args, payer_balance=self.custody.balance_of(args.buyer, self.config.payment_asset))
        return args

    def _reclaim(self, reclaims: Sequence[Reclaim]) -> None:
        for effect in reclaims:
            try:
                self.reclaimer.reclaim(effect)
            except ReclaimError as exc:
                logger.error("reclaim %s %s deferred: %s", effect.kind.value, effect.key, exc)
                self.pending_reclaims.append(effect)

    def retry_reclaims(self) -> int:
        """Retry deferred reclamations; returns how many went through."""
        pending, self.pending_reclaims = self.pending_reclaims, []
        self._reclaim(pending)
        return len(pending) - len(self.pending_reclaims)

    def _reject(self, op: str, error: str, code: Optional[str] = None) -> EngineResult:
        logger.warning("%s rejected: %s%s", op, f"[{code}] " if code else "", error)
        return EngineResult(ok=False, error=error, code=code)

    def execute(self, args: OperationArgs, proof: Optional[str] = None) -> EngineResult:
        op = type(args).__name__
        try:
            self.authorizer.authorize(signer_for(self._state, args), args, proof)
        except AuthorizationError as exc:
            return self._reject(op, f"unauthorized: {exc}")
        except MarketError as exc:
            return self._reject(op, exc.message, exc.code.value)

        try:
            args = self._hydrate(args)
        except MetadataProviderError as exc:
            return self._reject(op, f"metadata: {exc}")

        try:
            result = step(self._state, args, self.config)
        except (TypeError, ValueError) as exc:
            return self._reject(op, f"invalid arguments: {exc}")
        if not result.ok:
            return self._reject(op, result.error or "rejected", result.code)

        effects = result.effects
        try:
            self.custody.apply(effects.transfers)
        except CustodyError as exc:
            return self._reject(op, f"custody: {exc}")

        self._state = result.state
        self._reclaim(effects.reclaims)

        quote = effects.quote
        if quote is not None:
            for payout in quote.royalty.skipped:
                logger.info(
                    "royalty slice of %d for creator %s skipped (below rent minimum)",
                    payout.amount,
                    payout.address,
                )
        pool = self._state.get_pool(effects.pool_key)
        if pool is not None:
            log_pool(pool)
        else:
            logger.info("%s: pool %s closed", effects.event.value, effects.pool_key)
        return EngineResult(ok=True, state=self._state, effects=effects)

    def reconcile(self) -> List[str]:
        """
        Compare ledger records with custody escrow balances.

        Returns one message per mismatch (empty = consistent).
        """
        mismatches: List[str] = []
        pay = self.config.payment_asset
        for key, pool in sorted(self._state.pools.items()):
            held = self.custody.balance_of(pool.buyside_escrow, pay)
            if held != pool.buyside_payment_amount:
                mismatches.append(f"pool {key}: buyside record {pool.buyside_payment_amount} != escrow {held}")
            for sell_state in self._state.sell_states_for(key):
                held = self.custody.balance_of(pool.sellside_escrow, sell_state.asset_mint)
                if held != sell_state.asset_amount:
                    mismatches.append(
                        f"sell state {key}/{sell_state.asset_mint}: record {sell_state.asset_amount} != escrow {held}"
                    )
        return mismatches
