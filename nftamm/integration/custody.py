"""
Custody and storage-reclamation adapters.

The core never moves value; it emits Transfer and Reclaim effects. These
adapters are the side that carries them out. The in-memory versions back
the test suite and local simulation.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Protocol, Sequence

from ..core.types import Reclaim, Transfer
from ..state.balances import Address, Amount, AssetId, BalanceTable

logger = logging.getLogger(__name__)


class CustodyError(Exception):
    """A transfer batch could not be applied; nothing was written."""


class ReclaimError(Exception):
    """A wiped record's storage could not be reclaimed yet."""


class CustodyAdapter(Protocol):
    def balance_of(self, address: Address, asset: AssetId) -> Amount: ...

    def apply(self, transfers: Sequence[Transfer]) -> None: ...


class StorageReclaimer(Protocol):
    def reclaim(self, effect: Reclaim) -> None: ...


class InMemoryCustody:
    """
    Custody over a BalanceTable.

    `apply` is all-or-nothing: the batch runs against a copy and the copy is
    swapped in only when every leg succeeds and per-asset totals are unchanged.
    """

    def __init__(self, balances: BalanceTable | None = None) -> None:
        self._balances = balances if balances is not None else BalanceTable()

    @property
    def balances(self) -> BalanceTable:
        return self._balances

    def balance_of(self, address: Address, asset: AssetId) -> Amount:
        return self._balances.get(address, asset)

    def mint(self, address: Address, asset: AssetId, amount: Amount) -> None:
        """Credit `amount` out of thin air (funding accounts in tests/simulation)."""
        if amount <= 0:
            raise ValueError(f"mint amount must be positive: {amount}")
        self._balances.add(address, asset, amount)

    def totals(self) -> Dict[AssetId, Amount]:
        return {asset: self._balances.total(asset) for asset in self._balances.assets()}

    def apply(self, transfers: Sequence[Transfer]) -> None:
        if not transfers:
            return
        before = self.totals()
        staged = self._balances.copy()
        for index, t in enumerate(transfers):
            try:
                staged.subtract(t.source, t.asset, t.amount)
            except ValueError as exc:
                raise CustodyError(
                    f"transfer {index}: {t.source} cannot send {t.amount} of {t.asset}"
                ) from exc
            staged.add(t.destination, t.asset, t.amount)

        after = {asset: staged.total(asset) for asset in staged.assets()}
        if after != before:
            raise CustodyError("transfer batch changed per-asset totals")

        self._balances = staged
        logger.debug("custody applied %d transfers: %s", len(transfers), _summarize(transfers))


def _summarize(transfers: Iterable[Transfer]) -> Dict[AssetId, Amount]:
    moved: Dict[AssetId, Amount] = defaultdict(int)
    for t in transfers:
        moved[t.asset] += t.amount
    return dict(moved)


class InMemoryReclaimer:
    """Records every reclamation it is asked to perform."""

    def __init__(self) -> None:
        self.reclaimed: List[Reclaim] = []

    def reclaim(self, effect: Reclaim) -> None:
        logger.debug("reclaim %s %s -> %s", effect.kind.value, effect.key, effect.recipient)
        self.reclaimed.append(effect)
