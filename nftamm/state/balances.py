"""
Multi-asset balance tracking with deterministic ordering.

Implements BalanceTable[Address, AssetId] -> Amount. Used by the in-memory
custody adapter to model payment and asset vaults.
"""

from typing import Dict, Tuple


# Type aliases
Address = str  # 32-byte account address as hex string (0x...)
AssetId = str  # payment unit or asset mint address
Amount = int  # Non-negative integer (u64 range is enforced by the core)

# Payment unit identifier
PAYMENT_ASSET = "0x" + "00" * 32

# Placeholder address used by empty allowlist entries
DEFAULT_ADDRESS = "0x" + "00" * 32


class BalanceTable:
    """
    Deterministic balance table mapping (address, asset) -> amount.

    Zero balances are removed to keep the table sparse. Do not rely on dict
    iteration order; callers sort keys explicitly where order matters.
    """

    def __init__(self):
        self._balances: Dict[Tuple[Address, AssetId], Amount] = {}

    def get(self, address: Address, asset: AssetId) -> Amount:
        """Get balance for (address, asset). Returns 0 if not found."""
        return self._balances.get((address, asset), 0)

    def set(self, address: Address, asset: AssetId, amount: Amount) -> None:
        """
        Set balance for (address, asset).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            self._balances.pop((address, asset), None)
        else:
            self._balances[(address, asset)] = amount

    def add(self, address: Address, asset: AssetId, delta: int) -> None:
        """
        Add delta to balance (delta may be negative).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(address, asset)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(address, asset, new_balance)

    def subtract(self, address: Address, asset: AssetId, delta: Amount) -> None:
        """Subtract a non-negative amount from a balance."""
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(address, asset, -delta)

    def total(self, asset: AssetId) -> Amount:
        """Sum of all balances held in `asset`."""
        return sum(amount for (_, a), amount in self._balances.items() if a == asset)

    def assets(self) -> Tuple[AssetId, ...]:
        """Sorted tuple of every asset with a non-zero balance somewhere."""
        return tuple(sorted({a for (_, a) in self._balances}))

    def get_all_balances(self) -> Dict[Tuple[Address, AssetId], Amount]:
        return dict(self._balances)

    def copy(self) -> "BalanceTable":
        other = BalanceTable()
        other._balances = dict(self._balances)
        return other

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
