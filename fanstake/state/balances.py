"""
Unit balance tracking for the settlement currency and every creator token.

Implements BalanceTable[Address, AssetId] -> Amount
"""

from typing import Dict, Tuple


# Type aliases
PubKey = str  # BLS12-381 public key as 0x-hex (48 bytes)
Address = str  # PubKey or 32-byte program-derived address
AssetId = str  # 32-byte hex string (0x...), the asset's mint identity
Amount = int  # Non-negative integer, u64 domain enforced by the core

# Settlement currency identifier
NATIVE_ASSET = "0x" + "00" * 32


class BalanceTable:
    """
    Balance table mapping (owner, asset) -> amount.

    The settlement currency is stored under `NATIVE_ASSET`; creator tokens are
    stored under their mint id. Callers sort keys explicitly at serialization
    boundaries (see `fanstake/integration/snapshot.py`).
    """

    def __init__(self):
        """Initialize empty balance table."""
        self._balances: Dict[Tuple[Address, AssetId], Amount] = {}

    def get(self, owner: Address, asset: AssetId) -> Amount:
        """Get balance for (owner, asset). Returns 0 if not found."""
        return self._balances.get((owner, asset), 0)

    def set(self, owner: Address, asset: AssetId, amount: Amount) -> None:
        """
        Set balance for (owner, asset).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop((owner, asset), None)
        else:
            self._balances[(owner, asset)] = amount

    def add(self, owner: Address, asset: AssetId, delta: Amount) -> None:
        """
        Add delta to balance. Equivalent to set(owner, asset, get(...) + delta).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(owner, asset)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(owner, asset, new_balance)

    def subtract(self, owner: Address, asset: AssetId, delta: Amount) -> None:
        """
        Subtract delta from balance. Equivalent to add(owner, asset, -delta).

        Raises:
            ValueError: If delta is negative or insufficient balance
        """
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(owner, asset, -delta)

    def copy(self) -> "BalanceTable":
        """Independent copy, used for copy-on-write instruction execution."""
        out = BalanceTable()
        out._balances = dict(self._balances)
        return out

    def get_all_balances(self) -> Dict[Tuple[Address, AssetId], Amount]:
        return dict(self._balances)

    def get_balances_for_asset(self, asset: AssetId) -> Dict[Address, Amount]:
        result = {}
        for (owner, a), amount in self._balances.items():
            if a == asset:
                result[owner] = amount
        return result

    def total_for_asset(self, asset: AssetId) -> Amount:
        return sum(self.get_balances_for_asset(asset).values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BalanceTable):
            return NotImplemented
        return self._balances == other._balances

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
