"""
Treasury

Accumulates mint fees and releases the whole balance to the owner on
withdrawal. The payout itself is delegated to an external ledger; the
accumulator is only zeroed once the payout has succeeded.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, Optional

from .exceptions import NothingToWithdraw
from .schema import normalize_address


logger = logging.getLogger("collection.treasury")

Payout = Callable[[str, int], None]


class ExternalLedger:
    """In-memory stand-in for the balances held outside the collection."""

    def __init__(self, balances: Optional[Dict[str, int]] = None):
        self._balances: Dict[str, int] = defaultdict(int)
        for address, amount in (balances or {}).items():
            self._balances[normalize_address(address)] = amount

    def credit(self, address: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Credit amount must be non-negative, got {amount}")
        self._balances[normalize_address(address)] += amount

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)


class Treasury:
    """Non-negative fee accumulator."""

    def __init__(self, payout: Optional[Payout] = None):
        self._balance = 0
        self._total_collected = 0
        self._total_withdrawn = 0
        if payout is None:
            self.ledger = ExternalLedger()
            payout = self.ledger.credit
        else:
            self.ledger = None
        self._payout = payout

    @property
    def balance(self) -> int:
        return self._balance

    @property
    def total_collected(self) -> int:
        return self._total_collected

    @property
    def total_withdrawn(self) -> int:
        return self._total_withdrawn

    def credit(self, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Credit amount must be non-negative, got {amount}")
        self._balance += amount
        self._total_collected += amount

    def withdraw(self, recipient: str) -> int:
        """
        Pay the full balance out to ``recipient`` and reset it to zero.

        Args:
            recipient: Identity receiving the funds (the owner)

        Returns:
            Amount paid out

        Raises:
            NothingToWithdraw: If the balance is zero
        """
        amount = self._balance
        if amount == 0:
            raise NothingToWithdraw()

        self._payout(recipient, amount)
        self._balance = 0
        self._total_withdrawn += amount

        logger.info(f"Withdrew {amount} wei to {recipient}")
        return amount
