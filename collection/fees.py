"""
Fee Policy

Computes the payment required for a mint request and checks that a payment
matches it exactly. Amounts are integers in wei; helpers convert from unit
strings such as ``"1 ether"`` or ``"20 gwei"``.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Union

from .exceptions import InsufficientPayment


WEI = 1
GWEI = 10 ** 9
ETHER = 10 ** 18

UNITS = {
    'wei': WEI,
    'gwei': GWEI,
    'ether': ETHER,
    'eth': ETHER,
}

Amount = Union[int, str]

logger = logging.getLogger("collection.fees")


def parse_amount(value: Amount) -> int:
    """
    Convert an amount to an integer number of wei.

    Args:
        value: Integer wei, or a string like "1000", "1 ether", "0.5 ether"

    Returns:
        Amount in wei

    Raises:
        ValueError: If the value is negative, fractional in wei, or malformed
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")

    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Amount must be non-negative, got {value}")
        return value

    if not isinstance(value, str):
        raise ValueError(f"Invalid amount: {value!r}")

    parts = value.strip().split()
    if len(parts) == 1:
        number, unit = parts[0], 'wei'
    elif len(parts) == 2:
        number, unit = parts[0], parts[1].lower()
    else:
        raise ValueError(f"Invalid amount: {value!r}")

    if unit not in UNITS:
        raise ValueError(f"Unknown unit '{unit}' in amount {value!r}")

    try:
        scaled = Decimal(number) * UNITS[unit]
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")

    if scaled < 0:
        raise ValueError(f"Amount must be non-negative, got {value!r}")
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {value!r} is not a whole number of wei")

    return int(scaled)


def format_amount(wei: int) -> str:
    """Render a wei amount in ether when it divides evenly, else in wei."""
    if wei % ETHER == 0:
        return f"{wei // ETHER} ether"
    if wei % GWEI == 0:
        return f"{wei // GWEI} gwei"
    return f"{wei} wei"


class FeePolicy:
    """Per-token fee with strict-equality payment checking."""

    def __init__(self, cost_per_token: Amount = 0):
        self._cost = parse_amount(cost_per_token)

    @property
    def cost_per_token(self) -> int:
        return self._cost

    def set_cost(self, amount: Amount) -> int:
        """
        Update the per-token cost.

        Args:
            amount: New cost, in wei or as a unit string

        Returns:
            The previous cost in wei
        """
        previous = self._cost
        self._cost = parse_amount(amount)
        logger.info(f"Cost per token changed: {previous} -> {self._cost} wei")
        return previous

    def required_fee(self, quantity: int) -> int:
        """Return the fee owed for minting ``quantity`` tokens."""
        return quantity * self._cost

    def validate_payment(self, paid: int, quantity: int, exempt: bool = False) -> None:
        """
        Check that ``paid`` equals the required fee exactly.

        Overpayment is rejected as well as underpayment. Exempt callers (the
        collection owner) skip the check entirely.

        Raises:
            InsufficientPayment: If the payment is not exact
        """
        if exempt:
            return

        required = self.required_fee(quantity)
        if paid != required:
            logger.debug(f"Payment mismatch: paid {paid}, required {required}")
            raise InsufficientPayment()
