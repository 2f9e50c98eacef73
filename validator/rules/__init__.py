"""
Mint Precondition Rules

This module contains the concrete precondition rules checked before any id
is drawn: pause state, quantity bounds, remaining supply and exact fees.
"""

from .access import PauseRule
from .quantity import QuantityRule
from .mint_limits import MintLimitRule
from .supply_limit import SupplyLimitRule
from .fee import FeeRule

__all__ = [
    "PauseRule",
    "QuantityRule",
    "MintLimitRule",
    "SupplyLimitRule",
    "FeeRule"
]
