"""
Supply Limit Enforcement Rule

This module implements the SupplyLimitRule class that rejects mint requests
the remaining pool cannot satisfy in full.
"""

from collection.exceptions import InsufficientSupply
from validator.core import MintRule, MintRequestContext


class SupplyLimitRule(MintRule):
    """
    Validation rule that enforces the fixed collection supply.

    A request is allowed only when every requested id can be drawn, so a
    mint never partially allocates.
    """

    def __init__(self):
        super().__init__(
            name="supply_limit",
            description="Enforces the remaining collection supply"
        )

        self.stats = {
            "validations_performed": 0,
            "rejected_over_limit": 0,
            "approved_within_limit": 0
        }

    def check(self, context: MintRequestContext) -> None:
        self.stats["validations_performed"] += 1

        remaining = context.pool.remaining_count
        if context.quantity > remaining:
            self.stats["rejected_over_limit"] += 1
            self.logger.debug(
                f"Requested {context.quantity} but only {remaining} ids remain"
            )
            raise InsufficientSupply()

        self.stats["approved_within_limit"] += 1
