"""
Per-Mint Limit Enforcement Rule

This module implements the MintLimitRule class that rejects requests asking
for more tokens than the collection allows in a single mint.
"""

from collection.exceptions import QuantityExceedsLimit
from validator.core import MintRule, MintRequestContext


class MintLimitRule(MintRule):
    """
    Validation rule that enforces the per-request mint cap.

    The cap is the collection's ``max_mint_amount`` at the time of the
    request, and it applies to the owner as well.
    """

    def __init__(self):
        super().__init__(
            name="mint_limit",
            description="Enforces the per-request mint cap"
        )

        self.stats = {
            "validations_performed": 0,
            "rejected_over_limit": 0,
            "approved_within_limit": 0
        }

    def check(self, context: MintRequestContext) -> None:
        self.stats["validations_performed"] += 1

        if context.quantity > context.max_mint_amount:
            self.stats["rejected_over_limit"] += 1
            self.logger.debug(
                f"Requested {context.quantity} exceeds per-mint cap {context.max_mint_amount}"
            )
            raise QuantityExceedsLimit()

        self.stats["approved_within_limit"] += 1
