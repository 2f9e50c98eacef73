"""
Quantity Rule

Rejects requests for zero or a negative number of tokens.
"""

from collection.exceptions import InvalidQuantity
from validator.core import MintRule, MintRequestContext


class QuantityRule(MintRule):
    """Requires a positive mint quantity."""

    def __init__(self):
        super().__init__(
            name="quantity",
            description="Requires the requested quantity to be positive"
        )

    def check(self, context: MintRequestContext) -> None:
        if context.quantity <= 0:
            raise InvalidQuantity()
