"""
Fee Rule

Requires non-owner callers to pay exactly quantity * cost. The payment check
is keyed on the caller, not the recipient, so the owner minting to someone
else pays nothing and a non-owner minting to someone else pays in full.
"""

from validator.core import MintRule, MintRequestContext


class FeeRule(MintRule):
    """Exact-payment check with owner exemption."""

    def __init__(self):
        super().__init__(
            name="fee",
            description="Requires the exact minting fee from non-owner callers"
        )

    def check(self, context: MintRequestContext) -> None:
        context.fees.validate_payment(
            context.paid_amount,
            context.quantity,
            exempt=context.caller_is_owner
        )
