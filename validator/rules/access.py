"""
Pause Enforcement Rule

Rejects every mint while the collection is paused. The owner is held to the
same rule as everyone else.
"""

from validator.core import MintRule, MintRequestContext


class PauseRule(MintRule):
    """Rejects mints while minting is paused."""

    def __init__(self):
        super().__init__(
            name="pause",
            description="Rejects mint requests while minting is paused"
        )

    def check(self, context: MintRequestContext) -> None:
        context.access.require_not_paused()
