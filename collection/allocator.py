"""
Allocator

Assigns token ids: a linear block for the owner at construction, then random
draws without replacement from the supply pool for every later mint.
"""

import logging
from typing import List

from .entropy import EntropySource
from .exceptions import InsufficientSupply, InvalidQuantity
from .supply_pool import SupplyPool


logger = logging.getLogger("collection.allocator")


def linear_block(start_from: int, count: int) -> List[int]:
    """Return the sequential ids ``start_from .. start_from + count - 1``."""
    if count < 0:
        raise ValueError(f"Reserved count must be non-negative, got {count}")
    return list(range(start_from, start_from + count))


class Allocator:
    """Draws batches of ids from a SupplyPool."""

    def __init__(self, pool: SupplyPool, entropy: EntropySource):
        self.pool = pool
        self.entropy = entropy

    def allocate(self, quantity: int, requester: str = "") -> List[int]:
        """
        Draw ``quantity`` distinct ids.

        Capacity is checked before the first draw, so a request either takes
        all of its ids or none.

        Args:
            quantity: Number of ids to draw
            requester: Identity passed to the entropy source

        Returns:
            Drawn ids in draw order
        """
        if quantity <= 0:
            raise InvalidQuantity()
        if quantity > self.pool.remaining_count:
            raise InsufficientSupply()

        token_ids = [self.pool.draw(self.entropy, requester) for _ in range(quantity)]
        logger.debug(f"Allocated {token_ids} for {requester or 'anonymous'}")
        return token_ids
