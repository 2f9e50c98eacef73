"""
Supply Pool

The authoritative set of un-issued token ids, kept as an implicit array.
Slot ``i`` holds ``overrides[i]`` when present, otherwise ``first_id + i``.
A draw reads a random live slot, moves the last live value into it and
shrinks the boundary, so initialization and every draw are O(1) and a
removed id can never be read again.
"""

import logging
from typing import Dict, List

from .entropy import EntropySource
from .exceptions import Exhausted


logger = logging.getLogger("collection.supply_pool")


class SupplyPool:
    """Compacting implicit array of available ids with swap-removal."""

    def __init__(self, first_id: int, size: int):
        """
        Initialize the pool.

        Args:
            first_id: Smallest id in the pool
            size: Number of ids available, covering first_id .. first_id + size - 1
        """
        if size < 0:
            raise ValueError(f"Pool size must be non-negative, got {size}")

        self.first_id = first_id
        self.initial_size = size
        self._remaining = size
        self._overrides: Dict[int, int] = {}

    @property
    def remaining_count(self) -> int:
        return self._remaining

    @property
    def drawn_count(self) -> int:
        return self.initial_size - self._remaining

    def is_exhausted(self) -> bool:
        return self._remaining == 0

    def _slot(self, index: int) -> int:
        return self._overrides.get(index, self.first_id + index)

    def draw_at(self, index: int) -> int:
        """
        Remove and return the id held at ``index``.

        Raises:
            Exhausted: If the pool is empty
            ValueError: If index is outside the live range
        """
        if self._remaining == 0:
            raise Exhausted()
        if not 0 <= index < self._remaining:
            raise ValueError(f"Pool index {index} out of range [0, {self._remaining})")

        last = self._remaining - 1
        token_id = self._slot(index)

        if index != last:
            self._overrides[index] = self._slot(last)
        # The last slot is past the boundary from now on
        self._overrides.pop(last, None)
        self._remaining = last

        logger.debug(f"Drew id {token_id} from slot {index}, {self._remaining} remaining")
        return token_id

    def draw(self, entropy: EntropySource, requester: str = "") -> int:
        """
        Draw one id uniformly at random without replacement.

        Raises:
            Exhausted: If the pool is empty
        """
        if self._remaining == 0:
            raise Exhausted()

        index = entropy.next(self._remaining, requester)
        return self.draw_at(index)

    def available_ids(self) -> List[int]:
        """List the ids still in the pool. O(n), for inspection only."""
        return [self._slot(i) for i in range(self._remaining)]

    def override_count(self) -> int:
        return len(self._overrides)
