"""
Ownership Record

Append-only mapping from token id to owner, with a per-owner index for
balance and wallet queries.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set

from .schema import normalize_address


class OwnershipRecord:
    """Append-only token id -> owner store."""

    def __init__(self):
        self._owners: Dict[int, str] = {}
        self._tokens_by_owner: Dict[str, Set[int]] = defaultdict(set)

    def __len__(self) -> int:
        return len(self._owners)

    def __contains__(self, token_id: int) -> bool:
        return token_id in self._owners

    def record(self, token_ids: Iterable[int], owner: str) -> None:
        """
        Record ``owner`` for every id in ``token_ids``.

        The whole batch is checked before anything is written.

        Raises:
            ValueError: If any id is already recorded or repeated in the batch
        """
        owner = normalize_address(owner)
        token_ids = list(token_ids)

        if len(set(token_ids)) != len(token_ids):
            raise ValueError(f"Duplicate token ids in batch: {token_ids}")
        for token_id in token_ids:
            if token_id in self._owners:
                raise ValueError(f"Token id {token_id} already issued")

        for token_id in token_ids:
            self._owners[token_id] = owner
            self._tokens_by_owner[owner].add(token_id)

    def owner_of(self, token_id: int) -> Optional[str]:
        return self._owners.get(token_id)

    def tokens_of(self, owner: str) -> List[int]:
        """Return the ids held by ``owner``, ascending."""
        return sorted(self._tokens_by_owner.get(normalize_address(owner), ()))

    def balance_of(self, owner: str) -> int:
        return len(self._tokens_by_owner.get(normalize_address(owner), ()))

    def issued_ids(self) -> Set[int]:
        return set(self._owners)
