"""
Access Gate

Holds the pause and reveal switches and the owner identity used for
owner-only permission checks.
"""

import logging

from .exceptions import MintingPaused, NotOwner
from .schema import normalize_address


logger = logging.getLogger("collection.access")


class AccessGate:
    """Pause/reveal switches plus the owner permission check."""

    def __init__(self, owner_address: str, paused: bool = True, revealed: bool = False):
        self._owner = normalize_address(owner_address)
        self._paused = bool(paused)
        self._revealed = bool(revealed)

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def revealed(self) -> bool:
        return self._revealed

    def is_owner(self, caller: str) -> bool:
        return normalize_address(caller) == self._owner

    def require_owner(self, caller: str) -> None:
        """Raise NotOwner unless ``caller`` is the collection owner."""
        if not self.is_owner(caller):
            logger.warning(f"Owner-only operation rejected for {caller}")
            raise NotOwner()

    def require_not_paused(self) -> None:
        """Raise MintingPaused while paused. The owner is not exempt."""
        if self._paused:
            raise MintingPaused()

    def set_paused(self, paused: bool) -> None:
        if not isinstance(paused, bool):
            raise ValueError(f"Paused state must be a bool, got {paused!r}")
        self._paused = paused
        logger.info(f"Minting {'paused' if paused else 'unpaused'}")

    def set_revealed(self, revealed: bool) -> None:
        if not isinstance(revealed, bool):
            raise ValueError(f"Revealed state must be a bool, got {revealed!r}")
        self._revealed = revealed
        logger.info(f"Collection revealed state set to {revealed}")

    def transfer_ownership(self, new_owner: str) -> str:
        """
        Hand owner rights to another identity.

        Returns:
            The previous owner
        """
        previous = self._owner
        self._owner = normalize_address(new_owner)
        logger.info(f"Ownership transferred: {previous} -> {self._owner}")
        return previous
