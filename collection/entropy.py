"""
Pseudo-random Index Sources

Entropy sources pick the pool index for each draw. ``BlockEntropySource``
hashes request-scoped signals (a block-like counter, wall-clock time, the
requester and a per-call nonce) and reduces the digest modulo the bound.
It resists prediction by ordinary callers only; anyone who controls the
inputs can steer it. ``SeededEntropySource`` is reproducible and meant for
simulations and tests.
"""

import hashlib
import itertools
import random
import time
from abc import ABC, abstractmethod
from threading import Lock
from typing import Optional


class EntropySource(ABC):
    """Source of bounded pseudo-random indices."""

    @abstractmethod
    def next(self, bound: int, requester: str = "") -> int:
        """
        Return an integer in [0, bound).

        Args:
            bound: Exclusive upper bound, must be positive
            requester: Identity of the caller the draw is made for
        """
        pass

    @staticmethod
    def _check_bound(bound: int) -> None:
        if bound <= 0:
            raise ValueError(f"Entropy bound must be positive, got {bound}")


class BlockEntropySource(EntropySource):
    """Hash of block-like request signals reduced modulo the bound."""

    def __init__(self, start_block: int = 0):
        self._blocks = itertools.count(start_block)
        self._nonce = 0
        self._lock = Lock()

    def next(self, bound: int, requester: str = "") -> int:
        self._check_bound(bound)

        with self._lock:
            block_number = next(self._blocks)
            self._nonce += 1
            nonce = self._nonce

        payload = f"{block_number}:{time.time_ns()}:{requester}:{nonce}:{bound}".encode('utf-8')
        digest = hashlib.sha256(payload).digest()
        return int.from_bytes(digest, 'big') % bound


class SeededEntropySource(EntropySource):
    """Deterministic source backed by ``random.Random``."""

    def __init__(self, seed: Optional[int] = None):
        self._seed = seed
        self._rng = random.Random(seed)

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    def next(self, bound: int, requester: str = "") -> int:
        self._check_bound(bound)
        return self._rng.randrange(bound)
