"""
Random-Allocation Collection Core

This package issues uniquely numbered collectible tokens from a fixed-size
pool:
- Linear reservation of an owner block at initialization
- Random draws without replacement for every later mint
- Exact-fee, quantity, supply and pause checks applied atomically
- Fee accounting and owner withdrawal

The engine lives in ``collection.engine``.
"""

from .exceptions import (
    CollectionError,
    MintingPaused,
    InvalidQuantity,
    QuantityExceedsLimit,
    InsufficientSupply,
    InsufficientPayment,
    NotOwner,
    Exhausted,
    NothingToWithdraw,
    TokenNotFound,
)
from .schema import CollectionConfig, CollectionProjection, MintReceipt
from .fees import ETHER, GWEI, FeePolicy, parse_amount, format_amount
from .entropy import EntropySource, BlockEntropySource, SeededEntropySource
from .supply_pool import SupplyPool

__all__ = [
    "CollectionError",
    "MintingPaused",
    "InvalidQuantity",
    "QuantityExceedsLimit",
    "InsufficientSupply",
    "InsufficientPayment",
    "NotOwner",
    "Exhausted",
    "NothingToWithdraw",
    "TokenNotFound",
    "CollectionConfig",
    "CollectionProjection",
    "MintReceipt",
    "ETHER",
    "GWEI",
    "FeePolicy",
    "parse_amount",
    "format_amount",
    "EntropySource",
    "BlockEntropySource",
    "SeededEntropySource",
    "SupplyPool",
]
