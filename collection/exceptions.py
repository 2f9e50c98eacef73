"""
Collection Engine Exceptions

This module defines the failure taxonomy for minting, allocation, access and
treasury operations. Every error carries a fixed, user-facing message that
callers surface verbatim.
"""


class CollectionError(Exception):
    """Base exception for all collection engine errors."""

    message = "Collection operation failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)


class MintingPaused(CollectionError):
    """Raised when a mint is requested while minting is paused."""

    message = "Minting is paused."


class InvalidQuantity(CollectionError):
    """Raised when the requested mint quantity is zero or negative."""

    message = "Mint amount must be greater than 0."


class QuantityExceedsLimit(CollectionError):
    """Raised when the requested quantity is above the per-request cap."""

    message = "Mint amount must not be greater than maxMintAmount"


class InsufficientSupply(CollectionError):
    """Raised when the pool cannot satisfy the requested quantity."""

    message = "Requested number of tokens not available"


class InsufficientPayment(CollectionError):
    """Raised when the payment does not match the required fee exactly."""

    message = "Need to send the minting fee."


class NotOwner(CollectionError):
    """Raised when an owner-only operation is invoked by another identity."""

    message = "Ownable: caller is not the owner"


class Exhausted(CollectionError):
    """Raised when drawing from an empty supply pool."""

    message = "No more tokens available"


class NothingToWithdraw(CollectionError):
    """Raised when the treasury balance is zero at withdrawal time."""

    message = "Nothing to withdraw"


class TokenNotFound(CollectionError):
    """Raised when querying a token id that has not been issued."""

    message = "URI query for nonexistent token"
