"""
Collection Engine - Schema Models

This module defines the Pydantic models for collection configuration, mint
receipts and the read-only projection published to UI collaborators.
"""

import re
from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .fees import ETHER, parse_amount


HEX_ADDRESS_PATTERN = re.compile(r'^0x[a-fA-F0-9]+$')


def normalize_address(value: str) -> str:
    """
    Normalize an identity string.

    Hex addresses (``0x``-prefixed) compare case-insensitively, so they are
    lowercased. Any other non-empty identity is kept as given, minus
    surrounding whitespace.
    """
    if not isinstance(value, str):
        raise ValueError('Address must be a string')

    value = value.strip()
    if not value:
        raise ValueError('Address must not be empty')

    if HEX_ADDRESS_PATTERN.match(value):
        return value.lower()
    return value


class CollectionConfig(BaseModel):
    """Collection configuration model."""

    name: str = Field(default="KryptoTrees NFT", min_length=1, max_length=100)
    symbol: str = Field(default="TREE", min_length=1, max_length=10)
    owner_address: str = Field(..., description="Identity with elevated rights")
    max_supply: int = Field(default=10, gt=0, description="Fixed collection size")
    start_from: int = Field(default=3, ge=0, description="First issuable token id")
    reserved_count: int = Field(default=2, ge=0, description="Ids linearly reserved for the owner")
    cost_per_token: int = Field(default=ETHER, ge=0, description="Fee per token in wei")
    max_mint_amount: int = Field(default=2, gt=0, description="Maximum tokens per request")
    paused: bool = Field(default=True)
    revealed: bool = Field(default=False)
    base_uri: str = Field(default="")
    base_extension: str = Field(default=".json")
    not_revealed_uri: str = Field(default="")

    @field_validator('owner_address')
    @classmethod
    def validate_owner_address(cls, v):
        """Normalize the owner identity."""
        return normalize_address(v)

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v):
        """Validate symbol format."""
        if not re.match(r'^[A-Za-z0-9]+$', v):
            raise ValueError('Symbol must contain only letters and numbers')
        return v.upper()

    @field_validator('cost_per_token', mode='before')
    @classmethod
    def validate_cost(cls, v):
        """Accept unit strings such as '1 ether' for the token cost."""
        return parse_amount(v)

    @model_validator(mode='after')
    def validate_supply_constraints(self):
        """Validate supply constraint relationships."""
        if self.reserved_count > self.max_supply:
            raise ValueError('Reserved count cannot exceed maximum supply')
        return self

    @property
    def first_token_id(self) -> int:
        return self.start_from

    @property
    def last_token_id(self) -> int:
        return self.start_from + self.max_supply - 1


class MintReceipt(BaseModel):
    """Record of a successful mint request."""

    caller: str
    recipient: str
    token_ids: List[int] = Field(default_factory=list)
    paid_amount: int = Field(default=0, ge=0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def quantity(self) -> int:
        return len(self.token_ids)


class CollectionProjection(BaseModel):
    """Read-only view of collection state consumed by the UI layer."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    available_supply: int = Field(..., ge=0, alias="availableSupply")
    max_supply: int = Field(..., gt=0, alias="maxSupply")
    cost: int = Field(..., ge=0)
    max_mint_amount: int = Field(..., gt=0, alias="maxMintAmount")
