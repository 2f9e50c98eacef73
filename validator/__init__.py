"""
Mint Request Validator Module

This module provides the ordered precondition checks run before any token id
is allocated, plus the audit trail of mint and treasury decisions.
"""

from .core import (
    MintValidator,
    MintRequestContext,
    MintRule,
    ValidationResult
)

from .rules import (
    PauseRule,
    QuantityRule,
    MintLimitRule,
    SupplyLimitRule,
    FeeRule
)

from .audit_logger import (
    AuditLogger,
    AuditEvent,
    AuditEventType,
    AuditResult
)

__all__ = [
    "MintValidator",
    "MintRequestContext",
    "MintRule",
    "ValidationResult",
    "PauseRule",
    "QuantityRule",
    "MintLimitRule",
    "SupplyLimitRule",
    "FeeRule",
    "AuditLogger",
    "AuditEvent",
    "AuditEventType",
    "AuditResult"
]
