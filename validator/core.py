"""
Mint Request Validator Core

This module provides the MintValidator that runs the ordered precondition
rules for every mint request. Rules run in registration order and the first
failing rule aborts the request by raising its CollectionError, before any
state has been written.

The default chain is:
- Pause check
- Quantity must be positive
- Per-request cap
- Remaining supply
- Exact fee (owner exempt)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from collection.access import AccessGate
from collection.exceptions import CollectionError
from collection.fees import FeePolicy
from collection.supply_pool import SupplyPool


class ValidationResult(Enum):
    """Validation result codes."""
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class MintRequestContext:
    """
    Context object passed between mint rules.

    Holds the request itself and references to the collection components the
    rules consult. Rules only read from the components.
    """
    caller: str
    recipient: str
    quantity: int
    paid_amount: int

    access: AccessGate
    fees: FeePolicy
    pool: SupplyPool
    max_mint_amount: int

    # Validation state
    validation_errors: List[str] = field(default_factory=list)
    rule_results: Dict[str, bool] = field(default_factory=dict)
    failed_rule: Optional[str] = None

    @property
    def caller_is_owner(self) -> bool:
        return self.access.is_owner(self.caller)

    def add_error(self, rule_name: str, message: str):
        """Add a validation error."""
        self.validation_errors.append(f"{rule_name}: {message}")
        self.rule_results[rule_name] = False
        if self.failed_rule is None:
            self.failed_rule = rule_name

    def mark_rule_passed(self, rule_name: str):
        """Mark a rule as passed."""
        self.rule_results[rule_name] = True

    def has_errors(self) -> bool:
        return len(self.validation_errors) > 0

    def get_summary(self) -> Dict[str, Any]:
        """Get validation summary."""
        return {
            "caller": self.caller,
            "recipient": self.recipient,
            "quantity": self.quantity,
            "paid_amount": self.paid_amount,
            "errors": self.validation_errors,
            "failed_rule": self.failed_rule,
            "rules_passed": sum(1 for passed in self.rule_results.values() if passed),
            "rules_total": len(self.rule_results),
            "validation_result": (
                ValidationResult.REJECTED.value if self.has_errors()
                else ValidationResult.APPROVED.value
            )
        }


class MintRule(ABC):
    """
    Abstract base class for mint precondition rules.

    Each rule checks one invariant and raises the matching CollectionError
    when it does not hold.
    """

    def __init__(self, name: str, description: str, enabled: bool = True):
        self.name = name
        self.description = description
        self.enabled = enabled
        self.logger = logging.getLogger(f"validator.rules.{name}")

    @abstractmethod
    def check(self, context: MintRequestContext) -> None:
        """
        Check the request.

        Args:
            context: Mint request context

        Raises:
            CollectionError: If the rule is violated
        """
        pass

    def is_applicable(self, context: MintRequestContext) -> bool:
        return self.enabled


class MintValidator:
    """Runs the ordered rule chain for mint requests."""

    def __init__(self, rules: Optional[List[MintRule]] = None):
        self.logger = logging.getLogger("validator.engine")
        self.rules: List[MintRule] = []
        self.rule_registry: Dict[str, MintRule] = {}

        self.stats = {
            "total_validations": 0,
            "approved_validations": 0,
            "rejected_validations": 0
        }

        if rules is None:
            self._register_default_rules()
        else:
            for rule in rules:
                self.register_rule(rule)

    def _register_default_rules(self):
        """Register the default precondition chain in its required order."""
        # Import here to avoid circular imports
        from .rules.access import PauseRule
        from .rules.quantity import QuantityRule
        from .rules.mint_limits import MintLimitRule
        from .rules.supply_limit import SupplyLimitRule
        from .rules.fee import FeeRule

        for rule in (PauseRule(), QuantityRule(), MintLimitRule(), SupplyLimitRule(), FeeRule()):
            self.register_rule(rule)

    def register_rule(self, rule: MintRule):
        """
        Register a rule at the end of the chain.

        A rule with the same name replaces the existing one in place.
        """
        if rule.name in self.rule_registry:
            self.logger.warning(f"Rule {rule.name} already registered, replacing")
            index = self.rules.index(self.rule_registry[rule.name])
            self.rules[index] = rule
        else:
            self.rules.append(rule)

        self.rule_registry[rule.name] = rule
        self.logger.debug(f"Registered mint rule: {rule.name}")

    def unregister_rule(self, rule_name: str) -> bool:
        rule = self.rule_registry.pop(rule_name, None)
        if rule is None:
            return False
        self.rules.remove(rule)
        return True

    def get_rule(self, rule_name: str) -> Optional[MintRule]:
        return self.rule_registry.get(rule_name)

    def validate(self, context: MintRequestContext) -> None:
        """
        Run every applicable rule in order.

        Raises:
            CollectionError: From the first rule that fails
        """
        self.stats["total_validations"] += 1

        for rule in self.rules:
            if not rule.is_applicable(context):
                continue
            try:
                rule.check(context)
            except CollectionError as e:
                context.add_error(rule.name, str(e))
                self.stats["rejected_validations"] += 1
                self.logger.info(
                    f"Mint rejected by {rule.name}: {e} "
                    f"(caller={context.caller}, quantity={context.quantity})"
                )
                raise
            context.mark_rule_passed(rule.name)

        self.stats["approved_validations"] += 1

    def get_statistics(self) -> Dict[str, Any]:
        return {
            **self.stats,
            "rules": [rule.name for rule in self.rules]
        }
