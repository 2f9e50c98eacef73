"""
Collection Engine - Allocation and Minting

This module provides the CollectionEngine, the single entry point for
minting, treasury withdrawal, owner configuration and state queries.

Every mutating operation runs under the exclusive side of one read-write
lock covering the supply pool, ownership record, treasury and access gate.
Preconditions are checked by the mint validator before anything is written,
so a failed request leaves the collection exactly as it was.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from validator.audit_logger import AuditLogger
from validator.core import MintRequestContext, MintValidator

from .access import AccessGate
from .allocator import Allocator, linear_block
from .concurrency import ReadWriteLock
from .entropy import BlockEntropySource, EntropySource
from .exceptions import CollectionError, TokenNotFound
from .fees import Amount, FeePolicy, parse_amount
from .ownership import OwnershipRecord
from .schema import CollectionConfig, CollectionProjection, MintReceipt, normalize_address
from .supply_pool import SupplyPool
from .treasury import Payout, Treasury


logger = logging.getLogger("collection.engine")


class CollectionEvent(str, Enum):
    """Collection event types."""
    MINT_ALLOWED = "mint_allowed"
    MINT_DENIED = "mint_denied"
    SUPPLY_EXHAUSTED = "supply_exhausted"
    WITHDRAWAL = "withdrawal"
    CONFIG_CHANGED = "config_changed"


EventCallback = Callable[[CollectionEvent, Dict[str, Any]], None]


class CollectionEngine:
    """Issues uniquely numbered tokens from a fixed-size pool."""

    def __init__(
        self,
        config: Union[CollectionConfig, Dict[str, Any]],
        entropy: Optional[EntropySource] = None,
        payout: Optional[Payout] = None,
        validator: Optional[MintValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        lock_timeout: float = 30.0
    ):
        """
        Initialize the collection and assign the reserved block to the owner.

        Args:
            config: Collection configuration (model or plain dict)
            entropy: Index source for random draws (defaults to BlockEntropySource)
            payout: Callable(recipient, amount) that moves withdrawn funds out
            validator: Mint precondition chain (defaults to the standard rules)
            audit_logger: Optional audit trail for mints, withdrawals and changes
            lock_timeout: Seconds to wait for the collection lock
        """
        if isinstance(config, dict):
            config = CollectionConfig(**config)

        self._config = config
        self._lock = ReadWriteLock(name=f"collection:{config.symbol}", timeout=lock_timeout)
        self._event_callbacks: List[EventCallback] = []

        self.access = AccessGate(config.owner_address, config.paused, config.revealed)
        self.fees = FeePolicy(config.cost_per_token)
        self._max_mint_amount = config.max_mint_amount
        self._base_uri = config.base_uri
        self._base_extension = config.base_extension
        self._not_revealed_uri = config.not_revealed_uri

        self.entropy = entropy or BlockEntropySource()
        self.pool = SupplyPool(
            first_id=config.start_from + config.reserved_count,
            size=config.max_supply - config.reserved_count
        )
        self.allocator = Allocator(self.pool, self.entropy)
        self.ownership = OwnershipRecord()
        self.treasury = Treasury(payout)
        self.validator = validator or MintValidator()
        self.audit = audit_logger

        reserved = linear_block(config.start_from, config.reserved_count)
        if reserved:
            self.ownership.record(reserved, self.access.owner)

        logger.info(
            f"Initialized {config.name} ({config.symbol}): supply {config.max_supply}, "
            f"ids {config.first_token_id}..{config.last_token_id}, "
            f"reserved {reserved} for {self.access.owner}"
        )

    # Events

    def add_event_callback(self, callback: EventCallback) -> None:
        """Add callback for collection events."""
        self._event_callbacks.append(callback)

    def _emit_event(self, event_type: CollectionEvent, data: Dict[str, Any]) -> None:
        """Emit event to registered callbacks."""
        for callback in self._event_callbacks:
            try:
                callback(event_type, data)
            except Exception:
                # Callback failures must not affect the operation
                logger.exception(f"Event callback failed for {event_type.value}")

    # Minting

    def mint(self, caller: str, quantity: int, paid_amount: Amount = 0) -> MintReceipt:
        """
        Mint ``quantity`` tokens to the caller.

        Args:
            caller: Identity submitting and receiving the mint
            quantity: Number of tokens requested
            paid_amount: Payment sent with the request (wei or unit string)

        Returns:
            MintReceipt with the drawn ids in draw order
        """
        return self._mint("mint", caller, caller, quantity, paid_amount)

    def mint_to(self, caller: str, recipient: str, quantity: int, paid_amount: Amount = 0) -> MintReceipt:
        """
        Mint ``quantity`` tokens to ``recipient``.

        The fee is keyed on the caller: the owner pays nothing, any other
        caller pays the exact fee.
        """
        return self._mint("mint_to", caller, recipient, quantity, paid_amount)

    def _mint(
        self,
        operation: str,
        caller: str,
        recipient: str,
        quantity: int,
        paid_amount: Amount
    ) -> MintReceipt:
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValueError(f"Quantity must be an integer, got {quantity!r}")

        caller = normalize_address(caller)
        recipient = normalize_address(recipient)
        paid = parse_amount(paid_amount)

        with self._lock.write_lock():
            context = MintRequestContext(
                caller=caller,
                recipient=recipient,
                quantity=quantity,
                paid_amount=paid,
                access=self.access,
                fees=self.fees,
                pool=self.pool,
                max_mint_amount=self._max_mint_amount
            )

            try:
                self.validator.validate(context)
            except CollectionError as e:
                if self.audit:
                    self.audit.log_mint(
                        operation, caller, recipient, quantity, paid,
                        rule=context.failed_rule, error=e
                    )
                self._emit_event(CollectionEvent.MINT_DENIED, {
                    'operation': operation,
                    'caller': caller,
                    'recipient': recipient,
                    'quantity': quantity,
                    'reason': str(e),
                    'rule': context.failed_rule
                })
                raise

            # All preconditions hold; nothing below can fail on policy grounds
            token_ids = self.allocator.allocate(quantity, caller)
            self.ownership.record(token_ids, recipient)
            credited = 0 if context.caller_is_owner else paid
            self.treasury.credit(credited)

            receipt = MintReceipt(
                caller=caller,
                recipient=recipient,
                token_ids=token_ids,
                paid_amount=credited
            )

            logger.info(
                f"{operation}: {caller} minted {token_ids} to {recipient}, "
                f"paid {credited} wei, {self.pool.remaining_count} remaining"
            )
            if self.audit:
                self.audit.log_mint(
                    operation, caller, recipient, quantity, credited, token_ids=token_ids
                )
            self._emit_event(CollectionEvent.MINT_ALLOWED, {
                'operation': operation,
                'caller': caller,
                'recipient': recipient,
                'token_ids': list(token_ids),
                'paid_amount': credited,
                'remaining_supply': self.pool.remaining_count
            })
            if self.pool.is_exhausted():
                logger.info("Supply exhausted")
                self._emit_event(CollectionEvent.SUPPLY_EXHAUSTED, {
                    'max_supply': self._config.max_supply,
                    'total_issued': len(self.ownership)
                })

            return receipt

    # Treasury

    def withdraw(self, caller: str) -> int:
        """
        Pay the whole treasury balance out to the owner.

        Returns:
            Amount withdrawn in wei

        Raises:
            NotOwner: If the caller is not the owner
            NothingToWithdraw: If the balance is zero
        """
        caller = normalize_address(caller)

        with self._lock.write_lock():
            try:
                self.access.require_owner(caller)
                amount = self.treasury.withdraw(self.access.owner)
            except CollectionError as e:
                if self.audit:
                    self.audit.log_withdrawal(caller, self.treasury.balance, error=e)
                raise

            if self.audit:
                self.audit.log_withdrawal(caller, amount)
            self._emit_event(CollectionEvent.WITHDRAWAL, {
                'recipient': self.access.owner,
                'amount': amount
            })
            return amount

    # Owner configuration

    def _configure(self, caller: str, operation: str, new_value: Any, apply: Callable[[Any], Any]) -> None:
        caller = normalize_address(caller)

        with self._lock.write_lock():
            try:
                self.access.require_owner(caller)
            except CollectionError as e:
                if self.audit:
                    self.audit.log_configuration_change(operation, caller, new_value=new_value, error=e)
                raise

            old_value = apply(new_value)

            if self.audit:
                self.audit.log_configuration_change(operation, caller, old_value, new_value)
            self._emit_event(CollectionEvent.CONFIG_CHANGED, {
                'operation': operation,
                'old_value': old_value,
                'new_value': new_value
            })

    def set_paused(self, caller: str, paused: bool) -> None:
        def apply(value):
            previous = self.access.paused
            self.access.set_paused(value)
            return previous
        self._configure(caller, "set_paused", paused, apply)

    def set_revealed(self, caller: str, revealed: bool) -> None:
        def apply(value):
            previous = self.access.revealed
            self.access.set_revealed(value)
            return previous
        self._configure(caller, "set_revealed", revealed, apply)

    def set_cost(self, caller: str, amount: Amount) -> None:
        self._configure(caller, "set_cost", amount, self.fees.set_cost)

    def set_max_mint_amount(self, caller: str, amount: int) -> None:
        def apply(value):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"Max mint amount must be a positive integer, got {value!r}")
            previous = self._max_mint_amount
            self._max_mint_amount = value
            logger.info(f"Max mint amount changed: {previous} -> {value}")
            return previous
        self._configure(caller, "set_max_mint_amount", amount, apply)

    def set_base_uri(self, caller: str, base_uri: str) -> None:
        def apply(value):
            previous = self._base_uri
            self._base_uri = str(value)
            return previous
        self._configure(caller, "set_base_uri", base_uri, apply)

    def set_base_extension(self, caller: str, extension: str) -> None:
        def apply(value):
            previous = self._base_extension
            self._base_extension = str(value)
            return previous
        self._configure(caller, "set_base_extension", extension, apply)

    def set_not_revealed_uri(self, caller: str, uri: str) -> None:
        def apply(value):
            previous = self._not_revealed_uri
            self._not_revealed_uri = str(value)
            return previous
        self._configure(caller, "set_not_revealed_uri", uri, apply)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self._configure(caller, "transfer_ownership", new_owner, self.access.transfer_ownership)

    # Queries

    def get_config(self) -> CollectionConfig:
        """Return a snapshot of the current configuration."""
        with self._lock.read_lock():
            return self._config.model_copy(update={
                'owner_address': self.access.owner,
                'cost_per_token': self.fees.cost_per_token,
                'max_mint_amount': self._max_mint_amount,
                'paused': self.access.paused,
                'revealed': self.access.revealed,
                'base_uri': self._base_uri,
                'base_extension': self._base_extension,
                'not_revealed_uri': self._not_revealed_uri
            })

    @property
    def owner(self) -> str:
        return self.access.owner

    @property
    def max_supply(self) -> int:
        return self._config.max_supply

    def remaining_supply(self) -> int:
        with self._lock.read_lock():
            return self.pool.remaining_count

    def total_issued(self) -> int:
        with self._lock.read_lock():
            return len(self.ownership)

    def owned_tokens(self, address: str) -> List[int]:
        with self._lock.read_lock():
            return self.ownership.tokens_of(address)

    def wallet_of_owner(self, address: str) -> List[int]:
        return self.owned_tokens(address)

    def balance_of(self, address: str) -> int:
        with self._lock.read_lock():
            return self.ownership.balance_of(address)

    def owner_of(self, token_id: int) -> str:
        with self._lock.read_lock():
            owner = self.ownership.owner_of(token_id)
        if owner is None:
            raise TokenNotFound()
        return owner

    def is_paused(self) -> bool:
        with self._lock.read_lock():
            return self.access.paused

    def is_revealed(self) -> bool:
        with self._lock.read_lock():
            return self.access.revealed

    def cost(self) -> int:
        with self._lock.read_lock():
            return self.fees.cost_per_token

    def max_mint_amount(self) -> int:
        with self._lock.read_lock():
            return self._max_mint_amount

    def required_fee(self, quantity: int) -> int:
        with self._lock.read_lock():
            return self.fees.required_fee(quantity)

    def treasury_balance(self) -> int:
        with self._lock.read_lock():
            return self.treasury.balance

    def token_metadata_ref(self, token_id: int) -> str:
        """
        Return the metadata reference for an issued token.

        While unrevealed every token resolves to the shared placeholder;
        afterwards to ``base_uri + id + base_extension``, or an empty string
        when no base URI is set.

        Raises:
            TokenNotFound: If the id has not been issued
        """
        with self._lock.read_lock():
            if token_id not in self.ownership:
                raise TokenNotFound()

            if not self.access.revealed:
                return self._not_revealed_uri
            if not self._base_uri:
                return ""
            return f"{self._base_uri}{token_id}{self._base_extension}"

    def projection(self) -> CollectionProjection:
        """Return the read-only projection consumed by the UI."""
        with self._lock.read_lock():
            return CollectionProjection(
                name=self._config.name,
                available_supply=self.pool.remaining_count,
                max_supply=self._config.max_supply,
                cost=self.fees.cost_per_token,
                max_mint_amount=self._max_mint_amount
            )

    def state_summary(self) -> Dict[str, Any]:
        """Flat summary of collection state for reporting."""
        with self._lock.read_lock():
            return {
                'name': self._config.name,
                'symbol': self._config.symbol,
                'owner': self.access.owner,
                'max_supply': self._config.max_supply,
                'start_from': self._config.start_from,
                'reserved_count': self._config.reserved_count,
                'total_issued': len(self.ownership),
                'remaining_supply': self.pool.remaining_count,
                'cost_per_token': self.fees.cost_per_token,
                'max_mint_amount': self._max_mint_amount,
                'paused': self.access.paused,
                'revealed': self.access.revealed,
                'treasury_balance': self.treasury.balance
            }

    def get_lock_metrics(self) -> Dict[str, Any]:
        return self._lock.get_metrics()
