"""
Audit Logging for Collection Operations

This module keeps an audit trail of every mint decision, withdrawal and
configuration change. Events are held in a bounded in-memory buffer and can
also be appended to a JSON-lines file.
"""

import json
import logging
import threading
import time
import uuid
from collections import Counter, deque
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional, Union


class AuditEventType(Enum):
    """Audit event type categories."""
    MINT = "mint"
    WITHDRAWAL = "withdrawal"
    CONFIGURATION_CHANGE = "configuration_change"


class AuditResult(Enum):
    """Audit event result types."""
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class AuditEvent:
    """Single audit trail entry."""
    event_type: AuditEventType
    operation: str
    caller: str
    result: AuditResult
    event_id: str = ""
    timestamp: float = 0.0

    recipient: Optional[str] = None
    quantity: Optional[int] = None
    amount: Optional[int] = None
    token_ids: List[int] = field(default_factory=list)

    rule: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Initialize derived fields."""
        if not self.event_id:
            self.event_id = f"audit_{int(time.time() * 1000000)}_{uuid.uuid4().hex[:8]}"
        if not self.timestamp:
            self.timestamp = time.time()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type.value
        data["result"] = self.result.value
        return data


class AuditLogger:
    """Bounded in-memory audit trail with optional JSON-lines sink."""

    def __init__(self, log_file: Optional[Union[str, Path]] = None, max_events: int = 1000):
        self.log_file = Path(log_file) if log_file else None
        self.max_events = max_events
        self.logger = logging.getLogger("validator.audit")
        self._events: Deque[AuditEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()
        self._counts: Counter = Counter()
        self._write_errors = 0

        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)

    def record(self, event: AuditEvent) -> AuditEvent:
        """Store an event and append it to the log file if one is configured."""
        with self._lock:
            self._events.append(event)
            self._counts[(event.event_type.value, event.result.value)] += 1

            if self.log_file:
                self._write_event(event)

        self.logger.debug(
            f"Audit {event.event_type.value}/{event.operation}: {event.result.value} "
            f"caller={event.caller}"
        )
        return event

    def _write_event(self, event: AuditEvent) -> None:
        """Append one event to the JSON-lines sink; failures are counted and logged."""
        try:
            with open(self.log_file, 'a') as f:
                f.write(json.dumps(event.to_dict(), default=str) + "\n")
        except OSError as e:
            self._write_errors += 1
            self.logger.error(f"Failed to write audit event {event.event_id}: {e}")

    def log_mint(
        self,
        operation: str,
        caller: str,
        recipient: str,
        quantity: int,
        paid_amount: int,
        token_ids: Optional[List[int]] = None,
        rule: Optional[str] = None,
        error: Optional[Exception] = None
    ) -> AuditEvent:
        """Record the outcome of a mint request."""
        return self.record(AuditEvent(
            event_type=AuditEventType.MINT,
            operation=operation,
            caller=caller,
            recipient=recipient,
            quantity=quantity,
            amount=paid_amount,
            token_ids=list(token_ids or []),
            result=AuditResult.REJECTED if error else AuditResult.APPROVED,
            rule=rule,
            error_code=type(error).__name__ if error else None,
            error_message=str(error) if error else None
        ))

    def log_withdrawal(self, caller: str, amount: int, error: Optional[Exception] = None) -> AuditEvent:
        """Record a withdrawal attempt."""
        return self.record(AuditEvent(
            event_type=AuditEventType.WITHDRAWAL,
            operation="withdraw",
            caller=caller,
            amount=amount,
            result=AuditResult.REJECTED if error else AuditResult.APPROVED,
            error_code=type(error).__name__ if error else None,
            error_message=str(error) if error else None
        ))

    def log_configuration_change(
        self,
        operation: str,
        caller: str,
        old_value: Any = None,
        new_value: Any = None,
        error: Optional[Exception] = None
    ) -> AuditEvent:
        """Record an owner configuration change or a rejected attempt."""
        return self.record(AuditEvent(
            event_type=AuditEventType.CONFIGURATION_CHANGE,
            operation=operation,
            caller=caller,
            result=AuditResult.REJECTED if error else AuditResult.APPROVED,
            error_code=type(error).__name__ if error else None,
            error_message=str(error) if error else None,
            context={"old_value": old_value, "new_value": new_value}
        ))

    def get_recent_events(
        self,
        limit: int = 50,
        event_type: Optional[AuditEventType] = None
    ) -> List[AuditEvent]:
        """Return up to ``limit`` most recent events, newest last."""
        with self._lock:
            events = list(self._events)

        if event_type:
            events = [e for e in events if e.event_type == event_type]
        return events[-limit:] if limit else events

    def get_statistics(self) -> Dict[str, Any]:
        """Summarize recorded outcomes."""
        with self._lock:
            counts = dict(self._counts)
            buffered = len(self._events)
            write_errors = self._write_errors

        mint_approved = counts.get((AuditEventType.MINT.value, AuditResult.APPROVED.value), 0)
        mint_rejected = counts.get((AuditEventType.MINT.value, AuditResult.REJECTED.value), 0)
        total_mints = mint_approved + mint_rejected

        return {
            "buffered_events": buffered,
            "mints_approved": mint_approved,
            "mints_rejected": mint_rejected,
            "mint_success_rate_percent": (
                round(mint_approved / total_mints * 100, 2) if total_mints else 0.0
            ),
            "withdrawals": counts.get(
                (AuditEventType.WITHDRAWAL.value, AuditResult.APPROVED.value), 0
            ),
            "configuration_changes": counts.get(
                (AuditEventType.CONFIGURATION_CHANGE.value, AuditResult.APPROVED.value), 0
            ),
            "write_errors": write_errors
        }
