"""
Tests for the collection audit trail.
"""

import json

from collection.exceptions import InsufficientPayment, NotOwner
from validator.audit_logger import AuditEvent, AuditEventType, AuditLogger, AuditResult


class TestAuditEvent:
    """Test AuditEvent data class."""

    def test_defaults(self):
        event = AuditEvent(
            event_type=AuditEventType.MINT,
            operation="mint",
            caller="alice",
            result=AuditResult.APPROVED
        )

        assert event.event_id.startswith("audit_")
        assert event.timestamp > 0

        data = event.to_dict()
        assert data["event_type"] == "mint"
        assert data["result"] == "approved"


class TestAuditLogger:
    """Test AuditLogger recording and statistics."""

    def test_log_mint_outcomes(self):
        audit = AuditLogger()

        approved = audit.log_mint("mint", "alice", "alice", 2, 2, token_ids=[7, 9])
        rejected = audit.log_mint(
            "mint", "bob", "bob", 1, 0, rule="fee", error=InsufficientPayment()
        )

        assert approved.result == AuditResult.APPROVED
        assert approved.token_ids == [7, 9]
        assert rejected.result == AuditResult.REJECTED
        assert rejected.rule == "fee"
        assert rejected.error_code == "InsufficientPayment"
        assert rejected.error_message == "Need to send the minting fee."

        stats = audit.get_statistics()
        assert stats["mints_approved"] == 1
        assert stats["mints_rejected"] == 1
        assert stats["mint_success_rate_percent"] == 50.0

    def test_withdrawal_and_configuration(self):
        audit = AuditLogger()

        audit.log_withdrawal("admin", 6)
        audit.log_withdrawal("alice", 6, error=NotOwner())
        audit.log_configuration_change("set_cost", "admin", 1, 2)

        stats = audit.get_statistics()
        assert stats["withdrawals"] == 1
        assert stats["configuration_changes"] == 1

        changes = audit.get_recent_events(event_type=AuditEventType.CONFIGURATION_CHANGE)
        assert changes[0].context == {"old_value": 1, "new_value": 2}

    def test_buffer_is_bounded(self):
        audit = AuditLogger(max_events=3)
        for i in range(5):
            audit.log_mint("mint", "alice", "alice", 1, i)

        events = audit.get_recent_events()
        assert len(events) == 3
        assert [event.amount for event in events] == [2, 3, 4]
        assert audit.get_statistics()["mints_approved"] == 5

    def test_recent_events_limit(self):
        audit = AuditLogger()
        for i in range(4):
            audit.log_mint("mint", "alice", "alice", 1, i)

        assert [event.amount for event in audit.get_recent_events(limit=2)] == [2, 3]

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "audit" / "events.jsonl"
        audit = AuditLogger(log_file=log_file)

        audit.log_mint("mint", "alice", "alice", 1, 1, token_ids=[5])
        audit.log_withdrawal("admin", 1)

        lines = log_file.read_text().strip().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["token_ids"] == [5]
        assert json.loads(lines[1])["event_type"] == "withdrawal"

    def test_unwritable_sink_counts_errors(self, tmp_path):
        """A failing file write keeps the event in memory and is counted."""
        audit = AuditLogger(log_file=tmp_path)

        event = audit.log_mint("mint", "alice", "alice", 1, 1, token_ids=[5])

        assert audit.get_recent_events() == [event]
        stats = audit.get_statistics()
        assert stats["write_errors"] == 1
        assert stats["mints_approved"] == 1
