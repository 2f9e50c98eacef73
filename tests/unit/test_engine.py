"""
Tests for the collection engine.

Covers initialization, the mint paths, treasury withdrawal, owner
configuration, metadata references and collection events.
"""

import threading

import pytest

from collection.engine import CollectionEngine, CollectionEvent
from collection.entropy import BlockEntropySource, SeededEntropySource
from collection.exceptions import (
    InsufficientPayment,
    InsufficientSupply,
    InvalidQuantity,
    MintingPaused,
    NotOwner,
    NothingToWithdraw,
    QuantityExceedsLimit,
    TokenNotFound,
)
from collection.fees import ETHER, GWEI
from validator.audit_logger import AuditEventType, AuditLogger, AuditResult


def snapshot(engine):
    """Everything a failed request must leave unchanged."""
    return (
        engine.pool.available_ids(),
        engine.ownership.issued_ids(),
        engine.treasury_balance(),
        engine.state_summary(),
    )


class TestInitialization:
    """Test engine construction."""

    def test_reserved_block_assigned_to_owner(self, engine, owner):
        assert engine.owned_tokens(owner) == [3, 4]
        assert engine.remaining_supply() == 8
        assert engine.total_issued() == 2
        assert engine.owner_of(3) == owner

    def test_pool_covers_rest_of_range(self, engine):
        assert sorted(engine.pool.available_ids()) == list(range(5, 13))

    def test_initial_flags(self, engine):
        assert engine.is_paused() is True
        assert engine.is_revealed() is False
        assert engine.cost() == ETHER
        assert engine.max_mint_amount() == 2
        assert engine.treasury_balance() == 0

    def test_no_reservation(self, owner):
        engine = CollectionEngine({
            "owner_address": owner, "max_supply": 5, "start_from": 0, "reserved_count": 0
        })

        assert engine.owned_tokens(owner) == []
        assert engine.remaining_supply() == 5
        assert sorted(engine.pool.available_ids()) == [0, 1, 2, 3, 4]

    def test_full_reservation_leaves_empty_pool(self, owner):
        engine = CollectionEngine({
            "owner_address": owner, "max_supply": 3, "start_from": 1,
            "reserved_count": 3, "paused": False
        })

        assert engine.owned_tokens(owner) == [1, 2, 3]
        assert engine.remaining_supply() == 0
        with pytest.raises(InsufficientSupply):
            engine.mint(owner, 1)

    def test_dict_config_and_default_entropy(self, owner):
        engine = CollectionEngine({"owner_address": owner})

        assert isinstance(engine.entropy, BlockEntropySource)
        assert engine.max_supply == 10


class TestMint:
    """Test public minting."""

    def test_paid_mint(self, live_engine, alice):
        receipt = live_engine.mint(alice, 2, "2 ether")

        assert receipt.caller == alice
        assert receipt.recipient == alice
        assert receipt.quantity == 2
        assert receipt.paid_amount == 2 * ETHER
        assert len(set(receipt.token_ids)) == 2
        assert all(5 <= token_id <= 12 for token_id in receipt.token_ids)
        assert live_engine.owned_tokens(alice) == sorted(receipt.token_ids)
        assert live_engine.remaining_supply() == 6
        assert live_engine.treasury_balance() == 2 * ETHER

    def test_owner_mints_free(self, live_engine, owner):
        receipt = live_engine.mint(owner, 2)

        assert receipt.paid_amount == 0
        assert live_engine.balance_of(owner) == 4
        assert live_engine.treasury_balance() == 0

    def test_owner_payment_not_credited(self, live_engine, owner):
        receipt = live_engine.mint(owner, 1, ETHER)

        assert receipt.paid_amount == 0
        assert live_engine.treasury_balance() == 0

    def test_over_cap_rejected(self, live_engine, alice):
        before = snapshot(live_engine)

        with pytest.raises(QuantityExceedsLimit, match="maxMintAmount"):
            live_engine.mint(alice, 3, 3 * ETHER)

        assert snapshot(live_engine) == before

    def test_cap_applies_to_owner(self, live_engine, owner):
        with pytest.raises(QuantityExceedsLimit):
            live_engine.mint(owner, 3)

    @pytest.mark.parametrize("paid", [0, ETHER, 3 * ETHER, 2 * ETHER - 1])
    def test_fee_must_be_exact(self, live_engine, alice, paid):
        before = snapshot(live_engine)

        with pytest.raises(InsufficientPayment, match="Need to send the minting fee."):
            live_engine.mint(alice, 2, paid)

        assert snapshot(live_engine) == before

    def test_zero_quantity(self, live_engine, alice):
        with pytest.raises(InvalidQuantity):
            live_engine.mint(alice, 0)

    @pytest.mark.parametrize("quantity", [1.0, "2", True, None])
    def test_non_integer_quantity(self, live_engine, alice, quantity):
        with pytest.raises(ValueError):
            live_engine.mint(alice, quantity, ETHER)

    def test_paused_blocks_everyone(self, engine, owner, alice):
        """Pause applies to the owner as well."""
        before = snapshot(engine)

        with pytest.raises(MintingPaused, match="Minting is paused."):
            engine.mint(alice, 1, ETHER)
        with pytest.raises(MintingPaused):
            engine.mint(owner, 1)
        with pytest.raises(MintingPaused):
            engine.mint_to(owner, alice, 1)

        assert snapshot(engine) == before

    def test_supply_limit(self, live_engine, owner, alice):
        for _ in range(3):
            live_engine.mint(owner, 2)
        live_engine.mint(owner, 1)
        assert live_engine.remaining_supply() == 1

        with pytest.raises(InsufficientSupply, match="Requested number of tokens not available"):
            live_engine.mint(alice, 2, 2 * ETHER)
        assert live_engine.remaining_supply() == 1

        live_engine.mint(alice, 1, ETHER)
        assert live_engine.remaining_supply() == 0

    def test_exhaustion_and_conservation(self, live_engine, owner, alice):
        """Every id in range is issued exactly once."""
        while live_engine.remaining_supply() > 0:
            quantity = min(2, live_engine.remaining_supply())
            live_engine.mint(alice, quantity, quantity * ETHER)

        issued = live_engine.ownership.issued_ids()
        assert issued == set(range(3, 13))
        assert live_engine.total_issued() == live_engine.max_supply
        assert live_engine.treasury_balance() == 8 * ETHER

        with pytest.raises(InsufficientSupply):
            live_engine.mint(owner, 1)

    def test_conservation_after_each_mint(self, live_engine, alice, bob):
        for caller in (alice, bob, alice):
            live_engine.mint(caller, 2, 2 * ETHER)
            assert live_engine.remaining_supply() + live_engine.total_issued() == 10

    def test_hex_addresses_normalized(self):
        engine = CollectionEngine(
            {"owner_address": "0xAAaa", "paused": False},
            entropy=SeededEntropySource(5)
        )

        engine.mint("0xAAAA", 1)

        assert engine.balance_of("0xaaaa") == 3
        assert engine.treasury_balance() == 0

    def test_deterministic_with_seed(self, collection_config, owner, alice):
        def run():
            engine = CollectionEngine(collection_config, entropy=SeededEntropySource(99))
            engine.set_paused(owner, False)
            return [engine.mint(alice, 2, 2 * ETHER).token_ids for _ in range(3)]

        assert run() == run()


class TestMintTo:
    """Test minting on behalf of another identity."""

    def test_owner_mints_to_recipient_free(self, live_engine, owner, alice):
        receipt = live_engine.mint_to(owner, alice, 2)

        assert receipt.recipient == alice
        assert receipt.paid_amount == 0
        assert live_engine.balance_of(alice) == 2
        assert live_engine.balance_of(owner) == 2

    def test_non_owner_pays_exact_fee(self, live_engine, alice, bob):
        with pytest.raises(InsufficientPayment):
            live_engine.mint_to(alice, bob, 1)

        receipt = live_engine.mint_to(alice, bob, 1, ETHER)
        assert live_engine.owned_tokens(bob) == receipt.token_ids
        assert live_engine.balance_of(alice) == 0
        assert live_engine.treasury_balance() == ETHER

    def test_recipient_being_owner_does_not_exempt(self, live_engine, owner, alice):
        """The fee is keyed on the caller."""
        with pytest.raises(InsufficientPayment):
            live_engine.mint_to(alice, owner, 1)


class TestWithdraw:
    """Test treasury withdrawal."""

    def test_withdraw_to_owner(self, live_engine, owner, alice, bob):
        live_engine.mint(alice, 2, 2 * ETHER)
        live_engine.mint(bob, 2, 2 * ETHER)
        live_engine.mint(alice, 2, 2 * ETHER)

        before = live_engine.treasury.ledger.balance_of(owner)
        amount = live_engine.withdraw(owner)

        assert amount == 6 * ETHER
        assert live_engine.treasury.ledger.balance_of(owner) - before == 6 * ETHER
        assert live_engine.treasury_balance() == 0

    def test_withdraw_non_owner(self, live_engine, alice):
        live_engine.mint(alice, 1, ETHER)

        with pytest.raises(NotOwner):
            live_engine.withdraw(alice)
        assert live_engine.treasury_balance() == ETHER

    def test_withdraw_empty(self, engine, owner):
        with pytest.raises(NothingToWithdraw):
            engine.withdraw(owner)

    def test_custom_payout(self, collection_config, owner, alice):
        payouts = []
        engine = CollectionEngine(
            collection_config,
            entropy=SeededEntropySource(1),
            payout=lambda recipient, amount: payouts.append((recipient, amount))
        )
        engine.set_paused(owner, False)
        engine.mint(alice, 1, ETHER)

        engine.withdraw(owner)

        assert payouts == [(owner, ETHER)]


class TestConfiguration:
    """Test owner-only configuration."""

    @pytest.mark.parametrize("method, value", [
        ("set_paused", False),
        ("set_revealed", True),
        ("set_cost", "2 ether"),
        ("set_max_mint_amount", 5),
        ("set_base_uri", "ipfs://x/"),
        ("set_base_extension", ".txt"),
        ("set_not_revealed_uri", "ipfs://hidden"),
        ("transfer_ownership", "bob"),
    ])
    def test_non_owner_rejected(self, engine, alice, method, value):
        before = engine.get_config()

        with pytest.raises(NotOwner, match="Ownable: caller is not the owner"):
            getattr(engine, method)(alice, value)

        assert engine.get_config() == before

    def test_set_cost_changes_fee(self, live_engine, owner, alice):
        live_engine.set_cost(owner, "20 gwei")

        assert live_engine.required_fee(2) == 40 * GWEI
        with pytest.raises(InsufficientPayment):
            live_engine.mint(alice, 2, 2 * ETHER)
        live_engine.mint(alice, 2, "40 gwei")

    def test_set_max_mint_amount(self, live_engine, owner, alice):
        live_engine.set_max_mint_amount(owner, 4)

        receipt = live_engine.mint(alice, 4, 4 * ETHER)
        assert receipt.quantity == 4

    @pytest.mark.parametrize("value", [0, -2, True, "3"])
    def test_set_max_mint_amount_invalid(self, engine, owner, value):
        with pytest.raises(ValueError):
            engine.set_max_mint_amount(owner, value)
        assert engine.max_mint_amount() == 2

    def test_transfer_ownership(self, live_engine, owner, alice):
        live_engine.transfer_ownership(owner, alice)

        assert live_engine.owner == alice
        with pytest.raises(NotOwner):
            live_engine.set_paused(owner, True)

        # New owner mints free, old owner pays
        live_engine.mint(alice, 1)
        with pytest.raises(InsufficientPayment):
            live_engine.mint(owner, 1)

    def test_get_config_reflects_changes(self, engine, owner):
        engine.set_paused(owner, False)
        engine.set_cost(owner, "0.5 ether")

        config = engine.get_config()
        assert config.paused is False
        assert config.cost_per_token == ETHER // 2
        assert config.owner_address == owner


class TestMetadata:
    """Test metadata reference resolution."""

    def test_unrevealed_returns_placeholder(self, engine):
        assert engine.token_metadata_ref(3) == "ipfs://hidden/hidden.json"

    def test_revealed_reference(self, engine, owner):
        engine.set_revealed(owner, True)

        assert engine.token_metadata_ref(4) == "ipfs://trees/4.json"

        engine.set_base_extension(owner, ".meta")
        assert engine.token_metadata_ref(4) == "ipfs://trees/4.meta"

    def test_revealed_without_base_uri(self, engine, owner):
        engine.set_revealed(owner, True)
        engine.set_base_uri(owner, "")

        assert engine.token_metadata_ref(3) == ""

    def test_unissued_token(self, engine):
        """Ids still in the pool and ids out of range are both unknown."""
        with pytest.raises(TokenNotFound, match="URI query for nonexistent token"):
            engine.token_metadata_ref(5)
        with pytest.raises(TokenNotFound):
            engine.token_metadata_ref(99)

    def test_owner_of_unissued(self, engine):
        with pytest.raises(TokenNotFound):
            engine.owner_of(7)


class TestQueries:
    """Test read-only views."""

    def test_projection(self, live_engine, alice):
        live_engine.mint(alice, 2, 2 * ETHER)

        projection = live_engine.projection()
        assert projection.available_supply == 6
        assert projection.max_supply == 10
        assert projection.cost == ETHER
        assert projection.max_mint_amount == 2
        assert projection.model_dump(by_alias=True)["availableSupply"] == 6

    def test_wallet_of_owner(self, engine, owner):
        assert engine.wallet_of_owner(owner) == [3, 4]

    def test_state_summary(self, engine):
        summary = engine.state_summary()

        assert summary["total_issued"] == 2
        assert summary["remaining_supply"] == 8
        assert summary["paused"] is True
        assert summary["owner"] == "admin"

    def test_lock_metrics(self, engine):
        engine.remaining_supply()
        assert engine.get_lock_metrics()["acquisition_count"] >= 1


class TestEvents:
    """Test collection event callbacks."""

    def test_mint_events(self, live_engine, owner, alice):
        events = []
        live_engine.add_event_callback(lambda event, data: events.append((event, data)))

        live_engine.mint(alice, 1, ETHER)
        with pytest.raises(InsufficientPayment):
            live_engine.mint(alice, 1, 0)

        assert [event for event, _ in events] == [
            CollectionEvent.MINT_ALLOWED, CollectionEvent.MINT_DENIED
        ]
        assert events[1][1]["rule"] == "fee"
        assert events[1][1]["reason"] == "Need to send the minting fee."

    def test_supply_exhausted_event(self, owner):
        engine = CollectionEngine(
            {"owner_address": owner, "max_supply": 3, "reserved_count": 1, "paused": False},
            entropy=SeededEntropySource(3)
        )
        events = []
        engine.add_event_callback(lambda event, data: events.append(event))

        engine.mint(owner, 2)

        assert CollectionEvent.SUPPLY_EXHAUSTED in events

    def test_config_and_withdrawal_events(self, live_engine, owner, alice):
        events = []
        live_engine.add_event_callback(lambda event, data: events.append((event, data)))

        live_engine.mint(alice, 1, ETHER)
        live_engine.set_cost(owner, 5)
        live_engine.withdraw(owner)

        kinds = [event for event, _ in events]
        assert CollectionEvent.CONFIG_CHANGED in kinds
        assert kinds[-1] == CollectionEvent.WITHDRAWAL
        assert events[-1][1]["amount"] == ETHER

    def test_failing_callback_does_not_break_mint(self, live_engine, alice):
        def broken(event, data):
            raise RuntimeError("boom")

        live_engine.add_event_callback(broken)
        receipt = live_engine.mint(alice, 1, ETHER)

        assert receipt.quantity == 1


class TestAudit:
    """Test audit trail integration."""

    def test_mint_decisions_audited(self, live_engine, audit_logger, alice):
        live_engine.mint(alice, 1, ETHER)
        with pytest.raises(QuantityExceedsLimit):
            live_engine.mint(alice, 5, 5 * ETHER)

        mints = audit_logger.get_recent_events(event_type=AuditEventType.MINT)
        assert [event.result for event in mints] == [AuditResult.APPROVED, AuditResult.REJECTED]
        assert mints[1].rule == "mint_limit"

    def test_rejected_configuration_audited(self, engine, audit_logger, alice):
        with pytest.raises(NotOwner):
            engine.set_paused(alice, False)

        event = audit_logger.get_recent_events(limit=1)[0]
        assert event.event_type == AuditEventType.CONFIGURATION_CHANGE
        assert event.result == AuditResult.REJECTED
        assert event.caller == alice


class TestConcurrentMinting:
    """Test that parallel mints never double-issue."""

    def test_parallel_mints(self, owner):
        engine = CollectionEngine(
            {"owner_address": owner, "max_supply": 200, "start_from": 1,
             "reserved_count": 0, "max_mint_amount": 3, "cost_per_token": 0,
             "paused": False},
            entropy=BlockEntropySource()
        )
        receipts = []
        errors = []

        def minter(name):
            for _ in range(20):
                try:
                    receipts.append(engine.mint(name, 3))
                except InsufficientSupply as e:
                    errors.append(e)

        threads = [threading.Thread(target=minter, args=(f"user{i}",)) for i in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        issued = [token_id for receipt in receipts for token_id in receipt.token_ids]
        assert len(issued) == len(set(issued))
        assert engine.total_issued() == len(issued)
        assert engine.remaining_supply() == 200 - len(issued)
        assert engine.remaining_supply() < 3


class TestAuditSinkFailure:
    """Committed operations return normally when the audit file cannot be written."""

    @pytest.fixture
    def broken_sink_engine(self, collection_config, owner, tmp_path):
        # A directory cannot be opened for appending
        audit = AuditLogger(log_file=tmp_path)
        engine = CollectionEngine(
            collection_config,
            entropy=SeededEntropySource(1234),
            audit_logger=audit
        )
        engine.set_paused(owner, False)
        return engine

    def test_mint_returns_receipt(self, broken_sink_engine, alice):
        receipt = broken_sink_engine.mint(alice, 2, 2 * ETHER)

        assert receipt.quantity == 2
        assert broken_sink_engine.remaining_supply() == 6
        assert broken_sink_engine.owned_tokens(alice) == sorted(receipt.token_ids)
        assert broken_sink_engine.treasury_balance() == 2 * ETHER
        assert broken_sink_engine.audit.get_statistics()["write_errors"] >= 2

    def test_withdraw_and_configure_return(self, broken_sink_engine, owner, alice):
        broken_sink_engine.mint(alice, 1, ETHER)

        assert broken_sink_engine.withdraw(owner) == ETHER
        broken_sink_engine.set_cost(owner, "2 ether")

        assert broken_sink_engine.cost() == 2 * ETHER
        assert broken_sink_engine.treasury_balance() == 0

    def test_rejected_mint_raises_policy_error(self, broken_sink_engine, alice):
        with pytest.raises(InsufficientPayment):
            broken_sink_engine.mint(alice, 1, 0)
