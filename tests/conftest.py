"""
Pytest configuration and fixtures for allocator tests.
"""

import pytest

from collection.engine import CollectionEngine
from collection.entropy import SeededEntropySource
from collection.fees import ETHER
from collection.schema import CollectionConfig
from validator.audit_logger import AuditLogger


OWNER = "admin"
ALICE = "alice"
BOB = "bob"


@pytest.fixture
def owner():
    return OWNER


@pytest.fixture
def alice():
    return ALICE


@pytest.fixture
def bob():
    return BOB


@pytest.fixture
def collection_config():
    """Default ten-token collection starting at id 3 with two reserved."""
    return CollectionConfig(
        name="KryptoTrees NFT",
        symbol="TREE",
        owner_address=OWNER,
        max_supply=10,
        start_from=3,
        reserved_count=2,
        cost_per_token=ETHER,
        max_mint_amount=2,
        paused=True,
        revealed=False,
        base_uri="ipfs://trees/",
        base_extension=".json",
        not_revealed_uri="ipfs://hidden/hidden.json"
    )


@pytest.fixture
def audit_logger():
    return AuditLogger(max_events=100)


@pytest.fixture
def engine(collection_config, audit_logger):
    """Paused engine with deterministic draws."""
    return CollectionEngine(
        collection_config,
        entropy=SeededEntropySource(1234),
        audit_logger=audit_logger
    )


@pytest.fixture
def live_engine(engine):
    """Engine with minting unpaused by the owner."""
    engine.set_paused(OWNER, False)
    return engine


@pytest.fixture
def write_file(tmp_path):
    """Write text to a file under tmp_path and return its path."""
    def _write(name, content):
        path = tmp_path / name
        path.write_text(content)
        return path
    return _write
