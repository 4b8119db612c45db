# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for xbtc harness tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from chains.gateway import LedgerGateway  # noqa: E402
from chains.providers import AptosRestProvider  # noqa: E402
from chains.signer import Ed25519Signer  # noqa: E402
from execution.operations import TokenOperations  # noqa: E402
from execution.orchestrator import TransactionOrchestrator  # noqa: E402
from execution.token_state import TokenStateReader  # noqa: E402
from tests.fakes import BASE_URL, FakeXbtcNode  # noqa: E402

CONTRACT = "0x8e17e166bcd06535d7fbd016c3ca2ebf23cb515423f75fcf30e2516d9070918c"


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


@pytest.fixture
def admin_signer():
    return Ed25519Signer.from_hex("0x" + "11" * 32)


@pytest.fixture
def account2_signer():
    return Ed25519Signer.from_hex("0x" + "22" * 32)


@pytest.fixture
def node(admin_signer):
    return FakeXbtcNode(CONTRACT, admin_signer.address)


@pytest.fixture
def gateway(node):
    provider = AptosRestProvider("fake", [BASE_URL], transport=node.transport())
    return LedgerGateway(
        provider,
        wait_timeout_seconds=2,
        poll_interval_seconds=0,
        explorer_url_template="https://explorer.example/txn/{tx_hash}?network={network}",
    )


@pytest.fixture
def ops():
    return TokenOperations(CONTRACT)


@pytest.fixture
def reader(gateway, ops):
    return TokenStateReader(gateway, ops)


@pytest.fixture
def admin_orch(gateway, admin_signer):
    return TransactionOrchestrator(gateway, admin_signer)


@pytest.fixture
def account2_orch(gateway, account2_signer):
    return TransactionOrchestrator(gateway, account2_signer)
