"""Pytest configuration and fixtures."""

import os

import pytest
from solders.keypair import Keypair

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["DEBUG"] = "true"
os.environ["SIGNER_BACKEND"] = "local"
os.environ["SOLANA_NETWORK"] = "devnet"

from fakes import CountingSigner, FakeBroadcaster
from solcustody.context import set_context
from solcustody.utils.locks import clear_user_locks


@pytest.fixture(autouse=True)
def _reset_process_state():
    """Per-user locks and the process context never leak between tests."""
    clear_user_locks()
    yield
    clear_user_locks()
    set_context(None)


@pytest.fixture
def broadcaster() -> FakeBroadcaster:
    return FakeBroadcaster()


@pytest.fixture
def signer() -> CountingSigner:
    return CountingSigner()


@pytest.fixture
def wallet(signer):
    """Custodial wallet known to the ``signer`` fixture."""
    return signer.add_key(Keypair())


@pytest.fixture
def co_signer() -> Keypair:
    return Keypair()
