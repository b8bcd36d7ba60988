import pytest

from helpers.fakes import FakeLookup

from votebot_chains.catalog import ChainStore
from votebot_chains.engine import ConversationEngine
from votebot_chains.memory import memory_stores


@pytest.fixture(scope="session")
def chain_store():
    """Load the packaged chains once for the entire test session."""
    s = ChainStore()
    s.load()
    return s


@pytest.fixture
def lookup():
    """Fresh FakeLookup over the sample zip table."""
    return FakeLookup()


@pytest.fixture
def stores():
    """Empty in-memory stores for each test."""
    return memory_stores()


@pytest.fixture
def engine(chain_store, lookup):
    """ConversationEngine over the packaged chains and the fake lookup."""
    return ConversationEngine(chain_store, lookup=lookup)
