"""Shared fixtures: mock puppets with a short watchdog timeout."""

import pytest
import pytest_asyncio

from chatpuppet.models.options import PuppetOptions
from chatpuppet.platforms.mock_puppet import MockContact, MockPuppet

# Short enough to keep watchdog tests fast, long enough for scheduler jitter
WATCHDOG_TIMEOUT = 0.2


class EventRecorder:
    """Collects every payload passed to it, in call order."""

    def __init__(self) -> None:
        self.events = []

    def __call__(self, event) -> None:
        self.events.append(event)

    def __len__(self) -> int:
        return len(self.events)


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def puppet():
    """A stopped MockPuppet."""
    return MockPuppet(PuppetOptions(name="TestPuppet", watchdog_timeout=WATCHDOG_TIMEOUT))


@pytest_asyncio.fixture
async def started_puppet(puppet: MockPuppet):
    """A MockPuppet that is ON, plus two known contacts; stopped afterwards."""
    await puppet.start()
    puppet.add_contact(MockContact("alice", "Alice"))
    puppet.add_contact(MockContact("bob", "Bob"))
    yield puppet
    await puppet.stop()


@pytest.fixture
def alice():
    return MockContact("alice", "Alice")


@pytest.fixture
def bob():
    return MockContact("bob", "Bob")
