"""
Shared test fixtures and helpers for the wshypermedia test suite.
"""

import asyncio
import pytest

from wshypermedia.config import HypermediaConfig
from wshypermedia.renderers.inmemory import InMemoryRenderer
from wshypermedia.transports.inmemory import InMemoryTransportFactory

URL = "ws://localhost:8765/ws"


# ============================================================================
# Helpers
# ============================================================================

async def eventually(predicate, timeout: float = 2.0, interval: float = 0.005):
    """Poll ``predicate`` until it returns truthy or ``timeout`` expires."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)


def calls_named(renderer: InMemoryRenderer, method: str):
    """Renderer calls for one primitive, as (element_id, args) pairs."""
    return [(element_id, args) for name, element_id, args in renderer.calls if name == method]


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def renderer():
    """Headless document with the elements the tests target."""
    r = InMemoryRenderer(["content", "btn", "old", "list", "box", "name", "agree", "colors"])
    return r


@pytest.fixture
def factory():
    """In-memory transport factory (accepts every handshake)."""
    return InMemoryTransportFactory()


@pytest.fixture
def fast_config():
    """Config with millisecond reconnect delays."""
    return HypermediaConfig(reconnect_delay=5, max_reconnect_attempts=3)
