"""
create_client() and bootstrap(): explicit construction, no global instance.
"""

import pytest

from wshypermedia.client import bootstrap, create_client
from wshypermedia.connection import ConnectionManager, ConnectionState
from wshypermedia.faults import ConnectionFault, Fault
from wshypermedia.renderers.inmemory import InMemoryRenderer

from conftest import URL


class TestCreateClient:

    def test_returns_owned_instance(self, renderer):
        a = create_client(URL, renderer, connect=False)
        b = create_client(URL, renderer, connect=False)
        assert isinstance(a, ConnectionManager)
        assert a is not b

    def test_default_renderer(self):
        client = create_client(URL, connect=False)
        assert isinstance(client.renderer, InMemoryRenderer)

    def test_options(self, renderer):
        client = create_client(URL, renderer, connect=False, auto_reconnect=False, max_parts=8)
        assert client.config.auto_reconnect is False
        assert client.config.max_parts == 8

    def test_mistyped_option_raises_fault(self, renderer):
        with pytest.raises(Fault, match="reconnect_delay"):
            create_client(URL, renderer, connect=False, reconnect_delay="1000")

    def test_invalid_url(self, renderer):
        with pytest.raises(ConnectionFault):
            create_client("ftp://example.com", renderer)

    @pytest.mark.asyncio
    async def test_connects(self, renderer, factory):
        client = create_client(URL, renderer, transport_factory=factory)
        assert await client.wait_open(1)
        await client.disconnect()


class TestBootstrap:

    def test_no_url_configured(self, renderer, monkeypatch):
        monkeypatch.delenv("WSHM_URL", raising=False)
        assert bootstrap(renderer) is None

    def test_from_environment(self, renderer, monkeypatch):
        monkeypatch.setenv("WSHM_URL", URL)
        monkeypatch.setenv("WSHM_MAX_RECONNECT_ATTEMPTS", "2")
        client = bootstrap(renderer, connect=False)
        assert client.url == URL
        assert client.config.max_reconnect_attempts == 2
        assert client.state is ConnectionState.CONNECTING

    def test_from_env_file(self, renderer, tmp_path, monkeypatch):
        monkeypatch.delenv("WSHM_URL", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text(f"WSHM_URL={URL}\nWSHM_ESCAPE_CHAR=^\n")
        client = bootstrap(renderer, env_file=str(env_file), connect=False)
        assert client.config.escape_char == "^"

    def test_callbacks_passed_through(self, renderer, monkeypatch):
        monkeypatch.setenv("WSHM_URL", URL)
        seen = []
        client = bootstrap(renderer, connect=False, on_message=seen.append)
        client.handle_frame("subscribe|room|1")
        assert seen == ["subscribe|room|1"]

    def test_invalid_configured_url(self, renderer, monkeypatch):
        monkeypatch.setenv("WSHM_URL", "http://example.com")
        with pytest.raises(ConnectionFault):
            bootstrap(renderer, connect=False)

    @pytest.mark.asyncio
    async def test_connects(self, renderer, factory, monkeypatch):
        monkeypatch.setenv("WSHM_URL", URL)
        client = bootstrap(renderer, transport_factory=factory)
        assert await client.wait_open(1)
        assert factory.urls == [URL]
        await client.disconnect()
