"""
Client factory - Explicit construction and opt-in bootstrap

There is no global client. Applications own the instance they create:

    client = create_client("wss://example.com/ws", renderer, auto_reconnect=False)

or, when configuration comes from the environment (``WSHM_URL`` and
friends), call ``bootstrap()`` from their own startup code.
"""

from __future__ import annotations

from typing import Any, List, Optional
import logging

from .config import ConfigLoader, HypermediaConfig
from .connection import ConnectionManager
from .renderers.base import Renderer
from .renderers.inmemory import InMemoryRenderer
from .transports.base import TransportFactory

logger = logging.getLogger("wshypermedia.client")


def create_client(
    url: str,
    renderer: Optional[Renderer] = None,
    config: Optional[HypermediaConfig] = None,
    *,
    transport_factory: Optional[TransportFactory] = None,
    connect: bool = True,
    **options: Any,
) -> ConnectionManager:
    """
    Create a client owned by the caller.

    Args:
        url: ws:// or wss:// endpoint
        renderer: DOM capability (headless InMemoryRenderer when omitted)
        config: Base configuration
        transport_factory: Override the WebSocket transport
        connect: Start connecting immediately (inside a running loop)
        **options: HypermediaConfig fields overriding ``config``

    Returns:
        ConnectionManager

    Raises:
        ConnectionFault: WS_INVALID_URL
        ConfigError: Unknown or invalid options
    """
    return ConnectionManager(
        url,
        renderer if renderer is not None else InMemoryRenderer(),
        config,
        transport_factory=transport_factory,
        connect=connect,
        **options,
    )


def bootstrap(
    renderer: Renderer,
    *,
    env_prefix: str = "WSHM_",
    env_file: Optional[str] = None,
    paths: Optional[List[str]] = None,
    transport_factory: Optional[TransportFactory] = None,
    connect: bool = True,
    **options: Any,
) -> Optional[ConnectionManager]:
    """
    Build a client from layered configuration.

    Reads ``url`` and every HypermediaConfig field through
    ``ConfigLoader`` (config files, .env file, ``<prefix>*`` environment
    variables). ``options`` take precedence and may carry callbacks.

    Returns:
        ConnectionManager, or None when no URL is configured
    """
    loader = ConfigLoader.load(paths=paths, env_prefix=env_prefix, env_file=env_file)

    url = loader.get("url")
    if not url:
        logger.debug(f"No {env_prefix}URL configured, bootstrap skipped")
        return None

    config = loader.to_config(**options)
    logger.info(f"Bootstrapping hypermedia client for {url}")
    return create_client(
        str(url),
        renderer,
        config,
        transport_factory=transport_factory,
        connect=connect,
    )
