"""
Gateway context: the explicit owner of the registry, resolver and store.

Components never reach for globals; transports and tests receive a context
and everything a request needs hangs off it.

Usage:
    context = create_gateway_context()
    context.registry.register(definition)
    context.seal()

    result = await context.dispatcher.invoke(ToolInvocationRequest("echo", {"text": "hi"}))
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from appgate.framework.tools.dispatcher import InvocationDispatcher
from appgate.framework.tools.tool_registry import ToolRegistry
from appgate.resources.loaders import AssetLoader, FileSystemAssetLoader, InMemoryAssetLoader
from appgate.resources.resolver import ResourceResolver
from appgate.server.config import Config, get_config
from appgate.state.backends import InMemoryStateBackend, StateBackend
from appgate.state.store import SessionStateStore, run_idle_eviction

logger = logging.getLogger(__name__)


@dataclass
class ComponentHealth:
    """Simple health snapshot for a component."""

    name: str
    healthy: bool
    message: str
    details: dict | None = None


class GatewayContext:
    """Owns the gateway components and the configuration they were built from."""

    def __init__(
        self,
        config: Config,
        registry: ToolRegistry,
        resolver: ResourceResolver,
        store: SessionStateStore,
    ) -> None:
        self.config = config
        self.registry = registry
        self.resolver = resolver
        self.store = store
        self._dispatcher: InvocationDispatcher | None = None

    @property
    def dispatcher(self) -> InvocationDispatcher:
        """Return the dispatcher (lazy-initialized)."""
        if self._dispatcher is None:
            self._dispatcher = InvocationDispatcher(self)
        return self._dispatcher

    def seal(self) -> None:
        """End the registration phase."""
        self.registry.seal()

    def start_idle_eviction(self) -> asyncio.Task | None:
        """Start the idle-session sweeper if configured; call from a running loop."""
        max_idle = self.config.state.idle_eviction_seconds
        if max_idle <= 0:
            return None
        return asyncio.create_task(run_idle_eviction(self.store, max_idle))

    def health_check(self) -> list[ComponentHealth]:
        """Report health and counters for each component."""
        metrics_enabled = self.config.observability.metrics_enabled
        return [
            ComponentHealth(
                "registry",
                len(self.registry) > 0,
                f"{len(self.registry)} tools registered"
                + (" (sealed)" if self.registry.sealed else ""),
                self.registry.get_metrics() if metrics_enabled else None,
            ),
            ComponentHealth(
                "resolver",
                True,
                f"{len(self.resolver.list_resources())} resources declared",
                self.resolver.get_metrics() if metrics_enabled else None,
            ),
            ComponentHealth(
                "store",
                True,
                "session store ready",
                self.store.get_stats() if metrics_enabled else None,
            ),
        ]

    def stats(self) -> dict[str, Any]:
        """Dispatcher statistics keyed by tool name."""
        return self.dispatcher.get_stats()


def _build_loader(config: Config) -> AssetLoader:
    if config.resources.assets_dir:
        logger.info("Serving widget assets from %s", config.resources.assets_dir)
        return FileSystemAssetLoader(
            config.resources.assets_dir, root_element_id=config.resources.root_element_id
        )
    return InMemoryAssetLoader()


def create_gateway_context(
    config: Config | None = None,
    *,
    loader: AssetLoader | None = None,
    backend: StateBackend | None = None,
) -> GatewayContext:
    """
    Build a context from configuration.

    Args:
        config: Configuration (default: the global config)
        loader: Asset loader (default: built from ``config.resources``)
        backend: State backend (default: in-memory)

    Returns:
        GatewayContext with config-declared resources already registered
    """
    config = config or get_config()

    resolver = ResourceResolver(loader if loader is not None else _build_loader(config))
    for declaration in config.resources.declarations:
        resolver.register(
            declaration.uri,
            name=declaration.name,
            mime_type=declaration.mime_type,
            description=declaration.description,
            title=declaration.title,
        )

    store = SessionStateStore(
        backend=backend if backend is not None else InMemoryStateBackend(),
        tombstone_limit=config.state.tombstone_limit,
    )

    context = GatewayContext(
        config=config, registry=ToolRegistry(), resolver=resolver, store=store
    )
    logger.info(
        "Gateway context created (%s resources declared)", len(config.resources.declarations)
    )
    return context
