"""
Resource resolver for widget templates.

Resources are declared up front (cheap, no I/O) and loaded lazily on first
``resolve``. Loaded templates are cached until ``invalidate`` is called;
concurrent resolutions of the same uncached URI share a single load.

Example:
    resolver = ResourceResolver(FileSystemAssetLoader("web/dist"))
    resolver.register("ui://widget/echo.html", name="echo-widget")

    template = await resolver.resolve("ui://widget/echo.html")
    html = template.render()
"""

import asyncio
import functools
import logging
import threading
from collections.abc import Mapping
from typing import Any

from appgate.framework.errors import DuplicateNameError, ResourceNotFoundError
from appgate.framework.tools._tool_async import run_callable_async
from appgate.framework.tools.tool_interface import WIDGET_MIME_TYPE

from .loaders import AssetLoader
from .templates import ResourceDescriptor, ResourceTemplate

logger = logging.getLogger(__name__)


class ResourceResolver:
    """
    Lazily-populated, read-mostly cache of resource templates.

    Thread-safety: declarations are startup-only and serialized by a lock.
    ``resolve`` is coroutine-safe within one event loop; the per-URI
    in-flight load task guarantees a single loader call per cache miss.
    A caller that is cancelled while waiting leaves the load running for
    the others.
    """

    def __init__(self, loader: AssetLoader) -> None:
        self._loader = loader
        self._descriptors: dict[str, ResourceDescriptor] = {}
        self._cache: dict[str, ResourceTemplate] = {}
        self._inflight: dict[str, asyncio.Future[ResourceTemplate]] = {}
        self._write_lock = threading.Lock()

        self._metrics = {
            "resolve_total": 0,
            "cache_hits": 0,
            "loads_total": 0,
            "load_failures": 0,
        }

    @property
    def loader(self) -> AssetLoader:
        return self._loader

    # ── declaration ─────────────────────────────────────────────

    def register(
        self,
        uri: str,
        *,
        name: str | None = None,
        mime_type: str = WIDGET_MIME_TYPE,
        description: str = "",
        title: str | None = None,
        meta: Mapping[str, Any] | None = None,
    ) -> ResourceDescriptor:
        """
        Declare a resource without loading it.

        Raises:
            DuplicateNameError: If the URI is already declared
        """
        descriptor = ResourceDescriptor(
            uri=uri,
            name=name or uri.rsplit("/", 1)[-1],
            mime_type=mime_type,
            description=description,
            title=title,
            meta=meta or {},
        )
        with self._write_lock:
            if uri in self._descriptors:
                raise DuplicateNameError(uri, kind="resource")
            descriptors = dict(self._descriptors)
            descriptors[uri] = descriptor
            self._descriptors = descriptors

        logger.info("Declared resource: %s (%s)", uri, mime_type)
        return descriptor

    def list_resources(self) -> list[ResourceDescriptor]:
        """Declared resources in declaration order."""
        return list(self._descriptors.values())

    def is_declared(self, uri: str) -> bool:
        return uri in self._descriptors

    def is_cached(self, uri: str) -> bool:
        return uri in self._cache

    # ── resolution ──────────────────────────────────────────────

    async def resolve(self, uri: str) -> ResourceTemplate:
        """
        Resolve a resource URI to its loaded template.

        Args:
            uri: Declared resource URI

        Returns:
            Cached or freshly loaded ResourceTemplate

        Raises:
            ResourceNotFoundError: If the URI is not declared or loading fails
        """
        self._metrics["resolve_total"] += 1

        cached = self._cache.get(uri)
        if cached is not None:
            self._metrics["cache_hits"] += 1
            return cached

        descriptor = self._descriptors.get(uri)
        if descriptor is None:
            raise ResourceNotFoundError(uri)

        inflight = self._inflight.get(uri)
        if inflight is None:
            # The load runs as its own task; waiters only ever cancel their shield
            inflight = asyncio.ensure_future(self._load_and_cache(descriptor))
            self._inflight[uri] = inflight
            inflight.add_done_callback(functools.partial(self._forget_inflight, uri))

        return await asyncio.shield(inflight)

    async def _load_and_cache(self, descriptor: ResourceDescriptor) -> ResourceTemplate:
        template = await self._load(descriptor)
        self._cache[descriptor.uri] = template
        return template

    def _forget_inflight(self, uri: str, task: "asyncio.Future[ResourceTemplate]") -> None:
        if self._inflight.get(uri) is task:
            del self._inflight[uri]
        # Retrieve the outcome so a load nobody waits for anymore does not warn at GC
        if not task.cancelled():
            task.exception()

    async def _load(self, descriptor: ResourceDescriptor) -> ResourceTemplate:
        self._metrics["loads_total"] += 1
        try:
            markup = await run_callable_async(self._loader.load, descriptor.uri)
            if isinstance(markup, str):
                markup = markup.encode("utf-8")
            markup = bytes(markup)
            markup.decode("utf-8")
        except Exception as e:
            self._metrics["load_failures"] += 1
            logger.warning("Failed to load resource %s: %s", descriptor.uri, e)
            raise ResourceNotFoundError(descriptor.uri, cause=e) from e

        logger.info("Loaded resource %s (%s bytes)", descriptor.uri, len(markup))
        return ResourceTemplate(descriptor=descriptor, markup=markup)

    def invalidate(self, uri: str | None = None) -> int:
        """
        Drop cached templates.

        Args:
            uri: URI to drop, or None to drop everything

        Returns:
            Number of cache entries removed
        """
        if uri is None:
            removed = len(self._cache)
            self._cache.clear()
        else:
            removed = 1 if self._cache.pop(uri, None) is not None else 0
        logger.info("Invalidated %s cached resource(s)", removed)
        return removed

    def get_metrics(self) -> dict[str, int]:
        """Resolver counters plus current cache size."""
        return {**self._metrics, "cached": len(self._cache), "declared": len(self._descriptors)}
