"""Built-in demo tools and widgets."""

import logging

from appgate.framework.context import GatewayContext
from appgate.resources.loaders import InMemoryAssetLoader

from .tools import ECHO_TOOL, SHOW_CARD_TOOL, CounterTool, builtin_tools
from .widgets import BUILTIN_WIDGETS, CARD_WIDGET_URI, COUNTER_WIDGET_URI

logger = logging.getLogger(__name__)


def register_catalog(context: GatewayContext) -> None:
    """
    Register the built-in tools and declare their widget resources.

    Widgets already declared (for instance from the config file) are left
    alone. When the resolver is backed by an in-memory loader the built-in
    markup is installed into it.
    """
    for definition in builtin_tools():
        context.registry.register(definition)

    loader = context.resolver.loader
    for uri, markup in BUILTIN_WIDGETS.items():
        if not context.resolver.is_declared(uri):
            context.resolver.register(uri, name=uri.rsplit("/", 1)[-1].removesuffix(".html"))
        if isinstance(loader, InMemoryAssetLoader):
            loader.put(uri, markup)

    logger.info("Registered %s built-in tools", len(context.registry))


__all__ = [
    "BUILTIN_WIDGETS",
    "CARD_WIDGET_URI",
    "COUNTER_WIDGET_URI",
    "ECHO_TOOL",
    "SHOW_CARD_TOOL",
    "CounterTool",
    "builtin_tools",
    "register_catalog",
]
