"""Shared fixtures for gateway tests."""

import logging
from collections.abc import Iterator
from typing import Any

import pytest

from appgate.framework.context import GatewayContext, create_gateway_context
from appgate.framework.tools.tool_interface import ToolDefinition, text_block
from appgate.resources.loaders import InMemoryAssetLoader
from appgate.server.config import Config

ECHO_WIDGET_URI = "ui://widget/echo.html"
ECHO_WIDGET_HTML = '<div id="root"></div>\n<script type="module">/* echo */</script>\n'

ECHO_SCHEMA = {
    "type": "object",
    "properties": {"text": {"type": "string"}},
    "required": ["text"],
}


class RecordingEcho:
    """Echo handler that records every call."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    def __call__(self, arguments: dict[str, Any], ctx: Any) -> dict[str, Any]:
        self.calls.append(arguments)
        text = arguments["text"]
        return {"content": [text_block(text)], "structured_content": {"echo": text}}


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def loader() -> InMemoryAssetLoader:
    return InMemoryAssetLoader({ECHO_WIDGET_URI: ECHO_WIDGET_HTML})


@pytest.fixture
def context(config: Config, loader: InMemoryAssetLoader) -> GatewayContext:
    ctx = create_gateway_context(config, loader=loader)
    ctx.resolver.register(ECHO_WIDGET_URI, name="echo-widget")
    return ctx


@pytest.fixture
def echo_handler() -> RecordingEcho:
    return RecordingEcho()


@pytest.fixture
def echo_context(context: GatewayContext, echo_handler: RecordingEcho) -> GatewayContext:
    """Context with the ``echo`` tool registered against the echo widget."""
    context.registry.register(
        ToolDefinition(
            name="echo",
            handler=echo_handler,
            description="Echo the given text back.",
            input_schema=ECHO_SCHEMA,
            output_template_uri=ECHO_WIDGET_URI,
        )
    )
    return context


@pytest.fixture(autouse=True)
def _restore_appgate_logger() -> Iterator[None]:
    """Undo ``setup_logging`` side effects between tests."""
    yield
    logger = logging.getLogger("appgate")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
