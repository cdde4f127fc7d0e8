"""Built-in demo tools.

- echo: text in, text and structured content out
- show_card: renders the card widget from its arguments
- counter: increments a per-session counter kept in widget state
"""

import logging
from typing import Any

from appgate.framework.tools.simple_tool import SimpleTool
from appgate.framework.tools.tool_interface import (
    INVOKED_META_KEY,
    INVOKING_META_KEY,
    WIDGET_ACCESSIBLE_META_KEY,
    InvocationContext,
    ToolDefinition,
    ToolInvocationResult,
    text_block,
)

from .widgets import CARD_WIDGET_URI, COUNTER_WIDGET_URI

logger = logging.getLogger(__name__)


def echo(arguments: dict[str, Any], ctx: InvocationContext) -> dict[str, Any]:
    """Echo the given text back."""
    text = arguments["text"]
    return {"content": [text_block(text)], "structured_content": {"echo": text}}


ECHO_TOOL = ToolDefinition(
    name="echo",
    handler=echo,
    title="Echo",
    description="Echo the given text back.",
    input_schema={
        "type": "object",
        "properties": {"text": {"type": "string", "description": "Text to echo"}},
        "required": ["text"],
        "additionalProperties": False,
    },
    annotations={"readOnlyHint": True},
)


async def show_card(arguments: dict[str, Any], ctx: InvocationContext) -> ToolInvocationResult:
    """Show a card widget with a title and body."""
    card = {"title": arguments["title"], "body": arguments.get("body", "")}
    return ToolInvocationResult.text(
        f"Showing card: {card['title']}",
        structured_content=card,
        meta={"locale": ctx.locale} if ctx.locale else None,
    )


SHOW_CARD_TOOL = ToolDefinition(
    name="show_card",
    handler=show_card,
    title="Show card",
    description="Show a card widget with a title and body.",
    input_schema={
        "type": "object",
        "properties": {
            "title": {"type": "string", "minLength": 1, "maxLength": 200},
            "body": {"type": "string", "maxLength": 4000},
        },
        "required": ["title"],
    },
    output_template_uri=CARD_WIDGET_URI,
    metadata={
        INVOKING_META_KEY: "Preparing card",
        INVOKED_META_KEY: "Card ready",
    },
    annotations={"readOnlyHint": True},
)


class CounterTool(SimpleTool):
    """Increment a per-session counter and render it."""

    name = "counter"
    title = "Counter"
    input_schema = {
        "type": "object",
        "properties": {"step": {"type": "integer", "minimum": 1, "maximum": 1000}},
    }
    output_template_uri = COUNTER_WIDGET_URI
    metadata = {WIDGET_ACCESSIBLE_META_KEY: True}

    async def execute(self, arguments: dict[str, Any], ctx: InvocationContext) -> dict[str, Any]:
        step = arguments.get("step", 1)

        def increment(state: Any) -> dict[str, Any]:
            state = dict(state) if isinstance(state, dict) else {}
            state["count"] = state.get("count", 0) + step
            return state

        state = await ctx.state.update(increment)
        logger.debug("Counter for session %s is %s", ctx.session_id, state["count"])
        return {
            "content": [text_block(f"Count is {state['count']}")],
            "structured_content": {"count": state["count"]},
        }


def builtin_tools() -> list[ToolDefinition]:
    """Definitions of every built-in tool."""
    return [ECHO_TOOL, SHOW_CARD_TOOL, CounterTool().to_definition()]
