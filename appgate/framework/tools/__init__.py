"""
Tool system - definitions, registry, and invocation dispatcher.
"""

from .dispatcher import InvocationDispatcher, normalize_result
from .simple_tool import SimpleTool
from .tool_interface import (
    INVOKED_META_KEY,
    INVOKING_META_KEY,
    LOCALE_META_KEY,
    OUTPUT_TEMPLATE_META_KEY,
    WIDGET_ACCESSIBLE_META_KEY,
    WIDGET_MIME_TYPE,
    WIDGET_STATE_META_KEY,
    ContentBlock,
    InvocationContext,
    SessionStateHandle,
    ToolDefinition,
    ToolHandler,
    ToolInputSchema,
    ToolInvocationRequest,
    ToolInvocationResult,
    text_block,
)
from .tool_registry import ToolRegistry

__all__ = [
    "INVOKED_META_KEY",
    "INVOKING_META_KEY",
    "LOCALE_META_KEY",
    "OUTPUT_TEMPLATE_META_KEY",
    "WIDGET_ACCESSIBLE_META_KEY",
    "WIDGET_MIME_TYPE",
    "WIDGET_STATE_META_KEY",
    "ContentBlock",
    # Dispatcher
    "InvocationDispatcher",
    "InvocationContext",
    "SessionStateHandle",
    # Base classes
    "SimpleTool",
    # Interface
    "ToolDefinition",
    "ToolHandler",
    "ToolInputSchema",
    "ToolInvocationRequest",
    "ToolInvocationResult",
    # Registry
    "ToolRegistry",
    "normalize_result",
    "text_block",
]
