"""
appgate: MCP tool invocation gateway for Apps SDK widgets.

Tools are registered with a JSON input schema and an optional output template
(a widget resource URI). Calls are validated, dispatched to handlers and
normalized into the MCP result envelope. Widget templates are resolved lazily
and cached, and per-session widget state lives in a partitioned-lock store.

Public API:
- appgate.framework.context: GatewayContext and create_gateway_context
- appgate.framework.tools: ToolDefinition, ToolRegistry, InvocationDispatcher
- appgate.resources: ResourceResolver and asset loaders
- appgate.state: SessionStateStore and backends
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("appgate")
except PackageNotFoundError:
    # Development checkout, not installed via pip
    __version__ = "0.1.0"

from appgate.framework.context import GatewayContext, create_gateway_context

__all__ = ["GatewayContext", "__version__", "create_gateway_context"]
