"""MCP server adapter.

Exposes a GatewayContext over the MCP protocol:

- tools/list      -> ToolRegistry.get_mcp_tool_definitions()
- tools/call      -> InvocationDispatcher.invoke()
- resources/list  -> ResourceResolver.list_resources()
- resources/read  -> ResourceResolver.resolve()

Tool results keep the Apps SDK envelope: ``content``, ``structuredContent``,
``_meta`` (widget-only data, including ``openai/outputTemplate``) and
``isError``. Tool failures are results, not protocol errors; only an unknown
resource on ``resources/read`` becomes a JSON-RPC error.

Example:
    context = create_gateway_context()
    register_catalog(context)
    asyncio.run(GatewayMCPServer(context).run())
"""

import logging
from collections.abc import Iterable
from typing import Any

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError

from appgate.framework.context import GatewayContext
from appgate.framework.errors import ResourceNotFoundError
from appgate.framework.tools.tool_interface import ToolInvocationRequest

logger = logging.getLogger(__name__)

# Request _meta key a client may use to pin a session id
SESSION_META_KEY = "appgate/sessionId"

# JSON-RPC error code for an unknown resource
RESOURCE_NOT_FOUND = -32002


class GatewayMCPServer:
    """MCP server backed by a gateway context.

    Attributes:
        context: Gateway context serving the requests
        server: Low-level MCP server instance
    """

    def __init__(self, context: GatewayContext, server_name: str | None = None) -> None:
        self.context = context
        name = server_name or context.config.server.name
        self.server: Server = Server(name)
        logger.info("Created MCP server: %s", name)

        self._register_handlers()

    def _register_handlers(self) -> None:
        """Register MCP endpoints."""

        @self.server.list_tools()
        async def list_tools() -> Iterable[types.Tool]:
            return self._build_tool_list()

        @self.server.list_resources()
        async def list_resources() -> Iterable[types.Resource]:
            return self._build_resource_list()

        # Raw handlers: the envelope (_meta, isError, structuredContent) is
        # built here rather than by the SDK decorators.
        self.server.request_handlers[types.CallToolRequest] = self._handle_call_tool
        self.server.request_handlers[types.ReadResourceRequest] = self._handle_read_resource

        logger.info(
            "Registered %s tools and %s resources",
            len(self.context.registry),
            len(self.context.resolver.list_resources()),
        )

    def _build_tool_list(self) -> list[types.Tool]:
        return [
            types.Tool.model_validate(definition)
            for definition in self.context.registry.get_mcp_tool_definitions()
        ]

    def _build_resource_list(self) -> list[types.Resource]:
        return [
            types.Resource.model_validate(descriptor.to_mcp_dict())
            for descriptor in self.context.resolver.list_resources()
        ]

    def _session_id(self, request_meta: dict[str, Any]) -> str:
        """Session id from request ``_meta``, else the MCP connection identity."""
        if request_meta.get(SESSION_META_KEY):
            return str(request_meta[SESSION_META_KEY])
        try:
            session = self.server.request_context.session
        except LookupError:
            return "default"
        return f"mcp-{id(session):x}"

    async def _handle_call_tool(self, req: types.CallToolRequest) -> types.ServerResult:
        """Handle tools/call by dispatching to the gateway."""
        params = req.params
        request_meta = params.meta.model_dump(exclude_none=True) if params.meta else {}

        request = ToolInvocationRequest(
            tool_name=params.name,
            arguments=params.arguments or {},
            session_id=self._session_id(request_meta),
            meta=request_meta,
        )
        result = await self.context.dispatcher.invoke(request)
        return types.ServerResult(types.CallToolResult.model_validate(result.to_dict()))

    async def _handle_read_resource(self, req: types.ReadResourceRequest) -> types.ServerResult:
        """Handle resources/read by resolving the widget template."""
        uri = str(req.params.uri)
        try:
            template = await self.context.resolver.resolve(uri)
        except ResourceNotFoundError as e:
            logger.warning("resources/read failed: %s", e.message)
            raise McpError(types.ErrorData(code=RESOURCE_NOT_FOUND, message=e.message)) from e

        contents = types.TextResourceContents.model_validate(template.to_mcp_contents())
        return types.ServerResult(types.ReadResourceResult(contents=[contents]))

    async def run(self) -> None:
        """Run the MCP server using stdio transport."""
        logger.info("Starting appgate MCP server (stdio)")

        sweeper = self.context.start_idle_eviction()
        try:
            async with stdio_server() as (read, write):
                await self.server.run(read, write, self.server.create_initialization_options())
        finally:
            if sweeper is not None:
                sweeper.cancel()


__all__ = ["RESOURCE_NOT_FOUND", "SESSION_META_KEY", "GatewayMCPServer"]
