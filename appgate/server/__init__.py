"""Transport boundary.

- config.py: Server configuration
- mcp_server.py: MCP server over stdio (mcp SDK low-level server)
- rest_api.py: REST facade (FastAPI)
- schemas.py: Request/response models for the REST facade

Adapters only translate wire shapes; all behaviour lives in the dispatcher,
resolver and store reached through a GatewayContext.
"""

__all__: list[str] = []
