"""
REST facade over a gateway context.

Exposes:
- Tool listing and invocation
- Resource listing and reads
- Session widget state
- Health check

Tool invocations answer with the MCP ``CallToolResult`` envelope in every
case; the HTTP status only mirrors the error code (404 unknown tool, 400
invalid arguments, 504 timeout, 500 other failures).
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Path, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from appgate import __version__
from appgate.framework.context import GatewayContext
from appgate.framework.errors import (
    ErrorCode,
    GatewayError,
    ResourceNotFoundError,
    SessionEvictedError,
    from_gateway_error,
)
from appgate.framework.tools.tool_interface import ToolInvocationRequest
from appgate.server.schemas import (
    ComponentHealthResponse,
    ErrorResponse,
    HealthResponse,
    ResourceContentsResponse,
    ResourceListResponse,
    SessionStateRequest,
    SessionStateResponse,
    ToolInvokeRequest,
    ToolInvokeResponse,
    ToolListResponse,
    ValidationErrorDetail,
    ValidationErrorResponse,
)

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    ErrorCode.UNKNOWN_TOOL.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.VALIDATION_ERROR.value: status.HTTP_400_BAD_REQUEST,
    ErrorCode.TOOL_TIMEOUT.value: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorCode.SESSION_EVICTED.value: status.HTTP_410_GONE,
}


def _error_detail(error: GatewayError) -> dict:
    return ErrorResponse(**from_gateway_error(error)).model_dump()


def create_app(context: GatewayContext) -> FastAPI:
    """
    Build the FastAPI application for a context.

    Args:
        context: Gateway context serving the requests

    Returns:
        Configured FastAPI app (context available as ``app.state.context``)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        sweeper = context.start_idle_eviction()
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.cancel()

    app = FastAPI(
        title="appgate",
        description="Apps SDK tool invocation gateway",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> Any:
        """Handle request shape errors with HTTP 400."""
        errors = [
            ValidationErrorDetail(
                field=".".join(str(loc) for loc in error["loc"]),
                message=error["msg"],
                type=error["type"],
            )
            for error in exc.errors()
        ]
        logger.warning("Validation error on %s %s: %s", request.method, request.url.path, exc)

        response = ValidationErrorResponse(
            message="Invalid request. Please check the request and try again.", details=errors
        )
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=response.model_dump())

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> Any:
        """Handle HTTP exceptions with consistent error format."""
        logger.warning(
            "HTTP error on %s %s: %s - %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.detail,
        )
        if isinstance(exc.detail, dict):
            return JSONResponse(status_code=exc.status_code, content=exc.detail)

        response = ErrorResponse(error=f"HTTP {exc.status_code}", message=str(exc.detail))
        return JSONResponse(status_code=exc.status_code, content=response.model_dump())

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> Any:
        """Handle unexpected errors without exposing internal details."""
        logger.exception("Unexpected error on %s %s: %s", request.method, request.url.path, exc)

        response = ErrorResponse(
            error="Internal Server Error",
            message="An unexpected error occurred. Please try again later.",
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=response.model_dump()
        )

    # =========================================================================
    # Health
    # =========================================================================

    @app.get("/health", response_model=HealthResponse)
    async def health() -> Any:
        components = context.health_check()
        healthy = all(component.healthy for component in components)
        return HealthResponse(
            status="healthy" if healthy else "degraded",
            version=__version__,
            components=[ComponentHealthResponse(**component.__dict__) for component in components],
        )

    # =========================================================================
    # Tools
    # =========================================================================

    @app.get("/tools", response_model=ToolListResponse)
    async def list_tools() -> Any:
        tools = context.registry.get_mcp_tool_definitions()
        return ToolListResponse(tools=tools, total=len(tools))

    @app.get("/tools/stats")
    async def tool_stats() -> dict[str, Any]:
        return context.stats()

    @app.post(
        "/tools/{tool_name}/invoke",
        response_model=ToolInvokeResponse,
        responses={404: {"model": ToolInvokeResponse}, 504: {"model": ToolInvokeResponse}},
    )
    async def invoke_tool(
        body: ToolInvokeRequest,
        tool_name: str = Path(..., min_length=1, max_length=128),
    ) -> Any:
        """Invoke a tool and return the MCP result envelope."""
        request = ToolInvocationRequest(
            tool_name=tool_name,
            arguments=body.arguments,
            session_id=body.session_id,
            locale=body.locale,
            meta=body.meta,
        )
        result = await context.dispatcher.invoke(request)

        status_code = status.HTTP_200_OK
        if result.is_error:
            code = (result.structured_content or {}).get("code")
            status_code = _ERROR_STATUS.get(code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        return JSONResponse(status_code=status_code, content=result.to_dict())

    # =========================================================================
    # Resources
    # =========================================================================

    @app.get("/resources", response_model=ResourceListResponse)
    async def list_resources() -> Any:
        resources = [d.to_mcp_dict() for d in context.resolver.list_resources()]
        return ResourceListResponse(resources=resources, total=len(resources))

    @app.get("/resources/read")
    async def read_resource(uri: str = Query(..., min_length=1, max_length=2048)) -> Any:
        try:
            template = await context.resolver.resolve(uri)
        except ResourceNotFoundError as e:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=_error_detail(e),
            ) from e
        # Dump by hand so the "_meta" key survives
        return JSONResponse(
            content=ResourceContentsResponse(contents=[template.to_mcp_contents()]).model_dump()
        )

    # =========================================================================
    # Sessions
    # =========================================================================

    @app.get("/sessions/{session_id}/state", response_model=SessionStateResponse)
    async def get_session_state(session_id: str = Path(..., min_length=1, max_length=256)) -> Any:
        try:
            state = await context.store.get(session_id)
        except SessionEvictedError as e:
            raise HTTPException(
                status_code=status.HTTP_410_GONE,
                detail=_error_detail(e),
            ) from e
        return SessionStateResponse(
            session_id=session_id, status=context.store.status(session_id).value, state=state
        )

    @app.put("/sessions/{session_id}/state", response_model=SessionStateResponse)
    async def set_session_state(
        body: SessionStateRequest, session_id: str = Path(..., min_length=1, max_length=256)
    ) -> Any:
        try:
            await context.store.set(session_id, body.state)
        except SessionEvictedError as e:
            raise HTTPException(
                status_code=status.HTTP_410_GONE,
                detail=_error_detail(e),
            ) from e
        return SessionStateResponse(
            session_id=session_id, status=context.store.status(session_id).value, state=body.state
        )

    @app.delete("/sessions/{session_id}", response_model=SessionStateResponse)
    async def evict_session(session_id: str = Path(..., min_length=1, max_length=256)) -> Any:
        await context.store.evict(session_id)
        return SessionStateResponse(
            session_id=session_id, status=context.store.status(session_id).value
        )

    return app


__all__ = ["create_app"]
