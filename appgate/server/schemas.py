"""Request and response schemas for the REST facade.

Tool arguments are validated by the dispatcher against each tool's own JSON
Schema; these models only check the outer request shape.
"""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

SessionId = Annotated[str, StringConstraints(min_length=1, max_length=256, strip_whitespace=True)]


# =============================================================================
# Tool Schemas
# =============================================================================


class ToolInvokeRequest(BaseModel):
    """Request body for ``POST /tools/{tool_name}/invoke``.

    Example:
        {"arguments": {"text": "hi"}, "session_id": "s-1", "_meta": {"openai/locale": "en-US"}}
    """

    arguments: dict[str, Any] = Field(default_factory=dict, description="Tool arguments")
    session_id: SessionId = Field(default="default", description="Session owning widget state")
    locale: str | None = Field(default=None, max_length=35, description="BCP 47 locale")
    meta: dict[str, Any] = Field(
        default_factory=dict, alias="_meta", description="Request _meta (openai/* hints)"
    )

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class ToolInvokeResponse(BaseModel):
    """MCP ``CallToolResult`` shape."""

    content: list[dict[str, Any]] = Field(default_factory=list)
    structuredContent: dict[str, Any] | None = None  # noqa: N815
    meta: dict[str, Any] | None = Field(default=None, alias="_meta")
    isError: bool = False  # noqa: N815

    model_config = ConfigDict(populate_by_name=True)


class ToolListResponse(BaseModel):
    """Response for ``GET /tools``."""

    tools: list[dict[str, Any]]
    total: int


# =============================================================================
# Resource Schemas
# =============================================================================


class ResourceListResponse(BaseModel):
    """Response for ``GET /resources``."""

    resources: list[dict[str, Any]]
    total: int


class ResourceContentsResponse(BaseModel):
    """Response for ``GET /resources/read``."""

    contents: list[dict[str, Any]]


# =============================================================================
# Session Schemas
# =============================================================================


class SessionStateRequest(BaseModel):
    """Request body for ``PUT /sessions/{session_id}/state``."""

    state: Any = Field(..., description="Opaque widget state")

    model_config = ConfigDict(extra="forbid")


class SessionStateResponse(BaseModel):
    """Widget state for one session."""

    session_id: str
    status: str
    state: Any = None


# =============================================================================
# Health / Error Schemas
# =============================================================================


class ComponentHealthResponse(BaseModel):
    name: str
    healthy: bool
    message: str
    details: dict[str, Any] | None = None


class HealthResponse(BaseModel):
    """Response for ``GET /health``."""

    status: str = Field(..., description="healthy | degraded")
    version: str
    components: list[ComponentHealthResponse]


class ValidationErrorDetail(BaseModel):
    """Detail for a single validation error."""

    field: str = Field(..., description="Field that failed validation")
    message: str = Field(..., description="Error message")
    type: str = Field(..., description="Error type")


class ValidationErrorResponse(BaseModel):
    """Response schema for request validation errors (HTTP 400)."""

    error: str = Field(default="Validation Error", description="Error type")
    message: str = Field(..., description="Human-readable error message")
    details: list[ValidationErrorDetail] = Field(
        default_factory=list, description="Detailed validation errors"
    )


class ErrorResponse(BaseModel):
    """Generic error response schema."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(default_factory=dict)
    severity: str | None = Field(default=None, description="Error severity, when known")

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "error": "RESOURCE_NOT_FOUND",
                    "message": "Resource not found: ui://widget/missing.html",
                    "details": {"resource_id": "ui://widget/missing.html"},
                    "severity": "user_error",
                }
            ]
        }
    )
