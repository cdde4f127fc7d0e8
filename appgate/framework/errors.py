"""
Error taxonomy for standardized error handling across the gateway.

Registry, resolver, store and dispatcher raise these typed exceptions. The
dispatcher boundary converts every per-request error into an error result
(see ``appgate.framework.tools._tool_errors``); only registration-time errors
are allowed to escape and stop startup.

Key features:
- Error code enums (avoid typos)
- Severity levels (fatal, transient, user_error)
- Pydantic models for structured error details
- Boundary translation functions
"""

import asyncio
import builtins
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# Error Codes and Severity
# ============================================================================


class ErrorCode(str, Enum):
    """Enumeration of all error codes in the system."""

    # Registration errors
    DUPLICATE_NAME = "DUPLICATE_NAME"
    REGISTRATION_CLOSED = "REGISTRATION_CLOSED"
    INVALID_DEFINITION = "INVALID_DEFINITION"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Lookup errors
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN_TOOL = "UNKNOWN_TOOL"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

    # Execution errors
    HANDLER_ERROR = "HANDLER_ERROR"
    TIMEOUT = "TIMEOUT"
    TOOL_TIMEOUT = "TOOL_TIMEOUT"

    # Session errors
    SESSION_EVICTED = "SESSION_EVICTED"

    # Internal errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorSeverity(str, Enum):
    """Error severity for reporting and alerting."""

    FATAL = "fatal"  # Unrecoverable, prevents startup
    TRANSIENT = "transient"  # Temporary, caller may retry
    USER_ERROR = "user_error"  # Caller mistake, not retryable


# ============================================================================
# Pydantic Error Models
# ============================================================================


class ErrorDetails(BaseModel):
    """Structured error details for serialization."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    code: ErrorCode = Field(..., description="Error code enum")
    message: str = Field(..., description="Human-readable error message")
    context: dict[str, Any] = Field(default_factory=dict, description="Additional context")
    severity: ErrorSeverity = Field(default=ErrorSeverity.FATAL, description="Error severity")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return self.model_dump(mode="json")


# ============================================================================
# Base Exception Class
# ============================================================================


class GatewayError(Exception):
    """Base class for all gateway errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        details: dict[str, Any] | None = None,
        severity: ErrorSeverity = ErrorSeverity.FATAL,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.severity = severity

    def to_details(self) -> ErrorDetails:
        """Convert to structured ErrorDetails."""
        return ErrorDetails(
            code=self.code, message=self.message, context=self.details, severity=self.severity
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "error": self.code.value,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
        }


# ============================================================================
# Registration Errors (fatal to startup)
# ============================================================================


class DuplicateNameError(GatewayError):
    """A tool or resource with the same key is already registered."""

    def __init__(self, name: str, kind: str = "tool") -> None:
        super().__init__(
            f"{kind.capitalize()} '{name}' already registered",
            ErrorCode.DUPLICATE_NAME,
            {"kind": kind, "name": name},
        )


class RegistrationClosedError(GatewayError):
    """Registration attempted after the registry was sealed."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Cannot register '{name}': registry is sealed",
            ErrorCode.REGISTRATION_CLOSED,
            {"name": name},
        )


class InvalidToolDefinitionError(GatewayError):
    """A tool definition is malformed (empty name, bad schema, ...)."""

    def __init__(self, message: str, name: str | None = None) -> None:
        details = {}
        if name:
            details["name"] = name
        super().__init__(message, ErrorCode.INVALID_DEFINITION, details)


# ============================================================================
# Validation Errors
# ============================================================================


class ValidationError(GatewayError):
    """Tool arguments do not match the tool's input schema."""

    def __init__(
        self,
        message: str,
        tool_name: str | None = None,
        path: list[str] | None = None,
        validator: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if tool_name:
            details["tool"] = tool_name
        if path:
            details["field"] = ".".join(path)
            details["path"] = path
        if validator:
            details["validator"] = validator
        super().__init__(
            message, ErrorCode.VALIDATION_ERROR, details, severity=ErrorSeverity.USER_ERROR
        )
        self.path = path or []

    @property
    def field(self) -> str | None:
        """Dotted path of the offending field, if any."""
        return ".".join(self.path) if self.path else None


# ============================================================================
# Lookup Errors
# ============================================================================


class NotFoundError(GatewayError):
    """Lookup miss."""

    def __init__(
        self, message: str, resource_type: str | None = None, resource_id: str | None = None
    ) -> None:
        details = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message, ErrorCode.NOT_FOUND, details, severity=ErrorSeverity.USER_ERROR)


class UnknownToolError(NotFoundError):
    """No tool registered under the requested name."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(
            f"Unknown tool: {tool_name}", resource_type="tool", resource_id=tool_name
        )
        self.code = ErrorCode.UNKNOWN_TOOL
        self.tool_name = tool_name


class ResourceNotFoundError(NotFoundError):
    """Resource URI is not declared or its asset could not be loaded."""

    def __init__(self, uri: str, cause: Exception | None = None) -> None:
        message = f"Resource not found: {uri}"
        if cause is not None:
            message = f"{message} ({cause})"
        super().__init__(message, resource_type="resource", resource_id=uri)
        self.code = ErrorCode.RESOURCE_NOT_FOUND
        self.uri = uri
        if cause is not None:
            self.details["cause_type"] = type(cause).__name__
            self.details["cause"] = str(cause)


# ============================================================================
# Execution Errors
# ============================================================================


class HandlerError(GatewayError):
    """Wraps any failure raised by tool handler code."""

    def __init__(self, tool_name: str, cause: Exception) -> None:
        super().__init__(
            f"Tool '{tool_name}' failed: {cause}",
            ErrorCode.HANDLER_ERROR,
            {"tool": tool_name, "cause_type": type(cause).__name__, "cause": str(cause)},
            severity=ErrorSeverity.TRANSIENT,
        )
        self.tool_name = tool_name
        self.cause = cause


class TimeoutError(GatewayError):
    """Operation timed out."""

    def __init__(
        self, message: str, operation: str | None = None, timeout_seconds: float | None = None
    ) -> None:
        details: dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if timeout_seconds:
            details["timeout_seconds"] = timeout_seconds
        super().__init__(message, ErrorCode.TIMEOUT, details, severity=ErrorSeverity.TRANSIENT)


class ToolTimeoutError(TimeoutError):
    """Tool handler exceeded its deadline."""

    def __init__(self, tool_name: str, timeout_seconds: float) -> None:
        super().__init__(
            f"Tool '{tool_name}' timed out after {timeout_seconds}s",
            operation=tool_name,
            timeout_seconds=timeout_seconds,
        )
        self.code = ErrorCode.TOOL_TIMEOUT
        self.details["tool"] = tool_name


# ============================================================================
# Session Errors
# ============================================================================


class SessionEvictedError(GatewayError):
    """Session was evicted; its id cannot be reused."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Session '{session_id}' has been evicted",
            ErrorCode.SESSION_EVICTED,
            {"session_id": session_id},
            severity=ErrorSeverity.USER_ERROR,
        )
        self.session_id = session_id


# ============================================================================
# Internal Errors
# ============================================================================


class InternalError(GatewayError):
    """Internal gateway error (unexpected condition)."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        details = {}
        if cause:
            details["cause"] = str(cause)
            details["cause_type"] = type(cause).__name__
        super().__init__(message, ErrorCode.INTERNAL_ERROR, details, severity=ErrorSeverity.FATAL)


# ============================================================================
# Boundary Translation Functions
# ============================================================================


def to_gateway_error(exc: BaseException) -> GatewayError:
    """
    Translate arbitrary exceptions to GatewayError at boundaries.

    Args:
        exc: Any exception

    Returns:
        GatewayError instance
    """
    if isinstance(exc, GatewayError):
        return exc

    if isinstance(exc, (asyncio.TimeoutError, builtins.TimeoutError)):
        return TimeoutError(message=str(exc) or "Operation timed out", operation="unknown")
    if isinstance(exc, KeyError):
        return NotFoundError(
            message=f"Key not found: {exc}", resource_type="key", resource_id=str(exc)
        )
    return InternalError(message=f"Unexpected error: {exc}", cause=exc)  # type: ignore[arg-type]


def from_gateway_error(error: GatewayError) -> dict[str, Any]:
    """
    Convert GatewayError to wire format for transport layers.

    Args:
        error: GatewayError instance

    Returns:
        Dictionary representation for JSON serialization
    """
    return error.to_dict()
