"""
Internal module for tool error results and execution logging.

This module is not part of the public API - do not import directly.
Use appgate.framework.tools.dispatcher instead.
"""

import logging
from typing import Any

from appgate.framework.errors import GatewayError

from .tool_interface import ToolInvocationResult, text_block

logger = logging.getLogger(__name__)


def create_error_result(
    error: GatewayError,
    execution_time_ms: float | None = None,
    additional_metadata: dict[str, Any] | None = None,
) -> ToolInvocationResult:
    """
    Render a gateway error as a tool result.

    The message goes into a text block for the model and the user; the
    machine-readable part goes into ``structured_content`` with
    ``error = True``.

    Args:
        error: Error raised while serving the request
        execution_time_ms: Optional execution time in milliseconds
        additional_metadata: Extra ``_meta`` entries for the result

    Returns:
        ToolInvocationResult flagged as an error
    """
    details = error.to_details().to_dict()
    structured = {
        "error": True,
        "code": details["code"],
        "message": details["message"],
        "severity": details["severity"],
        "details": details["context"],
    }

    meta: dict[str, Any] = {"error_type": type(error).__name__}
    if execution_time_ms is not None:
        meta["execution_time_ms"] = round(execution_time_ms, 2)
    if additional_metadata:
        meta.update(additional_metadata)

    return ToolInvocationResult(
        content=[text_block(error.message)],
        structured_content=structured,
        meta=meta,
        is_error=True,
    )


def log_execution_start(tool_name: str, session_id: str) -> None:
    """Log the start of tool execution."""
    logger.info("Executing tool: %s (session=%s)", tool_name, session_id)


def log_execution_complete(tool_name: str, execution_time_ms: float) -> None:
    """Log successful completion of tool execution."""
    logger.info("Tool '%s' completed in %.2fms", tool_name, execution_time_ms)


def log_execution_error(tool_name: str, error: BaseException) -> None:
    """Log handler failure with traceback."""
    logger.error("Tool '%s' failed: %s", tool_name, error, exc_info=error)


def log_validation_failure(tool_name: str, error_msg: str) -> None:
    """Log input validation failure."""
    logger.warning("Tool '%s' input validation failed: %s", tool_name, error_msg)
