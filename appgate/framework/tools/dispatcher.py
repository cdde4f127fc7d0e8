"""
Invocation dispatcher.

Runs one tool call end to end:

    lookup -> argument validation -> widget state sync -> handler (timeout)
           -> result normalization -> output template attached to ``_meta``

``invoke`` never raises for per-request failures. Unknown tools, invalid
arguments, handler exceptions and timeouts all come back as a
``ToolInvocationResult`` with ``is_error=True``. Only task cancellation
propagates.
"""

import asyncio
import json
import logging
import time
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from mcp import types

from appgate.framework.errors import (
    GatewayError,
    HandlerError,
    ToolTimeoutError,
    UnknownToolError,
    ValidationError,
    to_gateway_error,
)

from ._tool_async import measure_execution_time, run_callable_async
from ._tool_errors import (
    create_error_result,
    log_execution_complete,
    log_execution_error,
    log_execution_start,
    log_validation_failure,
)
from ._tool_validation import validate_arguments
from .tool_interface import (
    OUTPUT_TEMPLATE_META_KEY,
    WIDGET_STATE_META_KEY,
    InvocationContext,
    SessionStateHandle,
    ToolDefinition,
    ToolInvocationRequest,
    ToolInvocationResult,
    text_block,
)

if TYPE_CHECKING:
    from appgate.framework.context import GatewayContext

logger = logging.getLogger(__name__)

_ENVELOPE_KEYS = frozenset({"content", "structured_content", "structuredContent", "meta", "_meta"})


def normalize_result(tool_name: str, raw: Any) -> ToolInvocationResult:
    """
    Turn a handler return value into a ``ToolInvocationResult``.

    The result is checked against the MCP ``CallToolResult`` schema and must
    be JSON-serializable, so transports can always emit it.

    Raises:
        HandlerError: If the value cannot be represented as a result
    """
    result = _coerce_result(tool_name, raw)
    wire = result.to_dict()
    try:
        json.dumps(wire)
        types.CallToolResult.model_validate(wire)
    except (TypeError, ValueError) as e:
        raise HandlerError(tool_name, e) from e
    return result


def _coerce_result(tool_name: str, raw: Any) -> ToolInvocationResult:
    if isinstance(raw, ToolInvocationResult):
        return ToolInvocationResult(
            content=list(raw.content),
            structured_content=raw.structured_content,
            meta=dict(raw.meta) if raw.meta else None,
            is_error=raw.is_error,
        )

    if raw is None:
        return ToolInvocationResult()

    if isinstance(raw, str):
        return ToolInvocationResult.text(raw)

    if isinstance(raw, Mapping):
        if _ENVELOPE_KEYS & raw.keys():
            return _from_envelope(tool_name, raw)
        structured = dict(raw)
        try:
            text = json.dumps(structured, default=str)
        except (TypeError, ValueError) as e:
            raise HandlerError(tool_name, e) from e
        return ToolInvocationResult(content=[text_block(text)], structured_content=structured)

    msg = f"unsupported handler return type {type(raw).__name__}"
    raise HandlerError(tool_name, TypeError(msg))


def _from_envelope(tool_name: str, raw: Mapping[str, Any]) -> ToolInvocationResult:
    content = raw.get("content") or []
    if not isinstance(content, list) or not all(
        isinstance(block, Mapping) and isinstance(block.get("type"), str) for block in content
    ):
        msg = "content must be a list of blocks with a 'type'"
        raise HandlerError(tool_name, TypeError(msg))

    structured = raw.get("structured_content", raw.get("structuredContent"))
    if structured is not None and not isinstance(structured, Mapping):
        msg = "structured_content must be a mapping"
        raise HandlerError(tool_name, TypeError(msg))

    meta = raw.get("meta", raw.get("_meta"))
    if meta is not None and not isinstance(meta, Mapping):
        msg = "meta must be a mapping"
        raise HandlerError(tool_name, TypeError(msg))

    return ToolInvocationResult(
        content=[dict(block) for block in content],
        structured_content=dict(structured) if structured is not None else None,
        meta=dict(meta) if meta else None,
        is_error=bool(raw.get("is_error", raw.get("isError", False))),
    )


class InvocationDispatcher:
    """
    Validates and executes tool calls against a ``GatewayContext``.

    Each invocation is an independent coroutine; the dispatcher holds no
    per-request state. Concurrency per tool can be capped with
    ``DispatcherConfig.max_concurrent_per_tool`` (0 = unlimited).
    """

    def __init__(self, context: "GatewayContext") -> None:
        self._context = context
        self._config = context.config.dispatcher
        self._semaphores: dict[str, asyncio.Semaphore] = {}
        self._stats: dict[str, dict[str, float]] = {}

    def _semaphore_for(self, tool_name: str) -> asyncio.Semaphore | None:
        limit = self._config.max_concurrent_per_tool
        if limit <= 0:
            return None
        semaphore = self._semaphores.get(tool_name)
        if semaphore is None:
            semaphore = asyncio.Semaphore(limit)
            self._semaphores[tool_name] = semaphore
        return semaphore

    def _stats_for(self, tool_name: str) -> dict[str, float]:
        stats = self._stats.get(tool_name)
        if stats is None:
            stats = {
                "invocations": 0,
                "successes": 0,
                "failures": 0,
                "validation_failures": 0,
                "timeouts": 0,
                "total_time_ms": 0.0,
            }
            self._stats[tool_name] = stats
        return stats

    def timeout_for(self, definition: ToolDefinition) -> float:
        """Deadline for one handler run: per-tool override or the default."""
        return definition.timeout_seconds or self._config.default_timeout_seconds

    async def invoke(self, request: ToolInvocationRequest) -> ToolInvocationResult:
        """
        Execute a single tool call.

        Args:
            request: Tool name, raw arguments, session id and request meta

        Returns:
            Normalized result; ``is_error`` is set for every failure
        """
        start = time.perf_counter()

        try:
            definition = self._context.registry.lookup(request.tool_name)
        except UnknownToolError as e:
            logger.warning("Unknown tool requested: %s", request.tool_name)
            return create_error_result(e, measure_execution_time(start))

        stats = self._stats_for(definition.name)
        stats["invocations"] += 1

        try:
            arguments = validate_arguments(definition, request.arguments)
        except ValidationError as e:
            log_validation_failure(definition.name, e.message)
            stats["validation_failures"] += 1
            stats["failures"] += 1
            return create_error_result(e, measure_execution_time(start))

        timeout = self.timeout_for(definition)
        try:
            try:
                result = await asyncio.wait_for(
                    self._run_limited(definition, arguments, request), timeout=timeout
                )
            except asyncio.TimeoutError as e:
                raise ToolTimeoutError(definition.name, timeout) from e
        except GatewayError as e:
            elapsed = measure_execution_time(start)
            stats["failures"] += 1
            stats["total_time_ms"] += elapsed
            if isinstance(e, ToolTimeoutError):
                stats["timeouts"] += 1
                logger.warning("Tool '%s' timed out (session=%s)", definition.name, request.session_id)
            else:
                log_execution_error(definition.name, e.__cause__ or e)
            return create_error_result(e, elapsed)
        except Exception as e:
            elapsed = measure_execution_time(start)
            stats["failures"] += 1
            stats["total_time_ms"] += elapsed
            logger.exception("Unexpected dispatcher failure for tool '%s'", definition.name)
            return create_error_result(to_gateway_error(e), elapsed)

        elapsed = measure_execution_time(start)
        stats["successes"] += 1
        stats["total_time_ms"] += elapsed
        log_execution_complete(definition.name, elapsed)
        return result

    async def _run_limited(
        self,
        definition: ToolDefinition,
        arguments: dict[str, Any],
        request: ToolInvocationRequest,
    ) -> ToolInvocationResult:
        # Queueing on the per-tool cap counts against the caller's deadline
        semaphore = self._semaphore_for(definition.name)
        if semaphore is None:
            return await self._execute(definition, arguments, request)
        async with semaphore:
            return await self._execute(definition, arguments, request)

    async def _execute(
        self,
        definition: ToolDefinition,
        arguments: dict[str, Any],
        request: ToolInvocationRequest,
    ) -> ToolInvocationResult:
        await self._apply_client_widget_state(request)

        ctx = InvocationContext(
            tool_name=definition.name,
            session_id=request.session_id,
            state=SessionStateHandle(self._context.store, request.session_id),
            resources=self._context.resolver,
            locale=request.effective_locale,
            meta=request.meta,
            request_id=request.request_id,
        )

        log_execution_start(definition.name, request.session_id)
        try:
            raw = await run_callable_async(definition.handler, arguments, ctx)
        except GatewayError:
            raise
        except Exception as e:
            raise HandlerError(definition.name, e) from e

        result = normalize_result(definition.name, raw)
        if definition.output_template_uri:
            meta = dict(result.meta or {})
            meta.setdefault(OUTPUT_TEMPLATE_META_KEY, definition.output_template_uri)
            result.meta = meta
        return result

    async def _apply_client_widget_state(self, request: ToolInvocationRequest) -> None:
        """Store widget state reported by the client before the handler runs."""
        if WIDGET_STATE_META_KEY not in request.meta:
            return
        await self._context.store.set(request.session_id, request.meta[WIDGET_STATE_META_KEY])
        logger.debug("Applied client widget state for session %s", request.session_id)

    async def invoke_many(
        self, requests: Iterable[ToolInvocationRequest]
    ) -> list[ToolInvocationResult]:
        """
        Execute several tool calls concurrently.

        Returns:
            Results in request order; one failing call does not affect others
        """
        return list(await asyncio.gather(*(self.invoke(request) for request in requests)))

    def get_stats(self) -> dict[str, dict[str, float]]:
        """
        Per-tool execution statistics.

        Returns:
            Mapping of tool name to counters plus ``avg_time_ms``
        """
        snapshot: dict[str, dict[str, float]] = {}
        for name, stats in self._stats.items():
            entry = dict(stats)
            completed = stats["successes"] + stats["failures"] - stats["validation_failures"]
            entry["avg_time_ms"] = stats["total_time_ms"] / completed if completed else 0.0
            snapshot[name] = entry
        return snapshot
