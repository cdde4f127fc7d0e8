"""
Tool registry mapping tool names to immutable definitions.

Usage:
    registry = ToolRegistry()

    @registry.tool(
        name="echo",
        description="Echo text back",
        input_schema={
            "type": "object",
            "properties": {"text": {"type": "string"}},
            "required": ["text"],
        },
    )
    def echo(arguments, ctx):
        return {"echo": arguments["text"]}

    registry.seal()
"""

import logging
import threading
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from appgate.framework.errors import DuplicateNameError, RegistrationClosedError, UnknownToolError

from .tool_interface import ToolDefinition, ToolHandler

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Central registry for all gateway tools.

    Registration is expected at startup only. Writes are serialized by a lock;
    reads (lookup, list_tools) take no lock and are safe for concurrent use
    while no writer is active. ``seal()`` ends the registration phase.

    Metrics tracked:
    - operations_total: Total operations (register, lookup, list)
    - register_total / lookup_total / lookup_miss_total / list_total
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._write_lock = threading.Lock()
        self._sealed = False

        self._metrics = {
            "operations_total": 0,
            "register_total": 0,
            "lookup_total": 0,
            "lookup_miss_total": 0,
            "list_total": 0,
        }

    def register(self, definition: ToolDefinition) -> ToolDefinition:
        """
        Register a tool definition.

        Args:
            definition: Tool definition to register

        Returns:
            The registered definition (same object)

        Raises:
            DuplicateNameError: If a tool with the same name is registered
            RegistrationClosedError: If the registry has been sealed
        """
        with self._write_lock:
            self._metrics["operations_total"] += 1
            self._metrics["register_total"] += 1

            if self._sealed:
                raise RegistrationClosedError(definition.name)
            if definition.name in self._tools:
                raise DuplicateNameError(definition.name)

            # Copy-on-write so lock-free readers never see a dict mid-resize
            tools = dict(self._tools)
            tools[definition.name] = definition
            self._tools = tools

        logger.info(
            "Registered tool: %s (template=%s, timeout=%s)",
            definition.name,
            definition.output_template_uri,
            definition.timeout_seconds,
        )
        return definition

    def tool(
        self,
        name: str | None = None,
        *,
        description: str | None = None,
        title: str | None = None,
        input_schema: Mapping[str, Any] | None = None,
        output_template_uri: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        annotations: Mapping[str, Any] | None = None,
        timeout_seconds: float | None = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """
        Decorator that registers a function as a tool.

        Name defaults to the function name; description to its docstring.
        The decorated function is returned unchanged.
        """

        def decorator(func: ToolHandler) -> ToolHandler:
            definition = ToolDefinition(
                name=name or func.__name__,  # type: ignore[attr-defined]
                handler=func,
                description=description if description is not None else (func.__doc__ or "").strip(),
                title=title,
                input_schema=dict(input_schema)
                if input_schema is not None
                else {"type": "object", "properties": {}},
                output_template_uri=output_template_uri,
                metadata=metadata or {},
                annotations=annotations or {},
                timeout_seconds=timeout_seconds,
            )
            self.register(definition)
            return func

        return decorator

    def lookup(self, name: str) -> ToolDefinition:
        """
        Get tool definition by name.

        Args:
            name: Tool name

        Returns:
            The registered ToolDefinition

        Raises:
            UnknownToolError: If no tool is registered under ``name``
        """
        self._metrics["operations_total"] += 1
        self._metrics["lookup_total"] += 1

        definition = self._tools.get(name)
        if definition is None:
            self._metrics["lookup_miss_total"] += 1
            raise UnknownToolError(name)
        return definition

    def get(self, name: str) -> ToolDefinition | None:
        """Get tool definition by name, or None."""
        return self._tools.get(name)

    def list_tools(self) -> list[ToolDefinition]:
        """
        List all registered tools.

        Returns:
            Tool definitions in registration order
        """
        self._metrics["operations_total"] += 1
        self._metrics["list_total"] += 1
        return list(self._tools.values())

    def names(self) -> list[str]:
        """List tool names in registration order."""
        return list(self._tools)

    def seal(self) -> None:
        """End the registration phase; later ``register`` calls fail."""
        with self._write_lock:
            self._sealed = True
        logger.info("Tool registry sealed with %s tools", len(self._tools))

    @property
    def sealed(self) -> bool:
        return self._sealed

    def get_mcp_tool_definitions(self) -> list[dict[str, Any]]:
        """
        Get MCP tool definitions for all registered tools.

        Returns:
            List of MCP ``Tool`` dicts, including ``_meta`` with the output template
        """
        return [definition.to_mcp_dict() for definition in self.list_tools()]

    def get_metrics(self) -> dict[str, int]:
        """
        Get registry metrics.

        Returns:
            Dictionary with operation counters
        """
        return self._metrics.copy()

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(list(self._tools.values()))
