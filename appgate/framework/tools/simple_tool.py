"""
SimpleTool - Minimal base class for class-based tools.

Use this when a tool carries its own collaborators or configuration and a
plain decorated function gets awkward.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar

from .tool_interface import InvocationContext, ToolDefinition, ToolInputSchema


class SimpleTool(ABC):
    """
    Minimal tool base class.

    Provides:
    - Class attributes mirroring ``ToolDefinition`` fields
    - Abstract ``execute()`` method (sync or async)
    - ``to_definition()`` for registration

    Does NOT provide timing, error handling or validation; the dispatcher
    does all of that.

    Usage:
        class CounterTool(SimpleTool):
            name = "counter"
            description = "Increment a per-session counter"
            output_template_uri = "ui://widget/counter.html"

            async def execute(self, arguments, ctx):
                state = await ctx.state.update(lambda s: {**s, "count": s.get("count", 0) + 1})
                return {"structured_content": state}

        registry.register(CounterTool().to_definition())
    """

    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    title: ClassVar[str | None] = None
    input_schema: ClassVar[ToolInputSchema] = {"type": "object", "properties": {}}
    output_template_uri: ClassVar[str | None] = None
    metadata: ClassVar[Mapping[str, Any]] = {}
    annotations: ClassVar[Mapping[str, Any]] = {}
    timeout_seconds: ClassVar[float | None] = None

    @abstractmethod
    def execute(self, arguments: dict[str, Any], ctx: InvocationContext) -> Any:
        """
        Execute the tool with validated arguments.

        Args:
            arguments: Arguments already validated against ``input_schema``
            ctx: Invocation context (session state, resources, locale)

        Returns:
            Any value the dispatcher can normalize
        """

    def to_definition(self) -> ToolDefinition:
        """Build the immutable definition for this tool."""
        return ToolDefinition(
            name=self.name or type(self).__name__,
            handler=self.execute,
            description=self.description or (type(self).__doc__ or "").strip(),
            title=self.title,
            input_schema=self.input_schema,
            output_template_uri=self.output_template_uri,
            metadata=self.metadata,
            annotations=self.annotations,
            timeout_seconds=self.timeout_seconds,
        )
