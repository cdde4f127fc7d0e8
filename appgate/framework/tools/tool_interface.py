"""
Tool interface protocol and data structures.

Every tool exposed by the gateway is described by an immutable
``ToolDefinition`` whose ``handler`` implements the ``ToolHandler`` protocol.
Requests and results are plain dataclasses; ``ToolInvocationResult`` knows how
to render itself in the MCP wire shape.
"""

import copy
import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol, TypedDict

from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for

from appgate.framework.errors import InvalidToolDefinitionError

if TYPE_CHECKING:
    from appgate.resources.resolver import ResourceResolver
    from appgate.state.store import SessionStateStore

# Apps SDK metadata keys
OUTPUT_TEMPLATE_META_KEY = "openai/outputTemplate"
INVOKING_META_KEY = "openai/toolInvocation/invoking"
INVOKED_META_KEY = "openai/toolInvocation/invoked"
WIDGET_ACCESSIBLE_META_KEY = "openai/widgetAccessible"
LOCALE_META_KEY = "openai/locale"
WIDGET_STATE_META_KEY = "openai/widgetState"

# Mime type of widget templates rendered by the Apps SDK host
WIDGET_MIME_TYPE = "text/html+skybridge"


class ToolInputSchema(TypedDict, total=False):
    """JSON Schema for tool input validation."""

    type: str
    properties: dict[str, Any]
    required: list[str]
    additionalProperties: bool


ContentBlock = dict[str, Any]


def text_block(text: str) -> ContentBlock:
    """Build a ``text`` content block."""
    return {"type": "text", "text": text}


@dataclass
class ToolInvocationResult:
    """Normalized result of a tool invocation.

    Attributes:
        content: Ordered content blocks shown to the model and the user
        structured_content: Machine-readable data visible to the model
        meta: Data passed to the widget only, never echoed into content
        is_error: Whether this result reports a failure
    """

    content: list[ContentBlock] = field(default_factory=list)
    structured_content: dict[str, Any] | None = None
    meta: dict[str, Any] | None = None
    is_error: bool = False

    @classmethod
    def text(
        cls,
        text: str,
        structured_content: dict[str, Any] | None = None,
        meta: dict[str, Any] | None = None,
    ) -> "ToolInvocationResult":
        """Shortcut for a result with a single text block."""
        return cls(content=[text_block(text)], structured_content=structured_content, meta=meta)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the MCP ``CallToolResult`` wire shape."""
        result: dict[str, Any] = {"content": list(self.content), "isError": self.is_error}
        if self.structured_content is not None:
            result["structuredContent"] = self.structured_content
        if self.meta:
            result["_meta"] = self.meta
        return result


@dataclass(frozen=True)
class ToolInvocationRequest:
    """A single tool call as delivered by the transport layer."""

    tool_name: str
    arguments: Mapping[str, Any] = field(default_factory=dict)
    session_id: str = "default"
    locale: str | None = None
    meta: Mapping[str, Any] = field(default_factory=dict)
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def effective_locale(self) -> str | None:
        """Locale from the request, falling back to the ``openai/locale`` hint."""
        return self.locale or self.meta.get(LOCALE_META_KEY)


class SessionStateHandle:
    """Session store view bound to one session id."""

    def __init__(self, store: "SessionStateStore", session_id: str) -> None:
        self._store = store
        self.session_id = session_id

    async def get(self) -> Any:
        return await self._store.get(self.session_id)

    async def set(self, state: Any) -> None:
        await self._store.set(self.session_id, state)

    async def update(self, fn: Callable[[Any], Any]) -> Any:
        return await self._store.update(self.session_id, fn)


@dataclass
class InvocationContext:
    """
    Context injected into handler execution.

    Carries request-level metadata plus the shared collaborators a handler
    may need (session state, resource resolver).
    """

    tool_name: str
    session_id: str
    state: SessionStateHandle
    resources: "ResourceResolver"
    locale: str | None = None
    meta: Mapping[str, Any] = field(default_factory=dict)
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))


class ToolHandler(Protocol):
    """
    Handler interface - every tool's behaviour.

    A handler receives already-validated arguments and the invocation context
    and returns one of:
    - a ``ToolInvocationResult``
    - a mapping with ``content`` / ``structured_content`` / ``meta`` keys
      (camelCase ``structuredContent`` / ``_meta`` accepted)
    - any other mapping (becomes ``structured_content``)
    - a string (becomes a single text block)
    - ``None`` (empty result)

    Handlers may be sync or async. Raising any exception reports a
    ``HandlerError`` result; the exception never reaches the transport.
    """

    def __call__(
        self, arguments: dict[str, Any], ctx: InvocationContext
    ) -> "ToolInvocationResult | Mapping[str, Any] | str | None | Awaitable[Any]":
        ...


@dataclass(frozen=True)
class ToolDefinition:
    """Immutable description of a registered tool."""

    name: str
    handler: ToolHandler
    description: str = ""
    title: str | None = None
    input_schema: ToolInputSchema = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    output_template_uri: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    annotations: Mapping[str, Any] = field(default_factory=dict)
    timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        """Validate and freeze the definition."""
        if not self.name:
            msg = "Tool name cannot be empty"
            raise InvalidToolDefinitionError(msg)
        if not callable(self.handler):
            msg = f"Tool '{self.name}' handler is not callable"
            raise InvalidToolDefinitionError(msg, name=self.name)
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            msg = f"Tool '{self.name}' timeout_seconds must be positive"
            raise InvalidToolDefinitionError(msg, name=self.name)
        if self.input_schema.get("type", "object") != "object":
            msg = f"Tool '{self.name}' input_schema must describe an object"
            raise InvalidToolDefinitionError(msg, name=self.name)

        try:
            validator_for(self.input_schema).check_schema(self.input_schema)
        except SchemaError as e:
            msg = f"Tool '{self.name}' has an invalid input_schema: {e.message}"
            raise InvalidToolDefinitionError(msg, name=self.name) from e

        object.__setattr__(self, "input_schema", copy.deepcopy(dict(self.input_schema)))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        object.__setattr__(self, "annotations", MappingProxyType(dict(self.annotations)))

    @property
    def display_title(self) -> str:
        return self.title or self.name

    def tool_meta(self) -> dict[str, Any]:
        """``_meta`` advertised in ``tools/list``."""
        meta = dict(self.metadata)
        if self.output_template_uri:
            meta[OUTPUT_TEMPLATE_META_KEY] = self.output_template_uri
        return meta

    def to_mcp_dict(self) -> dict[str, Any]:
        """Convert to the MCP ``Tool`` wire shape."""
        definition: dict[str, Any] = {
            "name": self.name,
            "title": self.display_title,
            "description": self.description,
            "inputSchema": dict(self.input_schema),
        }
        if self.annotations:
            definition["annotations"] = dict(self.annotations)
        meta = self.tool_meta()
        if meta:
            definition["_meta"] = meta
        return definition
