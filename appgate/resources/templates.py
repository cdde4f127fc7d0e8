"""Resource descriptors and loaded widget templates."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from appgate.framework.tools.tool_interface import WIDGET_MIME_TYPE


@dataclass(frozen=True)
class ResourceDescriptor:
    """A declared resource; advertised by ``resources/list`` without loading it.

    Attributes:
        uri: Unique resource URI (e.g. ``ui://widget/echo.html``)
        name: Short resource name
        mime_type: Mime type of the rendered markup
        description: Human-readable description
        title: Optional display title
        meta: ``_meta`` entries returned alongside the contents
    """

    uri: str
    name: str
    mime_type: str = WIDGET_MIME_TYPE
    description: str = ""
    title: str | None = None
    meta: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.uri:
            msg = "Resource uri cannot be empty"
            raise ValueError(msg)
        object.__setattr__(self, "meta", MappingProxyType(dict(self.meta)))

    def to_mcp_dict(self) -> dict[str, Any]:
        """Convert to the MCP ``Resource`` wire shape."""
        resource: dict[str, Any] = {
            "uri": self.uri,
            "name": self.name,
            "mimeType": self.mime_type,
        }
        if self.title:
            resource["title"] = self.title
        if self.description:
            resource["description"] = self.description
        if self.meta:
            resource["_meta"] = dict(self.meta)
        return resource


@dataclass(frozen=True)
class ResourceTemplate:
    """A loaded resource. Immutable once created."""

    descriptor: ResourceDescriptor
    markup: bytes

    @property
    def uri(self) -> str:
        return self.descriptor.uri

    @property
    def mime_type(self) -> str:
        return self.descriptor.mime_type

    @property
    def meta(self) -> Mapping[str, Any]:
        return self.descriptor.meta

    def render(self) -> str:
        """Return the markup as text."""
        return self.markup.decode("utf-8")

    def to_mcp_contents(self) -> dict[str, Any]:
        """Convert to an MCP ``TextResourceContents`` dict."""
        contents: dict[str, Any] = {
            "uri": self.uri,
            "mimeType": self.mime_type,
            "text": self.render(),
        }
        if self.meta:
            contents["_meta"] = dict(self.meta)
        return contents
