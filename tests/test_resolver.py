"""Tests for the resource resolver and asset loaders."""

import asyncio
from pathlib import Path
from typing import Any

import pytest

from appgate.framework.context import create_gateway_context
from appgate.framework.errors import DuplicateNameError, ErrorCode, ResourceNotFoundError
from appgate.framework.tools import (
    WIDGET_MIME_TYPE,
    InvocationContext,
    ToolDefinition,
    ToolInvocationRequest,
)
from appgate.resources import FileSystemAssetLoader, InMemoryAssetLoader, ResourceResolver
from appgate.resources.loaders import uri_to_relative_path
from appgate.server.config import Config

from .conftest import ECHO_WIDGET_HTML, ECHO_WIDGET_URI


class SlowCountingLoader:
    """Async loader that records how many loads started."""

    def __init__(self, markup: bytes = b"<div>slow</div>", fail: bool = False) -> None:
        self.markup = markup
        self.fail = fail
        self.load_count = 0
        self.release = asyncio.Event()

    async def load(self, uri: str) -> bytes:
        self.load_count += 1
        await self.release.wait()
        if self.fail:
            raise FileNotFoundError(uri)
        return self.markup


class DelayedLoader:
    """Async loader that answers after a fixed delay."""

    def __init__(self, delay: float) -> None:
        self.delay = delay

    async def load(self, uri: str) -> bytes:
        await asyncio.sleep(self.delay)
        return b"<div>late</div>"


@pytest.fixture
def resolver(loader: InMemoryAssetLoader) -> ResourceResolver:
    resolver = ResourceResolver(loader)
    resolver.register(ECHO_WIDGET_URI, name="echo-widget")
    return resolver


class TestResolve:
    """Test resolve semantics."""

    async def test_resolve_returns_markup_with_widget_mime(
        self, resolver: ResourceResolver
    ) -> None:
        """Test a declared URI resolves to its markup and skybridge mime type."""
        template = await resolver.resolve(ECHO_WIDGET_URI)

        assert template.uri == ECHO_WIDGET_URI
        assert template.mime_type == WIDGET_MIME_TYPE
        assert template.render() == ECHO_WIDGET_HTML

    async def test_resolve_is_cached(
        self, resolver: ResourceResolver, loader: InMemoryAssetLoader
    ) -> None:
        """Test resolving twice returns the same template with one load."""
        first = await resolver.resolve(ECHO_WIDGET_URI)
        second = await resolver.resolve(ECHO_WIDGET_URI)

        assert first is second
        assert loader.load_count == 1
        assert resolver.get_metrics()["cache_hits"] == 1

    async def test_declaration_does_not_load(
        self, resolver: ResourceResolver, loader: InMemoryAssetLoader
    ) -> None:
        """Test register and list_resources never touch the loader."""
        resolver.list_resources()

        assert loader.load_count == 0
        assert not resolver.is_cached(ECHO_WIDGET_URI)

    async def test_concurrent_resolves_share_one_load(self) -> None:
        """Test concurrent resolutions of an uncached URI trigger a single load."""
        loader = SlowCountingLoader()
        resolver = ResourceResolver(loader)
        resolver.register("ui://widget/slow.html")

        tasks = [asyncio.create_task(resolver.resolve("ui://widget/slow.html")) for _ in range(5)]
        await asyncio.sleep(0)
        loader.release.set()
        templates = await asyncio.gather(*tasks)

        assert loader.load_count == 1
        assert all(t is templates[0] for t in templates)

    async def test_concurrent_failure_reaches_every_waiter(self) -> None:
        """Test a failed shared load fails all waiters."""
        loader = SlowCountingLoader(fail=True)
        resolver = ResourceResolver(loader)
        resolver.register("ui://widget/slow.html")

        tasks = [asyncio.create_task(resolver.resolve("ui://widget/slow.html")) for _ in range(3)]
        await asyncio.sleep(0)
        loader.release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert loader.load_count == 1
        assert all(isinstance(r, ResourceNotFoundError) for r in results)

    async def test_cancelled_waiter_leaves_load_running(self) -> None:
        """Test cancelling the caller that started a load does not fail the others."""
        loader = SlowCountingLoader()
        resolver = ResourceResolver(loader)
        resolver.register("ui://widget/slow.html")

        first = asyncio.create_task(resolver.resolve("ui://widget/slow.html"))
        await asyncio.sleep(0)
        second = asyncio.create_task(resolver.resolve("ui://widget/slow.html"))
        await asyncio.sleep(0)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        loader.release.set()
        template = await second

        assert template.render() == "<div>slow</div>"
        assert loader.load_count == 1
        assert resolver.is_cached("ui://widget/slow.html")

    async def test_timed_out_tool_does_not_fail_sibling_resolve(self) -> None:
        """Test a tool timing out mid-resolve leaves a slower sibling's resolve intact."""
        context = create_gateway_context(Config(), loader=DelayedLoader(0.3))
        context.resolver.register("ui://widget/slow.html")

        async def read_widget(arguments: dict[str, Any], ctx: InvocationContext) -> str:
            template = await ctx.resources.resolve("ui://widget/slow.html")
            return template.render()

        context.registry.register(
            ToolDefinition(name="fast", handler=read_widget, timeout_seconds=0.1)
        )
        context.registry.register(
            ToolDefinition(name="patient", handler=read_widget, timeout_seconds=5)
        )

        fast, patient = await context.dispatcher.invoke_many(
            [ToolInvocationRequest(tool_name="fast"), ToolInvocationRequest(tool_name="patient")]
        )

        assert fast.is_error is True
        assert fast.structured_content["code"] == "TOOL_TIMEOUT"
        assert patient.is_error is False
        assert patient.content == [{"type": "text", "text": "<div>late</div>"}]

    async def test_invalid_utf8_asset_is_not_found(self) -> None:
        """Test markup that is not UTF-8 fails the load and is not cached."""
        loader = InMemoryAssetLoader({"ui://widget/bad.html": b"\xff"})
        resolver = ResourceResolver(loader)
        resolver.register("ui://widget/bad.html")

        with pytest.raises(ResourceNotFoundError) as exc_info:
            await resolver.resolve("ui://widget/bad.html")

        assert exc_info.value.details["cause_type"] == "UnicodeDecodeError"
        assert not resolver.is_cached("ui://widget/bad.html")
        assert resolver.get_metrics()["load_failures"] == 1

    async def test_undeclared_uri_not_found_without_load(
        self, resolver: ResourceResolver, loader: InMemoryAssetLoader
    ) -> None:
        """Test an undeclared URI fails without invoking the loader."""
        with pytest.raises(ResourceNotFoundError) as exc_info:
            await resolver.resolve("ui://widget/unknown.html")

        assert exc_info.value.code == ErrorCode.RESOURCE_NOT_FOUND
        assert exc_info.value.details["resource_id"] == "ui://widget/unknown.html"
        assert loader.load_count == 0

    async def test_failed_load_is_not_cached(
        self, resolver: ResourceResolver, loader: InMemoryAssetLoader
    ) -> None:
        """Test a failed load is retried on the next resolve."""
        resolver.register("ui://widget/late.html")

        with pytest.raises(ResourceNotFoundError):
            await resolver.resolve("ui://widget/late.html")
        assert not resolver.is_cached("ui://widget/late.html")

        loader.put("ui://widget/late.html", "<div>late</div>")
        template = await resolver.resolve("ui://widget/late.html")

        assert template.render() == "<div>late</div>"
        assert resolver.get_metrics()["load_failures"] == 1

    async def test_invalidate_forces_reload(
        self, resolver: ResourceResolver, loader: InMemoryAssetLoader
    ) -> None:
        """Test invalidate drops the cached template."""
        await resolver.resolve(ECHO_WIDGET_URI)
        loader.put(ECHO_WIDGET_URI, "<div>v2</div>")

        assert resolver.invalidate(ECHO_WIDGET_URI) == 1
        assert (await resolver.resolve(ECHO_WIDGET_URI)).render() == "<div>v2</div>"
        assert loader.load_count == 2
        assert resolver.invalidate() == 1
        assert resolver.invalidate("ui://widget/never.html") == 0


class TestDeclaration:
    """Test resource declaration."""

    def test_duplicate_uri_rejected(self, resolver: ResourceResolver) -> None:
        """Test a URI may only be declared once."""
        with pytest.raises(DuplicateNameError):
            resolver.register(ECHO_WIDGET_URI)

    def test_list_order_and_wire_shape(self, loader: InMemoryAssetLoader) -> None:
        """Test list_resources keeps declaration order and MCP field names."""
        resolver = ResourceResolver(loader)
        resolver.register("ui://widget/b.html", title="B", description="Second")
        resolver.register("ui://widget/a.html")

        descriptors = resolver.list_resources()

        assert [d.uri for d in descriptors] == ["ui://widget/b.html", "ui://widget/a.html"]
        assert descriptors[0].to_mcp_dict() == {
            "uri": "ui://widget/b.html",
            "name": "b.html",
            "mimeType": WIDGET_MIME_TYPE,
            "title": "B",
            "description": "Second",
        }

    async def test_meta_carried_to_contents(self, loader: InMemoryAssetLoader) -> None:
        """Test descriptor meta is returned with the contents."""
        resolver = ResourceResolver(loader)
        resolver.register(ECHO_WIDGET_URI, meta={"openai/widgetDescription": "Echo"})

        contents = (await resolver.resolve(ECHO_WIDGET_URI)).to_mcp_contents()

        assert contents["_meta"] == {"openai/widgetDescription": "Echo"}
        assert contents["text"] == ECHO_WIDGET_HTML


class TestFileSystemAssetLoader:
    """Test loading widget build output from disk."""

    def test_html_file(self, tmp_path: Path) -> None:
        """Test a ready HTML file is served as-is."""
        (tmp_path / "widget").mkdir()
        (tmp_path / "widget" / "card.html").write_text("<div>card</div>", encoding="utf-8")

        loader = FileSystemAssetLoader(tmp_path)

        assert loader.load("ui://widget/card.html") == b"<div>card</div>"

    def test_js_bundle_wrapped_in_shell(self, tmp_path: Path) -> None:
        """Test a JS bundle plus CSS is wrapped into an HTML shell."""
        (tmp_path / "widget").mkdir()
        (tmp_path / "widget" / "card.js").write_text("render()", encoding="utf-8")
        (tmp_path / "widget" / "card.css").write_text(".c{}", encoding="utf-8")

        markup = FileSystemAssetLoader(tmp_path, root_element_id="card-root").load(
            "ui://widget/card.html"
        )
        text = markup.decode("utf-8")

        assert '<div id="card-root"></div>' in text
        assert "<style>.c{}</style>" in text
        assert '<script type="module">render()</script>' in text

    def test_missing_asset(self, tmp_path: Path) -> None:
        """Test a missing asset raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            FileSystemAssetLoader(tmp_path).load("ui://widget/none.html")

    def test_path_escape_rejected(self, tmp_path: Path) -> None:
        """Test URIs cannot reach outside the asset root."""
        (tmp_path / "secret.html").write_text("secret", encoding="utf-8")
        root = tmp_path / "assets"
        root.mkdir()

        with pytest.raises(FileNotFoundError):
            FileSystemAssetLoader(root).load("ui://widget/../../secret.html")

    async def test_resolver_with_filesystem_loader(self, tmp_path: Path) -> None:
        """Test the resolver wraps a missing file as ResourceNotFoundError."""
        resolver = ResourceResolver(FileSystemAssetLoader(tmp_path))
        resolver.register("ui://widget/absent.html")

        with pytest.raises(ResourceNotFoundError) as exc_info:
            await resolver.resolve("ui://widget/absent.html")

        assert isinstance(exc_info.value.__cause__, FileNotFoundError)


class TestUriToRelativePath:
    """Test URI to asset path mapping."""

    def test_scheme_host_and_path(self) -> None:
        """Test host and path become nested directories."""
        assert uri_to_relative_path("ui://widget/echo.html") == Path("widget/echo.html")

    def test_plain_path(self) -> None:
        """Test a scheme-less URI is used as a relative path."""
        assert uri_to_relative_path("/widget/echo.html") == Path("widget/echo.html")

    def test_empty_path_rejected(self) -> None:
        """Test a URI without a path is rejected."""
        with pytest.raises(FileNotFoundError):
            uri_to_relative_path("ui://")
