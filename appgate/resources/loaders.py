"""
Asset loaders consumed by the resource resolver.

A loader turns a resource URI into raw markup bytes and raises ``OSError``
(usually ``FileNotFoundError``) when the asset is missing. Loaders may be
sync or async; sync loaders run in a worker thread.

``FileSystemAssetLoader`` serves the output of a widget build: either a
ready ``.html`` file or a ``.js`` bundle (plus optional ``.css``) that gets
wrapped into a minimal HTML shell.
"""

import html
import logging
from collections.abc import Awaitable, Mapping
from pathlib import Path
from typing import Protocol
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)


class AssetLoader(Protocol):
    """Asset-loading collaborator interface."""

    def load(self, uri: str) -> bytes | Awaitable[bytes]:
        """Return raw markup bytes for ``uri`` or raise ``OSError``."""
        ...


def uri_to_relative_path(uri: str) -> Path:
    """Map ``scheme://host/a/b.html`` to ``host/a/b.html``.

    Raises:
        FileNotFoundError: If the URI has no path component or escapes upward
    """
    parts = urlsplit(uri)
    relative = "/".join(p for p in (parts.netloc, parts.path.lstrip("/")) if p)
    if not parts.scheme:
        relative = uri.lstrip("/")
    if not relative:
        msg = f"Resource URI has no path: {uri}"
        raise FileNotFoundError(msg)
    path = Path(relative)
    if path.is_absolute() or ".." in path.parts:
        msg = f"Resource URI escapes the asset root: {uri}"
        raise FileNotFoundError(msg)
    return path


def widget_html(script: str, stylesheet: str | None = None, root_id: str = "root") -> str:
    """Wrap a built widget bundle into a minimal HTML document."""
    parts = [f'<div id="{html.escape(root_id, quote=True)}"></div>']
    if stylesheet:
        parts.append(f"<style>{stylesheet}</style>")
    parts.append(f'<script type="module">{script}</script>')
    return "\n".join(parts) + "\n"


class InMemoryAssetLoader:
    """Loader backed by a mapping of URI to markup."""

    def __init__(self, assets: Mapping[str, str | bytes] | None = None) -> None:
        self._assets: dict[str, bytes] = {}
        for uri, markup in (assets or {}).items():
            self.put(uri, markup)
        self.load_count = 0

    def put(self, uri: str, markup: str | bytes) -> None:
        self._assets[uri] = markup.encode("utf-8") if isinstance(markup, str) else markup

    def load(self, uri: str) -> bytes:
        self.load_count += 1
        try:
            return self._assets[uri]
        except KeyError:
            msg = f"No asset for {uri}"
            raise FileNotFoundError(msg) from None


class FileSystemAssetLoader:
    """Loader reading widget build output from a directory.

    Resolution order for ``ui://widget/echo.html`` under ``root``:
    1. ``root/widget/echo.html``
    2. ``root/widget/echo.js`` (+ ``root/widget/echo.css``) wrapped by ``widget_html``
    """

    def __init__(self, root: str | Path, root_element_id: str = "root") -> None:
        self.root = Path(root).expanduser().resolve()
        self.root_element_id = root_element_id

    def _safe_path(self, relative: Path) -> Path:
        candidate = (self.root / relative).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            msg = f"Asset path escapes root: {relative}"
            raise FileNotFoundError(msg)
        return candidate

    def load(self, uri: str) -> bytes:
        relative = uri_to_relative_path(uri)
        path = self._safe_path(relative)

        if path.is_file():
            logger.debug("Loading asset %s from %s", uri, path)
            return path.read_bytes()

        script_path = path.with_suffix(".js")
        if script_path.is_file():
            style_path = path.with_suffix(".css")
            stylesheet = style_path.read_text(encoding="utf-8") if style_path.is_file() else None
            logger.debug("Building widget shell for %s from %s", uri, script_path)
            markup = widget_html(
                script_path.read_text(encoding="utf-8"),
                stylesheet=stylesheet,
                root_id=self.root_element_id,
            )
            return markup.encode("utf-8")

        msg = f"No asset for {uri} under {self.root}"
        raise FileNotFoundError(msg)
