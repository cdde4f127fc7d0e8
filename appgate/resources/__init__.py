"""Widget resource declarations, loading and caching."""

from .loaders import AssetLoader, FileSystemAssetLoader, InMemoryAssetLoader, widget_html
from .resolver import ResourceResolver
from .templates import ResourceDescriptor, ResourceTemplate

__all__ = [
    "AssetLoader",
    "FileSystemAssetLoader",
    "InMemoryAssetLoader",
    "ResourceDescriptor",
    "ResourceResolver",
    "ResourceTemplate",
    "widget_html",
]
