"""Application layer: error taxonomy, tool system and gateway context."""

from . import errors, tools

__all__ = ["errors", "tools"]
