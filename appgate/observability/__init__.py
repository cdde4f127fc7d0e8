"""Logging helpers for the gateway process."""

from .logging import JSONFormatter, setup_logging

__all__ = ["JSONFormatter", "setup_logging"]
