"""Streaming weather chat client."""

__version__ = "1.0.0"
