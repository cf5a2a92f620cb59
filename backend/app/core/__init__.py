"""Core modules."""

from app.core.logging import configure_logging

__all__ = [
    "configure_logging",
]
