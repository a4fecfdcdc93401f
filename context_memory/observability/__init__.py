"""
Observability helpers for the memory store.
"""

from .logging import (
    LogLevel,
    StructuredFormatter,
    configure_logging,
)


__all__ = [
    "LogLevel",
    "StructuredFormatter",
    "configure_logging",
]
