"""
Observability Module.

Structured logging for benchmark runs.
"""

from dbbench.observability.logging import (
    configure_logging,
    LogContext,
)

__all__ = [
    "configure_logging",
    "LogContext",
]
