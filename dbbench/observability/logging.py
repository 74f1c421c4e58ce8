"""
Structured Logging Configuration.

Configures structlog for:
- JSON output for CI and result archiving
- Colored console output for local runs
- Scenario context injection (backend, scenario, workload size)
- Credential censoring for connection settings
"""

import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Literal

import structlog
from structlog.types import EventDict, WrappedLogger

# Context variable for additional log context
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

# Driver loggers that are chatty at INFO
_NOISY_LOGGERS = (
    "cassandra",
    "elastic_transport",
    "pymongo",
    "neo4j",
    "urllib3",
    "asyncio",
)


class LogContext:
    """
    Context manager for adding temporary context to logs.

    Usage:
        with LogContext(backend="mongo", scenario="insert", num_inserts=100):
            logger.info("Running scenario")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs
        self._token = None

    def __enter__(self):
        current = _log_context.get().copy()
        current.update(self._context)
        self._token = _log_context.set(current)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token:
            _log_context.reset(self._token)
        return False


def add_log_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add context variables to log events."""
    context = _log_context.get()
    if context:
        for key, value in context.items():
            event_dict.setdefault(key, value)
    return event_dict


def add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add ISO timestamp to log events."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def censor_sensitive_data(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Censor sensitive data from logs."""
    sensitive_keys = {
        "password", "secret", "token", "authorization",
        "credential", "pwd", "connection_string",
    }

    def censor_value(key: str, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: censor_value(k, v) for k, v in value.items()}
        elif isinstance(value, str) and any(s in key.lower() for s in sensitive_keys):
            return "***REDACTED***"
        return value

    for key in list(event_dict.keys()):
        event_dict[key] = censor_value(key, event_dict[key])

    return event_dict


def configure_logging(
    level: str = "INFO",
    format: Literal["json", "console"] = "console",
) -> None:
    """
    Configure structlog for the harness.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Output format ("json" for CI, "console" for local runs)
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_timestamp,
        add_log_context,
        censor_sensitive_data,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if format == "json":
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Results go to stdout; logs stay on stderr
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

