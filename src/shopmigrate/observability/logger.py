"""Structured logging configuration with custom verbosity levels.

Levels, quietest first:
- INFO (20): Phase summaries (default)
- VERBOSE (15): Between INFO and DEBUG
- DEBUG (10): One line per record, resolution detail and GraphQL cost
- TRACE (5): Everything
"""

import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Any

import structlog

# Fields merged into every event emitted inside a LogContext
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")


class LogContext:
    """
    Context manager for adding fields to every log event in a block.

    Usage:
        with LogContext(phase="products"):
            logger.info("Applying record", key="red-mug")
    """

    def __init__(self, **kwargs: Any) -> None:
        self.new_context = kwargs
        self.token = None

    def __enter__(self) -> "LogContext":
        current = _log_context.get().copy()
        current.update(self.new_context)
        self.token = _log_context.set(current)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.token:
            _log_context.reset(self.token)


def _context_processor(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor that merges LogContext fields into the event."""
    context = _log_context.get()
    if context:
        for key, value in context.items():
            event_dict.setdefault(key, value)
    return event_dict


LOG_LEVELS = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_log_level(level: str) -> int:
    """
    Get numeric log level from its name.

    Unknown names fall back to INFO.
    """
    return LOG_LEVELS.get(level.upper(), logging.INFO)


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: str | Path | None = None,
) -> None:
    """
    Configure structlog on top of the standard logging module.

    Args:
        level: Logging level (TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Render events as JSON instead of the colored console format
        log_file: Optional path to also write logs to
    """
    log_level = get_log_level(level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(file_path))

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=handlers,
        force=True,
    )
    logging.getLogger().setLevel(log_level)

    # httpx logs every request at INFO
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _context_processor,
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
