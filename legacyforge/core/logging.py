"""
Structured logging configuration for LegacyForge.

structlog renders build events either for a terminal (rich console) or as one
JSON object per line for build servers. Tool output and code chunks can be
megabytes long, so long values are shortened before rendering.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from .config import Config

MAX_VALUE_CHARS = 2000
# Third-party loggers that are only useful when debugging LegacyForge itself
QUIET_LOGGERS = ("asyncio", "prefect", "httpx")


def truncate_long_values(max_chars: int = MAX_VALUE_CHARS) -> structlog.types.Processor:
    """Processor that shortens string values longer than ``max_chars``."""

    def processor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        for key, value in event_dict.items():
            if key != "event" and isinstance(value, str) and len(value) > max_chars:
                event_dict[key] = f"{value[:max_chars]}... [{len(value) - max_chars} more chars]"
        return event_dict

    return processor


def _use_json(log_format: str) -> bool:
    if log_format == "auto":
        return not sys.stderr.isatty()
    return log_format == "json"


def setup_logging(config: Config | None = None) -> None:
    """Configure structlog and the standard library for one process.

    Args:
        config: Optional configuration. If None, logs at INFO in auto format.
    """
    log_level = config.log_level if config else "INFO"
    log_format = config.log_format if config else "auto"
    level = getattr(logging, log_level, logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                show_path=False,
                rich_tracebacks=True,
                tracebacks_show_locals=log_level == "DEBUG",
            )
        ],
        force=True,
    )
    if level > logging.DEBUG:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        truncate_long_values(),
    ]
    if _use_json(log_format):
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        # stdout may carry tool output, so logs go to stderr
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: object) -> None:
    """Bind run-wide fields (run id, variant) to every later log entry."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
