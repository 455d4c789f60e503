"""structlog configuration for the Codex bridge.

Log events are snake_case names with keyword fields, plus a ``category``
field used to group them (``transform``, ``instructions``, ``sse``, ``http``,
``errors``, ``config``).
"""

import logging
import sys
from typing import Any

import structlog


VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def setup_logging(json_logs: bool = False, log_level_name: str = "INFO") -> None:
    """Configure stdlib logging and structlog.

    Args:
        json_logs: Render events as JSON lines instead of console output
        log_level_name: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level_name = log_level_name.upper()
    if level_name not in VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level: {log_level_name}. Must be one of {VALID_LOG_LEVELS}"
        )
    level = getattr(logging, level_name)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_logs:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stderr,
        force=True,
    )

    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name)
