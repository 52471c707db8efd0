import logging
import os
import sys
from pathlib import Path
from typing import Any

import structlog

# Libraries that log every HTTP request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "anthropic")


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """Configure structured logging for the CLI.

    Args:
        level: Log level name; defaults to LOG_LEVEL, else WARNING so command
            output stays readable
        json_logs: JSON lines instead of console rendering; defaults to JSON_LOGS
    """
    level = (level or os.getenv("LOG_LEVEL", "WARNING")).upper()
    if json_logs is None:
        json_logs = os.getenv("JSON_LOGS", "false").lower() == "true"

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Command output goes to stdout; logs go to stderr
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    log_file = Path(os.getenv("STREEMREALM_LOG_FILE", "logs/streemrealm.log"))
    if log_file.parent.exists():
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(format="%(message)s", handlers=handlers, level=level, force=True)

    if level != "DEBUG":
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
