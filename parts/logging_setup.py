# parts/logging_setup.py
"""
structlog configuration for the `parts` command.

Logs are diagnostics: they go to stderr so that stdout stays a clean list of
paths, and only loggers below `parts` are wired to the handler.
"""
import logging
import sys
from typing import Optional, TextIO

import structlog

LOGGER_NAME = "parts"

# `-v` count -> stdlib level; anything above the last entry is debug.
_VERBOSITY_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def level_for_verbosity(verbosity: int) -> int:
    return _VERBOSITY_LEVELS[max(0, min(verbosity, len(_VERBOSITY_LEVELS) - 1))]


def _renderer(json_logs: bool, stream: TextIO):
    if json_logs:
        return structlog.processors.JSONRenderer()
    isatty = getattr(stream, "isatty", None)
    return structlog.dev.ConsoleRenderer(colors=bool(isatty and isatty()))


def configure_logging(verbosity: int = 0, json_logs: bool = False, stream: Optional[TextIO] = None):
    # safe to call more than once: the previous handler of the `parts` logger is replaced.
    stream = stream if stream is not None else sys.stderr
    level = level_for_verbosity(verbosity)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_renderer(json_logs, stream),
            foreign_pre_chain=[structlog.stdlib.add_log_level],
        )
    )

    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False

    structlog.get_logger(__name__).debug(
        "logging_configured", level=logging.getLevelName(level), json=json_logs
    )
