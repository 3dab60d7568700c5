"""Structlog configuration for the indexer.

Every log line is emitted by a domain probe; this module only decides how
those events are rendered. Interactive runs get colored key/value output,
everything else (containers, CI, log shippers) gets one JSON object per line.
"""

import logging
import os
import sys

import structlog

from infrastructure.settings import LoggingSettings


def _wants_color(settings: LoggingSettings) -> bool:
    if settings.json_output:
        return False
    # FORCE_COLOR=1 keeps colors when stdout is not a TTY (docker logs -f)
    if os.environ.get("FORCE_COLOR", "").lower() in ("1", "true", "yes"):
        return True
    return sys.stdout.isatty()


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structlog once for the whole process.

    Args:
        settings: Logging settings (default: loaded from the environment)
    """
    settings = settings or LoggingSettings()

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if _wants_color(settings):
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
