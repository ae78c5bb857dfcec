"""structlog configuration for the sonarqube-client command line.

The library modules only log through ``logging.getLogger(__name__)``; when
running as a program their records are rendered by structlog on stderr,
either for a terminal or as JSON lines (--log-json).
"""

from __future__ import annotations

import logging
import sys

import structlog

# Loggers that log every request at INFO; the executor already does at DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore")


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Route stdlib log records through structlog to stderr.

    Args:
        verbose: Show sonarqube_client DEBUG records (one per request).
            Otherwise only warnings, such as request timeouts, are shown.
        log_json: Render JSON lines instead of console output.
    """
    # Log records come from the stdlib loggers, so the formatter does all the work
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(log_json),
        ],
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger("sonarqube_client").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
