"""Logging configuration for the panelmon application."""

import logging
import os
import sys


def configure_logging() -> None:
    """Configure application-wide logging.

    Respects PANELMON_LOG_LEVEL environment variable (default: INFO).
    Logs to stderr with timestamp, level, module name, and message.

    Environment Variables:
        PANELMON_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
                            Default is INFO.

    Examples:
        # Trace every backend request and worker handoff
        $ PANELMON_LOG_LEVEL=DEBUG python -m panelmon
    """
    log_level_str = os.environ.get("PANELMON_LOG_LEVEL", "INFO").upper()

    log_level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    log_level = log_level_map.get(log_level_str, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )

    # urllib3 logs every connection at DEBUG, which drowns our own tracing
    logging.getLogger("urllib3").setLevel(max(log_level, logging.INFO))

    logger = logging.getLogger(__name__)
    logger.info("Logging configured: level=%s", logging.getLevelName(log_level))
