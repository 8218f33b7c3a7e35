"""Structlog-based logging for Smart Search.

Library code logs through structlog event names; no print() outside the CLI.
Events are handed to stdlib logging, so the host application owns handlers.
"""
from __future__ import annotations

from typing import Literal

import logging
import sys

import structlog

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def configure_logging(level: LogLevel = "INFO", json: bool = True) -> None:
    logging.basicConfig(format="%(message)s", level=getattr(logging, level), stream=sys.stderr)
    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer(colors=False)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "smart_search"):
    return structlog.get_logger(name)


# Initialize default config
configure_logging()
