"""
# relink
# Copyright (c) 2026 relink contributors
# Licensed under the MIT License. See LICENSE in the project root.

log_utils.py - Console logging for the relink command

Library modules log through ``logging.getLogger(__name__)`` and never
configure handlers. The CLI calls setup_logging() once to attach an
icon-prefixed stderr handler to the "relink" logger.
"""

import logging
from datetime import datetime


# Message only; the CLI prints fence() markers when timing matters
LOG_FORMAT = "%(message)s"

LEVEL_ICONS = {
    logging.DEBUG: "🔍",
    logging.INFO: "✔️",
    logging.WARNING: "⚠️",
    logging.ERROR: "❌",
    logging.CRITICAL: "💥",
}

# -v count -> level
VERBOSITY_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]


class IconLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        icon = LEVEL_ICONS.get(record.levelno, "✔️")
        return f"{icon} {super().format(record)}"


def setup_logging(verbosity: int = 0) -> logging.Logger:
    level = VERBOSITY_LEVELS[min(max(verbosity, 0), len(VERBOSITY_LEVELS) - 1)]

    handler = logging.StreamHandler()
    handler.setFormatter(IconLogFormatter(LOG_FORMAT))

    logger = logging.getLogger("relink")
    logger.handlers.clear()
    logger.setLevel(level)
    logger.addHandler(handler)
    return logger


RULE = "." * 80


def fence(label: str) -> str:
    """Visual phase marker with a timestamped label."""
    return f"{RULE}\n[{datetime.now():%H:%M:%S}] {label}\n"
