# orderbot/logging_config.py
from __future__ import annotations

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# chatty client libraries only show up in debug mode
_NOISY = ("sqlalchemy.engine", "urllib3", "twilio.http_client")


def resolve_level(name: Optional[str]) -> int:
    level = logging.getLevelName((name or "").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(level_name: Optional[str] = None) -> int:
    """Send orderbot logs to stdout at LOG_LEVEL; returns the level used."""
    level = resolve_level(level_name)
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout)
    logging.getLogger("orderbot").setLevel(level)
    for name in _NOISY:
        logging.getLogger(name).setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)
    return level
