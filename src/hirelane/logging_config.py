from __future__ import annotations

import logging

from hirelane.config import get_settings

# Chatty third-party loggers kept at WARNING unless the app itself runs at DEBUG.
QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "alembic.runtime.migration")

_LOG_CONFIGURED = False


def configure_logging(level: str | None = None) -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    name = (level or get_settings().log_level).upper()
    resolved = getattr(logging, name, logging.INFO)
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    if resolved > logging.DEBUG:
        for logger_name in QUIET_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)
    _LOG_CONFIGURED = True
