import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import config

_LOGGER_NAME = "hotel_ops"
_LOG_FILE = Path(config.LOG_FILE)


def _configure_logger() -> logging.Logger:
    logger = logging.getLogger(_LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    logger.propagate = False

    try:
        handler = RotatingFileHandler(_LOG_FILE, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    except OSError:
        handler = logging.StreamHandler()

    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


_logger = _configure_logger()


def _format(area: str, user: str, action: str, detail: str = "") -> str:
    message = f"{area.upper()} | User: {user} | Action: {action}"
    if detail:
        message += f" | Detail: {detail}"
    return message


def log_event(area: str, user: str, action: str, detail: str = "") -> None:
    _logger.info(_format(area, user, action, detail))


def log_error(area: str, user: str, action: str, exc: BaseException) -> None:
    _logger.error(_format(area, user, action, f"{type(exc).__name__}: {exc}"), exc_info=exc)
