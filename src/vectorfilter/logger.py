import logging
from typing import Dict, Optional

from vectorfilter.settings import settings as api_settings

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False
_loggers: Dict[str, "Logger"] = {}


def setup_global_logging(level: str = "INFO") -> None:
    """Configure the root logger once in a standardized format.

    Args:
        level: Log level name (e.g., "DEBUG", "INFO"); unknown names fall back to INFO
    """
    global _configured
    if _configured:
        return
    logging.basicConfig(level=_LEVELS.get((level or "").upper(), logging.INFO), format=_FORMAT)
    _configured = True


def get_logger(name: Optional[str] = None) -> "Logger":
    """Return a cached `Logger` for `name`, configuring global logging on first use."""
    key = name or "vectorfilter"
    if key not in _loggers:
        _loggers[key] = Logger(key)
    return _loggers[key]


class Logger:
    """Thin wrapper over standard logging with a level-aware `.message()`.

    `.message(text)` is the call stores and the engine use for lifecycle
    events: it logs at DEBUG when LOG_LEVEL is DEBUG, at INFO when it is INFO
    or unset, and at the configured level otherwise.
    """

    def __init__(self, name: Optional[str] = None) -> None:
        if not _configured:
            setup_global_logging(api_settings.LOG_LEVEL)
        self._logger = logging.getLogger(name or "vectorfilter")

    @property
    def name(self) -> str:
        return self._logger.name

    def debug(self, msg: str, *args, **kwargs) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        self._logger.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs) -> None:
        self._logger.exception(msg, *args, **kwargs)

    def message(self, msg: str, *args, **kwargs) -> None:
        level = (api_settings.LOG_LEVEL or "").upper()
        if level == "DEBUG":
            self.debug(msg, *args, **kwargs)
        elif level in ("INFO", ""):
            self.info(msg, *args, **kwargs)
        else:
            self._logger.log(_LEVELS.get(level, logging.INFO), msg, *args, **kwargs)
