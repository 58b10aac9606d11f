import logging
import sys

from .constants import DEFAULT_LOG_LEVEL
from .errors import ConfigurationError

LOGGER_NAME = "kubeaccess"

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}

_TAGS = {
    "DEBUG": "debug",
    "INFO": "info",
    "WARNING": "warn",
    "ERROR": "error",
    "CRITICAL": "fatal",
}


class TagFormatter(logging.Formatter):
    """Formats records as `[warn] message`."""

    def format(self, record: logging.LogRecord) -> str:
        tag = _TAGS.get(record.levelname, record.levelname.lower())
        return f"[{tag}] {record.getMessage()}"


def parse_level(name: str) -> int:
    try:
        return LEVELS[name.lower()]
    except KeyError:
        raise ConfigurationError(f"parsing log level: unknown level {name!r}") from None


def setup_logging(verbosity: str = DEFAULT_LOG_LEVEL, stream=None) -> logging.Logger:
    level = parse_level(verbosity)
    logger = logging.getLogger(LOGGER_NAME)

    # re-running setup (diff, tests) must not stack handlers
    for h in list(logger.handlers):
        logger.removeHandler(h)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(TagFormatter())
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.debug("Set log-level to %s", verbosity)
    return logger
