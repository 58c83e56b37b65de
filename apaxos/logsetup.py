"""Console logger configuration."""

import logging
import sys

LOGGER_NAME = "apaxos"

_LEVELS = {
    "": logging.INFO,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "dpanic": logging.CRITICAL,
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}

_FORMAT = "%(asctime)s\t%(levelname)s\t%(name)s\t%(message)s"


def new_logger(level):
    """Return the package logger writing to stderr at the named level.

    An unknown level name is reported and replaced by the warning level.
    """
    resolved = _LEVELS.get(level.lower()) if isinstance(level, str) else None
    if resolved is None:
        print(f"cannot parse log level {level}: unrecognized level", file=sys.stderr)
        resolved = logging.WARNING

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(resolved)
    logger.propagate = False
    return logger