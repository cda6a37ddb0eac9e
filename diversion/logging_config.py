"""Log output for the ``diversion`` loggers.

Engine modules only create loggers under the ``diversion`` namespace. A host
that wants to see them calls ``configure_logging()`` once, usually with the
``logging`` section of the engine YAML (see ``config.load_config``). Records
still propagate to the root logger, so a host with its own setup can skip
this entirely.
"""

import logging
from pathlib import Path

from .errors import ConfigError

PACKAGE_LOGGER = "diversion"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def _level(value):
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).upper())
    if not isinstance(level, int):
        raise ConfigError(f"Unknown log level {value!r}")
    return level


def configure_logging(level=logging.INFO, log_file=None):
    """Attach a console handler (and a file handler when ``log_file`` is set).

    Calling it again only updates the level; handlers are attached once.
    Returns the package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(_level(level))
    if getattr(logger, "_diversion_configured", False):
        return logger

    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(path, mode="a", encoding="utf-8")
        except OSError:
            logger.warning("Cannot open log file %s; logging to console only", path)
        else:
            fh.setFormatter(formatter)
            logger.addHandler(fh)

    logger._diversion_configured = True
    return logger


def reset_logging():
    """Detach and close the handlers added by ``configure_logging``."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.setLevel(logging.NOTSET)
    logger._diversion_configured = False
