"""Connector logging"""
import re
import time
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from spidymq import LOGNAME
from spidymq.config import load_logging_config


logger = logging.getLogger(LOGNAME)

# Handlers added by init_logger, replaced on each call
_handlers = []


def _remove_handlers():
    while _handlers:
        handler = _handlers.pop()
        logger.removeHandler(handler)
        handler.close()


def _daily_file_handler(dirpath, history):
    handler = TimedRotatingFileHandler(
        Path(dirpath) / f"{LOGNAME}.log",
        when="midnight", backupCount=history, utc=True)
    handler.suffix = "%Y-%m-%d"
    handler.extMatch = re.compile(r"^\d{4}-\d{2}-\d{2}$")
    return handler


def init_logger(log_config):
    """Set up connector logger from SPIDYMQ_LOGGING settings.

    Handlers set up by a previous call are closed and replaced, so an
    application factory may call this once per application.

    :param dict log_config: Logging settings (see
        :class:`spidymq.config.LoggingConfigSchema`).
    :raises ConfigurationError: When settings are not valid.
    """
    log_config = load_logging_config(log_config)
    _remove_handlers()

    formatter = logging.Formatter(log_config["format"])
    formatter.converter = time.gmtime
    if log_config["console"]:
        _handlers.append(logging.StreamHandler())
    if log_config["dirpath"] is not None:
        _handlers.append(
            _daily_file_handler(log_config["dirpath"], log_config["history"]))
    for handler in _handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(log_config["level"])
    logger.disabled = not log_config["enabled"]
    logger.info(
        "Logger set up: [%s] level, [%d] handler(s)",
        log_config["level"], len(_handlers))
