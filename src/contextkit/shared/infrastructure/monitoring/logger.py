"""
Logging setup for contextkit.

Every component logs through ``get_logger(__name__)``. The first call
configures the root logger from ``Settings.logging_config``.
"""

import logging
import sys
from functools import lru_cache
from pathlib import Path
from typing import Optional

from ...config.settings import get_settings


# Libraries that log every model download or HTTP request at INFO
QUIET_LOGGERS = ('sentence_transformers', 'transformers', 'urllib3', 'filelock')

_HANDLER_MARKER = '_contextkit_handler'


@lru_cache()
def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    include_timestamp: bool = True
) -> None:
    """
    Configure the root logger for contextkit.

    The level and file come from settings when they are set there; the
    arguments fill in otherwise. The call is cached, so repeating it with the
    same arguments does nothing. A call with new arguments, or any call after
    ``setup_logging.cache_clear()``, replaces the handlers installed here and
    leaves every other handler alone.

    Args:
        log_level: Fallback logging level
        log_file: Log file path, in addition to stdout
        include_timestamp: Prefix records with their time
    """
    config = get_settings().logging_config

    level = getattr(logging, (config.get('level') or log_level).upper(), logging.INFO)
    log_file = log_file or config.get('file')

    fmt = config['format']
    if not include_timestamp:
        fmt = fmt.replace('%(asctime)s - ', '')
    formatter = logging.Formatter(fmt, datefmt='%Y-%m-%d %H:%M:%S')

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        if getattr(handler, _HANDLER_MARKER, False):
            root_logger.removeHandler(handler)
            handler.close()

    _install_handler(root_logger, logging.StreamHandler(sys.stdout), formatter, level)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        _install_handler(root_logger, logging.FileHandler(log_path, encoding='utf-8'), formatter, level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _install_handler(root_logger: logging.Logger,
                     handler: logging.Handler,
                     formatter: logging.Formatter,
                     level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    setattr(handler, _HANDLER_MARKER, True)
    root_logger.addHandler(handler)


@lru_cache()
def get_logger(name: str) -> logging.Logger:
    """Logger for a contextkit module, configuring logging on first use."""
    setup_logging()
    return logging.getLogger(name)
