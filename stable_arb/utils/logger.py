# stable_arb/utils/logger.py
"""
Colored console logging for the arbitrage engine and its scripts
"""

import logging
import os
import sys
from typing import Dict, Optional

import colorlog

LOG_FORMAT = "%(log_color)s%(asctime)s | %(levelname)8s | %(name)20s | %(message)s"

# Loggers handed out by get_logger, so the CLI can re-level them together
_configured_loggers: Dict[str, logging.Logger] = {}


class ColoredFormatter(colorlog.ColoredFormatter):
    """Colored formatter shared by every package logger"""

    def __init__(self):
        super().__init__(
            LOG_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
            reset=True,
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            }
        )


def _resolve_level(level: Optional[str]) -> int:
    name = level or os.getenv('LOG_LEVEL', 'INFO')
    return getattr(logging, name.upper(), logging.INFO)


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger with colored output

    Args:
        name: Logger name
        level: Logging level; defaults to LOG_LEVEL from the environment

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        if level:
            logger.setLevel(_resolve_level(level))
        return logger

    log_level = _resolve_level(level)
    logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(ColoredFormatter())
    logger.addHandler(console_handler)

    # One handler per logger, no bubbling to root
    logger.propagate = False

    _configured_loggers[name] = logger
    return logger


def set_log_level(level: str) -> None:
    """Re-level every logger created through get_logger."""
    log_level = _resolve_level(level)
    for logger in _configured_loggers.values():
        logger.setLevel(log_level)
