"""
Logging setup for the kinematic_fitting package and its command-line tool.

Fit results are printed to stdout, so log records go to stderr. A log file,
when given, always receives DEBUG records (HEIV iteration traces included)
regardless of the console level.
"""
import logging
import sys
from typing import Optional, Union

PACKAGE_LOGGER = "kinematic_fitting"

CONSOLE_FORMAT = '%(asctime)s %(levelname)-7s %(message)s'
FILE_FORMAT = '%(asctime)s %(name)s:%(lineno)d %(levelname)s %(message)s'


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        return resolved
    return int(level)


def setup_logging(level: Union[int, str] = logging.INFO,
                  log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach console (and optional file) handlers to the package logger.

    Calling it again replaces the handlers from the previous call.

    Args:
        level: console level, as a logging constant or a name like "debug"
        log_file: optional path; overwritten, records everything from DEBUG up

    Returns:
        The package logger.
    """
    console_level = _resolve_level(level)

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(console_level)

    return logger
