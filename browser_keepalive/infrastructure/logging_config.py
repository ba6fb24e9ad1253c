"""
Logging Configuration for browser-keepalive
Console output for the operator plus optional rotating log files
"""

import logging
import logging.handlers
import os
from datetime import datetime
from typing import Optional

from browser_keepalive.tracking import t

CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - [keepalive] %(message)s'
DETAILED_FORMAT = (
    '%(asctime)s - %(name)s - %(levelname)s - '
    '[%(filename)s:%(lineno)d in %(funcName)s()] - %(message)s'
)

# Named loggers used across the runtime
KEEPALIVE_LOGGERS = (
    'KeepaliveApplication',
    'KeepaliveScheduler',
    'IdleDetector',
    'LaunchRecovery',
    'EngineInstaller',
    'EngineLauncher',
    'CdpDiscovery',
    'NetworkRecorder',
)


def setup_logging(level: str = 'INFO', log_dir: Optional[str] = None) -> None:
    """
    Set up logging with a console handler and, when ``log_dir`` is given,
    rotating main and error log files.

    Args:
        level: Name of the minimum level for keepalive loggers
        log_dir: Directory for ``keepalive.log`` and ``keepalive_errors.log``
    """
    t('infrastructure.logging_config.setup_logging')
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(min(numeric_level, logging.INFO))

    # Clear existing handlers
    root_logger.handlers = []

    detailed_formatter = logging.Formatter(DETAILED_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
    console_formatter = logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S')

    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        main_log_file = os.path.join(log_dir, 'keepalive.log')
        error_log_file = os.path.join(log_dir, 'keepalive_errors.log')

        main_file_handler = logging.handlers.RotatingFileHandler(
            main_log_file,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        main_file_handler.setLevel(numeric_level)
        main_file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(main_file_handler)

        error_file_handler = logging.handlers.RotatingFileHandler(
            error_log_file,
            maxBytes=5*1024*1024,  # 5MB
            backupCount=5,
            encoding='utf-8'
        )
        error_file_handler.setLevel(logging.ERROR)
        error_file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(error_file_handler)

    for name in KEEPALIVE_LOGGERS:
        logging.getLogger(name).setLevel(numeric_level)

    # Reduce noise from external libraries
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('selenium').setLevel(logging.WARNING)

    root_logger.debug("Logging initialized at %s (level=%s, log_dir=%s)",
                      datetime.now(), level.upper(), log_dir or '(console only)')


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name

    Args:
        name: Logger name (usually one of ``KEEPALIVE_LOGGERS``)

    Returns:
        logging.Logger instance
    """
    return logging.getLogger(name)
