"""
Shared logging utilities.

Log records go to a rotating file only; the console belongs to progress bars
and command output. Rotated files are made read-only so an audit trail of
past runs cannot be edited in place.
"""

import getpass
import logging
import os
import platform
import socket
import stat
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LEVEL_MAP = {
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG
}

LOG_FORMAT = '%(asctime)s - %(levelname)s - [%(username)s@%(hostname)s] - [%(filename)s:%(lineno)d] - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
LOG_MAX_BYTES = 1_048_576
LOG_BACKUP_COUNT = 5
LOG_FILE_ENV_VAR = 'PAS_LOG_FILE_PATH'


class CustomFormatter(logging.Formatter):
    """Formatter that stamps every record with the operator's username and hostname."""

    def __init__(self):
        super().__init__(LOG_FORMAT, datefmt=DATE_FORMAT)
        self.username = getpass.getuser()
        self.hostname = socket.gethostname()

    def format(self, record):
        record.username = self.username
        record.hostname = self.hostname
        return super().format(record)


def _make_read_only(path: str) -> None:
    if os.name == 'nt' or platform.system().lower().startswith('win'):
        os.chmod(path, stat.S_IREAD)
    else:
        os.chmod(path, 0o444)


class ReadOnlyRotatingFileHandler(RotatingFileHandler):
    """RotatingFileHandler that sets rotated files to read-only."""

    def doRollover(self):
        super().doRollover()
        if self.backupCount <= 0:
            return
        rotated_file = f"{self.baseFilename}.1"
        if not os.path.exists(rotated_file):
            return
        try:
            _make_read_only(rotated_file)
        except OSError as e:
            logging.getLogger(__name__).warning(f"Could not set rotated log file to read-only: {e}")


def resolve_log_file(log_file_path: Optional[str] = None) -> Path:
    """Pick the log file: explicit path, then PAS_LOG_FILE_PATH, then a dated file in the cwd."""
    log_file = (log_file_path or os.getenv(LOG_FILE_ENV_VAR)
                or f"pas-migration-toolkit-{datetime.now().strftime('%Y%m%d')}.log")
    return Path(log_file)


def setup_logging(verbose: bool = False, log_level: str = "INFO", log_file_path: str = None) -> logging.Logger:
    """Configure root logging for a toolkit run.

    Args:
        verbose (bool): Enable verbose logging (overrides log_level)
        log_level (str): Logging level (ERROR, WARNING, INFO, DEBUG)
        log_file_path (str): Custom log file path (optional, overrides environment variable)

    Returns:
        logging.Logger: Configured logger instance
    """
    actual_level = logging.DEBUG if verbose else LEVEL_MAP.get(log_level.upper(), logging.INFO)

    log_path = resolve_log_file(log_file_path)
    if log_path.parent != Path('.'):
        log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = ReadOnlyRotatingFileHandler(
        str(log_path), maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding='utf-8', mode='a'
    )
    file_handler.setFormatter(CustomFormatter())

    logging.basicConfig(level=actual_level, handlers=[file_handler], force=True)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging to {log_path} at level {logging.getLevelName(actual_level)}")
    return logger


def change_log_level(new_level: str) -> bool:
    """Change the level of the root logger and every logger created so far.

    Returns:
        bool: False if the level name is not recognized
    """
    level = LEVEL_MAP.get(new_level.upper())
    if level is None:
        return False

    logging.getLogger().setLevel(level)
    for logger_name in logging.root.manager.loggerDict:
        logging.getLogger(logger_name).setLevel(level)

    logging.getLogger(__name__).info(f"Log level changed to: {new_level.upper()}")
    return True
