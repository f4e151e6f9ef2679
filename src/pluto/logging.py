"""Logging configuration for Pluto"""

import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

LOG_FORMAT = '%(asctime)s.%(msecs)03d - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


class ProjectOnlyFilter(logging.Filter):
    """Only pass records emitted by pluto.* loggers"""

    def filter(self, record):
        return record.name == 'pluto' or record.name.startswith('pluto.')


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding='utf-8')
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_dir: Path | str, console_level: int = logging.WARNING) -> None:
    """Setup logging configuration for Pluto

    Log files written to log_dir:
    - debug.log: DEBUG+ from pluto.* loggers only
    - info.log: INFO+ from every logger
    - error.log: ERROR+ from every logger

    Console output goes to stderr so it never interleaves with terminal output
    streamed to stdout.

    Args:
        log_dir: Directory for the log files (created if missing)
        console_level: Minimum level echoed to the console
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    # Replace handlers from any earlier call instead of duplicating them
    root_logger.handlers.clear()

    debug_handler = _file_handler(log_dir / "debug.log", logging.DEBUG, formatter)
    debug_handler.addFilter(ProjectOnlyFilter())
    root_logger.addHandler(debug_handler)
    root_logger.addHandler(_file_handler(log_dir / "info.log", logging.INFO, formatter))
    root_logger.addHandler(_file_handler(log_dir / "error.log", logging.ERROR, formatter))

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(ProjectOnlyFilter())
    root_logger.addHandler(console_handler)

    logging.getLogger(__name__).info(f"Logging initialized: log_dir={log_dir}")
