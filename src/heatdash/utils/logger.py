"""
Logging configuration for heatdash

Everything goes to heatdash.log and the console; errors are also kept in
heatdash_errors.log so they survive rotation of the main file.
"""

import logging
import sys
import time
from pathlib import Path
from typing import Optional
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_DIR = Path.home() / ".heatdash" / "logs"

ERROR_LOG_MAX_MB = 5
ERROR_LOG_BACKUPS = 3


def _rotating_handler(path: Path, level, max_mb: int, backups: int,
                      formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=max_mb * 1024 * 1024, backupCount=backups, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logger(log_level=logging.INFO, max_size_mb: int = 10, backup_count: int = 5,
                 log_dir: Optional[Path] = None, retention_days: int = 30) -> Path:
    """
    Route the root logger to rotating files under log_dir and to stdout.

    Calling it again replaces the handlers of the previous call. Rotated
    heatdash logs older than retention_days are removed.

    Returns:
        Path of the main log file
    """
    log_dir = Path(log_dir) if log_dir is not None else DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "heatdash.log"

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(log_level)

    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    console.setFormatter(formatter)

    for handler in (
        _rotating_handler(log_file, log_level, max_size_mb, backup_count, formatter),
        _rotating_handler(log_dir / "heatdash_errors.log", logging.ERROR,
                          ERROR_LOG_MAX_MB, ERROR_LOG_BACKUPS, formatter),
        console,
    ):
        root_logger.addHandler(handler)

    removed = remove_stale_logs(log_dir, retention_days)
    logging.getLogger(__name__).info(f"Logging to {log_file} ({removed} stale log files removed)")
    return log_file


def remove_stale_logs(log_dir: Path, days: int) -> int:
    """Delete heatdash*.log* files not modified for `days` days; returns the count."""
    cutoff = time.time() - days * 86400
    removed = 0
    for path in Path(log_dir).glob("heatdash*.log*"):
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed += 1
        except OSError as e:
            logging.getLogger(__name__).debug(f"Could not remove {path.name}: {e}")
    return removed
