# dac/logging_utils.py
"""
Logging setup for applications built on dac.

Every dac module logs through ``logging.getLogger(__name__)``; generated SQL is
logged at DEBUG level under the ``dac.table`` logger. These helpers configure
the root logger with a log file per run (``<script>_<timestamp>.log``), an
optional error log that is only created when an error is actually logged, and
a console handler.
"""

import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

_error_handler: Optional['ErrorCountHandler'] = None
_main_log_path: Optional[str] = None
_error_log_path: Optional[str] = None


class ErrorCountHandler(logging.Handler):
    """Counts ERROR and CRITICAL records; opens the error log file on the first one."""

    def __init__(self, error_log_path: Optional[str] = None, formatter: Optional[logging.Formatter] = None):
        super().__init__(level=logging.ERROR)
        self.error_count = 0
        self.error_log_path = error_log_path
        self.formatter = formatter
        self._file_handler: Optional[logging.FileHandler] = None

    def emit(self, record):
        if record.levelno < logging.ERROR:
            return
        self.error_count += 1
        if self.error_log_path and self._file_handler is None:
            try:
                handler = logging.FileHandler(self.error_log_path, encoding='utf-8')
            except OSError as e:
                logger.warning(f"Could not open error log {self.error_log_path}: {e}")
                self.error_log_path = None
                return
            handler.setLevel(logging.ERROR)
            if self.formatter:
                handler.setFormatter(self.formatter)
            self._file_handler = handler
            # appended while the root logger is dispatching, so it also receives this record
            logging.getLogger().addHandler(handler)


def setup_logging(
    script_name: Optional[str] = None,
    log_dir: Optional[str] = None,
    level: Optional[str] = None,
    split_errors: Optional[bool] = None,
    console: Optional[bool] = None,
    sql_debug: Optional[bool] = None,
) -> Tuple[str, Optional[str]]:
    """
    Configure the root logger.

    Unset arguments come from the ``logging`` section of the settings
    (see :mod:`dac.defaults` and :mod:`dac.config`).

    Args:
        script_name: Base name of the log files; defaults to the running script's name
        log_dir: Directory for log files
        level: Root level name - DEBUG, INFO, WARNING, ERROR
        split_errors: Also write ERROR and above to ``<name>_<timestamp>_error.log``
        console: Also log to stdout
        sql_debug: Log generated SQL (``dac.table`` at DEBUG) regardless of ``level``

    Returns:
        Tuple of (log_file_path, error_log_path or None)

    Example
    -------
    ::

        import dac

        dac.setup_logging('nightly_sync', sql_debug=True)
    """
    from dac.config import get_setting

    if script_name is None:
        script_name = Path(sys.argv[0]).stem or 'dac'

    log_dir = log_dir or get_setting('logging.directory', './logs')
    level = (level or get_setting('logging.level', 'INFO')).upper()
    if split_errors is None:
        split_errors = get_setting('logging.split_errors', True)
    if console is None:
        console = get_setting('logging.console', True)
    if sql_debug is None:
        sql_debug = get_setting('logging.sql_debug', False)
    log_format = get_setting('logging.format', '%(asctime)s [%(levelname)s] %(name)s: %(message)s')
    timestamp_format = get_setting('logging.timestamp_format', '%Y-%m-%d %H:%M:%S')
    filename_format = get_setting('logging.filename_format', '%Y%m%d_%H%M%S')

    log_dir_path = Path(log_dir)
    log_dir_path.mkdir(parents=True, exist_ok=True)
    stem = f"{script_name}_{datetime.now().strftime(filename_format)}" if filename_format else script_name
    log_file = log_dir_path / f"{stem}.log"
    error_file = log_dir_path / f"{stem}_error.log" if split_errors else None

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level))
    root_logger.handlers.clear()
    formatter = logging.Formatter(log_format, datefmt=timestamp_format)

    global _error_handler, _main_log_path, _error_log_path
    _error_handler = ErrorCountHandler(str(error_file) if error_file else None, formatter)
    root_logger.addHandler(_error_handler)

    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, level))
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    logging.getLogger('dac.table').setLevel(logging.DEBUG if sql_debug else logging.NOTSET)

    _main_log_path = str(log_file)
    _error_log_path = str(error_file) if error_file else None
    logging.info(f"Logging initialized: {log_file}")
    return _main_log_path, _error_log_path


def errors_logged() -> Optional[str]:
    """
    Path of the log holding this run's errors, or None when nothing was logged at ERROR.

    That is the error log when errors are split out, the main log otherwise.
    Returns None as well when :func:`setup_logging` was not called.

    Example
    -------
    ::

        dac.setup_logging('nightly_sync')
        sync_users(db)
        error_log = dac.errors_logged()
        if error_log:
            notify_admins(error_log)
    """
    if _error_handler is None:
        logger.warning("errors_logged() called but setup_logging() was not called")
        return None
    if _error_handler.error_count == 0:
        return None
    return _error_log_path or _main_log_path


def cleanup_old_logs(
    log_dir: Optional[str] = None,
    retention_days: Optional[int] = None,
    pattern: str = "*.log",
    dry_run: bool = False
) -> List[str]:
    """
    Remove log files whose modification time is older than the retention period.

    Args:
        log_dir: Directory to clean; defaults to the ``logging.directory`` setting
        retention_days: Age limit in days; defaults to ``logging.retention_days``
        pattern: Glob pattern for log files
        dry_run: Only report what would be deleted

    Returns:
        Paths deleted, or that would be deleted with ``dry_run``
    """
    from dac.config import get_setting

    log_dir_path = Path(log_dir or get_setting('logging.directory', './logs'))
    retention_days = retention_days or get_setting('logging.retention_days', 30)
    if not log_dir_path.exists():
        logger.warning(f"Log directory does not exist: {log_dir_path}")
        return []

    cutoff = datetime.now() - timedelta(days=retention_days)
    removed = []
    for log_file in log_dir_path.glob(pattern):
        if not log_file.is_file() or datetime.fromtimestamp(log_file.stat().st_mtime) >= cutoff:
            continue
        if not dry_run:
            try:
                log_file.unlink()
            except OSError as e:
                logger.warning(f"Failed to delete {log_file}: {e}")
                continue
        removed.append(str(log_file))

    if removed:
        action = 'Would delete' if dry_run else 'Deleted'
        logger.info(f"{action} {len(removed)} old log files from {log_dir_path}")
    return removed
