"""
Logging configuration for prefixagg.

Console output goes to stderr: stdout may be the destination of the
aggregated list itself.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler, SysLogHandler
from pathlib import Path


LOGGER_NAME = "prefixagg"

# Default unix socket for the local syslog daemon
SYSLOG_ADDRESS = "/dev/log"


class StructuredFormatter(logging.Formatter):
    """Structured formatter for easier log parsing."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with structured data."""
        if not hasattr(record, 'module_name'):
            record.module_name = record.module
        if not hasattr(record, 'function_name'):
            record.function_name = record.funcName

        return super().format(record)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
    enable_console: bool = True,
    enable_syslog: bool = False,
    syslog_address: str | tuple[str, int] = SYSLOG_ADDRESS,
) -> logging.Logger:
    """
    Set up logging for prefixagg.

    Python warnings (e.g. CrossDeviceWarning) are captured and sent to the
    same handlers.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Log file path; enables a rotating file handler
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup log files to keep
        enable_console: Enable console logging on stderr
        enable_syslog: Enable logging to the local syslog daemon
        syslog_address: Syslog socket path or (host, port)

    Returns:
        Configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    console_fmt = logging.Formatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    file_fmt = StructuredFormatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)-20s | %(module_name)-15s | '
            '%(function_name)-20s | %(lineno)-4d | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(console_fmt)
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_fmt)
        logger.addHandler(file_handler)

    if enable_syslog:
        syslog_handler = SysLogHandler(address=syslog_address)
        syslog_handler.setFormatter(logging.Formatter('prefixagg[%(process)d]: %(levelname)s %(message)s'))
        logger.addHandler(syslog_handler)

    logger.propagate = False

    # Route warnings.warn() through the same handlers
    logging.captureWarnings(True)
    warnings_logger = logging.getLogger("py.warnings")
    warnings_logger.handlers = list(logger.handlers)
    warnings_logger.propagate = False
    warnings_logger.setLevel(logger.level)

    return logger


def configure_logging(verbosity: int = 0, log_file: str | None = None, syslog: bool = False) -> logging.Logger:
    """
    Quick logging configuration from a -v/-q count.

    Args:
        verbosity: 0 warnings, 1 info, 2+ debug, negative errors only
        log_file: Optional rotating log file
        syslog: Also log to syslog
    """
    if verbosity < 0:
        level = "ERROR"
    elif verbosity == 0:
        level = "WARNING"
    elif verbosity == 1:
        level = "INFO"
    else:
        level = "DEBUG"
    return setup_logging(level=level, log_file=log_file, enable_syslog=syslog)
