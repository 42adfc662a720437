"""Logging configuration, log sinks and utilities."""

import logging
import logging.handlers
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

# A log sink is anything that accepts one human-readable progress line
LogSink = Callable[[str], None]


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    log_to_console: bool = True,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to diagnostic log file (optional)
        log_to_console: Whether to log to console
        max_file_size: Maximum size of log file before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured logger
    """
    logger = logging.getLogger("syncnest")
    logger.setLevel(getattr(logging, log_level.upper()))

    # Clear existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(getattr(logging, log_level.upper()))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8',
            errors='backslashreplace'
        )
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(f"syncnest.{name}")


class FileLogSink:
    """Log sink appending newline-terminated lines to a plain text file."""

    def __init__(self, path: Path):
        """Initialize file sink.

        Args:
            path: Log file to append to (parent directories are created)
        """
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def __call__(self, line: str):
        with open(self.path, 'a', encoding='utf-8', errors='backslashreplace') as f:
            f.write(line.rstrip('\n') + '\n')


class LoggerSink:
    """Log sink forwarding progress lines to a standard logger."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.logger = logger or get_logger("backup")
        self.level = level

    def __call__(self, line: str):
        self.logger.log(self.level, line)


class TeeSink:
    """Log sink fanning every line out to several sinks.

    The first sink exposing a ``path`` attribute is reported as the log
    location at the end of a run.
    """

    def __init__(self, *sinks: LogSink):
        self.sinks = sinks
        self.path = next(
            (getattr(sink, 'path') for sink in sinks if getattr(sink, 'path', None)),
            None
        )

    def __call__(self, line: str):
        for sink in self.sinks:
            sink(line)


class TimedOperation:
    """Context manager for timing operations and logging results."""

    def __init__(self, logger: logging.Logger, operation_name: str, log_level: str = "INFO"):
        """Initialize timed operation.

        Args:
            logger: Logger to use
            operation_name: Name of the operation
            log_level: Log level for timing messages
        """
        self.logger = logger
        self.operation_name = operation_name
        self.log_level = getattr(logging, log_level.upper())
        self.start_time = None

    def __enter__(self):
        """Start timing."""
        self.start_time = datetime.now()
        self.logger.log(self.log_level, f"Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Stop timing and log results."""
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()
            if exc_type is None:
                self.logger.log(self.log_level, f"Completed {self.operation_name} in {duration:.2f}s")
            else:
                self.logger.error(f"Failed {self.operation_name} after {duration:.2f}s: {exc_val}")
