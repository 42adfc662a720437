"""Utility functions and helpers."""

from .logging import FileLogSink, LoggerSink, TeeSink, setup_logging
from .file_utils import FileHelper, calculate_file_hash

__all__ = ["setup_logging", "FileLogSink", "LoggerSink", "TeeSink", "FileHelper", "calculate_file_hash"]
