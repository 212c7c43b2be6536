"""Thread-safe leveled logger writing to the console and an optional file."""

from __future__ import annotations

import sys
import threading
from datetime import datetime
from enum import IntEnum
from typing import TextIO


class LogLevel(IntEnum):
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARNING = 3
    ERROR = 4
    FATAL = 5


_LEVEL_NAMES = {
    LogLevel.TRACE: "TRACE",
    LogLevel.DEBUG: "DEBUG",
    LogLevel.INFO: "INFO ",
    LogLevel.WARNING: "WARN ",
    LogLevel.ERROR: "ERROR",
    LogLevel.FATAL: "FATAL",
}


def level_name(level: LogLevel | int) -> str:
    """Return the fixed-width label used for a level in log lines."""
    try:
        return _LEVEL_NAMES[LogLevel(level)]
    except ValueError:
        return "UNKNOWN"


def _timestamp() -> str:
    now = datetime.now()
    return f"{now:%Y-%m-%d %H:%M:%S}.{now.microsecond // 1000:03d}"


class Logger:
    """Logs messages at or above a threshold level to console and file."""

    def __init__(self) -> None:
        self.level = LogLevel.INFO
        self.console_enabled = True
        self.file_enabled = True
        self._file: TextIO | None = None
        self._lock = threading.Lock()

    def initialize(self, log_file: str, level: LogLevel = LogLevel.INFO) -> None:
        """Open ``log_file`` for appending and set the threshold level."""
        with self._lock:
            self.level = LogLevel(level)
            if self._file is not None:
                self._file.close()
                self._file = None
            try:
                self._file = open(log_file, "a", encoding="utf-8")
            except OSError:
                print(f"Failed to open log file: {log_file}", file=sys.stderr)
                self.file_enabled = False
                return
            self.file_enabled = True
            self._file.write(f"\n=== Dinari Blockchain Log Started at {_timestamp()} ===\n\n")

    def set_level(self, level: LogLevel) -> None:
        with self._lock:
            self.level = LogLevel(level)

    def format_message(self, level: LogLevel, category: str, message: str) -> str:
        return f"[{_timestamp()}] [{level_name(level)}] [{category}] {message}"

    def log(self, level: LogLevel, category: str, message: str) -> None:
        if level < self.level:
            return
        with self._lock:
            formatted = self.format_message(level, category, message)
            if self.console_enabled:
                stream = sys.stderr if level >= LogLevel.ERROR else sys.stdout
                print(formatted, file=stream, flush=True)
            if self.file_enabled and self._file is not None:
                self._file.write(formatted + "\n")
                self._file.flush()

    def trace(self, category: str, message: str) -> None:
        self.log(LogLevel.TRACE, category, message)

    def debug(self, category: str, message: str) -> None:
        self.log(LogLevel.DEBUG, category, message)

    def info(self, category: str, message: str) -> None:
        self.log(LogLevel.INFO, category, message)

    def warning(self, category: str, message: str) -> None:
        self.log(LogLevel.WARNING, category, message)

    def error(self, category: str, message: str) -> None:
        self.log(LogLevel.ERROR, category, message)

    def fatal(self, category: str, message: str) -> None:
        self.log(LogLevel.FATAL, category, message)

    def flush(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.flush()

    def close(self) -> None:
        """Write a closing banner and close the log file, if one is open."""
        with self._lock:
            if self._file is not None:
                self._file.write(f"\n=== Dinari Blockchain Log Closed at {_timestamp()} ===\n\n")
                self._file.close()
                self._file = None

    def __enter__(self) -> Logger:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


_instance: Logger | None = None
_instance_lock = threading.Lock()


def get_logger() -> Logger:
    """Return the process-wide logger."""
    global _instance
    with _instance_lock:
        if _instance is None:
            _instance = Logger()
        return _instance