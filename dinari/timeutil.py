"""Wall-clock and monotonic time helpers, plus a simple elapsed-time timer."""

from __future__ import annotations

import re
import time
from datetime import datetime
from typing import Callable

_ISO8601_PREFIX = re.compile(
    r"\s*(\d{1,4})-(\d{1,2})-(\d{1,2})T(\d{1,2}):(\d{1,2}):(\d{1,2})"
)


def current_time() -> int:
    """Return the current Unix time in whole seconds."""
    return time.time_ns() // 1_000_000_000


def current_time_millis() -> int:
    """Return the current Unix time in milliseconds."""
    return time.time_ns() // 1_000_000


def current_time_micros() -> int:
    """Return the current Unix time in microseconds."""
    return time.time_ns() // 1_000


def format_timestamp(timestamp: int) -> str:
    """Format a Unix timestamp in local time as ``YYYY-MM-DD HH:MM:SS``."""
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(timestamp))


def format_iso8601(timestamp: int) -> str:
    """Format a Unix timestamp in UTC as ``YYYY-MM-DDTHH:MM:SSZ``."""
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(timestamp))


def parse_iso8601(text: str) -> int:
    """Parse ``YYYY-MM-DDTHH:MM:SS`` as local time; return 0 if it does not parse."""
    match = _ISO8601_PREFIX.match(text)
    if match is None:
        return 0
    year, month, day, hour, minute, second = (int(part) for part in match.groups())
    try:
        datetime(year, month, day, hour, minute, second)
    except ValueError:
        return 0
    try:
        return int(time.mktime((year, month, day, hour, minute, second, 0, 0, -1)))
    except (OverflowError, ValueError):
        return 0


def sleep_millis(milliseconds: int) -> None:
    """Block the calling thread for the given number of milliseconds."""
    time.sleep(milliseconds / 1000)


def monotonic_micros() -> int:
    """Return a monotonic clock reading in microseconds."""
    return time.monotonic_ns() // 1_000


def is_in_future(timestamp: int, tolerance: int = 0) -> bool:
    """Return whether ``timestamp`` lies more than ``tolerance`` seconds ahead."""
    return timestamp > current_time() + tolerance


def is_in_past(timestamp: int, tolerance: int = 0) -> bool:
    """Return whether ``timestamp`` lies more than ``tolerance`` seconds behind."""
    return timestamp < current_time() - tolerance


def difference(timestamp1: int, timestamp2: int) -> int:
    """Return the absolute difference in seconds between two timestamps."""
    return abs(timestamp1 - timestamp2)


class Timer:
    """Measures elapsed time in microseconds; starts running on creation."""

    def __init__(self, clock: Callable[[], int] = monotonic_micros) -> None:
        self._clock = clock
        self._start_time = 0
        self._running = False
        self.start()

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start or restart the timer."""
        self._start_time = self._clock()
        self._running = True

    def stop(self) -> int:
        """Stop the timer and return the elapsed microseconds (0 if already stopped)."""
        if not self._running:
            return 0
        elapsed = self._clock() - self._start_time
        self._running = False
        return elapsed

    def elapsed(self) -> int:
        """Return elapsed microseconds without stopping (0 if stopped)."""
        if not self._running:
            return 0
        return self._clock() - self._start_time

    def elapsed_millis(self) -> int:
        return self.elapsed() // 1000

    def elapsed_seconds(self) -> float:
        return self.elapsed() / 1_000_000