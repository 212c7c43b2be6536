"""Base64 helpers, constant-time comparison, secure randomness and rate limiting."""

from __future__ import annotations

import base64
import hmac
import secrets
import threading
import time
from dataclasses import dataclass, field
from itertools import takewhile
from typing import Callable

_BASE64_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_BASE64_INDEX = {c: i for i, c in enumerate(_BASE64_CHARS)}


def _is_base64(char: str) -> bool:
    return char in _BASE64_INDEX


def base64_decode(encoded: str | bytes) -> bytes:
    """Decode Base64 leniently, stopping at padding or the first invalid character."""
    if isinstance(encoded, (bytes, bytearray)):
        encoded = bytes(encoded).decode("latin-1")
    values = [_BASE64_INDEX[c] for c in takewhile(lambda c: c != "=" and _is_base64(c), encoded)]

    out = bytearray()
    for start in range(0, len(values), 4):
        chunk = values[start:start + 4]
        count = len(chunk)
        a, b, c, d = chunk + [0] * (4 - count)
        decoded = (
            ((a << 2) | (b >> 4)) & 0xFF,
            (((b & 0x0F) << 4) | (c >> 2)) & 0xFF,
            (((c & 0x03) << 6) | d) & 0xFF,
        )
        out += bytes(decoded[: 3 if count == 4 else max(count - 1, 0)])
    return bytes(out)


def base64_encode(data: str | bytes) -> str:
    """Encode data as padded standard Base64."""
    raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    return base64.b64encode(raw).decode("ascii")


def constant_time_compare(a: str | bytes, b: str | bytes) -> bool:
    """Compare two values in time independent of where they differ."""
    left = a.encode("utf-8") if isinstance(a, str) else bytes(a)
    right = b.encode("utf-8") if isinstance(b, str) else bytes(b)
    return hmac.compare_digest(left, right)


def secure_random_bytes(length: int) -> bytes:
    """Return ``length`` cryptographically secure random bytes."""
    if length < 0:
        raise ValueError("length must be non-negative")
    return secrets.token_bytes(length)


@dataclass
class _RequestHistory:
    timestamps: list[float] = field(default_factory=list)
    ban_until: float = float("-inf")


class RateLimiter:
    """Sliding-window request limiter with temporary bans, keyed by client."""

    AUTO_BAN_SECONDS = 3600

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._history: dict[str, _RequestHistory] = {}
        self._lock = threading.Lock()

    def check_limit(self, key: str, max_requests: int, window_seconds: float) -> bool:
        """Record a request and return whether it is within the limit."""
        with self._lock:
            now = self._clock()
            record = self._history.setdefault(key, _RequestHistory())
            if now < record.ban_until:
                return False

            cutoff = now - window_seconds
            record.timestamps = [t for t in record.timestamps if t >= cutoff]

            if len(record.timestamps) >= max_requests:
                if len(record.timestamps) >= max_requests * 2:
                    record.ban_until = now + self.AUTO_BAN_SECONDS
                return False

            record.timestamps.append(now)
            return True

    def cleanup_old_entries(self) -> None:
        """Forget keys with no recorded requests and no active ban."""
        with self._lock:
            now = self._clock()
            self._history = {
                key: record
                for key, record in self._history.items()
                if record.timestamps or record.ban_until >= now
            }

    def ban(self, key: str, duration_seconds: float = 3600) -> None:
        with self._lock:
            record = self._history.setdefault(key, _RequestHistory())
            record.ban_until = self._clock() + duration_seconds

    def is_banned(self, key: str) -> bool:
        with self._lock:
            record = self._history.get(key)
            return record is not None and self._clock() < record.ban_until

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)