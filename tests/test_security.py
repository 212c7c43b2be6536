import base64

import pytest

from dinari.security import (
    RateLimiter,
    base64_decode,
    base64_encode,
    constant_time_compare,
    secure_random_bytes,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.mark.parametrize("data", [b"", b"a", b"ab", b"abc", b"user:password", bytes(range(256))])
def test_base64_round_trip(data):
    assert base64_decode(base64_encode(data)) == data


@pytest.mark.parametrize("data", [b"a", b"ab", b"abc", b"user:password"])
def test_base64_encode_matches_standard(data):
    assert base64_encode(data) == base64.b64encode(data).decode("ascii")


def test_base64_encode_accepts_text():
    assert base64_encode("user:password") == base64_encode(b"user:password")


def test_base64_decode_known_value():
    assert base64_decode("dXNlcg==") == b"user"


def test_base64_decode_stops_at_invalid_character():
    assert base64_decode("dXNl!cg==") == base64_decode("dXNl")


def test_base64_decode_single_leftover_char_ignored():
    assert base64_decode("dXNlc") == base64_decode("dXNl")


def test_base64_decode_without_padding():
    encoded = base64_encode(b"user:password").rstrip("=")
    assert base64_decode(encoded) == b"user:password"


def test_constant_time_compare():
    assert constant_time_compare("password", "password")
    assert not constant_time_compare("password", "passwore")
    assert not constant_time_compare("password", "password1")
    assert constant_time_compare("", "")


def test_secure_random_bytes_length():
    assert len(secure_random_bytes(32)) == 32
    assert secure_random_bytes(0) == b""


def test_secure_random_bytes_negative():
    with pytest.raises(ValueError):
        secure_random_bytes(-1)


def test_rate_limit_window():
    clock = FakeClock()
    limiter = RateLimiter(clock)
    assert limiter.check_limit("1.2.3.4", 2, 60)
    assert limiter.check_limit("1.2.3.4", 2, 60)
    assert not limiter.check_limit("1.2.3.4", 2, 60)
    assert limiter.check_limit("5.6.7.8", 2, 60)
    clock.now += 61
    assert limiter.check_limit("1.2.3.4", 2, 60)


def test_exceeding_limit_does_not_ban_by_itself():
    limiter = RateLimiter(FakeClock())
    for _ in range(5):
        limiter.check_limit("k", 1, 60)
    assert not limiter.is_banned("k")


def test_zero_limit_auto_bans():
    clock = FakeClock()
    limiter = RateLimiter(clock)
    assert not limiter.check_limit("k", 0, 60)
    assert limiter.is_banned("k")
    clock.now += RateLimiter.AUTO_BAN_SECONDS + 1
    assert not limiter.is_banned("k")


def test_ban_and_expiry():
    clock = FakeClock()
    limiter = RateLimiter(clock)
    assert not limiter.is_banned("k")
    limiter.ban("k", 10)
    assert limiter.is_banned("k")
    assert not limiter.check_limit("k", 5, 60)
    clock.now += 11
    assert not limiter.is_banned("k")
    assert limiter.check_limit("k", 5, 60)


def test_cleanup_removes_idle_unbanned_entries():
    clock = FakeClock()
    limiter = RateLimiter(clock)
    limiter.ban("idle", 10)
    limiter.ban("banned", 1000)
    limiter.check_limit("active", 5, 60)
    clock.now += 20
    limiter.cleanup_old_entries()
    assert len(limiter) == 2
    assert limiter.is_banned("banned")
    assert not limiter.is_banned("idle")