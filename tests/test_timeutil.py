import time

from dinari.timeutil import (
    Timer,
    current_time,
    current_time_micros,
    current_time_millis,
    difference,
    format_iso8601,
    format_timestamp,
    is_in_future,
    is_in_past,
    monotonic_micros,
    parse_iso8601,
    sleep_millis,
)


class FakeClock:
    def __init__(self, now=0):
        self.now = now

    def __call__(self):
        return self.now


def test_current_time_matches_system_clock():
    assert abs(current_time() - int(time.time())) <= 1


def test_millis_and_micros_agree_with_seconds():
    seconds = current_time()
    assert abs(current_time_millis() // 1000 - seconds) <= 1
    assert abs(current_time_micros() // 1_000_000 - seconds) <= 1


def test_format_iso8601_epoch():
    assert format_iso8601(0) == "1970-01-01T00:00:00Z"


def test_format_iso8601_shape():
    text = format_iso8601(current_time())
    assert len(text) == 20
    assert text[10] == "T" and text.endswith("Z")


def test_parse_iso8601_round_trips_with_local_format():
    text = "2021-01-15T10:20:30"
    parsed = parse_iso8601(text)
    assert format_timestamp(parsed) == text.replace("T", " ")


def test_parse_iso8601_ignores_trailing_text():
    assert parse_iso8601("2021-01-15T10:20:30Z") == parse_iso8601("2021-01-15T10:20:30")


def test_parse_iso8601_invalid_returns_zero():
    assert parse_iso8601("not a date") == 0
    assert parse_iso8601("2021-13-45T10:20:30") == 0


def test_is_in_future_and_past():
    now = current_time()
    assert is_in_future(now + 100)
    assert not is_in_future(now + 100, tolerance=1000)
    assert is_in_past(now - 100)
    assert not is_in_past(now - 100, tolerance=1000)


def test_difference_is_symmetric():
    assert difference(5, 5) == 0
    assert difference(100, 40) == difference(40, 100)
    assert difference(100, 40) > 0


def test_sleep_millis_waits():
    before = monotonic_micros()
    sleep_millis(20)
    assert monotonic_micros() - before >= 15_000


def test_timer_measures_fake_clock():
    clock = FakeClock(1_000)
    timer = Timer(clock=clock)
    clock.now = 3_001_000
    assert timer.elapsed() == 3_000_000
    assert timer.elapsed_millis() == 3000
    assert timer.elapsed_seconds() == 3.0


def test_timer_stop_returns_elapsed_then_zero():
    clock = FakeClock(0)
    timer = Timer(clock=clock)
    clock.now = 500
    assert timer.stop() == 500
    assert timer.elapsed() == 0
    assert timer.stop() == 0
    assert not timer.running


def test_timer_restart():
    clock = FakeClock(0)
    timer = Timer(clock=clock)
    clock.now = 1_000
    timer.stop()
    timer.start()
    clock.now = 1_250
    assert timer.elapsed() == 250