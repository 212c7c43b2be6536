import re

import pytest

from dinari.logger import Logger, LogLevel, get_logger, level_name

LINE = re.compile(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{3}\] \[(.{5})\] \[(\w+)\] (.*)$")


@pytest.mark.parametrize(
    "level, name",
    [
        (LogLevel.TRACE, "TRACE"),
        (LogLevel.DEBUG, "DEBUG"),
        (LogLevel.INFO, "INFO "),
        (LogLevel.WARNING, "WARN "),
        (LogLevel.ERROR, "ERROR"),
        (LogLevel.FATAL, "FATAL"),
    ],
)
def test_level_names(level, name):
    assert level_name(level) == name


def test_unknown_level_name():
    assert level_name(99) == "UNKNOWN"


def test_format_message_layout():
    logger = Logger()
    match = LINE.match(logger.format_message(LogLevel.WARNING, "Net", "peer dropped"))
    assert match is not None
    assert match.groups() == ("WARN ", "Net", "peer dropped")


def test_info_goes_to_stdout(capsys):
    logger = Logger()
    logger.info("RPC", "hello")
    out, err = capsys.readouterr()
    assert out.strip().endswith("[INFO ] [RPC] hello")
    assert err == ""


def test_error_goes_to_stderr(capsys):
    logger = Logger()
    logger.error("RPC", "broken")
    out, err = capsys.readouterr()
    assert out == ""
    assert err.strip().endswith("[ERROR] [RPC] broken")


def test_messages_below_level_are_dropped(capsys):
    logger = Logger()
    logger.debug("RPC", "quiet")
    logger.set_level(LogLevel.DEBUG)
    logger.debug("RPC", "loud")
    out, _ = capsys.readouterr()
    assert "quiet" not in out
    assert "loud" in out


def test_console_can_be_disabled(capsys):
    logger = Logger()
    logger.console_enabled = False
    logger.fatal("Core", "nothing shown")
    out, err = capsys.readouterr()
    assert out == "" and err == ""


def test_file_logging(tmp_path, capsys):
    path = tmp_path / "debug.log"
    logger = Logger()
    logger.console_enabled = False
    logger.initialize(str(path), LogLevel.TRACE)
    assert logger.level == LogLevel.TRACE
    logger.trace("DB", "opened")
    logger.close()
    text = path.read_text(encoding="utf-8")
    assert "Log Started at" in text
    assert "[TRACE] [DB] opened" in text
    assert "Log Closed at" in text
    assert text.index("Started") < text.index("opened") < text.index("Closed")


def test_file_appends_between_sessions(tmp_path):
    path = tmp_path / "debug.log"
    for word in ("first", "second"):
        logger = Logger()
        logger.console_enabled = False
        logger.initialize(str(path))
        logger.info("X", word)
        logger.close()
    text = path.read_text(encoding="utf-8")
    assert text.count("Log Started at") == 2
    assert "first" in text and "second" in text


def test_unopenable_file_disables_file_output(tmp_path, capsys):
    logger = Logger()
    logger.initialize(str(tmp_path / "missing" / "debug.log"))
    _, err = capsys.readouterr()
    assert "Failed to open log file" in err
    assert logger.file_enabled is False


def test_get_logger_is_shared_instance():
    first = get_logger()
    second = get_logger()
    original = first.level
    try:
        first.set_level(LogLevel.ERROR)
        assert second.level == LogLevel.ERROR
        first.set_level(LogLevel.TRACE)
        assert second.level == LogLevel.TRACE
    finally:
        first.set_level(original)