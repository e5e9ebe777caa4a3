import io

from loguru import logger

from shulkers.logger import resolve_level, setup_logger


def capture(level=None):
    stream = io.StringIO()
    setup_logger(level, sink=stream, colorize=False)
    return stream


def test_resolve_level(monkeypatch):
    monkeypatch.delenv("SHULKERS_DEBUG", raising=False)
    assert resolve_level() == "INFO"
    assert resolve_level("warning") == "WARNING"

    monkeypatch.setenv("SHULKERS_DEBUG", "1")
    assert resolve_level() == "DEBUG"
    assert resolve_level("error") == "ERROR"


def test_info_level_hides_debug(monkeypatch):
    monkeypatch.delenv("SHULKERS_DEBUG", raising=False)
    stream = capture()

    logger.debug("hidden")
    logger.info("shown")
    logger.remove()

    output = stream.getvalue()
    assert "hidden" not in output
    assert "| INFO     | shown" in output


def test_debug_level_shows_location():
    stream = capture("DEBUG")

    logger.debug("details")
    logger.remove()

    output = stream.getvalue()
    assert "调试日志已开启" in output
    assert ":test_debug_level_shows_location:" in output
    assert output.rstrip().endswith("| details")
