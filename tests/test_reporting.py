import pytest

from rpakgen.logging import configure_logging, get_logger
from rpakgen.reporting import (
    PlainReporter,
    RichReporter,
    SilentReporter,
    create_reporter,
    get_reporter,
    set_reporter,
)


def test_create_reporter_kinds():
    assert isinstance(create_reporter("silent"), SilentReporter)
    assert isinstance(create_reporter("plain", isatty=True), PlainReporter)
    assert isinstance(create_reporter("rich", isatty=True), RichReporter)


def test_rich_falls_back_to_plain_without_terminal():
    assert isinstance(create_reporter("rich", isatty=False), PlainReporter)


def test_unknown_reporter_kind():
    with pytest.raises(ValueError):
        create_reporter("jsonl")


def test_silent_reporter_keeps_diagnostics():
    rep = SilentReporter()
    set_reporter(rep)
    configure_logging(0)
    logger = get_logger()
    logger.info("building")
    logger.warning("no outputDir")
    logger.error("write failed")
    assert get_reporter() is rep
    assert rep.warnings == ["no outputDir"]
    assert rep.errors == ["write failed"]
