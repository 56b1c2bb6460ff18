"""Tests for the log line formatter."""
import logging
import sys

from budgetflow.utils.log_config import LOG_FORMAT, KeyValueFormatter, configure_logging


def make_record(msg="Group created", **extra):
    record = logging.LogRecord("budgetflow.test", logging.INFO, __file__, 1, msg, (), None)
    record.__dict__.update(extra)
    return record


def test_extra_fields_are_appended():
    line = KeyValueFormatter(LOG_FORMAT).format(
        make_record(group_id="g1", invite_count=2, name_hint="Weekend trip")
    )

    assert "budgetflow.test: Group created" in line
    assert line.endswith('[group_id=g1 invite_count=2 name_hint="Weekend trip"]')


def test_plain_record_has_no_suffix():
    line = KeyValueFormatter("%(message)s").format(make_record("hello"))
    assert line == "hello"


def test_traceback_stays_below_the_fields():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("t", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    record.path = "/api/chat"

    first, _, rest = KeyValueFormatter("%(message)s").format(record).partition("\n")

    assert first == "failed [path=/api/chat]"
    assert "RuntimeError: boom" in rest


def test_configure_logging_installs_one_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging("debug")
        configure_logging("warning")

        ours = [h for h in root.handlers if isinstance(h.formatter, KeyValueFormatter)]
        assert len(ours) == 1
        assert root.level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
