"""Tests for policygate structured logging."""

import json
import logging
import sys

from policygate.logging import PolicyGateFormatter, configure_logging, get_logger


def _make_record(msg="Policy applied", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="policygate.policy.engine",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestPolicyGateFormatter:
    def test_human_readable_format(self):
        output = PolicyGateFormatter(json_output=False).format(_make_record())
        assert "policygate.policy.engine" in output
        assert "Policy applied" in output
        assert "INFO" in output

    def test_human_readable_extra_fields(self):
        output = PolicyGateFormatter().format(_make_record(tool_name="search", kept=2))
        assert "| tool_name=search kept=2" in output

    def test_json_format(self):
        output = PolicyGateFormatter(json_output=True).format(
            _make_record("Found 3 responses", tool_name="search", extracted=3)
        )
        data = json.loads(output)
        assert data["level"] == "INFO"
        assert data["logger"] == "policygate.policy.engine"
        assert data["message"] == "Found 3 responses"
        assert data["tool_name"] == "search"
        assert data["extracted"] == 3
        assert "timestamp" in data

    def test_unknown_extra_fields_ignored(self):
        data = json.loads(PolicyGateFormatter(json_output=True).format(_make_record(secret="x")))
        assert "secret" not in data

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()
        data = json.loads(PolicyGateFormatter(json_output=True).format(record))
        assert "ValueError: boom" in data["exception"]


class TestConfigureLogging:
    def teardown_method(self):
        configure_logging()

    def test_sets_level(self):
        configure_logging(level="DEBUG")
        assert logging.getLogger("policygate").level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        configure_logging(level="chatty")
        assert logging.getLogger("policygate").level == logging.INFO

    def test_single_stderr_handler(self):
        configure_logging()
        configure_logging(json_output=True)
        logger = logging.getLogger("policygate")
        assert len(logger.handlers) == 1
        assert logger.handlers[0].stream is sys.stderr
        assert logger.propagate is False

    def test_get_logger_is_child(self):
        assert get_logger("policygate.gateway").parent is logging.getLogger("policygate")
