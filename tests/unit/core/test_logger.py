"""
Unit tests for core.logger module.

Tests:
- format_kv_pairs quoting and truncation
- StructuredFormatter output for structured and plain records
- Logger levels, structured fields, JSON mode
- bind() context propagation
"""

import json
import logging

import pytest

from bootwatch.core.logger import Logger, StructuredFormatter, format_kv_pairs


class TestFormatKvPairs:
    def test_empty(self) -> None:
        assert format_kv_pairs({}) == ""

    def test_simple(self) -> None:
        assert format_kv_pairs({"peer": "QmA", "up": True}) == " peer=QmA up=True"

    def test_quotes_values_with_spaces(self) -> None:
        assert format_kv_pairs({"error": "dial refused"}) == ' error="dial refused"'

    def test_escapes_quotes(self) -> None:
        assert format_kv_pairs({"error": 'bad "addr"'}) == ' error="bad \\"addr\\""'

    def test_empty_value_quoted(self) -> None:
        assert format_kv_pairs({"error": ""}) == ' error=""'

    def test_truncation(self) -> None:
        result = format_kv_pairs({"v": "x" * 20}, max_value_length=5)
        assert result == ' v="xxxxx...<truncated 15 chars>"'

    def test_custom_prefix(self) -> None:
        assert format_kv_pairs({"a": 1}, prefix="") == "a=1"


class TestStructuredFormatter:
    def test_structured_record(self) -> None:
        record = logging.LogRecord("prober", logging.INFO, __file__, 1, "sweep_started", None, None)
        record.structured_kv = {"pairs": 8}
        assert StructuredFormatter().format(record) == "info prober sweep_started pairs=8"

    def test_plain_record(self) -> None:
        record = logging.LogRecord("bootwatch.utils", logging.DEBUG, __file__, 1, "x=%d", (3,), None)
        assert StructuredFormatter().format(record) == "debug bootwatch.utils x=3"


class TestLogger:
    def test_name(self) -> None:
        assert Logger("prober").name == "prober"

    def test_structured_fields(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = Logger("test_fields")
        with caplog.at_level(logging.INFO, logger="test_fields"):
            logger.info("connecting", peer="QmA", addrs=2)
        record = caplog.records[-1]
        assert record.getMessage() == "connecting"
        assert record.structured_kv == {"peer": "QmA", "addrs": "2"}

    def test_levels(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = Logger("test_levels")
        with caplog.at_level(logging.DEBUG, logger="test_levels"):
            logger.debug("d")
            logger.info("i")
            logger.warning("w")
            logger.error("e")
            logger.critical("c")
        assert [r.levelname for r in caplog.records] == [
            "DEBUG",
            "INFO",
            "WARNING",
            "ERROR",
            "CRITICAL",
        ]

    def test_disabled_level_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = Logger("test_disabled")
        with caplog.at_level(logging.WARNING, logger="test_disabled"):
            logger.info("hidden")
        assert not caplog.records

    def test_exception_includes_traceback(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = Logger("test_exc")
        with caplog.at_level(logging.ERROR, logger="test_exc"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("failed")
        assert caplog.records[-1].exc_info is not None

    def test_value_truncation(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = Logger("test_trunc", max_value_length=4)
        with caplog.at_level(logging.INFO, logger="test_trunc"):
            logger.info("x", error="abcdefgh")
        assert caplog.records[-1].structured_kv["error"].startswith("abcd...")

    def test_json_output(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = Logger("test_json", json_output=True)
        with caplog.at_level(logging.INFO, logger="test_json"):
            logger.info("sweep_completed", up=3)
        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["message"] == "sweep_completed"
        assert payload["level"] == "info"
        assert payload["service"] == "test_json"
        assert payload["up"] == 3
        assert "timestamp" in payload


class TestBind:
    def test_bound_fields_first(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = Logger("test_bind").bind(peer="QmA", transport="tcp")
        with caplog.at_level(logging.INFO, logger="test_bind"):
            logger.info("connect_failed", error="refused")
        assert list(caplog.records[-1].structured_kv) == ["peer", "transport", "error"]

    def test_call_fields_override(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = Logger("test_override").bind(phase="before")
        with caplog.at_level(logging.INFO, logger="test_override"):
            logger.info("forget_failed", phase="after")
        assert caplog.records[-1].structured_kv["phase"] == "after"

    def test_parent_unchanged(self, caplog: pytest.LogCaptureFixture) -> None:
        parent = Logger("test_parent")
        parent.bind(peer="QmA")
        with caplog.at_level(logging.INFO, logger="test_parent"):
            parent.info("plain")
        assert not getattr(caplog.records[-1], "structured_kv", {})

    def test_bind_keeps_name_and_mode(self) -> None:
        child = Logger("test_mode", json_output=True).bind(a=1)
        assert child.name == "test_mode"
        assert child._json_output is True
