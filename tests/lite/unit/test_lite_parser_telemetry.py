"""Unit tests for lite_parser_telemetry module."""

import logging

import pytest

from icalsync_lite.calendar.lite_parser_telemetry import ParserTelemetry

pytestmark = pytest.mark.unit


class TestParserTelemetry:
    """Tests for ParserTelemetry class."""

    def test_initialization_defaults(self):
        """Test initialization with default values."""
        telemetry = ParserTelemetry()

        assert telemetry.source_name == "unknown"
        assert telemetry.max_logged_warnings == 50
        assert telemetry.warnings == []
        assert telemetry.summary() == {
            "total_components": 0,
            "skipped_components": 0,
            "promoted_exceptions": 0,
            "replaced_exceptions": 0,
            "ignored_duplicate_masters": 0,
        }

    def test_record_component(self):
        telemetry = ParserTelemetry()

        telemetry.record_component()
        telemetry.record_component()

        assert telemetry.total_components == 2

    def test_record_warning_logs_with_source(self, caplog):
        """Test warnings are kept and logged with the source label."""
        telemetry = ParserTelemetry(source_name="feed.ics")

        with caplog.at_level(logging.WARNING):
            telemetry.record_warning("Dropped invalid GEO")

        assert telemetry.warnings == ["Dropped invalid GEO"]
        assert "Dropped invalid GEO (source=feed.ics)" in caplog.text

    def test_record_warning_beyond_limit_logged_at_debug(self, caplog):
        """Test warnings past the logging limit are still recorded."""
        telemetry = ParserTelemetry(max_logged_warnings=1)

        with caplog.at_level(logging.DEBUG):
            telemetry.record_warning("first")
            telemetry.record_warning("second")

        assert telemetry.warnings == ["first", "second"]
        levels = {record.getMessage(): record.levelno for record in caplog.records}
        assert levels["first (source=unknown)"] == logging.WARNING
        assert levels["second (source=unknown)"] == logging.DEBUG

    def test_record_skipped_counts_and_warns(self):
        telemetry = ParserTelemetry()

        telemetry.record_skipped("VEVENT without UID skipped")

        assert telemetry.skipped_components == 1
        assert telemetry.warnings == ["VEVENT without UID skipped"]

    def test_record_promoted_and_replaced_are_counters_only(self):
        """Test grouping outcomes are counted without producing warnings."""
        telemetry = ParserTelemetry()

        telemetry.record_promoted("orphan")
        telemetry.record_replaced("C", "2024-02-01", 1, 2)

        assert telemetry.promoted_exceptions == 1
        assert telemetry.replaced_exceptions == 1
        assert telemetry.warnings == []

    def test_record_duplicate_master(self):
        telemetry = ParserTelemetry()

        telemetry.record_duplicate_master("dup")

        assert telemetry.ignored_duplicate_masters == 1
        assert "uid=dup" in telemetry.warnings[0]

    def test_log_completion(self, caplog):
        telemetry = ParserTelemetry(source_name="feed.ics")
        telemetry.record_component()

        with caplog.at_level(logging.DEBUG):
            telemetry.log_completion(final_entities=1)

        assert "source=feed.ics" in caplog.text
        assert "final_entities=1" in caplog.text
