"""Tests for the LiteEvent/LiteTask entity models and the raw component tree."""

from __future__ import annotations

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from icalsync_lite.calendar.lite_models import (
    LiteCalendarAddress,
    LiteCalendarEntity,
    LiteDateProperty,
    LiteEvent,
    LiteParseResult,
    LiteRawComponent,
    LiteRawProperty,
    LiteTask,
)
from icalsync_lite.core.config_manager import CALENDAR_NAME

pytestmark = pytest.mark.unit


class TestLiteDateProperty:
    """Test the three temporal forms and their flags."""

    def test_date_only(self):
        prop = LiteDateProperty(value=date(2024, 1, 1))

        assert prop.is_date_only
        assert not prop.is_floating
        assert not prop.is_utc
        assert prop.timezone is None
        assert str(prop) == "2024-01-01"

    def test_utc_instant(self):
        prop = LiteDateProperty(value=datetime(2024, 1, 1, 9, 0, tzinfo=UTC))

        assert prop.is_utc
        assert prop.timezone is UTC

    def test_zoned_value_is_not_utc(self):
        """Test a TZID label marks a zoned value even when the offset is zero."""
        prop = LiteDateProperty(
            value=datetime(2024, 1, 1, 9, 0, tzinfo=ZoneInfo("Europe/London")),
            tzid="Europe/London",
        )

        assert not prop.is_utc
        assert str(prop) == "2024-01-01T09:00:00+00:00[Europe/London]"

    def test_floating(self):
        prop = LiteDateProperty(value=datetime(2024, 1, 1, 9, 0))

        assert prop.is_floating
        assert prop.timezone is None

    def test_value_required(self):
        with pytest.raises(ValidationError):
            LiteDateProperty()


class TestLiteCalendarAddress:
    """Test calendar address helpers."""

    def test_common_name_and_email(self):
        address = LiteCalendarAddress(
            address="MAILTO:someone@example.com", parameters={"CN": "Someone"}
        )

        assert address.common_name == "Someone"
        assert address.email == "someone@example.com"

    def test_non_mailto_address_has_no_email(self):
        assert LiteCalendarAddress(address="urn:uuid:1234").email is None


class TestLiteEntityValidation:
    """Test entity field constraints."""

    def test_event_requires_uid(self):
        with pytest.raises(ValidationError) as exc_info:
            LiteEvent()
        assert "uid" in str(exc_info.value)

    def test_negative_sequence_rejected(self):
        with pytest.raises(ValidationError):
            LiteEvent(uid="1", sequence=-1)

    @pytest.mark.parametrize(("field", "value"), [("priority", 10), ("percent_complete", 101)])
    def test_task_bounds(self, field, value):
        with pytest.raises(ValidationError):
            LiteTask(uid="1", **{field: value})

    def test_kind_discriminates_events_and_tasks(self):
        assert LiteEvent(uid="1").kind == "event"
        assert LiteTask(uid="1").kind == "task"

    def test_base_entity_cannot_be_instantiated(self):
        """Test only the Event and Task variants can be built."""
        with pytest.raises(TypeError):
            LiteCalendarEntity(uid="1")

    def test_exception_without_recurrence_id_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            LiteEvent(uid="1", exceptions=[LiteEvent(uid="1", summary="moved")])
        assert "recurrence_id" in str(exc_info.value)

    def test_nested_exceptions_rejected(self):
        rid = LiteDateProperty(value=date(2024, 1, 8))
        nested = LiteTask(
            uid="1", recurrence_id=rid, exceptions=[LiteTask(uid="1", recurrence_id=rid)]
        )

        with pytest.raises(ValidationError):
            LiteTask(uid="1", exceptions=[nested])

    def test_exceptions_with_recurrence_id_accepted(self):
        rid = LiteDateProperty(value=date(2024, 1, 8))
        master = LiteEvent(uid="1", exceptions=[LiteEvent(uid="1", recurrence_id=rid)])

        assert master.exceptions[0].is_exception


class TestLiteEntityBehaviour:
    """Test derived properties of events and tasks."""

    def test_event_all_day_requires_date_only_end(self):
        start = LiteDateProperty(value=date(2024, 1, 1))
        end = LiteDateProperty(value=datetime(2024, 1, 2, tzinfo=UTC))

        assert LiteEvent(uid="1", dt_start=start).is_all_day()
        assert not LiteEvent(uid="1", dt_start=start, dt_end=end).is_all_day()
        assert not LiteEvent(uid="1").is_all_day()

    def test_task_all_day_uses_start_and_due(self):
        day = LiteDateProperty(value=date(2024, 1, 1))

        assert LiteTask(uid="1", due=day).is_all_day()
        assert not LiteTask(uid="1").is_all_day()

    def test_recurring_and_exception_flags(self):
        rid = LiteDateProperty(value=date(2024, 1, 8))

        assert LiteEvent(uid="1", rrule="FREQ=DAILY").is_recurring
        assert LiteEvent(uid="1", rdates=[rid]).is_recurring
        assert LiteEvent(uid="1", recurrence_id=rid).is_exception
        assert not LiteEvent(uid="1").is_exception

    def test_str_lists_identity_fields(self):
        event = LiteEvent(
            uid="abc",
            sequence=2,
            summary="Standup",
            recurrence_id=LiteDateProperty(value=date(2024, 1, 8)),
        )

        assert str(event) == (
            "LiteEvent(uid=abc, recurrence_id=2024-01-08, sequence=2, summary='Standup')"
        )
        assert str(LiteTask(uid="t")) == "LiteTask(uid=t)"

    def test_equality_compares_instants_across_zones(self):
        """Test entities with the same instant in different zone objects are equal."""
        vienna = datetime(2013, 10, 9, 17, 0, tzinfo=ZoneInfo("Europe/Vienna"))
        utc = datetime(2013, 10, 9, 15, 0, tzinfo=UTC)

        assert LiteEvent(
            uid="1", dt_start=LiteDateProperty(value=vienna, tzid="Europe/Vienna")
        ) == LiteEvent(uid="1", dt_start=LiteDateProperty(value=utc, tzid="Europe/Vienna"))


class TestRawComponentTree:
    """Test the raw component helpers."""

    def test_property_lookup(self):
        component = LiteRawComponent(
            name="VEVENT",
            properties=[
                LiteRawProperty(name="ATTENDEE", value="mailto:a@example.com"),
                LiteRawProperty(name="UID", value="1"),
                LiteRawProperty(name="ATTENDEE", value="mailto:b@example.com"),
            ],
        )

        assert component.get_first("UID").value == "1"
        assert [p.value for p in component.get_all("ATTENDEE")] == [
            "mailto:a@example.com",
            "mailto:b@example.com",
        ]
        assert component.has("ATTENDEE")
        assert component.get_first("SUMMARY") is None
        assert not component.has("SUMMARY")


class TestLiteParseResult:
    """Test parse result accessors."""

    def test_events_tasks_and_calendar_name(self):
        result = LiteParseResult(
            entities=[LiteTask(uid="t"), LiteEvent(uid="e")],
            properties={CALENDAR_NAME: "Team"},
        )

        assert [e.uid for e in result.events] == ["e"]
        assert [t.uid for t in result.tasks] == ["t"]
        assert result.calendar_name == "Team"
