"""Event and task component parsing for ICS calendar processing - icalsync_lite.

This module turns one raw VEVENT/VTODO component into a LiteEvent or
LiteTask: it decodes every supported property, keeps unrecognized ones for
round-trip, and applies temporal normalization (mixed date/date-time pairs,
task due-before-start).
"""

import logging
from datetime import timedelta
from typing import Any, Callable, Optional

from icalendar.parser import split_on_unescaped_comma, unescape_backslash
from icalendar.prop import vDuration, vGeo, vInt, vRecur

from icalsync_lite.calendar.lite_datetime_utils import (
    LiteDateTimeParser,
    comparable_instant,
    match_form,
)
from icalsync_lite.calendar.lite_models import (
    LiteCalendarAddress,
    LiteDateProperty,
    LiteEntity,
    LiteEvent,
    LiteGeo,
    LiteRawComponent,
    LiteRawProperty,
    LiteTask,
    first_parameter,
)
from icalsync_lite.calendar.lite_parser_telemetry import ParserTelemetry

logger = logging.getLogger(__name__)

COMMON_PROPERTIES = frozenset(
    {
        "UID",
        "SEQUENCE",
        "RECURRENCE-ID",
        "DTSTART",
        "DTSTAMP",
        "SUMMARY",
        "DESCRIPTION",
        "LOCATION",
        "URL",
        "CLASS",
        "STATUS",
        "COLOR",
        "CATEGORIES",
        "ORGANIZER",
        "ATTENDEE",
        "GEO",
        "CREATED",
        "LAST-MODIFIED",
        "RRULE",
        "EXDATE",
        "RDATE",
    }
)
EVENT_PROPERTIES = COMMON_PROPERTIES | {"DTEND", "DURATION", "TRANSP"}
TASK_PROPERTIES = COMMON_PROPERTIES | {
    "DUE",
    "DURATION",
    "PRIORITY",
    "PERCENT-COMPLETE",
    "COMPLETED",
}

# Properties that may legitimately appear more than once per component
MULTI_VALUED_PROPERTIES = frozenset({"ATTENDEE", "CATEGORIES", "EXDATE", "RDATE"})

# DTSTAMP is regenerated on output and not kept on the entity
DROPPED_PROPERTIES = frozenset({"DTSTAMP"})

COMPONENT_KINDS = {"VEVENT": LiteEvent, "VTODO": LiteTask}


def _parse_text(prop: LiteRawProperty) -> str:
    return unescape_backslash(prop.value)


def _parse_upper_text(prop: LiteRawProperty) -> str:
    return _parse_text(prop).strip().upper()


def _parse_uri(prop: LiteRawProperty) -> str:
    return prop.value.strip()


def _parse_sequence(prop: LiteRawProperty) -> int:
    sequence = vInt.from_ical(prop.value.strip())
    if sequence < 0:
        raise ValueError(f"SEQUENCE must not be negative, got {sequence}")
    return int(sequence)


def _parse_bounded_int(low: int, high: int) -> Callable[[LiteRawProperty], int]:
    def parse(prop: LiteRawProperty) -> int:
        value = int(vInt.from_ical(prop.value.strip()))
        if not low <= value <= high:
            raise ValueError(f"{prop.name} must be within {low}..{high}, got {value}")
        return value

    return parse


def _parse_duration(prop: LiteRawProperty) -> timedelta:
    return vDuration.from_ical(prop.value.strip())


def _parse_geo(prop: LiteRawProperty) -> LiteGeo:
    latitude, longitude = vGeo.from_ical(prop.value.strip())
    return LiteGeo(latitude=latitude, longitude=longitude)


def _parse_rrule(prop: LiteRawProperty) -> str:
    value = prop.value.strip()
    vRecur.from_ical(value)
    return value


def _parse_address(prop: LiteRawProperty) -> LiteCalendarAddress:
    address = prop.value.strip()
    if not address:
        raise ValueError(f"{prop.name} has no calendar address")
    return LiteCalendarAddress(address=address, parameters=dict(prop.parameters))


def _parse_categories(prop: LiteRawProperty) -> list[str]:
    return [item for item in split_on_unescaped_comma(prop.value) if item]


def component_uid(component: LiteRawComponent) -> str:
    """Return the decoded UID of a raw component, empty when missing."""
    uid_prop = component.get_first("UID")
    return _parse_text(uid_prop).strip() if uid_prop is not None else ""


def _unique(values: list[LiteDateProperty]) -> list[LiteDateProperty]:
    result: list[LiteDateProperty] = []
    for value in values:
        if value not in result:
            result.append(value)
    return result


class LiteEntityParser:
    """Parser for raw VEVENT/VTODO components into LiteEvent/LiteTask objects."""

    def __init__(
        self,
        datetime_parser: LiteDateTimeParser,
        telemetry: Optional[ParserTelemetry] = None,
    ):
        """Initialize entity parser.

        Args:
            datetime_parser: Parser for DATE/DATE-TIME properties
            telemetry: Collector for component-level diagnostics
        """
        self.datetime_parser = datetime_parser
        self.telemetry = telemetry or datetime_parser.telemetry

        parse_date = datetime_parser.parse_date_property
        parse_utc = datetime_parser.parse_utc_datetime
        self._single_handlers: dict[str, tuple[str, Callable[[LiteRawProperty], Any]]] = {
            "SEQUENCE": ("sequence", _parse_sequence),
            "RECURRENCE-ID": ("recurrence_id", parse_date),
            "DTSTART": ("dt_start", parse_date),
            "DTEND": ("dt_end", parse_date),
            "DUE": ("due", parse_date),
            "DURATION": ("duration", _parse_duration),
            "SUMMARY": ("summary", _parse_text),
            "DESCRIPTION": ("description", _parse_text),
            "LOCATION": ("location", _parse_text),
            "COLOR": ("color", _parse_text),
            "URL": ("url", _parse_uri),
            "CLASS": ("classification", _parse_upper_text),
            "STATUS": ("status", _parse_upper_text),
            "TRANSP": ("transparency", _parse_upper_text),
            "ORGANIZER": ("organizer", _parse_address),
            "GEO": ("geo", _parse_geo),
            "CREATED": ("created", parse_utc),
            "LAST-MODIFIED": ("last_modified", parse_utc),
            "COMPLETED": ("completed", parse_utc),
            "RRULE": ("rrule", _parse_rrule),
            "PRIORITY": ("priority", _parse_bounded_int(0, 9)),
            "PERCENT-COMPLETE": ("percent_complete", _parse_bounded_int(0, 100)),
        }
        self._multi_handlers: dict[str, tuple[str, Callable[[LiteRawProperty], list[Any]]]] = {
            "ATTENDEE": ("attendees", lambda prop: [_parse_address(prop)]),
            "CATEGORIES": ("categories", _parse_categories),
            "EXDATE": ("exdates", datetime_parser.parse_date_list),
            "RDATE": ("rdates", datetime_parser.parse_date_list),
        }

    def parse_component(self, component: LiteRawComponent) -> Optional[LiteEntity]:
        """Parse a single VEVENT/VTODO component.

        Args:
            component: Raw component from the component tree

        Returns:
            LiteEvent or LiteTask, or None if the component lacks mandatory fields
        """
        model = COMPONENT_KINDS.get(component.name)
        if model is None:
            self.telemetry.record_skipped(f"Unsupported component {component.name} skipped")
            return None

        uid = component_uid(component)
        if not uid:
            self.telemetry.record_skipped(f"{component.name} without UID skipped")
            return None

        allowed = EVENT_PROPERTIES if model is LiteEvent else TASK_PROPERTIES
        fields = self._extract_fields(component, uid, allowed)
        fields["unknown_components"] = list(component.components)

        if model is LiteEvent and fields.get("dt_start") is None:
            self.telemetry.record_skipped(f"VEVENT uid={uid} without valid DTSTART skipped")
            return None

        if model is LiteEvent:
            self._normalize_pair(fields, "dt_end", uid)
        else:
            self._normalize_pair(fields, "due", uid)
            self._apply_due_before_start_rule(fields, uid)

        fields["exdates"] = _unique(fields.get("exdates", []))
        fields["rdates"] = _unique(fields.get("rdates", []))
        fields["embedded_timezones"] = self._collect_embedded_timezones(fields)

        try:
            entity = model(**fields)
        except ValueError as e:
            self.telemetry.record_skipped(f"{component.name} uid={uid} could not be built: {e}")
            return None

        logger.debug("Parsed %s", entity)
        return entity

    def _extract_fields(
        self, component: LiteRawComponent, uid: str, allowed: frozenset[str]
    ) -> dict[str, Any]:
        fields: dict[str, Any] = {"uid": uid}
        unknown: list[LiteRawProperty] = []
        seen: set[str] = set()

        for prop in component.properties:
            name = prop.name
            if name in DROPPED_PROPERTIES:
                continue

            if name not in allowed or (name in seen and name not in MULTI_VALUED_PROPERTIES):
                unknown.append(prop)
                continue

            if name == "UID":
                seen.add(name)
                continue
            value_type = (first_parameter(prop.parameters, "VALUE") or "").upper()
            if name == "RDATE" and value_type == "PERIOD":
                unknown.append(prop)
                continue

            try:
                if name in self._multi_handlers:
                    field, parse_many = self._multi_handlers[name]
                    fields.setdefault(field, []).extend(parse_many(prop))
                else:
                    field, parse_one = self._single_handlers[name]
                    fields[field] = parse_one(prop)
                seen.add(name)
            except ValueError as e:
                self.telemetry.record_warning(
                    f"Dropped invalid {name} {prop.value!r} in {component.name} uid={uid}: {e}"
                )

        fields["unknown_properties"] = unknown
        return fields

    def _normalize_pair(self, fields: dict[str, Any], end_field: str, uid: str) -> None:
        """Give the end value the date-only/date-time form of dt_start."""
        start: Optional[LiteDateProperty] = fields.get("dt_start")
        end: Optional[LiteDateProperty] = fields.get(end_field)
        if start is None or end is None or start.is_date_only == end.is_date_only:
            return

        fields[end_field] = match_form(end, start)
        self.telemetry.record_warning(
            f"Mixed date/date-time pair in uid={uid}: {end_field} coerced to the form of dt_start"
        )

    def _apply_due_before_start_rule(self, fields: dict[str, Any], uid: str) -> None:
        start: Optional[LiteDateProperty] = fields.get("dt_start")
        due: Optional[LiteDateProperty] = fields.get("due")
        if start is None or due is None:
            return

        if comparable_instant(due.value) < comparable_instant(start.value):
            fields["dt_start"] = None
            self.telemetry.record_warning(
                f"Task uid={uid} is due before it starts; DTSTART dropped"
            )

    def _collect_embedded_timezones(self, fields: dict[str, Any]) -> dict[str, LiteRawComponent]:
        values: list[LiteDateProperty] = [
            fields[name]
            for name in ("dt_start", "dt_end", "due", "recurrence_id")
            if fields.get(name) is not None
        ]
        values.extend(fields["exdates"])
        values.extend(fields["rdates"])

        embedded: dict[str, LiteRawComponent] = {}
        for value in values:
            if not value.tzid or value.tzid in embedded:
                continue
            definition = self.datetime_parser.resolver.embedded_definition(value.tzid)
            if definition is not None:
                embedded[value.tzid] = definition
        return embedded
