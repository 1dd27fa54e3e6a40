"""DateTime parsing utilities for ICS calendar processing - icalsync_lite.

This module turns DATE and DATE-TIME property values into LiteDateProperty
instances, resolving TZID parameters through the timezone resolver, and
renders them back for the serializer.
"""

import logging
from collections.abc import Mapping
from datetime import UTC, date, datetime, time
from typing import Optional, Union

from icalendar.prop import vDate, vDatetime

from icalsync_lite.calendar.lite_models import (
    LiteDateProperty,
    LiteRawProperty,
    ParameterValue,
    first_parameter,
)
from icalsync_lite.calendar.lite_parser_telemetry import ParserTelemetry
from icalsync_lite.calendar.lite_timezone_resolver import LiteTimezoneResolver
from icalsync_lite.exceptions import UnresolvedTimezoneError

logger = logging.getLogger(__name__)


def ensure_timezone_aware(dt: datetime) -> datetime:
    """Ensure datetime is timezone-aware.

    Args:
        dt: Datetime to make timezone-aware

    Returns:
        Timezone-aware datetime (UTC if originally naive)
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def comparable_instant(value: Union[date, datetime]) -> datetime:
    """Map a date or date-time onto an aware datetime for ordering and matching.

    Dates become midnight UTC and floating date-times are read as UTC, so
    every temporal value can be compared with every other one.

    Examples:
        >>> comparable_instant(date(2024, 1, 1))
        datetime.datetime(2024, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if isinstance(value, datetime):
        return ensure_timezone_aware(value)
    return datetime.combine(value, time(), tzinfo=UTC)


def match_form(prop: LiteDateProperty, reference: LiteDateProperty) -> LiteDateProperty:
    """Return ``prop`` converted to the date-only/date-time form of ``reference``.

    A date-time becomes its calendar date; a date becomes midnight of that
    date in the reference's zone.
    """
    if prop.is_date_only == reference.is_date_only:
        return prop
    if reference.is_date_only:
        value = prop.value
        day = value.date() if isinstance(value, datetime) else value
        return LiteDateProperty(value=day, tzid=None)
    reference_tz = reference.value.tzinfo if isinstance(reference.value, datetime) else None
    return LiteDateProperty(
        value=datetime.combine(prop.value, time(), tzinfo=reference_tz), tzid=reference.tzid
    )


def format_date_property(prop: LiteDateProperty) -> tuple[dict[str, str], str]:
    """Render a LiteDateProperty as (parameters, value) for a content line.

    Args:
        prop: Temporal value to render

    Returns:
        VALUE=DATE for dates, TZID for zoned or unresolved values, a trailing
        Z for UTC instants and a bare local time for floating values
    """
    value = prop.value
    if not isinstance(value, datetime):
        return {"VALUE": "DATE"}, vDate(value).to_ical().decode("ascii")

    if prop.tzid:
        wall = value.replace(tzinfo=None)
        return {"TZID": prop.tzid}, vDatetime(wall).to_ical().decode("ascii")

    if value.tzinfo is not None:
        return {}, format_utc_datetime(value)

    return {}, vDatetime(value).to_ical().decode("ascii")


def format_utc_datetime(dt: datetime) -> str:
    """Render a datetime as a UTC DATE-TIME value with Z suffix.

    Examples:
        >>> format_utc_datetime(datetime(2024, 11, 4, 16, 30, tzinfo=UTC))
        '20241104T163000Z'
    """
    dt_utc = dt.astimezone(UTC) if dt.tzinfo is not None else dt
    return vDatetime(dt_utc.replace(tzinfo=None)).to_ical().decode("ascii") + "Z"


class LiteDateTimeParser:
    """Parser for iCalendar DATE/DATE-TIME properties with timezone handling."""

    def __init__(
        self,
        resolver: Optional[LiteTimezoneResolver] = None,
        telemetry: Optional[ParserTelemetry] = None,
    ):
        """Initialize datetime parser.

        Args:
            resolver: Timezone resolver for TZID parameters
            telemetry: Collector for unresolved-timezone diagnostics
        """
        self.resolver = resolver or LiteTimezoneResolver()
        self.telemetry = telemetry or ParserTelemetry()

    def parse_date_property(self, prop: LiteRawProperty) -> LiteDateProperty:
        """Parse a single-valued DATE or DATE-TIME property.

        An unknown TZID does not fail the value: it degrades to a floating
        date-time that keeps the TZID label, and a diagnostic is recorded.

        Args:
            prop: Raw property

        Returns:
            Parsed temporal value

        Raises:
            ValueError: If the value is not a valid DATE or DATE-TIME
        """
        return self.parse_value(prop.value, prop.parameters, prop.name)

    def parse_date_list(self, prop: LiteRawProperty) -> list[LiteDateProperty]:
        """Parse a comma-separated EXDATE/RDATE value sharing one set of parameters."""
        return [
            self.parse_value(item, prop.parameters, prop.name)
            for item in prop.value.split(",")
            if item.strip()
        ]

    def parse_value(
        self, text: str, parameters: Mapping[str, ParameterValue], property_name: str
    ) -> LiteDateProperty:
        """Parse one DATE or DATE-TIME value.

        Args:
            text: Value as written (e.g. "20240101", "20240101T090000Z")
            parameters: Property parameters (VALUE, TZID)
            property_name: Property name for diagnostics

        Returns:
            Parsed temporal value

        Raises:
            ValueError: If the value is malformed
        """
        text = text.strip()
        value_type = (first_parameter(parameters, "VALUE") or "").upper()

        if value_type == "DATE" or (not value_type and len(text) == 8):
            if len(text) != 8:
                raise ValueError(f"Wrong date format {text!r} in {property_name}")
            return LiteDateProperty(value=vDate.from_ical(text), tzid=None)

        if value_type not in ("", "DATE-TIME"):
            raise ValueError(f"Unsupported VALUE={value_type} in {property_name}")

        if text.upper().endswith("Z"):
            naive = vDatetime.from_ical(text[:-1])
            return LiteDateProperty(value=naive.replace(tzinfo=UTC), tzid=None)

        naive = vDatetime.from_ical(text)
        tzid = first_parameter(parameters, "TZID")
        if not tzid:
            return LiteDateProperty(value=naive, tzid=None)
        if tzid.strip().upper() == "UTC":
            # TZID=UTC is written back as a Z suffix
            return LiteDateProperty(value=naive.replace(tzinfo=UTC), tzid=None)

        try:
            zone = self.resolver.resolve(tzid, property_name)
        except UnresolvedTimezoneError as e:
            self.telemetry.record_warning(f"{e}; value kept as floating time")
            return LiteDateProperty(value=naive, tzid=tzid)
        return LiteDateProperty(value=naive.replace(tzinfo=zone), tzid=tzid)

    def parse_utc_datetime(self, prop: LiteRawProperty) -> datetime:
        """Parse a property that must be a UTC DATE-TIME (CREATED, LAST-MODIFIED, COMPLETED).

        Zoned values are converted to UTC and floating values are read as UTC.

        Raises:
            ValueError: If the value is not a DATE-TIME
        """
        parsed = self.parse_date_property(prop)
        value = parsed.value
        if not isinstance(value, datetime):
            raise ValueError(f"{prop.name} must be a DATE-TIME, got {prop.value!r}")
        if value.tzinfo is None:
            logger.debug("Floating %s %s read as UTC", prop.name, prop.value)
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
