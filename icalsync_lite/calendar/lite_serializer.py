"""iCalendar serializer - icalsync_lite version.

Renders finished LiteEvent/LiteTask entities back into one VCALENDAR
document. Each master is written as one VEVENT/VTODO block followed by one
block per exception. Unknown properties and components are written back
verbatim and embedded VTIMEZONE definitions are re-emitted, so parsing the
output yields the same entities again. DTSTAMP is regenerated on every call.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Optional, Union

from icalendar.parser import Parameters
from icalendar.prop import vDuration, vGeo, vText

from icalsync_lite.calendar.lite_datetime_utils import format_date_property, format_utc_datetime
from icalsync_lite.calendar.lite_models import (
    LiteCalendarAddress,
    LiteCalendarEntity,
    LiteDateProperty,
    LiteEntity,
    LiteEvent,
    LiteRawComponent,
    LiteTask,
    ParameterValue,
)
from icalsync_lite.core.config_manager import CALENDAR_NAME, LiteCalendarSettings
from icalsync_lite.core.timezone_utils import now_utc
from icalsync_lite.exceptions import EncodeError

logger = logging.getLogger(__name__)

COMPONENT_NAMES = {"event": "VEVENT", "task": "VTODO"}


def _text(value: str) -> str:
    return vText(value).to_ical().decode("utf-8")


def fold_line(line: str, limit: int) -> str:
    """Fold one content line so no physical line exceeds ``limit`` UTF-8 octets.

    Continuation lines start with a single space, which counts toward the
    limit. Multi-byte characters are never split.

    Examples:
        >>> fold_line("SUMMARY:abcdef", 10)
        'SUMMARY:ab\\r\\n cdef'
    """
    chunks: list[str] = []
    current: list[str] = []
    size = 0
    for char in line:
        width = len(char.encode("utf-8"))
        if current and size + width > limit:
            chunks.append("".join(current))
            current = [" "]
            size = 1
        current.append(char)
        size += width
    chunks.append("".join(current))
    return "\r\n".join(chunks)


class LiteICSSerializer:
    """Serializes entities into RFC 5545 calendar text."""

    def __init__(self, settings: Optional[LiteCalendarSettings] = None) -> None:
        """Initialize ICS serializer.

        Args:
            settings: Serializer settings (defaults when omitted)
        """
        self.settings = settings or LiteCalendarSettings()

    def serialize(
        self,
        entities: Union[LiteEntity, Iterable[LiteEntity]],
        charset: Optional[str] = None,
        properties: Optional[Mapping[str, str]] = None,
    ) -> bytes:
        """Serialize entities to an encoded calendar document.

        Args:
            entities: One entity or an iterable of masters and promoted exceptions
            charset: Output charset (default charset from settings when omitted)
            properties: Optional top-level properties, CALENDAR_NAME is written
                as X-WR-CALNAME

        Returns:
            Encoded VCALENDAR document with CRLF line endings

        Raises:
            EncodeError: If the charset is unknown or cannot represent the text
        """
        resolved = charset or self.settings.default_charset
        text = self.serialize_to_text(entities, properties)
        try:
            return text.encode(resolved)
        except LookupError as e:
            raise EncodeError(f"Unknown charset: {resolved}", charset=resolved) from e
        except UnicodeEncodeError as e:
            logger.error("Failed to encode ICS content as %s at character %d", resolved, e.start)
            raise EncodeError(
                f"Character {text[e.start]!r} at offset {e.start} cannot be encoded as {resolved}",
                charset=resolved,
                offset=e.start,
            ) from e

    def serialize_to_text(
        self,
        entities: Union[LiteEntity, Iterable[LiteEntity]],
        properties: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Serialize entities to calendar text without encoding it."""
        if isinstance(entities, LiteCalendarEntity):
            entities = [entities]
        entities = list(entities)

        lines = [
            "BEGIN:VCALENDAR",
            self._line("VERSION", {}, "2.0"),
            self._line("PRODID", {}, self.settings.prodid),
        ]
        calendar_name = (properties or {}).get(CALENDAR_NAME)
        if calendar_name is not None:
            lines.append(self._line("X-WR-CALNAME", {}, _text(calendar_name)))

        for component in self._collect_timezones(entities).values():
            lines.extend(self._render_raw_component(component))

        dtstamp = format_utc_datetime(now_utc())
        for entity in entities:
            lines.extend(self._render_entity(entity, dtstamp))
            for exception in entity.exceptions:
                lines.extend(self._render_entity(exception, dtstamp))

        lines.append("END:VCALENDAR")
        logger.debug("Serialized %d entities into %d content lines", len(entities), len(lines))
        return "\r\n".join(lines) + "\r\n"

    def _collect_timezones(self, entities: list[LiteEntity]) -> dict[str, LiteRawComponent]:
        timezones: dict[str, LiteRawComponent] = {}
        for entity in entities:
            for member in [entity, *entity.exceptions]:
                for tzid, component in member.embedded_timezones.items():
                    timezones.setdefault(tzid, component)
        return timezones

    def _render_entity(self, entity: LiteEntity, dtstamp: str) -> list[str]:
        name = COMPONENT_NAMES[entity.kind]
        lines = [f"BEGIN:{name}", self._line("UID", {}, _text(entity.uid))]
        lines.append(self._line("DTSTAMP", {}, dtstamp))
        if entity.sequence:
            lines.append(self._line("SEQUENCE", {}, str(entity.sequence)))

        self._add_date(lines, "RECURRENCE-ID", entity.recurrence_id)
        self._add_date(lines, "DTSTART", entity.dt_start)
        if isinstance(entity, LiteEvent):
            self._add_date(lines, "DTEND", entity.dt_end)
        else:
            self._add_date(lines, "DUE", entity.due)
        if entity.duration is not None:
            lines.append(self._line("DURATION", {}, vDuration(entity.duration).to_ical().decode()))

        self._add_text(lines, "SUMMARY", entity.summary)
        self._add_text(lines, "DESCRIPTION", entity.description)
        self._add_text(lines, "LOCATION", entity.location)
        if entity.url is not None:
            lines.append(self._line("URL", {}, entity.url))
        self._add_text(lines, "CLASS", entity.classification)
        self._add_text(lines, "STATUS", entity.status)
        if isinstance(entity, LiteEvent):
            self._add_text(lines, "TRANSP", entity.transparency)
        self._add_text(lines, "COLOR", entity.color)
        if entity.categories:
            lines.append(
                self._line("CATEGORIES", {}, ",".join(_text(item) for item in entity.categories))
            )

        self._add_address(lines, "ORGANIZER", entity.organizer)
        for attendee in entity.attendees:
            self._add_address(lines, "ATTENDEE", attendee)
        if entity.geo is not None:
            geo = vGeo((entity.geo.latitude, entity.geo.longitude))
            lines.append(self._line("GEO", {}, geo.to_ical()))

        if isinstance(entity, LiteTask):
            if entity.priority is not None:
                lines.append(self._line("PRIORITY", {}, str(entity.priority)))
            if entity.percent_complete is not None:
                lines.append(self._line("PERCENT-COMPLETE", {}, str(entity.percent_complete)))
            if entity.completed is not None:
                lines.append(self._line("COMPLETED", {}, format_utc_datetime(entity.completed)))

        if entity.created is not None:
            lines.append(self._line("CREATED", {}, format_utc_datetime(entity.created)))
        if entity.last_modified is not None:
            lines.append(self._line("LAST-MODIFIED", {}, format_utc_datetime(entity.last_modified)))

        if entity.rrule is not None:
            lines.append(self._line("RRULE", {}, entity.rrule))
        for rdate in entity.rdates:
            self._add_date(lines, "RDATE", rdate)
        for exdate in entity.exdates:
            self._add_date(lines, "EXDATE", exdate)

        for prop in entity.unknown_properties:
            lines.append(self._line(prop.name, prop.parameters, prop.value))
        for component in entity.unknown_components:
            lines.extend(self._render_raw_component(component))

        lines.append(f"END:{name}")
        return lines

    def _render_raw_component(self, component: LiteRawComponent) -> list[str]:
        lines = [f"BEGIN:{component.name}"]
        for prop in component.properties:
            lines.append(self._line(prop.name, prop.parameters, prop.value))
        for child in component.components:
            lines.extend(self._render_raw_component(child))
        lines.append(f"END:{component.name}")
        return lines

    def _add_date(self, lines: list[str], name: str, prop: Optional[LiteDateProperty]) -> None:
        if prop is None:
            return
        params, value = format_date_property(prop)
        lines.append(self._line(name, params, value))

    def _add_text(self, lines: list[str], name: str, value: Optional[str]) -> None:
        if value is not None:
            lines.append(self._line(name, {}, _text(value)))

    def _add_address(
        self, lines: list[str], name: str, address: Optional[LiteCalendarAddress]
    ) -> None:
        if address is not None:
            lines.append(self._line(name, address.parameters, address.address))

    def _line(self, name: str, params: Mapping[str, ParameterValue], value: str) -> str:
        """Build one folded content line; list parameters are quoted item by item."""
        head = name
        if params:
            head = f"{name};{Parameters(dict(params)).to_ical().decode('utf-8')}"
        return fold_line(f"{head}:{value}", self.settings.fold_limit)


def serialize(
    entities: Union[LiteEntity, Iterable[LiteEntity]],
    charset: Optional[str] = None,
    properties: Optional[Mapping[str, str]] = None,
    settings: Optional[LiteCalendarSettings] = None,
) -> bytes:
    """Serialize entities to bytes (convenience function)."""
    return LiteICSSerializer(settings).serialize(entities, charset, properties)
