"""iCalendar stream parser - icalsync_lite version.

Wires the stages together: stream decoding, component tree parsing, timezone
resolution, entity parsing and master/exception grouping. Every call builds
its own resolver and telemetry, so a parser instance can be shared freely.
"""

import logging
from typing import Optional

from icalsync_lite.calendar.lite_component_parser import LiteComponentParser
from icalsync_lite.calendar.lite_datetime_utils import LiteDateTimeParser
from icalsync_lite.calendar.lite_entity_merger import LiteEntityMerger
from icalsync_lite.calendar.lite_entity_parser import LiteEntityParser
from icalsync_lite.calendar.lite_models import LiteParseResult
from icalsync_lite.calendar.lite_parser_telemetry import ParserTelemetry
from icalsync_lite.calendar.lite_stream_decoder import CalendarSource, LiteStreamDecoder
from icalsync_lite.calendar.lite_timezone_resolver import LiteTimezoneResolver
from icalsync_lite.core.config_manager import LiteCalendarSettings

logger = logging.getLogger(__name__)

EVENT_COMPONENTS = ("VEVENT",)
TASK_COMPONENTS = ("VTODO",)
ALL_COMPONENTS = EVENT_COMPONENTS + TASK_COMPONENTS


class LiteICSParser:
    """Parses RFC 5545 calendar streams into LiteEvent/LiteTask entities."""

    def __init__(self, settings: Optional[LiteCalendarSettings] = None) -> None:
        """Initialize ICS parser.

        Args:
            settings: Parser settings (defaults when omitted)
        """
        self.settings = settings or LiteCalendarSettings()
        self._decoder = LiteStreamDecoder(
            max_size_bytes=self.settings.max_ics_size_bytes,
            default_charset=self.settings.default_charset,
        )
        logger.debug("Lite ICS parser initialized")

    def parse_events(
        self,
        source: CalendarSource,
        charset: Optional[str] = None,
        source_name: Optional[str] = None,
    ) -> LiteParseResult:
        """Parse the VEVENT components of a calendar stream, ignoring tasks.

        Args:
            source: bytes, binary file object, or already decoded str
            charset: Optional charset override for byte sources
            source_name: Optional label for log messages

        Returns:
            Parse result with LiteEvent entities
        """
        return self._parse(source, charset, EVENT_COMPONENTS, source_name)

    def parse_tasks(
        self,
        source: CalendarSource,
        charset: Optional[str] = None,
        source_name: Optional[str] = None,
    ) -> LiteParseResult:
        """Parse the VTODO components of a calendar stream, ignoring events."""
        return self._parse(source, charset, TASK_COMPONENTS, source_name)

    def parse_calendar(
        self,
        source: CalendarSource,
        charset: Optional[str] = None,
        source_name: Optional[str] = None,
    ) -> LiteParseResult:
        """Parse both VEVENT and VTODO components, keeping input order."""
        return self._parse(source, charset, ALL_COMPONENTS, source_name)

    def _parse(
        self,
        source: CalendarSource,
        charset: Optional[str],
        kinds: tuple[str, ...],
        source_name: Optional[str],
    ) -> LiteParseResult:
        """Run the full pipeline.

        Raises:
            DecodeError: If the stream cannot be decoded
            InvalidCalendarError: If the component structure is broken
        """
        telemetry = ParserTelemetry(source_name)

        text = self._decoder.decode(source, charset)
        tree = LiteComponentParser(telemetry).parse(text)
        components = [component for component in tree.components if component.name in kinds]

        resolver = LiteTimezoneResolver(tree.timezones)
        entity_parser = LiteEntityParser(LiteDateTimeParser(resolver, telemetry), telemetry)
        entities = LiteEntityMerger(entity_parser, telemetry).merge(components)

        telemetry.log_completion(len(entities))
        return LiteParseResult(
            entities=entities,
            properties=dict(tree.properties),
            warnings=list(telemetry.warnings),
            **telemetry.summary(),
        )


def parse_events(
    source: CalendarSource,
    charset: Optional[str] = None,
    settings: Optional[LiteCalendarSettings] = None,
) -> LiteParseResult:
    """Parse events from a calendar stream (convenience function)."""
    return LiteICSParser(settings).parse_events(source, charset)


def parse_tasks(
    source: CalendarSource,
    charset: Optional[str] = None,
    settings: Optional[LiteCalendarSettings] = None,
) -> LiteParseResult:
    """Parse tasks from a calendar stream (convenience function)."""
    return LiteICSParser(settings).parse_tasks(source, charset)


def parse_calendar(
    source: CalendarSource,
    charset: Optional[str] = None,
    settings: Optional[LiteCalendarSettings] = None,
) -> LiteParseResult:
    """Parse events and tasks from a calendar stream (convenience function)."""
    return LiteICSParser(settings).parse_calendar(source, charset)
