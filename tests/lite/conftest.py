from collections.abc import Generator
from typing import Any, Callable

import pytest

from icalsync_lite.calendar.lite_component_parser import LiteComponentParser
from icalsync_lite.calendar.lite_datetime_utils import LiteDateTimeParser
from icalsync_lite.calendar.lite_entity_parser import LiteEntityParser
from icalsync_lite.calendar.lite_models import LiteRawComponent
from icalsync_lite.calendar.lite_parser import LiteICSParser
from icalsync_lite.calendar.lite_parser_telemetry import ParserTelemetry
from icalsync_lite.calendar.lite_serializer import LiteICSSerializer
from icalsync_lite.calendar.lite_timezone_resolver import LiteTimezoneResolver
from icalsync_lite.core.timezone_utils import normalize_timezone_name

VIENNA_TZID = "/freeassociation.sourceforge.net/Tzfile/Europe/Vienna"


def wrap_calendar(*blocks: str, header: str = "") -> str:
    """Wrap component blocks (LF separated) into a CRLF VCALENDAR document."""
    lines = ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//icalsync-lite test//EN"]
    if header:
        lines.extend(header.strip().splitlines())
    for block in blocks:
        lines.extend(block.strip().splitlines())
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear icalsync environment variables before each test.

    ICALSYNC_TEST_TIME freezes DTSTAMP generation and the ICALSYNC_* settings
    change parser limits, so neither may leak between tests.
    """
    for key in (
        "ICALSYNC_TEST_TIME",
        "ICALSYNC_DEBUG",
        "ICALSYNC_LOG_LEVEL",
        "ICALSYNC_DEFAULT_CHARSET",
        "ICALSYNC_PRODID",
        "ICALSYNC_FOLD_LIMIT",
        "ICALSYNC_MAX_ICS_SIZE_BYTES",
    ):
        monkeypatch.delenv(key, raising=False)
    yield
    normalize_timezone_name.cache_clear()


@pytest.fixture
def parser() -> LiteICSParser:
    """ICS parser with default settings."""
    return LiteICSParser()


@pytest.fixture
def serializer() -> LiteICSSerializer:
    """ICS serializer with default settings."""
    return LiteICSSerializer()


@pytest.fixture
def telemetry() -> ParserTelemetry:
    return ParserTelemetry(source_name="test")


@pytest.fixture
def build_entity_parser(
    telemetry: ParserTelemetry,
) -> Callable[[dict[str, LiteRawComponent]], LiteEntityParser]:
    """Factory for an entity parser over a given set of embedded timezones."""

    def build(embedded: dict[str, LiteRawComponent] | None = None) -> LiteEntityParser:
        resolver = LiteTimezoneResolver(embedded or {})
        return LiteEntityParser(LiteDateTimeParser(resolver, telemetry), telemetry)

    return build


@pytest.fixture
def raw_component(telemetry: ParserTelemetry) -> Callable[[str], LiteRawComponent]:
    """Parse a single VEVENT/VTODO block (LF separated) into a raw component."""

    def build(block: str) -> LiteRawComponent:
        tree = LiteComponentParser(telemetry).parse(wrap_calendar(block))
        return tree.components[0]

    return build


# ==================== ICS Test Data Fixtures ====================


@pytest.fixture
def vienna_vtimezone() -> str:
    """Evolution-style VTIMEZONE with a vendor-prefixed TZID."""
    return f"""BEGIN:VTIMEZONE
TZID:{VIENNA_TZID}
X-LIC-LOCATION:Europe/Vienna
BEGIN:DAYLIGHT
TZNAME:CEST
DTSTART:19700329T020000
RRULE:FREQ=YEARLY;BYDAY=-1SU;BYMONTH=3
TZOFFSETFROM:+0100
TZOFFSETTO:+0200
END:DAYLIGHT
BEGIN:STANDARD
TZNAME:CET
DTSTART:19701025T030000
RRULE:FREQ=YEARLY;BYDAY=-1SU;BYMONTH=10
TZOFFSETFROM:+0200
TZOFFSETTO:+0100
END:STANDARD
END:VTIMEZONE"""


@pytest.fixture
def custom_vtimezone() -> str:
    """VTIMEZONE for an identifier unknown to any system registry."""
    return """BEGIN:VTIMEZONE
TZID:XXX
BEGIN:STANDARD
DTSTART:19700101T000000
TZOFFSETFROM:+0530
TZOFFSETTO:+0530
TZNAME:XXX
END:STANDARD
END:VTIMEZONE"""


@pytest.fixture
def sample_ics_multiple() -> str:
    """Three plain events with a calendar display name."""
    return wrap_calendar(
        """BEGIN:VEVENT
UID:multiple-0@ical4android.EventTest
DTSTART;VALUE=DATE:20150501
SUMMARY:Event 0
END:VEVENT""",
        """BEGIN:VEVENT
UID:multiple-1@ical4android.EventTest
DTSTART;VALUE=DATE:20150502
SUMMARY:Event 1
END:VEVENT""",
        """BEGIN:VEVENT
UID:multiple-2@ical4android.EventTest
DTSTART;VALUE=DATE:20150503
SUMMARY:Event 2
END:VEVENT""",
        header="X-WR-CALNAME:Test-Kalender",
    )


@pytest.fixture
def sample_ics_grouping_scenario() -> str:
    """Masters A, B and C; B has one exception, C has two revisions of one exception."""
    return wrap_calendar(
        """BEGIN:VEVENT
UID:A
DTSTART:20240101T090000Z
DTEND:20240101T100000Z
SUMMARY:Plain master
END:VEVENT""",
        """BEGIN:VEVENT
UID:B
DTSTART;VALUE=DATE:20231225
RRULE:FREQ=WEEKLY
SUMMARY:Weekly
END:VEVENT""",
        """BEGIN:VEVENT
UID:B
RECURRENCE-ID;VALUE=DATE:20240101
DTSTART;VALUE=DATE:20240102
SUMMARY:Moved occurrence
END:VEVENT""",
        """BEGIN:VEVENT
UID:C
DTSTART;VALUE=DATE:20240104
RRULE:FREQ=MONTHLY
SUMMARY:Monthly
END:VEVENT""",
        """BEGIN:VEVENT
UID:C
RECURRENCE-ID;VALUE=DATE:20240201
SEQUENCE:1
DTSTART;VALUE=DATE:20240201
SUMMARY:First edit
END:VEVENT""",
        """BEGIN:VEVENT
UID:C
RECURRENCE-ID;VALUE=DATE:20240201
SEQUENCE:2
DTSTART;VALUE=DATE:20240201
SUMMARY:Second edit
END:VEVENT""",
    )


@pytest.fixture
def sample_full_event_block() -> str:
    """VEVENT block (LF separated) carrying every supported event property."""
    return """BEGIN:VEVENT
UID:full@example.com
DTSTAMP:20240101T000000Z
SEQUENCE:3
DTSTART;TZID=Europe/Vienna:20131009T170000
DTEND;TZID=Europe/Vienna:20131009T180000
SUMMARY:© äö üß
DESCRIPTION:Test Description\\nSecond line
LOCATION:中华人民共和国
URL:http://www.example.com/path?a=1&b=2
CLASS:confidential
STATUS:Confirmed
TRANSP:TRANSPARENT
COLOR:aliceblue
CATEGORIES:Work,Travel\\, abroad
CATEGORIES:Other
ORGANIZER;CN=Boss:mailto:boss@example.com
ATTENDEE;CN=Me;PARTSTAT=NEEDS-ACTION:mailto:me@example.com
GEO:48.2082;16.3738
CREATED:20131001T100000Z
LAST-MODIFIED:20131002T100000Z
RRULE:FREQ=WEEKLY;COUNT=5
EXDATE;TZID=Europe/Vienna:20131016T170000
RDATE;TZID=Europe/Vienna:20131030T170000
X-CUSTOM;X-PARAM=yes:kept
END:VEVENT"""


@pytest.fixture
def sample_ics_most_fields_task() -> str:
    """VTODO carrying most of the supported task properties."""
    return wrap_calendar(
        """BEGIN:VTODO
UID:most-fields1@example.com
DTSTAMP:20120218T154453Z
CREATED:20120218T154411Z
LAST-MODIFIED:20120218T154453Z
SEQUENCE:1
SUMMARY:Mehrere Felder
DESCRIPTION:Line one\\nLine two
LOCATION:Over there
URL:http://www.example.com
CLASS:private
STATUS:IN-PROCESS
GEO:37.386013;-122.082930
ORGANIZER;CN=Organizer:mailto:organizer@example.com
ATTENDEE;CN=Attendee One;PARTSTAT=ACCEPTED:mailto:one@example.com
ATTENDEE;CN=Attendee Two:mailto:two@example.com
PRIORITY:1
PERCENT-COMPLETE:50
DTSTART;VALUE=DATE:20120101
DURATION:P4DT3H2M1S
RRULE:FREQ=YEARLY;COUNT=2
EXDATE;VALUE=DATE:20130101
RDATE;VALUE=DATE:20120501,20120701
RDATE;VALUE=DATE:20120701
CATEGORIES:Test,Sample
X-UNKNOWN-PROP;X-PARAM=1:Unknown value
BEGIN:VALARM
ACTION:DISPLAY
TRIGGER:-PT10M
DESCRIPTION:Reminder
END:VALARM
END:VTODO"""
    )


@pytest.fixture
def make_calendar() -> Callable[..., str]:
    """Return the helper wrapping component blocks into a VCALENDAR document."""
    return wrap_calendar


@pytest.fixture
def vienna_tzid() -> str:
    return VIENNA_TZID
