"""icalsync_lite - RFC 5545 event and task parsing, grouping and serialization.

The package keeps imports light and never configures logging on import;
call icalsync_lite.lite_logging.configure_lite_logging() from applications.
"""

__version__ = "1.0.0"

from icalsync_lite.calendar.lite_models import (
    LiteCalendarAddress,
    LiteCalendarEntity,
    LiteDateProperty,
    LiteEvent,
    LiteGeo,
    LiteParseResult,
    LiteRawComponent,
    LiteRawProperty,
    LiteTask,
)
from icalsync_lite.calendar.lite_parser import (
    LiteICSParser,
    parse_calendar,
    parse_events,
    parse_tasks,
)
from icalsync_lite.calendar.lite_serializer import LiteICSSerializer, serialize
from icalsync_lite.core.config_manager import CALENDAR_NAME, ConfigManager, LiteCalendarSettings
from icalsync_lite.exceptions import (
    CalendarDataError,
    DecodeError,
    EncodeError,
    InvalidCalendarError,
    UnresolvedTimezoneError,
)

__all__ = [
    "CALENDAR_NAME",
    "CalendarDataError",
    "ConfigManager",
    "DecodeError",
    "EncodeError",
    "InvalidCalendarError",
    "LiteCalendarAddress",
    "LiteCalendarEntity",
    "LiteCalendarSettings",
    "LiteDateProperty",
    "LiteEvent",
    "LiteGeo",
    "LiteICSParser",
    "LiteICSSerializer",
    "LiteParseResult",
    "LiteRawComponent",
    "LiteRawProperty",
    "LiteTask",
    "UnresolvedTimezoneError",
    "__version__",
    "parse_calendar",
    "parse_events",
    "parse_tasks",
    "serialize",
]
