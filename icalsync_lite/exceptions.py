"""Exception hierarchy for calendar stream parsing and serialization.

Stream-level failures (decoding, broken component structure) abort the whole
call. Timezone resolution failures are scoped to a single property and are
handled inside normalization, so callers normally only see them as warnings
on the parse result.
"""

from typing import Optional


class CalendarDataError(Exception):
    """Base exception for all icalsync_lite errors.

    Catch this to handle any failure raised by the parser or serializer.
    """


class DecodeError(CalendarDataError):
    """Byte stream could not be turned into text.

    Raised when:
    - The resolved charset is unknown
    - The bytes are malformed for the resolved charset
    - The stream exceeds the configured size limit
    """

    def __init__(self, message: str, charset: str, offset: Optional[int] = None) -> None:
        super().__init__(message)
        self.charset = charset
        self.offset = offset


class EncodeError(CalendarDataError):
    """Serialized calendar text cannot be represented in the requested charset."""

    def __init__(self, message: str, charset: str, offset: Optional[int] = None) -> None:
        super().__init__(message)
        self.charset = charset
        self.offset = offset


class InvalidCalendarError(CalendarDataError):
    """Component structure of the stream is broken.

    Raised when:
    - BEGIN/END blocks are unterminated or mismatched
    - A property appears outside of any component
    - A top-level content line cannot be split into name, parameters and value
    """

    def __init__(self, message: str, line_number: Optional[int] = None) -> None:
        super().__init__(message)
        self.line_number = line_number


class UnresolvedTimezoneError(CalendarDataError):
    """TZID matches neither an embedded VTIMEZONE nor the system registry."""

    def __init__(self, tzid: str, property_name: Optional[str] = None) -> None:
        message = f"Unresolved timezone {tzid!r}"
        if property_name:
            message = f"{message} in {property_name}"
        super().__init__(message)
        self.tzid = tzid
        self.property_name = property_name
