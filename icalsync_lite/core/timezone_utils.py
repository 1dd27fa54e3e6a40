"""Timezone name normalization and system registry lookup for icalsync_lite."""

from __future__ import annotations

import datetime
import logging
import os
import zoneinfo
from functools import lru_cache
from typing import ClassVar

logger = logging.getLogger(__name__)


class TimezoneNameMapper:
    """Maps the timezone identifiers found in real-world feeds to IANA names."""

    # Windows timezone names to IANA identifier mapping
    # Common Windows timezones used in ICS files from Outlook/Exchange
    # https://docs.microsoft.com/en-us/windows-hardware/manufacture/desktop/default-time-zones
    WINDOWS_TZ_MAP: ClassVar[dict[str, str]] = {
        # US Timezones
        "Pacific Standard Time": "America/Los_Angeles",
        "Mountain Standard Time": "America/Denver",
        "Central Standard Time": "America/Chicago",
        "Eastern Standard Time": "America/New_York",
        "Alaskan Standard Time": "America/Anchorage",
        "Hawaiian Standard Time": "Pacific/Honolulu",
        "US Mountain Standard Time": "America/Phoenix",
        "Atlantic Standard Time": "America/Halifax",
        "Newfoundland Standard Time": "America/St_Johns",
        "Canada Central Standard Time": "America/Regina",
        # Europe
        "GMT Standard Time": "Europe/London",
        "Greenwich Standard Time": "Atlantic/Reykjavik",
        "W. Europe Standard Time": "Europe/Berlin",
        "Central Europe Standard Time": "Europe/Budapest",
        "Central European Standard Time": "Europe/Warsaw",
        "Romance Standard Time": "Europe/Paris",
        "E. Europe Standard Time": "Europe/Chisinau",
        "FLE Standard Time": "Europe/Kiev",
        "GTB Standard Time": "Europe/Bucharest",
        "Russian Standard Time": "Europe/Moscow",
        "W. Central Africa Standard Time": "Africa/Lagos",
        # Asia
        "China Standard Time": "Asia/Shanghai",
        "Tokyo Standard Time": "Asia/Tokyo",
        "Korea Standard Time": "Asia/Seoul",
        "Singapore Standard Time": "Asia/Singapore",
        "Taipei Standard Time": "Asia/Taipei",
        "India Standard Time": "Asia/Calcutta",
        "SE Asia Standard Time": "Asia/Bangkok",
        "Pakistan Standard Time": "Asia/Karachi",
        "Iran Standard Time": "Asia/Tehran",
        "Arabian Standard Time": "Asia/Dubai",
        "Israel Standard Time": "Asia/Jerusalem",
        # Australia & Pacific
        "AUS Eastern Standard Time": "Australia/Sydney",
        "AUS Central Standard Time": "Australia/Darwin",
        "E. Australia Standard Time": "Australia/Brisbane",
        "W. Australia Standard Time": "Australia/Perth",
        "New Zealand Standard Time": "Pacific/Auckland",
        # South America & Africa
        "SA Pacific Standard Time": "America/Bogota",
        "Argentina Standard Time": "America/Buenos_Aires",
        "E. South America Standard Time": "America/Sao_Paulo",
        "South Africa Standard Time": "Africa/Johannesburg",
        "Egypt Standard Time": "Africa/Cairo",
        # UTC
        "UTC": "UTC",
        "Coordinated Universal Time": "UTC",
    }

    # Timezone aliases mapping (obsolete/deprecated IANA names to current names)
    TZ_ALIAS_MAP: ClassVar[dict[str, str]] = {
        "US/Pacific": "America/Los_Angeles",
        "US/Mountain": "America/Denver",
        "US/Central": "America/Chicago",
        "US/Eastern": "America/New_York",
        "US/Alaska": "America/Anchorage",
        "US/Hawaii": "Pacific/Honolulu",
        "US/Arizona": "America/Phoenix",
        "GMT": "UTC",
        "Etc/UTC": "UTC",
        "Etc/GMT": "UTC",
        "Etc/Universal": "UTC",
        "Universal": "UTC",
        "Zulu": "UTC",
        "Z": "UTC",
        "Asia/Rangoon": "Asia/Yangon",
        "America/Godthab": "America/Nuuk",
    }

    def candidates(self, tzid: str) -> list[str]:
        """Return registry keys worth trying for a TZID, most specific first.

        Evolution and Lightning prefix their zone ids with a vendor path
        ("/freeassociation.sourceforge.net/Tzfile/Europe/Vienna"); every
        trailing path suffix of such an id is offered as a candidate.

        Args:
            tzid: TZID parameter value as written in the stream

        Returns:
            Ordered, de-duplicated list of candidate IANA keys
        """
        name = tzid.strip().strip('"')
        result: list[str] = []

        def add(candidate: str) -> None:
            if candidate and candidate not in result:
                result.append(candidate)

        add(self.WINDOWS_TZ_MAP.get(name, ""))
        add(self.TZ_ALIAS_MAP.get(name, ""))
        if not name.startswith("/"):
            add(name)

        segments = [segment for segment in name.split("/") if segment]
        if len(segments) > 1:
            for start in range(1, len(segments)):
                suffix = "/".join(segments[start:])
                add(self.TZ_ALIAS_MAP.get(suffix, suffix))

        return result


_mapper = TimezoneNameMapper()


@lru_cache(maxsize=256)
def normalize_timezone_name(tz_str: str) -> str | None:
    """Normalize a TZID to a registry key that zoneinfo accepts.

    Tries, in order: Windows zone names, aliases, the id itself, and trailing
    path suffixes of vendor-prefixed ids.

    Args:
        tz_str: Timezone string (Windows name, alias, IANA or vendor-prefixed id)

    Returns:
        IANA timezone identifier or None if the registry knows no candidate

    Examples:
        >>> normalize_timezone_name("Pacific Standard Time")
        'America/Los_Angeles'
        >>> normalize_timezone_name("/freeassociation.sourceforge.net/Tzfile/Europe/Vienna")
        'Europe/Vienna'
        >>> normalize_timezone_name("Invalid/Timezone") is None
        True
    """
    if not tz_str:
        return None

    for candidate in _mapper.candidates(tz_str):
        try:
            zoneinfo.ZoneInfo(candidate)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError, OSError):
            continue
        return candidate

    logger.debug("No registry timezone matches %r", tz_str)
    return None


def lookup_system_timezone(tzid: str) -> datetime.tzinfo | None:
    """Look a TZID up in the system timezone registry.

    The registry is only read, never modified.

    Args:
        tzid: TZID parameter value

    Returns:
        ZoneInfo instance or None if unknown
    """
    name = normalize_timezone_name(tzid)
    if name is None:
        return None
    return zoneinfo.ZoneInfo(name)


class TimeProvider:
    """Provides current time with test time override support."""

    ENV_VAR = "ICALSYNC_TEST_TIME"

    def now_utc(self) -> datetime.datetime:
        """Return current UTC time with tzinfo.

        Can be overridden for testing via ICALSYNC_TEST_TIME environment variable.
        Format: ISO 8601 datetime string (e.g., "2025-10-27T08:20:00-07:00")

        Returns:
            Current time in UTC with timezone info
        """
        test_time = os.environ.get(self.ENV_VAR)
        if test_time:
            from dateutil import parser as date_parser

            try:
                dt = date_parser.isoparse(test_time)
            except ValueError as e:
                logger.warning("Failed to parse %s=%r: %s", self.ENV_VAR, test_time, e)
            else:
                if dt.tzinfo is not None:
                    return dt.astimezone(datetime.UTC)
                return dt.replace(tzinfo=datetime.UTC)

        return datetime.datetime.now(datetime.UTC)


_time_provider = TimeProvider()


def now_utc() -> datetime.datetime:
    """Get current UTC time (convenience function).

    Returns:
        Current time in UTC
    """
    return _time_provider.now_utc()
