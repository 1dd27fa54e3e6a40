"""Timezone resolution for ICS calendar processing - icalsync_lite.

A TZID is resolved against the VTIMEZONE definitions embedded in the same
stream first and the system registry second, so inline custom or corrected
zone data always wins over what the host happens to have installed.
"""

import io
import logging
from datetime import tzinfo
from typing import Optional

from dateutil import tz as dateutil_tz

from icalsync_lite.calendar.lite_models import LiteRawComponent
from icalsync_lite.core.timezone_utils import lookup_system_timezone
from icalsync_lite.exceptions import UnresolvedTimezoneError

logger = logging.getLogger(__name__)

# Properties dateutil's VTIMEZONE reader understands; anything else makes it bail
VTIMEZONE_PROPERTIES = ("TZID", "TZURL", "LAST-MODIFIED", "COMMENT")
OBSERVANCE_PROPERTIES = (
    "DTSTART",
    "RRULE",
    "RDATE",
    "EXRULE",
    "EXDATE",
    "TZOFFSETFROM",
    "TZOFFSETTO",
    "TZNAME",
    "COMMENT",
)


def vtimezone_to_text(component: LiteRawComponent) -> str:
    """Render a VTIMEZONE in the reduced form dateutil.tz.tzical accepts.

    X- properties, unknown subcomponents and property parameters are dropped.

    Args:
        component: Raw VTIMEZONE component

    Returns:
        CRLF-terminated VTIMEZONE text
    """
    lines = ["BEGIN:VTIMEZONE"]
    lines.extend(
        f"{prop.name}:{prop.value}"
        for prop in component.properties
        if prop.name in VTIMEZONE_PROPERTIES
    )
    for observance in component.components:
        if observance.name not in ("STANDARD", "DAYLIGHT"):
            continue
        lines.append(f"BEGIN:{observance.name}")
        lines.extend(
            f"{prop.name}:{prop.value}"
            for prop in observance.properties
            if prop.name in OBSERVANCE_PROPERTIES
        )
        lines.append(f"END:{observance.name}")
    lines.append("END:VTIMEZONE")
    return "\r\n".join(lines) + "\r\n"


class LiteTimezoneResolver:
    """Resolves TZID strings for one parse call.

    Instances hold the stream's embedded definitions and a cache of zones
    built from them; the system registry is only read.
    """

    def __init__(self, embedded: Optional[dict[str, LiteRawComponent]] = None):
        """Initialize timezone resolver.

        Args:
            embedded: VTIMEZONE components found in the stream, keyed by TZID
        """
        self._embedded = dict(embedded or {})
        self._built: dict[str, Optional[tzinfo]] = {}

    def embedded_definition(self, tzid: str) -> Optional[LiteRawComponent]:
        """Return the embedded VTIMEZONE for ``tzid`` if the stream carries one."""
        return self._embedded.get(tzid)

    def resolve(self, tzid: str, property_name: Optional[str] = None) -> tzinfo:
        """Resolve a TZID to a tzinfo.

        Args:
            tzid: TZID parameter value
            property_name: Name of the property being normalized, for error context

        Returns:
            tzinfo from the embedded definition, or from the system registry

        Raises:
            UnresolvedTimezoneError: If neither source knows the identifier
        """
        zone = self._from_embedded(tzid)
        if zone is not None:
            return zone

        zone = lookup_system_timezone(tzid)
        if zone is not None:
            return zone

        raise UnresolvedTimezoneError(tzid, property_name)

    def _from_embedded(self, tzid: str) -> Optional[tzinfo]:
        if tzid in self._built:
            return self._built[tzid]

        component = self._embedded.get(tzid)
        zone: Optional[tzinfo] = None
        if component is not None:
            try:
                zone = dateutil_tz.tzical(io.StringIO(vtimezone_to_text(component))).get(tzid)
            except Exception as e:
                logger.warning(
                    "Embedded VTIMEZONE %r unusable, falling back to system registry: %s", tzid, e
                )
                zone = None
            else:
                logger.debug("Built timezone %r from embedded VTIMEZONE", tzid)

        self._built[tzid] = zone
        return zone
