"""Data models for calendar stream processing - icalsync_lite version.

Two layers live here: the raw component tree produced by the component
parser (properties exactly as written) and the finished Event/Task entities
produced by the grouping and normalization engine.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from icalsync_lite.core.config_manager import CALENDAR_NAME

# Multi-valued parameters (DELEGATED-TO, MEMBER, ...) are kept as lists
ParameterValue = Union[str, list[str]]


def first_parameter(parameters: Mapping[str, ParameterValue], name: str) -> Optional[str]:
    """Return a parameter as one string, the first item when it is multi-valued."""
    value = parameters.get(name)
    if isinstance(value, list):
        return value[0] if value else None
    return value


# Raw component tree


class LiteRawProperty(BaseModel):
    """One tokenized content line: name, parameters and still-encoded value."""

    name: str = Field(..., description="Upper-cased property name")
    parameters: dict[str, ParameterValue] = Field(
        default_factory=dict, description="Upper-cased parameter names to values"
    )
    value: str = Field(default="", description="Value as written, not type-decoded")


class LiteRawComponent(BaseModel):
    """A BEGIN/END block with its properties and nested blocks, in input order."""

    name: str = Field(..., description="Upper-cased component name (VEVENT, VTODO, ...)")
    properties: list[LiteRawProperty] = Field(default_factory=list)
    components: list["LiteRawComponent"] = Field(default_factory=list)

    def get_all(self, name: str) -> list[LiteRawProperty]:
        """Return every property called ``name`` in input order."""
        return [prop for prop in self.properties if prop.name == name]

    def get_first(self, name: str) -> Optional[LiteRawProperty]:
        """Return the first property called ``name`` or None."""
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def has(self, name: str) -> bool:
        return self.get_first(name) is not None


class LiteComponentTree(BaseModel):
    """Output of the component tree parser for one stream."""

    components: list[LiteRawComponent] = Field(
        default_factory=list, description="VEVENT/VTODO records in input order"
    )
    timezones: dict[str, LiteRawComponent] = Field(
        default_factory=dict, description="Embedded VTIMEZONE definitions by TZID"
    )
    properties: dict[str, str] = Field(
        default_factory=dict, description="Recognized top-level calendar properties"
    )


# Finished entities


class LiteDateProperty(BaseModel):
    """A temporal value: instant, optional timezone label, date-only flag.

    ``value`` is a ``date`` for date-only values and a ``datetime`` otherwise.
    An aware datetime with no ``tzid`` is a UTC instant; a naive datetime is
    floating. A ``tzid`` on a naive value marks a timezone that could not be
    resolved and is kept so it re-serializes unchanged.
    """

    value: Union[datetime, date] = Field(..., description="Date or date-time value")
    tzid: Optional[str] = Field(default=None, description="TZID parameter as written")

    @property
    def is_date_only(self) -> bool:
        return not isinstance(self.value, datetime)

    @property
    def is_floating(self) -> bool:
        return isinstance(self.value, datetime) and self.value.tzinfo is None

    @property
    def is_utc(self) -> bool:
        return isinstance(self.value, datetime) and self.value.tzinfo is not None and not self.tzid

    @property
    def timezone(self) -> Optional[tzinfo]:
        """Resolved timezone, None for date-only and floating values."""
        if isinstance(self.value, datetime):
            return self.value.tzinfo
        return None

    def __str__(self) -> str:
        if self.tzid:
            return f"{self.value.isoformat()}[{self.tzid}]"
        return self.value.isoformat()


class LiteCalendarAddress(BaseModel):
    """ORGANIZER or ATTENDEE value with its parameters (CN, ROLE, PARTSTAT, ...)."""

    address: str = Field(..., description="Calendar user address, usually a mailto: URI")
    parameters: dict[str, ParameterValue] = Field(default_factory=dict)

    @property
    def common_name(self) -> Optional[str]:
        return first_parameter(self.parameters, "CN")

    @property
    def email(self) -> Optional[str]:
        if self.address.lower().startswith("mailto:"):
            return self.address[len("mailto:") :]
        return None


class LiteGeo(BaseModel):
    """GEO position."""

    latitude: float
    longitude: float


class LiteCalendarEntity(BaseModel, ABC):
    """Fields shared by events and tasks.

    A master has ``recurrence_id`` None and may carry exceptions; an exception
    always has ``recurrence_id`` set and never carries exceptions of its own.
    """

    uid: str = Field(..., description="Unique identifier shared by a master and its exceptions")
    sequence: int = Field(default=0, ge=0, description="Revision number")
    recurrence_id: Optional[LiteDateProperty] = Field(
        default=None, description="Set on exceptions only"
    )
    dt_start: Optional[LiteDateProperty] = None

    # Descriptive fields
    summary: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    url: Optional[str] = None
    classification: Optional[str] = None
    status: Optional[str] = None
    color: Optional[str] = None
    categories: list[str] = Field(default_factory=list)

    # People and place
    organizer: Optional[LiteCalendarAddress] = None
    attendees: list[LiteCalendarAddress] = Field(default_factory=list)
    geo: Optional[LiteGeo] = None

    # Metadata
    created: Optional[datetime] = Field(default=None, description="CREATED (UTC)")
    last_modified: Optional[datetime] = Field(default=None, description="LAST-MODIFIED (UTC)")

    # Recurrence control
    rrule: Optional[str] = Field(default=None, description="RRULE value as written")
    exdates: list[LiteDateProperty] = Field(default_factory=list)
    rdates: list[LiteDateProperty] = Field(default_factory=list)

    # Round-trip preservation
    unknown_properties: list[LiteRawProperty] = Field(
        default_factory=list, description="Unrecognized properties in input order"
    )
    unknown_components: list[LiteRawComponent] = Field(
        default_factory=list, description="Nested components such as VALARM"
    )
    embedded_timezones: dict[str, LiteRawComponent] = Field(
        default_factory=dict, description="VTIMEZONE definitions this entity resolved from"
    )

    @property
    def is_exception(self) -> bool:
        return self.recurrence_id is not None

    @property
    def is_recurring(self) -> bool:
        return bool(self.rrule or self.rdates)

    @abstractmethod
    def is_all_day(self) -> bool:
        """True when the entity spans whole days."""

    @model_validator(mode="after")
    def check_exceptions(self) -> "LiteCalendarEntity":
        for exception in getattr(self, "exceptions", []):
            if exception.recurrence_id is None:
                raise ValueError(f"Exception of uid={self.uid} has no recurrence_id")
            if exception.exceptions:
                raise ValueError(f"Exception of uid={self.uid} carries exceptions of its own")
        return self

    def __str__(self) -> str:
        parts = [f"uid={self.uid}"]
        if self.recurrence_id is not None:
            parts.append(f"recurrence_id={self.recurrence_id}")
        if self.sequence:
            parts.append(f"sequence={self.sequence}")
        if self.summary is not None:
            parts.append(f"summary={self.summary!r}")
        if self.dt_start is not None:
            parts.append(f"dt_start={self.dt_start}")
        return f"{type(self).__name__}({', '.join(parts)})"


class LiteEvent(LiteCalendarEntity):
    """VEVENT entity."""

    kind: Literal["event"] = "event"
    dt_end: Optional[LiteDateProperty] = None
    duration: Optional[timedelta] = Field(default=None, description="DURATION, kept as written")
    transparency: Optional[str] = None
    exceptions: list["LiteEvent"] = Field(
        default_factory=list, description="Overrides of single occurrences"
    )

    def is_all_day(self) -> bool:
        """True when the start, and the end if present, carry no time of day."""
        if self.dt_start is None or not self.dt_start.is_date_only:
            return False
        return self.dt_end is None or self.dt_end.is_date_only


class LiteTask(LiteCalendarEntity):
    """VTODO entity."""

    kind: Literal["task"] = "task"
    due: Optional[LiteDateProperty] = None
    duration: Optional[timedelta] = None
    priority: Optional[int] = Field(default=None, ge=0, le=9)
    percent_complete: Optional[int] = Field(default=None, ge=0, le=100)
    completed: Optional[datetime] = Field(default=None, description="COMPLETED (UTC)")
    exceptions: list["LiteTask"] = Field(default_factory=list)

    def is_all_day(self) -> bool:
        """True when every temporal field present is date-only."""
        present = [prop for prop in (self.dt_start, self.due) if prop is not None]
        return bool(present) and all(prop.is_date_only for prop in present)


LiteEntity = Union[LiteEvent, LiteTask]


class LiteParseResult(BaseModel):
    """Result of one parse call."""

    entities: list[Any] = Field(
        default_factory=list,
        description="Finished LiteEvent/LiteTask masters and promoted exceptions",
    )
    properties: dict[str, str] = Field(
        default_factory=dict, description="Top-level properties, CALENDAR_NAME at most"
    )
    warnings: list[str] = Field(default_factory=list, description="Component-level diagnostics")

    # Parse statistics
    total_components: int = 0
    skipped_components: int = 0
    promoted_exceptions: int = 0
    replaced_exceptions: int = 0
    ignored_duplicate_masters: int = 0

    @property
    def events(self) -> list[LiteEvent]:
        return [entity for entity in self.entities if isinstance(entity, LiteEvent)]

    @property
    def tasks(self) -> list[LiteTask]:
        return [entity for entity in self.entities if isinstance(entity, LiteTask)]

    @property
    def calendar_name(self) -> Optional[str]:
        return self.properties.get(CALENDAR_NAME)
