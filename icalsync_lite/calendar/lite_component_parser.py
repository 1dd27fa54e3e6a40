"""Component tree parsing for ICS calendar processing - icalsync_lite.

Content lines are tokenized by icalendar; this module only tracks the
BEGIN/END structure, collects VEVENT/VTODO records and embedded VTIMEZONE
definitions, and picks up the allow-listed top-level calendar properties.
"""

import logging
from typing import Any, Optional

from icalendar.parser import Contentline, Contentlines, unescape_backslash

from icalsync_lite.calendar.lite_models import (
    LiteComponentTree,
    ParameterValue,
    LiteRawComponent,
    LiteRawProperty,
)
from icalsync_lite.calendar.lite_parser_telemetry import ParserTelemetry
from icalsync_lite.core.config_manager import CALENDAR_NAME
from icalsync_lite.exceptions import InvalidCalendarError

logger = logging.getLogger(__name__)

ENTITY_COMPONENTS = ("VEVENT", "VTODO")

# Top-level VCALENDAR properties worth reporting, mapped to result keys
TOP_LEVEL_PROPERTIES = {"X-WR-CALNAME": CALENDAR_NAME}


def flatten_parameters(params: Any) -> dict[str, ParameterValue]:
    """Convert tokenizer parameters to a plain dict keyed by upper-cased names.

    Multi-valued parameters come back from the tokenizer as lists and stay
    lists, so each value is quoted on its own when written back.
    """
    result: dict[str, ParameterValue] = {}
    for key, value in params.items():
        if isinstance(value, (list, tuple)):
            result[str(key).upper()] = [str(item) for item in value]
        else:
            result[str(key).upper()] = str(value)
    return result


class LiteComponentParser:
    """Builds the raw component tree of one calendar document."""

    def __init__(self, telemetry: Optional[ParserTelemetry] = None):
        """Initialize component parser.

        Args:
            telemetry: Diagnostics collector for skipped content lines
        """
        self.telemetry = telemetry or ParserTelemetry()

    def parse(self, text: str) -> LiteComponentTree:
        """Parse unfolded calendar text into a component tree.

        Args:
            text: Decoded and unfolded calendar text

        Returns:
            Raw VEVENT/VTODO records in input order, embedded timezones and
            recognized top-level properties

        Raises:
            InvalidCalendarError: If BEGIN/END blocks are unbalanced or a
                property or unreadable line sits outside any component
        """
        tree = LiteComponentTree()
        stack: list[LiteRawComponent] = []

        for line_number, line in enumerate(self._tokenize(text), start=1):
            if not line.strip():
                continue

            try:
                name, params, value = line.raw_parts()
            except ValueError as e:
                if not stack:
                    raise self._error(
                        f"Unreadable content line outside any component: {e}", line_number
                    ) from e
                self.telemetry.record_warning(
                    f"Skipped unreadable content line {line_number} in {stack[-1].name}: "
                    f"{line[:60]!r}"
                )
                continue

            name = name.upper()
            if name == "BEGIN":
                stack.append(LiteRawComponent(name=value.strip().upper()))
            elif name == "END":
                self._close_component(value.strip().upper(), stack, tree, line_number)
            elif not stack:
                raise self._error(f"Property {name} outside any component", line_number)
            else:
                prop = LiteRawProperty(
                    name=name, parameters=flatten_parameters(params), value=str(value)
                )
                if stack[-1].name == "VCALENDAR":
                    self._record_calendar_property(prop, tree)
                else:
                    stack[-1].properties.append(prop)

        if stack:
            raise self._error(f"Unterminated {stack[-1].name} block at end of input", None)

        logger.debug(
            "Component tree: %d entity components, %d embedded timezones",
            len(tree.components),
            len(tree.timezones),
        )
        return tree

    def _tokenize(self, text: str) -> list[Contentline]:
        try:
            return list(Contentlines.from_ical(text))
        except ValueError as e:
            raise self._error(
                f"Calendar text could not be split into content lines: {e}", None
            ) from e

    def _close_component(
        self,
        name: str,
        stack: list[LiteRawComponent],
        tree: LiteComponentTree,
        line_number: int,
    ) -> None:
        if not stack:
            raise self._error(f"END:{name} without matching BEGIN", line_number)
        current = stack.pop()
        if current.name != name:
            raise self._error(f"END:{name} does not close BEGIN:{current.name}", line_number)

        if current.name == "VTIMEZONE":
            self._register_timezone(current, tree)

        parent = stack[-1] if stack else None
        if current.name in ENTITY_COMPONENTS and (parent is None or parent.name == "VCALENDAR"):
            tree.components.append(current)
        elif parent is not None and parent.name != "VCALENDAR":
            parent.components.append(current)

    def _register_timezone(self, component: LiteRawComponent, tree: LiteComponentTree) -> None:
        tzid_prop = component.get_first("TZID")
        if tzid_prop is None or not tzid_prop.value:
            self.telemetry.record_warning("Embedded VTIMEZONE without TZID ignored")
            return
        if tzid_prop.value in tree.timezones:
            logger.debug("Duplicate VTIMEZONE %r ignored, first definition kept", tzid_prop.value)
            return
        tree.timezones[tzid_prop.value] = component

    def _record_calendar_property(self, prop: LiteRawProperty, tree: LiteComponentTree) -> None:
        key = TOP_LEVEL_PROPERTIES.get(prop.name)
        if key is None or key in tree.properties:
            return
        tree.properties[key] = unescape_backslash(prop.value)

    def _error(self, message: str, line_number: Optional[int]) -> InvalidCalendarError:
        if line_number is not None:
            message = f"{message} (line {line_number})"
        logger.error("Invalid calendar structure: %s", message)
        return InvalidCalendarError(message, line_number=line_number)


def parse_component_tree(text: str) -> LiteComponentTree:
    """Parse unfolded calendar text with a throwaway telemetry collector (convenience function)."""
    return LiteComponentParser().parse(text)
