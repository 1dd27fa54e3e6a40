"""Master/exception grouping for ICS calendar processing - icalsync_lite.

This module groups raw components by UID into masters and their
RECURRENCE-ID overrides, resolves conflicting overrides by SEQUENCE and
promotes overrides whose master is missing to top-level entities.
"""

import logging
from datetime import datetime
from typing import Optional

from icalsync_lite.calendar.lite_datetime_utils import comparable_instant
from icalsync_lite.calendar.lite_entity_parser import LiteEntityParser, component_uid
from icalsync_lite.calendar.lite_models import LiteDateProperty, LiteEntity, LiteRawComponent
from icalsync_lite.calendar.lite_parser_telemetry import ParserTelemetry

logger = logging.getLogger(__name__)

# (component name, uid) identifies an entity family; events and tasks never mix
FamilyKey = tuple[str, str]
OccurrenceKey = tuple[bool, datetime]
Candidate = tuple[FamilyKey, LiteRawComponent]


def occurrence_key(recurrence_id: LiteDateProperty) -> OccurrenceKey:
    """Key matching RECURRENCE-ID values that denote the same occurrence."""
    return recurrence_id.is_date_only, comparable_instant(recurrence_id.value)


class LiteEntityMerger:
    """Groups raw components into masters with attached exceptions."""

    def __init__(
        self, entity_parser: LiteEntityParser, telemetry: Optional[ParserTelemetry] = None
    ):
        """Initialize entity merger.

        Args:
            entity_parser: Parser turning raw components into entities
            telemetry: Collector for grouping diagnostics
        """
        self.entity_parser = entity_parser
        self.telemetry = telemetry or entity_parser.telemetry

    def merge(self, components: list[LiteRawComponent]) -> list[LiteEntity]:
        """Group raw components into finished entities.

        Masters keep their input order; promoted orphan exceptions follow
        them, also in input order.

        Args:
            components: Raw VEVENT/VTODO components in input order

        Returns:
            Masters with exceptions attached, then promoted orphan exceptions
        """
        master_candidates, exception_candidates = self._partition(components)

        # Only a master that parses claims its UID
        masters: dict[FamilyKey, LiteEntity] = {}
        ordered_masters: list[LiteEntity] = []
        for key, component in master_candidates:
            if key in masters:
                self.telemetry.record_duplicate_master(key[1])
                continue
            entity = self.entity_parser.parse_component(component)
            if entity is not None:
                masters[key] = entity
                ordered_masters.append(entity)

        attached: dict[FamilyKey, dict[OccurrenceKey, int]] = {}
        promoted: list[LiteEntity] = []
        for key, component in exception_candidates:
            exception = self.entity_parser.parse_component(component)
            if exception is None:
                continue
            if exception.recurrence_id is None:
                self.telemetry.record_skipped(
                    f"Exception uid={key[1]} has an unreadable RECURRENCE-ID and was dropped"
                )
                continue

            master = masters.get(key)
            if master is None:
                self.telemetry.record_promoted(key[1])
                promoted.append(exception)
                continue

            slot = occurrence_key(exception.recurrence_id)
            self._attach(master, exception, slot, attached.setdefault(key, {}))

        logger.debug(
            "Grouped %d components into %d masters and %d promoted exceptions",
            len(components),
            len(ordered_masters),
            len(promoted),
        )
        return ordered_masters + promoted

    def _partition(
        self, components: list[LiteRawComponent]
    ) -> tuple[list[Candidate], list[Candidate]]:
        """Split components into master and exception candidates, preserving order."""
        master_candidates: list[Candidate] = []
        exception_candidates: list[Candidate] = []

        for component in components:
            self.telemetry.record_component()
            uid = component_uid(component)
            if not uid:
                self.telemetry.record_skipped(f"{component.name} without UID skipped")
                continue

            key = (component.name, uid)
            if component.has("RECURRENCE-ID"):
                exception_candidates.append((key, component))
            else:
                master_candidates.append((key, component))

        return master_candidates, exception_candidates

    def _attach(
        self,
        master: LiteEntity,
        exception: LiteEntity,
        slot: OccurrenceKey,
        slots: dict[OccurrenceKey, int],
    ) -> None:
        """Attach an exception, keeping the higher SEQUENCE for a repeated RECURRENCE-ID.

        On equal SEQUENCE the exception attached first stays.
        """
        index = slots.get(slot)

        if index is None:
            slots[slot] = len(master.exceptions)
            master.exceptions.append(exception)
            return

        current = master.exceptions[index]
        if exception.sequence > current.sequence:
            master.exceptions[index] = exception
            self.telemetry.record_replaced(
                master.uid, str(exception.recurrence_id), current.sequence, exception.sequence
            )
        else:
            logger.debug(
                "Kept exception uid=%s recurrence_id=%s with sequence %d over sequence %d",
                master.uid,
                exception.recurrence_id,
                current.sequence,
                exception.sequence,
            )
