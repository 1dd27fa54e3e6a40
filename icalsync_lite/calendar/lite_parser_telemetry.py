"""Parser diagnostics for ICS calendar processing - icalsync_lite.

Component-level defects never abort a parse. Each one is logged at WARNING
and recorded here so callers get counts and messages on the parse result.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class ParserTelemetry:
    """Collects counters and diagnostic messages for a single parse call.

    A fresh instance is created per call; nothing is shared between calls.
    """

    def __init__(self, source_name: Optional[str] = None, max_logged_warnings: int = 50):
        """Initialize parser telemetry.

        Args:
            source_name: Optional label used in log messages
            max_logged_warnings: Warnings beyond this count are recorded but logged at DEBUG
        """
        self.source_name = source_name or "unknown"
        self.max_logged_warnings = max_logged_warnings

        # Tracking state
        self.total_components = 0
        self.skipped_components = 0
        self.promoted_exceptions = 0
        self.replaced_exceptions = 0
        self.ignored_duplicate_masters = 0
        self.warnings: list[str] = []

    def record_component(self) -> None:
        """Record that a VEVENT/VTODO component was read."""
        self.total_components += 1

    def record_warning(self, message: str) -> None:
        """Record a diagnostic message.

        Args:
            message: Human-readable description of the defect
        """
        self.warnings.append(message)
        if len(self.warnings) <= self.max_logged_warnings:
            logger.warning("%s (source=%s)", message, self.source_name)
        else:
            logger.debug("%s (source=%s)", message, self.source_name)

    def record_skipped(self, message: str) -> None:
        """Record a component dropped from the result."""
        self.skipped_components += 1
        self.record_warning(message)

    def record_promoted(self, uid: str) -> None:
        self.promoted_exceptions += 1
        logger.debug("Promoted orphan exception uid=%s to top level", uid)

    def record_replaced(
        self, uid: str, recurrence_id: str, old_sequence: int, new_sequence: int
    ) -> None:
        """Record an attached exception superseded by a higher revision."""
        self.replaced_exceptions += 1
        logger.debug(
            "Replaced exception uid=%s recurrence_id=%s: sequence %d -> %d",
            uid,
            recurrence_id,
            old_sequence,
            new_sequence,
        )

    def record_duplicate_master(self, uid: str) -> None:
        """Record a later master with an already-seen UID, which is ignored."""
        self.ignored_duplicate_masters += 1
        self.record_warning(f"Duplicate master component for uid={uid} ignored, first one kept")

    def summary(self) -> dict[str, int]:
        """Return the counters as a dictionary."""
        return {
            "total_components": self.total_components,
            "skipped_components": self.skipped_components,
            "promoted_exceptions": self.promoted_exceptions,
            "replaced_exceptions": self.replaced_exceptions,
            "ignored_duplicate_masters": self.ignored_duplicate_masters,
        }

    def log_completion(self, final_entities: int) -> None:
        """Log completion with comprehensive telemetry.

        Args:
            final_entities: Number of top-level entities in the result
        """
        logger.debug(
            "ICS parse completed - source=%s, total_components=%d, skipped=%d, "
            "promoted=%d, replaced=%d, duplicate_masters=%d, final_entities=%d, warnings=%d",
            self.source_name,
            self.total_components,
            self.skipped_components,
            self.promoted_exceptions,
            self.replaced_exceptions,
            self.ignored_duplicate_masters,
            final_entities,
            len(self.warnings),
        )
