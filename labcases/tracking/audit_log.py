"""
Audit trail for medical record edits.

Every persisted edit becomes one immutable entry per changed field,
attributed to the actor supplied by the auth layer. Creation and deletion
are recorded as single sentinel entries. Entries are only ever appended.
"""

from collections import Counter
from datetime import datetime
from typing import Callable, List, Optional, Sequence

import structlog

from ..exceptions import RecordValidationError
from ..models.audit import AuditLogEntry, Change
from ..models.base import utc_now
from ..models.enums import LifecycleEvent
from ..models.record import Actor
from ..storage.base import AuditStore
from .diff import canonical

logger = structlog.get_logger()

LIFECYCLE_LABELS = {
    LifecycleEvent.CREATED: "Creación del registro",
    LifecycleEvent.DELETED: "Eliminación del registro",
}


class AuditLogWriter:
    """
    Appends attributed audit entries.

    One call produces one atomic append: either every entry of the change
    set is stored or none is. Store failures propagate unchanged and are
    never retried, since a retry could duplicate entries.
    """

    def __init__(
        self,
        store: AuditStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.clock = clock or utc_now

    def write(
        self,
        record_id: str,
        actor: Actor,
        changes: Sequence[Change],
    ) -> List[AuditLogEntry]:
        """
        Persist one entry per change.

        An empty change set writes nothing, even though callers are
        expected to have filtered no-ops already.
        """
        if not changes:
            logger.debug("No changes to audit", record_id=record_id)
            return []

        actor.validate()
        changed_at = self.clock()

        entries = [
            AuditLogEntry(
                record_id=record_id,
                actor_id=actor.id,
                actor_label=actor.label,
                field_name=change.field,
                field_label=change.field_label,
                old_value=canonical(change.old_value),
                new_value=canonical(change.new_value),
                changed_at=changed_at,
            )
            for change in changes
        ]

        stored = self.store.append(entries)

        logger.info(
            "Audit entries written",
            record_id=record_id,
            actor_id=actor.id,
            fields=[change.field for change in changes],
        )
        return stored

    def write_lifecycle_event(
        self,
        record_id: str,
        actor: Actor,
        kind: LifecycleEvent,
        summary: Optional[str] = None,
    ) -> AuditLogEntry:
        """Persist exactly one created_record / deleted_record entry."""
        kind = LifecycleEvent(kind)
        actor.validate()
        if not record_id:
            raise RecordValidationError("record_id is required for lifecycle events")

        entry = AuditLogEntry(
            record_id=record_id,
            actor_id=actor.id,
            actor_label=actor.label,
            field_name=kind.value,
            field_label=LIFECYCLE_LABELS[kind],
            old_value=summary if kind == LifecycleEvent.DELETED else None,
            new_value=summary if kind == LifecycleEvent.CREATED else None,
            changed_at=self.clock(),
        )

        (stored,) = self.store.append([entry])

        logger.info(
            "Lifecycle event written",
            record_id=record_id,
            actor_id=actor.id,
            lifecycle_event=kind.value,
        )
        return stored


class AuditLogReader:
    """Reads a record's audit trail, oldest first."""

    def __init__(self, store: AuditStore):
        self.store = store

    def read(self, record_id: str) -> List[AuditLogEntry]:
        """Full history ordered by changed_at, ties broken by insertion order."""
        return self.store.list_for_record(record_id)

    def summary(self, record_id: str) -> dict:
        """Counts of entries by kind for a record."""
        entries = self.read(record_id)
        action_counts = Counter(e.action for e in entries)
        return {
            "total_entries": len(entries),
            "action_counts": dict(action_counts),
            "actors": sorted({e.actor_label for e in entries}),
            "last_changed_at": entries[-1].changed_at.isoformat() if entries else None,
        }
