"""Change set and audit trail models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from .base import utc_now
from .enums import LifecycleEvent


@dataclass(frozen=True)
class Change:
    """A single differing field between a persisted and a proposed state."""
    field: str
    field_label: str
    old_value: Any = None
    new_value: Any = None


@dataclass(frozen=True)
class AuditLogEntry:
    """
    An immutable entry in a record's audit trail.

    Values are stored in canonical string form. Lifecycle events use the
    reserved field names of LifecycleEvent.
    """
    record_id: str
    actor_id: str
    actor_label: str
    field_name: str
    field_label: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid4()))
    changed_at: datetime = field(default_factory=utc_now)
    sequence: int = 0  # Insertion order, assigned by the audit store

    @property
    def is_lifecycle_event(self) -> bool:
        return self.field_name in (LifecycleEvent.CREATED.value, LifecycleEvent.DELETED.value)

    @property
    def action(self) -> str:
        """Kind of entry as shown in the history view."""
        if self.field_name == LifecycleEvent.CREATED.value:
            return "created"
        if self.field_name == LifecycleEvent.DELETED.value:
            return "deleted"
        return "edited"

    def to_dict(self):
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "record_id": self.record_id,
            "actor_id": self.actor_id,
            "actor_label": self.actor_label,
            "field_name": self.field_name,
            "field_label": self.field_label,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "changed_at": self.changed_at.isoformat(),
            "action": self.action,
        }
