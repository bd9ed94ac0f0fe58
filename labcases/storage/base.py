"""Store interfaces consumed by the core."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from ..models.audit import AuditLogEntry
from ..models.record import MedicalRecord


class RecordStore(ABC):
    """Keyed record store with version-checked updates."""

    @abstractmethod
    def get(self, record_id: str) -> MedicalRecord:
        """Return the record or raise RecordNotFoundError."""

    @abstractmethod
    def create(self, record: MedicalRecord) -> MedicalRecord:
        """Persist a new record."""

    @abstractmethod
    def update(
        self,
        record_id: str,
        fields: Dict[str, Any],
        expected_version: int,
    ) -> MedicalRecord:
        """
        Apply field values and bump the version.

        Raises ConflictError when the stored version differs from
        expected_version.
        """

    @abstractmethod
    def delete(self, record_id: str) -> None:
        """Remove the record or raise RecordNotFoundError."""


class AuditStore(ABC):
    """
    Append-only audit store.

    There is intentionally no update or delete operation.
    """

    @abstractmethod
    def append(self, entries: Sequence[AuditLogEntry]) -> List[AuditLogEntry]:
        """
        Persist all entries atomically, or none of them.

        Returns the stored entries with their insertion sequence assigned.
        """

    @abstractmethod
    def list_for_record(self, record_id: str) -> List[AuditLogEntry]:
        """All entries of a record ordered by (changed_at, sequence)."""
