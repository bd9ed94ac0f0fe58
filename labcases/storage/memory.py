"""In-memory stores, used by the API in development and by tests."""

import copy
import threading
from dataclasses import replace
from typing import Any, Dict, List, Sequence

import structlog

from ..exceptions import ConflictError, RecordNotFoundError, StoreError
from ..models.audit import AuditLogEntry
from ..models.base import utc_now
from ..models.record import MedicalRecord
from .base import AuditStore, RecordStore

logger = structlog.get_logger()


class InMemoryRecordStore(RecordStore):
    """Records kept in a dict; every read returns a private copy."""

    def __init__(self):
        self._records: Dict[str, MedicalRecord] = {}
        self._lock = threading.Lock()

    def get(self, record_id: str) -> MedicalRecord:
        with self._lock:
            if record_id not in self._records:
                raise RecordNotFoundError(record_id)
            return copy.deepcopy(self._records[record_id])

    def create(self, record: MedicalRecord) -> MedicalRecord:
        with self._lock:
            if record.id in self._records:
                raise StoreError(f"Record already exists: {record.id}", details={"record_id": record.id})
            self._records[record.id] = copy.deepcopy(record)
            return copy.deepcopy(record)

    def update(
        self,
        record_id: str,
        fields: Dict[str, Any],
        expected_version: int,
    ) -> MedicalRecord:
        with self._lock:
            if record_id not in self._records:
                raise RecordNotFoundError(record_id)

            stored = self._records[record_id]
            if stored.version != expected_version:
                raise ConflictError(record_id, expected_version, stored.version)

            updated = copy.deepcopy(stored)
            updated.apply_fields(fields)
            updated.version = stored.version + 1
            updated.updated_at = utc_now()
            self._records[record_id] = updated
            return copy.deepcopy(updated)

    def delete(self, record_id: str) -> None:
        with self._lock:
            if record_id not in self._records:
                raise RecordNotFoundError(record_id)
            del self._records[record_id]

    def __len__(self) -> int:
        return len(self._records)


class InMemoryAuditStore(AuditStore):
    """Append-only list of audit entries."""

    def __init__(self):
        self._entries: List[AuditLogEntry] = []
        self._sequence = 0
        self._lock = threading.Lock()

    def append(self, entries: Sequence[AuditLogEntry]) -> List[AuditLogEntry]:
        with self._lock:
            stored = []
            sequence = self._sequence
            for entry in entries:
                sequence += 1
                stored.append(replace(entry, sequence=sequence))

            # Commit the whole batch at once
            self._entries.extend(stored)
            self._sequence = sequence

        logger.debug("Audit entries appended", count=len(stored))
        return stored

    def list_for_record(self, record_id: str) -> List[AuditLogEntry]:
        with self._lock:
            entries = [e for e in self._entries if e.record_id == record_id]
        return sorted(entries, key=lambda e: (e.changed_at, e.sequence))

    def __len__(self) -> int:
        return len(self._entries)
