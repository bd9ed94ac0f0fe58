"""
Case Service.

Orchestrates record writes: change detection, validation, the versioned
store update, the audit trail and payment reconciliation.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from ..config import get_settings
from ..models.audit import AuditLogEntry, Change
from ..models.enums import LifecycleEvent
from ..models.reconciliation import ReconciliationResult
from ..models.record import (
    Actor,
    BOOKKEEPING_FIELDS,
    DERIVED_FIELDS,
    FIELD_LABELS,
    PAYMENT_FIELDS,
    MedicalRecord,
)
from ..exceptions import ConflictError
from ..reconciliation.engine import PaymentReconciler
from ..storage.base import AuditStore, RecordStore
from ..tracking.audit_log import AuditLogReader, AuditLogWriter
from ..tracking.diff import ChangeDetector

logger = structlog.get_logger()

# Fields whose change requires the payment state to be recomputed
RECONCILIATION_FIELDS = PAYMENT_FIELDS | {"total_amount", "exchange_rate"}


@dataclass
class UpdateOutcome:
    """Result of an edit submission."""
    record: MedicalRecord
    changes: List[Change] = field(default_factory=list)
    payment: Optional[ReconciliationResult] = None

    @property
    def changed(self) -> bool:
        return bool(self.changes)


class CaseService:
    """
    Write path for medical records.

    An update is persisted in two steps: the record under its version
    token, then one audit entry per changed field. Reconciliation is
    recomputed after the write and never stored.
    """

    def __init__(
        self,
        record_store: RecordStore,
        audit_store: AuditStore,
        reconciler: Optional[PaymentReconciler] = None,
        detector: Optional[ChangeDetector] = None,
    ):
        self.settings = get_settings()
        self.records = record_store
        self.writer = AuditLogWriter(audit_store)
        self.reader = AuditLogReader(audit_store)
        self.reconciler = reconciler or PaymentReconciler()
        self.detector = detector or ChangeDetector()

    def create_record(self, actor: Actor, fields: Dict[str, Any]) -> MedicalRecord:
        """Validate and persist a new record, then log its creation."""
        actor.validate()

        record = MedicalRecord.from_fields(_editable(fields), strict=True)
        record.version = 1
        record.created_by = actor.id
        record.validate(self.settings.max_payment_entries)

        stored = self.records.create(record)
        self.writer.write_lifecycle_event(
            stored.id,
            actor,
            LifecycleEvent.CREATED,
            summary=_case_summary(stored),
        )

        logger.info("Record created", record_id=stored.id, actor_id=actor.id)
        return stored

    def get_record(self, record_id: str) -> MedicalRecord:
        return self.records.get(record_id)

    def update_record(
        self,
        record_id: str,
        actor: Actor,
        proposed: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> UpdateOutcome:
        """
        Apply an edit submission.

        Args:
            record_id: Record to edit
            actor: Authenticated user making the edit
            proposed: Edited field values; bookkeeping and derived keys are ignored
            expected_version: Version the caller last read, if known

        Returns:
            UpdateOutcome with the stored record and the persisted change set
        """
        actor.validate()
        current = self.records.get(record_id)

        if expected_version is not None and expected_version != current.version:
            raise ConflictError(record_id, expected_version, current.version)

        editable = _editable(proposed)
        ignored = [key for key in editable if key not in FIELD_LABELS]
        if ignored:
            logger.debug("Unknown fields ignored", record_id=record_id, fields=ignored)

        # Coerce the proposal through the record so the diff compares typed values
        merged = copy.deepcopy(current)
        merged.apply_fields(editable, strict=True)
        normalized = merged.to_fields()

        changes = self.detector.diff(
            current.to_fields(),
            {key: normalized[key] for key in editable if key in FIELD_LABELS},
            FIELD_LABELS,
        )
        if not changes:
            logger.info("No changes detected", record_id=record_id)
            return UpdateOutcome(record=current)

        merged.validate(self.settings.max_payment_entries)
        values = {change.field: change.new_value for change in changes}

        updated = self.records.update(record_id, values, current.version)
        self.writer.write(record_id, actor, changes)

        payment = None
        if any(change.field in RECONCILIATION_FIELDS for change in changes):
            payment = self.payment_summary(updated)

        logger.info(
            "Record updated",
            record_id=record_id,
            actor_id=actor.id,
            version=updated.version,
            changes=len(changes),
        )
        return UpdateOutcome(record=updated, changes=changes, payment=payment)

    def delete_record(self, record_id: str, actor: Actor) -> None:
        """Delete a record and log a deleted_record entry."""
        actor.validate()
        current = self.records.get(record_id)

        self.records.delete(record_id)
        self.writer.write_lifecycle_event(
            record_id,
            actor,
            LifecycleEvent.DELETED,
            summary=_case_summary(current),
        )

        logger.info("Record deleted", record_id=record_id, actor_id=actor.id)

    def history(self, record_id: str) -> List[AuditLogEntry]:
        return self.reader.read(record_id)

    def payment_summary(self, record: MedicalRecord) -> ReconciliationResult:
        """Reconcile a record against its own snapshot rate."""
        return self.reconciler.reconcile(
            record.total_amount,
            record.payments,
            record.exchange_rate,
        )


def _editable(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: value for key, value in fields.items()
        if key not in BOOKKEEPING_FIELDS and key not in DERIVED_FIELDS
    }


def _case_summary(record: MedicalRecord) -> str:
    code = record.code or record.id
    if record.patient_name:
        return f"Caso {code} - {record.patient_name}"
    return f"Caso {code}"
