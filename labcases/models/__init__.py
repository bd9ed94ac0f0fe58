"""Data models for the lab case payment and audit core."""

from .enums import (
    Currency,
    PaymentMethod,
    PaymentStatus,
    LifecycleEvent,
)
from .record import (
    Actor,
    PaymentEntry,
    MedicalRecord,
    FIELD_LABELS,
    PAYMENT_FIELDS,
    PAYMENT_SLOTS,
    BOOKKEEPING_FIELDS,
    DERIVED_FIELDS,
)
from .audit import (
    Change,
    AuditLogEntry,
)
from .reconciliation import (
    CorrectionContext,
    CorrectionResult,
    SlotCorrection,
    ReconciliationResult,
)

__all__ = [
    # Enums
    "Currency",
    "PaymentMethod",
    "PaymentStatus",
    "LifecycleEvent",
    # Records
    "Actor",
    "PaymentEntry",
    "MedicalRecord",
    "FIELD_LABELS",
    "PAYMENT_FIELDS",
    "PAYMENT_SLOTS",
    "BOOKKEEPING_FIELDS",
    "DERIVED_FIELDS",
    # Audit
    "Change",
    "AuditLogEntry",
    # Reconciliation
    "CorrectionContext",
    "CorrectionResult",
    "SlotCorrection",
    "ReconciliationResult",
]
