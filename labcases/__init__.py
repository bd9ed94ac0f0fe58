"""Change tracking and payment reconciliation for clinical lab cases."""

from .exceptions import (
    ConflictError,
    ExchangeRateError,
    InvalidRateError,
    LabCasesError,
    RecordNotFoundError,
    RecordValidationError,
    StoreError,
)
from .models import (
    Actor,
    AuditLogEntry,
    Change,
    CorrectionContext,
    CorrectionResult,
    Currency,
    LifecycleEvent,
    MedicalRecord,
    PaymentEntry,
    PaymentMethod,
    PaymentStatus,
    ReconciliationResult,
)
from .reconciliation import correct, format_amount, parse_amount, reconcile
from .tracking import AuditLogReader, AuditLogWriter, diff

__version__ = "1.0.0"

__all__ = [
    # Operations
    "diff",
    "reconcile",
    "correct",
    "parse_amount",
    "format_amount",
    "AuditLogWriter",
    "AuditLogReader",
    # Models
    "Actor",
    "AuditLogEntry",
    "Change",
    "CorrectionContext",
    "CorrectionResult",
    "Currency",
    "LifecycleEvent",
    "MedicalRecord",
    "PaymentEntry",
    "PaymentMethod",
    "PaymentStatus",
    "ReconciliationResult",
    # Errors
    "LabCasesError",
    "InvalidRateError",
    "RecordValidationError",
    "RecordNotFoundError",
    "ConflictError",
    "StoreError",
    "ExchangeRateError",
]
