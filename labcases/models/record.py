"""Medical record models for the lab case dashboard."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any
from uuid import uuid4

from ..exceptions import RecordValidationError
from .base import as_utc, utc_now
from .enums import PaymentMethod

PAYMENT_SLOTS = 4

# Human readable labels used in the audit trail
FIELD_LABELS: Dict[str, str] = {
    "code": "Código",
    "patient_name": "Nombre",
    "patient_id_number": "Cédula",
    "exam_type": "Tipo de Examen",
    "origin": "Origen",
    "treating_doctor": "Doctor Tratante",
    "sample_type": "Tipo de Muestra",
    "number_of_samples": "Número de Muestras",
    "branch": "Sucursal",
    "date": "Fecha",
    "total_amount": "Monto Total",
    "exchange_rate": "Tasa de Cambio",
    "comments": "Comentarios",
    "diagnosis": "Diagnóstico",
}
for _slot in range(1, PAYMENT_SLOTS + 1):
    FIELD_LABELS[f"payment_method_{_slot}"] = f"Método de Pago {_slot}"
    FIELD_LABELS[f"payment_amount_{_slot}"] = f"Monto de Pago {_slot}"
    FIELD_LABELS[f"payment_reference_{_slot}"] = f"Referencia de Pago {_slot}"

PAYMENT_FIELDS = frozenset(
    name for name in FIELD_LABELS if name.startswith("payment_")
)

# Fields managed by the store, never edited directly
BOOKKEEPING_FIELDS = frozenset({"id", "version", "created_at", "updated_at", "created_by"})

# Derived by reconciliation, never accepted as input
DERIVED_FIELDS = frozenset({"payment_status", "remaining"})


@dataclass(frozen=True)
class Actor:
    """Authenticated user performing a write, supplied by the auth layer."""
    id: str
    label: str

    def validate(self) -> None:
        if not self.id or not str(self.id).strip():
            raise RecordValidationError("Actor id is required for write operations")
        if not self.label or not str(self.label).strip():
            raise RecordValidationError("Actor label is required for write operations")


@dataclass
class PaymentEntry:
    """
    A single payment slot.

    A slot is empty when method is None; empty slots contribute nothing
    to reconciliation.
    """
    method: Optional[PaymentMethod] = None
    amount: Optional[Decimal] = None
    reference: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.method is None


@dataclass
class MedicalRecord:
    """
    A medical/billing case.

    total_amount is expressed in USD; exchange_rate is VES per USD,
    snapshotted when the record was created.
    """
    # Identity
    id: str = field(default_factory=lambda: str(uuid4()))
    code: Optional[str] = None

    # Patient
    patient_name: str = ""
    patient_id_number: Optional[str] = None

    # Case
    exam_type: str = ""
    origin: Optional[str] = None
    treating_doctor: Optional[str] = None
    sample_type: Optional[str] = None
    number_of_samples: int = 1
    branch: Optional[str] = None
    date: Optional[date] = None
    comments: Optional[str] = None
    diagnosis: Optional[str] = None

    # Billing
    total_amount: Decimal = Decimal("0")
    exchange_rate: Optional[Decimal] = None
    payments: List[PaymentEntry] = field(
        default_factory=lambda: [PaymentEntry() for _ in range(PAYMENT_SLOTS)]
    )

    # Bookkeeping
    version: int = 1
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def active_payments(self) -> List[PaymentEntry]:
        """Non-empty payment slots."""
        return [p for p in self.payments if not p.is_empty]

    def validate(self, max_payment_entries: int = PAYMENT_SLOTS) -> None:
        """Check data-model invariants, raising RecordValidationError."""
        errors = []

        if self.total_amount is None or self.total_amount <= 0:
            errors.append("total_amount must be greater than zero")

        if self.exchange_rate is not None and self.exchange_rate <= 0:
            errors.append("exchange_rate must be greater than zero")

        if len(self.payments) > PAYMENT_SLOTS:
            errors.append(f"a record has at most {PAYMENT_SLOTS} payment slots")

        active = self.active_payments
        if len(active) > max_payment_entries:
            errors.append(f"at most {max_payment_entries} payment entries are allowed")

        for slot, payment in enumerate(self.payments, start=1):
            if payment.is_empty:
                continue
            if payment.amount is None or payment.amount <= 0:
                errors.append(f"payment_amount_{slot} must be greater than zero")

        if errors:
            raise RecordValidationError(
                "; ".join(errors),
                details={"record_id": self.id, "errors": errors},
            )

    def to_fields(self) -> Dict[str, Any]:
        """Flatten the record to editable field values, payment slots included."""
        fields: Dict[str, Any] = {
            "code": self.code,
            "patient_name": self.patient_name,
            "patient_id_number": self.patient_id_number,
            "exam_type": self.exam_type,
            "origin": self.origin,
            "treating_doctor": self.treating_doctor,
            "sample_type": self.sample_type,
            "number_of_samples": self.number_of_samples,
            "branch": self.branch,
            "date": self.date,
            "comments": self.comments,
            "diagnosis": self.diagnosis,
            "total_amount": self.total_amount,
            "exchange_rate": self.exchange_rate,
        }
        for slot, payment in enumerate(self.payments, start=1):
            fields[f"payment_method_{slot}"] = payment.method
            fields[f"payment_amount_{slot}"] = payment.amount
            fields[f"payment_reference_{slot}"] = payment.reference
        return fields

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = {
            key: _serialize(value) for key, value in self.to_fields().items()
        }
        data.update({
            "id": self.id,
            "version": self.version,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        })
        return data

    @classmethod
    def from_fields(cls, fields: Dict[str, Any], strict: bool = False) -> "MedicalRecord":
        """
        Build a record from flat field values as produced by to_fields/to_dict.

        Stored rows are read leniently: an unrecognised payment method label
        leaves its slot empty. With strict=True it raises instead.
        """
        record = cls()
        if fields.get("id"):
            record.id = str(fields["id"])
        record.apply_fields(fields, strict=strict)
        if fields.get("version") is not None:
            record.version = int(fields["version"])
        if fields.get("created_by") is not None:
            record.created_by = fields["created_by"]
        for stamp in ("created_at", "updated_at"):
            value = fields.get(stamp)
            if isinstance(value, str):
                value = datetime.fromisoformat(value)
            if isinstance(value, datetime):
                setattr(record, stamp, as_utc(value))
        return record

    def apply_fields(self, fields: Dict[str, Any], strict: bool = False) -> None:
        """
        Apply editable field values in place; unknown keys are ignored.

        Raises RecordValidationError for values that cannot be coerced to
        the field's type. strict also rejects unrecognised payment method
        labels, which the write path must never turn into an empty slot.
        """
        from ..reconciliation.currency import parse_amount

        for key, value in fields.items():
            if key not in FIELD_LABELS:
                continue

            if key.startswith("payment_"):
                _, kind, slot = key.split("_")
                payment = self.payments[int(slot) - 1]
                if kind == "method":
                    payment.method = _coerce_method(key, value, strict)
                elif kind == "amount":
                    payment.amount = None if _is_blank(value) else parse_amount(value)
                else:
                    payment.reference = None if _is_blank(value) else str(value)
            elif key == "total_amount":
                self.total_amount = parse_amount(value)
            elif key == "exchange_rate":
                self.exchange_rate = None if _is_blank(value) else parse_amount(value)
            elif key == "number_of_samples":
                self.number_of_samples = _coerce_int(key, value, default=1)
            elif key == "date":
                self.date = _coerce_date(key, value)
            elif key in ("patient_name", "exam_type"):
                setattr(self, key, "" if value is None else str(value))
            else:
                setattr(self, key, None if _is_blank(value) else value)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _invalid(key: str, value: Any, expected: str) -> RecordValidationError:
    return RecordValidationError(
        f"{key} must be {expected}",
        details={"field": key, "value": str(value)},
    )


def _coerce_method(key: str, value: Any, strict: bool) -> Optional[PaymentMethod]:
    if _is_blank(value):
        return None
    if isinstance(value, PaymentMethod):
        return value

    from ..utils.method_matching import resolve_payment_method

    method = resolve_payment_method(str(value))
    if method is None and strict:
        raise _invalid(key, value, "a known payment method")
    return method


def _coerce_int(key: str, value: Any, default: int) -> int:
    if _is_blank(value):
        return default
    if isinstance(value, bool):
        raise _invalid(key, value, "an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise _invalid(key, value, "an integer")


def _coerce_date(key: str, value: Any) -> Optional[date]:
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise _invalid(key, value, "an ISO date (YYYY-MM-DD)")


def _serialize(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, PaymentMethod):
        return value.value
    return value
