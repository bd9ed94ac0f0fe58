"""
Payment Reconciliation Engine.

Converts up to four heterogeneous payment entries to the reference
currency and derives the outstanding balance and payment status of a
record. The result is always recomputed, never read back from storage:
stored payment fields can change without a matching status update.
"""

from decimal import Decimal
from typing import Any, Optional, Sequence

import structlog

from ..config import get_settings
from ..exceptions import InvalidRateError, RecordValidationError
from ..models.enums import PaymentStatus
from ..models.reconciliation import (
    CorrectionContext,
    ReconciliationResult,
    SlotCorrection,
)
from .auto_correction import DecimalAutoCorrector
from .currency import ZERO, parse_amount, quantize_money, to_reference

logger = structlog.get_logger()


class PaymentReconciler:
    """
    Derives total paid, remaining balance and status for a record.

    Pure and side-effect free, so it is safe to call on every keystroke:
    1. Auto-correct each local-currency amount (advisory)
    2. Convert to USD with the record's rate
    3. Sum, compare against the total within the money tolerance
    """

    def __init__(
        self,
        corrector: Optional[DecimalAutoCorrector] = None,
        auto_correct: Optional[bool] = None,
        tolerance: Optional[Decimal] = None,
    ):
        self.settings = get_settings()
        self.corrector = corrector or DecimalAutoCorrector()
        self.auto_correct = self.settings.autocorrect_enabled if auto_correct is None else auto_correct
        self.tolerance = tolerance if tolerance is not None else self.settings.money_tolerance
        self.max_entries = self.settings.max_payment_entries

    def reconcile(
        self,
        total_amount: Any,
        entries: Sequence[Any],
        rate: Optional[Decimal] = None,
    ) -> ReconciliationResult:
        """
        Reconcile payment entries against the record total.

        Args:
            total_amount: Record total in USD, must be > 0
            entries: Payment slots (PaymentEntry-like: method, amount)
            rate: Exchange rate (VES per USD); may be None

        Returns:
            ReconciliationResult with status, balance and any corrections
        """
        total = parse_amount(total_amount)
        if total <= 0:
            raise RecordValidationError(
                "total_amount must be greater than zero",
                details={"total_amount": str(total_amount)},
            )

        active = [
            (slot, entry)
            for slot, entry in enumerate(entries, start=1)
            if getattr(entry, "method", None) is not None
        ]
        if len(active) > self.max_entries:
            raise RecordValidationError(
                f"at most {self.max_entries} payment entries are allowed",
                details={"entries": len(active)},
            )

        paid = ZERO
        corrections = []
        warnings = []
        rate_unavailable = False

        for slot, entry in active:
            method = entry.method
            amount = parse_amount(entry.amount)
            if amount <= 0:
                warnings.append(f"Pago {slot}: monto vacío o no válido, no se contabiliza")
                continue

            if self.auto_correct and method.is_local:
                context = CorrectionContext(
                    total_amount=total,
                    remaining=max(ZERO, total - paid),
                )
                correction = self.corrector.correct(amount, method, rate, context)
                if correction.was_corrected:
                    corrections.append(SlotCorrection(slot=slot, method=method, correction=correction))
                    warnings.append(f"Pago {slot}: {correction.reason}")
                    amount = correction.corrected_amount

            try:
                paid += to_reference(amount, method, rate)
            except InvalidRateError:
                rate_unavailable = True
                warnings.append(
                    f"Pago {slot}: tasa de cambio no disponible, "
                    f"{method.value} no se convierte a USD"
                )

        total_paid = quantize_money(paid)
        difference = total - total_paid

        if abs(difference) < self.tolerance or difference <= 0:
            remaining = ZERO
        else:
            remaining = quantize_money(difference)

        overpaid = (total_paid - total) > self.tolerance

        if remaining == ZERO:
            status = PaymentStatus.COMPLETED
        elif total_paid < self.tolerance:
            status = PaymentStatus.PENDING
        else:
            status = PaymentStatus.INCOMPLETE

        if rate_unavailable:
            logger.warning(
                "Reconciled without exchange rate",
                total_amount=str(total),
                skipped=sum(1 for _, e in active if e.method.is_local),
            )

        return ReconciliationResult(
            total_amount=total,
            total_paid=total_paid,
            remaining=remaining,
            status=status,
            overpaid=overpaid,
            rate_unavailable=rate_unavailable,
            corrections=corrections,
            warnings=warnings,
        )


def reconcile(
    total_amount: Any,
    entries: Sequence[Any],
    rate: Optional[Decimal] = None,
) -> ReconciliationResult:
    """Reconcile with the configured tolerance and auto-correction settings."""
    return PaymentReconciler().reconcile(total_amount, entries, rate)
