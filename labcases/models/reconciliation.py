"""Payment reconciliation result models."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, List

from .enums import PaymentMethod, PaymentStatus


@dataclass(frozen=True)
class CorrectionContext:
    """Record-level figures the auto-correction heuristic judges plausibility against."""
    total_amount: Decimal
    remaining: Decimal


@dataclass(frozen=True)
class CorrectionResult:
    """
    Outcome of the decimal auto-correction heuristic.

    The original amount is always kept so a correction can be re-confirmed
    from the raw stored value.
    """
    original_amount: Optional[Decimal]
    corrected_amount: Optional[Decimal]
    was_corrected: bool = False
    reason: Optional[str] = None
    divisor: Optional[int] = None


@dataclass
class SlotCorrection:
    """A correction applied to one payment slot during reconciliation."""
    slot: int
    method: PaymentMethod
    correction: CorrectionResult


@dataclass
class ReconciliationResult:
    """Financial state of a record derived from its payment entries."""
    total_amount: Decimal
    total_paid: Decimal
    remaining: Decimal
    status: PaymentStatus
    overpaid: bool = False
    rate_unavailable: bool = False
    corrections: List[SlotCorrection] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.status == PaymentStatus.COMPLETED

    @property
    def percentage_paid(self) -> float:
        """Percentage of the total amount that has been paid."""
        if self.total_amount == 0:
            return 0.0
        return float(self.total_paid / self.total_amount * 100)

    def to_dict(self):
        """Convert to dictionary for serialization."""
        return {
            "total_amount": str(self.total_amount),
            "total_paid": str(self.total_paid),
            "remaining": str(self.remaining),
            "status": self.status.value,
            "overpaid": self.overpaid,
            "rate_unavailable": self.rate_unavailable,
            "corrections": [
                {
                    "slot": c.slot,
                    "method": c.method.value,
                    "original_amount": str(c.correction.original_amount),
                    "corrected_amount": str(c.correction.corrected_amount),
                    "reason": c.correction.reason,
                }
                for c in self.corrections
            ],
            "warnings": self.warnings,
        }
