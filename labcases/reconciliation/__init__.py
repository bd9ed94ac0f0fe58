"""Currency normalization, auto-correction and payment reconciliation."""

from .currency import (
    parse_amount,
    format_amount,
    quantize_money,
    to_reference,
    to_local,
)
from .auto_correction import DecimalAutoCorrector, correct
from .engine import PaymentReconciler, reconcile

__all__ = [
    "parse_amount",
    "format_amount",
    "quantize_money",
    "to_reference",
    "to_local",
    "DecimalAutoCorrector",
    "correct",
    "PaymentReconciler",
    "reconcile",
]
