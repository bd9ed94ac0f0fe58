"""
Decimal auto-correction for local-currency payment amounts.

Bolivar amounts are sometimes typed without their cents separator,
producing a value one or two orders of magnitude too large. When the
converted amount is wildly out of proportion with the record total, this
heuristic proposes dividing the raw amount by 10 or 100.

Corrections are advisory: the original amount is always kept and the
caller must surface the reason to the user.
"""

from decimal import Decimal
from typing import List, Optional

import structlog

from ..config import get_settings
from ..exceptions import InvalidRateError
from ..models.enums import PaymentMethod
from ..models.reconciliation import CorrectionContext, CorrectionResult
from .currency import ZERO, coerce_rate, format_amount, quantize_money

logger = structlog.get_logger()


class DecimalAutoCorrector:
    """
    Detects local-currency amounts with a misplaced decimal point.

    An amount is suspicious when its USD value is at least `threshold`
    times the record total. Each divisor is tried on the raw amount; the
    candidates that land inside [0, total_amount] are plausible, and the
    one closest to the remaining balance wins (smaller divisor on ties).
    """

    def __init__(
        self,
        threshold: Optional[Decimal] = None,
        divisors: Optional[List[int]] = None,
    ):
        self.settings = get_settings()
        self.threshold = Decimal(threshold) if threshold is not None else self.settings.autocorrect_threshold
        self.divisors = sorted(divisors or self.settings.autocorrect_divisors)

    def correct(
        self,
        amount: Optional[Decimal],
        method: Optional[PaymentMethod],
        rate: Optional[Decimal],
        context: CorrectionContext,
    ) -> CorrectionResult:
        """
        Decide whether a payment amount is a decimal-placement typo.

        Args:
            amount: Raw amount as entered, in the method's currency
            method: Payment method, which fixes the currency
            rate: Exchange rate (VES per USD), may be None
            context: Record total and remaining balance in USD

        Returns:
            CorrectionResult, unchanged unless a plausible correction exists
        """
        unchanged = CorrectionResult(original_amount=amount, corrected_amount=amount)

        if method is None or not method.is_local:
            return unchanged
        if amount is None or amount <= 0:
            return unchanged
        if context.total_amount is None or context.total_amount <= 0:
            return unchanged

        try:
            rate_value = coerce_rate(rate)
        except InvalidRateError:
            return unchanged

        converted = amount / rate_value
        if converted < context.total_amount * self.threshold:
            return unchanged

        best = None
        for divisor in self.divisors:
            candidate = amount / divisor
            candidate_usd = candidate / rate_value
            if not (ZERO <= candidate_usd <= context.total_amount):
                continue
            distance = abs(candidate_usd - context.remaining)
            if best is None or distance < best[0]:
                best = (distance, divisor, candidate, candidate_usd)

        if best is None:
            logger.debug(
                "Suspicious amount left uncorrected",
                amount=str(amount),
                method=method.value,
                converted=str(quantize_money(converted)),
            )
            return unchanged

        _, divisor, candidate, candidate_usd = best
        reason = (
            f"Monto original {format_amount(amount)} Bs "
            f"({format_amount(converted)} USD) parecía muy alto, corregido a "
            f"{format_amount(candidate)} Bs ({format_amount(candidate_usd)} USD)"
        )

        logger.info(
            "Payment amount auto-corrected",
            method=method.value,
            original_amount=str(amount),
            corrected_amount=str(candidate),
            divisor=divisor,
        )

        return CorrectionResult(
            original_amount=amount,
            corrected_amount=candidate,
            was_corrected=True,
            reason=reason,
            divisor=divisor,
        )


def correct(
    amount: Optional[Decimal],
    method: Optional[PaymentMethod],
    rate: Optional[Decimal],
    context: CorrectionContext,
) -> CorrectionResult:
    """Run the heuristic with the configured threshold and divisors."""
    return DecimalAutoCorrector().correct(amount, method, rate, context)
