"""
Tests for the decimal auto-correction heuristic.
"""

import pytest
from decimal import Decimal

from labcases.models import CorrectionContext, PaymentMethod
from labcases.reconciliation.auto_correction import DecimalAutoCorrector, correct


@pytest.fixture
def corrector():
    return DecimalAutoCorrector(threshold=Decimal("10"), divisors=[10, 100])


@pytest.fixture
def full_balance():
    return CorrectionContext(total_amount=Decimal("100"), remaining=Decimal("100"))


class TestDecimalAutoCorrector:
    """Test suite for decimal auto-correction."""

    def test_missing_cents_separator_is_corrected(self, corrector, full_balance):
        """360000 Bs at 36 Bs/USD against a 100 USD total was meant as 3600 Bs."""
        result = corrector.correct(
            Decimal("360000"), PaymentMethod.MOBILE_PAYMENT, Decimal("36"), full_balance
        )

        assert result.was_corrected
        assert result.divisor == 100
        assert result.original_amount == Decimal("360000")
        assert result.corrected_amount == Decimal("3600")
        assert abs(result.corrected_amount / Decimal("36") - Decimal("100")) < Decimal("0.01")
        assert "360.000,00" in result.reason
        assert "3.600,00" in result.reason

    def test_candidate_closest_to_remaining_wins(self, corrector):
        """Both divisors are plausible; the remaining balance decides."""
        amount = Decimal("36000")
        rate = Decimal("36")

        owed_all = CorrectionContext(total_amount=Decimal("100"), remaining=Decimal("100"))
        owed_little = CorrectionContext(total_amount=Decimal("100"), remaining=Decimal("10"))

        assert corrector.correct(amount, PaymentMethod.VES_CASH, rate, owed_all).divisor == 10
        assert corrector.correct(amount, PaymentMethod.VES_CASH, rate, owed_little).divisor == 100

    def test_plausible_amount_is_unchanged(self, corrector, full_balance):
        result = corrector.correct(
            Decimal("7200"), PaymentMethod.POINT_OF_SALE, Decimal("36"), full_balance
        )

        assert not result.was_corrected
        assert result.corrected_amount == Decimal("7200")
        assert result.reason is None

    def test_usd_methods_are_never_corrected(self, corrector, full_balance):
        result = corrector.correct(
            Decimal("10000"), PaymentMethod.ZELLE, Decimal("36"), full_balance
        )

        assert not result.was_corrected
        assert result.corrected_amount == Decimal("10000")

    @pytest.mark.parametrize("rate", [None, Decimal("0"), Decimal("-36")])
    def test_no_usable_rate_leaves_amount_unchanged(self, corrector, full_balance, rate):
        result = corrector.correct(
            Decimal("360000"), PaymentMethod.MOBILE_PAYMENT, rate, full_balance
        )

        assert not result.was_corrected
        assert result.corrected_amount == Decimal("360000")

    def test_no_plausible_candidate(self, corrector, full_balance):
        """Even divided by 100 the amount exceeds the total."""
        result = corrector.correct(
            Decimal("3600000"), PaymentMethod.MOBILE_PAYMENT, Decimal("36"), full_balance
        )

        assert not result.was_corrected

    @pytest.mark.parametrize("amount", [None, Decimal("0"), Decimal("-5")])
    def test_empty_amounts_are_unchanged(self, corrector, full_balance, amount):
        result = corrector.correct(amount, PaymentMethod.MOBILE_PAYMENT, Decimal("36"), full_balance)

        assert not result.was_corrected
        assert result.corrected_amount == amount

    def test_module_function_uses_configured_defaults(self, full_balance):
        result = correct(Decimal("360000"), PaymentMethod.MOBILE_PAYMENT, Decimal("36"), full_balance)

        assert result.was_corrected
        assert result.corrected_amount == Decimal("3600")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
