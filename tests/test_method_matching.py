"""
Tests for payment method label resolution.
"""

import pytest

from labcases.exceptions import RecordValidationError
from labcases.models import MedicalRecord, PaymentMethod
from labcases.utils.method_matching import resolve_payment_method


class TestResolvePaymentMethod:
    """Test suite for legacy label resolution."""

    @pytest.mark.parametrize("method", list(PaymentMethod))
    def test_exact_labels(self, method):
        assert resolve_payment_method(method.value) == method

    @pytest.mark.parametrize("label,expected", [
        ("Pago movil", PaymentMethod.MOBILE_PAYMENT),
        ("PAGO MÓVIL", PaymentMethod.MOBILE_PAYMENT),
        ("  zelle ", PaymentMethod.ZELLE),
        ("Dolares en efectivo", PaymentMethod.USD_CASH),
        ("punto de venta", PaymentMethod.POINT_OF_SALE),
    ])
    def test_accent_and_case_insensitive(self, label, expected):
        assert resolve_payment_method(label) == expected

    @pytest.mark.parametrize("label,expected", [
        ("Pago m√≥vil", PaymentMethod.MOBILE_PAYMENT),
        ("D√≥lares en efectivo", PaymentMethod.USD_CASH),
        ("Punto de vneta", PaymentMethod.POINT_OF_SALE),
    ])
    def test_damaged_labels_resolve_by_similarity(self, label, expected):
        assert resolve_payment_method(label) == expected

    @pytest.mark.parametrize("label", [None, "", "   ", "Criptomonedas", "Cheque"])
    def test_unknown_labels(self, label):
        assert resolve_payment_method(label) is None

    def test_record_fields_use_resolution(self):
        record = MedicalRecord.from_fields({
            "total_amount": "100",
            "payment_method_1": "Pago m√≥vil",
            "payment_amount_1": "3600",
            "payment_method_2": "Transferencia marciana",
            "payment_amount_2": "10",
        })

        assert record.payments[0].method == PaymentMethod.MOBILE_PAYMENT
        assert record.payments[1].is_empty

    def test_strict_fields_reject_unknown_labels(self):
        fields = {
            "total_amount": "100",
            "payment_method_1": "Criptomonedas",
            "payment_amount_1": "10",
        }

        with pytest.raises(RecordValidationError) as exc_info:
            MedicalRecord.from_fields(fields, strict=True)

        assert exc_info.value.details["field"] == "payment_method_1"
        assert exc_info.value.details["value"] == "Criptomonedas"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
