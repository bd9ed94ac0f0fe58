"""Enumerations for the lab case payment and audit core."""

from enum import Enum


class Currency(str, Enum):
    """
    Currencies a payment can be denominated in.

    USD: Reference currency, total_amount and all reconciliation math
    VES: Local currency (bolivares), converted with the record's exchange rate
    """
    USD = "USD"
    VES = "VES"


class PaymentMethod(str, Enum):
    """
    Payment method of a payment slot.

    Each method is bound to exactly one currency; the binding is authoritative
    and never inferred from the amount.
    """
    POINT_OF_SALE = "Punto de venta"
    USD_CASH = "Dólares en efectivo"
    ZELLE = "Zelle"
    MOBILE_PAYMENT = "Pago móvil"
    VES_CASH = "Bs en efectivo"

    @property
    def currency(self) -> Currency:
        return _METHOD_CURRENCY[self]

    @property
    def is_local(self) -> bool:
        return self.currency == Currency.VES


_METHOD_CURRENCY = {
    PaymentMethod.POINT_OF_SALE: Currency.VES,
    PaymentMethod.USD_CASH: Currency.USD,
    PaymentMethod.ZELLE: Currency.USD,
    PaymentMethod.MOBILE_PAYMENT: Currency.VES,
    PaymentMethod.VES_CASH: Currency.VES,
}


class PaymentStatus(str, Enum):
    """Derived payment status of a record."""
    PENDING = "Pendiente"        # Nothing paid yet
    INCOMPLETE = "Incompleto"    # Partially paid
    COMPLETED = "Completado"     # Remaining balance within tolerance of zero


class LifecycleEvent(str, Enum):
    """
    Lifecycle events recorded in the audit trail.

    The value is the reserved field_name stored on the sentinel entry.
    """
    CREATED = "created_record"
    DELETED = "deleted_record"
