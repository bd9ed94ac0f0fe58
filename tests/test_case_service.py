"""
Tests for the case service write path.
"""

import pytest
from decimal import Decimal

from labcases.exceptions import (
    ConflictError,
    RecordNotFoundError,
    RecordValidationError,
    StoreError,
)
from labcases.models import Actor, PaymentMethod, PaymentStatus
from labcases.services import CaseService
from labcases.storage import InMemoryAuditStore, InMemoryRecordStore


class FailingAuditStore(InMemoryAuditStore):
    def append(self, entries):
        raise StoreError("audit store unavailable")


@pytest.fixture
def audit_store():
    return InMemoryAuditStore()


@pytest.fixture
def service(audit_store):
    return CaseService(InMemoryRecordStore(), audit_store)


@pytest.fixture
def record(service, actor, record_fields):
    return service.create_record(actor, record_fields)


class TestCreateAndDelete:
    """Lifecycle events around record creation and deletion."""

    def test_create_logs_created_record(self, service, record, actor):
        history = service.history(record.id)

        assert record.version == 1
        assert record.created_by == actor.id
        assert len(history) == 1
        assert history[0].field_name == "created_record"
        assert history[0].new_value == "Caso C-0001 - María Pérez"

    def test_create_ignores_bookkeeping_keys(self, service, actor, record_fields):
        fields = dict(record_fields, id="forced-id", version=7, payment_status="Completado")
        created = service.create_record(actor, fields)

        assert created.id != "forced-id"
        assert created.version == 1

    def test_create_validates(self, service, actor, record_fields, audit_store):
        with pytest.raises(RecordValidationError):
            service.create_record(actor, dict(record_fields, total_amount="0"))
        assert len(audit_store) == 0

    def test_create_requires_actor(self, service, record_fields):
        with pytest.raises(RecordValidationError):
            service.create_record(Actor("", ""), record_fields)

    def test_delete_logs_deleted_record(self, service, record, other_actor):
        service.delete_record(record.id, other_actor)

        with pytest.raises(RecordNotFoundError):
            service.get_record(record.id)

        history = service.history(record.id)
        assert [e.action for e in history] == ["created", "deleted"]
        assert history[-1].actor_id == other_actor.id
        assert history[-1].old_value == "Caso C-0001 - María Pérez"

    def test_delete_missing_record(self, service, actor):
        with pytest.raises(RecordNotFoundError):
            service.delete_record("missing", actor)


class TestUpdateRecord:
    """Edit submissions: diff, versioned write, audit and reconciliation."""

    def test_no_op_edit_writes_nothing(self, service, record, actor, audit_store):
        outcome = service.update_record(
            record.id, actor, {"patient_name": "María Pérez", "total_amount": "100.00", "comments": ""}
        )

        assert not outcome.changed
        assert outcome.record.version == 1
        assert len(audit_store) == 1

    def test_changed_fields_are_persisted_and_audited(self, service, record, other_actor):
        outcome = service.update_record(
            record.id,
            other_actor,
            {"patient_name": "María Pérez", "comments": "urgente", "branch": "CAPITAL"},
        )

        assert [c.field for c in outcome.changes] == ["comments", "branch"]
        assert outcome.record.version == 2
        assert outcome.record.comments == "urgente"
        assert outcome.payment is None

        edits = [e for e in service.history(record.id) if e.action == "edited"]
        assert [(e.field_name, e.field_label, e.old_value, e.new_value) for e in edits] == [
            ("comments", "Comentarios", None, "urgente"),
            ("branch", "Sucursal", "STX", "CAPITAL"),
        ]
        assert all(e.actor_label == "luis@lab.com" for e in edits)

    def test_bookkeeping_and_derived_keys_are_ignored(self, service, record, actor):
        outcome = service.update_record(
            record.id,
            actor,
            {"version": 99, "updated_at": "2030-01-01", "payment_status": "Completado", "remaining": 0},
        )

        assert not outcome.changed
        assert outcome.record.version == 1

    def test_payment_change_triggers_reconciliation(self, service, record, actor):
        outcome = service.update_record(record.id, actor, {
            "payment_method_1": "Pago móvil",
            "payment_amount_1": "1.800,00",
            "payment_reference_1": "0412-555",
        })

        assert outcome.record.payments[0].method == PaymentMethod.MOBILE_PAYMENT
        assert outcome.record.payments[0].amount == Decimal("1800.00")
        assert outcome.payment is not None
        assert outcome.payment.total_paid == Decimal("50.00")
        assert outcome.payment.status == PaymentStatus.INCOMPLETE

    def test_stored_amount_is_not_auto_corrected(self, service, record, actor):
        outcome = service.update_record(record.id, actor, {
            "payment_method_1": "Pago móvil",
            "payment_amount_1": "360000",
        })

        assert outcome.record.payments[0].amount == Decimal("360000")
        assert outcome.payment.status == PaymentStatus.COMPLETED
        assert outcome.payment.corrections[0].correction.corrected_amount == Decimal("3600")

    def test_stale_expected_version_is_rejected(self, service, record, actor, other_actor, audit_store):
        service.update_record(record.id, other_actor, {"comments": "primero"}, expected_version=1)

        with pytest.raises(ConflictError):
            service.update_record(record.id, actor, {"comments": "segundo"}, expected_version=1)

        assert service.get_record(record.id).comments == "primero"
        assert len(audit_store) == 2

    def test_invalid_edit_is_rejected_before_writing(self, service, record, actor, audit_store):
        with pytest.raises(RecordValidationError):
            service.update_record(record.id, actor, {"total_amount": "0"})

        assert service.get_record(record.id).total_amount == Decimal("100")
        assert len(audit_store) == 1

    def test_payment_without_amount_is_rejected(self, service, record, actor):
        with pytest.raises(RecordValidationError):
            service.update_record(record.id, actor, {"payment_method_2": "Zelle"})

    def test_audit_failure_propagates(self, actor, record_fields):
        records = InMemoryRecordStore()
        service = CaseService(records, InMemoryAuditStore())
        created = service.create_record(actor, record_fields)

        failing = CaseService(records, FailingAuditStore())
        with pytest.raises(StoreError):
            failing.update_record(created.id, actor, {"comments": "x"})

    def test_update_missing_record(self, service, actor):
        with pytest.raises(RecordNotFoundError):
            service.update_record("missing", actor, {"comments": "x"})


class TestEditValueCoercion:
    """Proposed values are compared and stored in their typed form."""

    @pytest.fixture
    def paid_record(self, service, actor, record_fields):
        fields = dict(record_fields,
                      payment_method_1="Pago móvil", payment_amount_1="1.800,00",
                      payment_method_2="Zelle", payment_amount_2="40")
        return service.create_record(actor, fields)

    @pytest.mark.parametrize("amount", ["1.800,00", "1800", "1,800.00"])
    def test_locale_amount_resubmission_is_no_op(self, service, paid_record, actor, audit_store, amount):
        outcome = service.update_record(paid_record.id, actor, {"payment_amount_1": amount})

        assert not outcome.changed
        assert outcome.record.version == 1
        assert len(audit_store) == 1

    @pytest.mark.parametrize("labels", [
        {"payment_method_1": "pago movil", "payment_method_2": "zelle"},
        {"payment_method_1": "PAGO MÓVIL", "payment_method_2": "ZELLE"},
        {"payment_method_1": "Pago movil", "payment_method_2": " Zelle "},
    ])
    def test_method_label_variants_are_no_op(self, service, paid_record, actor, audit_store, labels):
        outcome = service.update_record(paid_record.id, actor, labels)

        assert not outcome.changed
        assert outcome.record.version == 1
        assert len(audit_store) == 1

    def test_method_change_is_audited_with_canonical_label(self, service, paid_record, actor):
        outcome = service.update_record(paid_record.id, actor, {"payment_method_2": "dolares en efectivo"})

        assert [c.field for c in outcome.changes] == ["payment_method_2"]
        assert outcome.record.payments[1].method == PaymentMethod.USD_CASH

        entry = service.history(paid_record.id)[-1]
        assert entry.old_value == "Zelle"
        assert entry.new_value == "Dólares en efectivo"

    def test_unknown_method_label_is_rejected(self, service, paid_record, actor, audit_store):
        with pytest.raises(RecordValidationError) as exc_info:
            service.update_record(paid_record.id, actor, {"payment_method_2": "Criptomonedas"})

        assert exc_info.value.details["field"] == "payment_method_2"
        stored = service.get_record(paid_record.id)
        assert stored.payments[1].method == PaymentMethod.ZELLE
        assert stored.version == 1
        assert len(audit_store) == 1

    def test_create_rejects_unknown_method_label(self, service, actor, record_fields, audit_store):
        fields = dict(record_fields, payment_method_1="Criptomonedas", payment_amount_1="10")

        with pytest.raises(RecordValidationError):
            service.create_record(actor, fields)
        assert len(audit_store) == 0

    @pytest.mark.parametrize("key,value", [
        ("number_of_samples", "dos"),
        ("number_of_samples", True),
        ("date", "10/05/2024"),
    ])
    def test_uncoercible_value_is_rejected(self, service, record, actor, audit_store, key, value):
        with pytest.raises(RecordValidationError) as exc_info:
            service.update_record(record.id, actor, {key: value})

        assert exc_info.value.details["field"] == key
        assert service.get_record(record.id).version == 1
        assert len(audit_store) == 1


class TestPaymentSummary:
    """Reconciliation from a stored record."""

    def test_summary_uses_record_rate(self, service, actor, record_fields):
        fields = dict(record_fields, payment_method_1="Zelle", payment_amount_1="40",
                      payment_method_2="Bs en efectivo", payment_amount_2="2160")
        created = service.create_record(actor, fields)

        summary = service.payment_summary(created)

        assert summary.total_paid == Decimal("100.00")
        assert summary.status == PaymentStatus.COMPLETED

    def test_summary_without_rate(self, service, actor, record_fields):
        fields = dict(record_fields, exchange_rate=None,
                      payment_method_1="Punto de venta", payment_amount_1="3600")
        created = service.create_record(actor, fields)

        summary = service.payment_summary(created)

        assert summary.rate_unavailable
        assert summary.status == PaymentStatus.PENDING


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
