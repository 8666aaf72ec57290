from __future__ import annotations

from datetime import date

import pytest

from floorplan.apps.audits import models as audit_models
from floorplan.apps.audits import services as audit_services
from floorplan.apps.credit_lines import services as credit_services
from floorplan.apps.inventory import models as inventory_models
from floorplan.apps.inventory import services as inventory_services
from floorplan.apps.workflow import TransitionError
from floorplan.errors import NotFound, ValidationFailed

UnitStatus = inventory_models.InventoryUnitStatusEnum
Verification = audit_models.VerificationStatusEnum


@pytest.fixture()
def stocked_dealer(db_session, make_credit_line, descriptor, vin):
    """Units A and B in stock, C repaid."""
    dealership, line = make_credit_line(limit_minor=5_000_000_00)
    for n in (1, 2, 3):
        inventory_services.fund_unit(
            db_session,
            dealership_id=dealership.id,
            vin=vin(n),
            descriptor=descriptor,
            financed_amount_minor=1_000_000_00,
        )
    inventory_services.repay_unit(db_session, vin=vin(3), repayment_amount_minor=1_020_000_00)
    return dealership, line


def _results(audit):
    return sorted((v.vin, v.verification_status) for v in audit.audited_vehicles)


def test_audit_marks_unobserved_unit_missing(db_session, stocked_dealer, vin):
    dealership, line = stocked_dealer
    available_before = credit_services.get_credit_line(db_session, line.id).available_credit_minor

    audit = audit_services.run_audit(
        db_session,
        dealership_id=dealership.id,
        auditor_name="Inspector X",
        observed_vins=[vin(1)],
    )

    assert audit.status == audit_models.AuditStatusEnum.COMPLETED
    assert audit.completed_at is not None
    assert _results(audit) == [(vin(1), Verification.VERIFIED), (vin(2), Verification.MISSING)]
    assert inventory_services.get_unit(db_session, vin(1)).status == UnitStatus.IN_STOCK
    assert inventory_services.get_unit(db_session, vin(2)).status == UnitStatus.AUDIT_MISSING
    assert inventory_services.get_unit(db_session, vin(3)).status == UnitStatus.REPAID
    assert credit_services.get_credit_line(db_session, line.id).available_credit_minor == available_before
    assert credit_services.check_conservation(db_session, credit_line_id=line.id).balanced


def test_observed_but_not_expected_is_sold_unreported(db_session, stocked_dealer, vin):
    dealership, _ = stocked_dealer

    audit = audit_services.run_audit(
        db_session,
        dealership_id=dealership.id,
        auditor_name="Inspector X",
        observed_vins=[vin(1), vin(2), vin(3), vin(99)],
    )

    results = dict(_results(audit))
    assert results[vin(3)] == Verification.SOLD_UNREPORTED
    assert results[vin(99)] == Verification.SOLD_UNREPORTED
    assert inventory_services.get_unit(db_session, vin(3)).status == UnitStatus.REPAID
    notes = {v.vin: v.notes for v in audit.audited_vehicles}
    assert notes[vin(99)] == "Not financed under this ledger."


def test_sold_pending_unit_missing_keeps_status(db_session, stocked_dealer, vin):
    dealership, _ = stocked_dealer
    inventory_services.mark_sold(db_session, vin=vin(2))

    audit = audit_services.run_audit(
        db_session,
        dealership_id=dealership.id,
        auditor_name="Inspector X",
        observed_vins=[vin(1)],
    )

    assert dict(_results(audit))[vin(2)] == Verification.MISSING
    assert inventory_services.get_unit(db_session, vin(2)).status == UnitStatus.SOLD_PENDING_PAYMENT


def test_repeat_audits_are_independent_records(db_session, stocked_dealer, vin):
    dealership, _ = stocked_dealer

    first = audit_services.run_audit(
        db_session, dealership_id=dealership.id, auditor_name="Inspector X", observed_vins=[vin(1), vin(2)]
    )
    second = audit_services.run_audit(
        db_session, dealership_id=dealership.id, auditor_name="Inspector Y", observed_vins=[vin(1)]
    )

    assert first.id != second.id
    assert len(audit_services.list_audits(db_session, dealership_id=dealership.id)) == 2
    assert dict(_results(first))[vin(2)] == Verification.VERIFIED
    assert dict(_results(second))[vin(2)] == Verification.MISSING


def test_audit_rejects_malformed_vins(db_session, stocked_dealer):
    dealership, _ = stocked_dealer

    with pytest.raises(ValidationFailed):
        audit_services.run_audit(
            db_session, dealership_id=dealership.id, auditor_name="Inspector X", observed_vins=["not-a-vin"]
        )
    assert audit_services.list_audits(db_session, dealership_id=dealership.id) == []


def test_audit_requires_auditor(db_session, stocked_dealer):
    dealership, _ = stocked_dealer

    with pytest.raises(ValidationFailed):
        audit_services.run_audit(db_session, dealership_id=dealership.id, auditor_name="  ", observed_vins=[])


def test_audit_for_dealership_without_line(db_session, make_dealership, vin):
    dealership = make_dealership()

    audit = audit_services.run_audit(
        db_session, dealership_id=dealership.id, auditor_name="Inspector X", observed_vins=[vin(5)]
    )

    assert _results(audit) == [(vin(5), Verification.SOLD_UNREPORTED)]


def test_scheduled_audit_lifecycle(db_session, stocked_dealer, vin):
    dealership, _ = stocked_dealer

    audit = audit_services.schedule_audit(
        db_session, dealership_id=dealership.id, auditor_name="Inspector X", audit_date=date(2025, 3, 1)
    )
    db_session.commit()
    assert audit.status == audit_models.AuditStatusEnum.SCHEDULED

    audit_services.start_audit(db_session, audit_id=audit.id)
    db_session.commit()
    audit = audit_services.complete_audit(db_session, audit_id=audit.id, observed_vins=[vin(1), vin(2)])

    assert audit.status == audit_models.AuditStatusEnum.COMPLETED
    assert _results(audit) == [(vin(1), Verification.VERIFIED), (vin(2), Verification.VERIFIED)]

    with pytest.raises(TransitionError):
        audit_services.complete_audit(db_session, audit_id=audit.id, observed_vins=[])


def test_cancelled_audit_cannot_complete(db_session, stocked_dealer):
    dealership, _ = stocked_dealer
    audit = audit_services.schedule_audit(
        db_session, dealership_id=dealership.id, auditor_name="Inspector X", audit_date=date(2025, 3, 1)
    )
    audit_services.cancel_audit(db_session, audit_id=audit.id)
    db_session.commit()

    with pytest.raises(TransitionError):
        audit_services.complete_audit(db_session, audit_id=audit.id, observed_vins=[])


def test_get_unknown_audit(db_session):
    with pytest.raises(NotFound):
        audit_services.get_audit(db_session, "missing")
