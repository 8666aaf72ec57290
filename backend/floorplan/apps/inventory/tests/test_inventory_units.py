from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError

from floorplan.apps.credit_lines import models as credit_models
from floorplan.apps.credit_lines import services as credit_services
from floorplan.apps.dealerships import services as dealership_services
from floorplan.apps.inventory import models as inventory_models
from floorplan.apps.inventory import services as inventory_services
from floorplan.apps.workflow import TransitionError
from floorplan.errors import (
    DealershipNotActive,
    DuplicateVin,
    InsufficientCredit,
    InvalidTransition,
    NotFound,
    ValidationFailed,
)
from floorplan.utils.dates import ensure_aware

Status = inventory_models.InventoryUnitStatusEnum
Hypothecation = inventory_models.HypothecationStatusEnum


def _fund(db, dealership, descriptor, vin, amount_minor):
    return inventory_services.fund_unit(
        db,
        dealership_id=dealership.id,
        vin=vin,
        descriptor=descriptor,
        financed_amount_minor=amount_minor,
        actor="ops@lender.test",
    )


def test_fund_unit_reserves_credit_and_records_unit(db_session, make_credit_line, descriptor, vin):
    dealership, line = make_credit_line(limit_minor=10_000_000_00)

    unit = _fund(db_session, dealership, descriptor, vin(1), 500_000_00)

    assert unit.status == Status.IN_STOCK
    assert unit.hypothecation_status == Hypothecation.PENDING
    assert unit.credit_line_id == line.id
    assert unit.financed_amount_minor == 500_000_00
    assert credit_services.get_credit_line(db_session, line.id).available_credit_minor == 9_500_000_00


def test_fund_unit_normalizes_vin(db_session, make_credit_line, descriptor, vin):
    dealership, _ = make_credit_line()

    unit = _fund(db_session, dealership, descriptor, f"  {vin(1).lower()} ", 1_000_00)

    assert unit.vin == vin(1)


def test_fund_unit_rejects_malformed_vin(db_session, make_credit_line, descriptor):
    dealership, _ = make_credit_line()

    with pytest.raises(ValidationFailed):
        _fund(db_session, dealership, descriptor, "MAT0000000000000I", 1_000_00)
    with pytest.raises(ValidationFailed):
        _fund(db_session, dealership, descriptor, "SHORT", 1_000_00)


def test_duplicate_vin_is_rejected_even_after_repayment(db_session, make_credit_line, descriptor, vin):
    dealership, line = make_credit_line(limit_minor=1_000_000_00)
    _fund(db_session, dealership, descriptor, vin(1), 100_000_00)

    with pytest.raises(DuplicateVin):
        _fund(db_session, dealership, descriptor, vin(1), 100_000_00)

    inventory_services.repay_unit(db_session, vin=vin(1), repayment_amount_minor=100_000_00)
    with pytest.raises(DuplicateVin):
        _fund(db_session, dealership, descriptor, vin(1), 100_000_00)

    assert credit_services.get_credit_line(db_session, line.id).available_credit_minor == 1_000_000_00


def test_insufficient_credit_creates_nothing(db_session, make_credit_line, descriptor, vin):
    dealership, line = make_credit_line(limit_minor=300_000_00)
    _fund(db_session, dealership, descriptor, vin(1), 200_000_00)

    with pytest.raises(InsufficientCredit):
        _fund(db_session, dealership, descriptor, vin(2), 200_000_00)

    with pytest.raises(NotFound):
        inventory_services.get_unit(db_session, vin(2))
    line = credit_services.get_credit_line(db_session, line.id)
    assert line.available_credit_minor == 100_000_00
    assert len(credit_services.list_entries(db_session, credit_line_id=line.id)) == 1



def test_failed_unit_insert_rolls_back_the_reservation(db_session, make_credit_line, descriptor, vin):
    dealership, line = make_credit_line(limit_minor=300_000_00)
    _fund(db_session, dealership, descriptor, vin(1), 100_000_00)

    def reject_unit_insert(session, flush_context, instances):
        if any(isinstance(obj, inventory_models.InventoryUnit) for obj in session.new):
            raise IntegrityError("INSERT INTO inventory_units", {}, Exception("UNIQUE constraint failed"))

    event.listen(db_session, "before_flush", reject_unit_insert)
    try:
        with pytest.raises(DuplicateVin):
            _fund(db_session, dealership, descriptor, vin(2), 100_000_00)
    finally:
        event.remove(db_session, "before_flush", reject_unit_insert)

    with pytest.raises(NotFound):
        inventory_services.get_unit(db_session, vin(2))
    line = credit_services.get_credit_line(db_session, line.id)
    assert line.available_credit_minor == 200_000_00
    assert len(credit_services.list_entries(db_session, credit_line_id=line.id)) == 1
    assert credit_services.check_conservation(db_session, credit_line_id=line.id).balanced

def test_funding_requires_active_dealership(db_session, make_credit_line, descriptor, vin):
    dealership, _ = make_credit_line()
    dealership_services.suspend_dealership(db_session, dealership_id=dealership.id)
    db_session.commit()

    with pytest.raises(DealershipNotActive):
        _fund(db_session, dealership, descriptor, vin(1), 1_000_00)


def test_funding_requires_a_credit_line(db_session, make_dealership, descriptor, vin):
    dealership = make_dealership()

    with pytest.raises(NotFound):
        _fund(db_session, dealership, descriptor, vin(1), 1_000_00)


def test_repayment_restores_principal_not_collected_amount(db_session, make_credit_line, descriptor, vin):
    dealership, line = make_credit_line(limit_minor=10_000_000_00)
    _fund(db_session, dealership, descriptor, vin(1), 500_000_00)
    inventory_services.mark_sold(db_session, vin=vin(1))

    unit = inventory_services.repay_unit(db_session, vin=vin(1), repayment_amount_minor=510_000_00)

    assert unit.status == Status.REPAID
    assert unit.repayment_amount_minor == 510_000_00
    assert unit.repayment_date is not None
    assert credit_services.get_credit_line(db_session, line.id).available_credit_minor == 10_000_000_00


def test_second_repayment_is_rejected(db_session, make_credit_line, descriptor, vin):
    dealership, line = make_credit_line(limit_minor=1_000_000_00)
    _fund(db_session, dealership, descriptor, vin(1), 500_000_00)
    first = inventory_services.repay_unit(db_session, vin=vin(1), repayment_amount_minor=500_000_00)
    repaid_at = first.repayment_date

    with pytest.raises(InvalidTransition):
        inventory_services.repay_unit(db_session, vin=vin(1), repayment_amount_minor=1_000_00)

    unit = inventory_services.get_unit(db_session, vin(1))
    assert unit.repayment_amount_minor == 500_000_00
    assert ensure_aware(unit.repayment_date) == ensure_aware(repaid_at)
    assert credit_services.get_credit_line(db_session, line.id).available_credit_minor == 1_000_000_00


def test_sold_unit_cannot_be_sold_again(db_session, make_credit_line, descriptor, vin):
    dealership, _ = make_credit_line()
    _fund(db_session, dealership, descriptor, vin(1), 1_000_00)
    inventory_services.mark_sold(db_session, vin=vin(1))

    with pytest.raises(TransitionError):
        inventory_services.mark_sold(db_session, vin=vin(1))


def test_repayment_rejects_non_positive_amount(db_session, make_credit_line, descriptor, vin):
    dealership, _ = make_credit_line()
    _fund(db_session, dealership, descriptor, vin(1), 1_000_00)

    with pytest.raises(ValidationFailed):
        inventory_services.repay_unit(db_session, vin=vin(1), repayment_amount_minor=0)


def test_repay_works_on_suspended_line(db_session, make_credit_line, descriptor, vin):
    dealership, line = make_credit_line(limit_minor=100_000_00)
    _fund(db_session, dealership, descriptor, vin(1), 40_000_00)
    credit_services.suspend_credit_line(db_session, credit_line_id=line.id)

    inventory_services.repay_unit(db_session, vin=vin(1), repayment_amount_minor=40_000_00)

    line = credit_services.get_credit_line(db_session, line.id)
    assert line.status == credit_models.CreditLineStatusEnum.SUSPENDED
    assert line.available_credit_minor == 100_000_00


def test_days_in_stock():
    funded = datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)
    unit = inventory_models.InventoryUnit(vin="MAT00000000000001", funding_date=funded)

    assert inventory_services.days_in_stock(unit, as_of=funded + timedelta(days=45, hours=3)) == 45
    assert inventory_services.days_in_stock(unit, as_of=funded + timedelta(hours=23)) == 0
    assert inventory_services.days_in_stock(unit, as_of=funded - timedelta(days=2)) == 0

    unit.repayment_date = funded + timedelta(days=12)
    assert inventory_services.days_in_stock(unit, as_of=funded + timedelta(days=90)) == 12


def test_days_in_stock_handles_naive_database_timestamps():
    unit = inventory_models.InventoryUnit(vin="MAT00000000000001", funding_date=datetime(2024, 3, 1))

    as_of = datetime(2024, 3, 31, tzinfo=timezone.utc)
    assert inventory_services.days_in_stock(unit, as_of=as_of) == 30


def test_list_inventory_filters(db_session, make_credit_line, descriptor, vin):
    dealership, _ = make_credit_line()
    other, _ = make_credit_line(name="Other Motors")
    _fund(db_session, dealership, descriptor, vin(1), 1_000_00)
    _fund(db_session, dealership, descriptor, vin(2), 1_000_00)
    _fund(db_session, other, descriptor, vin(3), 1_000_00)
    inventory_services.mark_sold(db_session, vin=vin(2))

    in_stock = inventory_services.list_inventory(db_session, dealership_id=dealership.id, status=Status.IN_STOCK)
    assert [u.vin for u in in_stock] == [vin(1)]
    assert len(inventory_services.list_inventory(db_session, dealership_id=dealership.id)) == 2


def test_hypothecation_and_noc(db_session, make_credit_line, descriptor, vin):
    dealership, _ = make_credit_line()
    _fund(db_session, dealership, descriptor, vin(1), 1_000_00)

    inventory_services.complete_hypothecation(db_session, vin=vin(1))
    with pytest.raises(TransitionError):
        inventory_services.issue_noc(db_session, vin=vin(1))

    inventory_services.repay_unit(db_session, vin=vin(1), repayment_amount_minor=1_000_00)
    unit = inventory_services.issue_noc(db_session, vin=vin(1))
    assert unit.hypothecation_status == Hypothecation.NOC_ISSUED


def test_recover_audit_missing_unit(db_session, make_credit_line, descriptor, vin):
    dealership, line = make_credit_line(limit_minor=100_000_00)
    unit = _fund(db_session, dealership, descriptor, vin(1), 10_000_00)
    inventory_services.mark_audit_missing(db_session, unit=unit)
    db_session.commit()

    unit = inventory_services.recover_unit(db_session, vin=vin(1))

    assert unit.status == Status.IN_STOCK
    assert credit_services.get_credit_line(db_session, line.id).available_credit_minor == 90_000_00
