from __future__ import annotations

from datetime import date
from decimal import Decimal

from floorplan.apps.audits import services as audit_services
from floorplan.apps.credit_lines import services as credit_services
from floorplan.apps.inventory import services as inventory_services
from floorplan.apps.portfolio import services as portfolio_services


def test_empty_portfolio(db_session):
    summary = portfolio_services.portfolio_summary(db_session)

    assert summary.total_limit == Decimal("0.00")
    assert summary.utilization == Decimal("0")
    assert summary.active_dealerships == 0


def test_portfolio_summary_aggregates_all_lines(db_session, make_credit_line, make_dealership, descriptor, vin):
    first, first_line = make_credit_line(limit_minor=1_000_000_00, name="North Motors")
    second, second_line = make_credit_line(limit_minor=3_000_000_00, name="South Motors")
    make_dealership("Pending Dealer", active=False)

    inventory_services.fund_unit(
        db_session, dealership_id=first.id, vin=vin(1), descriptor=descriptor, financed_amount_minor=600_000_00
    )
    inventory_services.fund_unit(
        db_session, dealership_id=second.id, vin=vin(2), descriptor=descriptor, financed_amount_minor=400_000_00
    )
    inventory_services.fund_unit(
        db_session, dealership_id=second.id, vin=vin(3), descriptor=descriptor, financed_amount_minor=200_000_00
    )
    inventory_services.repay_unit(db_session, vin=vin(3), repayment_amount_minor=200_000_00)
    credit_services.suspend_credit_line(db_session, credit_line_id=second_line.id)
    audit_services.schedule_audit(
        db_session, dealership_id=first.id, auditor_name="Inspector X", audit_date=date(2025, 6, 1)
    )
    db_session.commit()

    summary = portfolio_services.portfolio_summary(db_session)

    assert summary.total_disbursed == Decimal("1200000.00")
    assert summary.total_limit == Decimal("4000000.00")
    assert summary.total_available == Decimal("3000000.00")
    assert summary.outstanding_principal == Decimal("1000000.00")
    assert summary.utilization == Decimal("0.2500")
    assert summary.active_dealerships == 2
    assert summary.in_stock_units == 2
    assert summary.suspended_credit_lines == 1
    assert summary.upcoming_audits == 1
