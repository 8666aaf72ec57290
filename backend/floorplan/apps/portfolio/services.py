"""
Lender-wide aggregates for the wholesale dashboard.

Everything here is read-only and derived from stored balances at call time.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from floorplan.apps.audits import models as audit_models
from floorplan.apps.credit_lines import models as credit_models
from floorplan.apps.credit_lines.services import UTILIZATION_PLACES
from floorplan.apps.dealerships import models as dealership_models
from floorplan.apps.inventory import models as inventory_models
from floorplan.utils.money import to_major

from . import schemas


def _sum(db: Session, column, *criteria) -> int:
    total = db.query(func.coalesce(func.sum(column), 0)).filter(*criteria).scalar()
    return int(total or 0)


def _count(db: Session, column, *criteria) -> int:
    return int(db.query(func.count(column)).filter(*criteria).scalar() or 0)


def portfolio_summary(db: Session) -> schemas.PortfolioSummary:
    Unit = inventory_models.InventoryUnit
    Line = credit_models.CreditLine

    total_limit = _sum(db, Line.total_limit_minor)
    total_available = _sum(db, Line.available_credit_minor)
    drawn = total_limit - total_available

    utilization = Decimal("0")
    if total_limit:
        utilization = (Decimal(drawn) / Decimal(total_limit)).quantize(UTILIZATION_PLACES)

    return schemas.PortfolioSummary(
        total_disbursed=to_major(_sum(db, Unit.financed_amount_minor)),
        total_limit=to_major(total_limit),
        total_available=to_major(total_available),
        utilization=utilization,
        outstanding_principal=to_major(
            _sum(db, Unit.financed_amount_minor, Unit.status.in_(inventory_models.OUTSTANDING_STATUSES))
        ),
        active_dealerships=_count(
            db,
            dealership_models.Dealership.id,
            dealership_models.Dealership.status == dealership_models.DealershipStatusEnum.ACTIVE,
        ),
        in_stock_units=_count(db, Unit.vin, Unit.status == inventory_models.InventoryUnitStatusEnum.IN_STOCK),
        suspended_credit_lines=_count(db, Line.id, Line.status == credit_models.CreditLineStatusEnum.SUSPENDED),
        upcoming_audits=_count(
            db,
            audit_models.Audit.id,
            audit_models.Audit.status == audit_models.AuditStatusEnum.SCHEDULED,
        ),
    )
