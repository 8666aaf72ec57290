from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from floorplan.apps.activity import services as activity_services
from floorplan.apps.workflow import apply_transition
from floorplan.errors import CreditLineAlreadyAttached, NotFound

from . import models, schemas

logger = logging.getLogger(__name__)

Status = models.DealershipStatusEnum


def create_dealership(
    db: Session,
    *,
    payload: schemas.DealershipCreate,
    actor: Optional[str] = None,
) -> models.Dealership:
    dealership = models.Dealership(
        name=payload.name.strip(),
        principal_contact=payload.principal_contact.strip(),
        location=payload.location.strip(),
        agreement_date=payload.agreement_date,
        status=Status.ONBOARDING,
    )
    db.add(dealership)
    db.flush()
    activity_services.log_event(
        db,
        actor=actor,
        entity_type="dealership",
        entity_id=dealership.id,
        action="create",
        after={"name": dealership.name, "status": dealership.status.value},
    )
    logger.info("Dealership onboarded", extra={"dealership_id": dealership.id})
    return dealership


def get_dealership(db: Session, dealership_id: str) -> models.Dealership:
    dealership = db.get(models.Dealership, dealership_id)
    if dealership is None:
        raise NotFound("Dealership", dealership_id)
    return dealership


def list_dealerships(db: Session, *, status: Optional[Status] = None) -> List[models.Dealership]:
    query = db.query(models.Dealership)
    if status is not None:
        query = query.filter(models.Dealership.status == status)
    return query.order_by(models.Dealership.created_at, models.Dealership.id).all()


def _transition(
    db: Session,
    *,
    dealership_id: str,
    to_state: Status,
    actor: Optional[str],
) -> models.Dealership:
    dealership = get_dealership(db, dealership_id)
    apply_transition(
        db,
        actor=actor,
        entity_type="dealership",
        entity_id=dealership.id,
        from_state=dealership.status,
        to_state=to_state,
        before_obj={"status": dealership.status.value},
        after_obj={"status": to_state.value},
    )
    dealership.status = to_state
    db.flush()
    return dealership


def activate_dealership(db: Session, *, dealership_id: str, actor: Optional[str] = None) -> models.Dealership:
    return _transition(db, dealership_id=dealership_id, to_state=Status.ACTIVE, actor=actor)


def suspend_dealership(db: Session, *, dealership_id: str, actor: Optional[str] = None) -> models.Dealership:
    return _transition(db, dealership_id=dealership_id, to_state=Status.SUSPENDED, actor=actor)


def deactivate_dealership(db: Session, *, dealership_id: str, actor: Optional[str] = None) -> models.Dealership:
    return _transition(db, dealership_id=dealership_id, to_state=Status.INACTIVE, actor=actor)


def attach_credit_line(
    db: Session,
    *,
    dealership_id: str,
    credit_line_id: str,
    actor: Optional[str] = None,
) -> models.Dealership:
    dealership = get_dealership(db, dealership_id)
    if dealership.credit_line_id:
        raise CreditLineAlreadyAttached(
            f"Dealership {dealership_id} already has credit line {dealership.credit_line_id}.",
            dealership_id=dealership_id,
            credit_line_id=dealership.credit_line_id,
        )
    dealership.credit_line_id = credit_line_id
    db.flush()
    activity_services.log_event(
        db,
        actor=actor,
        entity_type="dealership",
        entity_id=dealership.id,
        action="attach_credit_line",
        after={"credit_line_id": credit_line_id},
    )
    return dealership


def dealership_summary(db: Session, *, dealership_id: str) -> schemas.DealershipSummary:
    from floorplan.apps.credit_lines import services as credit_services
    from floorplan.apps.inventory import models as inventory_models
    from floorplan.utils.money import to_major

    dealership = get_dealership(db, dealership_id)
    summary = schemas.DealershipSummary(dealership=schemas.DealershipRead.model_validate(dealership))

    if dealership.credit_line_id:
        line = credit_services.get_credit_line(db, dealership.credit_line_id)
        summary.total_limit = line.total_limit
        summary.available_credit = line.available_credit
        summary.interest_accrued = line.interest_accrued
        summary.utilization = credit_services.utilization_of(line)

    UnitStatus = inventory_models.InventoryUnitStatusEnum
    in_stock_minor = 0
    for unit in dealership.units:
        if unit.status == UnitStatus.IN_STOCK:
            summary.in_stock_count += 1
            in_stock_minor += unit.financed_amount_minor
        elif unit.status == UnitStatus.SOLD_PENDING_PAYMENT:
            summary.sold_pending_count += 1
        elif unit.status == UnitStatus.AUDIT_MISSING:
            summary.audit_missing_count += 1
        elif unit.status == UnitStatus.REPAID:
            summary.repaid_count += 1
    summary.in_stock_value = to_major(in_stock_minor)
    return summary
