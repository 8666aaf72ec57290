from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from floorplan.apps.activity import services as activity_services
from floorplan.apps.credit_lines import services as credit_services
from floorplan.apps.credit_lines.locks import locked_transaction
from floorplan.apps.dealerships import models as dealership_models
from floorplan.apps.dealerships import services as dealership_services
from floorplan.apps.workflow import apply_transition
from floorplan.errors import DealershipNotActive, DuplicateVin, NotFound, ValidationFailed
from floorplan.utils.dates import utcnow
from floorplan.utils.identifiers import is_valid_vin, normalize_vin

from . import models, schemas

logger = logging.getLogger(__name__)

Status = models.InventoryUnitStatusEnum
Hypothecation = models.HypothecationStatusEnum


def _checked_vin(vin: str) -> str:
    vin = normalize_vin(vin)
    if not is_valid_vin(vin):
        raise ValidationFailed(f"Malformed VIN {vin!r}.", vin=vin)
    return vin


def get_unit(db: Session, vin: str) -> models.InventoryUnit:
    unit = db.get(models.InventoryUnit, normalize_vin(vin))
    if unit is None:
        raise NotFound("Inventory unit", vin)
    return unit


def _lock_unit(db: Session, vin: str) -> models.InventoryUnit:
    unit = (
        db.query(models.InventoryUnit)
        .filter(models.InventoryUnit.vin == vin)
        .populate_existing()
        .with_for_update(of=models.InventoryUnit)
        .one_or_none()
    )
    if unit is None:
        raise NotFound("Inventory unit", vin)
    return unit


def list_inventory(
    db: Session,
    *,
    dealership_id: Optional[str] = None,
    status: Optional[models.InventoryUnitStatusEnum] = None,
) -> List[models.InventoryUnit]:
    query = db.query(models.InventoryUnit)
    if dealership_id:
        query = query.filter(models.InventoryUnit.dealership_id == dealership_id)
    if status is not None:
        query = query.filter(models.InventoryUnit.status == status)
    return query.order_by(models.InventoryUnit.funding_date, models.InventoryUnit.vin).all()


def days_in_stock(unit: models.InventoryUnit, as_of: Optional[datetime] = None) -> int:
    """Whole days between funding and repayment (or ``as_of`` while unrepaid)."""
    return models.compute_days_in_stock(unit.funding_date, unit.repayment_date, as_of)


def _move(
    db: Session,
    *,
    unit: models.InventoryUnit,
    to_state: models.InventoryUnitStatusEnum,
    actor: Optional[str],
    after: Optional[dict] = None,
    correlation_id: Optional[str] = None,
) -> None:
    apply_transition(
        db,
        actor=actor,
        entity_type="inventory_unit",
        entity_id=unit.vin,
        from_state=unit.status,
        to_state=to_state,
        before_obj={"status": unit.status.value, "dealership_id": unit.dealership_id},
        after_obj={"status": to_state.value, **(after or {})},
        correlation_id=correlation_id,
    )
    unit.status = to_state


# ---------------------------------------------------------------------------
# Funding
# ---------------------------------------------------------------------------


def fund_unit(
    db: Session,
    *,
    dealership_id: str,
    vin: str,
    descriptor: schemas.UnitDescriptor,
    financed_amount_minor: int,
    actor: Optional[str] = None,
) -> models.InventoryUnit:
    """
    Reserve credit and record the vehicle in one unit of work.

    Either both the reservation and the unit become visible, or neither does.
    """
    vin = _checked_vin(vin)
    if financed_amount_minor <= 0:
        raise ValidationFailed("financed_amount must be strictly positive.")
    if db.get(models.InventoryUnit, vin) is not None:
        raise DuplicateVin(vin)

    dealership = dealership_services.get_dealership(db, dealership_id)
    if dealership.status != dealership_models.DealershipStatusEnum.ACTIVE:
        raise DealershipNotActive(
            f"Dealership {dealership_id} is {dealership.status.value}; funding requires an active dealership.",
            dealership_id=dealership_id,
            status=dealership.status.value,
        )
    if not dealership.credit_line_id:
        raise NotFound("Credit line for dealership", dealership_id)
    credit_line_id = dealership.credit_line_id

    with locked_transaction(db, credit_line_id):
        line = credit_services.lock_credit_line(db, credit_line_id)
        if db.query(models.InventoryUnit.vin).filter(models.InventoryUnit.vin == vin).first() is not None:
            raise DuplicateVin(vin)

        credit_services.apply_reservation(
            db,
            line=line,
            amount_minor=financed_amount_minor,
            vin=vin,
            actor=actor,
        )
        unit = models.InventoryUnit(
            vin=vin,
            dealership=dealership,
            credit_line_id=credit_line_id,
            oem_invoice_number=descriptor.oem_invoice_number.strip(),
            make=descriptor.make.strip(),
            model=descriptor.model.strip(),
            year=descriptor.year,
            financed_amount_minor=financed_amount_minor,
            funding_date=utcnow(),
            status=Status.PENDING_FUNDING,
            hypothecation_status=Hypothecation.PENDING,
        )
        db.add(unit)
        try:
            db.flush()
        except IntegrityError as exc:
            # Another session financed the same VIN first; the rollback in
            # locked_transaction also drops the reservation above.
            raise DuplicateVin(vin) from exc

        _move(
            db,
            unit=unit,
            to_state=Status.IN_STOCK,
            actor=actor,
            after={"financed_amount_minor": financed_amount_minor, "credit_line_id": credit_line_id},
        )
        db.flush()

    logger.info(
        "Unit funded",
        extra={
            "vin": vin,
            "dealership_id": dealership_id,
            "credit_line_id": credit_line_id,
            "financed_amount_minor": financed_amount_minor,
        },
    )
    return unit


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


def mark_sold(db: Session, *, vin: str, actor: Optional[str] = None) -> models.InventoryUnit:
    unit = get_unit(db, vin)
    with locked_transaction(db, unit.credit_line_id):
        credit_services.lock_credit_line(db, unit.credit_line_id)
        unit = _lock_unit(db, unit.vin)
        _move(db, unit=unit, to_state=Status.SOLD_PENDING_PAYMENT, actor=actor)
        unit.sold_at = utcnow()
        db.flush()
    return unit


def repay_unit(
    db: Session,
    *,
    vin: str,
    repayment_amount_minor: int,
    actor: Optional[str] = None,
) -> models.InventoryUnit:
    """
    Close out a financed unit.

    The line gets back the stored principal, whatever was collected.
    """
    if repayment_amount_minor <= 0:
        raise ValidationFailed("repayment_amount must be strictly positive.")

    unit = get_unit(db, vin)
    with locked_transaction(db, unit.credit_line_id):
        line = credit_services.lock_credit_line(db, unit.credit_line_id)
        unit = _lock_unit(db, unit.vin)
        _move(
            db,
            unit=unit,
            to_state=Status.REPAID,
            actor=actor,
            after={
                "repayment_amount_minor": repayment_amount_minor,
                "financed_amount_minor": unit.financed_amount_minor,
            },
        )
        unit.repayment_date = utcnow()
        unit.repayment_amount_minor = repayment_amount_minor
        credit_services.apply_release(
            db,
            line=line,
            amount_minor=unit.financed_amount_minor,
            vin=unit.vin,
            actor=actor,
        )
        db.flush()

    logger.info(
        "Unit repaid",
        extra={
            "vin": unit.vin,
            "credit_line_id": unit.credit_line_id,
            "financed_amount_minor": unit.financed_amount_minor,
            "repayment_amount_minor": repayment_amount_minor,
        },
    )
    return unit


def mark_audit_missing(
    db: Session,
    *,
    unit: models.InventoryUnit,
    actor: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> models.InventoryUnit:
    """
    Audit reconciliation only: the caller already holds the line lock.

    The principal stays drawn; nothing is released.
    """
    _move(
        db,
        unit=unit,
        to_state=Status.AUDIT_MISSING,
        actor=actor,
        correlation_id=correlation_id,
    )
    db.flush()
    logger.warning(
        "Unit not found at audit",
        extra={"vin": unit.vin, "dealership_id": unit.dealership_id, "audit_id": correlation_id},
    )
    return unit


def recover_unit(db: Session, *, vin: str, actor: Optional[str] = None) -> models.InventoryUnit:
    unit = get_unit(db, vin)
    with locked_transaction(db, unit.credit_line_id):
        credit_services.lock_credit_line(db, unit.credit_line_id)
        unit = _lock_unit(db, unit.vin)
        _move(db, unit=unit, to_state=Status.IN_STOCK, actor=actor, after={"recovered": True})
        db.flush()
    return unit


# ---------------------------------------------------------------------------
# Hypothecation
# ---------------------------------------------------------------------------


def _move_hypothecation(
    db: Session,
    *,
    vin: str,
    to_state: models.HypothecationStatusEnum,
    actor: Optional[str],
) -> models.InventoryUnit:
    unit = get_unit(db, vin)
    apply_transition(
        db,
        actor=actor,
        entity_type="hypothecation",
        entity_id=unit.vin,
        from_state=unit.hypothecation_status,
        to_state=to_state,
        before_obj={"status": unit.hypothecation_status.value},
        after_obj={"status": to_state.value, "unit_status": unit.status.value},
    )
    unit.hypothecation_status = to_state
    db.flush()
    return unit


def complete_hypothecation(db: Session, *, vin: str, actor: Optional[str] = None) -> models.InventoryUnit:
    return _move_hypothecation(db, vin=vin, to_state=Hypothecation.COMPLETED, actor=actor)


def issue_noc(db: Session, *, vin: str, actor: Optional[str] = None) -> models.InventoryUnit:
    return _move_hypothecation(db, vin=vin, to_state=Hypothecation.NOC_ISSUED, actor=actor)
