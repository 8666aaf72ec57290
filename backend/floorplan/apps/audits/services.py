from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional

from sqlalchemy.orm import Session

from floorplan.apps.activity import services as activity_services
from floorplan.apps.credit_lines import services as credit_services
from floorplan.apps.credit_lines.locks import locked_transaction
from floorplan.apps.dealerships import services as dealership_services
from floorplan.apps.inventory import models as inventory_models
from floorplan.apps.inventory import services as inventory_services
from floorplan.apps.workflow import TransitionError, allowed_targets, apply_transition
from floorplan.errors import NotFound, ValidationFailed
from floorplan.utils.dates import utcnow
from floorplan.utils.identifiers import is_valid_vin, normalize_vin

from . import models

logger = logging.getLogger(__name__)

Status = models.AuditStatusEnum
Verification = models.VerificationStatusEnum
UnitStatus = inventory_models.InventoryUnitStatusEnum


@contextmanager
def _unit_of_work(db: Session, credit_line_id: Optional[str]) -> Iterator[None]:
    # Line first, then units: the same order every ledger mutation takes.
    if credit_line_id:
        with locked_transaction(db, credit_line_id):
            credit_services.lock_credit_line(db, credit_line_id)
            yield
        return
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


def _normalize_observed(observed_vins: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    bad = []
    for raw in observed_vins:
        vin = normalize_vin(raw)
        if not is_valid_vin(vin):
            bad.append(raw)
            continue
        seen.setdefault(vin, None)
    if bad:
        raise ValidationFailed("Observed VINs are malformed.", vins=bad)
    return list(seen)


def get_audit(db: Session, audit_id: str) -> models.Audit:
    audit = db.get(models.Audit, audit_id)
    if audit is None:
        raise NotFound("Audit", audit_id)
    return audit


def list_audits(
    db: Session,
    *,
    dealership_id: Optional[str] = None,
    status: Optional[models.AuditStatusEnum] = None,
) -> List[models.Audit]:
    query = db.query(models.Audit)
    if dealership_id:
        query = query.filter(models.Audit.dealership_id == dealership_id)
    if status is not None:
        query = query.filter(models.Audit.status == status)
    return query.order_by(models.Audit.audit_date.desc(), models.Audit.created_at.desc()).all()


def _expected_units(db: Session, *, dealership_id: str) -> List[inventory_models.InventoryUnit]:
    return (
        db.query(inventory_models.InventoryUnit)
        .filter(
            inventory_models.InventoryUnit.dealership_id == dealership_id,
            inventory_models.InventoryUnit.status.in_(inventory_models.FINANCED_IN_STOCK_STATUSES),
        )
        .populate_existing()
        .with_for_update(of=inventory_models.InventoryUnit)
        .order_by(inventory_models.InventoryUnit.vin)
        .all()
    )


def _unreported_note(db: Session, *, vin: str, dealership_id: str) -> str:
    unit = db.get(inventory_models.InventoryUnit, vin)
    if unit is None:
        return "Not financed under this ledger."
    if unit.dealership_id != dealership_id:
        return "Financed to another dealership."
    if unit.status == UnitStatus.REPAID:
        return "Ledger shows this unit as repaid."
    if unit.status == UnitStatus.AUDIT_MISSING:
        return "Previously reported missing; review for recovery."
    return f"Ledger status {unit.status.value}."


def _reconcile(
    db: Session,
    *,
    audit: models.Audit,
    observed_vins: List[str],
    actor: Optional[str],
) -> None:
    observed = set(observed_vins)
    expected = _expected_units(db, dealership_id=audit.dealership_id)
    expected_vins = {unit.vin for unit in expected}

    for unit in expected:
        if unit.vin in observed:
            audit.audited_vehicles.append(
                models.AuditedVehicle(vin=unit.vin, verification_status=Verification.VERIFIED)
            )
            continue
        if unit.status == UnitStatus.IN_STOCK:
            inventory_services.mark_audit_missing(db, unit=unit, actor=actor, correlation_id=audit.id)
            notes = "Not located at audit."
        else:
            notes = "Sold with payment pending; vehicle no longer on the lot."
        audit.audited_vehicles.append(
            models.AuditedVehicle(
                vin=unit.vin,
                verification_status=Verification.MISSING,
                notes=notes,
            )
        )

    for vin in sorted(observed - expected_vins):
        audit.audited_vehicles.append(
            models.AuditedVehicle(
                vin=vin,
                verification_status=Verification.SOLD_UNREPORTED,
                notes=_unreported_note(db, vin=vin, dealership_id=audit.dealership_id),
            )
        )
    db.flush()


def _complete(db: Session, *, audit: models.Audit, actor: Optional[str]) -> None:
    completed_at = utcnow()
    counts: Dict[str, int] = {}
    for vehicle in audit.audited_vehicles:
        counts[vehicle.verification_status.value] = counts.get(vehicle.verification_status.value, 0) + 1
    apply_transition(
        db,
        actor=actor,
        entity_type="audit",
        entity_id=audit.id,
        from_state=audit.status,
        to_state=Status.COMPLETED,
        before_obj={"status": audit.status.value},
        after_obj={
            "status": Status.COMPLETED.value,
            "auditor_name": audit.auditor_name,
            "completed_at": completed_at.isoformat(),
            "counts": counts,
        },
        correlation_id=audit.id,
    )
    audit.status = Status.COMPLETED
    audit.completed_at = completed_at
    db.flush()


def run_audit(
    db: Session,
    *,
    dealership_id: str,
    auditor_name: str,
    observed_vins: Iterable[str],
    audit_date: Optional[date] = None,
    actor: Optional[str] = None,
) -> models.Audit:
    """
    Reconcile a physical count against the ledger and file a completed audit.

    Every call files a new, independent audit record.
    """
    auditor_name = (auditor_name or "").strip()
    if not auditor_name:
        raise ValidationFailed("auditor_name is required.")
    observed = _normalize_observed(observed_vins)
    dealership = dealership_services.get_dealership(db, dealership_id)

    with _unit_of_work(db, dealership.credit_line_id):
        audit = models.Audit(
            dealership_id=dealership.id,
            audit_date=audit_date or utcnow().date(),
            auditor_name=auditor_name,
            status=Status.IN_PROGRESS,
        )
        db.add(audit)
        db.flush()
        activity_services.log_event(
            db,
            actor=actor,
            entity_type="audit",
            entity_id=audit.id,
            action="run",
            after={"dealership_id": dealership.id, "observed": len(observed)},
        )
        _reconcile(db, audit=audit, observed_vins=observed, actor=actor)
        _complete(db, audit=audit, actor=actor)

    logger.info(
        "Audit completed",
        extra={"audit_id": audit.id, "dealership_id": dealership.id, "observed": len(observed)},
    )
    return audit


def schedule_audit(
    db: Session,
    *,
    dealership_id: str,
    auditor_name: str,
    audit_date: date,
    actor: Optional[str] = None,
) -> models.Audit:
    auditor_name = (auditor_name or "").strip()
    if not auditor_name:
        raise ValidationFailed("auditor_name is required.")
    dealership = dealership_services.get_dealership(db, dealership_id)
    audit = models.Audit(
        dealership_id=dealership.id,
        audit_date=audit_date,
        auditor_name=auditor_name,
        status=Status.SCHEDULED,
    )
    db.add(audit)
    db.flush()
    activity_services.log_event(
        db,
        actor=actor,
        entity_type="audit",
        entity_id=audit.id,
        action="schedule",
        after={"dealership_id": dealership.id, "audit_date": audit_date.isoformat()},
    )
    return audit


def _simple_transition(
    db: Session,
    *,
    audit_id: str,
    to_state: models.AuditStatusEnum,
    actor: Optional[str],
) -> models.Audit:
    audit = get_audit(db, audit_id)
    apply_transition(
        db,
        actor=actor,
        entity_type="audit",
        entity_id=audit.id,
        from_state=audit.status,
        to_state=to_state,
        before_obj={"status": audit.status.value},
        after_obj={"status": to_state.value},
    )
    audit.status = to_state
    db.flush()
    return audit


def start_audit(db: Session, *, audit_id: str, actor: Optional[str] = None) -> models.Audit:
    return _simple_transition(db, audit_id=audit_id, to_state=Status.IN_PROGRESS, actor=actor)


def cancel_audit(db: Session, *, audit_id: str, actor: Optional[str] = None) -> models.Audit:
    return _simple_transition(db, audit_id=audit_id, to_state=Status.CANCELLED, actor=actor)


def complete_audit(
    db: Session,
    *,
    audit_id: str,
    observed_vins: Iterable[str],
    actor: Optional[str] = None,
) -> models.Audit:
    """Run the reconciliation for a previously scheduled audit."""
    audit = get_audit(db, audit_id)
    if Status.COMPLETED.value not in allowed_targets("audit", audit.status):
        raise TransitionError(
            code="invalid_transition",
            detail=[{"field": "status", "reason": f"Cannot transition from {audit.status.value} to COMPLETED"}],
        )
    observed = _normalize_observed(observed_vins)
    dealership = dealership_services.get_dealership(db, audit.dealership_id)

    with _unit_of_work(db, dealership.credit_line_id):
        _reconcile(db, audit=audit, observed_vins=observed, actor=actor)
        _complete(db, audit=audit, actor=actor)
    return audit
