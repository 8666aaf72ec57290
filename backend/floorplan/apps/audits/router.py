from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from floorplan.database import get_db, get_read_db

from . import models, schemas, services

router = APIRouter(prefix="/audits", tags=["audits"])


@router.post("/run", response_model=schemas.AuditRead, status_code=status.HTTP_201_CREATED)
def run_audit(
    payload: schemas.AuditRunRequest,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    return services.run_audit(
        db,
        dealership_id=payload.dealership_id,
        auditor_name=payload.auditor_name,
        observed_vins=payload.observed_vins,
        audit_date=payload.audit_date,
        actor=actor,
    )


@router.post("/schedule", response_model=schemas.AuditRead, status_code=status.HTTP_201_CREATED)
def schedule_audit(
    payload: schemas.AuditScheduleRequest,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    audit = services.schedule_audit(
        db,
        dealership_id=payload.dealership_id,
        auditor_name=payload.auditor_name,
        audit_date=payload.audit_date,
        actor=actor,
    )
    db.commit()
    db.refresh(audit)
    return audit


@router.get("", response_model=List[schemas.AuditRead])
def list_audits(
    dealership_id: Optional[str] = None,
    status: Optional[models.AuditStatusEnum] = None,
    db: Session = Depends(get_read_db),
):
    return services.list_audits(db, dealership_id=dealership_id, status=status)


@router.get("/{audit_id}", response_model=schemas.AuditRead)
def get_audit(audit_id: str, db: Session = Depends(get_read_db)):
    return services.get_audit(db, audit_id)


@router.post("/{audit_id}/start", response_model=schemas.AuditRead)
def start_audit(
    audit_id: str,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    audit = services.start_audit(db, audit_id=audit_id, actor=actor)
    db.commit()
    db.refresh(audit)
    return audit


@router.post("/{audit_id}/cancel", response_model=schemas.AuditRead)
def cancel_audit(
    audit_id: str,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    audit = services.cancel_audit(db, audit_id=audit_id, actor=actor)
    db.commit()
    db.refresh(audit)
    return audit


@router.post("/{audit_id}/complete", response_model=schemas.AuditRead)
def complete_audit(
    audit_id: str,
    payload: schemas.AuditCompleteRequest,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    return services.complete_audit(db, audit_id=audit_id, observed_vins=payload.observed_vins, actor=actor)
