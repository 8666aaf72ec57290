from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from floorplan.database import get_db, get_read_db
from floorplan.utils.money import to_minor

from . import models, schemas, services

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.post("/fund", response_model=schemas.InventoryUnitRead, status_code=status.HTTP_201_CREATED)
def fund_unit(
    payload: schemas.FundUnitRequest,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    return services.fund_unit(
        db,
        dealership_id=payload.dealership_id,
        vin=payload.vin,
        descriptor=payload,
        financed_amount_minor=to_minor(payload.financed_amount),
        actor=actor,
    )


@router.get("", response_model=List[schemas.InventoryUnitRead])
def list_inventory(
    dealership_id: Optional[str] = None,
    status: Optional[models.InventoryUnitStatusEnum] = None,
    db: Session = Depends(get_read_db),
):
    return services.list_inventory(db, dealership_id=dealership_id, status=status)


@router.get("/{vin}", response_model=schemas.InventoryUnitRead)
def get_unit(vin: str, db: Session = Depends(get_read_db)):
    return services.get_unit(db, vin)


@router.post("/{vin}/sell", response_model=schemas.InventoryUnitRead)
def mark_sold(
    vin: str,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    return services.mark_sold(db, vin=vin, actor=actor)


@router.post("/{vin}/repay", response_model=schemas.InventoryUnitRead)
def repay_unit(
    vin: str,
    payload: schemas.RepayUnitRequest,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    return services.repay_unit(
        db,
        vin=vin,
        repayment_amount_minor=to_minor(payload.repayment_amount),
        actor=actor,
    )


@router.post("/{vin}/recover", response_model=schemas.InventoryUnitRead)
def recover_unit(
    vin: str,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    return services.recover_unit(db, vin=vin, actor=actor)


@router.post("/{vin}/hypothecation/complete", response_model=schemas.InventoryUnitRead)
def complete_hypothecation(
    vin: str,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    unit = services.complete_hypothecation(db, vin=vin, actor=actor)
    db.commit()
    db.refresh(unit)
    return unit


@router.post("/{vin}/hypothecation/noc", response_model=schemas.InventoryUnitRead)
def issue_noc(
    vin: str,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    unit = services.issue_noc(db, vin=vin, actor=actor)
    db.commit()
    db.refresh(unit)
    return unit
