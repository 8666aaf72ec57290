from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from floorplan.database import get_db, get_read_db

from . import models, schemas, services

router = APIRouter(prefix="/dealerships", tags=["dealerships"])


@router.post("", response_model=schemas.DealershipRead, status_code=status.HTTP_201_CREATED)
def create_dealership(
    payload: schemas.DealershipCreate,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    dealership = services.create_dealership(db, payload=payload, actor=actor)
    db.commit()
    db.refresh(dealership)
    return dealership


@router.get("", response_model=List[schemas.DealershipRead])
def list_dealerships(
    status: Optional[models.DealershipStatusEnum] = None,
    db: Session = Depends(get_read_db),
):
    return services.list_dealerships(db, status=status)


@router.get("/{dealership_id}", response_model=schemas.DealershipRead)
def get_dealership(dealership_id: str, db: Session = Depends(get_read_db)):
    return services.get_dealership(db, dealership_id)


@router.get("/{dealership_id}/summary", response_model=schemas.DealershipSummary)
def dealership_summary(dealership_id: str, db: Session = Depends(get_read_db)):
    return services.dealership_summary(db, dealership_id=dealership_id)


@router.post("/{dealership_id}/activate", response_model=schemas.DealershipRead)
def activate_dealership(
    dealership_id: str,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    dealership = services.activate_dealership(db, dealership_id=dealership_id, actor=actor)
    db.commit()
    db.refresh(dealership)
    return dealership


@router.post("/{dealership_id}/suspend", response_model=schemas.DealershipRead)
def suspend_dealership(
    dealership_id: str,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    dealership = services.suspend_dealership(db, dealership_id=dealership_id, actor=actor)
    db.commit()
    db.refresh(dealership)
    return dealership


@router.post("/{dealership_id}/deactivate", response_model=schemas.DealershipRead)
def deactivate_dealership(
    dealership_id: str,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    dealership = services.deactivate_dealership(db, dealership_id=dealership_id, actor=actor)
    db.commit()
    db.refresh(dealership)
    return dealership
