from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from floorplan.database import get_db, get_read_db
from floorplan.utils.money import to_major, to_minor

from . import schemas, services

router = APIRouter(prefix="/credit-lines", tags=["credit-lines"])


@router.post("", response_model=schemas.CreditLineRead, status_code=status.HTTP_201_CREATED)
def open_credit_line(
    payload: schemas.CreditLineOpen,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    line = services.open_credit_line(
        db,
        dealership_id=payload.dealership_id,
        total_limit_minor=to_minor(payload.total_limit),
        interest_rate=payload.interest_rate,
        actor=actor,
    )
    db.commit()
    db.refresh(line)
    return line


@router.get("", response_model=List[schemas.CreditLineRead])
def list_credit_lines(dealership_id: Optional[str] = None, db: Session = Depends(get_read_db)):
    return services.list_credit_lines(db, dealership_id=dealership_id)


@router.get("/{credit_line_id}", response_model=schemas.CreditLineRead)
def get_credit_line(credit_line_id: str, db: Session = Depends(get_read_db)):
    return services.get_credit_line(db, credit_line_id)


@router.get("/{credit_line_id}/utilization", response_model=schemas.UtilizationRead)
def get_utilization(credit_line_id: str, db: Session = Depends(get_read_db)):
    return schemas.UtilizationRead(
        credit_line_id=credit_line_id,
        utilization=services.utilization(db, credit_line_id=credit_line_id),
    )


@router.get("/{credit_line_id}/entries", response_model=List[schemas.CreditLineEntryRead])
def list_entries(credit_line_id: str, db: Session = Depends(get_read_db)):
    return services.list_entries(db, credit_line_id=credit_line_id)


@router.get("/{credit_line_id}/conservation", response_model=schemas.ConservationRead)
def check_conservation(credit_line_id: str, db: Session = Depends(get_read_db)):
    report = services.check_conservation(db, credit_line_id=credit_line_id)
    return schemas.ConservationRead(
        credit_line_id=report.credit_line_id,
        drawn=to_major(report.drawn_minor),
        outstanding_principal=to_major(report.outstanding_principal_minor),
        replayed_available=to_major(report.replayed_available_minor),
        available_credit=to_major(report.available_credit_minor),
        balanced=report.balanced,
    )


@router.post("/{credit_line_id}/accrue-interest", response_model=schemas.CreditLineRead)
def accrue_interest(
    credit_line_id: str,
    payload: schemas.InterestAccrualRequest,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    return services.accrue_interest(db, credit_line_id=credit_line_id, as_of=payload.as_of, actor=actor)


@router.post("/{credit_line_id}/settle-interest", response_model=schemas.CreditLineRead)
def settle_interest(
    credit_line_id: str,
    payload: schemas.InterestSettlementRequest,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    return services.settle_interest(
        db,
        credit_line_id=credit_line_id,
        amount_minor=to_minor(payload.amount),
        actor=actor,
    )


@router.post("/{credit_line_id}/suspend", response_model=schemas.CreditLineRead)
def suspend_credit_line(
    credit_line_id: str,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    return services.suspend_credit_line(db, credit_line_id=credit_line_id, actor=actor)


@router.post("/{credit_line_id}/reactivate", response_model=schemas.CreditLineRead)
def reactivate_credit_line(
    credit_line_id: str,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    return services.reactivate_credit_line(db, credit_line_id=credit_line_id, actor=actor)


@router.post("/{credit_line_id}/review", response_model=schemas.CreditLineRead)
def place_under_review(
    credit_line_id: str,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    return services.place_under_review(db, credit_line_id=credit_line_id, actor=actor)


@router.post("/{credit_line_id}/close", response_model=schemas.CreditLineRead)
def close_credit_line(
    credit_line_id: str,
    db: Session = Depends(get_db),
    actor: Optional[str] = Header(None, alias="X-Actor"),
):
    return services.close_credit_line(db, credit_line_id=credit_line_id, actor=actor)
