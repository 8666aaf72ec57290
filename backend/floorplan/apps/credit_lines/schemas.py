from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from . import models


class CreditLineOpen(BaseModel):
    dealership_id: str
    total_limit: Decimal = Field(..., ge=0, decimal_places=2)
    interest_rate: Decimal = Field(..., ge=0, le=100, decimal_places=3)


class CreditLineRead(BaseModel):
    id: str
    dealership_id: str
    total_limit: Decimal
    available_credit: Decimal
    drawn: Decimal
    interest_rate: Decimal
    interest_accrued: Decimal
    last_interest_calculation_date: Optional[date] = None
    status: models.CreditLineStatusEnum
    opened_at: datetime

    class Config:
        from_attributes = True


class CreditLineEntryRead(BaseModel):
    id: int
    credit_line_id: str
    entry_type: models.CreditLineEntryTypeEnum
    amount: Decimal
    balance_after: Decimal
    vin: Optional[str] = None
    accrual_date: Optional[date] = None
    actor: Optional[str] = None
    occurred_at: datetime

    class Config:
        from_attributes = True


class InterestAccrualRequest(BaseModel):
    as_of: date


class InterestSettlementRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)


class UtilizationRead(BaseModel):
    credit_line_id: str
    utilization: Decimal


class ConservationRead(BaseModel):
    credit_line_id: str
    drawn: Decimal
    outstanding_principal: Decimal
    replayed_available: Decimal
    available_credit: Decimal
    balanced: bool
