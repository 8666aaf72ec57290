from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from . import models


class DealershipCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    principal_contact: str = Field(..., min_length=1, max_length=255)
    location: str = Field(..., min_length=1, max_length=255)
    agreement_date: Optional[date] = None


class DealershipRead(DealershipCreate):
    id: str
    status: models.DealershipStatusEnum
    credit_line_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class DealershipSummary(BaseModel):
    dealership: DealershipRead
    total_limit: Optional[Decimal] = None
    available_credit: Optional[Decimal] = None
    interest_accrued: Optional[Decimal] = None
    utilization: Decimal = Decimal("0")
    in_stock_count: int = 0
    in_stock_value: Decimal = Decimal("0")
    sold_pending_count: int = 0
    audit_missing_count: int = 0
    repaid_count: int = 0
