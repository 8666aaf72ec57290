from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from floorplan.utils.identifiers import is_valid_vin, normalize_vin

from . import models


class UnitDescriptor(BaseModel):
    oem_invoice_number: str = Field(..., min_length=1, max_length=64)
    make: str = Field(..., min_length=1, max_length=64)
    model: str = Field(..., min_length=1, max_length=64)
    year: int = Field(..., ge=1900, le=2100)


class FundUnitRequest(UnitDescriptor):
    dealership_id: str
    vin: str
    financed_amount: Decimal = Field(..., gt=0, decimal_places=2)

    @field_validator("vin")
    @classmethod
    def _check_vin(cls, value: str) -> str:
        value = normalize_vin(value)
        if not is_valid_vin(value):
            raise ValueError("VIN must be 17 characters from A-H, J-N, P, R-Z and 0-9.")
        return value


class RepayUnitRequest(BaseModel):
    repayment_amount: Decimal = Field(..., gt=0, decimal_places=2)


class InventoryUnitRead(BaseModel):
    vin: str
    dealership_id: str
    credit_line_id: str
    oem_invoice_number: str
    make: str
    model: str
    year: int
    financed_amount: Decimal
    funding_date: datetime
    status: models.InventoryUnitStatusEnum
    hypothecation_status: models.HypothecationStatusEnum
    days_in_stock: int
    sold_at: Optional[datetime] = None
    repayment_date: Optional[datetime] = None
    repayment_amount: Optional[Decimal] = None

    class Config:
        from_attributes = True
