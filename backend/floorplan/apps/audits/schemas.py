from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from . import models


class AuditRunRequest(BaseModel):
    dealership_id: str
    auditor_name: str = Field(..., min_length=1, max_length=255)
    observed_vins: List[str] = Field(default_factory=list)
    audit_date: Optional[date] = None


class AuditScheduleRequest(BaseModel):
    dealership_id: str
    auditor_name: str = Field(..., min_length=1, max_length=255)
    audit_date: date


class AuditCompleteRequest(BaseModel):
    observed_vins: List[str] = Field(default_factory=list)


class AuditedVehicleRead(BaseModel):
    vin: str
    verification_status: models.VerificationStatusEnum
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class AuditRead(BaseModel):
    id: str
    dealership_id: str
    audit_date: date
    auditor_name: str
    status: models.AuditStatusEnum
    completed_at: Optional[datetime] = None
    created_at: datetime
    audited_vehicles: List[AuditedVehicleRead] = Field(default_factory=list)

    class Config:
        from_attributes = True
