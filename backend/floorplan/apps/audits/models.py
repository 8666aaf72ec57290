from __future__ import annotations

import enum

from sqlalchemy import Column, Date, DateTime, Enum as SAEnum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from floorplan.database import Base
from floorplan.utils.dates import utcnow
from floorplan.utils.identifiers import generate_uuid7


class AuditStatusEnum(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class VerificationStatusEnum(str, enum.Enum):
    VERIFIED = "VERIFIED"
    MISSING = "MISSING"
    SOLD_UNREPORTED = "SOLD_UNREPORTED"


class Audit(Base):
    __tablename__ = "audits"
    __table_args__ = (Index("ix_audits_dealership_date", "dealership_id", "audit_date"),)

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    dealership_id = Column(String(36), ForeignKey("dealerships.id", ondelete="RESTRICT"), nullable=False, index=True)
    audit_date = Column(Date, nullable=False)
    auditor_name = Column(String(255), nullable=False)
    status = Column(
        SAEnum(AuditStatusEnum, name="audit_status_enum", native_enum=False),
        nullable=False,
        default=AuditStatusEnum.SCHEDULED,
        index=True,
    )
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    audited_vehicles = relationship(
        "AuditedVehicle",
        back_populates="audit",
        lazy="selectin",
        order_by="AuditedVehicle.id",
    )


class AuditedVehicle(Base):
    __tablename__ = "audited_vehicles"
    __table_args__ = (Index("ix_audited_vehicles_audit", "audit_id"),)

    id = Column(Integer, primary_key=True, index=True)
    audit_id = Column(String(36), ForeignKey("audits.id", ondelete="CASCADE"), nullable=False)
    vin = Column(String(17), nullable=False, index=True)
    verification_status = Column(
        SAEnum(VerificationStatusEnum, name="verification_status_enum", native_enum=False),
        nullable=False,
    )
    notes = Column(Text, nullable=True)

    audit = relationship("Audit", back_populates="audited_vehicles")
