from __future__ import annotations

import enum

from sqlalchemy import Column, Date, DateTime, Enum as SAEnum, Index, String
from sqlalchemy.orm import relationship

from floorplan.database import Base
from floorplan.utils.dates import utcnow
from floorplan.utils.identifiers import generate_uuid7


class DealershipStatusEnum(str, enum.Enum):
    ONBOARDING = "ONBOARDING"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"


class Dealership(Base):
    __tablename__ = "dealerships"
    __table_args__ = (Index("ix_dealerships_status", "status"),)

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    name = Column(String(255), nullable=False)
    principal_contact = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    status = Column(
        SAEnum(DealershipStatusEnum, name="dealership_status_enum", native_enum=False),
        nullable=False,
        default=DealershipStatusEnum.ONBOARDING,
    )
    agreement_date = Column(Date, nullable=True)
    # Plain column rather than a FK: credit_lines already points back here.
    credit_line_id = Column(String(36), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    units = relationship("InventoryUnit", back_populates="dealership", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Dealership id={self.id} name={self.name!r} status={self.status}>"
