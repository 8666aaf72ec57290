from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from floorplan.database import Base
from floorplan.utils.dates import ensure_aware, utcnow
from floorplan.utils.money import to_major


class InventoryUnitStatusEnum(str, enum.Enum):
    PENDING_FUNDING = "PENDING_FUNDING"
    IN_STOCK = "IN_STOCK"
    SOLD_PENDING_PAYMENT = "SOLD_PENDING_PAYMENT"
    REPAID = "REPAID"
    AUDIT_MISSING = "AUDIT_MISSING"


class HypothecationStatusEnum(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    NOC_ISSUED = "NOC_ISSUED"


# Units whose principal is still drawn against the credit line.
OUTSTANDING_STATUSES = (
    InventoryUnitStatusEnum.IN_STOCK,
    InventoryUnitStatusEnum.SOLD_PENDING_PAYMENT,
    InventoryUnitStatusEnum.AUDIT_MISSING,
)

# Units the ledger believes are financed and held by the dealership.
FINANCED_IN_STOCK_STATUSES = (
    InventoryUnitStatusEnum.IN_STOCK,
    InventoryUnitStatusEnum.SOLD_PENDING_PAYMENT,
)


def compute_days_in_stock(
    funding_date: datetime,
    repayment_date: Optional[datetime] = None,
    as_of: Optional[datetime] = None,
) -> int:
    end = repayment_date or as_of or utcnow()
    elapsed = ensure_aware(end) - ensure_aware(funding_date)
    return max(elapsed.days, 0)


class InventoryUnit(Base):
    __tablename__ = "inventory_units"
    __table_args__ = (
        Index("ix_inventory_units_dealership_status", "dealership_id", "status"),
        Index("ix_inventory_units_credit_line", "credit_line_id"),
        CheckConstraint("financed_amount_minor > 0", name="ck_inventory_unit_financed_positive"),
    )

    vin = Column(String(17), primary_key=True)
    dealership_id = Column(String(36), ForeignKey("dealerships.id", ondelete="RESTRICT"), nullable=False, index=True)
    credit_line_id = Column(String(36), ForeignKey("credit_lines.id", ondelete="RESTRICT"), nullable=False)
    oem_invoice_number = Column(String(64), nullable=False)
    make = Column(String(64), nullable=False)
    model = Column(String(64), nullable=False)
    year = Column(Integer, nullable=False)

    financed_amount_minor = Column(BigInteger, nullable=False)
    funding_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    status = Column(
        SAEnum(InventoryUnitStatusEnum, name="inventory_unit_status_enum", native_enum=False),
        nullable=False,
        default=InventoryUnitStatusEnum.PENDING_FUNDING,
        index=True,
    )
    hypothecation_status = Column(
        SAEnum(HypothecationStatusEnum, name="hypothecation_status_enum", native_enum=False),
        nullable=False,
        default=HypothecationStatusEnum.PENDING,
    )
    sold_at = Column(DateTime(timezone=True), nullable=True)
    repayment_date = Column(DateTime(timezone=True), nullable=True)
    repayment_amount_minor = Column(BigInteger, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    dealership = relationship("Dealership", back_populates="units")

    @property
    def financed_amount(self):
        return to_major(self.financed_amount_minor)

    @property
    def repayment_amount(self):
        if self.repayment_amount_minor is None:
            return None
        return to_major(self.repayment_amount_minor)

    @property
    def days_in_stock(self) -> int:
        return compute_days_in_stock(self.funding_date, self.repayment_date)

    def __repr__(self) -> str:
        return f"<InventoryUnit vin={self.vin} status={self.status} financed={self.financed_amount_minor}>"
