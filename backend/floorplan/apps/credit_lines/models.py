from __future__ import annotations

import enum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from floorplan.database import Base
from floorplan.utils.dates import utcnow
from floorplan.utils.identifiers import generate_uuid7
from floorplan.utils.money import to_major


class CreditLineStatusEnum(str, enum.Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    UNDER_REVIEW = "UNDER_REVIEW"
    INACTIVE = "INACTIVE"


class CreditLineEntryTypeEnum(str, enum.Enum):
    RESERVED = "RESERVED"
    RELEASED = "RELEASED"
    INTEREST_ACCRUED = "INTEREST_ACCRUED"
    INTEREST_SETTLED = "INTEREST_SETTLED"


class CreditLine(Base):
    __tablename__ = "credit_lines"
    __table_args__ = (
        UniqueConstraint("dealership_id", name="uq_credit_line_dealership"),
        CheckConstraint(
            "available_credit_minor >= 0 AND available_credit_minor <= total_limit_minor",
            name="ck_credit_line_available_within_limit",
        ),
        CheckConstraint("interest_accrued_minor >= 0", name="ck_credit_line_interest_non_negative"),
        Index("ix_credit_lines_status", "status"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    dealership_id = Column(String(36), ForeignKey("dealerships.id", ondelete="RESTRICT"), nullable=False, index=True)
    total_limit_minor = Column(BigInteger, nullable=False)
    available_credit_minor = Column(BigInteger, nullable=False)
    interest_rate = Column(Numeric(6, 3), nullable=False)
    interest_accrued_minor = Column(BigInteger, nullable=False, default=0)
    last_interest_calculation_date = Column(Date, nullable=True)
    status = Column(
        SAEnum(CreditLineStatusEnum, name="credit_line_status_enum", native_enum=False),
        nullable=False,
        default=CreditLineStatusEnum.ACTIVE,
    )
    opened_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    dealership = relationship("Dealership", lazy="select")
    entries = relationship(
        "CreditLineEntry",
        back_populates="credit_line",
        lazy="select",
        order_by="CreditLineEntry.id",
    )

    @property
    def drawn_minor(self) -> int:
        return self.total_limit_minor - self.available_credit_minor

    @property
    def total_limit(self):
        return to_major(self.total_limit_minor)

    @property
    def available_credit(self):
        return to_major(self.available_credit_minor)

    @property
    def interest_accrued(self):
        return to_major(self.interest_accrued_minor)

    @property
    def drawn(self):
        return to_major(self.drawn_minor)

    def __repr__(self) -> str:
        return (
            f"<CreditLine id={self.id} available={self.available_credit_minor}/"
            f"{self.total_limit_minor} status={self.status}>"
        )


class CreditLineEntry(Base):
    """
    Append-only balance log. Replaying it reproduces ``available_credit_minor``
    and ``interest_accrued_minor`` on the owning line.
    """

    __tablename__ = "credit_line_entries"
    __table_args__ = (
        UniqueConstraint("credit_line_id", "entry_type", "accrual_date", name="uq_credit_line_entry_accrual"),
        Index("ix_credit_line_entries_line_time", "credit_line_id", "occurred_at"),
        CheckConstraint("amount_minor >= 0", name="ck_credit_line_entry_amount_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    credit_line_id = Column(String(36), ForeignKey("credit_lines.id", ondelete="CASCADE"), nullable=False, index=True)
    entry_type = Column(
        SAEnum(CreditLineEntryTypeEnum, name="credit_line_entry_type_enum", native_enum=False),
        nullable=False,
        index=True,
    )
    amount_minor = Column(BigInteger, nullable=False)
    vin = Column(String(17), nullable=True, index=True)
    accrual_date = Column(Date, nullable=True)
    balance_after_minor = Column(BigInteger, nullable=False)
    actor = Column(String(128), nullable=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    credit_line = relationship("CreditLine", back_populates="entries")

    @property
    def amount(self):
        return to_major(self.amount_minor)

    @property
    def balance_after(self):
        return to_major(self.balance_after_minor)
