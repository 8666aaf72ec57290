from __future__ import annotations

from sqlalchemy import Column, DateTime, Index, JSON, String, desc
from sqlalchemy.orm import synonym

from ...database import Base
from ...utils.dates import utcnow
from ...utils.identifiers import generate_uuid7


class ActivityEvent(Base):
    """
    Append-only trail for fundings, repayments, audits and status changes.
    """

    __tablename__ = "activity_events"
    __table_args__ = (
        Index("ix_activity_events_entity", "entity_type", "entity_id"),
        Index("ix_activity_events_action", "action"),
        Index("ix_activity_events_time_desc", desc("occurred_at")),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    entity_type = Column(String(64), nullable=False, index=True)
    entity_id = Column(String(64), nullable=False, index=True)
    action = Column(String(64), nullable=False)
    actor = Column(String(128), nullable=True, index=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    before = Column(JSON, nullable=True)
    after = Column(JSON, nullable=True)
    correlation_id = Column(String(64), nullable=True, index=True)
    metadata_json = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    before_json = synonym("before")
    after_json = synonym("after")

    def __repr__(self) -> str:
        return f"<ActivityEvent id={self.id} entity={self.entity_type}:{self.entity_id} action={self.action}>"
