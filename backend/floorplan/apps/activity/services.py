from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from . import models, schemas

logger = logging.getLogger(__name__)


def create_activity_event(db: Session, *, data: schemas.ActivityEventCreate) -> models.ActivityEvent:
    event = models.ActivityEvent(
        entity_type=data.entity_type,
        entity_id=data.entity_id,
        action=data.action,
        actor=data.actor,
        before=data.before,
        after=data.after,
        correlation_id=data.correlation_id,
        metadata_json=data.metadata,
    )
    if data.occurred_at is not None:
        event.occurred_at = data.occurred_at
    db.add(event)
    db.flush()
    return event


def log_event(
    db: Session,
    *,
    actor: Optional[str],
    entity_type: str,
    entity_id: str,
    action: str,
    before: Optional[dict] = None,
    after: Optional[dict] = None,
    correlation_id: Optional[str] = None,
    metadata: Optional[dict] = None,
    critical: bool = False,
) -> Optional[models.ActivityEvent]:
    """
    Best-effort activity logger.
    - For balance-changing actions (fund, repay, reserve, release), raise on failure.
    - For everything else, log a warning and continue.
    """
    try:
        return create_activity_event(
            db,
            data=schemas.ActivityEventCreate(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                actor=actor,
                before=before,
                after=after,
                correlation_id=correlation_id,
                metadata=metadata,
            ),
        )
    except Exception:
        logger.warning(
            "Failed to log activity event",
            extra={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": action,
                "critical": critical,
            },
        )
        if critical:
            raise
        return None


def list_activity_events(
    db: Session,
    *,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Sequence[models.ActivityEvent]:
    query = db.query(models.ActivityEvent)
    if entity_type:
        query = query.filter(models.ActivityEvent.entity_type == entity_type)
    if entity_id:
        query = query.filter(models.ActivityEvent.entity_id == entity_id)
    if action:
        query = query.filter(models.ActivityEvent.action == action)
    if start:
        query = query.filter(models.ActivityEvent.occurred_at >= start)
    if end:
        query = query.filter(models.ActivityEvent.occurred_at <= end)
    return query.order_by(models.ActivityEvent.occurred_at.desc(), models.ActivityEvent.id.desc()).all()
