from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from floorplan.database import get_read_db

from . import schemas, services


router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("/", response_model=List[schemas.ActivityEventRead])
def list_activity_events(
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: Session = Depends(get_read_db),
):
    return services.list_activity_events(
        db,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        start=start,
        end=end,
    )
