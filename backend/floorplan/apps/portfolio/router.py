from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from floorplan.database import get_read_db

from . import schemas, services

router = APIRouter(prefix="/portfolio", tags=["portfolio"])


@router.get("/summary", response_model=schemas.PortfolioSummary)
def portfolio_summary(db: Session = Depends(get_read_db)):
    return services.portfolio_summary(db)
