# backend/floorplan/main.py
import logging
import os
from typing import List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import InvariantViolation, LedgerError

from .apps.activity.router import router as activity_router
from .apps.dealerships.router import router as dealerships_router
from .apps.credit_lines.router import router as credit_lines_router
from .apps.inventory.router import router as inventory_router
from .apps.audits.router import router as audits_router
from .apps.portfolio.router import router as portfolio_router

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://localhost:4173",
    ]


app = FastAPI(title="Floor-plan Ledger API", version="1.0.0")
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
def ledger_error_handler(request: Request, exc: LedgerError):
    if isinstance(exc, InvariantViolation):
        logger.error("Invariant violation", extra={"path": request.url.path, "detail": exc.message})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "Floor-plan ledger backend is running"}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


app.include_router(dealerships_router)
app.include_router(credit_lines_router)
app.include_router(inventory_router)
app.include_router(audits_router)
app.include_router(portfolio_router)
app.include_router(activity_router)
