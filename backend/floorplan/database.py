"""
Engines and sessions for the floor-plan ledger.

Writes go to ``DATABASE_WRITE_URL`` (or ``DATABASE_URL``); dashboard reads
may point at a replica through ``DATABASE_READ_URL``. Pool sizing applies to
server databases only.
"""

import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

WRITE_DB_URL = os.getenv("DATABASE_WRITE_URL") or os.getenv("DATABASE_URL")
READ_DB_URL = os.getenv("DATABASE_READ_URL") or WRITE_DB_URL

if not WRITE_DB_URL:
    raise RuntimeError("Set DATABASE_WRITE_URL or DATABASE_URL before importing the ledger.")


def _pool_settings() -> dict:
    return {
        "pool_pre_ping": True,
        "pool_size": int(os.getenv("DB_POOL_SIZE", "10")),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "20")),
        "pool_timeout": int(os.getenv("DB_POOL_TIMEOUT", "30")),
        "pool_recycle": int(os.getenv("DB_POOL_RECYCLE_SEC", "1800")),
    }


def _engine_kwargs(url: str) -> dict:
    # SQLite pools reject the QueuePool sizing arguments.
    if url.startswith("sqlite"):
        return {"future": True, "connect_args": {"check_same_thread": False}}
    return {"future": True, **_pool_settings()}


write_engine = create_engine(WRITE_DB_URL, **_engine_kwargs(WRITE_DB_URL))
read_engine = create_engine(READ_DB_URL, **_engine_kwargs(READ_DB_URL))

WriteSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=write_engine, future=True)
ReadSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=read_engine, future=True)

Base = declarative_base()


def get_write_db():
    """Session for endpoints that fund, repay, audit or change status."""
    db = WriteSessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_read_db():
    db = ReadSessionLocal()
    try:
        yield db
    finally:
        db.close()


engine = write_engine
SessionLocal = WriteSessionLocal
get_db = get_write_db
