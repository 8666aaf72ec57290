from __future__ import annotations

import os
import sys
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"

from floorplan.database import Base  # noqa: E402
import floorplan  # noqa: E402,F401  registers every table
from floorplan.apps.credit_lines import services as credit_services  # noqa: E402
from floorplan.apps.dealerships import schemas as dealership_schemas  # noqa: E402
from floorplan.apps.dealerships import services as dealership_services  # noqa: E402
from floorplan.apps.inventory import schemas as inventory_schemas  # noqa: E402


@pytest.fixture()
def db_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def file_session_factory(tmp_path):
    """Sessions on a file-backed database, for tests that need several connections."""
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    finally:
        engine.dispose()


@pytest.fixture()
def make_dealership(db_session):
    def _make(name: str = "Sharma Motors", *, active: bool = True):
        dealership = dealership_services.create_dealership(
            db_session,
            payload=dealership_schemas.DealershipCreate(
                name=name,
                principal_contact="Anil Sharma",
                location="Pune",
            ),
            actor="ops@lender.test",
        )
        if active:
            dealership_services.activate_dealership(db_session, dealership_id=dealership.id)
        db_session.commit()
        return dealership

    return _make


@pytest.fixture()
def make_credit_line(db_session, make_dealership):
    """Active dealership with an open line; limit in minor units."""

    def _make(limit_minor: int = 10_000_000_00, rate: str = "12.0", name: str = "Sharma Motors"):
        dealership = make_dealership(name)
        line = credit_services.open_credit_line(
            db_session,
            dealership_id=dealership.id,
            total_limit_minor=limit_minor,
            interest_rate=Decimal(rate),
            actor="ops@lender.test",
        )
        db_session.commit()
        return dealership, line

    return _make


@pytest.fixture()
def descriptor():
    return inventory_schemas.UnitDescriptor(
        oem_invoice_number="INV-2024-0001",
        make="Tata",
        model="Nexon",
        year=2024,
    )


@pytest.fixture()
def vin():
    def _vin(n: int) -> str:
        return f"MAT{n:014d}"

    return _vin
