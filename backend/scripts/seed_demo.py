from __future__ import annotations

import random
from datetime import date, timedelta
from decimal import Decimal

from floorplan.database import WriteSessionLocal
from floorplan.apps.audits import services as audit_services
from floorplan.apps.credit_lines import services as credit_services
from floorplan.apps.dealerships import models as dealership_models
from floorplan.apps.dealerships import schemas as dealership_schemas
from floorplan.apps.dealerships import services as dealership_services
from floorplan.apps.inventory import models as inventory_models
from floorplan.apps.inventory import schemas as inventory_schemas
from floorplan.apps.inventory import services as inventory_services
from floorplan.errors import InsufficientCredit

DEALERSHIPS_COUNT = 8
UNITS_PER_DEALER = 10
AUDITS_COUNT = 4

ACTOR = "seed-demo"
CITIES = ["Bengaluru", "Pune", "Chennai", "Hyderabad", "Mumbai", "Delhi", "Kochi", "Jaipur"]
MODELS = [
    ("Tata", "Nexon", 850_000),
    ("Maruti Suzuki", "Brezza", 950_000),
    ("Mahindra", "XUV700", 1_650_000),
    ("Hyundai", "Creta", 1_250_000),
    ("Kia", "Seltos", 1_300_000),
]
VIN_CHARS = "ABCDEFGHJKLMNPRSTUVWXYZ0123456789"


def _vin(rng: random.Random) -> str:
    return "MA" + "".join(rng.choice(VIN_CHARS) for _ in range(15))


def _get_or_create_dealership(db, index: int) -> dealership_models.Dealership:
    name = f"Demo Motors {index + 1}"
    dealership = db.query(dealership_models.Dealership).filter(dealership_models.Dealership.name == name).first()
    if dealership:
        return dealership
    dealership = dealership_services.create_dealership(
        db,
        payload=dealership_schemas.DealershipCreate(
            name=name,
            principal_contact=f"Principal {index + 1}",
            location=CITIES[index % len(CITIES)],
            agreement_date=date.today() - timedelta(days=30 * (index + 1)),
        ),
        actor=ACTOR,
    )
    # The last dealer stays in onboarding so the dashboard has one.
    if index < DEALERSHIPS_COUNT - 1:
        dealership_services.activate_dealership(db, dealership_id=dealership.id, actor=ACTOR)
    db.commit()
    return dealership


def _ensure_credit_line(db, dealership: dealership_models.Dealership, rng: random.Random) -> None:
    if dealership.credit_line_id or dealership.status != dealership_models.DealershipStatusEnum.ACTIVE:
        return
    credit_services.open_credit_line(
        db,
        dealership_id=dealership.id,
        total_limit_minor=rng.choice([50, 75, 100, 150]) * 100_000 * 100,
        interest_rate=Decimal(rng.choice(["10.50", "11.25", "12.00"])),
        actor=ACTOR,
    )
    db.commit()


def _seed_inventory(db, dealership: dealership_models.Dealership, rng: random.Random) -> None:
    if not dealership.credit_line_id:
        return
    existing = (
        db.query(inventory_models.InventoryUnit)
        .filter(inventory_models.InventoryUnit.dealership_id == dealership.id)
        .count()
    )
    for n in range(existing, UNITS_PER_DEALER):
        make, model, price = rng.choice(MODELS)
        descriptor = inventory_schemas.UnitDescriptor(
            oem_invoice_number=f"OEM-{dealership.id[:8]}-{n + 1:03d}",
            make=make,
            model=model,
            year=rng.choice([2023, 2024]),
        )
        try:
            unit = inventory_services.fund_unit(
                db,
                dealership_id=dealership.id,
                vin=_vin(rng),
                descriptor=descriptor,
                financed_amount_minor=price * 100,
                actor=ACTOR,
            )
        except InsufficientCredit:
            break
        roll = rng.random()
        if roll < 0.2:
            inventory_services.mark_sold(db, vin=unit.vin, actor=ACTOR)
        elif roll < 0.4:
            inventory_services.mark_sold(db, vin=unit.vin, actor=ACTOR)
            inventory_services.repay_unit(
                db,
                vin=unit.vin,
                repayment_amount_minor=int(price * 100 * rng.uniform(1.0, 1.03)),
                actor=ACTOR,
            )


def _seed_audits(db, dealerships, rng: random.Random) -> None:
    financed = [d for d in dealerships if d.credit_line_id]
    for dealership in financed[:AUDITS_COUNT]:
        on_lot = inventory_services.list_inventory(
            db,
            dealership_id=dealership.id,
            status=inventory_models.InventoryUnitStatusEnum.IN_STOCK,
        )
        observed = [unit.vin for unit in on_lot if rng.random() > 0.1]
        audit_services.run_audit(
            db,
            dealership_id=dealership.id,
            auditor_name="Demo Auditor",
            observed_vins=observed,
            actor=ACTOR,
        )
    if financed:
        audit_services.schedule_audit(
            db,
            dealership_id=financed[-1].id,
            auditor_name="Demo Auditor",
            audit_date=date.today() + timedelta(days=14),
            actor=ACTOR,
        )
        db.commit()


def main() -> None:
    rng = random.Random(42)
    db = WriteSessionLocal()
    try:
        dealerships = [_get_or_create_dealership(db, index) for index in range(DEALERSHIPS_COUNT)]
        for dealership in dealerships:
            _ensure_credit_line(db, dealership, rng)
            _seed_inventory(db, dealership, rng)
        _seed_audits(db, dealerships, rng)
    finally:
        db.close()


if __name__ == "__main__":
    main()
