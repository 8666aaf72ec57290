from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from floorplan.apps.activity import services as activity_services
from floorplan.apps.dealerships import models as dealership_models
from floorplan.apps.dealerships import services as dealership_services
from floorplan.apps.workflow import apply_transition
from floorplan.errors import (
    CreditLineNotActive,
    DealershipNotActive,
    DuplicateCreditLine,
    InsufficientCredit,
    InvariantViolation,
    NotFound,
    ValidationFailed,
)
from floorplan.utils.dates import utcnow
from floorplan.utils.money import round_minor

from . import models
from .locks import locked_transaction

logger = logging.getLogger(__name__)

Status = models.CreditLineStatusEnum
EntryType = models.CreditLineEntryTypeEnum

DAY_COUNT_BASIS = int(os.getenv("FLOORPLAN_DAY_COUNT_BASIS", "365"))
UTILIZATION_PLACES = Decimal("0.0001")


@dataclass(frozen=True)
class Reservation:
    credit_line_id: str
    amount_minor: int
    available_after_minor: int
    entry_id: int


@dataclass(frozen=True)
class LedgerReplay:
    available_credit_minor: int
    interest_accrued_minor: int


@dataclass(frozen=True)
class ConservationReport:
    credit_line_id: str
    drawn_minor: int
    outstanding_principal_minor: int
    replayed_available_minor: int
    available_credit_minor: int

    @property
    def balanced(self) -> bool:
        return (
            self.drawn_minor == self.outstanding_principal_minor
            and self.replayed_available_minor == self.available_credit_minor
        )


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def get_credit_line(db: Session, credit_line_id: str) -> models.CreditLine:
    line = db.get(models.CreditLine, credit_line_id)
    if line is None:
        raise NotFound("Credit line", credit_line_id)
    return line


def list_credit_lines(db: Session, *, dealership_id: Optional[str] = None) -> List[models.CreditLine]:
    query = db.query(models.CreditLine)
    if dealership_id:
        query = query.filter(models.CreditLine.dealership_id == dealership_id)
    return query.order_by(models.CreditLine.opened_at, models.CreditLine.id).all()


def list_entries(db: Session, *, credit_line_id: str) -> List[models.CreditLineEntry]:
    get_credit_line(db, credit_line_id)
    return (
        db.query(models.CreditLineEntry)
        .filter(models.CreditLineEntry.credit_line_id == credit_line_id)
        .order_by(models.CreditLineEntry.id)
        .all()
    )


def lock_credit_line(db: Session, credit_line_id: str) -> models.CreditLine:
    """
    Re-read the line from the database for update.

    Only call while holding ``locked_transaction`` for the same line.
    """
    line = (
        db.query(models.CreditLine)
        .filter(models.CreditLine.id == credit_line_id)
        .populate_existing()
        .with_for_update(of=models.CreditLine)
        .one_or_none()
    )
    if line is None:
        raise NotFound("Credit line", credit_line_id)
    return line


def utilization_of(line: models.CreditLine) -> Decimal:
    if not line.total_limit_minor:
        return Decimal("0")
    return (Decimal(line.drawn_minor) / Decimal(line.total_limit_minor)).quantize(UTILIZATION_PLACES)


def utilization(db: Session, *, credit_line_id: str) -> Decimal:
    return utilization_of(get_credit_line(db, credit_line_id))


# ---------------------------------------------------------------------------
# Opening
# ---------------------------------------------------------------------------


def open_credit_line(
    db: Session,
    *,
    dealership_id: str,
    total_limit_minor: int,
    interest_rate: Decimal,
    actor: Optional[str] = None,
) -> models.CreditLine:
    if total_limit_minor < 0:
        raise ValidationFailed("total_limit must not be negative.")
    if interest_rate < 0:
        raise ValidationFailed("interest_rate must not be negative.")

    dealership = dealership_services.get_dealership(db, dealership_id)
    if dealership.status != dealership_models.DealershipStatusEnum.ACTIVE:
        raise DealershipNotActive(
            f"Dealership {dealership_id} is {dealership.status.value}; credit lines require an active dealership.",
            dealership_id=dealership_id,
            status=dealership.status.value,
        )
    existing = db.query(models.CreditLine).filter(models.CreditLine.dealership_id == dealership_id).first()
    if existing is not None or dealership.credit_line_id:
        raise DuplicateCreditLine(
            f"Dealership {dealership_id} already has a credit line.",
            dealership_id=dealership_id,
            credit_line_id=existing.id if existing else dealership.credit_line_id,
        )

    line = models.CreditLine(
        dealership_id=dealership_id,
        total_limit_minor=total_limit_minor,
        available_credit_minor=total_limit_minor,
        interest_rate=interest_rate,
        interest_accrued_minor=0,
        status=Status.ACTIVE,
        opened_at=utcnow(),
    )
    db.add(line)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise DuplicateCreditLine(
            f"Dealership {dealership_id} already has a credit line.",
            dealership_id=dealership_id,
        )

    dealership_services.attach_credit_line(db, dealership_id=dealership_id, credit_line_id=line.id, actor=actor)
    activity_services.log_event(
        db,
        actor=actor,
        entity_type="credit_line",
        entity_id=line.id,
        action="open",
        after={
            "dealership_id": dealership_id,
            "total_limit_minor": total_limit_minor,
            "interest_rate": str(interest_rate),
        },
        critical=True,
    )
    logger.info(
        "Credit line opened",
        extra={"credit_line_id": line.id, "dealership_id": dealership_id, "total_limit_minor": total_limit_minor},
    )
    return line


# ---------------------------------------------------------------------------
# Balance changes (callers hold the line lock)
# ---------------------------------------------------------------------------


def _append_entry(
    db: Session,
    *,
    line: models.CreditLine,
    entry_type: models.CreditLineEntryTypeEnum,
    amount_minor: int,
    balance_after_minor: int,
    vin: Optional[str] = None,
    accrual_date: Optional[date] = None,
    actor: Optional[str] = None,
) -> models.CreditLineEntry:
    entry = models.CreditLineEntry(
        credit_line_id=line.id,
        entry_type=entry_type,
        amount_minor=amount_minor,
        balance_after_minor=balance_after_minor,
        vin=vin,
        accrual_date=accrual_date,
        actor=actor,
        occurred_at=utcnow(),
    )
    db.add(entry)
    db.flush()
    return entry


def apply_reservation(
    db: Session,
    *,
    line: models.CreditLine,
    amount_minor: int,
    vin: Optional[str] = None,
    actor: Optional[str] = None,
) -> Reservation:
    if amount_minor <= 0:
        raise ValidationFailed("Reservation amount must be strictly positive.")
    if line.status != Status.ACTIVE:
        raise CreditLineNotActive(amount_minor, line.available_credit_minor, line.status.value)
    if amount_minor > line.available_credit_minor:
        logger.info(
            "Reservation rejected",
            extra={
                "credit_line_id": line.id,
                "requested_minor": amount_minor,
                "available_minor": line.available_credit_minor,
            },
        )
        raise InsufficientCredit(amount_minor, line.available_credit_minor)

    line.available_credit_minor -= amount_minor
    entry = _append_entry(
        db,
        line=line,
        entry_type=EntryType.RESERVED,
        amount_minor=amount_minor,
        balance_after_minor=line.available_credit_minor,
        vin=vin,
        actor=actor,
    )
    activity_services.log_event(
        db,
        actor=actor,
        entity_type="credit_line",
        entity_id=line.id,
        action="reserve",
        after={"amount_minor": amount_minor, "available_minor": line.available_credit_minor, "vin": vin},
        critical=True,
    )
    return Reservation(
        credit_line_id=line.id,
        amount_minor=amount_minor,
        available_after_minor=line.available_credit_minor,
        entry_id=entry.id,
    )


def apply_release(
    db: Session,
    *,
    line: models.CreditLine,
    amount_minor: int,
    vin: Optional[str] = None,
    actor: Optional[str] = None,
) -> int:
    """Restore credit, clamped to the limit. Returns the amount actually released."""
    if amount_minor <= 0:
        raise ValidationFailed("Release amount must be strictly positive.")

    headroom = line.total_limit_minor - line.available_credit_minor
    applied = amount_minor
    if amount_minor > headroom:
        applied = headroom
        violation = InvariantViolation(
            "Release exceeds drawn balance; clamped to total limit.",
            credit_line_id=line.id,
            requested_minor=amount_minor,
            applied_minor=applied,
            vin=vin,
        )
        logger.error(violation.message, extra=violation.context)
        activity_services.log_event(
            db,
            actor=actor,
            entity_type="credit_line",
            entity_id=line.id,
            action="invariant_violation",
            after=violation.to_dict(),
            critical=True,
        )

    line.available_credit_minor += applied
    _append_entry(
        db,
        line=line,
        entry_type=EntryType.RELEASED,
        amount_minor=applied,
        balance_after_minor=line.available_credit_minor,
        vin=vin,
        actor=actor,
    )
    activity_services.log_event(
        db,
        actor=actor,
        entity_type="credit_line",
        entity_id=line.id,
        action="release",
        after={"amount_minor": applied, "available_minor": line.available_credit_minor, "vin": vin},
        critical=True,
    )
    return applied


# ---------------------------------------------------------------------------
# Public ledger operations (each one is its own locked unit of work)
# ---------------------------------------------------------------------------


def reserve(
    db: Session,
    *,
    credit_line_id: str,
    amount_minor: int,
    vin: Optional[str] = None,
    actor: Optional[str] = None,
) -> Reservation:
    with locked_transaction(db, credit_line_id):
        line = lock_credit_line(db, credit_line_id)
        reservation = apply_reservation(db, line=line, amount_minor=amount_minor, vin=vin, actor=actor)
    logger.info(
        "Credit reserved",
        extra={"credit_line_id": credit_line_id, "amount_minor": amount_minor},
    )
    return reservation


def release(
    db: Session,
    *,
    credit_line_id: str,
    amount_minor: int,
    vin: Optional[str] = None,
    actor: Optional[str] = None,
) -> models.CreditLine:
    with locked_transaction(db, credit_line_id):
        line = lock_credit_line(db, credit_line_id)
        applied = apply_release(db, line=line, amount_minor=amount_minor, vin=vin, actor=actor)
    logger.info(
        "Credit released",
        extra={"credit_line_id": credit_line_id, "amount_minor": applied},
    )
    return line


def accrue_interest(
    db: Session,
    *,
    credit_line_id: str,
    as_of: date,
    actor: Optional[str] = None,
) -> models.CreditLine:
    """
    Simple daily interest on the drawn balance since the last calculation date.

    Running it again for a date on or before the last calculation date is a no-op.
    """
    with locked_transaction(db, credit_line_id):
        line = lock_credit_line(db, credit_line_id)
        since = line.last_interest_calculation_date or line.opened_at.date()
        days = (as_of - since).days
        if days <= 0:
            return line

        interest_minor = round_minor(
            Decimal(line.drawn_minor) * Decimal(line.interest_rate) / Decimal(100) * days / DAY_COUNT_BASIS
        )
        line.interest_accrued_minor += interest_minor
        line.last_interest_calculation_date = as_of
        _append_entry(
            db,
            line=line,
            entry_type=EntryType.INTEREST_ACCRUED,
            amount_minor=interest_minor,
            balance_after_minor=line.interest_accrued_minor,
            accrual_date=as_of,
            actor=actor,
        )
        activity_services.log_event(
            db,
            actor=actor,
            entity_type="credit_line",
            entity_id=line.id,
            action="accrue_interest",
            after={"interest_minor": interest_minor, "days": days, "as_of": as_of.isoformat()},
        )
    logger.info(
        "Interest accrued",
        extra={"credit_line_id": credit_line_id, "interest_minor": interest_minor, "as_of": as_of.isoformat()},
    )
    return line


def settle_interest(
    db: Session,
    *,
    credit_line_id: str,
    amount_minor: int,
    actor: Optional[str] = None,
) -> models.CreditLine:
    with locked_transaction(db, credit_line_id):
        line = lock_credit_line(db, credit_line_id)
        if amount_minor <= 0:
            raise ValidationFailed("Settlement amount must be strictly positive.")
        if amount_minor > line.interest_accrued_minor:
            raise ValidationFailed(
                "Settlement exceeds accrued interest.",
                requested_minor=amount_minor,
                accrued_minor=line.interest_accrued_minor,
            )
        line.interest_accrued_minor -= amount_minor
        _append_entry(
            db,
            line=line,
            entry_type=EntryType.INTEREST_SETTLED,
            amount_minor=amount_minor,
            balance_after_minor=line.interest_accrued_minor,
            actor=actor,
        )
        activity_services.log_event(
            db,
            actor=actor,
            entity_type="credit_line",
            entity_id=line.id,
            action="settle_interest",
            after={"amount_minor": amount_minor, "interest_accrued_minor": line.interest_accrued_minor},
            critical=True,
        )
    return line


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


def _transition(
    db: Session,
    *,
    credit_line_id: str,
    to_state: models.CreditLineStatusEnum,
    actor: Optional[str],
) -> models.CreditLine:
    with locked_transaction(db, credit_line_id):
        line = lock_credit_line(db, credit_line_id)
        apply_transition(
            db,
            actor=actor,
            entity_type="credit_line",
            entity_id=line.id,
            from_state=line.status,
            to_state=to_state,
            before_obj={
                "status": line.status.value,
                "total_limit_minor": line.total_limit_minor,
                "available_credit_minor": line.available_credit_minor,
            },
            after_obj={"status": to_state.value, "credit_line_id": line.id},
        )
        line.status = to_state
        db.flush()
    return line


def suspend_credit_line(db: Session, *, credit_line_id: str, actor: Optional[str] = None) -> models.CreditLine:
    return _transition(db, credit_line_id=credit_line_id, to_state=Status.SUSPENDED, actor=actor)


def reactivate_credit_line(db: Session, *, credit_line_id: str, actor: Optional[str] = None) -> models.CreditLine:
    return _transition(db, credit_line_id=credit_line_id, to_state=Status.ACTIVE, actor=actor)


def place_under_review(db: Session, *, credit_line_id: str, actor: Optional[str] = None) -> models.CreditLine:
    return _transition(db, credit_line_id=credit_line_id, to_state=Status.UNDER_REVIEW, actor=actor)


def close_credit_line(db: Session, *, credit_line_id: str, actor: Optional[str] = None) -> models.CreditLine:
    return _transition(db, credit_line_id=credit_line_id, to_state=Status.INACTIVE, actor=actor)


# ---------------------------------------------------------------------------
# Replay and conservation
# ---------------------------------------------------------------------------


def replay_balances(db: Session, *, credit_line_id: str) -> LedgerReplay:
    line = get_credit_line(db, credit_line_id)
    available = line.total_limit_minor
    interest = 0
    for entry in list_entries(db, credit_line_id=credit_line_id):
        if entry.entry_type == EntryType.RESERVED:
            available -= entry.amount_minor
        elif entry.entry_type == EntryType.RELEASED:
            available += entry.amount_minor
        elif entry.entry_type == EntryType.INTEREST_ACCRUED:
            interest += entry.amount_minor
        elif entry.entry_type == EntryType.INTEREST_SETTLED:
            interest -= entry.amount_minor
    return LedgerReplay(available_credit_minor=available, interest_accrued_minor=interest)


def outstanding_principal_minor(db: Session, *, dealership_id: str) -> int:
    from floorplan.apps.inventory import models as inventory_models

    total = (
        db.query(func.coalesce(func.sum(inventory_models.InventoryUnit.financed_amount_minor), 0))
        .filter(
            inventory_models.InventoryUnit.dealership_id == dealership_id,
            inventory_models.InventoryUnit.status.in_(inventory_models.OUTSTANDING_STATUSES),
        )
        .scalar()
    )
    return int(total or 0)


def check_conservation(db: Session, *, credit_line_id: str) -> ConservationReport:
    line = get_credit_line(db, credit_line_id)
    replay = replay_balances(db, credit_line_id=credit_line_id)
    report = ConservationReport(
        credit_line_id=line.id,
        drawn_minor=line.drawn_minor,
        outstanding_principal_minor=outstanding_principal_minor(db, dealership_id=line.dealership_id),
        replayed_available_minor=replay.available_credit_minor,
        available_credit_minor=line.available_credit_minor,
    )
    if not report.balanced:
        logger.error(
            "Credit line out of balance",
            extra={
                "credit_line_id": line.id,
                "drawn_minor": report.drawn_minor,
                "outstanding_minor": report.outstanding_principal_minor,
                "replayed_available_minor": report.replayed_available_minor,
            },
        )
    return report
