from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy.orm import Session

GuardResult = List[Dict[str, str]]


def _get_value(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def guard_credit_line_close(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    from floorplan.apps.inventory import models as inventory_models

    credit_line_id = _get_value(after_obj, "credit_line_id") or _get_value(after_obj, "id")
    if not credit_line_id:
        return [{"field": "credit_line_id", "reason": "credit line identifier required"}]

    total_limit = _get_value(before_obj, "total_limit_minor")
    available = _get_value(before_obj, "available_credit_minor")
    missing = []
    if total_limit is not None and available is not None and available != total_limit:
        missing.append({"field": "available_credit", "reason": "outstanding principal must be repaid"})

    open_units = (
        db.query(inventory_models.InventoryUnit)
        .filter(
            inventory_models.InventoryUnit.credit_line_id == credit_line_id,
            inventory_models.InventoryUnit.status.in_(inventory_models.OUTSTANDING_STATUSES),
        )
        .count()
    )
    if open_units > 0:
        missing.append({"field": "inventory", "reason": "financed units are still outstanding"})
    return missing


def guard_noc_issue(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    unit_status = _get_value(after_obj, "unit_status")
    if getattr(unit_status, "value", unit_status) != "REPAID":
        return [{"field": "unit_status", "reason": "NOC can only be issued once the unit is repaid"}]
    return []


def guard_audit_complete(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    missing = []
    if not _get_value(after_obj, "auditor_name"):
        missing.append({"field": "auditor_name", "reason": "auditor required"})
    if not _get_value(after_obj, "completed_at"):
        missing.append({"field": "completed_at", "reason": "completion timestamp required"})
    return missing
