from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from floorplan.apps.activity import services as activity_services
from floorplan.errors import InvalidTransition

from .registry import WORKFLOWS


@dataclass(eq=False)
class TransitionError(InvalidTransition):
    code: str
    detail: List[Dict[str, str]]

    def __post_init__(self) -> None:
        reasons = "; ".join(item.get("reason", "") for item in self.detail)
        InvalidTransition.__init__(self, reasons or self.code)
        self.error_code = self.code

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "detail": self.detail}


def _state(value: Any) -> str:
    return getattr(value, "value", value)


def allowed_targets(entity_type: str, from_state: Any) -> List[str]:
    workflow = WORKFLOWS.get(entity_type, {})
    return sorted(workflow.get("transitions", {}).get(_state(from_state), {}).keys())


def apply_transition(
    db: Session,
    *,
    actor: Optional[str],
    entity_type: str,
    entity_id: str,
    from_state: Any,
    to_state: Any,
    before_obj: Any,
    after_obj: Any,
    correlation_id: Optional[str] = None,
    critical: bool = True,
) -> None:
    """
    Validate ``from_state -> to_state`` against the entity's transition table,
    run its guards, and record the move in the activity trail.

    Callers assign the new status only after this returns.
    """
    from_state = _state(from_state)
    to_state = _state(to_state)

    workflow = WORKFLOWS.get(entity_type)
    if not workflow:
        raise TransitionError(
            code="invalid_transition",
            detail=[{"field": "entity_type", "reason": f"No workflow registered for {entity_type}"}],
        )

    transitions = workflow.get("transitions", {})
    allowed = transitions.get(from_state, {})
    guards = allowed.get(to_state)

    if guards is None:
        raise TransitionError(
            code="invalid_transition",
            detail=[{"field": "status", "reason": f"Cannot transition from {from_state} to {to_state}"}],
        )

    failures: List[Dict[str, str]] = []
    for guard in guards:
        failures.extend(
            guard(
                db,
                before_obj=before_obj,
                after_obj=after_obj,
                from_state=from_state,
                to_state=to_state,
            )
        )

    if failures:
        raise TransitionError(code="missing_requirements", detail=failures)

    before_payload: Dict[str, Any] = {"status": from_state}
    after_payload: Dict[str, Any] = {"status": to_state}
    if isinstance(before_obj, dict):
        before_payload.update({k: v for k, v in before_obj.items() if k != "status"})
    if isinstance(after_obj, dict):
        after_payload.update({k: v for k, v in after_obj.items() if k != "status"})

    activity_services.log_event(
        db,
        actor=actor,
        entity_type=entity_type,
        entity_id=entity_id,
        action="transition",
        before=before_payload,
        after=after_payload,
        correlation_id=correlation_id,
        metadata={"workflow": entity_type},
        critical=critical,
    )
