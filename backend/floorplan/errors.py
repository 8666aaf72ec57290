"""
Typed ledger errors.

Services raise these; ``floorplan.main`` turns any ``LedgerError`` into a JSON
response carrying ``code`` and ``detail``. ``InvariantViolation`` is the one
kind that the ledger logs instead of raising (see ``release``).
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LedgerError(Exception):
    status_code = 400
    error_code = "ledger_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.error_code, "detail": self.message}
        if self.context:
            payload["context"] = self.context
        return payload


class NotFound(LedgerError):
    status_code = 404
    error_code = "not_found"

    def __init__(self, entity: str, identifier: Any) -> None:
        super().__init__(f"{entity} {identifier} not found.", entity=entity, id=str(identifier))
        self.entity = entity
        self.identifier = identifier


class ValidationFailed(LedgerError):
    status_code = 422
    error_code = "validation_failed"


class InvalidTransition(LedgerError):
    status_code = 409
    error_code = "invalid_transition"


class InsufficientCredit(LedgerError):
    status_code = 409
    error_code = "insufficient_credit"

    def __init__(self, requested: int, available: int, message: Optional[str] = None) -> None:
        super().__init__(
            message or "Requested amount exceeds available credit.",
            requested_minor=requested,
            available_minor=available,
        )
        self.requested = requested
        self.available = available


class CreditLineNotActive(InsufficientCredit):
    error_code = "credit_line_not_active"

    def __init__(self, requested: int, available: int, status: str) -> None:
        super().__init__(requested, available, message=f"Credit line is {status}; funding is not allowed.")
        self.status = status
        self.context["status"] = status


class DuplicateVin(LedgerError):
    status_code = 409
    error_code = "duplicate_vin"

    def __init__(self, vin: str) -> None:
        super().__init__(f"VIN {vin} has already been financed.", vin=vin)
        self.vin = vin


class DuplicateCreditLine(LedgerError):
    status_code = 409
    error_code = "duplicate_credit_line"


class CreditLineAlreadyAttached(LedgerError):
    status_code = 409
    error_code = "credit_line_already_attached"


class DealershipNotActive(LedgerError):
    status_code = 409
    error_code = "dealership_not_active"


class InvariantViolation(LedgerError):
    status_code = 500
    error_code = "invariant_violation"
