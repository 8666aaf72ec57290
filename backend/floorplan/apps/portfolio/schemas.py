from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel


class PortfolioSummary(BaseModel):
    total_disbursed: Decimal = Decimal("0")
    total_limit: Decimal = Decimal("0")
    total_available: Decimal = Decimal("0")
    utilization: Decimal = Decimal("0")
    outstanding_principal: Decimal = Decimal("0")
    active_dealerships: int = 0
    in_stock_units: int = 0
    suspended_credit_lines: int = 0
    upcoming_audits: int = 0
