from __future__ import annotations

from .guards import guard_audit_complete, guard_credit_line_close, guard_noc_issue

WORKFLOWS = {
    "dealership": {
        "transitions": {
            "ONBOARDING": {"ACTIVE": [], "INACTIVE": []},
            "ACTIVE": {"SUSPENDED": [], "INACTIVE": []},
            "SUSPENDED": {"ACTIVE": [], "INACTIVE": []},
            "INACTIVE": {},
        }
    },
    "credit_line": {
        "transitions": {
            "ACTIVE": {
                "SUSPENDED": [],
                "UNDER_REVIEW": [],
                "INACTIVE": [guard_credit_line_close],
            },
            "SUSPENDED": {
                "ACTIVE": [],
                "INACTIVE": [guard_credit_line_close],
            },
            "UNDER_REVIEW": {
                "ACTIVE": [],
                "SUSPENDED": [],
                "INACTIVE": [guard_credit_line_close],
            },
            "INACTIVE": {},
        }
    },
    "inventory_unit": {
        "transitions": {
            "PENDING_FUNDING": {"IN_STOCK": []},
            "IN_STOCK": {
                "SOLD_PENDING_PAYMENT": [],
                "REPAID": [],
                "AUDIT_MISSING": [],
            },
            "SOLD_PENDING_PAYMENT": {"REPAID": []},
            "AUDIT_MISSING": {"IN_STOCK": []},
            "REPAID": {},
        }
    },
    "hypothecation": {
        "transitions": {
            "PENDING": {"COMPLETED": []},
            "COMPLETED": {"NOC_ISSUED": [guard_noc_issue]},
            "NOC_ISSUED": {},
        }
    },
    "audit": {
        "transitions": {
            "SCHEDULED": {
                "IN_PROGRESS": [],
                "COMPLETED": [guard_audit_complete],
                "CANCELLED": [],
            },
            "IN_PROGRESS": {
                "COMPLETED": [guard_audit_complete],
                "CANCELLED": [],
            },
            "COMPLETED": {},
            "CANCELLED": {},
        }
    },
}
