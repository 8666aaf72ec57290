# backend/floorplan/__init__.py
"""
Import ORM models from each app so that:

- Alembic and Base.metadata.create_all() see all tables.
- The package exposes a clear surface.

The actual model classes are kept in floorplan/apps/*/models.py.
"""

from .apps.activity import models as activity_models          # activity trail
from .apps.dealerships import models as dealership_models     # dealer registry
from .apps.credit_lines import models as credit_line_models   # credit lines + entry log
from .apps.inventory import models as inventory_models        # financed vehicles
from .apps.audits import models as audit_models               # physical audits

__all__ = [
    "activity_models",
    "dealership_models",
    "credit_line_models",
    "inventory_models",
    "audit_models",
]
