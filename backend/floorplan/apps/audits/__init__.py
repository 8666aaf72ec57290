"""
Audit reconciliation.

Compares a dealership's physically observed vehicles with the units the
ledger believes are financed and in stock.
"""

from . import models  # noqa: F401
