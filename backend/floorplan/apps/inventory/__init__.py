"""
Inventory unit registry.

One record per financed vehicle, keyed by VIN. Funding and repayment drive
the credit line balance.
"""

from . import models  # noqa: F401
