"""
Credit line ledger.

One revolving facility per dealership. Owns the available-credit balance,
interest bookkeeping and the append-only entry log.
"""

from . import models  # noqa: F401
