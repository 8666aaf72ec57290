"""
Activity trail.

Append-only record of every ledger action and status transition.
"""

from . import models  # noqa: F401
