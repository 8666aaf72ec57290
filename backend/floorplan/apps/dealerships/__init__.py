"""
Dealership registry.

Dealership records and their lifecycle status; referenced by every other app.
"""

from . import models  # noqa: F401
