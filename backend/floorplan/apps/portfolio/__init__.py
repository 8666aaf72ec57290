"""
Portfolio dashboard.

Read-only aggregates across every dealership and credit line.
"""
