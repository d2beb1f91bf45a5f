"""
Authorization predicates: charity ownership and administrator membership.
"""

from treasurehunt.access.guard import AccessGuard

__all__ = ["AccessGuard"]
