"""
Contract-held value: the shared vault and the administrator sweep.
"""

from treasurehunt.treasury.sweep import AdminSweep
from treasurehunt.treasury.vault import Vault

__all__ = ["Vault", "AdminSweep"]
