"""
Access guard: the two authorization predicates every entrypoint uses.

    is_owner(caller, charity_id)  — registry.owner_of(charity_id) == caller
    is_admin(caller)              — caller is in the local administrator set

Both are pure reads. Entrypoints call require_owner / require_admin, which
raise Unauthorized when the predicate is false. There is no role class
hierarchy: each operation names the predicate it needs.
"""

import logging
from typing import FrozenSet, Iterable, Set

from treasurehunt.core.exceptions import (
    InvalidInput,
    InvalidState,
    NotFound,
    Unauthorized,
)
from treasurehunt.core.models import EventType
from treasurehunt.ledger.audit import AuditLog
from treasurehunt.registry.gateway import RegistryGateway

logger = logging.getLogger(__name__)


class AccessGuard:

    def __init__(
        self,
        registry:  RegistryGateway,
        admins:    Iterable[str],
        audit_log: AuditLog,
    ) -> None:
        admin_set = set(admins or ())
        if not admin_set:
            raise InvalidInput("at least one administrator is required")
        for admin in admin_set:
            _require_address(admin, "administrator")
        self.registry  = registry
        self.audit_log = audit_log
        self._admins: Set[str] = admin_set

    # ── Predicates ────────────────────────────────────────────

    def is_owner(self, caller: str, charity_id: int) -> bool:
        try:
            return self.registry.owner_of(charity_id) == caller
        except NotFound:
            return False

    def is_admin(self, caller: str) -> bool:
        return caller in self._admins

    def require_owner(self, caller: str, charity_id: int) -> None:
        if not self.is_owner(caller, charity_id):
            raise Unauthorized(
                "Caller does not own charity",
                {"caller": caller, "charity_id": charity_id},
            )

    def require_admin(self, caller: str) -> None:
        if not self.is_admin(caller):
            raise Unauthorized("Caller is not an administrator", {"caller": caller})

    @property
    def admins(self) -> FrozenSet[str]:
        return frozenset(self._admins)

    # ── Administrator set ─────────────────────────────────────

    def grant_admin(self, caller: str, account: str) -> None:
        self.require_admin(caller)
        _require_address(account, "account")
        if account in self._admins:
            return
        self._admins.add(account)
        self.audit_log.stage(
            EventType.ADMIN_GRANTED, {"account": account, "granted_by": caller}
        )
        logger.info("Administrator %s granted by %s", account, caller)

    def revoke_admin(self, caller: str, account: str) -> None:
        self.require_admin(caller)
        if account not in self._admins:
            raise NotFound("Account is not an administrator", {"account": account})
        if len(self._admins) == 1:
            raise InvalidState("Cannot revoke the last administrator")
        self._admins.discard(account)
        self.audit_log.stage(
            EventType.ADMIN_REVOKED, {"account": account, "revoked_by": caller}
        )
        logger.info("Administrator %s revoked by %s", account, caller)

    # ── Transaction support ───────────────────────────────────

    def snapshot(self) -> Set[str]:
        return set(self._admins)

    def restore(self, snapshot: Set[str]) -> None:
        self._admins = set(snapshot)


def _require_address(value, label: str) -> None:
    if not isinstance(value, str) or not value:
        raise InvalidInput(f"{label} must be a non-empty address")
