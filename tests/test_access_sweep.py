"""
tests/test_access_sweep.py

Administrator predicate, administrator set changes, the balance sweep and
rejection of plain transfers.
"""

import pytest

from treasurehunt import (
    InMemoryCharityRegistry,
    InvalidInput,
    InvalidState,
    NotFound,
    TransferFailure,
    TreasureHunt,
    Unauthorized,
)
from treasurehunt.core.models import EventType


OWNER  = "charity-owner-0xaa"
ADMIN  = "admin-0x01"
PLAYER = "player-0x01"


class TestWithdraw:

    def test_admin_sweeps_fees(self, hunt, round_id, commitment):
        hunt.deposit(PLAYER, round_id, 100)
        hunt.claim(PLAYER, round_id, commitment)

        amount = hunt.withdraw(ADMIN, "treasury")
        assert amount == 1
        assert hunt.balance == 0
        assert hunt.credited("treasury") == 1

    def test_sweep_includes_open_and_stranded_deposits(self, hunt, round_id, commitment):
        hunt.deposit(PLAYER, round_id, 40)
        hunt.close(OWNER, 1, round_id)
        open_round = hunt.create(OWNER, 1, "Qm" + "z" * 44, 0, commitment)
        hunt.deposit(PLAYER, open_round, 25)

        assert hunt.withdraw(ADMIN, "treasury") == 65
        assert hunt.balance == 0

    def test_empty_balance_withdraws_zero(self, hunt):
        assert hunt.withdraw(ADMIN, "treasury") == 0
        assert hunt.events[-1].event_type == EventType.FUNDS_WITHDRAWN

    def test_non_admin_is_unauthorized(self, hunt, round_id):
        hunt.deposit(PLAYER, round_id, 50)
        with pytest.raises(Unauthorized):
            hunt.withdraw(OWNER, OWNER)
        assert hunt.balance == 50

    def test_empty_destination(self, hunt):
        with pytest.raises(InvalidInput):
            hunt.withdraw(ADMIN, "")

    def test_refusing_destination_keeps_balance(self, hunt, round_id):
        hunt.deposit(PLAYER, round_id, 50)

        def refuse(amount):
            raise RuntimeError("closed account")

        hunt.register_recipient("treasury", refuse)
        with pytest.raises(TransferFailure):
            hunt.withdraw(ADMIN, "treasury")
        assert hunt.balance == 50
        assert hunt.credited("treasury") == 0

    def test_reentrant_withdraw_cannot_double_sweep(self, hunt, round_id):
        hunt.deposit(PLAYER, round_id, 50)

        def again(amount):
            hunt.withdraw(ADMIN, "treasury")

        hunt.register_recipient("treasury", again)
        with pytest.raises(TransferFailure):
            hunt.withdraw(ADMIN, "treasury")
        assert hunt.balance == 50


class TestDirectTransfer:

    def test_receive_is_rejected(self, hunt):
        with pytest.raises(InvalidInput):
            hunt.receive("someone", 10)
        assert hunt.balance == 0

    def test_receive_leaves_no_event(self, hunt):
        before = len(hunt.events)
        with pytest.raises(InvalidInput):
            hunt.receive("someone", 10)
        assert len(hunt.events) == before


class TestAdministrators:

    def test_deploy_requires_an_admin(self, registry):
        with pytest.raises(InvalidInput):
            TreasureHunt(registry, admins=[])

    def test_initial_admin(self, hunt):
        assert hunt.is_admin(ADMIN)
        assert not hunt.is_admin(OWNER)

    def test_grant_then_withdraw(self, hunt):
        hunt.grant_admin(ADMIN, "admin-0x02")
        assert hunt.is_admin("admin-0x02")
        hunt.withdraw("admin-0x02", "treasury")

    def test_grant_is_idempotent(self, hunt):
        hunt.grant_admin(ADMIN, "admin-0x02")
        before = len(hunt.events)
        hunt.grant_admin(ADMIN, "admin-0x02")
        assert len(hunt.events) == before

    def test_non_admin_cannot_grant(self, hunt):
        with pytest.raises(Unauthorized):
            hunt.grant_admin(OWNER, OWNER)
        assert not hunt.is_admin(OWNER)

    def test_revoke(self, hunt):
        hunt.grant_admin(ADMIN, "admin-0x02")
        hunt.revoke_admin("admin-0x02", ADMIN)
        assert not hunt.is_admin(ADMIN)
        with pytest.raises(Unauthorized):
            hunt.withdraw(ADMIN, "treasury")

    def test_cannot_revoke_last_admin(self, hunt):
        with pytest.raises(InvalidState):
            hunt.revoke_admin(ADMIN, ADMIN)
        assert hunt.is_admin(ADMIN)

    def test_revoke_unknown_account(self, hunt):
        with pytest.raises(NotFound):
            hunt.revoke_admin(ADMIN, "nobody")


class TestOwnerPredicate:

    def test_unknown_charity_is_never_owned(self, hunt):
        assert not hunt.guard.is_owner(OWNER, 99)

    def test_owner_follows_registry(self, hunt, registry):
        assert hunt.guard.is_owner(OWNER, 1)
        registry.transfer(1, "someone-else")
        assert not hunt.guard.is_owner(OWNER, 1)

    def test_registry_rejects_bad_share(self):
        reg = InMemoryCharityRegistry()
        with pytest.raises(InvalidInput):
            reg.register(1, owner=OWNER, revenue_share=101)
