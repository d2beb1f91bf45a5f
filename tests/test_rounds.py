"""
tests/test_rounds.py

Round lifecycle: creation, id sequence, content updates and cancellation.
"""

import pytest

from treasurehunt import (
    InvalidInput,
    InvalidState,
    NotFound,
    RoundStatus,
    Unauthorized,
    make_commitment,
)
from treasurehunt.core.models import CONTENT_REF_LENGTH, EventType


OWNER       = "charity-owner-0xaa"
OTHER_OWNER = "charity-owner-0xbb"
CONTENT_REF = "Qm" + "a" * 44
NEW_REF     = "Qm" + "b" * 44


class TestCreate:

    def test_first_round_id_is_one(self, hunt, commitment):
        assert hunt.create(OWNER, 1, CONTENT_REF, 0, commitment) == 1

    def test_ids_are_sequential(self, hunt, commitment):
        ids = [hunt.create(OWNER, 1, CONTENT_REF, 0, commitment) for _ in range(3)]
        assert ids == [1, 2, 3]

    def test_new_round_is_open_and_empty(self, hunt, commitment):
        rid = hunt.create(OWNER, 1, CONTENT_REF, 500, commitment)
        r = hunt.get_round(rid)
        assert r.status is RoundStatus.OPEN
        assert r.total_deposit == 0
        assert r.participant_count == 0
        assert r.charity_id == 1
        assert r.creator == OWNER
        assert r.content_ref == CONTENT_REF
        assert r.commitment_hash == commitment
        assert r.deposit_target == 500

    def test_rounds_from_different_charities_share_the_counter(self, hunt, commitment):
        assert hunt.create(OWNER, 1, CONTENT_REF, 0, commitment) == 1
        assert hunt.create(OTHER_OWNER, 2, CONTENT_REF, 0, commitment) == 2

    def test_unknown_charity_is_not_found(self, hunt, commitment):
        with pytest.raises(NotFound):
            hunt.create(OWNER, 99, CONTENT_REF, 0, commitment)

    def test_non_owner_is_unauthorized(self, hunt, commitment):
        with pytest.raises(Unauthorized):
            hunt.create(OTHER_OWNER, 1, CONTENT_REF, 0, commitment)

    @pytest.mark.parametrize("length", [0, CONTENT_REF_LENGTH - 1, CONTENT_REF_LENGTH + 1])
    def test_content_ref_must_be_exactly_46_chars(self, hunt, commitment, length):
        with pytest.raises(InvalidInput):
            hunt.create(OWNER, 1, "x" * length, 0, commitment)

    @pytest.mark.parametrize("bad", ["", "abc", "A" * 64, "g" * 64, None])
    def test_malformed_commitment_rejected(self, hunt, bad):
        with pytest.raises(InvalidInput):
            hunt.create(OWNER, 1, CONTENT_REF, 0, bad)

    @pytest.mark.parametrize("bad", [-1, True, "10", 1.5])
    def test_bad_deposit_target_rejected(self, hunt, commitment, bad):
        with pytest.raises(InvalidInput):
            hunt.create(OWNER, 1, CONTENT_REF, bad, commitment)

    def test_failed_create_does_not_consume_an_id(self, hunt, commitment):
        with pytest.raises(InvalidInput):
            hunt.create(OWNER, 1, "too-short", 0, commitment)
        with pytest.raises(Unauthorized):
            hunt.create(OTHER_OWNER, 1, CONTENT_REF, 0, commitment)
        assert hunt.create(OWNER, 1, CONTENT_REF, 0, commitment) == 1

    def test_create_records_one_event(self, hunt, commitment):
        before = len(hunt.events)
        rid = hunt.create(OWNER, 1, CONTENT_REF, 0, commitment)
        events = hunt.events[before:]
        assert [e.event_type for e in events] == [EventType.ROUND_CREATED]
        assert events[0].payload["round_id"] == rid
        assert events[0].payload["commitment_hash"] == commitment


def _settle(hunt, round_id, commitment, how):
    """Move an open round to Closed, either by its owner or by a claim."""
    hunt.deposit("player-1", round_id, 100)
    if how == "closed":
        hunt.close(OWNER, 1, round_id)
    else:
        hunt.claim("player-1", round_id, commitment)


class TestUpdate:

    def test_owner_replaces_content_ref(self, hunt, round_id):
        hunt.update(OWNER, 1, round_id, NEW_REF)
        assert hunt.get_round(round_id).content_ref == NEW_REF

    def test_commitment_is_untouched(self, hunt, round_id, commitment):
        hunt.update(OWNER, 1, round_id, NEW_REF)
        assert hunt.get_round(round_id).commitment_hash == commitment

    def test_non_owner_is_unauthorized(self, hunt, round_id):
        with pytest.raises(Unauthorized):
            hunt.update(OTHER_OWNER, 1, round_id, NEW_REF)
        assert hunt.get_round(round_id).content_ref == CONTENT_REF

    @pytest.mark.parametrize("how", ["closed", "claimed"])
    @pytest.mark.parametrize("caller,charity_id", [(OTHER_OWNER, 1), (OTHER_OWNER, 2)])
    def test_non_owner_is_unauthorized_after_settlement(
        self, hunt, round_id, commitment, how, caller, charity_id
    ):
        _settle(hunt, round_id, commitment, how)
        with pytest.raises(Unauthorized):
            hunt.update(caller, charity_id, round_id, NEW_REF)

    def test_owner_of_other_charity_is_unauthorized(self, hunt, round_id):
        # OTHER_OWNER owns charity 2, but the round belongs to charity 1
        with pytest.raises(Unauthorized):
            hunt.update(OTHER_OWNER, 2, round_id, NEW_REF)

    def test_unknown_round_is_not_found(self, hunt, round_id):
        with pytest.raises(NotFound):
            hunt.update(OWNER, 1, round_id + 1, NEW_REF)

    def test_bad_length_rejected(self, hunt, round_id):
        with pytest.raises(InvalidInput):
            hunt.update(OWNER, 1, round_id, NEW_REF + "x")
        assert hunt.get_round(round_id).content_ref == CONTENT_REF

    def test_closed_round_cannot_be_updated(self, hunt, round_id):
        hunt.close(OWNER, 1, round_id)
        with pytest.raises(InvalidState):
            hunt.update(OWNER, 1, round_id, NEW_REF)


class TestClose:

    def test_owner_closes_round(self, hunt, round_id):
        hunt.close(OWNER, 1, round_id)
        assert hunt.get_round(round_id).status is RoundStatus.CLOSED

    def test_close_twice_is_invalid_state(self, hunt, round_id):
        hunt.close(OWNER, 1, round_id)
        with pytest.raises(InvalidState):
            hunt.close(OWNER, 1, round_id)

    def test_non_owner_is_unauthorized(self, hunt, round_id):
        with pytest.raises(Unauthorized):
            hunt.close(OTHER_OWNER, 1, round_id)
        assert hunt.get_round(round_id).is_open

    @pytest.mark.parametrize("how", ["closed", "claimed"])
    @pytest.mark.parametrize("caller,charity_id", [(OTHER_OWNER, 1), (OTHER_OWNER, 2)])
    def test_non_owner_is_unauthorized_after_settlement(
        self, hunt, round_id, commitment, how, caller, charity_id
    ):
        _settle(hunt, round_id, commitment, how)
        with pytest.raises(Unauthorized):
            hunt.close(caller, charity_id, round_id)

    def test_deposits_stay_in_contract(self, hunt, round_id):
        hunt.deposit("player-1", round_id, 70)
        hunt.close(OWNER, 1, round_id)
        assert hunt.balance == 70
        assert hunt.get_round(round_id).total_deposit == 70

    def test_close_event_reports_stranded_amount(self, hunt, round_id):
        hunt.deposit("player-1", round_id, 70)
        hunt.close(OWNER, 1, round_id)
        last = hunt.events[-1]
        assert last.event_type == EventType.ROUND_CLOSED
        assert last.payload["stranded_amount"] == "70"

    def test_closed_round_cannot_be_claimed(self, hunt, round_id, commitment):
        hunt.close(OWNER, 1, round_id)
        with pytest.raises(InvalidState):
            hunt.claim("player-1", round_id, commitment)


class TestOwnershipTransfer:

    def test_new_owner_manages_existing_round(self, hunt, registry, round_id):
        registry.transfer(1, "charity-owner-new")
        with pytest.raises(Unauthorized):
            hunt.update(OWNER, 1, round_id, NEW_REF)
        hunt.update("charity-owner-new", 1, round_id, NEW_REF)
        assert hunt.get_round(round_id).content_ref == NEW_REF


class TestReads:

    def test_get_unknown_round(self, hunt):
        with pytest.raises(NotFound):
            hunt.get_round(1)

    def test_get_round_returns_a_copy(self, hunt, round_id):
        r = hunt.get_round(round_id)
        r.total_deposit = 10 ** 6
        assert hunt.get_round(round_id).total_deposit == 0

    def test_list_rounds_in_id_order(self, hunt, commitment):
        for _ in range(3):
            hunt.create(OWNER, 1, CONTENT_REF, 0, commitment)
        assert [r.id for r in hunt.list_rounds()] == [1, 2, 3]

    def test_bool_is_not_a_round_id(self, hunt, round_id):
        with pytest.raises(NotFound):
            hunt.get_round(True)

    def test_commitment_helper_matches_sha3(self):
        import hashlib
        assert make_commitment("abc") == hashlib.sha3_256(b"abc").hexdigest()
