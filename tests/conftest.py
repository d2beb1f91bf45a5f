"""
Shared fixtures: a two-charity registry, a fresh in-memory contract and an
open round for charity 1 (20% revenue share).
"""

import pytest

from treasurehunt import InMemoryCharityRegistry, TreasureHunt, make_commitment


OWNER       = "charity-owner-0xaa"
OTHER_OWNER = "charity-owner-0xbb"
ADMIN       = "admin-0x01"
SECRET      = "under the old oak"
CONTENT_REF = "Qm" + "a" * 44


@pytest.fixture
def registry():
    reg = InMemoryCharityRegistry()
    reg.register(1, owner=OWNER, revenue_share=20)
    reg.register(2, owner=OTHER_OWNER, revenue_share=50)
    return reg


@pytest.fixture
def hunt(registry):
    return TreasureHunt(registry, admins=[ADMIN])


@pytest.fixture
def commitment():
    return make_commitment(SECRET)


@pytest.fixture
def round_id(hunt, commitment):
    """An open round for charity 1."""
    return hunt.create(OWNER, 1, CONTENT_REF, 0, commitment)
