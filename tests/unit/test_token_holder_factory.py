"""
test_token_holder_factory.py - Unit tests for the token holder factory
"""

from datetime import timedelta

import pytest

from tokensale import Unauthorized, PreconditionViolation, ZERO_ADDRESS, UNIT_TYPE_TOKEN_HOLDER_FACTORY
from tokensale.units import (
    create_token_holder_factory_unit, compute_create_token_holder,
    next_holder_symbol, list_holders, get_holder_status, HOLDER_STATUS_LOCKED,
)

from tests.scenario import RELEASE_TIME, apply


@pytest.fixture
def factory_ledger(token_ledger):
    token_ledger.deploy(create_token_holder_factory_unit("HOLDERS", "LEAP", "ops", RELEASE_TIME))
    return token_ledger


class TestFactoryCreation:

    def test_create_factory(self):
        unit = create_token_holder_factory_unit("HOLDERS", "LEAP", "ops", RELEASE_TIME)
        assert unit.unit_type == UNIT_TYPE_TOKEN_HOLDER_FACTORY
        assert unit.state['holders_created'] == 0
        assert unit.state['holders'] == {}

    @pytest.mark.parametrize("owner", ["", " ", None, ZERO_ADDRESS])
    def test_null_owner_rejected(self, owner):
        with pytest.raises(ValueError, match="null"):
            create_token_holder_factory_unit("HOLDERS", "LEAP", owner, RELEASE_TIME)

    def test_invalid_signer_rejected(self):
        with pytest.raises(ValueError):
            create_token_holder_factory_unit("HOLDERS", "LEAP", "ops", RELEASE_TIME, signer="00")


class TestCreateTokenHolder:

    def test_symbols_are_deterministic(self, factory_ledger):
        assert next_holder_symbol(factory_ledger, "HOLDERS") == "HOLDERS-H000001"
        apply(factory_ledger, compute_create_token_holder(factory_ledger, "HOLDERS", "ops", "alice"))
        assert next_holder_symbol(factory_ledger, "HOLDERS") == "HOLDERS-H000002"
        apply(factory_ledger, compute_create_token_holder(factory_ledger, "HOLDERS", "ops", "bob"))
        assert list_holders(factory_ledger, "HOLDERS") == {
            "HOLDERS-H000001": "alice",
            "HOLDERS-H000002": "bob",
        }

    def test_holder_is_deployed(self, factory_ledger):
        apply(factory_ledger, compute_create_token_holder(factory_ledger, "HOLDERS", "ops", "alice"))
        holder = "HOLDERS-H000001"
        assert factory_ledger.has_unit(holder)
        assert factory_ledger.is_registered(holder)
        state = factory_ledger.get_unit_state(holder)
        assert state['factory'] == "HOLDERS"
        assert state['release_after'] == RELEASE_TIME
        assert get_holder_status(factory_ledger, holder) == HOLDER_STATUS_LOCKED

    def test_release_time_override(self, factory_ledger):
        later = RELEASE_TIME + timedelta(days=30)
        apply(factory_ledger, compute_create_token_holder(
            factory_ledger, "HOLDERS", "ops", "alice", release_after=later))
        assert factory_ledger.get_unit_state("HOLDERS-H000001")['release_after'] == later

    def test_created_event(self, factory_ledger):
        apply(factory_ledger, compute_create_token_holder(factory_ledger, "HOLDERS", "ops", "alice"))
        event = factory_ledger.get_events("TokenHolderCreated")[0]
        assert event.address == "HOLDERS"
        assert event.args_dict == {'holder': 'HOLDERS-H000001', 'beneficiary': 'alice'}

    def test_only_owner_creates(self, factory_ledger):
        with pytest.raises(Unauthorized):
            compute_create_token_holder(factory_ledger, "HOLDERS", "alice", "alice")

    def test_null_beneficiary(self, factory_ledger):
        with pytest.raises(PreconditionViolation):
            compute_create_token_holder(factory_ledger, "HOLDERS", "ops", ZERO_ADDRESS)

    def test_signer_inherited(self, token_ledger, signer):
        token_ledger.deploy(create_token_holder_factory_unit(
            "HOLDERS", "LEAP", "ops", RELEASE_TIME, signer=signer[1]))
        apply(token_ledger, compute_create_token_holder(token_ledger, "HOLDERS", "ops", "alice"))
        assert token_ledger.get_unit_state("HOLDERS-H000001")['signer'] == signer[1]
