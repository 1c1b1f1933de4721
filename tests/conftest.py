"""
conftest.py - Shared pytest fixtures for token sale tests

Provides common fixtures used across unit, conformance and functional tests:
- Basic ledgers (empty, funded with ETH)
- Token ledgers
- Sale ledgers (presale, pre-ICO with holder factory, private presale)
- Signing keys for token holder release
"""

import pytest

from tokensale import Ledger, in_base_units, generate_signer
from tokensale.units import create_token_unit

from tests.fake_view import FakeView
from tests.scenario import (
    START, DURING_SALE,
    make_ledger, fund, make_presale, make_pre_ico, make_private_presale,
)


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def empty_ledger():
    """Fresh ledger with no registrations."""
    return Ledger("test", verbose=False, test_mode=True)


@pytest.fixture
def basic_ledger():
    """Ledger with ETH and the standard accounts, nothing funded."""
    return make_ledger()


@pytest.fixture
def funded_ledger(basic_ledger):
    """Basic ledger with alice 5000 ETH, bob 5000 ETH and carol 10 ETH."""
    fund(basic_ledger, alice="5000", bob="5000", carol="10")
    return basic_ledger


# =============================================================================
# TOKEN FIXTURES
# =============================================================================

@pytest.fixture
def token_ledger(funded_ledger):
    """Funded ledger with the LEAP token owned by ops."""
    funded_ledger.deploy(create_token_unit("LEAP", "Leap Token", owner="ops"))
    return funded_ledger


# =============================================================================
# SALE FIXTURES
# =============================================================================

@pytest.fixture
def presale_ledger(funded_ledger):
    """Presale open for business: cap 10000 ETH, rate 1000, default bonuses."""
    make_presale(funded_ledger)
    funded_ledger.advance_time(DURING_SALE)
    return funded_ledger


@pytest.fixture
def split_presale_ledger(funded_ledger):
    """Open presale forwarding 1/3 to vault and 2/3 to vault2, no bonuses."""
    make_presale(funded_ledger, second_wallet="vault2", split=(1, 3),
                 whale_tiers=(), stages=())
    funded_ledger.advance_time(DURING_SALE)
    return funded_ledger


@pytest.fixture
def pre_ico_ledger(funded_ledger):
    """Open pre-ICO whose purchases are escrowed in unsigned token holders."""
    make_pre_ico(funded_ledger)
    funded_ledger.advance_time(DURING_SALE)
    return funded_ledger


@pytest.fixture
def signer():
    """(private_key_hex, public_key_hex) for signed releases."""
    return generate_signer()


@pytest.fixture
def signed_pre_ico_ledger(funded_ledger, signer):
    """Open pre-ICO whose holders require the signer's release signature."""
    make_pre_ico(funded_ledger, signer=signer[1])
    funded_ledger.advance_time(DURING_SALE)
    return funded_ledger


@pytest.fixture
def private_presale_ledger(funded_ledger):
    """Open LEAP private presale with the full hard cap and alice as member."""
    make_private_presale(funded_ledger)
    funded_ledger.advance_time(DURING_SALE)
    return funded_ledger


@pytest.fixture
def small_cap_private_presale_ledger(funded_ledger):
    """Open LEAP private presale capped at 5250 tokens (1 ETH); alice and bob are members."""
    make_private_presale(funded_ledger, cap=in_base_units(5250), members=("alice", "bob"))
    funded_ledger.advance_time(DURING_SALE)
    return funded_ledger


# =============================================================================
# FAKE VIEW FIXTURES
# =============================================================================

@pytest.fixture
def token_view():
    """FakeView holding an unpaused LEAP token owned by ops, alice holds 100 base units."""
    return FakeView(
        balances={'alice': {'LEAP': 100}, 'system': {'LEAP': -100}},
        states={'LEAP': {
            'owner': 'ops',
            'mint_agents': {},
            'paused': False,
            'minting_finished': False,
            'allowances': {},
            'payable': False,
        }},
        time=START,
    )
