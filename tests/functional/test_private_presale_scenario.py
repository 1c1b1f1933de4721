"""
test_private_presale_scenario.py - End-to-end LEAP private presale

Walks a members-only sale from deployment to finalization:
- Members buy with ETH; the proxy relays BTC payments
- Non-members and non-proxies are refused without touching state
- The engine closes the sale; the owner hands the token to the placeholder
"""

import pytest

from tokensale import (
    ether, in_base_units, default_engine, compute_send_value, compute_fund,
    NotMember, Unauthorized, SaleNotOpen, InvalidStateTransition,
)
from tokensale.units import (
    compute_buy_coins_eth, compute_buy_coins_btc, compute_add_member, compute_remove_member,
    compute_finalize, compute_transfer, compute_mint,
    balance_of, tokens_raised, wei_raised, raised_by, get_total_supply,
    get_sale_status, get_sale_info, LEAP_HARDCAP,
    SALE_STATUS_PENDING, SALE_STATUS_OPEN, SALE_STATUS_ENDED, SALE_STATUS_FINALIZED,
)

from tests.scenario import (
    SALE_START, DURING_SALE, AFTER_SALE, apply, make_ledger, make_private_presale,
    compare_ledger_states,
)


@pytest.fixture
def leap_ledger():
    ledger = make_ledger("leap")
    for account in ("alice", "bob", "carol"):
        apply(ledger, compute_fund(ledger, account, ether("100")))
    make_private_presale(ledger, members=("alice", "bob"))
    return ledger


class TestLeapPrivatePresale:

    def test_member_buys_five_and_a_quarter_tokens(self, leap_ledger):
        """0.001 ETH from a member at rate 5250 issues 5.25 tokens."""
        leap_ledger.advance_time(DURING_SALE)
        before = tokens_raised(leap_ledger, "LEAPSALE")
        apply(leap_ledger, compute_buy_coins_eth(leap_ledger, "LEAPSALE", "alice", None, ether("0.001")))

        assert balance_of(leap_ledger, "LEAP", "alice") == 5_250_000_000_000_000_000
        assert tokens_raised(leap_ledger, "LEAPSALE") - before == 5_250_000_000_000_000_000
        assert leap_ledger.get_balance("vault", "ETH") == ether("0.001")

    def test_non_member_refused_state_unchanged(self, leap_ledger):
        leap_ledger.advance_time(DURING_SALE)
        snapshot = leap_ledger.clone()
        with pytest.raises(NotMember):
            compute_buy_coins_eth(leap_ledger, "LEAPSALE", "carol", "carol", ether("1"))
        with pytest.raises(NotMember):
            compute_send_value(leap_ledger, "carol", "LEAPSALE", ether("1"))
        assert compare_ledger_states(snapshot, leap_ledger)["equal"]

    def test_non_proxy_refused_unconditionally(self, leap_ledger):
        for when in (leap_ledger.current_time, DURING_SALE, AFTER_SALE):
            leap_ledger.advance_time(when)
            with pytest.raises(Unauthorized):
                compute_buy_coins_btc(leap_ledger, "LEAPSALE", "alice", "alice", 10 ** 8)

    def test_full_sale(self, leap_ledger):
        engine = default_engine(leap_ledger)
        assert get_sale_status(leap_ledger, "LEAPSALE") == SALE_STATUS_PENDING
        with pytest.raises(SaleNotOpen):
            compute_buy_coins_eth(leap_ledger, "LEAPSALE", "alice", "alice", ether("1"))

        engine.step(SALE_START)
        assert get_sale_status(leap_ledger, "LEAPSALE") == SALE_STATUS_OPEN

        # ETH from two members, BTC relayed for one of them
        apply(leap_ledger, compute_buy_coins_eth(leap_ledger, "LEAPSALE", "alice", "alice", ether("10")))
        apply(leap_ledger, compute_send_value(leap_ledger, "bob", "LEAPSALE", ether("2")))
        apply(leap_ledger, compute_buy_coins_btc(leap_ledger, "LEAPSALE", "proxy", "bob", 10 ** 16))

        # membership changes take effect immediately
        apply(leap_ledger, compute_add_member(leap_ledger, "LEAPSALE", "ops", "carol"))
        apply(leap_ledger, compute_remove_member(leap_ledger, "LEAPSALE", "ops", "bob"))
        apply(leap_ledger, compute_buy_coins_eth(leap_ledger, "LEAPSALE", "carol", "carol", ether("1")))
        with pytest.raises(NotMember):
            compute_buy_coins_eth(leap_ledger, "LEAPSALE", "bob", "bob", ether("1"))

        expected_tokens = (ether("13") * 5250) + (10 ** 16 * 52500)
        assert tokens_raised(leap_ledger, "LEAPSALE") == expected_tokens
        assert get_total_supply(leap_ledger, "LEAP") == expected_tokens
        assert wei_raised(leap_ledger, "LEAPSALE") == ether("13")
        assert raised_by(leap_ledger, "LEAPSALE", "bob", "ETH") == ether("2")
        assert raised_by(leap_ledger, "LEAPSALE", "bob", "BTC") == 10 ** 16
        assert leap_ledger.get_balance("vault", "ETH") == ether("13")

        # tokens stay transferable during the sale
        apply(leap_ledger, compute_transfer(leap_ledger, "LEAP", "alice", "carol", ether("1")))

        with pytest.raises(InvalidStateTransition, match="has not ended"):
            compute_finalize(leap_ledger, "LEAPSALE", "ops")

        closed = engine.step(AFTER_SALE)
        assert [tx.origin.unit_symbol for tx in closed] == ["LEAPSALE"]
        assert get_sale_status(leap_ledger, "LEAPSALE") == SALE_STATUS_ENDED

        with pytest.raises(Unauthorized):
            compute_finalize(leap_ledger, "LEAPSALE", "alice")
        apply(leap_ledger, compute_finalize(leap_ledger, "LEAPSALE", "ops"))

        assert leap_ledger.get_unit_state("LEAP")['owner'] == "placeholder"
        assert get_sale_status(leap_ledger, "LEAPSALE") == SALE_STATUS_FINALIZED
        with pytest.raises(InvalidStateTransition, match="already finalized"):
            compute_finalize(leap_ledger, "LEAPSALE", "ops")

        # the placeholder now controls issuance
        apply(leap_ledger, compute_mint(leap_ledger, "LEAP", "placeholder", "ops", 1))

        info = get_sale_info(leap_ledger, "LEAPSALE")
        assert info['members'] == ["alice", "carol"]
        assert info['cap'] == LEAP_HARDCAP
        assert info['purchase_count'] == 4
        assert leap_ledger.verify_double_entry()['valid']

        finalized = leap_ledger.get_events("Finalized")[0]
        assert finalized["token_owner"] == "placeholder"
        assert finalized["tokens_raised"] == expected_tokens

    def test_hard_cap_is_in_tokens(self, leap_ledger):
        assert LEAP_HARDCAP == in_base_units(52_500_000)
        leap_ledger.advance_time(DURING_SALE)
        apply(leap_ledger, compute_buy_coins_btc(leap_ledger, "LEAPSALE", "proxy", "alice", 10 ** 21))
        assert tokens_raised(leap_ledger, "LEAPSALE") == LEAP_HARDCAP
        assert get_sale_status(leap_ledger, "LEAPSALE") == SALE_STATUS_ENDED
