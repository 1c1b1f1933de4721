"""
test_multi_currency.py - Unit tests for native and proxy-relayed purchases

Tests:
- ETH path: same rules as buy_tokens, TokenPurchaseETH event with account
- BTC path: proxy only, alternate rate, separate per-asset counter, no value moved
- Combined token cap across both assets
"""

import pytest

from tokensale import (
    ether, in_base_units, SATOSHI_PER_BTC,
    Unauthorized, NotMember, CapExceeded, SaleNotOpen, PreconditionViolation,
)
from tokensale.units import (
    compute_buy_coins_eth, compute_buy_coins_btc, compute_buy_tokens, compute_add_member,
    raised_by, tokens_raised, wei_raised, balance_of,
)

from tests.scenario import AFTER_SALE, apply, make_presale


class TestBuyCoinsEth:

    def test_eth_purchase(self, private_presale_ledger):
        apply(private_presale_ledger,
              compute_buy_coins_eth(private_presale_ledger, "LEAPSALE", "alice", None, ether("1")))
        assert balance_of(private_presale_ledger, "LEAP", "alice") == in_base_units(5250)
        assert raised_by(private_presale_ledger, "LEAPSALE", "alice", "ETH") == ether("1")
        assert wei_raised(private_presale_ledger, "LEAPSALE") == ether("1")
        assert private_presale_ledger.get_balance("vault", "ETH") == ether("1")

    def test_eth_event(self, private_presale_ledger):
        apply(private_presale_ledger,
              compute_buy_coins_eth(private_presale_ledger, "LEAPSALE", "alice", "alice", ether("1")))
        event = private_presale_ledger.get_events("TokenPurchaseETH")[0]
        assert event.args_dict == {
            'purchaser': 'alice', 'beneficiary': 'alice',
            'value': ether("1"), 'amount': in_base_units(5250), 'account': 'alice',
        }

    def test_eth_non_member_rejected(self, private_presale_ledger):
        with pytest.raises(NotMember):
            compute_buy_coins_eth(private_presale_ledger, "LEAPSALE", "bob", "bob", ether("1"))

    def test_eth_member_for_non_member_beneficiary_rejected(self, private_presale_ledger):
        with pytest.raises(NotMember):
            compute_buy_coins_eth(private_presale_ledger, "LEAPSALE", "alice", "bob", ether("1"))

    def test_no_bonus_in_private_presale(self, private_presale_ledger):
        apply(private_presale_ledger,
              compute_buy_coins_eth(private_presale_ledger, "LEAPSALE", "alice", "alice", ether("1000")))
        assert balance_of(private_presale_ledger, "LEAP", "alice") == ether("1000") * 5250


class TestBuyCoinsBtc:

    def test_btc_purchase(self, private_presale_ledger):
        apply(private_presale_ledger,
              compute_buy_coins_btc(private_presale_ledger, "LEAPSALE", "proxy", "alice", SATOSHI_PER_BTC))
        assert balance_of(private_presale_ledger, "LEAP", "alice") == SATOSHI_PER_BTC * 52500
        assert raised_by(private_presale_ledger, "LEAPSALE", "alice", "BTC") == SATOSHI_PER_BTC
        assert raised_by(private_presale_ledger, "LEAPSALE", "alice", "ETH") == 0
        assert wei_raised(private_presale_ledger, "LEAPSALE") == 0
        assert tokens_raised(private_presale_ledger, "LEAPSALE") == SATOSHI_PER_BTC * 52500

    def test_btc_moves_no_value(self, private_presale_ledger):
        tx = apply(private_presale_ledger,
                   compute_buy_coins_btc(private_presale_ledger, "LEAPSALE", "proxy", "alice", 1000))
        assert [m.unit_symbol for m in tx.moves] == ["LEAP"]
        assert private_presale_ledger.get_balance("vault", "ETH") == 0

    def test_btc_event(self, private_presale_ledger):
        apply(private_presale_ledger,
              compute_buy_coins_btc(private_presale_ledger, "LEAPSALE", "proxy", "alice", 1000))
        event = private_presale_ledger.get_events("TokenPurchaseBTC")[0]
        assert event.args_dict == {
            'purchaser': 'alice', 'beneficiary': 'alice',
            'value': 1000, 'amount': 1000 * 52500, 'account': 'alice',
        }

    def test_btc_investor_without_wallet(self, private_presale_ledger):
        """An investor who only paid off-ledger gets a wallet with the tokens."""
        ledger = private_presale_ledger
        apply(ledger, compute_add_member(ledger, "LEAPSALE", "ops", "erin"))
        assert not ledger.is_registered("erin")
        apply(ledger, compute_buy_coins_btc(ledger, "LEAPSALE", "proxy", "erin", 1000))
        assert balance_of(ledger, "LEAP", "erin") == 1000 * 52500
        assert raised_by(ledger, "LEAPSALE", "erin", "BTC") == 1000

    def test_non_proxy_rejected(self, private_presale_ledger):
        with pytest.raises(Unauthorized):
            compute_buy_coins_btc(private_presale_ledger, "LEAPSALE", "alice", "alice", 1000)

    def test_non_proxy_rejected_even_when_closed(self, private_presale_ledger):
        """The proxy check comes before every other check."""
        private_presale_ledger.advance_time(AFTER_SALE)
        with pytest.raises(Unauthorized):
            compute_buy_coins_btc(private_presale_ledger, "LEAPSALE", "mallory", "alice", 0)

    def test_proxy_after_end_rejected(self, private_presale_ledger):
        private_presale_ledger.advance_time(AFTER_SALE)
        with pytest.raises(SaleNotOpen):
            compute_buy_coins_btc(private_presale_ledger, "LEAPSALE", "proxy", "alice", 1000)

    def test_btc_non_member_beneficiary_rejected(self, private_presale_ledger):
        with pytest.raises(NotMember):
            compute_buy_coins_btc(private_presale_ledger, "LEAPSALE", "proxy", "bob", 1000)

    def test_btc_on_single_asset_sale(self, funded_ledger):
        make_presale(funded_ledger)
        # a presale has no proxy, so nobody passes the proxy check
        with pytest.raises(Unauthorized):
            compute_buy_coins_btc(funded_ledger, "PRESALE", "proxy", "alice", 1000)

    def test_zero_btc_rejected(self, private_presale_ledger):
        with pytest.raises(PreconditionViolation):
            compute_buy_coins_btc(private_presale_ledger, "LEAPSALE", "proxy", "alice", 0)


class TestCombinedCap:
    """PROPERTY: both assets count against the single token cap."""

    def test_eth_then_btc_up_to_cap(self, small_cap_private_presale_ledger):
        ledger = small_cap_private_presale_ledger
        apply(ledger, compute_buy_coins_eth(ledger, "LEAPSALE", "alice", "alice", ether("0.5")))
        # half the cap is 2625 tokens = 5 * 10**16 satoshi at 52500 base units each
        apply(ledger, compute_buy_coins_btc(ledger, "LEAPSALE", "proxy", "bob", 5 * 10 ** 16))
        assert tokens_raised(ledger, "LEAPSALE") == in_base_units(5250)

    def test_btc_over_cap_rejected(self, small_cap_private_presale_ledger):
        ledger = small_cap_private_presale_ledger
        apply(ledger, compute_buy_coins_eth(ledger, "LEAPSALE", "alice", "alice", ether("0.5")))
        with pytest.raises(CapExceeded):
            compute_buy_coins_btc(ledger, "LEAPSALE", "proxy", "bob", 5 * 10 ** 16 + 1)
        assert raised_by(ledger, "LEAPSALE", "bob", "BTC") == 0
        assert tokens_raised(ledger, "LEAPSALE") == in_base_units(5250) // 2

    def test_buy_tokens_shares_the_cap(self, small_cap_private_presale_ledger):
        ledger = small_cap_private_presale_ledger
        apply(ledger, compute_buy_coins_btc(ledger, "LEAPSALE", "proxy", "alice", 10 ** 17))
        with pytest.raises(SaleNotOpen, match="cap reached"):
            compute_buy_tokens(ledger, "LEAPSALE", "bob", "bob", 1)
