"""
Determinism Conformance Tests

INVARIANT: The same calls against the same state produce the same result.

    ∀ ledger L, call sequence C:
        run(clone(L), C) = run(clone(L), C)

Pure compute_* functions never mutate the view; intent ids, balances,
counters, holder addresses and events depend only on inputs.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from tokensale import ether
from tokensale.units import compute_buy_tokens, quote

from tests.scenario import (
    DURING_SALE, apply, make_ledger, fund, make_presale, make_pre_ico, compare_ledger_states,
)


purchase = st.tuples(
    st.sampled_from(["alice", "bob"]),
    st.integers(min_value=1, max_value=ether("200")),
)


def run_pre_ico(purchases):
    ledger = make_ledger()
    fund(ledger, alice="2000", bob="2000")
    make_pre_ico(ledger, cap=ether("100000"))
    ledger.advance_time(DURING_SALE)
    intents = []
    for buyer, amount in purchases:
        pending = compute_buy_tokens(ledger, "PREICO", buyer, buyer, amount)
        intents.append(pending.intent_id)
        apply(ledger, pending)
    return ledger, intents


class TestDeterminismProperties:

    @given(st.lists(purchase, min_size=1, max_size=6))
    @settings(max_examples=30, deadline=None)
    def test_identical_runs_identical_state(self, purchases):
        """PROPERTY: two runs of the same purchases end in the same state."""
        ledger1, intents1 = run_pre_ico(purchases)
        ledger2, intents2 = run_pre_ico(purchases)
        assert intents1 == intents2
        assert compare_ledger_states(ledger1, ledger2)["equal"]
        assert ledger1.get_events() == ledger2.get_events()

    @given(st.integers(min_value=1, max_value=ether("200")))
    @settings(max_examples=30, deadline=None)
    def test_compute_does_not_mutate_view(self, amount):
        """PROPERTY: building a purchase leaves the ledger untouched."""
        ledger = make_ledger()
        fund(ledger, alice="1000")
        make_presale(ledger)
        ledger.advance_time(DURING_SALE)
        before = ledger.clone()

        first = compute_buy_tokens(ledger, "PRESALE", "alice", "alice", amount)
        second = compute_buy_tokens(ledger, "PRESALE", "alice", "alice", amount)

        assert first.intent_id == second.intent_id
        assert compare_ledger_states(before, ledger)["equal"]
        assert ledger.transaction_log == []

    def test_quote_matches_purchase(self):
        ledger = make_ledger()
        fund(ledger, alice="1000")
        make_presale(ledger)
        ledger.advance_time(DURING_SALE)
        expected = quote(ledger, "PRESALE", ether("600")).total
        apply(ledger, compute_buy_tokens(ledger, "PRESALE", "alice", "alice", ether("600")))
        assert ledger.get_events("TokenPurchase")[0]["amount"] == expected
