"""
Atomicity Conformance Tests

INVARIANT: Transactions are all-or-nothing.

    ∀ transaction T:
        T succeeds ⟹ all moves, state changes, registrations and events in T are applied
        T fails ⟹ nothing in T is applied

A purchase touches the token, the sale, the value asset and (for escrowed
sales) the factory and a new holder; none of it may be partially applied.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from tokensale import (
    Move, ExecuteResult, build_transaction, merge_transactions, call_origin, ether,
)
from tokensale.units import compute_buy_tokens, compute_mint, list_holders

from tests.scenario import (
    DURING_SALE, apply, make_ledger, fund, make_presale, make_pre_ico,
    compare_ledger_states,
)


def snapshot(ledger):
    return ledger.clone()


class TestAtomicityProperties:

    @given(st.integers(min_value=2, max_value=8), st.integers(min_value=0, max_value=7))
    @settings(max_examples=50, deadline=None)
    def test_one_bad_move_rejects_all(self, num_moves, bad_index):
        """PROPERTY: a chain of N moves with one overdraft applies none of them."""
        bad_index = bad_index % num_moves
        ledger = make_ledger()
        fund(ledger, alice="100")
        accounts = ["alice", "bob", "carol", "dave", "ops", "vault", "vault2", "proxy", "placeholder"]

        moves = []
        for i in range(num_moves):
            quantity = ether("1000") if i == bad_index else ether("1")
            moves.append(Move(quantity, "ETH", accounts[i], accounts[i + 1], f"chain_{i}"))

        before = snapshot(ledger)
        result = ledger.execute(build_transaction(ledger, moves))
        assert result == ExecuteResult.REJECTED
        assert compare_ledger_states(before, ledger)["equal"]
        assert ledger.transaction_log == []

    def test_rejected_purchase_leaves_no_trace(self):
        """A pre-ICO purchase rejected at execution registers no holder."""
        ledger = make_ledger()
        fund(ledger, alice="10")
        make_pre_ico(ledger)
        ledger.advance_time(DURING_SALE)
        pending = compute_buy_tokens(ledger, "PREICO", "alice", "alice", ether("1"))

        # spend alice's ETH so the contribution move overdraws at execution
        apply(ledger, build_transaction(ledger, [Move(ether("10"), "ETH", "alice", "bob", "drain")]))
        before = snapshot(ledger)
        assert ledger.execute(pending) == ExecuteResult.REJECTED
        assert compare_ledger_states(before, ledger)["equal"]
        assert not ledger.has_unit("HOLDERS-H000001")
        assert not ledger.is_registered("HOLDERS-H000001")
        assert list_holders(ledger, "HOLDERS") == {}
        assert ledger.get_events("TokenPurchase") == []

    def test_merged_parts_apply_together(self):
        ledger = make_ledger()
        fund(ledger, alice="10")
        make_presale(ledger)
        ledger.advance_time(DURING_SALE)
        purchase = compute_buy_tokens(ledger, "PRESALE", "alice", "alice", ether("1"))
        overdraft = build_transaction(ledger, [Move(ether("100"), "ETH", "bob", "carol", "bad")])
        merged = merge_transactions(ledger, [purchase, overdraft], call_origin(ledger, "alice", "PRESALE", "buyTokens"))

        before = snapshot(ledger)
        assert ledger.execute(merged) == ExecuteResult.REJECTED
        assert compare_ledger_states(before, ledger)["equal"]

    def test_failed_mint_changes_nothing(self):
        ledger = make_ledger()
        make_presale(ledger)
        before = snapshot(ledger)
        pending = compute_mint(ledger, "LEAP", "PRESALE", "unregistered", 10)
        assert ledger.execute(pending) == ExecuteResult.REJECTED
        assert compare_ledger_states(before, ledger)["equal"]
        assert ledger.get_nonce("PRESALE") == 0
