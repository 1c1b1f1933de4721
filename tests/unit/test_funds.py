"""
test_funds.py - Unit tests for splitting and forwarding contributions
"""

import pytest
from hypothesis import given, settings, strategies as st

from tokensale import split_funds, forwarding_moves, ArithmeticViolation


class TestSplitFunds:

    def test_remainder_to_first(self):
        assert split_funds(10, 1, 3) == (4, 6)

    def test_remainder_to_second(self):
        assert split_funds(10, 1, 3, remainder_to_first=False) == (3, 7)

    def test_even_split(self):
        assert split_funds(10, 1, 2) == (5, 5)

    def test_whole_to_one_side(self):
        assert split_funds(10, 0, 1) == (0, 10)
        assert split_funds(10, 1, 1) == (10, 0)

    @pytest.mark.parametrize("numerator,denominator", [(1, 0), (-1, 3), (4, 3)])
    def test_invalid_ratio(self, numerator, denominator):
        with pytest.raises(ValueError, match="ratio"):
            split_funds(10, numerator, denominator)

    def test_negative_amount(self):
        with pytest.raises(ArithmeticViolation):
            split_funds(-10, 1, 2)

    @given(
        st.integers(min_value=0, max_value=10 ** 30),
        st.integers(min_value=1, max_value=1000),
        st.data(),
        st.booleans(),
    )
    @settings(max_examples=50)
    def test_split_conserves_amount(self, amount, denominator, data, remainder_to_first):
        """PROPERTY: the two shares always add up to the amount."""
        numerator = data.draw(st.integers(min_value=0, max_value=denominator))
        a, b = split_funds(amount, numerator, denominator, remainder_to_first)
        assert a + b == amount
        assert a >= 0 and b >= 0


class TestForwardingMoves:

    def test_single_wallet(self):
        moves = forwarding_moves(100, "ETH", "SALE", "vault", None, (1, 2), True, "fwd")
        assert len(moves) == 1
        assert (moves[0].quantity, moves[0].source, moves[0].dest) == (100, "SALE", "vault")

    def test_two_wallets(self):
        moves = forwarding_moves(10, "ETH", "SALE", "vault", "vault2", (1, 3), True, "fwd")
        assert [(m.dest, m.quantity) for m in moves] == [("vault", 4), ("vault2", 6)]
        assert [m.contract_id for m in moves] == ["fwd_a", "fwd_b"]

    def test_zero_share_skipped(self):
        moves = forwarding_moves(1, "ETH", "SALE", "vault", "vault2", (1, 3), False, "fwd")
        assert [(m.dest, m.quantity) for m in moves] == [("vault2", 1)]
