"""
funds.py - Forwarding Contributions to Collection Wallets

A sale forwards every contribution to one collection wallet, or splits it
across two wallets by a fixed ratio. The split is exact integer math; the
indivisible remainder goes to one designated side.
"""

from __future__ import annotations
from typing import List, Optional, Tuple

from .core import Move
from .safe_math import checked_sub, mul_div, require_uint


def split_funds(
    amount: int,
    numerator: int,
    denominator: int,
    remainder_to_first: bool = True,
) -> Tuple[int, int]:
    """
    Split ``amount`` so that the first wallet gets numerator/denominator of it.

    Returns:
        (amount_a, amount_b) with amount_a + amount_b == amount. The rounding
        remainder goes to the first wallet when remainder_to_first, else to
        the second.

    Raises:
        ValueError: If the ratio is not within [0, 1]

    Example:
        split_funds(10, 1, 3) == (4, 6)
        split_funds(10, 1, 3, remainder_to_first=False) == (3, 7)
    """
    require_uint(amount, "amount")
    if denominator <= 0 or numerator < 0 or numerator > denominator:
        raise ValueError(f"Invalid split ratio {numerator}/{denominator}")

    share_a = mul_div(amount, numerator, denominator)
    share_b = mul_div(amount, denominator - numerator, denominator)
    remainder = checked_sub(checked_sub(amount, share_a), share_b)
    if remainder_to_first:
        share_a += remainder
    else:
        share_b += remainder
    return share_a, share_b


def forwarding_moves(
    amount: int,
    asset: str,
    source: str,
    wallet: str,
    second_wallet: Optional[str],
    split: Tuple[int, int],
    remainder_to_first: bool,
    contract_id: str,
) -> List[Move]:
    """Moves sending a contribution from ``source`` to the collection wallet(s)."""
    if second_wallet is None:
        return [Move(amount, asset, source, wallet, contract_id)]
    share_a, share_b = split_funds(amount, split[0], split[1], remainder_to_first)
    moves = []
    if share_a:
        moves.append(Move(share_a, asset, source, wallet, f"{contract_id}_a"))
    if share_b:
        moves.append(Move(share_b, asset, source, second_wallet, f"{contract_id}_b"))
    return moves
