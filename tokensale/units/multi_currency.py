"""
multi_currency.py - Native and Proxy-Relayed Alternate-Asset Purchases

A sale configured with an alternate asset (BTC) accepts two intake paths:

    compute_buy_coins_eth  - the purchaser attaches native value; same rules as
                             compute_buy_tokens, tracked in raised_by[native]
    compute_buy_coins_btc  - only the proxy may call; the payment happened
                             off-ledger, so no value moves. Tracked in
                             raised_by[alt_asset] under the beneficiary

Both paths price with their own rate and add to the single tokens_raised
counter that is checked against the cap, so interleaved purchases can never
issue more than the cap in total.
"""

from __future__ import annotations
from typing import Optional

from ..core import LedgerView, PendingTransaction, PreconditionViolation, Unauthorized, call_origin
from .sale import load_sale, purchase_transaction


def compute_buy_coins_eth(
    view: LedgerView,
    sale: str,
    purchaser: str,
    beneficiary: Optional[str],
    value: int,
) -> PendingTransaction:
    """
    Buy with the native asset; tokens go to beneficiary (the purchaser when None).

    Raises:
        SaleNotOpen, PreconditionViolation, NotMember, CapExceeded,
        InsufficientFunds: as for compute_buy_tokens
    """
    terms, _ = load_sale(view, sale)
    pending, _ = purchase_transaction(
        view, sale, purchaser, beneficiary or purchaser, value, terms.native_asset,
        "TokenPurchaseETH", call_origin(view, purchaser, sale, "buyCoinsETH"),
    )
    return pending


def compute_buy_coins_btc(
    view: LedgerView,
    sale: str,
    caller: str,
    beneficiary: str,
    amount: int,
) -> PendingTransaction:
    """
    Record an alternate-asset payment relayed by the proxy.

    Args:
        caller: Must be the sale's proxy
        beneficiary: Investor who paid off-ledger; receives the tokens
        amount: Payment in alternate-asset base units (satoshi)

    Raises:
        Unauthorized: If caller is not the proxy (checked first, always)
        PreconditionViolation: If the sale has no alternate asset
        SaleNotOpen, NotMember, CapExceeded: as for compute_buy_tokens
    """
    terms, _ = load_sale(view, sale)
    if terms.proxy is None or caller != terms.proxy:
        raise Unauthorized(f"{caller} is not the proxy of {sale}")
    if terms.alt_asset is None:
        raise PreconditionViolation(f"{sale} accepts no alternate asset")
    pending, _ = purchase_transaction(
        view, sale, beneficiary, beneficiary, amount, terms.alt_asset,
        "TokenPurchaseBTC", call_origin(view, caller, sale, "buyCoinsBTC"),
        attach_value=False,
    )
    return pending
