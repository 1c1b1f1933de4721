"""
payments.py - Plain Value Transfers and the Sale Fallback

Sending native value to an address behaves like on-chain value transfer:
a sale treats it as a purchase by the sender, a non-payable contract refuses
it, and any other address simply receives it.
"""

from __future__ import annotations

from .core import (
    LedgerView, Move, PendingTransaction, TransactionOrigin, OriginType,
    SYSTEM_WALLET, UNIT_TYPE_CROWDSALE,
    NonPayable, PreconditionViolation, InsufficientFunds,
    build_transaction, call_origin, require_address,
)
from .safe_math import require_uint
from .units.sale import load_sale, purchase_transaction


def compute_fund(view: LedgerView, account: str, amount: int, asset: str = "ETH") -> PendingTransaction:
    """Genesis allocation of ``amount`` of a value asset to account."""
    require_address(account, "account")
    if require_uint(amount, "amount") == 0:
        raise PreconditionViolation("Funding amount must be positive")
    return build_transaction(
        view,
        [Move(amount, asset, SYSTEM_WALLET, account, f"genesis_{asset}")],
        origin=TransactionOrigin(OriginType.SYSTEM, "genesis", asset, "fund", nonce=view.block_number),
    )


def compute_send_value(
    view: LedgerView,
    sender: str,
    to: str,
    amount: int,
    asset: str = "ETH",
) -> PendingTransaction:
    """
    Send native value from sender to ``to``.

    Raises:
        NonPayable: If ``to`` is a contract that does not accept value
        InsufficientFunds: If sender cannot cover amount
        PreconditionViolation: If ``to`` is a sale and asset is not its native asset
        Any purchase error when ``to`` is a sale
    """
    require_address(to, "recipient")
    if view.has_unit(to):
        unit = view.get_unit(to)
        if unit.unit_type == UNIT_TYPE_CROWDSALE:
            terms, _ = load_sale(view, to)
            if asset != terms.native_asset:
                raise PreconditionViolation(f"{to} only accepts {terms.native_asset} by transfer, not {asset}")
            event = "TokenPurchaseETH" if terms.alt_asset else "TokenPurchase"
            pending, _ = purchase_transaction(
                view, to, sender, sender, amount, terms.native_asset, event,
                call_origin(view, sender, to, "fallback"),
            )
            return pending
        if not view.get_unit_state(to).get('payable', True):
            raise NonPayable(f"{to} does not accept {asset}")

    if require_uint(amount, "amount") == 0:
        raise PreconditionViolation("Transfer amount must be positive")
    available = view.get_balance(sender, asset)
    if available < amount:
        raise InsufficientFunds(f"{sender} holds {available} {asset}, cannot send {amount}")
    return build_transaction(
        view,
        [Move(amount, asset, sender, to, f"send_{asset}")],
        origin=call_origin(view, sender, to, "send"),
    )
