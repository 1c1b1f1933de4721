"""
ownership.py - Owner Capability Shared by Administrable Contracts

The token, every sale and every token-holder factory carry an ``owner`` in
their unit state. Privileged entry points call require_owner() first.
"""

from __future__ import annotations
from typing import Tuple

from .core import (
    LedgerView, PendingTransaction, UnitStateChange, EventRecord,
    Unauthorized, build_transaction, call_origin, emit, require_address,
)


def require_owner(view: LedgerView, unit_symbol: str, caller: str) -> None:
    """
    Raises:
        Unauthorized: If caller is not the unit's owner
    """
    owner = view.get_unit_state(unit_symbol).get('owner')
    if caller != owner:
        raise Unauthorized(f"{caller} is not the owner of {unit_symbol}")


def ownership_change(
    view: LedgerView,
    unit_symbol: str,
    new_owner: str,
) -> Tuple[UnitStateChange, EventRecord]:
    """State change and OwnershipTransferred event handing unit_symbol to new_owner."""
    require_address(new_owner, "new owner")
    state = view.get_unit_state(unit_symbol)
    new_state = {**state, 'owner': new_owner}
    event = emit("OwnershipTransferred", unit_symbol,
                 previous_owner=state.get('owner'), new_owner=new_owner)
    return UnitStateChange(unit=unit_symbol, old_state=state, new_state=new_state), event


def compute_transfer_ownership(
    view: LedgerView,
    unit_symbol: str,
    caller: str,
    new_owner: str,
) -> PendingTransaction:
    """
    Transfer ownership of an administrable unit.

    Raises:
        Unauthorized: If caller is not the current owner
        PreconditionViolation: If new_owner is the null address
    """
    require_owner(view, unit_symbol, caller)
    change, event = ownership_change(view, unit_symbol, new_owner)
    return build_transaction(
        view, [], [change],
        origin=call_origin(view, caller, unit_symbol, "transferOwnership"),
        events=[event],
    )
