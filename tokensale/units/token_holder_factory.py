"""
token_holder_factory.py - Token-Holder Factory

Creates one token holder per call, all bound to the same token, signer and
default release time. Holder addresses are deterministic: the factory symbol
plus a running counter, so a sale can predict the address it mints to in the
same transaction that creates the holder.

State format:
    token: str
    owner: str                   - only the owner may create holders
    signer: Optional[str]
    release_after: datetime      - default release time for new holders
    holders_created: int
    holders: {holder: beneficiary}
    payable: False
"""

from __future__ import annotations
from datetime import datetime
from typing import Dict, Optional

from ..core import (
    LedgerView, PendingTransaction, Unit, UnitStateChange, TransactionOrigin,
    UNIT_TYPE_TOKEN_HOLDER_FACTORY,
    build_transaction, call_origin, emit, is_null_address, require_address,
    _freeze_state,
)
from ..ownership import require_owner
from ..signatures import load_verifying_key
from .token_holder import create_token_holder_unit


def create_token_holder_factory_unit(
    symbol: str,
    token: str,
    owner: str,
    release_after: datetime,
    signer: Optional[str] = None,
) -> Unit:
    """
    Create a token holder factory.

    Raises:
        ValueError: If owner is null or signer is not a valid public key
    """
    if is_null_address(owner):
        raise ValueError("Factory owner cannot be the null address")
    if signer is not None:
        load_verifying_key(signer)

    return Unit(
        symbol=symbol,
        name=f"Token holder factory for {token}",
        unit_type=UNIT_TYPE_TOKEN_HOLDER_FACTORY,
        _frozen_state=_freeze_state({
            'token': token,
            'owner': owner,
            'signer': signer,
            'release_after': release_after,
            'holders_created': 0,
            'holders': {},
            'payable': False,
        })
    )


def next_holder_symbol(view: LedgerView, factory: str) -> str:
    """Address of the holder the next create call will produce."""
    count = view.get_unit_state(factory)['holders_created']
    return f"{factory}-H{count + 1:06d}"


def list_holders(view: LedgerView, factory: str) -> Dict[str, str]:
    """Holders created so far, mapped to their beneficiaries."""
    return dict(view.get_unit_state(factory)['holders'])


def create_holder_transaction(
    view: LedgerView,
    factory: str,
    caller: str,
    beneficiary: str,
    release_after: Optional[datetime] = None,
    origin: Optional[TransactionOrigin] = None,
) -> PendingTransaction:
    """
    Deploy a new token holder for beneficiary.

    Sales merge this into a purchase; compute_create_token_holder() submits
    it on its own.

    Raises:
        Unauthorized: If caller is not the factory owner
        PreconditionViolation: If beneficiary is the null address
    """
    require_owner(view, factory, caller)
    require_address(beneficiary, "beneficiary")
    state = view.get_unit_state(factory)
    holder = next_holder_symbol(view, factory)
    unit = create_token_holder_unit(
        holder, state['token'], beneficiary,
        release_after or state['release_after'],
        signer=state['signer'],
        factory=factory,
    )

    holders = dict(state['holders'])
    holders[holder] = beneficiary
    new_state = {**state, 'holders_created': state['holders_created'] + 1, 'holders': holders}
    return build_transaction(
        view, [], [UnitStateChange(factory, state, new_state)],
        origin=origin,
        units_to_create=(unit,),
        wallets_to_create=(holder,),
        events=[emit("TokenHolderCreated", factory, holder=holder, beneficiary=beneficiary)],
    )


def compute_create_token_holder(
    view: LedgerView,
    factory: str,
    caller: str,
    beneficiary: str,
    release_after: Optional[datetime] = None,
) -> PendingTransaction:
    """Owner creates a token holder for beneficiary."""
    return create_holder_transaction(
        view, factory, caller, beneficiary, release_after,
        origin=call_origin(view, caller, factory, "create"),
    )
