"""
token_holder.py - Token-Holder Escrow

A token holder locks tokens for one beneficiary until a release time. When a
signer is configured, release additionally requires the signer's signature
over the release message for the beneficiary. Release always pays the whole
balance to the beneficiary, whoever triggers it.

States:
    LOCKED      -> before release_after
    RELEASABLE  -> at or after release_after, not yet released
    RELEASED    -> terminal; every further release fails

State format:
    token: str
    beneficiary: str
    signer: Optional[str]        - secp256k1 public key hex
    release_after: datetime
    released: bool
    released_amount: int
    factory: Optional[str]       - factory that created this holder
    payable: False               - the holder address rejects value

The holder's own address (its symbol) holds the locked tokens.
"""

from __future__ import annotations
from datetime import datetime
from typing import Optional

from ..core import (
    LedgerView, Move, PendingTransaction, Unit, UnitStateChange, TransactionOrigin,
    OriginType, UNIT_TYPE_TOKEN_HOLDER,
    PreconditionViolation, AlreadyReleased, ReleaseTooEarly, InvalidSignature,
    InvalidStateTransition,
    build_transaction, empty_pending_transaction, call_origin, emit, is_null_address,
    _freeze_state,
)
from ..signatures import load_verifying_key, verify_release_signature
from .token import balance_of, is_paused


HOLDER_STATUS_LOCKED = "LOCKED"
HOLDER_STATUS_RELEASABLE = "RELEASABLE"
HOLDER_STATUS_RELEASED = "RELEASED"


def create_token_holder_unit(
    symbol: str,
    token: str,
    beneficiary: str,
    release_after: datetime,
    signer: Optional[str] = None,
    factory: Optional[str] = None,
) -> Unit:
    """
    Create a token holder escrow.

    Args:
        symbol: Holder address
        token: Token symbol held in escrow
        beneficiary: Receives the tokens on release
        release_after: Earliest release time
        signer: Public key hex whose signature authorizes release, or None
        factory: Creating factory, if any

    Raises:
        ValueError: If beneficiary is null or signer is not a valid public key
    """
    if is_null_address(beneficiary):
        raise ValueError("Token holder beneficiary cannot be the null address")
    if not token:
        raise ValueError("Token holder requires a token")
    if signer is not None:
        load_verifying_key(signer)

    return Unit(
        symbol=symbol,
        name=f"Token holder for {beneficiary}",
        unit_type=UNIT_TYPE_TOKEN_HOLDER,
        _frozen_state=_freeze_state({
            'token': token,
            'beneficiary': beneficiary,
            'signer': signer,
            'release_after': release_after,
            'released': False,
            'released_amount': 0,
            'factory': factory,
            'payable': False,
        })
    )


def get_holder_status(view: LedgerView, holder: str) -> str:
    state = view.get_unit_state(holder)
    if state['released']:
        return HOLDER_STATUS_RELEASED
    if view.current_time >= state['release_after']:
        return HOLDER_STATUS_RELEASABLE
    return HOLDER_STATUS_LOCKED


def locked_balance(view: LedgerView, holder: str) -> int:
    """Tokens currently held in escrow."""
    return balance_of(view, view.get_unit_state(holder)['token'], holder)


def _release_transaction(view: LedgerView, holder: str, origin: TransactionOrigin) -> PendingTransaction:
    state = view.get_unit_state(holder)
    token = state['token']
    amount = balance_of(view, token, holder)
    if amount == 0:
        raise PreconditionViolation(f"{holder} has nothing to release")
    if is_paused(view, token):
        raise InvalidStateTransition(f"{token} is paused")

    moves = [Move(amount, token, holder, state['beneficiary'], f"release_{holder}")]
    new_state = {**state, 'released': True, 'released_amount': amount}
    return build_transaction(
        view, moves, [UnitStateChange(holder, state, new_state)],
        origin=origin,
        events=[emit("Released", holder, beneficiary=state['beneficiary'], amount=amount)],
    )


def compute_release(
    view: LedgerView,
    holder: str,
    caller: str,
    signature: Optional[str] = None,
) -> PendingTransaction:
    """
    Release the escrowed tokens to the beneficiary.

    Checks run in order: already released, too early, signature, balance.

    Args:
        view: Read-only ledger access
        holder: Token holder address
        caller: Account triggering the release (anyone)
        signature: r||s hex signature by the signer, required when a signer is set

    Raises:
        AlreadyReleased: If the holder has already released
        ReleaseTooEarly: If the release time has not been reached
        InvalidSignature: If a signer is set and the signature does not verify
        PreconditionViolation: If the holder holds no tokens
    """
    state = view.get_unit_state(holder)
    if state['released']:
        raise AlreadyReleased(f"{holder} already released {state['released_amount']}")
    if view.current_time < state['release_after']:
        raise ReleaseTooEarly(f"{holder} releases after {state['release_after']}")
    if state['signer'] is not None:
        if not signature or not verify_release_signature(state['signer'], state['beneficiary'], signature):
            raise InvalidSignature(f"Release of {holder} not authorized by its signer")

    return _release_transaction(view, holder, call_origin(view, caller, holder, "release"))


def token_holder_contract(view: LedgerView, symbol: str, timestamp: datetime) -> PendingTransaction:
    """
    SmartContract for LifecycleEngine: release unsigned holders once due.

    Holders with a signer wait for an explicit, signed release.
    """
    state = view.get_unit_state(symbol)
    if state['released'] or state['signer'] is not None or timestamp < state['release_after']:
        return empty_pending_transaction(view)
    if locked_balance(view, symbol) == 0 or is_paused(view, state['token']):
        return empty_pending_transaction(view)
    origin = TransactionOrigin(OriginType.LIFECYCLE, "lifecycle", symbol, "release")
    return _release_transaction(view, symbol, origin)
