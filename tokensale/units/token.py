"""
token.py - Mintable, Pausable, Burnable Fungible Token

The sale's token is a ledger unit whose symbol doubles as the token contract
address. Balances live in the ledger like any other unit; minting moves units
out of SYSTEM_WALLET and burning moves them back, so total supply is always
the negated system balance.

State format:
    owner: str                        - may mint, burn, pause, set agents
    mint_agents: {address: bool}      - contracts allowed to mint (sales)
    paused: bool                      - transfers blocked while True
    minting_finished: bool            - one-way switch, no mint afterwards
    allowances: {holder: {spender: int}}
    payable: False                    - the token address rejects value

Events:
    Mint(to, amount), MintFinished(), MintingAgentChanged(addr, state),
    Burn(burner, value), Pause(), Unpause(), Transfer(from, to, value),
    Approval(owner, spender, value), OwnershipTransferred(...)

Mint and burn are exempt from pausing; every other transfer is blocked by the
token's transfer rule while paused.
"""

from __future__ import annotations
from typing import Dict, List, Optional, Tuple

from ..core import (
    LedgerView, Move, PendingTransaction, Unit, UnitStateChange, TransactionOrigin,
    EventRecord, SYSTEM_WALLET, ZERO_ADDRESS, UNIT_TYPE_TOKEN, TOKEN_DECIMALS,
    PreconditionViolation, Unauthorized, InsufficientFunds, MintingFinished,
    InvalidStateTransition, TransferRuleViolation, WalletNotRegistered,
    build_transaction, call_origin, emit, is_null_address, require_address,
    _freeze_state,
)
from ..ownership import require_owner
from ..safe_math import checked_add, checked_sub, require_uint


def token_transfer_rule(view: LedgerView, move: Move) -> None:
    """Block holder-to-holder transfers while the token is paused."""
    if SYSTEM_WALLET in (move.source, move.dest):
        return
    if view.get_unit_state(move.unit_symbol).get('paused', False):
        raise TransferRuleViolation(f"{move.unit_symbol} is paused")


def create_token_unit(
    symbol: str,
    name: str,
    owner: str,
    decimals: int = TOKEN_DECIMALS,
    paused: bool = False,
) -> Unit:
    """
    Create a token unit.

    Args:
        symbol: Token symbol, also the token contract address (e.g., "LEAP")
        name: Token name (e.g., "Leap Token")
        owner: Initial owner
        decimals: Display decimals (base unit = 10 ** -decimals tokens)
        paused: Start with transfers paused

    Returns:
        Unit ready for Ledger.deploy()

    Raises:
        ValueError: If owner is the null address or decimals is negative
    """
    if is_null_address(owner):
        raise ValueError("Token owner cannot be the null address")
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")

    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_TOKEN,
        decimals=decimals,
        transfer_rule=token_transfer_rule,
        _frozen_state=_freeze_state({
            'owner': owner,
            'mint_agents': {},
            'paused': paused,
            'minting_finished': False,
            'allowances': {},
            'payable': False,
        })
    )


# ============================================================================
# QUERIES
# ============================================================================

def balance_of(view: LedgerView, token: str, account: str) -> int:
    """Token balance of account; unknown accounts hold nothing."""
    try:
        return view.get_balance(account, token)
    except WalletNotRegistered:
        return 0


def get_total_supply(view: LedgerView, token: str) -> int:
    return view.total_supply(token)


def get_allowance(view: LedgerView, token: str, holder: str, spender: str) -> int:
    return view.get_unit_state(token)['allowances'].get(holder, {}).get(spender, 0)


def is_paused(view: LedgerView, token: str) -> bool:
    return view.get_unit_state(token)['paused']


def is_minting_finished(view: LedgerView, token: str) -> bool:
    return view.get_unit_state(token)['minting_finished']


def is_mint_agent(view: LedgerView, token: str, account: str) -> bool:
    return bool(view.get_unit_state(token)['mint_agents'].get(account, False))


def can_mint(view: LedgerView, token: str, minter: str) -> bool:
    """True if minter is the owner or an enabled mint agent."""
    state = view.get_unit_state(token)
    return minter == state['owner'] or bool(state['mint_agents'].get(minter, False))


# ============================================================================
# MINTING
# ============================================================================

def mint_transaction(
    view: LedgerView,
    token: str,
    minter: str,
    to: str,
    amount: int,
    origin: Optional[TransactionOrigin] = None,
) -> PendingTransaction:
    """
    Issue ``amount`` new tokens to ``to``.

    Used directly by compute_mint() and merged into purchases by sales,
    which mint as the token's owner or as a mint agent.

    Raises:
        MintingFinished: If minting has been finished
        Unauthorized: If minter is neither owner nor mint agent
        PreconditionViolation: If to is null or amount is zero
        ArithmeticViolation: If the total supply would overflow
    """
    if is_minting_finished(view, token):
        raise MintingFinished(f"Minting of {token} is finished")
    if not can_mint(view, token, minter):
        raise Unauthorized(f"{minter} may not mint {token}")
    require_address(to, "mint recipient")
    if require_uint(amount, "amount") == 0:
        raise PreconditionViolation("Mint amount must be positive")
    checked_add(get_total_supply(view, token), amount)

    # any address can receive a mint; unknown recipients get a wallet
    new_wallets = () if to in view.list_wallets() else (to,)
    moves = [Move(amount, token, SYSTEM_WALLET, to, f"mint_{token}")]
    events = [
        emit("Mint", token, to=to, amount=amount),
        emit("Transfer", token, **{'from': ZERO_ADDRESS, 'to': to, 'value': amount}),
    ]
    return build_transaction(view, moves, origin=origin, wallets_to_create=new_wallets, events=events)


def compute_mint(view: LedgerView, token: str, caller: str, to: str, amount: int) -> PendingTransaction:
    """Owner or mint agent mints ``amount`` to ``to``."""
    return mint_transaction(view, token, caller, to, amount,
                            origin=call_origin(view, caller, token, "mint"))


def compute_finish_minting(view: LedgerView, token: str, caller: str) -> PendingTransaction:
    """
    Permanently stop minting.

    Raises:
        Unauthorized: If caller is not the owner
        MintingFinished: If minting is already finished
    """
    require_owner(view, token, caller)
    state = view.get_unit_state(token)
    if state['minting_finished']:
        raise MintingFinished(f"Minting of {token} is already finished")
    new_state = {**state, 'minting_finished': True}
    return build_transaction(
        view, [], [UnitStateChange(token, state, new_state)],
        origin=call_origin(view, caller, token, "finishMinting"),
        events=[emit("MintFinished", token)],
    )


def compute_set_mint_agent(
    view: LedgerView,
    token: str,
    caller: str,
    agent: str,
    enabled: bool,
) -> PendingTransaction:
    """Owner grants or revokes the right to mint."""
    require_owner(view, token, caller)
    require_address(agent, "mint agent")
    state = view.get_unit_state(token)
    agents = dict(state['mint_agents'])
    agents[agent] = bool(enabled)
    new_state = {**state, 'mint_agents': agents}
    return build_transaction(
        view, [], [UnitStateChange(token, state, new_state)],
        origin=call_origin(view, caller, token, "setMintAgent"),
        events=[emit("MintingAgentChanged", token, addr=agent, state=bool(enabled))],
    )


def compute_burn(view: LedgerView, token: str, caller: str, holder: str, amount: int) -> PendingTransaction:
    """
    Owner destroys ``amount`` of holder's tokens.

    Raises:
        Unauthorized: If caller is not the owner
        PreconditionViolation: If amount is zero
        InsufficientFunds: If holder has fewer than amount tokens
    """
    require_owner(view, token, caller)
    if require_uint(amount, "amount") == 0:
        raise PreconditionViolation("Burn amount must be positive")
    balance = balance_of(view, token, holder)
    if balance < amount:
        raise InsufficientFunds(f"{holder} holds {balance} {token}, cannot burn {amount}")

    moves = [Move(amount, token, holder, SYSTEM_WALLET, f"burn_{token}")]
    events = [
        emit("Burn", token, burner=holder, value=amount),
        emit("Transfer", token, **{'from': holder, 'to': ZERO_ADDRESS, 'value': amount}),
    ]
    return build_transaction(view, moves, origin=call_origin(view, caller, token, "burn"), events=events)


# ============================================================================
# PAUSING
# ============================================================================

def _set_paused(view: LedgerView, token: str, caller: str, paused: bool) -> PendingTransaction:
    require_owner(view, token, caller)
    state = view.get_unit_state(token)
    if state['paused'] == paused:
        raise InvalidStateTransition(f"{token} is already {'paused' if paused else 'unpaused'}")
    new_state = {**state, 'paused': paused}
    name = "Pause" if paused else "Unpause"
    return build_transaction(
        view, [], [UnitStateChange(token, state, new_state)],
        origin=call_origin(view, caller, token, name.lower()),
        events=[emit(name, token)],
    )


def compute_pause(view: LedgerView, token: str, caller: str) -> PendingTransaction:
    return _set_paused(view, token, caller, True)


def compute_unpause(view: LedgerView, token: str, caller: str) -> PendingTransaction:
    return _set_paused(view, token, caller, False)


# ============================================================================
# TRANSFERS
# ============================================================================

def _transfer_parts(
    view: LedgerView,
    token: str,
    holder: str,
    to: str,
    amount: int,
) -> Tuple[List[Move], List[EventRecord]]:
    if is_paused(view, token):
        raise InvalidStateTransition(f"{token} is paused")
    require_address(to, "recipient")
    require_uint(amount, "amount")
    balance = balance_of(view, token, holder)
    if balance < amount:
        raise InsufficientFunds(f"{holder} holds {balance} {token}, cannot transfer {amount}")
    moves = [Move(amount, token, holder, to, f"transfer_{token}")] if amount and holder != to else []
    events = [emit("Transfer", token, **{'from': holder, 'to': to, 'value': amount})]
    return moves, events


def compute_transfer(view: LedgerView, token: str, caller: str, to: str, amount: int) -> PendingTransaction:
    """
    Move ``amount`` of the caller's tokens to ``to``.

    Raises:
        InvalidStateTransition: If the token is paused
        PreconditionViolation: If to is the null address
        InsufficientFunds: If the caller's balance is too small
    """
    moves, events = _transfer_parts(view, token, caller, to, amount)
    return build_transaction(view, moves, origin=call_origin(view, caller, token, "transfer"), events=events)


def compute_approve(view: LedgerView, token: str, caller: str, spender: str, amount: int) -> PendingTransaction:
    """Allow spender to move up to ``amount`` of the caller's tokens."""
    require_address(spender, "spender")
    require_uint(amount, "amount")
    state = view.get_unit_state(token)
    allowances: Dict[str, Dict[str, int]] = {k: dict(v) for k, v in state['allowances'].items()}
    allowances.setdefault(caller, {})[spender] = amount
    new_state = {**state, 'allowances': allowances}
    return build_transaction(
        view, [], [UnitStateChange(token, state, new_state)],
        origin=call_origin(view, caller, token, "approve"),
        events=[emit("Approval", token, owner=caller, spender=spender, value=amount)],
    )


def compute_transfer_from(
    view: LedgerView,
    token: str,
    spender: str,
    holder: str,
    to: str,
    amount: int,
) -> PendingTransaction:
    """
    Spender moves holder's tokens to ``to``, consuming allowance.

    Raises:
        Unauthorized: If the allowance is smaller than amount
        InvalidStateTransition: If the token is paused
        InsufficientFunds: If the holder's balance is too small
    """
    allowance = get_allowance(view, token, holder, spender)
    if allowance < amount:
        raise Unauthorized(f"{spender} may spend {allowance} of {holder}'s {token}, not {amount}")
    moves, events = _transfer_parts(view, token, holder, to, amount)

    state = view.get_unit_state(token)
    allowances = {k: dict(v) for k, v in state['allowances'].items()}
    allowances.setdefault(holder, {})[spender] = checked_sub(allowance, amount)
    new_state = {**state, 'allowances': allowances}
    return build_transaction(
        view, moves, [UnitStateChange(token, state, new_state)],
        origin=call_origin(view, spender, token, "transferFrom"),
        events=events,
    )
