"""
Core types and pure functions for the token-sale ledger.

This module provides the foundational data structures and protocols:
1. Protocols: LedgerView for read-only ledger access, SmartContract for lifecycle polling
2. Immutable data structures: Move, EventRecord, PendingTransaction, Transaction, Unit
3. Exceptions: LedgerError and the precondition/authorization/arithmetic/invariant taxonomy
4. Type aliases: Positions, BalanceMap, UnitState
5. Transfer rules: Pure validation functions for moves
6. Unit factories: native_asset() for value-bearing assets

All functions in this module are pure and operate on read-only views.
No function can mutate ledger state directly.

Amounts are always integers expressed in base units (wei, satoshi, token
base units). There is no floating point anywhere in the ledger.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import copy
import hashlib
from typing import (
    Dict, List, Set, Optional, Callable, Any, Protocol,
    Tuple, FrozenSet, Iterable, runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet for issuance and burning.
# The system wallet is exempt from balance validation; minted supply shows up
# as a negative balance here.
SYSTEM_WALLET = "system"

# The null address. Never a valid beneficiary, owner or wallet.
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Largest value representable by an on-chain unsigned 256-bit integer.
UINT256_MAX = (1 << 256) - 1

# Unit type constants (strings, not enum per design decision).
UNIT_TYPE_NATIVE = "NATIVE"
UNIT_TYPE_TOKEN = "TOKEN"
UNIT_TYPE_CROWDSALE = "CROWDSALE"
UNIT_TYPE_TOKEN_HOLDER = "TOKEN_HOLDER"
UNIT_TYPE_TOKEN_HOLDER_FACTORY = "TOKEN_HOLDER_FACTORY"

# Base-unit scales.
TOKEN_DECIMALS = 18
WEI_PER_ETHER = 10 ** 18
SATOSHI_PER_BTC = 10 ** 8


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from wallet ID to quantity held by that wallet for a specific unit.
Positions = Dict[str, int]

# Mapping from unit symbol to quantity held in a single wallet.
BalanceMap = Dict[str, int]

# Internal state for a unit: configuration, counters, flags.
UnitState = Dict[str, Any]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to ledger state.

    Contract functions, transfer rules and queries accept a LedgerView and
    therefore cannot modify state. The Ledger class implements this protocol
    but also provides mutation methods. For testing, FakeView provides a
    truly immutable implementation.
    """

    @property
    def current_time(self) -> datetime:
        """Return the current logical time of the ledger (the time oracle)."""
        ...

    @property
    def block_number(self) -> int:
        """Return the number of the block the next transaction lands in."""
        ...

    def get_balance(self, wallet_id: str, unit_symbol: str) -> int:
        """
        Return the balance of a specific unit in a wallet.

        Returns 0 if the wallet holds nothing of this unit.
        """
        ...

    def get_unit_state(self, unit_symbol: str) -> UnitState:
        """Return a copy of the unit's internal state."""
        ...

    def get_positions(self, unit_symbol: str) -> Positions:
        """Return all non-zero positions for a unit across all wallets."""
        ...

    def list_wallets(self) -> Set[str]:
        """Return the set of all registered wallet IDs."""
        ...

    def get_unit(self, symbol: str) -> 'Unit':
        """Return the Unit object for a given symbol."""
        ...

    def has_unit(self, symbol: str) -> bool:
        """Return True if a unit with this symbol is registered."""
        ...

    def get_nonce(self, account: str) -> int:
        """Return the number of transactions the account has originated."""
        ...

    def total_supply(self, unit_symbol: str) -> int:
        """Return the quantity of a unit held outside the system wallet."""
        ...


class SmartContract(Protocol):
    """
    Protocol for lifecycle-aware contracts.

    Contracts receive a LedgerView and return a PendingTransaction directly.
    Use build_transaction() or empty_pending_transaction() to create the return value.
    """

    def check_lifecycle(
        self,
        view: LedgerView,
        symbol: str,
        timestamp: datetime,
    ) -> 'PendingTransaction':
        """
        Check if lifecycle events should fire.

        Args:
            view: Read-only ledger access
            symbol: Unit symbol to check
            timestamp: Current timestamp

        Returns:
            PendingTransaction with moves/state updates, or empty if nothing to do.
        """
        ...


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of a transaction execution attempt.

    APPLIED: Transaction was successfully validated and applied to the ledger.
    ALREADY_APPLIED: Transaction ID was previously processed (idempotent behavior).
    REJECTED: Transaction failed validation due to insufficient funds, balance
              constraints, transfer rule violations, stale state or stale nonce.
    """
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    REJECTED = "rejected"


class OriginType(Enum):
    """Classification of where a transaction originated."""
    USER_ACTION = "user_action"           # An account calling a contract entry point
    CONTRACT = "contract"                 # Contract-internal bookkeeping
    LIFECYCLE = "lifecycle"               # Automatic lifecycle event (sale close, auto release)
    SYSTEM = "system"                     # Setup operations (genesis funding)
    EXTERNAL = "external"                 # Relayed from an external system (proxy)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class InsufficientFunds(LedgerError):
    """Raised when a move would cause a wallet balance to fall below the unit's minimum."""
    pass


class BalanceConstraintViolation(LedgerError):
    """Raised when a move would cause a wallet balance to violate the unit's min/max constraints."""
    pass


class TransferRuleViolation(LedgerError):
    """Raised when a move violates the unit's transfer rule."""
    pass


class NonPayable(TransferRuleViolation):
    """Raised when value is sent to a contract that does not accept it."""
    pass


class UnitNotRegistered(LedgerError):
    """Raised when attempting to operate on a unit that has not been registered with the ledger."""
    pass


class WalletNotRegistered(LedgerError):
    """Raised when attempting to operate on a wallet that has not been registered with the ledger."""
    pass


class TransactionRejected(LedgerError):
    """Raised by Ledger.submit() when the ledger rejects a pending transaction."""
    pass


class PreconditionViolation(LedgerError):
    """A call argument or the timing of a call is invalid (zero amount, null address, window)."""
    pass


class SaleNotOpen(PreconditionViolation):
    """The sale is before its start, after its end, or already at its cap."""
    pass


class NotMember(PreconditionViolation):
    """The account is not on the sale's membership list."""
    pass


class ReleaseTooEarly(PreconditionViolation):
    """A token holder was asked to release before its release time."""
    pass


class Unauthorized(LedgerError):
    """The caller lacks the capability (owner, proxy, mint agent) the operation requires."""
    pass


class InvalidSignature(Unauthorized):
    """A release authorization signature is missing or was not produced by the signer."""
    pass


class ArithmeticViolation(LedgerError):
    """An amount computation overflowed or underflowed uint256 bounds."""
    pass


class InvariantViolation(LedgerError):
    """The operation would break a contract invariant."""
    pass


class CapExceeded(InvariantViolation):
    """The contribution would push the sale above its hard cap."""
    pass


class AlreadyReleased(InvariantViolation):
    """The token holder has already released its tokens."""
    pass


class MintingFinished(InvariantViolation):
    """Minting has been permanently finished on the token."""
    pass


class InvalidStateTransition(InvariantViolation):
    """The unit is not in a state that allows the requested transition."""
    pass


# ============================================================================
# ADDRESS HELPERS
# ============================================================================

def is_null_address(address: Optional[str]) -> bool:
    """Return True for None, non-strings, blank strings and ZERO_ADDRESS."""
    if not isinstance(address, str):
        return True
    return not address.strip() or address == ZERO_ADDRESS


def require_address(address: Optional[str], what: str) -> str:
    """Return the address, raising PreconditionViolation if it is null."""
    if is_null_address(address):
        raise PreconditionViolation(f"{what} cannot be the null address")
    return address


# ============================================================================
# TRANSACTION ORIGIN
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransactionOrigin:
    """
    Immutable record of a transaction's origin for audit purposes.

    Attributes:
        origin_type: Classification of the origin source (USER_ACTION, LIFECYCLE, etc.)
        source_id: The calling account, or the contract/engine that produced it
        unit_symbol: Symbol of the contract unit that was called (if applicable)
        event_type: Entry point name (e.g., "buyTokens", "release")
        nonce: The caller's nonce when the transaction was built. The ledger
               rejects the transaction if the nonce has moved on since.
    """
    origin_type: OriginType
    source_id: str
    unit_symbol: Optional[str] = None
    event_type: Optional[str] = None
    nonce: Optional[int] = None

    def __repr__(self) -> str:
        parts = [f"{self.origin_type.value}:{self.source_id}"]
        if self.unit_symbol:
            parts.append(f"unit={self.unit_symbol}")
        if self.event_type:
            parts.append(f"call={self.event_type}")
        if self.nonce is not None:
            parts.append(f"nonce={self.nonce}")
        return f"Origin({', '.join(parts)})"


def call_origin(
    view: LedgerView,
    caller: str,
    unit_symbol: str,
    entry_point: str,
) -> TransactionOrigin:
    """Origin for an account calling a contract entry point, stamped with its nonce."""
    return TransactionOrigin(
        origin_type=OriginType.USER_ACTION,
        source_id=caller,
        unit_symbol=unit_symbol,
        event_type=entry_point,
        nonce=view.get_nonce(caller),
    )


# ============================================================================
# UNIT STATE CHANGE
# ============================================================================

@dataclass(frozen=True, slots=True)
class UnitStateChange:
    """
    Record of a unit state change for transaction logging and rollback.

    Stores complete before/after state snapshots:
    - Forward replay: apply new_state
    - Backward replay: restore old_state
    - Stale detection: old_state must equal the state at execution time

    Attributes:
        unit: Symbol of the unit whose state changed
        old_state: Complete state before the change (dict or None)
        new_state: Complete state after the change (dict)
    """
    unit: str
    old_state: Any
    new_state: Any

    def changed_fields(self) -> Dict[str, Tuple[Any, Any]]:
        """
        Compute fields that differ between old and new state.

        Returns:
            Dict mapping field name to (old_value, new_value) tuples.
        """
        old = self.old_state if isinstance(self.old_state, dict) else {}
        new = self.new_state if isinstance(self.new_state, dict) else {}
        changes = {}
        for key in set(old.keys()) | set(new.keys()):
            old_val = old.get(key)
            new_val = new.get(key)
            if old_val != new_val:
                changes[key] = (old_val, new_val)
        return changes


# ============================================================================
# EVENTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class EventRecord:
    """
    A notification emitted by a contract, appended to the ledger's event log.

    Attributes:
        name: Event name (e.g., "TokenPurchase", "Transfer", "Released")
        address: Address of the emitting contract
        args: Event arguments as an ordered tuple of (key, value) pairs
    """
    name: str
    address: str
    args: Tuple[Tuple[str, Any], ...] = ()

    @property
    def args_dict(self) -> Dict[str, Any]:
        return dict(self.args)

    def __getitem__(self, key: str) -> Any:
        for k, v in self.args:
            if k == key:
                return v
        raise KeyError(key)

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self.args)
        return f"{self.name}@{self.address}({inner})"


def emit(name: str, address: str, **args: Any) -> EventRecord:
    """Build an EventRecord from keyword arguments, preserving their order."""
    return EventRecord(name=name, address=address, args=tuple(args.items()))


@dataclass(frozen=True, slots=True)
class LoggedEvent:
    """An EventRecord as stored in the ledger's event log."""
    event: EventRecord
    exec_id: str
    block_number: int
    timestamp: datetime


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of value between two wallets.

    Attributes:
        quantity: The amount to transfer in base units (positive int, at most UINT256_MAX).
        unit_symbol: The symbol of the unit being transferred (e.g., "ETH", "LEAP").
        source: The wallet ID from which value is debited.
        dest: The wallet ID to which value is credited.
        contract_id: Identifier of the contract call generating this move.
        metadata: Optional additional information about the move.
    """
    quantity: int
    unit_symbol: str
    source: str
    dest: str
    contract_id: str
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Move source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Move dest cannot be empty")
        if not self.unit_symbol or not self.unit_symbol.strip():
            raise ValueError("Move unit_symbol cannot be empty")
        if not self.contract_id or not self.contract_id.strip():
            raise ValueError("Move contract_id cannot be empty")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"Move quantity must be int, got {type(self.quantity)}")
        if self.quantity <= 0:
            raise ValueError(f"Move quantity must be positive, got {self.quantity}")
        if self.quantity > UINT256_MAX:
            raise ValueError("Move quantity exceeds uint256")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.unit_symbol}: {self.source}→{self.dest})"


def _canonicalize(value: Any) -> str:
    """
    Produce a canonical string representation of a value for hashing.

    Deterministic regardless of dict insertion order, set ordering and
    nesting depth.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"N:{value}"
    if isinstance(value, str):
        return f"S:{value}"
    if isinstance(value, datetime):
        return f"T:{value.isoformat()}"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        serialized = ",".join(f"{_canonicalize(k)}:{_canonicalize(v)}" for k, v in items)
        return f"{{{serialized}}}"
    if isinstance(value, (list, tuple)):
        serialized = ",".join(_canonicalize(item) for item in value)
        return f"[{serialized}]"
    if isinstance(value, (set, frozenset)):
        serialized = ",".join(_canonicalize(item) for item in sorted(value, key=str))
        return f"<{serialized}>"
    return f"R:{repr(value)}"


def _compute_intent_id(
    moves: Tuple[Move, ...],
    state_changes: Tuple[UnitStateChange, ...],
    origin: TransactionOrigin,
    units_to_create: Tuple['Unit', ...] = (),
    wallets_to_create: Tuple[str, ...] = (),
    events: Tuple[EventRecord, ...] = (),
) -> str:
    """
    Compute a deterministic content hash for a transaction's intent.

    The hash covers the semantic content only (moves, state changes, created
    units and wallets, events, origin with caller nonce), never timestamps or
    ledger-specific data. Same inputs always produce the same intent_id.
    """
    sorted_moves = tuple(sorted(
        moves,
        key=lambda m: (m.quantity, m.unit_symbol, m.source, m.dest, m.contract_id)
    ))

    content_parts = [f"origin:{origin.origin_type.value}:{origin.source_id}"]
    if origin.unit_symbol:
        content_parts.append(f"unit:{origin.unit_symbol}")
    if origin.event_type:
        content_parts.append(f"event:{origin.event_type}")
    if origin.nonce is not None:
        content_parts.append(f"nonce:{origin.nonce}")

    for unit in sorted(units_to_create, key=lambda u: u.symbol):
        content_parts.append(f"unit_create:{unit.symbol}|{unit.unit_type}")

    for wallet in sorted(wallets_to_create):
        content_parts.append(f"wallet_create:{wallet}")

    for m in sorted_moves:
        content_parts.append(f"move:{m.quantity}|{m.unit_symbol}|{m.source}|{m.dest}|{m.contract_id}")

    for sc in sorted(state_changes, key=lambda s: s.unit):
        old_canonical = _canonicalize(sc.old_state)
        new_canonical = _canonicalize(sc.new_state)
        content_parts.append(f"state_change:{sc.unit}|{old_canonical}|{new_canonical}")

    # Event order is part of the intent
    for ev in events:
        content_parts.append(f"log:{ev.name}|{ev.address}|{_canonicalize(list(ev.args))}")

    content = "|".join(content_parts)
    return hashlib.sha256(content.encode()).hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    A transaction specification before execution - represents INTENT.

    Created by contract functions and submitted to the ledger for execution.

    Lifecycle:
    1. A compute_* function builds the PendingTransaction against a LedgerView
    2. intent_id is auto-computed from content (deterministic hash)
    3. Ledger.execute() validates and executes it atomically, creating a Transaction

    Attributes:
        moves: Tuple of value transfers between wallets
        state_changes: Tuple of unit state changes (with old_state and new_state)
        origin: Who/what created this transaction and why
        timestamp: When this pending transaction was created
        units_to_create: Units to register before executing moves
        wallets_to_create: Wallets (contract addresses) to register before executing moves
        events: Notifications appended to the event log when applied
        intent_id: Content-addressable hash of the transaction intent (auto-computed)
    """
    moves: Tuple[Move, ...]
    state_changes: Tuple[UnitStateChange, ...]
    origin: TransactionOrigin
    timestamp: datetime
    units_to_create: Tuple['Unit', ...] = ()
    wallets_to_create: Tuple[str, ...] = ()
    events: Tuple[EventRecord, ...] = ()
    intent_id: str = field(default="")

    def __post_init__(self):
        if not self.intent_id:
            computed_id = _compute_intent_id(
                self.moves, self.state_changes, self.origin,
                self.units_to_create, self.wallets_to_create, self.events,
            )
            object.__setattr__(self, 'intent_id', computed_id)

    def is_empty(self) -> bool:
        """Return True if this pending transaction would change nothing."""
        return (not self.moves and not self.state_changes and not self.units_to_create
                and not self.wallets_to_create and not self.events)

    def __repr__(self) -> str:
        return (f"PendingTransaction({len(self.moves)} moves, {len(self.state_changes)} deltas, "
                f"{len(self.events)} events, {self.origin})")


def build_transaction(
    view: LedgerView,
    moves: List[Move],
    state_changes: Optional[List[UnitStateChange]] = None,
    origin: Optional[TransactionOrigin] = None,
    units_to_create: Optional[Tuple['Unit', ...]] = None,
    wallets_to_create: Optional[Tuple[str, ...]] = None,
    events: Optional[List[EventRecord]] = None,
) -> PendingTransaction:
    """
    Build a PendingTransaction from moves, state deltas and events.

    This is the standard way to create transactions.

    Args:
        view: Read-only ledger view (provides current_time)
        moves: List of moves to include in the transaction
        state_changes: Optional list of UnitStateChange objects
        origin: Transaction origin (defaults to CONTRACT origin)
        units_to_create: Optional tuple of Unit objects to register before executing moves
        wallets_to_create: Optional tuple of wallet ids to register before executing moves
        events: Optional list of EventRecord notifications

    Returns:
        A PendingTransaction ready for execution

    Example:
        def compute_release(view, holder, caller):
            state = view.get_unit_state(holder)
            moves = [Move(amount, state['token'], holder, state['beneficiary'], f"release_{holder}")]
            new_state = {**state, 'released': True}
            changes = [UnitStateChange(unit=holder, old_state=state, new_state=new_state)]
            return build_transaction(view, moves, changes)
    """
    if origin is None:
        origin = TransactionOrigin(
            origin_type=OriginType.CONTRACT,
            source_id="contract",
        )

    # Deep copy state changes to prevent mutation
    copied_changes: Tuple[UnitStateChange, ...] = ()
    if state_changes:
        copied_changes = tuple(
            UnitStateChange(
                unit=sc.unit,
                old_state=copy.deepcopy(sc.old_state),
                new_state=copy.deepcopy(sc.new_state),
            )
            for sc in state_changes
        )

    return PendingTransaction(
        moves=tuple(moves),
        state_changes=copied_changes,
        origin=origin,
        timestamp=view.current_time,
        units_to_create=units_to_create or (),
        wallets_to_create=wallets_to_create or (),
        events=tuple(events or ()),
    )


def empty_pending_transaction(view: LedgerView) -> PendingTransaction:
    """
    Create an empty PendingTransaction (no moves, no state changes).

    Use this when a contract function has nothing to do.
    """
    return PendingTransaction(
        moves=(),
        state_changes=(),
        origin=TransactionOrigin(OriginType.CONTRACT, "noop"),
        timestamp=view.current_time,
    )


def merge_transactions(
    view: LedgerView,
    parts: Iterable[PendingTransaction],
    origin: TransactionOrigin,
) -> PendingTransaction:
    """
    Combine several pending transactions into one atomic transaction.

    Used when one entry point drives several contracts (a purchase mints on the
    token, creates a holder on the factory and updates the sale). Moves, units,
    wallets and events keep their order; each unit may change state at most once
    and a wallet created by several parts is created once.

    Raises:
        ValueError: If two parts change the state of the same unit
    """
    moves: List[Move] = []
    changes: List[UnitStateChange] = []
    units: List[Unit] = []
    wallets: List[str] = []
    events: List[EventRecord] = []
    touched: Set[str] = set()

    for part in parts:
        moves.extend(part.moves)
        for sc in part.state_changes:
            if sc.unit in touched:
                raise ValueError(f"Unit {sc.unit} changed twice in one transaction")
            touched.add(sc.unit)
            changes.append(sc)
        units.extend(part.units_to_create)
        for wallet in part.wallets_to_create:
            if wallet not in wallets:
                wallets.append(wallet)
        events.extend(part.events)

    return PendingTransaction(
        moves=tuple(moves),
        state_changes=tuple(changes),
        origin=origin,
        timestamp=view.current_time,
        units_to_create=tuple(units),
        wallets_to_create=tuple(wallets),
        events=tuple(events),
    )


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed, immutable record of ledger state changes - represents FACT.

    Created by the ledger when executing a PendingTransaction.

    Attributes:
        moves: Tuple of value transfers between wallets
        state_changes: Tuple of unit state changes (with old_state and new_state)
        origin: Who/what created this transaction and why
        timestamp: When the PendingTransaction was created
        intent_id: Content hash from PendingTransaction (for idempotency)
        exec_id: Unique execution identifier (ledger + sequence + time)
        ledger_name: Name of the ledger that executed this
        execution_time: When this was executed and logged
        sequence_number: Monotonic sequence within the ledger (for ordering)
        block_number: Block the transaction was included in
        units_to_create: Units registered by this transaction
        wallets_to_create: Wallets registered by this transaction
        events: Notifications emitted by this transaction
        contract_ids: Set of contract IDs from moves (auto-populated)
    """
    moves: Tuple[Move, ...]
    state_changes: Tuple[UnitStateChange, ...]
    origin: TransactionOrigin
    timestamp: datetime
    intent_id: str
    exec_id: str
    ledger_name: str
    execution_time: datetime
    sequence_number: int
    block_number: int = 0
    units_to_create: Tuple['Unit', ...] = ()
    wallets_to_create: Tuple[str, ...] = ()
    events: Tuple[EventRecord, ...] = ()
    contract_ids: FrozenSet[str] = None

    def __post_init__(self):
        if (not self.moves and not self.state_changes and not self.units_to_create
                and not self.wallets_to_create and not self.events):
            raise ValueError("Transaction must have moves, state_changes, created units/wallets or events")
        if self.contract_ids is None:
            object.__setattr__(
                self, 'contract_ids',
                frozenset(m.contract_id for m in self.moves)
            )

    def __repr__(self) -> str:
        w = 100  # Inner content width
        bar = "─" * w

        def pad(text: str) -> str:
            """Pad or truncate text to exactly w characters."""
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            "",
            f"┌{bar}┐",
            f"│{pad(' Transaction: ' + self.exec_id)}│",
            f"├{bar}┤",
            f"│{pad('   intent_id      : ' + self.intent_id)}│",
            f"│{pad('   timestamp      : ' + str(self.timestamp))}│",
            f"│{pad('   block          : ' + str(self.block_number))}│",
            f"│{pad('   sequence       : ' + str(self.sequence_number))}│",
            f"│{pad('   origin         : ' + str(self.origin))}│",
        ]
        if self.units_to_create or self.wallets_to_create:
            lines.append(f"├{bar}┤")
            for unit in self.units_to_create:
                lines.append(f"│{pad('   deployed ' + unit.symbol + ' (' + unit.unit_type + ')')}│")
            for wallet in self.wallets_to_create:
                lines.append(f"│{pad('   wallet   ' + wallet)}│")
        lines.append(f"├{bar}┤")
        lines.append(f"│{pad(' Moves (' + str(len(self.moves)) + '):')}│")
        for i, move in enumerate(self.moves):
            move_str = f"   [{i}] {move.quantity} {move.unit_symbol}: {move.source} → {move.dest}"
            lines.append(f"│{pad(move_str)}│")
        if self.state_changes:
            lines.append(f"├{bar}┤")
            lines.append(f"│{pad(' State Changes (' + str(len(self.state_changes)) + '):')}│")
            for sc in self.state_changes:
                lines.append(f"│{pad('   [' + sc.unit + ']')}│")
                for field_name, (old_val, new_val) in sc.changed_fields().items():
                    lines.append(f"│{pad(f'      {field_name}: {old_val!r} → {new_val!r}')}│")
        if self.events:
            lines.append(f"├{bar}┤")
            lines.append(f"│{pad(' Events (' + str(len(self.events)) + '):')}│")
            for ev in self.events:
                lines.append(f"│{pad('   ' + repr(ev))}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)


# Type alias for transfer rule functions.
# Transfer rules validate moves and raise TransferRuleViolation if invalid.
TransferRule = Callable[[LedgerView, Move], None]


def _freeze_state(state: Optional[UnitState]) -> Tuple[Tuple[str, Any], ...]:
    """
    Convert a mutable state dict to an immutable frozen representation.

    Returns:
        Tuple of (key, value) pairs, sorted by key for determinism
    """
    if not state:
        return ()
    return tuple(sorted(state.items(), key=lambda kv: kv[0]))


def _thaw_state(frozen_state: Tuple[Tuple[str, Any], ...]) -> UnitState:
    """Convert a frozen state representation back to a mutable dict."""
    return dict(frozen_state)


@dataclass(frozen=True, slots=True)
class Unit:
    """
    Definition of an asset or contract in the ledger.

    Attributes:
        symbol: Short identifier; for contracts also the contract's address.
        name: Human-readable name for the unit.
        unit_type: Category of the unit (NATIVE, TOKEN, CROWDSALE, TOKEN_HOLDER, ...).
        min_balance: Minimum allowed balance in any wallet.
        max_balance: Maximum allowed balance in any wallet.
        decimals: Number of decimals of the base unit (display only).
        transfer_rule: Optional function to validate moves involving this unit.
        _frozen_state: Internal frozen state representation (tuple of key-value pairs).
    """
    symbol: str
    name: str
    unit_type: str
    min_balance: int = 0
    max_balance: int = UINT256_MAX
    decimals: int = TOKEN_DECIMALS
    transfer_rule: Optional[TransferRule] = None
    _frozen_state: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    @property
    def state(self) -> UnitState:
        """
        Get the unit's state as a mutable dictionary.

        Returns a new dict each time to prevent accidental mutation.
        """
        return _thaw_state(self._frozen_state)


# ============================================================================
# TRANSFER RULES
# ============================================================================

def payable_transfer_rule(view: LedgerView, move: Move) -> None:
    """
    Reject value sent to a contract address that is not payable.

    Contract units whose state carries ``payable: False`` (the token, token
    holders, holder factories) never hold the native asset.

    Raises:
        NonPayable: If the destination is a non-payable contract.
    """
    if not view.has_unit(move.dest):
        return
    if not view.get_unit_state(move.dest).get('payable', True):
        raise NonPayable(f"{move.dest} does not accept {move.unit_symbol}")


# ============================================================================
# UNIT FACTORIES
# ============================================================================

def native_asset(symbol: str, name: str, decimals: int = 18) -> Unit:
    """
    Create a value-bearing asset (the chain's native currency, or an
    alternate asset such as BTC when it is tracked on the ledger).

    Args:
        symbol: Asset code (e.g., "ETH").
        name: Full name (e.g., "Ether").
        decimals: Decimals of the base unit (18 for wei).

    Returns:
        A Unit with a zero minimum balance and the payable transfer rule.
    """
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_NATIVE,
        decimals=decimals,
        transfer_rule=payable_transfer_rule,
        _frozen_state=_freeze_state({'issuer': SYSTEM_WALLET, 'decimals': decimals}),
    )


def ether(amount: str) -> int:
    """
    Convert a decimal string of ether into wei without floating point.

    Example:
        ether("0.001") == 10 ** 15
    """
    whole, _, frac = str(amount).partition(".")
    if len(frac) > 18:
        raise ValueError(f"More than 18 decimals in {amount}")
    return int(whole or "0") * WEI_PER_ETHER + int(frac.ljust(18, "0") or "0")


def in_base_units(amount: int, decimals: int = TOKEN_DECIMALS) -> int:
    """Scale a whole-token amount to base units."""
    return amount * 10 ** decimals
