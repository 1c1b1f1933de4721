"""
ledger.py - Stateful Double-Entry Ledger for Token Sales

The Ledger class is the central state manager for the token-sale system.
It is the only module that mutates state, ensuring controlled and auditable changes.

Key responsibilities:
    - Implements LedgerView protocol for safe read-only access by pure functions
    - Executes transactions atomically (all moves succeed or all fail)
    - Maintains wallet balances, unit (asset and contract) definitions and caller nonces
    - Rejects transactions built against stale unit state or a stale nonce
    - Keeps the transaction log and the event log
    - Tracks time and blocks and provides temporal operations (clone_at, replay)
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Set, Optional, Tuple, Any
import copy

from .core import (
    # Types
    Move, Transaction, Unit,
    PendingTransaction, EventRecord, LoggedEvent,
    ExecuteResult, OriginType,
    Positions, UnitState, BalanceMap,
    # Constants
    SYSTEM_WALLET,
    # Exceptions
    LedgerError, TransferRuleViolation, TransactionRejected,
    UnitNotRegistered, WalletNotRegistered,
    # Helper functions
    _freeze_state,
)


class Ledger:
    """
    Double-entry ledger with full validation and audit trail.

    Implements the LedgerView protocol, allowing the ledger to be passed to pure
    contract functions that access only read-only methods.

    Design Principles:
        - Always validates: Every transaction is validated against balance constraints,
          transfer rules, timestamp, unit state freshness and caller nonce. No shortcuts.
        - Always logs: Every applied transaction is recorded in the audit trail and
          its events in the event log, enabling clone_at() and replay().
        - One transaction per block: block_number advances with each applied transaction.

    Thread Safety:
        Not thread-safe. Each thread should maintain its own Ledger instance.

    Example:
        ledger = Ledger("main")
        ledger.register_unit(native_asset("ETH", "Ether"))
        ledger.register_wallet("alice")
        ledger.register_wallet("bob")

        tx = build_transaction(ledger, [
            Move(10 ** 18, "ETH", "alice", "bob", "payment_001")
        ])
        result = ledger.execute(tx)
    """

    def __init__(
        self,
        name: str,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
        test_mode: bool = False
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            initial_time: Starting time for the ledger (default: 1970-01-01)
            verbose: Print registrations and transaction results (default: True)
            test_mode: Enable test mode to allow set_balance() calls (default: False)
        """
        self.name = name
        self.balances: Dict[str, Dict[str, int]] = {}
        self.units: Dict[str, Unit] = {}
        self.registered_wallets: Set[str] = set()
        self.seen_intent_ids: Set[str] = set()  # For idempotency (content-based)
        self.transaction_log: List[Transaction] = []
        self.event_log: List[LoggedEvent] = []
        self.nonces: Dict[str, int] = defaultdict(int)
        self.last_rejection: str = ""
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)
        self._block_number: int = 1
        self.verbose = verbose
        self._test_mode = test_mode
        # Monotonic sequence counter for execution ordering
        self._next_sequence: int = 0
        # Inverted index mapping unit -> {wallet -> quantity} for O(1) position lookups
        self._positions_by_unit: Dict[str, Dict[str, int]] = defaultdict(dict)

        # Auto-register the system wallet (used for minting/burning)
        self.registered_wallets.add(SYSTEM_WALLET)
        self.balances[SYSTEM_WALLET] = defaultdict(int)

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the ledger."""
        return self._current_time

    @property
    def block_number(self) -> int:
        """Number of the block the next transaction is included in."""
        return self._block_number

    def get_balance(self, wallet_id: str, unit_symbol: str) -> int:
        """
        Get the balance of a specific unit in a wallet.

        Raises:
            WalletNotRegistered: If wallet is not registered
            UnitNotRegistered: If unit is not registered
        """
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return self.balances[wallet_id].get(unit_symbol, 0)

    def get_unit_state(self, unit_symbol: str) -> UnitState:
        """
        Get a deep copy of a unit's internal state.

        The returned state dictionary can be safely mutated without affecting
        the ledger's internal state.

        Raises:
            UnitNotRegistered: If unit is not registered
        """
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        unit_obj = self.units[unit_symbol]
        return self._deep_copy_state(unit_obj.state) if unit_obj.state else {}

    def get_positions(self, unit_symbol: str) -> Positions:
        """
        Get all non-zero positions for a specific unit across all wallets.

        Uses an inverted index for O(1) lookup performance.
        """
        return dict(self._positions_by_unit.get(unit_symbol, {}))

    def list_wallets(self) -> Set[str]:
        """List all registered wallet IDs."""
        return self.registered_wallets.copy()

    def list_units(self) -> List[str]:
        """List all registered unit symbols."""
        return sorted(self.units.keys())

    def get_unit(self, symbol: str) -> Unit:
        """Return the Unit object for a given symbol."""
        if symbol not in self.units:
            raise UnitNotRegistered(f"Unit {symbol} not registered")
        return self.units[symbol]

    def has_unit(self, symbol: str) -> bool:
        return symbol in self.units

    def get_nonce(self, account: str) -> int:
        """Number of transactions the account has originated."""
        return self.nonces.get(account, 0)

    def get_wallet_balances(self, wallet_id: str) -> BalanceMap:
        """Get all balances for a wallet."""
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        return dict(self.balances[wallet_id])

    def total_supply(self, unit_symbol: str) -> int:
        """
        Quantity of a unit held outside the system wallet.

        For minted units this equals the negated system wallet balance.

        Raises:
            UnitNotRegistered: If unit is not registered
        """
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return sum(
            self.balances[w].get(unit_symbol, 0)
            for w in sorted(self.registered_wallets) if w != SYSTEM_WALLET
        )

    def verify_double_entry(
        self,
        expected_supplies: Dict[str, int] = None,
    ) -> Dict[str, Any]:
        """
        Verify that conservation laws hold for all units.

        For every unit the balances across all wallets, system wallet included,
        must sum to zero. Optionally the circulating supply (total_supply) is
        checked against expected values.

        Args:
            expected_supplies: Optional dict mapping unit symbols to expected supplies.

        Returns:
            Dict with keys:
            - 'valid': bool - True if all conservation laws hold
            - 'supplies': Dict[str, int] - Current circulating supply for each unit
            - 'discrepancies': List[Dict] - Details of any conservation violations

        Example:
            result = ledger.verify_double_entry()
            assert result['valid'], f"Conservation violated: {result['discrepancies']}"
        """
        supplies = {}
        discrepancies = []

        for unit_symbol in self.units:
            net = sum(self.balances[w].get(unit_symbol, 0) for w in self.registered_wallets)
            if net != 0:
                discrepancies.append({
                    'unit': unit_symbol,
                    'expected': 0,
                    'actual': net,
                    'difference': net,
                    'error': 'balances do not net to zero',
                })

            current_supply = self.total_supply(unit_symbol)
            supplies[unit_symbol] = current_supply

            if expected_supplies and unit_symbol in expected_supplies:
                expected = expected_supplies[unit_symbol]
                if current_supply != expected:
                    discrepancies.append({
                        'unit': unit_symbol,
                        'expected': expected,
                        'actual': current_supply,
                        'difference': current_supply - expected,
                    })

        if expected_supplies:
            for unit_symbol, expected in expected_supplies.items():
                if unit_symbol not in supplies:
                    discrepancies.append({
                        'unit': unit_symbol,
                        'expected': expected,
                        'actual': 0,
                        'difference': -expected,
                        'error': 'unit not registered',
                    })

        return {
            'valid': len(discrepancies) == 0,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }

    def is_registered(self, wallet_id: str) -> bool:
        """Check if a wallet is registered."""
        return wallet_id in self.registered_wallets

    def get_events(self, name: Optional[str] = None, address: Optional[str] = None) -> List[EventRecord]:
        """
        Return logged events in emission order, optionally filtered.

        Args:
            name: Only events with this name (e.g., "TokenPurchase")
            address: Only events emitted by this contract address
        """
        return [
            entry.event for entry in self.event_log
            if (name is None or entry.event.name == name)
            and (address is None or entry.event.address == address)
        ]

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the ledger's logical clock to a new time.

        Time can only move forward, never backward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_wallet(self, wallet_id: str) -> str:
        """
        Register a new wallet (account address) in the ledger.

        Raises:
            ValueError: If wallet is already registered
        """
        if wallet_id in self.registered_wallets:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self.registered_wallets.add(wallet_id)
        self.balances[wallet_id] = defaultdict(int)
        return wallet_id

    def register_unit(self, unit: Unit) -> None:
        """
        Register a new unit (asset or contract) in the ledger.

        If verbose mode is enabled, prints registration confirmation with unit details.

        Raises:
            ValueError: If unit symbol is already registered
        """
        if unit.symbol in self.units:
            raise ValueError(f"Unit {unit.symbol} already registered")
        self.units[unit.symbol] = unit
        if self.verbose:
            rule_str = f", rule={unit.transfer_rule.__name__}" if unit.transfer_rule else ""
            print(f"📝 Registered: {unit.symbol} ({unit.name}) [{unit.unit_type}]{rule_str}")

    def deploy(self, unit: Unit) -> str:
        """
        Register a contract unit together with its wallet (the contract address).

        Returns:
            The contract address, which is the unit symbol
        """
        self.register_unit(unit)
        if unit.symbol not in self.registered_wallets:
            self.register_wallet(unit.symbol)
        return unit.symbol

    def set_balance(self, wallet_id: str, unit_symbol: str, quantity: int) -> None:
        """
        Set a wallet's balance for a unit directly.

        WARNING: This method bypasses double-entry accounting and is only
        available in test mode. The system wallet is debited by the same
        amount so that conservation still holds.

        Raises:
            LedgerError: If called when test_mode is False
        """
        if not self._test_mode:
            raise LedgerError(
                "set_balance() is disabled in production mode. "
                "Use build_transaction() and execute() to modify balances. "
                "Set test_mode=True when creating Ledger for testing."
            )
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        delta = quantity - self.balances[wallet_id][unit_symbol]
        self.balances[wallet_id][unit_symbol] = quantity
        self._update_position_index(wallet_id, unit_symbol, quantity)
        if wallet_id != SYSTEM_WALLET:
            system_balance = self.balances[SYSTEM_WALLET][unit_symbol] - delta
            self.balances[SYSTEM_WALLET][unit_symbol] = system_balance
            self._update_position_index(SYSTEM_WALLET, unit_symbol, system_balance)

    # ========================================================================
    # TRANSACTION EXECUTION (Mutating)
    # ========================================================================

    def _generate_exec_id(self, sequence: int) -> str:
        """
        Generate a unique execution ID.

        Format: exec:{ledger_name}:{sequence:012d}:{timestamp_micros}
        """
        micros = int(self._current_time.timestamp() * 1_000_000)
        return f"exec:{self.name}:{sequence:012d}:{micros}"

    def execute(self, pending: PendingTransaction) -> ExecuteResult:
        """
        Execute a PendingTransaction atomically.

        All moves, state changes, registrations and events succeed together or
        all fail together. Execution is idempotent: a pending transaction with
        the same intent_id will not be applied twice.

        All transactions are fully validated against:
        - Unit and wallet registration
        - Balance constraints (min/max balance limits)
        - Transfer rules
        - Timestamp requirements
        - Unit state freshness (old_state must equal the current state)
        - Caller nonce (for user actions)

        Returns:
            ExecuteResult.APPLIED if successful
            ExecuteResult.ALREADY_APPLIED if transaction was already executed
            ExecuteResult.REJECTED if validation failed (reason in last_rejection)
        """
        if pending.is_empty():
            return ExecuteResult.APPLIED

        # Idempotency check based on intent_id (content hash)
        if pending.intent_id in self.seen_intent_ids:
            if self.verbose:
                print(f"⚠️  ALREADY_APPLIED: intent_id={pending.intent_id}")
            return ExecuteResult.ALREADY_APPLIED

        # Units and wallets are registered for validation and removed again on rejection
        newly_registered_units: List[str] = []
        newly_registered_wallets: List[str] = []
        for unit in pending.units_to_create:
            if unit.symbol in self.units:
                self._rollback_registrations(newly_registered_units, newly_registered_wallets)
                return self._reject(f"unit already registered: {unit.symbol}")
            self.register_unit(unit)
            newly_registered_units.append(unit.symbol)
        for wallet in pending.wallets_to_create:
            if wallet in self.registered_wallets:
                self._rollback_registrations(newly_registered_units, newly_registered_wallets)
                return self._reject(f"wallet already registered: {wallet}")
            self.register_wallet(wallet)
            newly_registered_wallets.append(wallet)

        valid, reason = self._validate_pending(pending, set(newly_registered_units))
        if not valid:
            self._rollback_registrations(newly_registered_units, newly_registered_wallets)
            return self._reject(reason)

        sequence = self._next_sequence
        self._next_sequence += 1
        exec_id = self._generate_exec_id(sequence)

        tx = Transaction(
            moves=pending.moves,
            state_changes=pending.state_changes,
            origin=pending.origin,
            timestamp=pending.timestamp,
            intent_id=pending.intent_id,
            exec_id=exec_id,
            ledger_name=self.name,
            execution_time=self._current_time,
            sequence_number=sequence,
            block_number=self._block_number,
            units_to_create=pending.units_to_create,
            wallets_to_create=pending.wallets_to_create,
            events=pending.events,
        )

        self._execute_moves(tx.moves)

        # Unit is frozen, so state updates replace the Unit instance
        for sc in tx.state_changes:
            old_unit = self.units[sc.unit]
            new_state = self._deep_copy_state(
                sc.new_state if isinstance(sc.new_state, dict) else {}
            )
            self.units[sc.unit] = replace(old_unit, _frozen_state=_freeze_state(new_state))

        if pending.origin.origin_type == OriginType.USER_ACTION:
            self.nonces[pending.origin.source_id] += 1

        for event in tx.events:
            self.event_log.append(LoggedEvent(
                event=event,
                exec_id=exec_id,
                block_number=self._block_number,
                timestamp=self._current_time,
            ))

        # Log transaction (always - audit trail is mandatory)
        self.transaction_log.append(tx)
        self.seen_intent_ids.add(pending.intent_id)
        self._block_number += 1
        self.last_rejection = ""

        if self.verbose:
            self._print_tx_result(tx, "APPLIED", "✓")
        return ExecuteResult.APPLIED

    def submit(self, pending: PendingTransaction) -> Optional[Transaction]:
        """
        Execute a PendingTransaction, raising instead of returning REJECTED.

        Returns:
            The applied Transaction, the previously applied Transaction for a
            repeated intent, or None for an empty pending transaction.

        Raises:
            TransactionRejected: If the ledger rejects the transaction
        """
        result = self.execute(pending)
        if result == ExecuteResult.REJECTED:
            raise TransactionRejected(self.last_rejection)
        for tx in reversed(self.transaction_log):
            if tx.intent_id == pending.intent_id:
                return tx
        return None

    def _reject(self, reason: str) -> ExecuteResult:
        self.last_rejection = reason
        if self.verbose:
            print(f"✗ REJECTED: {reason}")
        return ExecuteResult.REJECTED

    def _rollback_registrations(self, units: List[str], wallets: List[str]) -> None:
        for sym in units:
            del self.units[sym]
        for wallet in wallets:
            self.registered_wallets.discard(wallet)
            del self.balances[wallet]

    def _print_tx_result(self, tx: Transaction, result: str, icon: str) -> None:
        """
        Print transaction details and result.

        Uses Transaction.__repr__ and appends a result line.
        """
        lines = repr(tx).split('\n')
        w = 100
        bar = "─" * w
        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))
        # Replace the closing line with a result section
        lines[-1] = f"├{bar}┤"
        lines.append(f"│{pad(' ' + icon + ' ' + result)}│")
        lines.append(f"└{bar}┘")
        print("\n".join(lines))

    def _validate_pending(
        self,
        pending: PendingTransaction,
        created_units: Set[str] = frozenset(),
    ) -> Tuple[bool, str]:
        """
        Validate pending transaction against all constraints.

        Checks performed:
        1. Timestamp validation (transaction must not be from the future)
        2. Caller nonce (user actions must carry the current nonce)
        3. Unit and wallet registration
        4. Transfer rule enforcement
        5. Balance constraint validation (min/max balance limits)
        6. Unit state freshness

        Args:
            pending: PendingTransaction to validate
            created_units: Units registered by this same transaction

        Returns:
            Tuple of (success: bool, reason: str)
        """
        if pending.timestamp > self._current_time:
            return False, "future timestamp"

        origin = pending.origin
        if origin.origin_type == OriginType.USER_ACTION and origin.nonce is not None:
            current_nonce = self.get_nonce(origin.source_id)
            if origin.nonce != current_nonce:
                return False, f"stale nonce for {origin.source_id}: {origin.nonce} != {current_nonce}"

        for move in pending.moves:
            if move.unit_symbol not in self.units:
                return False, f"unit not registered: {move.unit_symbol}"
            if not self.is_registered(move.source):
                return False, f"wallet not registered: {move.source}"
            if not self.is_registered(move.dest):
                return False, f"wallet not registered: {move.dest}"

            unit = self.units[move.unit_symbol]
            if unit.transfer_rule:
                try:
                    unit.transfer_rule(self, move)
                except TransferRuleViolation as e:
                    return False, str(e)

        net: Dict[Tuple[str, str], int] = {}
        for move in pending.moves:
            key_src = (move.source, move.unit_symbol)
            key_dst = (move.dest, move.unit_symbol)
            net[key_src] = net.get(key_src, 0) - move.quantity
            net[key_dst] = net.get(key_dst, 0) + move.quantity

        # SYSTEM_WALLET is exempt from balance validation
        for (wallet, unit_sym), delta in net.items():
            if wallet == SYSTEM_WALLET:
                continue
            current = self.balances[wallet][unit_sym]
            unit = self.units[unit_sym]
            proposed = current + delta
            if proposed < unit.min_balance:
                return False, f"{wallet} {unit_sym}: {proposed} < min {unit.min_balance}"
            if proposed > unit.max_balance:
                return False, f"{wallet} {unit_sym}: {proposed} > max {unit.max_balance}"

        for sc in pending.state_changes:
            if sc.unit not in self.units:
                return False, f"state change for unregistered unit: {sc.unit}"
            if sc.unit in created_units:
                continue
            current_state = self.units[sc.unit].state
            old_state = sc.old_state if isinstance(sc.old_state, dict) else {}
            for key in set(old_state.keys()) | set(current_state.keys()):
                if old_state.get(key) != current_state.get(key):
                    return False, (f"stale state for {sc.unit}.{key}: "
                                   f"expected {old_state.get(key)!r}, found {current_state.get(key)!r}")

        return True, ""

    def _update_position_index(self, wallet_id: str, unit_symbol: str, quantity: int) -> None:
        """
        Update the inverted position index after a balance change.

        Zero balances are removed from the index to keep it compact.
        """
        if quantity != 0:
            self._positions_by_unit[unit_symbol][wallet_id] = quantity
        else:
            self._positions_by_unit[unit_symbol].pop(wallet_id, None)

    def _execute_moves(self, moves) -> None:
        """Apply all moves to wallet balances and update the position index."""
        for move in moves:
            new_src_balance = self.balances[move.source][move.unit_symbol] - move.quantity
            self.balances[move.source][move.unit_symbol] = new_src_balance
            self._update_position_index(move.source, move.unit_symbol, new_src_balance)
            new_dst_balance = self.balances[move.dest][move.unit_symbol] + move.quantity
            self.balances[move.dest][move.unit_symbol] = new_dst_balance
            self._update_position_index(move.dest, move.unit_symbol, new_dst_balance)

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    @staticmethod
    def _deep_copy_state(state: Optional[UnitState]) -> Optional[UnitState]:
        if state is None:
            return None
        return copy.deepcopy(state)

    def clone(self) -> Ledger:
        """
        Create a deep copy of this ledger.

        All state is fully independent: modifications to the clone will not
        affect the original ledger, and vice versa.

        Returns:
            A new Ledger instance with identical state
        """
        cloned = Ledger.__new__(Ledger)
        cloned.name = self.name
        cloned._current_time = self._current_time
        cloned._block_number = self._block_number
        cloned.verbose = self.verbose
        cloned._test_mode = self._test_mode
        cloned.last_rejection = self.last_rejection

        cloned.units = {
            symbol: replace(unit, _frozen_state=_freeze_state(self._deep_copy_state(unit.state)))
            for symbol, unit in self.units.items()
        }

        cloned.registered_wallets = self.registered_wallets.copy()
        cloned.seen_intent_ids = self.seen_intent_ids.copy()
        cloned.transaction_log = list(self.transaction_log)
        cloned.event_log = list(self.event_log)
        cloned.nonces = defaultdict(int, self.nonces)
        cloned._next_sequence = self._next_sequence

        cloned.balances = {}
        for wallet, bals in self.balances.items():
            cloned.balances[wallet] = defaultdict(int, bals)

        cloned._positions_by_unit = defaultdict(dict)
        for unit_symbol, positions in self._positions_by_unit.items():
            cloned._positions_by_unit[unit_symbol] = dict(positions)

        return cloned

    def clone_at(self, target_time: datetime) -> Ledger:
        """
        Create a deep copy of this ledger as it existed at a specific past time.

        Walks backward through all transactions executed after target_time and
        reverses each one: balances, unit state (restored from old_state),
        created units and wallets, caller nonces, events and block number.

        Raises:
            ValueError: If target_time is in the future
        """
        if target_time > self._current_time:
            raise ValueError(f"Target time {target_time} is in the future")

        cloned = self.clone()
        cloned._current_time = target_time

        cloned.transaction_log = [
            tx for tx in self.transaction_log
            if tx.execution_time <= target_time
        ]
        kept_exec_ids = {tx.exec_id for tx in cloned.transaction_log}
        cloned.seen_intent_ids = {tx.intent_id for tx in cloned.transaction_log}
        cloned.event_log = [e for e in self.event_log if e.exec_id in kept_exec_ids]
        cloned._next_sequence = len(cloned.transaction_log)
        cloned._block_number = (cloned.transaction_log[-1].block_number + 1
                                if cloned.transaction_log else 1)

        for tx in reversed(self.transaction_log):
            if tx.execution_time <= target_time:
                break

            for move in tx.moves:
                if move.unit_symbol not in cloned.units:
                    raise LedgerError(f"Cannot unwind: unit {move.unit_symbol} not found in cloned ledger")
                new_src = cloned.balances[move.source][move.unit_symbol] + move.quantity
                new_dst = cloned.balances[move.dest][move.unit_symbol] - move.quantity
                cloned.balances[move.source][move.unit_symbol] = new_src
                cloned.balances[move.dest][move.unit_symbol] = new_dst
                cloned._update_position_index(move.source, move.unit_symbol, new_src)
                cloned._update_position_index(move.dest, move.unit_symbol, new_dst)

            for sc in tx.state_changes:
                if sc.unit in cloned.units:
                    restored_state = self._deep_copy_state(
                        sc.old_state if isinstance(sc.old_state, dict) else {}
                    )
                    cloned.units[sc.unit] = replace(
                        cloned.units[sc.unit], _frozen_state=_freeze_state(restored_state)
                    )

            if tx.origin.origin_type == OriginType.USER_ACTION:
                cloned.nonces[tx.origin.source_id] -= 1

            for unit in tx.units_to_create:
                cloned.units.pop(unit.symbol, None)
                for wallet in cloned.registered_wallets:
                    cloned.balances[wallet].pop(unit.symbol, None)
                cloned._positions_by_unit.pop(unit.symbol, None)

            for wallet in tx.wallets_to_create:
                cloned.registered_wallets.discard(wallet)
                for unit_symbol in cloned.balances.pop(wallet, {}):
                    cloned._positions_by_unit[unit_symbol].pop(wallet, None)

        return cloned

    def replay(self, from_tx: int = 0) -> Ledger:
        """
        Create a new ledger by replaying the transaction log.

        The resulting ledger contains all balance changes, unit state updates,
        created units and wallets, events and nonces from the replayed
        transactions.

        Note: Initial balances set via set_balance() are NOT replayed because
        they are not part of the transaction log. Use clone() or clone_at() if
        you need to preserve balances set outside of transactions.

        Raises:
            LedgerError: If replay fails
        """
        new_ledger = Ledger(
            name=f"{self.name}_replayed",
            initial_time=datetime(1970, 1, 1),
            verbose=self.verbose,
            test_mode=self._test_mode
        )

        units_created_in_log = set()
        wallets_created_in_log = set()
        for tx in self.transaction_log[from_tx:]:
            units_created_in_log.update(unit.symbol for unit in tx.units_to_create)
            wallets_created_in_log.update(tx.wallets_to_create)

        # Unit states are rebuilt from the first state change of each unit
        first_states: Dict[str, Any] = {}
        for tx in self.transaction_log[from_tx:]:
            for sc in tx.state_changes:
                first_states.setdefault(sc.unit, sc.old_state)

        for symbol, unit in self.units.items():
            if symbol in units_created_in_log:
                continue
            initial_state = first_states.get(symbol, unit.state)
            new_ledger.units[symbol] = replace(
                unit, _frozen_state=_freeze_state(self._deep_copy_state(initial_state or {}))
            )

        for wallet in self.registered_wallets:
            if wallet != SYSTEM_WALLET and wallet not in wallets_created_in_log:
                new_ledger.register_wallet(wallet)

        for tx in self.transaction_log[from_tx:]:
            if tx.timestamp > new_ledger._current_time:
                new_ledger.advance_time(tx.timestamp)

            pending = PendingTransaction(
                moves=tx.moves,
                state_changes=tx.state_changes,
                origin=replace(tx.origin, nonce=None),
                timestamp=tx.timestamp,
                units_to_create=tx.units_to_create,
                wallets_to_create=tx.wallets_to_create,
                events=tx.events,
                intent_id=tx.intent_id,
            )

            result = new_ledger.execute(pending)
            if result == ExecuteResult.REJECTED:
                raise LedgerError(f"Replay failed at tx {tx.exec_id}: {new_ledger.last_rejection}")

        return new_ledger
