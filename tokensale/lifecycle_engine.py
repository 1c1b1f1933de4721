"""
lifecycle_engine.py - Lifecycle Engine

Advances the ledger clock and polls smart contracts for time-driven events.

Execution order each step():
1. Advance ledger time
2. Run smart contract polling (discovery) for every registered unit type
3. Repeat until no more events fire (cascading effects)

The transaction log is the audit trail - no separate event status tracking needed.
"""

from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Optional

from .core import (
    PendingTransaction, Transaction,
    ExecuteResult, LedgerError,
    SmartContract,
    UNIT_TYPE_CROWDSALE, UNIT_TYPE_TOKEN_HOLDER,
)
from .ledger import Ledger
from .units.sale import crowdsale_contract
from .units.token_holder import token_holder_contract


class LifecycleEngine:
    """
    Lifecycle engine polling smart contracts by unit type.

    Features:
    - Smart contract polling for event discovery
    - Cascading event support (repeat until stable)
    - Full audit trail via transaction log
    """

    def __init__(
        self,
        ledger: Ledger,
        contracts: Optional[Dict[str, SmartContract]] = None,
    ):
        """
        Initialize lifecycle engine.

        Args:
            ledger: The ledger to operate on
            contracts: Smart contracts for polling (unit_type -> contract)
        """
        self.ledger = ledger
        self.contracts: Dict[str, SmartContract] = contracts or {}

        self.max_passes = 10  # Safety limit for cascading events
        self.verbose = ledger.verbose

    def register(self, unit_type: str, contract: SmartContract) -> None:
        """
        Register a smart contract for a unit type.

        Args:
            unit_type: Type of unit (e.g., "CROWDSALE", "TOKEN_HOLDER")
            contract: SmartContract implementation (callable or object with check_lifecycle)
        """
        self.contracts[unit_type] = contract

    def step(self, timestamp: datetime) -> List[Transaction]:
        """
        Advance time and execute all pending lifecycle events.

        Returns:
            List of executed transactions
        """
        self.ledger.advance_time(timestamp)
        executed: List[Transaction] = []

        for _ in range(self.max_passes):
            pass_executed = self._process_smart_contracts(timestamp)
            executed.extend(pass_executed)
            if not pass_executed:
                break

        return executed

    def _process_smart_contracts(self, timestamp: datetime) -> List[Transaction]:
        """Run smart contract polling for event discovery."""
        executed: List[Transaction] = []

        # Sort units for deterministic iteration order
        for symbol in sorted(self.ledger.units.keys()):
            unit = self.ledger.units[symbol]
            contract = self.contracts.get(unit.unit_type)

            if not contract:
                continue

            if hasattr(contract, 'check_lifecycle'):
                pending = contract.check_lifecycle(self.ledger, symbol, timestamp)
            else:
                pending = contract(self.ledger, symbol, timestamp)

            if not isinstance(pending, PendingTransaction):
                raise LedgerError(
                    f"Contract for {symbol} must return PendingTransaction, got {type(pending)}"
                )

            if pending.is_empty():
                continue

            if self.verbose:
                print(f"[LIFECYCLE] {symbol}: {pending.origin.event_type}")

            exec_result = self.ledger.execute(pending)

            if exec_result == ExecuteResult.REJECTED:
                raise LedgerError(
                    f"Lifecycle event failed for {symbol}: {self.ledger.last_rejection}"
                )

            if exec_result == ExecuteResult.APPLIED and self.ledger.transaction_log:
                executed.append(self.ledger.transaction_log[-1])

        return executed

    def run(self, timestamps: List[datetime]) -> List[Transaction]:
        """Run engine through a sequence of timestamps."""
        all_transactions: List[Transaction] = []
        for timestamp in timestamps:
            all_transactions.extend(self.step(timestamp))
        return all_transactions


def default_engine(ledger: Ledger) -> LifecycleEngine:
    """Engine with the crowdsale and token holder contracts registered."""
    engine = LifecycleEngine(ledger)
    engine.register(UNIT_TYPE_CROWDSALE, crowdsale_contract)
    engine.register(UNIT_TYPE_TOKEN_HOLDER, token_holder_contract)
    return engine
