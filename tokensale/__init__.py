"""
tokensale - Token Sale Ledger

A token-sale system built on a double-entry ledger: a mintable token, capped
crowdsales with whale and stage bonuses, a multi-currency intake path and
signature-gated escrow holders.

Usage:
    from tokensale import Ledger, native_asset, ether, compute_fund
    from tokensale.units import create_token_unit, create_presale, compute_buy_tokens

    ledger = Ledger("main", start_time)
    ledger.register_unit(native_asset("ETH", "Ether"))
    ledger.register_wallet("alice")
    ledger.execute(compute_fund(ledger, "alice", ether("10")))

    ledger.deploy(create_token_unit("LEAP", "Leap Token", owner="PRESALE"))
    ledger.deploy(create_presale("PRESALE", "LEAP", start, end, cap, "vault", owner="ops"))

    tx = compute_buy_tokens(ledger, "PRESALE", "alice", "alice", ether("1"))
    result = ledger.execute(tx)
"""

# Core types
from .core import (
    LedgerView,
    SmartContract,
    Move,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    EventRecord,
    LoggedEvent,
    emit,
    call_origin,
    build_transaction,
    empty_pending_transaction,
    merge_transactions,
    Unit,
    UnitStateChange,
    ExecuteResult,
    LedgerError,
    InsufficientFunds,
    BalanceConstraintViolation,
    TransferRuleViolation,
    NonPayable,
    UnitNotRegistered,
    WalletNotRegistered,
    TransactionRejected,
    PreconditionViolation,
    SaleNotOpen,
    NotMember,
    ReleaseTooEarly,
    Unauthorized,
    InvalidSignature,
    ArithmeticViolation,
    InvariantViolation,
    CapExceeded,
    AlreadyReleased,
    MintingFinished,
    InvalidStateTransition,
    is_null_address,
    require_address,
    payable_transfer_rule,
    native_asset,
    ether,
    in_base_units,
    SYSTEM_WALLET,
    ZERO_ADDRESS,
    UINT256_MAX,
    TOKEN_DECIMALS,
    WEI_PER_ETHER,
    SATOSHI_PER_BTC,
    UNIT_TYPE_NATIVE,
    UNIT_TYPE_TOKEN,
    UNIT_TYPE_CROWDSALE,
    UNIT_TYPE_TOKEN_HOLDER,
    UNIT_TYPE_TOKEN_HOLDER_FACTORY,
)

# Ledger
from .ledger import Ledger

# Checked arithmetic
from .safe_math import (
    require_uint,
    checked_add,
    checked_sub,
    checked_mul,
    checked_div,
    mul_div,
)

# Bonus schedules
from .bonus import (
    WhaleTier,
    Stage,
    Quote,
    DEFAULT_WHALE_TIERS,
    DEFAULT_STAGES,
    validate_whale_tiers,
    validate_stages,
    apply_percentage,
    calculate_whale_percent,
    calculate_whale_bonus,
    calculate_stage_bonus,
    calculate_issued_amount,
)

# Fund forwarding
from .funds import split_funds, forwarding_moves

# Ownership
from .ownership import require_owner, ownership_change, compute_transfer_ownership

# Release signatures
from .signatures import (
    release_message,
    load_verifying_key,
    generate_signer,
    sign_release,
    verify_release_signature,
)

# Plain value transfers
from .payments import compute_fund, compute_send_value

# Lifecycle
from .lifecycle_engine import LifecycleEngine, default_engine

__all__ = [
    # Core
    'LedgerView', 'SmartContract', 'Move', 'Transaction', 'PendingTransaction',
    'TransactionOrigin', 'OriginType', 'EventRecord', 'LoggedEvent', 'emit', 'call_origin',
    'build_transaction', 'empty_pending_transaction', 'merge_transactions',
    'Unit', 'UnitStateChange', 'ExecuteResult',
    'LedgerError', 'InsufficientFunds', 'BalanceConstraintViolation',
    'TransferRuleViolation', 'NonPayable', 'UnitNotRegistered', 'WalletNotRegistered',
    'TransactionRejected', 'PreconditionViolation', 'SaleNotOpen', 'NotMember',
    'ReleaseTooEarly', 'Unauthorized', 'InvalidSignature', 'ArithmeticViolation',
    'InvariantViolation', 'CapExceeded', 'AlreadyReleased', 'MintingFinished',
    'InvalidStateTransition',
    'is_null_address', 'require_address', 'payable_transfer_rule', 'native_asset',
    'ether', 'in_base_units',
    'SYSTEM_WALLET', 'ZERO_ADDRESS', 'UINT256_MAX', 'TOKEN_DECIMALS',
    'WEI_PER_ETHER', 'SATOSHI_PER_BTC',
    'UNIT_TYPE_NATIVE', 'UNIT_TYPE_TOKEN', 'UNIT_TYPE_CROWDSALE',
    'UNIT_TYPE_TOKEN_HOLDER', 'UNIT_TYPE_TOKEN_HOLDER_FACTORY',
    # Ledger
    'Ledger',
    # Checked arithmetic
    'require_uint', 'checked_add', 'checked_sub', 'checked_mul', 'checked_div', 'mul_div',
    # Bonus schedules
    'WhaleTier', 'Stage', 'Quote', 'DEFAULT_WHALE_TIERS', 'DEFAULT_STAGES',
    'validate_whale_tiers', 'validate_stages', 'apply_percentage',
    'calculate_whale_percent', 'calculate_whale_bonus', 'calculate_stage_bonus',
    'calculate_issued_amount',
    # Fund forwarding
    'split_funds', 'forwarding_moves',
    # Ownership
    'require_owner', 'ownership_change', 'compute_transfer_ownership',
    # Signatures
    'release_message', 'load_verifying_key', 'generate_signer', 'sign_release',
    'verify_release_signature',
    # Payments
    'compute_fund', 'compute_send_value',
    # Lifecycle
    'LifecycleEngine', 'default_engine',
]

__version__ = '1.0.0'
