"""
Units module - Factory functions and entry points for token-sale contracts.

This module provides:
- The fungible token (mint, burn, pause, transfer, approve)
- Sales: generic sale, presale, pre-ICO and private presale
- The multi-currency intake adapter (native and proxy-relayed BTC)
- Token holder escrows and the factory that creates them

All unit factories and related functions are re-exported here for convenience.
"""

# Token
from .token import (
    create_token_unit,
    token_transfer_rule,
    mint_transaction,
    compute_mint,
    compute_finish_minting,
    compute_set_mint_agent,
    compute_burn,
    compute_pause,
    compute_unpause,
    compute_transfer,
    compute_transfer_from,
    compute_approve,
    balance_of,
    get_total_supply,
    get_allowance,
    is_paused,
    is_minting_finished,
    is_mint_agent,
    can_mint,
)

# Sales
from .sale import (
    SaleTerms,
    SaleState,
    Purchase,
    create_sale_unit,
    create_presale,
    create_pre_ico,
    create_private_presale,
    load_sale,
    calculate_purchase,
    purchase_transaction,
    compute_buy_tokens,
    compute_add_member,
    compute_remove_member,
    compute_set_member,
    compute_finalize,
    crowdsale_contract,
    has_ended,
    is_open,
    is_member,
    valid_payment,
    get_sale_status,
    get_sale_info,
    get_rate,
    quote,
    wei_raised,
    tokens_raised,
    raised_by,
    SALE_VARIANT_SALE,
    SALE_VARIANT_PRESALE,
    SALE_VARIANT_PRE_ICO,
    SALE_VARIANT_PRIVATE_PRESALE,
    CAP_BASIS_VALUE,
    CAP_BASIS_TOKENS,
    SALE_STATUS_PENDING,
    SALE_STATUS_OPEN,
    SALE_STATUS_ENDED,
    SALE_STATUS_FINALIZED,
    LEAP_ETH_RATE,
    LEAP_BTC_RATE,
    LEAP_HARDCAP,
    LEAP_HARDCAP_ETH,
    LEAP_SALE_DURATION,
    PRE_ICO_RATE,
)

# Multi-currency intake
from .multi_currency import (
    compute_buy_coins_eth,
    compute_buy_coins_btc,
)

# Token holder escrow
from .token_holder import (
    create_token_holder_unit,
    compute_release,
    get_holder_status,
    locked_balance,
    token_holder_contract,
    HOLDER_STATUS_LOCKED,
    HOLDER_STATUS_RELEASABLE,
    HOLDER_STATUS_RELEASED,
)

# Token holder factory
from .token_holder_factory import (
    create_token_holder_factory_unit,
    create_holder_transaction,
    compute_create_token_holder,
    next_holder_symbol,
    list_holders,
)
