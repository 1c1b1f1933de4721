"""
sale.py - Crowdsale / Presale State Machine

A sale accepts value during [start_time, end_time], converts it into tokens
through the rate/bonus engine and mints them either straight to the
beneficiary or into a fresh token holder obtained from a factory. Every
contribution is forwarded to the collection wallet(s) in the same atomic
transaction that updates the counters.

ARCHITECTURE (Pure Function Pattern):
=====================================

1. FROZEN DATACLASSES (explicit inputs):
   - SaleTerms: configuration fixed at construction
   - SaleState: counters, membership and flags at a point in time
   - Purchase: one accepted contribution, derived per call

2. ADAPTER FUNCTIONS (load_sale):
   - Extract terms and state from LedgerView once
   - The ONLY place that touches LedgerView for sale reads

3. PURE CALCULATION FUNCTIONS (calculate_*):
   - calculate_purchase(terms, state, ...) validates and prices a contribution

4. CONVENIENCE FUNCTIONS (compute_*):
   - Take (view, sale, caller, ...) and return a PendingTransaction

Variants:
    PRESALE          whale + stage bonus, cap on contributed value, 1 or 2 wallets
    PRE_ICO          constant rate, every purchase locked in a new token holder
    PRIVATE_PRESALE  members only, native + alternate asset via proxy,
                     cap on issued tokens, placeholder takes the token at the end

Lifecycle:
    PENDING (before start) -> OPEN -> ENDED (time over or cap reached)
                           -> CLOSED (lifecycle engine) -> FINALIZED (owner)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Mapping, Optional, Tuple

from ..core import (
    LedgerView, Move, PendingTransaction, Unit, UnitStateChange, TransactionOrigin,
    OriginType,
    UNIT_TYPE_CROWDSALE, WEI_PER_ETHER,
    PreconditionViolation, SaleNotOpen, NotMember, CapExceeded, InsufficientFunds,
    InvalidStateTransition,
    build_transaction, empty_pending_transaction, merge_transactions,
    call_origin, emit, require_address, is_null_address, in_base_units,
    _freeze_state,
)
from ..bonus import (
    WhaleTier, Stage, Quote, DEFAULT_WHALE_TIERS, DEFAULT_STAGES,
    calculate_issued_amount, validate_stages, validate_whale_tiers,
)
from ..funds import forwarding_moves
from ..ownership import require_owner, ownership_change
from ..safe_math import checked_add, require_uint
from .token import mint_transaction
from .token_holder_factory import create_holder_transaction, next_holder_symbol


SALE_VARIANT_SALE = "SALE"
SALE_VARIANT_PRESALE = "PRESALE"
SALE_VARIANT_PRE_ICO = "PRE_ICO"
SALE_VARIANT_PRIVATE_PRESALE = "PRIVATE_PRESALE"

CAP_BASIS_VALUE = "value"
CAP_BASIS_TOKENS = "tokens"

SALE_STATUS_PENDING = "PENDING"
SALE_STATUS_OPEN = "OPEN"
SALE_STATUS_ENDED = "ENDED"
SALE_STATUS_FINALIZED = "FINALIZED"

# Private presale presets
LEAP_ETH_RATE = 5250                       # token base units per wei
LEAP_BTC_RATE = 52500                      # token base units per satoshi
LEAP_HARDCAP = in_base_units(52_500_000)   # tokens
LEAP_HARDCAP_ETH = 10_000 * WEI_PER_ETHER  # value equivalent of LEAP_HARDCAP
LEAP_SALE_DURATION = timedelta(days=30)

PRE_ICO_RATE = 1000


# ============================================================================
# FROZEN DATACLASSES - Explicit Inputs for Pure Functions
# ============================================================================

@dataclass(frozen=True, slots=True)
class SaleTerms:
    """
    Immutable sale configuration - set at construction, never changes.

    Rates are token base units per base unit of the contributed asset.
    """
    start_time: datetime
    end_time: datetime
    cap: int
    rate: int
    wallet: str
    token: str
    cap_basis: str = CAP_BASIS_VALUE
    native_asset: str = "ETH"
    alt_asset: Optional[str] = None
    alt_rate: int = 0
    second_wallet: Optional[str] = None
    split: Tuple[int, int] = (1, 2)        # share of the first wallet
    remainder_to_first: bool = True
    factory: Optional[str] = None
    placeholder: Optional[str] = None
    proxy: Optional[str] = None
    members_only: bool = False
    whale_tiers: Tuple[WhaleTier, ...] = ()
    stages: Tuple[Stage, ...] = ()

    def __post_init__(self):
        if self.start_time >= self.end_time:
            raise ValueError(f"start_time {self.start_time} must be before end_time {self.end_time}")
        if self.cap <= 0:
            raise ValueError(f"cap must be positive, got {self.cap}")
        if self.rate <= 0:
            raise ValueError(f"rate must be positive, got {self.rate}")
        if self.cap_basis not in (CAP_BASIS_VALUE, CAP_BASIS_TOKENS):
            raise ValueError(f"cap_basis must be '{CAP_BASIS_VALUE}' or '{CAP_BASIS_TOKENS}'")
        if is_null_address(self.wallet):
            raise ValueError("wallet cannot be the null address")
        if not self.token:
            raise ValueError("token is required")
        if self.second_wallet is not None:
            if is_null_address(self.second_wallet):
                raise ValueError("second_wallet cannot be the null address")
            numerator, denominator = self.split
            if denominator <= 0 or not 0 <= numerator <= denominator:
                raise ValueError(f"Invalid split ratio {numerator}/{denominator}")
        if self.alt_asset is not None:
            if self.alt_rate <= 0:
                raise ValueError(f"alt_rate must be positive, got {self.alt_rate}")
            if is_null_address(self.proxy):
                raise ValueError("An alternate asset requires a proxy")
            if self.cap_basis != CAP_BASIS_TOKENS:
                raise ValueError("A sale accepting two assets must cap issued tokens")
        object.__setattr__(self, 'whale_tiers', validate_whale_tiers(self.whale_tiers))
        object.__setattr__(self, 'stages', validate_stages(self.stages))

    @property
    def assets(self) -> Tuple[str, ...]:
        if self.alt_asset is None:
            return (self.native_asset,)
        return (self.native_asset, self.alt_asset)

    def rate_for(self, asset: str) -> int:
        if asset == self.native_asset:
            return self.rate
        if asset == self.alt_asset:
            return self.alt_rate
        raise PreconditionViolation(f"Sale does not accept {asset}")


@dataclass(frozen=True, slots=True)
class SaleState:
    """Immutable snapshot of sale counters and flags."""
    owner: str
    wei_raised: int = 0
    tokens_raised: int = 0
    raised_by: Mapping[str, Mapping[str, int]] = field(default_factory=dict)
    members: Mapping[str, bool] = field(default_factory=dict)
    purchase_count: int = 0
    closed: bool = False
    finalized: bool = False

    def capped_total(self, terms: SaleTerms) -> int:
        return self.tokens_raised if terms.cap_basis == CAP_BASIS_TOKENS else self.wei_raised

    def cap_reached(self, terms: SaleTerms) -> bool:
        return self.capped_total(terms) >= terms.cap

    def is_member(self, account: str) -> bool:
        return bool(self.members.get(account, False))


@dataclass(frozen=True, slots=True)
class Purchase:
    """One accepted contribution."""
    purchaser: str
    beneficiary: str
    asset: str
    amount: int
    quote: Quote
    account: str                 # receives the minted tokens
    locked: bool                 # account is a token holder

    @property
    def tokens(self) -> int:
        return self.quote.total

    @property
    def whale_percent(self) -> int:
        return self.quote.whale_percent

    @property
    def stage_bonus(self) -> int:
        return self.quote.stage_bonus


# ============================================================================
# UNIT CREATION
# ============================================================================

_TERM_FIELDS = tuple(SaleTerms.__dataclass_fields__)


def create_sale_unit(
    symbol: str,
    name: str,
    terms: SaleTerms,
    owner: str,
    variant: str = SALE_VARIANT_SALE,
) -> Unit:
    """
    Create a sale unit from validated terms.

    Returns:
        Unit ready for Ledger.deploy(). The sale must be the token's owner
        or a mint agent (and the factory's owner, when one is used) before
        the first purchase.

    Raises:
        ValueError: If owner is the null address
    """
    if is_null_address(owner):
        raise ValueError("Sale owner cannot be the null address")

    state: Dict[str, Any] = {name_: getattr(terms, name_) for name_ in _TERM_FIELDS}
    state['whale_tiers'] = [(t.threshold, t.percent) for t in terms.whale_tiers]
    state['stages'] = [(s.upper_bound, s.percent) for s in terms.stages]
    state.update({
        'variant': variant,
        'owner': owner,
        'wei_raised': 0,
        'tokens_raised': 0,
        'raised_by': {asset: {} for asset in terms.assets},
        'members': {},
        'purchase_count': 0,
        'closed': False,
        'finalized': False,
        'payable': True,
    })
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_CROWDSALE,
        _frozen_state=_freeze_state(state),
    )


def create_presale(
    symbol: str,
    token: str,
    start_time: datetime,
    end_time: datetime,
    cap: int,
    rate: int,
    wallet: str,
    owner: str,
    second_wallet: Optional[str] = None,
    split: Tuple[int, int] = (1, 2),
    remainder_to_first: bool = True,
    whale_tiers: Tuple[WhaleTier, ...] = DEFAULT_WHALE_TIERS,
    stages: Tuple[Stage, ...] = DEFAULT_STAGES,
    name: str = "Presale",
) -> Unit:
    """Presale with whale and stage bonuses; cap is in contributed value."""
    terms = SaleTerms(
        start_time=start_time, end_time=end_time, cap=cap, rate=rate,
        wallet=wallet, token=token, second_wallet=second_wallet, split=split,
        remainder_to_first=remainder_to_first,
        whale_tiers=tuple(whale_tiers), stages=tuple(stages),
    )
    return create_sale_unit(symbol, name, terms, owner, SALE_VARIANT_PRESALE)


def create_pre_ico(
    symbol: str,
    token: str,
    factory: str,
    start_time: datetime,
    end_time: datetime,
    cap: int,
    wallet: str,
    owner: str,
    rate: int = PRE_ICO_RATE,
    name: str = "PreICO",
) -> Unit:
    """Constant-rate sale; every purchase is locked in a new token holder."""
    if not factory:
        raise ValueError("PreICO requires a token holder factory")
    terms = SaleTerms(
        start_time=start_time, end_time=end_time, cap=cap, rate=rate,
        wallet=wallet, token=token, factory=factory,
    )
    return create_sale_unit(symbol, name, terms, owner, SALE_VARIANT_PRE_ICO)


def create_private_presale(
    symbol: str,
    token: str,
    start_time: datetime,
    proxy: str,
    placeholder: str,
    wallet: str,
    owner: str,
    end_time: Optional[datetime] = None,
    cap: int = LEAP_HARDCAP,
    rate: int = LEAP_ETH_RATE,
    alt_rate: int = LEAP_BTC_RATE,
    alt_asset: str = "BTC",
    name: str = "Private Pre-Tokensale",
) -> Unit:
    """Members-only sale in ETH and proxy-relayed BTC, capped in issued tokens."""
    if is_null_address(placeholder):
        raise ValueError("placeholder cannot be the null address")
    terms = SaleTerms(
        start_time=start_time,
        end_time=end_time or start_time + LEAP_SALE_DURATION,
        cap=cap, rate=rate, wallet=wallet, token=token,
        cap_basis=CAP_BASIS_TOKENS,
        alt_asset=alt_asset, alt_rate=alt_rate,
        proxy=proxy, placeholder=placeholder,
        members_only=True,
    )
    return create_sale_unit(symbol, name, terms, owner, SALE_VARIANT_PRIVATE_PRESALE)


# ============================================================================
# ADAPTER
# ============================================================================

def load_sale(view: LedgerView, sale: str) -> Tuple[SaleTerms, SaleState]:
    """Read a sale's terms and state from the ledger."""
    state = view.get_unit_state(sale)
    terms_kwargs = {name_: state[name_] for name_ in _TERM_FIELDS}
    terms_kwargs['whale_tiers'] = tuple(WhaleTier(*t) for t in state['whale_tiers'])
    terms_kwargs['stages'] = tuple(Stage(*s) for s in state['stages'])
    terms_kwargs['split'] = tuple(state['split'])
    terms = SaleTerms(**terms_kwargs)
    sale_state = SaleState(
        owner=state['owner'],
        wei_raised=state['wei_raised'],
        tokens_raised=state['tokens_raised'],
        raised_by=state['raised_by'],
        members=state['members'],
        purchase_count=state['purchase_count'],
        closed=state['closed'],
        finalized=state['finalized'],
    )
    return terms, sale_state


# ============================================================================
# QUERIES
# ============================================================================

def has_ended(view: LedgerView, sale: str) -> bool:
    """True once the end time has passed or the cap is reached."""
    terms, state = load_sale(view, sale)
    return view.current_time > terms.end_time or state.cap_reached(terms)


def is_open(view: LedgerView, sale: str) -> bool:
    terms, state = load_sale(view, sale)
    return _open_reason(terms, state, view.current_time) is None


def _open_reason(terms: SaleTerms, state: SaleState, now: datetime) -> Optional[str]:
    if state.closed:
        return "sale is closed"
    if now < terms.start_time:
        return f"sale starts at {terms.start_time}"
    if now > terms.end_time:
        return f"sale ended at {terms.end_time}"
    if state.cap_reached(terms):
        return "cap reached"
    return None


def get_sale_status(view: LedgerView, sale: str) -> str:
    terms, state = load_sale(view, sale)
    if state.finalized:
        return SALE_STATUS_FINALIZED
    if view.current_time < terms.start_time:
        return SALE_STATUS_PENDING
    if state.closed or has_ended(view, sale):
        return SALE_STATUS_ENDED
    return SALE_STATUS_OPEN


def is_member(view: LedgerView, sale: str, account: str) -> bool:
    return bool(view.get_unit_state(sale)['members'].get(account, False))


def valid_payment(view: LedgerView, sale: str, account: str) -> bool:
    """True if account could pay into the sale right now."""
    terms, state = load_sale(view, sale)
    if _open_reason(terms, state, view.current_time) is not None:
        return False
    return not terms.members_only or state.is_member(account)


def wei_raised(view: LedgerView, sale: str) -> int:
    return view.get_unit_state(sale)['wei_raised']


def tokens_raised(view: LedgerView, sale: str) -> int:
    return view.get_unit_state(sale)['tokens_raised']


def raised_by(view: LedgerView, sale: str, contributor: str, asset: Optional[str] = None) -> int:
    """Cumulative contribution of one contributor in one asset (native by default)."""
    state = view.get_unit_state(sale)
    return state['raised_by'].get(asset or state['native_asset'], {}).get(contributor, 0)


def get_rate(view: LedgerView, sale: str, asset: Optional[str] = None) -> int:
    terms, _ = load_sale(view, sale)
    return terms.rate_for(asset or terms.native_asset)


def quote(view: LedgerView, sale: str, amount: int, asset: Optional[str] = None) -> Quote:
    """Tokens a contribution of ``amount`` would receive right now."""
    terms, state = load_sale(view, sale)
    return _quote(terms, state, amount, asset or terms.native_asset)


def get_sale_info(view: LedgerView, sale: str) -> Dict[str, Any]:
    """All configuration and counter fields of a sale."""
    terms, state = load_sale(view, sale)
    info = {name_: getattr(terms, name_) for name_ in _TERM_FIELDS}
    info.update({
        'symbol': sale,
        'variant': view.get_unit_state(sale)['variant'],
        'owner': state.owner,
        'wei_raised': state.wei_raised,
        'tokens_raised': state.tokens_raised,
        'raised_by': {asset: dict(m) for asset, m in state.raised_by.items()},
        'members': sorted(a for a, flag in state.members.items() if flag),
        'purchase_count': state.purchase_count,
        'closed': state.closed,
        'finalized': state.finalized,
        'has_ended': has_ended(view, sale),
        'status': get_sale_status(view, sale),
    })
    return info


# ============================================================================
# PURCHASES
# ============================================================================

def _quote(terms: SaleTerms, state: SaleState, amount: int, asset: str) -> Quote:
    rate = terms.rate_for(asset)
    if asset != terms.native_asset:
        return calculate_issued_amount(amount, rate)
    return calculate_issued_amount(
        amount, rate, state.wei_raised,
        whale_tiers=terms.whale_tiers or None,
        stages=terms.stages or None,
    )


def calculate_purchase(
    terms: SaleTerms,
    state: SaleState,
    now: datetime,
    purchaser: str,
    beneficiary: str,
    amount: int,
    asset: str,
    account: str,
) -> Purchase:
    """
    Validate a contribution and price it. Pure function.

    Raises:
        SaleNotOpen: Before start, after end, closed or cap already reached
        PreconditionViolation: Zero amount or null beneficiary
        NotMember: Membership gating on and purchaser or beneficiary not a member
        CapExceeded: The contribution would push the capped total above the cap
        ArithmeticViolation: Any counter would leave uint256 bounds
    """
    reason = _open_reason(terms, state, now)
    if reason is not None:
        raise SaleNotOpen(reason)
    if require_uint(amount, "amount") == 0:
        raise PreconditionViolation("Contribution must be positive")
    require_address(beneficiary, "beneficiary")
    if terms.members_only:
        for who in (purchaser, beneficiary):
            if not state.is_member(who):
                raise NotMember(f"{who} is not a member")

    priced = _quote(terms, state, amount, asset)
    increment = priced.total if terms.cap_basis == CAP_BASIS_TOKENS else amount
    new_total = checked_add(state.capped_total(terms), increment)
    if new_total > terms.cap:
        raise CapExceeded(f"Contribution would raise {new_total} above cap {terms.cap}")

    return Purchase(
        purchaser=purchaser,
        beneficiary=beneficiary,
        asset=asset,
        amount=amount,
        quote=priced,
        account=account,
        locked=account != beneficiary,
    )


def _counter_change(
    sale: str,
    raw_state: Dict[str, Any],
    terms: SaleTerms,
    purchase: Purchase,
    contributor: str,
) -> UnitStateChange:
    raised = {asset: dict(m) for asset, m in raw_state['raised_by'].items()}
    per_asset = raised.setdefault(purchase.asset, {})
    per_asset[contributor] = checked_add(per_asset.get(contributor, 0), purchase.amount)

    new_state = {
        **raw_state,
        'tokens_raised': checked_add(raw_state['tokens_raised'], purchase.tokens),
        'raised_by': raised,
        'purchase_count': raw_state['purchase_count'] + 1,
    }
    if purchase.asset == terms.native_asset:
        new_state['wei_raised'] = checked_add(raw_state['wei_raised'], purchase.amount)
    return UnitStateChange(unit=sale, old_state=raw_state, new_state=new_state)


def purchase_transaction(
    view: LedgerView,
    sale: str,
    purchaser: str,
    beneficiary: str,
    amount: int,
    asset: str,
    event: str,
    origin: TransactionOrigin,
    contributor: Optional[str] = None,
    attach_value: bool = True,
) -> Tuple[PendingTransaction, Purchase]:
    """
    Build the full atomic purchase: holder creation (if escrowed), mint,
    value forwarding, counter update and purchase event.

    Args:
        contributor: Account credited in raised_by (defaults to purchaser)
        attach_value: Whether the contribution travels as a ledger move; False
            for assets paid off-ledger and relayed by the proxy

    Raises:
        Any error of calculate_purchase(), plus InsufficientFunds when the
        purchaser cannot cover an attached value.
    """
    terms, state = load_sale(view, sale)
    raw_state = view.get_unit_state(sale)

    parts = []
    if terms.factory:
        account = next_holder_symbol(view, terms.factory)
    else:
        account = beneficiary
    purchase = calculate_purchase(
        terms, state, view.current_time, purchaser, beneficiary, amount, asset, account,
    )
    if terms.factory:
        parts.append(create_holder_transaction(view, terms.factory, sale, beneficiary))

    parts.append(mint_transaction(view, terms.token, sale, account, purchase.tokens))

    moves = []
    if attach_value:
        available = view.get_balance(purchaser, asset)
        if available < amount:
            raise InsufficientFunds(f"{purchaser} holds {available} {asset}, cannot pay {amount}")
        moves.append(Move(amount, asset, purchaser, sale, f"{sale}_contribution"))
        moves.extend(forwarding_moves(
            amount, asset, sale, terms.wallet, terms.second_wallet,
            terms.split, terms.remainder_to_first, f"{sale}_forward",
        ))

    args = {
        'purchaser': purchaser,
        'beneficiary': beneficiary,
        'value': amount,
        'amount': purchase.tokens,
    }
    if event != "TokenPurchase":
        args['account'] = account
    elif purchase.locked:
        args['locked_account'] = account
    change = _counter_change(sale, raw_state, terms, purchase, contributor or purchaser)
    parts.append(build_transaction(view, moves, [change], events=[emit(event, sale, **args)]))

    return merge_transactions(view, parts, origin), purchase


def compute_buy_tokens(
    view: LedgerView,
    sale: str,
    purchaser: str,
    beneficiary: str,
    value: int,
) -> PendingTransaction:
    """
    Buy tokens for beneficiary with ``value`` of the native asset.

    Example:
        pending = compute_buy_tokens(ledger, "PRESALE", "alice", "alice", ether("1"))
        ledger.execute(pending)
    """
    terms, _ = load_sale(view, sale)
    pending, _ = purchase_transaction(
        view, sale, purchaser, beneficiary, value, terms.native_asset,
        "TokenPurchase", call_origin(view, purchaser, sale, "buyTokens"),
    )
    return pending


# ============================================================================
# ADMINISTRATION
# ============================================================================

def _member_change(
    view: LedgerView,
    sale: str,
    caller: str,
    account: str,
    enabled: bool,
    entry_point: str,
) -> PendingTransaction:
    state = view.get_unit_state(sale)
    members = dict(state['members'])
    if enabled:
        members[account] = True
    else:
        members.pop(account, None)
    new_state = {**state, 'members': members}
    return build_transaction(
        view, [], [UnitStateChange(sale, state, new_state)],
        origin=call_origin(view, caller, sale, entry_point),
        events=[emit("MembershipChanged", sale, account=account, member=enabled)],
    )


def compute_add_member(view: LedgerView, sale: str, caller: str, account: str) -> PendingTransaction:
    """
    Owner adds account to the membership list.

    Raises:
        Unauthorized: If caller is not the owner
        PreconditionViolation: If account is null or already a member
    """
    require_owner(view, sale, caller)
    require_address(account, "member")
    if is_member(view, sale, account):
        raise PreconditionViolation(f"{account} is already a member")
    return _member_change(view, sale, caller, account, True, "addMember")


def compute_remove_member(view: LedgerView, sale: str, caller: str, account: str) -> PendingTransaction:
    """
    Raises:
        Unauthorized: If caller is not the owner
        NotMember: If account is not a member
    """
    require_owner(view, sale, caller)
    if not is_member(view, sale, account):
        raise NotMember(f"{account} is not a member")
    return _member_change(view, sale, caller, account, False, "removeMember")


def compute_set_member(
    view: LedgerView,
    sale: str,
    caller: str,
    account: str,
    member: bool,
) -> PendingTransaction:
    """Owner sets membership of account; setting the current value is allowed."""
    require_owner(view, sale, caller)
    require_address(account, "member")
    return _member_change(view, sale, caller, account, bool(member), "setMember")


def compute_finalize(view: LedgerView, sale: str, caller: str) -> PendingTransaction:
    """
    Hand the token over once the sale has ended.

    Token ownership goes to the placeholder, or back to the sale owner when
    no placeholder is configured.

    Raises:
        Unauthorized: If caller is not the owner
        InvalidStateTransition: If the sale has not ended, is already
            finalized, or does not own the token
    """
    require_owner(view, sale, caller)
    terms, state = load_sale(view, sale)
    if state.finalized:
        raise InvalidStateTransition(f"{sale} is already finalized")
    if not has_ended(view, sale):
        raise InvalidStateTransition(f"{sale} has not ended")
    if view.get_unit_state(terms.token).get('owner') != sale:
        raise InvalidStateTransition(f"{sale} does not own {terms.token}")

    new_token_owner = terms.placeholder or state.owner
    token_change, ownership_event = ownership_change(view, terms.token, new_token_owner)
    raw_state = view.get_unit_state(sale)
    new_state = {**raw_state, 'closed': True, 'finalized': True}
    events = [
        ownership_event,
        emit("Finalized", sale, token_owner=new_token_owner,
             wei_raised=state.wei_raised, tokens_raised=state.tokens_raised),
    ]
    return build_transaction(
        view, [], [token_change, UnitStateChange(sale, raw_state, new_state)],
        origin=call_origin(view, caller, sale, "finalize"),
        events=events,
    )


def crowdsale_contract(view: LedgerView, symbol: str, timestamp: datetime) -> PendingTransaction:
    """SmartContract for LifecycleEngine: close the sale once it has ended."""
    terms, state = load_sale(view, symbol)
    if state.closed:
        return empty_pending_transaction(view)
    if not (timestamp > terms.end_time or state.cap_reached(terms)):
        return empty_pending_transaction(view)

    raw_state = view.get_unit_state(symbol)
    new_state = {**raw_state, 'closed': True}
    return build_transaction(
        view, [], [UnitStateChange(symbol, raw_state, new_state)],
        origin=TransactionOrigin(OriginType.LIFECYCLE, "lifecycle", symbol, "close"),
        events=[emit("SaleClosed", symbol,
                     wei_raised=state.wei_raised, tokens_raised=state.tokens_raised)],
    )
