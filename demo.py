#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: A Token Sale Step by Step

This is a pedagogical walkthrough of the token-sale ledger. Each step builds
on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Foundation      - The ledger, ETH, genesis funding
  4-7:   Private Presale - The LEAP token, members, ETH and relayed BTC purchases
  8-9:   Closing         - The lifecycle engine and finalization
  10-11: Escrow          - A pre-ICO whose tokens unlock with a signed release
  12:    Audit           - Conservation, clone_at and replay

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import sys

from tokensale import (
    Ledger, native_asset, ether,
    compute_fund, compute_send_value, default_engine,
    generate_signer, sign_release,
    SYSTEM_WALLET, NotMember, Unauthorized, InvalidSignature, NonPayable,
)
from tokensale.units import (
    create_token_unit, create_private_presale, create_pre_ico,
    create_token_holder_factory_unit,
    compute_add_member, compute_buy_coins_eth, compute_buy_coins_btc,
    compute_buy_tokens, compute_finalize, compute_release,
    balance_of, tokens_raised, wei_raised, get_sale_status, get_sale_info,
    list_holders, get_holder_status,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    sale_start: datetime = datetime(2025, 2, 1)
    release_time: datetime = datetime(2025, 6, 1)

    alice_initial_eth: str = "100"
    bob_initial_eth: str = "100"
    carol_initial_eth: str = "10"

    alice_purchase_eth: str = "0.001"
    bob_purchase_satoshi: int = 10 ** 16


CONFIG = DemoConfig()

# Global state for interactive mode
QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def tokens(amount: int) -> str:
    """Format token base units as whole tokens."""
    return f"{amount / 10 ** 18:,.6f}"


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_ledger():
    """Create a ledger with the native asset."""
    step_header(1, "The Ledger",
        "A token sale runs on a double-entry ledger with an injected clock.")

    print(">>> ledger = Ledger('leap', initial_time=datetime(2025, 1, 1, 9, 0))")
    ledger = Ledger("leap", CONFIG.start_time, verbose=False)
    print('>>> ledger.register_unit(native_asset("ETH", "Ether"))')
    ledger.register_unit(native_asset("ETH", "Ether"))

    section_header("Initial State")
    print(f"Current time:  {ledger.current_time}")
    print(f"Block number:  {ledger.block_number}")
    print(f"Wallets:       {sorted(ledger.registered_wallets)}")

    print("""
    Amounts are integers in base units: 1 ETH = 10**18 wei.
    Every transaction is one block, so block_number advances by one per
    applied transaction.
    """)
    return ledger


def step_02_accounts(ledger: Ledger):
    """Register investor and operator accounts."""
    step_header(2, "Accounts",
        "Every address that holds value must be registered.")

    for account in ("alice", "bob", "carol", "ops", "vault", "proxy", "placeholder"):
        ledger.register_wallet(account)
        print(f">>> ledger.register_wallet({account!r})")
    return ledger


def step_03_genesis(ledger: Ledger):
    """Fund investors from the system wallet."""
    step_header(3, "Genesis Funding",
        "Value enters through the system wallet so every unit nets to zero.")

    for account, amount in (("alice", CONFIG.alice_initial_eth),
                            ("bob", CONFIG.bob_initial_eth),
                            ("carol", CONFIG.carol_initial_eth)):
        ledger.execute(compute_fund(ledger, account, ether(amount)))
        print(f"{account:6s} {ledger.get_balance(account, 'ETH') / 10 ** 18:>8} ETH")

    print(f"system {ledger.get_balance(SYSTEM_WALLET, 'ETH') / 10 ** 18:>8} ETH")
    return ledger


# ============================================================================
# PHASE 2: PRIVATE PRESALE (Steps 4-7)
# ============================================================================

def step_04_deploy(ledger: Ledger):
    """Deploy the LEAP token and the private presale."""
    step_header(4, "Deploying the Sale",
        "The sale owns the token so that purchases can mint.")

    ledger.deploy(create_token_unit("LEAP", "Leap Token", owner="LEAPSALE"))
    ledger.deploy(create_private_presale(
        "LEAPSALE", "LEAP", CONFIG.sale_start,
        proxy="proxy", placeholder="placeholder", wallet="vault", owner="ops",
    ))

    info = get_sale_info(ledger, "LEAPSALE")
    section_header("Sale Terms")
    print(f"Window:    {info['start_time']} .. {info['end_time']}")
    print(f"Hard cap:  {tokens(info['cap'])} LEAP (in issued tokens)")
    print(f"ETH rate:  {info['rate']} base units per wei")
    print(f"BTC rate:  {info['alt_rate']} base units per satoshi")
    print(f"Status:    {get_sale_status(ledger, 'LEAPSALE')}")
    return ledger


def step_05_members(ledger: Ledger):
    """Only members may buy."""
    step_header(5, "Membership",
        "The owner admits investors; everyone else is refused.")

    for member in ("alice", "bob"):
        ledger.execute(compute_add_member(ledger, "LEAPSALE", "ops", member))
        print(f">>> compute_add_member(ledger, 'LEAPSALE', 'ops', {member!r})")

    ledger.advance_time(CONFIG.sale_start + timedelta(days=1))
    try:
        compute_buy_coins_eth(ledger, "LEAPSALE", "carol", "carol", ether("1"))
    except NotMember as e:
        print(f"\ncarol is refused: {e}")
    return ledger


def step_06_eth_purchase(ledger: Ledger):
    """A member buys with ETH."""
    step_header(6, "Buying with ETH",
        "0.001 ETH at rate 5250 issues 5.25 LEAP and forwards the ETH to the vault.")

    pending = compute_buy_coins_eth(ledger, "LEAPSALE", "alice", None, ether(CONFIG.alice_purchase_eth))
    print(f">>> {pending}")
    result = ledger.execute(pending)
    print(f"Result: {result.value}")

    print(f"alice LEAP:     {tokens(balance_of(ledger, 'LEAP', 'alice'))}")
    print(f"vault ETH:      {ledger.get_balance('vault', 'ETH') / 10 ** 18}")
    print(f"tokens_raised:  {tokens(tokens_raised(ledger, 'LEAPSALE'))}")
    return ledger


def step_07_btc_purchase(ledger: Ledger):
    """The proxy relays a BTC payment."""
    step_header(7, "Relayed BTC",
        "BTC is paid off-ledger; the proxy records it and tokens are minted.")

    try:
        compute_buy_coins_btc(ledger, "LEAPSALE", "bob", "bob", CONFIG.bob_purchase_satoshi)
    except Unauthorized as e:
        print(f"only the proxy may relay BTC: {e}")

    ledger.execute(compute_buy_coins_btc(ledger, "LEAPSALE", "proxy", "bob", CONFIG.bob_purchase_satoshi))
    print(f"bob LEAP:       {tokens(balance_of(ledger, 'LEAP', 'bob'))}")
    print(f"wei_raised:     {wei_raised(ledger, 'LEAPSALE')}")
    print(f"tokens_raised:  {tokens(tokens_raised(ledger, 'LEAPSALE'))}")
    print("\nBoth assets count against the same token cap.")
    return ledger


# ============================================================================
# PHASE 3: CLOSING (Steps 8-9)
# ============================================================================

def step_08_engine(ledger: Ledger):
    """The lifecycle engine closes the sale after its end time."""
    step_header(8, "Lifecycle Engine",
        "Time-driven transitions are discovered by polling contracts.")

    engine = default_engine(ledger)
    end_time = get_sale_info(ledger, "LEAPSALE")['end_time']
    executed = engine.step(end_time + timedelta(days=1))
    for tx in executed:
        print(f"[block {tx.block_number}] {tx.origin}")
    print(f"Status: {get_sale_status(ledger, 'LEAPSALE')}")
    return ledger


def step_09_finalize(ledger: Ledger):
    """Hand the token to the placeholder."""
    step_header(9, "Finalization",
        "The owner hands token ownership to the placeholder.")

    ledger.execute(compute_finalize(ledger, "LEAPSALE", "ops"))
    print(f"LEAP owner: {ledger.get_unit_state('LEAP')['owner']}")
    print(f"Status:     {get_sale_status(ledger, 'LEAPSALE')}")
    return ledger


# ============================================================================
# PHASE 4: ESCROW (Steps 10-11)
# ============================================================================

def step_10_pre_ico():
    """A pre-ICO locks every purchase in a token holder."""
    step_header(10, "Pre-ICO with Escrow",
        "Each purchase creates a holder that keeps the tokens until release.")

    private_key, public_key = generate_signer()
    ledger = Ledger("preico", CONFIG.start_time, verbose=False)
    ledger.register_unit(native_asset("ETH", "Ether"))
    for account in ("alice", "ops", "vault", "carol"):
        ledger.register_wallet(account)
    ledger.execute(compute_fund(ledger, "alice", ether("10")))

    ledger.deploy(create_token_unit("PLEAP", "Pre Leap", owner="PREICO"))
    ledger.deploy(create_token_holder_factory_unit(
        "HOLDERS", "PLEAP", owner="PREICO", release_after=CONFIG.release_time, signer=public_key,
    ))
    ledger.deploy(create_pre_ico(
        "PREICO", "PLEAP", "HOLDERS", CONFIG.sale_start, CONFIG.sale_start + timedelta(days=30),
        ether("1000"), wallet="vault", owner="ops",
    ))
    ledger.advance_time(CONFIG.sale_start)

    ledger.execute(compute_buy_tokens(ledger, "PREICO", "alice", "alice", ether("1")))
    for holder, beneficiary in list_holders(ledger, "HOLDERS").items():
        print(f"{holder} holds {tokens(balance_of(ledger, 'PLEAP', holder))} PLEAP for {beneficiary}")
    return ledger, private_key


def step_11_signed_release(ledger: Ledger, private_key: str):
    """Release requires time and the signer's signature."""
    step_header(11, "Signed Release",
        "After the release time anyone may release with a valid signature.")

    holder = "HOLDERS-H000001"
    default_engine(ledger).step(CONFIG.release_time)
    print(f"Status after release time: {get_holder_status(ledger, holder)}")

    try:
        compute_release(ledger, holder, "carol")
    except InvalidSignature as e:
        print(f"Unsigned release refused: {e}")

    signature = sign_release(private_key, "alice")
    result = ledger.execute(compute_release(ledger, holder, "carol", signature))
    print(f"Signed release: {result.value}")
    print(f"alice PLEAP: {tokens(balance_of(ledger, 'PLEAP', 'alice'))}")
    return ledger


# ============================================================================
# PHASE 5: AUDIT (Step 12)
# ============================================================================

def step_12_audit(ledger: Ledger):
    """Conservation, history and replay."""
    step_header(12, "Audit",
        "Every unit nets to zero, history can be rebuilt, and the log replays.")

    check = ledger.verify_double_entry()
    print(f"Conservation valid: {check['valid']}")
    print(f"Supplies:           {check['supplies']}")

    before = ledger.clone_at(CONFIG.sale_start + timedelta(days=1))
    print(f"LEAP minted at day one of the sale: {tokens(before.total_supply('LEAP'))}")

    replayed = ledger.replay()
    same = all(
        replayed.get_balance(w, u) == ledger.get_balance(w, u)
        for w in ledger.registered_wallets for u in ledger.list_units()
    )
    print(f"Replay reproduces every balance: {same}")
    print(f"Events logged: {len(ledger.event_log)}")

    try:
        compute_send_value(ledger, "alice", "LEAP", 1)
    except NonPayable as e:
        print(f"\nETH sent to the token contract: {e}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       TOKEN SALE LEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    ledger = step_01_ledger()
    wait_for_enter()
    ledger = step_02_accounts(ledger)
    wait_for_enter()
    ledger = step_03_genesis(ledger)
    wait_for_enter()

    ledger = step_04_deploy(ledger)
    wait_for_enter()
    ledger = step_05_members(ledger)
    wait_for_enter()
    ledger = step_06_eth_purchase(ledger)
    wait_for_enter()
    ledger = step_07_btc_purchase(ledger)
    wait_for_enter()

    ledger = step_08_engine(ledger)
    wait_for_enter()
    ledger = step_09_finalize(ledger)
    wait_for_enter()

    pre_ico, private_key = step_10_pre_ico()
    wait_for_enter()
    step_11_signed_release(pre_ico, private_key)
    wait_for_enter()

    step_12_audit(ledger)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See tokensale/units/*.py for the contract implementations
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
