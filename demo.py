#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Lending Pool Step by Step

This is a pedagogical demonstration of a collateralized lending pool running
on top of a double-entry token ledger. Each step builds on the previous one.
Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Setup        - Token ledger, custody adapters, pool terms
  4-6:   Borrowing    - Deposits, credit limits, rejected operations
  7-8:   Interest     - Lazy accrual, repayment
  9-10:  Liquidation  - Price crash, third-party liquidation
  11-12: Analysis     - Price shocks, simulated market, conservation proof

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
import sys

from lending import (
    # Ledger
    Ledger, LedgerAsset, token,
    # Pool
    LendingPool, PoolTerms, create_lending_pool, SECONDS_PER_YEAR,
    # Prices
    StaticPriceFeed, TimeSeriesPriceFeed,
    # Fixed point
    to_fixed, from_fixed,
    # Errors
    LendingError,
    # Analysis
    price_shock_table, liquidation_price, generate_price_path,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)

    # Market
    weth_price: str = "2000"
    crash_price: str = "450"

    # Pool terms
    apr: int = 300
    collateralization_ratio: int = 150
    liquidation_threshold: int = 120
    liquidation_bonus: int = 5

    # Initial funding
    pool_liquidity: Decimal = Decimal("100000")
    alice_weth: Decimal = Decimal("10")
    alice_usdc: Decimal = Decimal("1000")
    keeper_usdc: Decimal = Decimal("20000")


CONFIG = DemoConfig()

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
    print(f"\n--- {text} ---\n")


def show_position(pool: LendingPool, user: str):
    health = pool.health_factor(user)
    print(f"  collateral:     {from_fixed(pool.collateral_of(user))} WETH")
    print(f"  debt:           {from_fixed(pool.current_debt(user))} USDC")
    print(f"  max borrowable: {from_fixed(pool.max_borrowable(user))} USDC")
    print(f"  health factor:  {'n/a' if health is None else f'{health}%'}")


# ============================================================================
# PHASE 1: SETUP (Steps 1-3)
# ============================================================================

def step_01_token_ledger():
    """Create the token ledger the pool settles against."""
    step_header(1, "The Token Ledger",
        "Tokens live on a double-entry ledger; the pool never holds balances itself.")

    ledger = Ledger("chain", initial_time=CONFIG.start_time, verbose=False)
    ledger.register_token(token("WETH", "Wrapped Ether"))
    ledger.register_token(token("USDC", "USD Coin"))
    for wallet in ("alice", "keeper"):
        ledger.register_wallet(wallet)

    ledger.issue("alice", "WETH", CONFIG.alice_weth)
    ledger.issue("alice", "USDC", CONFIG.alice_usdc)
    ledger.issue("keeper", "USDC", CONFIG.keeper_usdc)

    section_header("Balances")
    for wallet in ("alice", "keeper"):
        print(f"  {wallet:8} {ledger.holdings(wallet)}")
    print("\n  Every token entered through the system wallet, so Σ balances = 0.")
    return ledger


def step_02_custody(ledger: Ledger):
    """Wrap each token in a custody adapter."""
    step_header(2, "Custody Adapters",
        "The pool moves tokens only through move_in / move_out on an AssetLedger.")

    weth = LedgerAsset(ledger, "WETH", custody_wallet="pool")
    usdc = LedgerAsset(ledger, "USDC", custody_wallet="pool")
    ledger.issue("pool", "USDC", CONFIG.pool_liquidity)

    print(f"  {weth}")
    print(f"  {usdc}")
    print(f"\n  Pool liquidity: {ledger.get_balance('pool', 'USDC')} USDC")
    return weth, usdc


def step_03_pool_terms(ledger: Ledger, weth: LedgerAsset, usdc: LedgerAsset):
    """Create the pool from deployment parameters."""
    step_header(3, "Pool Terms",
        "Immutable parameters decide credit limits, interest and liquidation.")

    feed = StaticPriceFeed(CONFIG.weth_price)
    pool = create_lending_pool(
        "WETH/USDC", weth, usdc, feed, ledger,
        apr=CONFIG.apr,
        collateralization_ratio=CONFIG.collateralization_ratio,
        liquidation_threshold=CONFIG.liquidation_threshold,
        liquidation_bonus=CONFIG.liquidation_bonus,
        verbose=True,
    )
    terms = pool.terms
    print(f"  {pool}")
    print(f"  APR:                     {terms.apr / 100}%")
    print(f"  Collateralization ratio: {terms.collateralization_ratio}%")
    print(f"  Liquidation threshold:   {terms.liquidation_threshold}%")
    print(f"  Liquidation bonus:       {terms.liquidation_bonus}%")
    print(f"  Rate per second:         {pool.rate_per_second} (scaled by 10^18)")
    return pool, feed


# ============================================================================
# PHASE 2: BORROWING (Steps 4-6)
# ============================================================================

def step_04_deposit(pool: LendingPool):
    step_header(4, "Deposit Collateral",
        "Collateral moves from alice's wallet into pool custody.")

    pool.deposit_collateral("alice", to_fixed("1"))
    show_position(pool, "alice")


def step_05_borrow(pool: LendingPool, ledger: Ledger):
    step_header(5, "Borrow",
        "Debt may not exceed collateral value divided by the collateralization ratio.")

    pool.borrow("alice", to_fixed("1000"))
    show_position(pool, "alice")
    print(f"\n  alice now holds {ledger.get_balance('alice', 'USDC')} USDC")


def step_06_rejections(pool: LendingPool):
    step_header(6, "Rejected Operations",
        "Operations that would break an invariant fail and change nothing.")

    before = pool.get_position("alice")
    attempts = [
        ("borrow 1000 more USDC", lambda: pool.borrow("alice", to_fixed("1000"))),
        ("withdraw all collateral", lambda: pool.withdraw_collateral("alice", to_fixed("1"))),
        ("liquidate a healthy position", lambda: pool.liquidate("alice", to_fixed("100"), "keeper")),
    ]
    for label, attempt in attempts:
        try:
            attempt()
        except LendingError as exc:
            print(f"  {label:30} -> {type(exc).__name__}")
    print(f"\n  Position unchanged: {pool.get_position('alice') == before}")


# ============================================================================
# PHASE 3: INTEREST (Steps 7-8)
# ============================================================================

def step_07_accrual(pool: LendingPool, ledger: Ledger):
    step_header(7, "Lazy Interest Accrual",
        "Interest is computed from elapsed time and stored only when the position changes.")

    ledger.advance_time(ledger.current_time + timedelta(seconds=SECONDS_PER_YEAR // 4))
    print(f"  Clock moved to {ledger.current_time}")
    print(f"  Stored debt:    {from_fixed(pool.debt_of('alice'))} USDC")
    print(f"  Current debt:   {from_fixed(pool.current_debt('alice'))} USDC")


def step_08_repay(pool: LendingPool):
    step_header(8, "Repay",
        "Repayment first accrues interest, then reduces debt; overpayment is clamped.")

    charged = pool.repay("alice", to_fixed("600"))
    print(f"  Charged {from_fixed(charged)} USDC")
    show_position(pool, "alice")


# ============================================================================
# PHASE 4: LIQUIDATION (Steps 9-10)
# ============================================================================

def step_09_crash(pool: LendingPool, feed: StaticPriceFeed):
    step_header(9, "Price Crash",
        "A falling collateral price pushes the health factor below the threshold.")

    threshold = liquidation_price(pool, "alice")
    print(f"  alice is liquidatable below a price of about {threshold:.2f}")
    feed.set_price(CONFIG.crash_price)
    print(f"  Price falls to {CONFIG.crash_price}")
    show_position(pool, "alice")
    print(f"\n  Liquidatable: {pool.is_liquidatable('alice')}")


def step_10_liquidation(pool: LendingPool, ledger: Ledger):
    step_header(10, "Liquidation",
        "A third party repays debt and receives collateral plus a bonus.")

    half = pool.current_debt("alice") // 2
    quote = pool.quote_liquidation("alice", half, "keeper")
    print(f"  Quote: repay {from_fixed(quote.amount_repaid)} USDC "
          f"for {from_fixed(quote.collateral_seized)} WETH")

    result = pool.liquidate("alice", half, "keeper")
    print(f"  keeper holds {ledger.get_balance('keeper', 'WETH')} WETH")
    show_position(pool, "alice")
    return result


# ============================================================================
# PHASE 5: ANALYSIS (Steps 11-12)
# ============================================================================

def step_11_shocks(pool: LendingPool):
    step_header(11, "Price Shock Table",
        "Estimate how many positions a sudden price fall would expose.")

    print(f"  {'shock':>7} {'price':>10} {'at risk':>8} {'debt at risk':>14}")
    for row in price_shock_table(pool):
        print(f"  {row.shock:>7.0%} {row.price:>10.2f} {row.liquidatable_positions:>8} "
              f"{row.debt_at_risk:>14.6f}")
    print("\n  Figures are floating point estimates over whole-token balances.")


def step_12_simulation():
    step_header(12, "Simulated Market",
        "Drive a fresh pool with a geometric Brownian motion price path.")

    ledger = Ledger("sim", initial_time=CONFIG.start_time, verbose=False)
    ledger.register_token(token("WETH", "Wrapped Ether"))
    ledger.register_token(token("USDC", "USD Coin"))
    ledger.register_wallet("alice")
    ledger.register_wallet("keeper")
    ledger.issue("alice", "WETH", Decimal("1"))
    ledger.issue("keeper", "USDC", CONFIG.keeper_usdc)

    weth = LedgerAsset(ledger, "WETH", custody_wallet="pool")
    usdc = LedgerAsset(ledger, "USDC", custody_wallet="pool")
    ledger.issue("pool", "USDC", CONFIG.pool_liquidity)

    path = generate_price_path(CONFIG.start_time, CONFIG.weth_price, days=180, drift=-0.6)
    terms = PoolTerms.from_mapping({
        "collateral_asset": "WETH",
        "borrow_asset": "USDC",
        "apr": CONFIG.apr,
        "collateralization_ratio": CONFIG.collateralization_ratio,
        "liquidation_threshold": CONFIG.liquidation_threshold,
        "liquidation_bonus_multiplier": 100 + CONFIG.liquidation_bonus,
    })
    pool = LendingPool("sim", terms, weth, usdc, TimeSeriesPriceFeed(ledger, path), ledger)
    pool.deposit_collateral("alice", to_fixed("1"))
    pool.borrow("alice", to_fixed("1300"))

    for when, price in path:
        ledger.advance_time(when)
        if pool.is_liquidatable("alice"):
            result = pool.liquidate("alice", pool.current_debt("alice") // 2, "keeper")
            print(f"  {when.date()} price {price}: keeper seized "
                  f"{from_fixed(result.collateral_seized)} WETH")
            break
    else:
        print(f"  alice survived {len(path)} days, debt {from_fixed(pool.current_debt('alice'))}")

    report = ledger.verify_double_entry({"WETH": Decimal("0"), "USDC": Decimal("0")})
    section_header("Conservation")
    print(f"  Double entry valid: {report['valid']}")
    print(f"  Custody WETH = Σ collateral: "
          f"{weth.custody_balance() == pool.total_collateral()}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       LENDING POOL - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    # Phase 1: Setup
    ledger = step_01_token_ledger()
    wait_for_enter()
    weth, usdc = step_02_custody(ledger)
    wait_for_enter()
    pool, feed = step_03_pool_terms(ledger, weth, usdc)
    wait_for_enter()

    # Phase 2: Borrowing
    step_04_deposit(pool)
    wait_for_enter()
    step_05_borrow(pool, ledger)
    wait_for_enter()
    step_06_rejections(pool)
    wait_for_enter()

    # Phase 3: Interest
    step_07_accrual(pool, ledger)
    wait_for_enter()
    step_08_repay(pool)
    wait_for_enter()

    # Phase 4: Liquidation
    step_09_crash(pool, feed)
    wait_for_enter()
    step_10_liquidation(pool, ledger)
    wait_for_enter()

    # Phase 5: Analysis
    step_11_shocks(pool)
    wait_for_enter()
    step_12_simulation()

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See lending/pool.py for the pure calculation functions
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
