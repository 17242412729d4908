"""
stress.py - Price shock analysis and simulated price paths

Analytics on top of a LendingPool. Nothing here mutates a pool: positions
are read with their interest accrued to the pool clock's current time, and
the collateral price is shocked in memory.

Figures are numpy float64 in whole-token units, which is plenty for a risk
report but not for settlement. The pool's own integer arithmetic stays the
authority on whether a position is actually liquidatable; a position whose
health factor sits within float rounding of the threshold may be reported
on either side.

Usage:
    table = price_shock_table(pool, [-0.10, -0.25, -0.40])
    for row in table:
        print(row.shock, row.liquidatable_positions, row.debt_at_risk)

    path = generate_price_path(datetime(2025, 1, 1), "2000", days=90, seed=7)
    feed = TimeSeriesPriceFeed(ledger, path)
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .fixed_point import from_fixed
from .pool import PERCENT, LendingPool


DEFAULT_SHOCKS = (-0.05, -0.10, -0.15, -0.20, -0.30, -0.40, -0.50)

DAYS_PER_YEAR = 365

PRICE_PLACES = Decimal("1e-8")


@dataclass(frozen=True, slots=True)
class ShockResult:
    """
    Outcome of one relative price shock.

    Attributes:
        shock: Relative price change (-0.10 = price falls 10%)
        price: Shocked collateral price in borrow-asset units
        liquidatable_positions: Positions whose health factor falls below the threshold
        debt_at_risk: Total debt of those positions
        collateral_shortfall: Debt of those positions not covered by their
            shocked collateral value (potential bad debt)
    """
    shock: float
    price: float
    liquidatable_positions: int
    debt_at_risk: float
    collateral_shortfall: float


def position_arrays(pool: LendingPool) -> Tuple[List[str], np.ndarray, np.ndarray]:
    """
    Snapshot every indebted position as arrays.

    Returns:
        Tuple of (users, collateral, debt) with collateral and debt in whole
        tokens, debt accrued to the pool's current time.
    """
    users = [u for u in pool.users() if pool.current_debt(u) > 0]
    collateral = np.array([float(from_fixed(pool.collateral_of(u))) for u in users], dtype=float)
    debt = np.array([float(from_fixed(pool.current_debt(u))) for u in users], dtype=float)
    return users, collateral, debt


def health_factors(collateral: np.ndarray, debt: np.ndarray, price: float) -> np.ndarray:
    """Vectorised health factor in percent: collateral * price * 100 / debt."""
    return collateral * price * PERCENT / debt


def price_shock_table(
    pool: LendingPool,
    shocks: Optional[Sequence[float]] = None,
) -> List[ShockResult]:
    """
    Apply each relative price shock to the pool's current price.

    Args:
        pool: Pool to analyse (read only)
        shocks: Relative price changes, each greater than -1
            (default: DEFAULT_SHOCKS)

    Returns:
        One ShockResult per shock, in the order given

    Raises:
        ValueError: If a shock would take the price to zero or below
    """
    shocks = DEFAULT_SHOCKS if shocks is None else shocks
    for shock in shocks:
        if shock <= -1:
            raise ValueError(f"Shock must be greater than -1, got {shock}")

    base_price = float(from_fixed(pool.price_feed.current_price()))
    _, collateral, debt = position_arrays(pool)
    threshold = pool.terms.liquidation_threshold

    results = []
    for shock in shocks:
        price = base_price * (1.0 + shock)
        at_risk = health_factors(collateral, debt, price) < threshold
        shortfall = np.clip(debt - collateral * price, 0.0, None)
        results.append(ShockResult(
            shock=float(shock),
            price=price,
            liquidatable_positions=int(np.count_nonzero(at_risk)),
            debt_at_risk=float(debt[at_risk].sum()),
            collateral_shortfall=float(shortfall[at_risk].sum()),
        ))
    return results


def liquidation_price(pool: LendingPool, user: str) -> Optional[Decimal]:
    """
    Collateral price below which user becomes liquidatable.

    Returns None for a debt-free position.
    """
    debt = pool.current_debt(user)
    collateral = pool.collateral_of(user)
    if debt == 0:
        return None
    if collateral == 0:
        return Decimal("Infinity")
    return (
        from_fixed(debt) * pool.terms.liquidation_threshold
        / (from_fixed(collateral) * PERCENT)
    )


def generate_price_path(
    start_time: datetime,
    start_price,
    days: int,
    drift: float = 0.0,
    volatility: float = 0.8,
    seed: int = 42,
    step: timedelta = timedelta(days=1),
) -> List[Tuple[datetime, Decimal]]:
    """
    Generate a geometric Brownian motion price path.

    Uses: S(t+dt) = S(t) * exp((mu - 0.5*sigma^2)*dt + sigma*sqrt(dt)*Z)

    Args:
        start_time: Time of the first observation
        start_price: Initial price (int, str or Decimal)
        days: Number of observations, including the first
        drift: Annual drift (mu)
        volatility: Annual volatility (sigma)
        seed: Random seed for reproducibility
        step: Spacing between observations (default: one day)

    Returns:
        List of (datetime, price) tuples for TimeSeriesPriceFeed, prices as
        Decimals rounded to 8 places
    """
    if days < 1:
        raise ValueError(f"days must be at least 1, got {days}")
    if volatility < 0:
        raise ValueError(f"volatility cannot be negative, got {volatility}")

    start = Decimal(str(start_price))
    if start <= 0:
        raise ValueError(f"start_price must be positive, got {start_price}")

    rng = np.random.default_rng(seed)
    dt = step / timedelta(days=DAYS_PER_YEAR)
    z = rng.standard_normal(days - 1)
    log_steps = (drift - 0.5 * volatility ** 2) * dt + volatility * np.sqrt(dt) * z
    factors = np.exp(np.cumsum(log_steps))

    path = [(start_time, start)]
    for i, factor in enumerate(factors, start=1):
        price = (start * Decimal(repr(float(factor)))).quantize(PRICE_PLACES)
        path.append((start_time + step * i, price))
    return path
