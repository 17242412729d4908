"""
pricing.py - Price feeds consumed by lending pools

A lending pool reads exactly one scalar: the value of one unit of
collateral expressed in units of the borrow asset, as an 18-decimal
fixed-point int. The pool re-reads it on every operation that needs it and
never caches it.

Classes:
- PriceFeed: Protocol defining the feed interface
- StaticPriceFeed: Settable price (a mock oracle for tests and demos)
- TimeSeriesPriceFeed: Historical price path read at a clock's current time

A feed that cannot produce a positive price raises CollaboratorFailure.
"""

from __future__ import annotations
from bisect import bisect_right
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Protocol, Tuple, Union, runtime_checkable

from .core import Clock, CollaboratorFailure
from .fixed_point import from_fixed, to_fixed

PriceInput = Union[int, str, Decimal]


def _as_price(price: PriceInput) -> int:
    """Convert a human-readable price to 18-decimal fixed point."""
    value = to_fixed(price)
    if value <= 0:
        raise ValueError(f"Price must be positive, got {price!r}")
    return value


@runtime_checkable
class PriceFeed(Protocol):
    """Source of the collateral price, in borrow-asset units per collateral unit."""

    def current_price(self) -> int:
        """Return the latest price as an 18-decimal fixed-point int."""
        ...


class StaticPriceFeed:
    """
    Price feed whose price only changes when set explicitly.

    Prices are given in human units and stored scaled:
        feed = StaticPriceFeed("2000")
        feed.current_price()   # 2000 * 10**18
        feed.set_price("1500")
    """

    def __init__(self, price: PriceInput):
        self._price = _as_price(price)

    def current_price(self) -> int:
        return self._price

    def set_price(self, price: PriceInput) -> None:
        """Update the price."""
        self._price = _as_price(price)

    def set_raw_price(self, price: int) -> None:
        """Update the price from an already-scaled value."""
        if price <= 0:
            raise ValueError(f"Price must be positive, got {price}")
        self._price = price

    def __repr__(self):
        return f"StaticPriceFeed({from_fixed(self._price)})"


class TimeSeriesPriceFeed:
    """
    Price feed with time-varying prices.

    Stores historical observations and returns the most recent one at or
    before the clock's current time.

    Example:
        feed = TimeSeriesPriceFeed(ledger, [
            (datetime(2025, 1, 1), "2000"),
            (datetime(2025, 6, 1), "1400"),
        ])
    """

    def __init__(
        self,
        clock: Clock,
        price_path: Optional[List[Tuple[datetime, PriceInput]]] = None,
    ):
        """
        Args:
            clock: Source of the current time (e.g. the token Ledger)
            price_path: Optional list of (timestamp, price) observations
        """
        self.clock = clock
        self.price_history: List[Tuple[datetime, int]] = []
        if price_path:
            self.price_history = sorted(
                ((ts, _as_price(p)) for ts, p in price_path),
                key=lambda x: x[0],
            )

    def add_price(self, timestamp: datetime, price: PriceInput) -> None:
        """Add a price observation at a specific time."""
        self.price_history.append((timestamp, _as_price(price)))
        self.price_history.sort(key=lambda x: x[0])

    def price_at(self, timestamp: datetime) -> Optional[int]:
        """
        Get price at or before the specified timestamp.

        Returns None if no observation exists at or before the timestamp.
        Uses binary search for O(log n) lookup.
        """
        timestamps = [ts for ts, _ in self.price_history]
        idx = bisect_right(timestamps, timestamp)
        if idx == 0:
            return None
        return self.price_history[idx - 1][1]

    def current_price(self) -> int:
        now = self.clock.current_time
        price = self.price_at(now)
        if price is None:
            raise CollaboratorFailure(f"No price observation at or before {now}")
        return price

    def __repr__(self):
        return f"TimeSeriesPriceFeed({len(self.price_history)} observations)"
