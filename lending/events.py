"""
events.py - Outcome records emitted by lending pools

One event per successful state-mutating operation. Events are immutable
and carry the pool-local sequence number and the clock time of the
operation, so an event log can be replayed in order.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Union


@dataclass(frozen=True, slots=True)
class CollateralDeposited:
    user: str
    amount: int
    timestamp: datetime
    sequence: int


@dataclass(frozen=True, slots=True)
class CollateralWithdrawn:
    user: str
    amount: int
    timestamp: datetime
    sequence: int


@dataclass(frozen=True, slots=True)
class Borrowed:
    user: str
    amount: int
    timestamp: datetime
    sequence: int


@dataclass(frozen=True, slots=True)
class Repaid:
    """amount is the clamped amount actually charged, never the amount offered."""
    user: str
    amount: int
    timestamp: datetime
    sequence: int


@dataclass(frozen=True, slots=True)
class Liquidated:
    user: str
    liquidator: str
    amount_repaid: int
    collateral_seized: int
    timestamp: datetime
    sequence: int


PoolEvent = Union[CollateralDeposited, CollateralWithdrawn, Borrowed, Repaid, Liquidated]

EventListener = Callable[[PoolEvent], None]
