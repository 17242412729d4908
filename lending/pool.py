"""
pool.py - Collateralized Lending Pool

Users deposit one fungible asset as collateral, borrow a second asset
against it up to a price-determined limit, accrue interest per second,
repay, and can be liquidated by anyone once their position is unhealthy.

ARCHITECTURE (Pure Function Pattern):
=====================================

1. FROZEN DATACLASSES (explicit inputs):
   - PoolTerms: Immutable pool configuration (set at creation, never changes)
   - Position: Immutable per-user snapshot (collateral, debt, last accrual)
   - LiquidationResult: Typed outcome of a liquidation plan

2. PURE CALCULATION FUNCTIONS (calculate_*, apply_*, plan_liquidation):
   - Take all inputs explicitly as parameters
   - No collaborators, no hidden state
   - Raise the pool's domain errors when an operation is not allowed

3. STATEFUL POOL (LendingPool):
   - Owns the position store: a dict from user id to Position
   - Reads the clock once and the price fresh for every operation
   - Validates on post-accrual figures, moves assets, then commits

Key Formulas (all integer, multiply before divide, SCALE = 10**18):
    rate_per_second   = apr * SCALE / (SECONDS_PER_YEAR * 100)
    interest          = debt * rate_per_second * elapsed_seconds / SCALE
    collateral_value  = collateral * price / SCALE
    max_borrowable    = collateral_value * 100 / collateralization_ratio
    health_factor     = collateral_value * 100 / debt
    seize_value       = repay * (100 + liquidation_bonus) / 100
    collateral_seized = seize_value * SCALE / price

Liquidation bonus convention: percentage points. A bonus of 5 pays the
liquidator collateral worth 105% of the debt they repay. Deployment
parameters written as a multiplier (105) must go through
bonus_from_multiplier() first; PoolTerms rejects them otherwise.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, fields, replace
from datetime import datetime, timedelta
import threading
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .assets import AssetLedger
from .core import (
    Clock, CollaboratorFailure, CreditLimitExceeded, InsufficientBalance,
    InvalidInput, LendingError, NoDebt, PositionHealthy, ReentrantCall,
    SeizureShortfall,
)
from .events import (
    Borrowed, CollateralDeposited, CollateralWithdrawn, EventListener,
    Liquidated, PoolEvent, Repaid,
)
from .fixed_point import (
    SCALE, checked_add, checked_mul, checked_sub, from_fixed, mul_div,
)
from .pricing import PriceFeed


SECONDS_PER_YEAR = 365 * 24 * 60 * 60

PERCENT = 100


# ============================================================================
# FROZEN DATACLASSES - Explicit Inputs for Pure Functions
# ============================================================================

def _require_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an int, got {type(value).__name__}")


def bonus_from_multiplier(multiplier: int) -> int:
    """
    Convert a multiplier-style liquidation bonus (105 = +5%) to percentage points.

    Example:
        bonus_from_multiplier(105)   # 5
    """
    _require_int("multiplier", multiplier)
    if multiplier < PERCENT:
        raise ValueError(f"Bonus multiplier must be at least {PERCENT}, got {multiplier}")
    return multiplier - PERCENT


@dataclass(frozen=True, slots=True)
class PoolTerms:
    """
    Immutable pool configuration - set at creation, never changes.

    Attributes:
        collateral_asset: Symbol of the asset deposited as collateral
        borrow_asset: Symbol of the asset lent out
        apr: Annual rate integer fed to the per-second rate formula
        collateralization_ratio: Required over-collateralization in percent (150 = 150%)
        liquidation_threshold: Health factor (percent) below which liquidation is allowed
        liquidation_bonus: Liquidator premium in percentage points (5 = +5%)
        scale: Fixed-point scale of every amount and price (10**18)
    """
    collateral_asset: str
    borrow_asset: str
    apr: int
    collateralization_ratio: int
    liquidation_threshold: int
    liquidation_bonus: int
    scale: int = SCALE

    def __post_init__(self):
        if not self.collateral_asset or not self.borrow_asset:
            raise ValueError("Asset symbols cannot be empty")
        if self.collateral_asset == self.borrow_asset:
            raise ValueError("Collateral and borrow assets must be different")
        for name in ("apr", "collateralization_ratio", "liquidation_threshold",
                     "liquidation_bonus", "scale"):
            _require_int(name, getattr(self, name))
        if self.apr < 0:
            raise ValueError(f"apr cannot be negative, got {self.apr}")
        if self.collateralization_ratio < PERCENT:
            raise ValueError(
                f"collateralization_ratio must be at least {PERCENT}, "
                f"got {self.collateralization_ratio}"
            )
        if self.liquidation_threshold <= 0:
            raise ValueError(f"liquidation_threshold must be positive, got {self.liquidation_threshold}")
        if self.liquidation_threshold > self.collateralization_ratio:
            raise ValueError(
                f"liquidation_threshold ({self.liquidation_threshold}) cannot exceed "
                f"collateralization_ratio ({self.collateralization_ratio})"
            )
        if self.liquidation_bonus < 0:
            raise ValueError(f"liquidation_bonus cannot be negative, got {self.liquidation_bonus}")
        if self.liquidation_bonus >= PERCENT:
            raise ValueError(
                f"liquidation_bonus is in percentage points and must be below {PERCENT}, "
                f"got {self.liquidation_bonus}; convert multipliers with bonus_from_multiplier()"
            )
        if self.scale <= 0:
            raise ValueError(f"scale must be positive, got {self.scale}")

    @property
    def rate_per_second(self) -> int:
        return calculate_rate_per_second(self.apr, self.scale)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> PoolTerms:
        """
        Build terms from a plain mapping, e.g. parsed deployment parameters.

        Accepts either 'liquidation_bonus' (percentage points) or
        'liquidation_bonus_multiplier' (105 style), not both.
        """
        if 'liquidation_bonus' in raw and 'liquidation_bonus_multiplier' in raw:
            raise ValueError("Give liquidation_bonus or liquidation_bonus_multiplier, not both")
        if 'liquidation_bonus_multiplier' in raw:
            bonus = bonus_from_multiplier(raw['liquidation_bonus_multiplier'])
        else:
            bonus = raw['liquidation_bonus']
        return cls(
            collateral_asset=raw['collateral_asset'],
            borrow_asset=raw['borrow_asset'],
            apr=raw['apr'],
            collateralization_ratio=raw['collateralization_ratio'],
            liquidation_threshold=raw['liquidation_threshold'],
            liquidation_bonus=bonus,
            scale=raw.get('scale', SCALE),
        )


@dataclass(frozen=True, slots=True)
class Position:
    """
    Immutable snapshot of one user's position.

    last_accrual_time is None until the position is first touched; debt
    always includes interest up to last_accrual_time.
    """
    collateral: int = 0
    debt: int = 0
    last_accrual_time: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class LiquidationResult:
    """
    Typed outcome of a liquidation, planned or executed.

    health_factor is the target's health factor (percent) before the
    liquidation; position_after is the target's position once it applies.
    """
    user: str
    liquidator: str
    amount_repaid: int
    collateral_seized: int
    health_factor: int
    position_after: Position


# ============================================================================
# PURE CALCULATION FUNCTIONS - No Collaborators, All Inputs Explicit
# ============================================================================

def calculate_rate_per_second(apr: int, scale: int = SCALE) -> int:
    """Derive the fixed-point per-second rate from the annual rate integer."""
    return mul_div(apr, scale, SECONDS_PER_YEAR * PERCENT)


def elapsed_seconds(since: datetime, now: datetime) -> int:
    """
    Whole seconds between two instants, rounded down.

    Raises:
        CollaboratorFailure: If now is before since; the clock moved backwards.
    """
    if now < since:
        raise CollaboratorFailure(f"Clock moved backwards: {now} < {since}")
    return (now - since) // timedelta(seconds=1)


def calculate_accrued_interest(
    debt: int,
    rate_per_second: int,
    seconds: int,
    scale: int = SCALE,
) -> int:
    """
    Simple interest on debt over a number of seconds.

    PURE FUNCTION - interest = debt * rate_per_second * seconds / scale.
    Because debt already contains earlier interest, repeated accruals
    compound exactly at the granularity of the calls.
    """
    if debt == 0 or rate_per_second == 0 or seconds <= 0:
        return 0
    return mul_div(checked_mul(debt, rate_per_second), seconds, scale)


def calculate_accrual(
    position: Position,
    rate_per_second: int,
    now: datetime,
    scale: int = SCALE,
) -> Position:
    """
    Roll a position's debt forward to now.

    PURE FUNCTION - returns a new Position. A position that was never
    touched only gets its timestamp initialised; no interest is due for the
    time before it existed.
    """
    if position.last_accrual_time is None:
        return replace(position, last_accrual_time=now)
    seconds = elapsed_seconds(position.last_accrual_time, now)
    interest = calculate_accrued_interest(position.debt, rate_per_second, seconds, scale)
    return Position(
        collateral=position.collateral,
        debt=checked_add(position.debt, interest),
        last_accrual_time=now,
    )


def calculate_collateral_value(collateral: int, price: int, scale: int = SCALE) -> int:
    """Value of collateral in borrow-asset base units."""
    return mul_div(collateral, price, scale)


def calculate_max_borrowable(
    collateral: int,
    price: int,
    collateralization_ratio: int,
    scale: int = SCALE,
) -> int:
    """Loan-to-value capacity of an amount of collateral at a price."""
    value = calculate_collateral_value(collateral, price, scale)
    return mul_div(value, PERCENT, collateralization_ratio)


def calculate_health_factor(
    collateral: int,
    debt: int,
    price: int,
    scale: int = SCALE,
) -> Optional[int]:
    """
    Collateral value over debt, in percent.

    Returns None for a debt-free position (health is unbounded).
    """
    if debt == 0:
        return None
    value = calculate_collateral_value(collateral, price, scale)
    return mul_div(value, PERCENT, debt)


def calculate_seizure(
    repay_amount: int,
    price: int,
    liquidation_bonus: int,
    scale: int = SCALE,
) -> int:
    """Collateral owed to a liquidator who repays repay_amount of debt."""
    seize_value = mul_div(repay_amount, PERCENT + liquidation_bonus, PERCENT)
    return mul_div(seize_value, scale, price)


def apply_deposit(position: Position, amount: int) -> Position:
    """Deposits only improve health, so no loan-to-value check."""
    return replace(position, collateral=checked_add(position.collateral, amount))


def apply_withdraw(terms: PoolTerms, position: Position, price: int, amount: int) -> Position:
    """
    Remove collateral if the remaining collateral still covers the debt.

    Raises:
        InsufficientBalance: If amount exceeds the collateral held
        CreditLimitExceeded: If the remaining capacity is below the debt
    """
    if amount > position.collateral:
        raise InsufficientBalance(
            f"Cannot withdraw {amount}: only {position.collateral} collateral deposited"
        )
    remaining = position.collateral - amount
    capacity = calculate_max_borrowable(
        remaining, price, terms.collateralization_ratio, terms.scale
    )
    if position.debt > capacity:
        raise CreditLimitExceeded(
            f"Withdrawal would undercollateralize: debt {position.debt} > capacity {capacity}"
        )
    return replace(position, collateral=remaining)


def apply_borrow(terms: PoolTerms, position: Position, price: int, amount: int) -> Position:
    """
    Add debt if it stays within the loan-to-value capacity.

    Raises:
        CreditLimitExceeded: If debt + amount exceeds capacity
    """
    capacity = calculate_max_borrowable(
        position.collateral, price, terms.collateralization_ratio, terms.scale
    )
    new_debt = checked_add(position.debt, amount)
    if new_debt > capacity:
        raise CreditLimitExceeded(
            f"Borrow would exceed collateral limit: debt {new_debt} > capacity {capacity}"
        )
    return replace(position, debt=new_debt)


def apply_repay(position: Position, amount: int) -> Tuple[Position, int]:
    """
    Reduce debt by at most what is owed.

    Returns:
        Tuple of (new position, amount actually repaid). Overpayment is
        clamped, never rejected.
    """
    actual = min(amount, position.debt)
    return replace(position, debt=position.debt - actual), actual


def plan_liquidation(
    terms: PoolTerms,
    position: Position,
    price: int,
    repay_amount: int,
    user: str = "",
    liquidator: str = "",
) -> LiquidationResult:
    """
    Work out a liquidation against an already-accrued position.

    PURE FUNCTION - nothing moves; the caller applies position_after and
    the two transfers.

    Raises:
        NoDebt: If the position owes nothing
        PositionHealthy: If the health factor is not below the threshold
        SeizureShortfall: If the bonus-adjusted seizure exceeds the collateral
    """
    if position.debt == 0:
        raise NoDebt(f"Position {user or '?'} has no debt to liquidate")

    health = calculate_health_factor(position.collateral, position.debt, price, terms.scale)
    if health >= terms.liquidation_threshold:
        raise PositionHealthy(
            f"Position {user or '?'} is healthy: health factor {health} >= "
            f"threshold {terms.liquidation_threshold}"
        )

    actual = min(repay_amount, position.debt)
    seized = calculate_seizure(actual, price, terms.liquidation_bonus, terms.scale)
    if position.collateral < seized:
        raise SeizureShortfall(
            f"Insufficient collateral to seize: need {seized}, have {position.collateral}"
        )

    after = Position(
        collateral=checked_sub(position.collateral, seized),
        debt=checked_sub(position.debt, actual),
        last_accrual_time=position.last_accrual_time,
    )
    return LiquidationResult(
        user=user,
        liquidator=liquidator,
        amount_repaid=actual,
        collateral_seized=seized,
        health_factor=health,
        position_after=after,
    )


# ============================================================================
# LENDING POOL
# ============================================================================

def _check_user(name: str, user: Any) -> None:
    if not isinstance(user, str) or not user.strip():
        raise InvalidInput(f"{name} must be a non-empty string, got {user!r}")


def _check_amount(amount: Any) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidInput(f"Amount must be an int of base units, got {type(amount).__name__}")
    if amount <= 0:
        raise InvalidInput(f"Amount must be greater than zero, got {amount}")


class LendingPool:
    """
    Single-market collateralized lending ledger.

    The position store is a plain dict from user id to Position; positions
    are created zero-valued on first use and never deleted.

    Every mutating operation:
        1. takes the pool lock (one operation at a time, no re-entry)
        2. reads the clock once and accrues the affected user's interest
        3. reads the price fresh when the decision depends on it
        4. validates against the accrued figures
        5. moves assets through the AssetLedger collaborators
        6. commits the new position and records the outcome event

    A failure at any step leaves positions and balances untouched.

    Thread Safety:
        Operations are serialized by an internal lock. Calling a mutating
        operation from inside another one (e.g. from an asset callback)
        raises ReentrantCall.

    Example:
        pool = create_lending_pool("main", weth, usdc, feed, ledger,
                                   apr=300, collateralization_ratio=150,
                                   liquidation_threshold=120, liquidation_bonus=5)
        pool.deposit_collateral("alice", to_fixed("1"))
        pool.borrow("alice", to_fixed("1000"))
    """

    def __init__(
        self,
        name: str,
        terms: PoolTerms,
        collateral_ledger: AssetLedger,
        borrow_ledger: AssetLedger,
        price_feed: PriceFeed,
        clock: Clock,
        verbose: bool = False,
    ):
        """
        Create a lending pool.

        Args:
            name: Pool identifier (used in events and output)
            terms: Immutable pool configuration
            collateral_ledger: Custody of the collateral asset
            borrow_ledger: Custody of the borrow asset
            price_feed: Collateral price in borrow-asset units
            clock: Source of the current time
            verbose: Print one line per completed or rejected operation

        Raises:
            ValueError: If an asset ledger's symbol does not match the terms
        """
        if collateral_ledger.symbol != terms.collateral_asset:
            raise ValueError(
                f"Collateral ledger holds {collateral_ledger.symbol}, "
                f"terms expect {terms.collateral_asset}"
            )
        if borrow_ledger.symbol != terms.borrow_asset:
            raise ValueError(
                f"Borrow ledger holds {borrow_ledger.symbol}, terms expect {terms.borrow_asset}"
            )
        self.name = name
        self.terms = terms
        self.rate_per_second = terms.rate_per_second
        self.collateral_ledger = collateral_ledger
        self.borrow_ledger = borrow_ledger
        self.price_feed = price_feed
        self.clock = clock
        self.verbose = verbose
        self.positions: Dict[str, Position] = {}
        self.event_log: List[PoolEvent] = []
        self._listeners: List[EventListener] = []
        self._lock = threading.RLock()
        self._busy = False
        self._next_sequence = 0

    # ========================================================================
    # INTERNAL PLUMBING
    # ========================================================================

    @contextmanager
    def _exclusive(self, operation: str) -> Iterator[None]:
        with self._lock:
            if self._busy:
                raise ReentrantCall(
                    f"{operation} called while another operation on pool {self.name} is running"
                )
            self._busy = True
            try:
                yield
            except LendingError as exc:
                if self.verbose:
                    print(f"✗ REJECTED {operation}: {type(exc).__name__}: {exc}")
                raise
            finally:
                self._busy = False

    def _now(self) -> datetime:
        return self.clock.current_time

    def _price(self) -> int:
        try:
            price = self.price_feed.current_price()
        except LendingError:
            raise
        except Exception as exc:
            raise CollaboratorFailure(f"Price feed failed: {exc}") from exc
        if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
            raise CollaboratorFailure(f"Price feed returned an invalid price: {price!r}")
        return price

    def _call_asset(self, action, holder: str, amount: int) -> None:
        """Run one custody transfer, skipping zero amounts."""
        if amount == 0:
            return
        try:
            action(holder, amount)
        except LendingError:
            raise
        except Exception as exc:
            raise CollaboratorFailure(f"Asset transfer failed: {exc}") from exc

    def _accrued(self, user: str, now: datetime) -> Position:
        """User's position rolled forward to now, not yet stored."""
        return calculate_accrual(
            self.positions.get(user, Position()), self.rate_per_second, now, self.terms.scale
        )

    def _accrue(self, user: str, now: datetime) -> Position:
        position = self._accrued(user, now)
        self.positions[user] = position
        return position

    def _record(self, event: PoolEvent) -> PoolEvent:
        self.event_log.append(event)
        if self.verbose:
            amounts = [
                f"{f.name}={from_fixed(getattr(event, f.name))}"
                for f in fields(event)
                if f.name not in ('user', 'liquidator', 'timestamp', 'sequence')
            ]
            print(f"✓ {self.name} #{event.sequence}: {type(event).__name__} "
                  f"user={event.user} {' '.join(amounts)}")
        return event

    def _next_event_sequence(self) -> int:
        sequence = self._next_sequence
        self._next_sequence += 1
        return sequence

    def _notify(self, event: PoolEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    def subscribe(self, listener: EventListener) -> None:
        """Register a callback invoked with every event after it commits."""
        self._listeners.append(listener)

    # ========================================================================
    # INTEREST ACCRUAL
    # ========================================================================

    def accrue_interest(self, user: str) -> int:
        """
        Commit the interest owed by user up to now and return the new debt.

        Emits no event; the next completed operation reflects the new debt.
        """
        _check_user("user", user)
        with self._exclusive("accrue_interest"):
            return self._accrue(user, self._now()).debt

    def current_debt(self, user: str) -> int:
        """Debt user would owe right now, without mutating state."""
        with self._lock:
            position = self.positions.get(user)
            if position is None:
                return 0
            return self._accrued(user, self._now()).debt

    get_borrow_balance = current_debt

    # ========================================================================
    # COLLATERAL / BORROW MANAGEMENT
    # ========================================================================

    def deposit_collateral(self, user: str, amount: int) -> int:
        """
        Pull amount of the collateral asset from user into custody.

        Returns:
            The amount deposited

        Raises:
            InvalidInput: If amount is not positive
            CollaboratorFailure: If the collateral transfer fails
        """
        _check_user("user", user)
        _check_amount(amount)
        with self._exclusive("deposit_collateral"):
            now = self._now()
            updated = apply_deposit(self._accrued(user, now), amount)
            self._call_asset(self.collateral_ledger.move_in, user, amount)
            self.positions[user] = updated
            event = self._record(CollateralDeposited(user, amount, now, self._next_event_sequence()))
        self._notify(event)
        return amount

    def withdraw_collateral(self, user: str, amount: int) -> int:
        """
        Release amount of collateral to user if the remainder still covers the debt.

        Raises:
            InvalidInput: If amount is not positive
            InsufficientBalance: If amount exceeds the collateral held
            CreditLimitExceeded: If the withdrawal would undercollateralize the debt
            CollaboratorFailure: If the price feed or the transfer fails
        """
        _check_user("user", user)
        _check_amount(amount)
        with self._exclusive("withdraw_collateral"):
            now = self._now()
            updated = apply_withdraw(self.terms, self._accrued(user, now), self._price(), amount)
            self._call_asset(self.collateral_ledger.move_out, user, amount)
            self.positions[user] = updated
            event = self._record(CollateralWithdrawn(user, amount, now, self._next_event_sequence()))
        self._notify(event)
        return amount

    def borrow(self, user: str, amount: int) -> int:
        """
        Release amount of the borrow asset to user against their collateral.

        Raises:
            InvalidInput: If amount is not positive
            CreditLimitExceeded: If debt + amount exceeds the loan-to-value capacity
            CollaboratorFailure: If the price feed or the transfer fails
                (e.g. the pool lacks liquidity)
        """
        _check_user("user", user)
        _check_amount(amount)
        with self._exclusive("borrow"):
            now = self._now()
            updated = apply_borrow(self.terms, self._accrued(user, now), self._price(), amount)
            self._call_asset(self.borrow_ledger.move_out, user, amount)
            self.positions[user] = updated
            event = self._record(Borrowed(user, amount, now, self._next_event_sequence()))
        self._notify(event)
        return amount

    def repay(self, user: str, amount: int) -> int:
        """
        Pay down user's debt by at most what is owed.

        Returns:
            The amount actually charged: min(amount, current debt)

        Raises:
            InvalidInput: If amount is not positive
            CollaboratorFailure: If the repayment transfer fails
        """
        _check_user("user", user)
        _check_amount(amount)
        with self._exclusive("repay"):
            now = self._now()
            updated, actual = apply_repay(self._accrued(user, now), amount)
            self._call_asset(self.borrow_ledger.move_in, user, actual)
            self.positions[user] = updated
            event = self._record(Repaid(user, actual, now, self._next_event_sequence()))
        self._notify(event)
        return actual

    # ========================================================================
    # LIQUIDATION
    # ========================================================================

    def liquidate(self, user: str, repay_amount: int, liquidator: str) -> LiquidationResult:
        """
        Repay part of an unhealthy user's debt and seize collateral plus bonus.

        Any caller may liquidate any unhealthy position, including their own,
        for any amount up to the full debt, as many times as the position
        stays unhealthy.

        Raises:
            InvalidInput: If repay_amount is not positive
            NoDebt: If the target owes nothing
            PositionHealthy: If the target's health factor is not below the threshold
            SeizureShortfall: If the target's collateral cannot cover the seizure
            CollaboratorFailure: If the price feed or a transfer fails. When
                the seizure fails the repayment is returned first; if that
                return fails too, the error says so, chains the seizure
                error, and the repayment stays in custody with the
                position unchanged.
        """
        _check_user("user", user)
        _check_user("liquidator", liquidator)
        _check_amount(repay_amount)
        with self._exclusive("liquidate"):
            now = self._now()
            result = plan_liquidation(
                self.terms, self._accrued(user, now), self._price(),
                repay_amount, user, liquidator,
            )
            self._call_asset(self.borrow_ledger.move_in, liquidator, result.amount_repaid)
            try:
                self._call_asset(self.collateral_ledger.move_out, liquidator, result.collateral_seized)
            except LendingError as exc:
                # Give the liquidator's repayment back before failing
                try:
                    self._call_asset(self.borrow_ledger.move_out, liquidator, result.amount_repaid)
                except LendingError as refund_exc:
                    raise CollaboratorFailure(
                        f"Seizure failed ({exc}) and returning {result.amount_repaid} "
                        f"to {liquidator} failed too ({refund_exc}); the repayment "
                        f"is still in custody"
                    ) from exc
                raise
            self.positions[user] = result.position_after
            event = self._record(Liquidated(
                user, liquidator, result.amount_repaid, result.collateral_seized,
                now, self._next_event_sequence(),
            ))
        self._notify(event)
        return result

    def quote_liquidation(self, user: str, repay_amount: int, liquidator: str = "") -> LiquidationResult:
        """Plan a liquidation at the current time and price without executing it."""
        _check_user("user", user)
        _check_amount(repay_amount)
        with self._lock:
            return plan_liquidation(
                self.terms, self._accrued(user, self._now()), self._price(),
                repay_amount, user, liquidator,
            )

    # ========================================================================
    # READ-ONLY VIEWS
    # ========================================================================

    def get_position(self, user: str) -> Position:
        """Stored position (debt as of its last accrual)."""
        return self.positions.get(user, Position())

    def collateral_of(self, user: str) -> int:
        return self.get_position(user).collateral

    def debt_of(self, user: str) -> int:
        """Stored debt, without interest since the last accrual."""
        return self.get_position(user).debt

    def max_borrowable(self, user: str) -> int:
        """Loan-to-value capacity of user's collateral at the current price."""
        with self._lock:
            return calculate_max_borrowable(
                self.collateral_of(user), self._price(),
                self.terms.collateralization_ratio, self.terms.scale,
            )

    def available_to_borrow(self, user: str) -> int:
        """Capacity left after the current (accrued) debt."""
        with self._lock:
            return max(0, self.max_borrowable(user) - self.current_debt(user))

    def health_factor(self, user: str) -> Optional[int]:
        """Health factor in percent at the current time and price; None if debt-free."""
        with self._lock:
            debt = self.current_debt(user)
            if debt == 0:
                return None
            return calculate_health_factor(
                self.collateral_of(user), debt, self._price(), self.terms.scale
            )

    def is_liquidatable(self, user: str) -> bool:
        health = self.health_factor(user)
        return health is not None and health < self.terms.liquidation_threshold

    def users(self) -> List[str]:
        """All users the pool has a position for, sorted."""
        return sorted(self.positions)

    def total_collateral(self) -> int:
        return sum((p.collateral for p in self.positions.values()), 0)

    def total_debt(self) -> int:
        """Sum of stored debts (interest since each position's last accrual excluded)."""
        return sum((p.debt for p in self.positions.values()), 0)

    def __repr__(self) -> str:
        return (
            f"LendingPool({self.name}: {self.terms.collateral_asset}->{self.terms.borrow_asset}, "
            f"{len(self.positions)} positions)"
        )


def create_lending_pool(
    name: str,
    collateral_ledger: AssetLedger,
    borrow_ledger: AssetLedger,
    price_feed: PriceFeed,
    clock: Clock,
    apr: int,
    collateralization_ratio: int,
    liquidation_threshold: int,
    liquidation_bonus: int,
    verbose: bool = False,
) -> LendingPool:
    """
    Create a lending pool from its deployment parameters.

    Asset identities come from the collateral and borrow ledgers.

    Args:
        name: Pool identifier
        collateral_ledger: Custody of the collateral asset
        borrow_ledger: Custody of the borrow asset
        price_feed: Collateral price feed
        clock: Source of the current time
        apr: Annual rate integer
        collateralization_ratio: Percent (150 = 150%)
        liquidation_threshold: Percent health factor floor
        liquidation_bonus: Percentage points (5 = +5%)
        verbose: Print one line per operation

    Returns:
        A LendingPool with no positions
    """
    terms = PoolTerms(
        collateral_asset=collateral_ledger.symbol,
        borrow_asset=borrow_ledger.symbol,
        apr=apr,
        collateralization_ratio=collateralization_ratio,
        liquidation_threshold=liquidation_threshold,
        liquidation_bonus=liquidation_bonus,
    )
    return LendingPool(
        name, terms, collateral_ledger, borrow_ledger, price_feed, clock, verbose=verbose,
    )
