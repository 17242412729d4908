"""
Shared types for the lending package.

Everything here is immutable or a protocol:
    Clock            anything with a current_time (the token Ledger is one)
    Token, token()   fungible token definitions
    TransferKind     why tokens moved
    Transfer         one executed token movement, as journaled by the Ledger
    LendingError     root of every exception the package raises
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_EVEN, getcontext
from enum import Enum
from typing import Protocol, runtime_checkable


# Token quantities carry up to 18 fractional digits; 50 significant digits
# cover any balance below 10**32 tokens with room for products.
_context = getcontext()
_context.prec = 50
_context.rounding = ROUND_HALF_EVEN


# Issuance wallet. It is the only wallet allowed below zero, so the sum of
# all balances of a token is always zero.
SYSTEM_WALLET = "system"

UNIT_TYPE_TOKEN = "TOKEN"

# Widest supported token precision, matching the pool's 18-decimal fixed point
TOKEN_DECIMALS = 18


@runtime_checkable
class Clock(Protocol):
    """Anything that can tell the current logical time."""

    @property
    def current_time(self) -> datetime:
        ...


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LendingError(Exception):
    """Base exception for all errors raised by this package."""


class InvalidInput(LendingError):
    """Zero, negative or malformed amount or identifier."""


class InsufficientBalance(LendingError):
    """Withdrawal of more collateral than the position holds."""


class CreditLimitExceeded(LendingError):
    """A borrow or withdrawal would breach the loan-to-value capacity."""


class PositionHealthy(LendingError):
    """Liquidation of a position whose health factor is not below the threshold."""


class NoDebt(LendingError):
    """Liquidation of a position that owes nothing."""


class SeizureShortfall(LendingError):
    """The bonus-adjusted seizure exceeds the collateral still held."""


class CollaboratorFailure(LendingError):
    """An asset ledger, the price feed or the clock misbehaved."""


class ArithmeticOverflow(LendingError):
    """Checked fixed-point arithmetic left the unsigned 256-bit range."""


class ReentrantCall(LendingError):
    """A mutating pool operation was entered while another was running."""


class LedgerError(LendingError):
    """Base exception for token ledger errors."""


class InsufficientFunds(LedgerError):
    """A transfer would take a wallet below zero."""


class UnitNotRegistered(LedgerError):
    """The token symbol is unknown to the ledger."""


class WalletNotRegistered(LedgerError):
    """The wallet is unknown to the ledger."""


# ============================================================================
# TOKENS AND TRANSFERS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Token:
    """
    A fungible token.

    Attributes:
        symbol: Ticker, unique within a ledger (e.g. "WETH", "LP-A-B")
        name: Human-readable name
        decimals: Fractional digits of one base unit
    """
    symbol: str
    name: str
    decimals: int = TOKEN_DECIMALS
    unit_type: str = UNIT_TYPE_TOKEN

    @property
    def base_unit(self) -> Decimal:
        return Decimal(1).scaleb(-self.decimals)

    def quantize(self, quantity: Decimal) -> Decimal:
        """Truncate quantity to a whole number of base units."""
        return quantity.quantize(self.base_unit, rounding=ROUND_DOWN)


def token(symbol: str, name: str, decimals: int = TOKEN_DECIMALS) -> Token:
    """
    Create a fungible token definition.

    Raises:
        ValueError: If symbol is blank or decimals is outside 0..18
    """
    if not symbol or not symbol.strip():
        raise ValueError("Token symbol cannot be empty")
    if not 0 <= decimals <= TOKEN_DECIMALS:
        raise ValueError(f"decimals must be between 0 and {TOKEN_DECIMALS}, got {decimals}")
    return Token(symbol, name, decimals)


class TransferKind(Enum):
    """Why tokens moved."""
    ISSUE = "issue"                # minted from the system wallet
    TRANSFER = "transfer"          # wallet to wallet
    CUSTODY_IN = "custody_in"      # pulled into a pool's custody wallet
    CUSTODY_OUT = "custody_out"    # released from a pool's custody wallet


@dataclass(frozen=True, slots=True)
class Transfer:
    """
    One applied token movement.

    The Ledger assigns sequence numbers from a single counter, so every
    journal entry is distinct even when two transfers carry the same
    wallets, token and quantity.
    """
    sequence: int
    timestamp: datetime
    symbol: str
    source: str
    dest: str
    quantity: Decimal
    kind: TransferKind = TransferKind.TRANSFER
    memo: str = ""

    def __str__(self) -> str:
        memo = f" [{self.memo}]" if self.memo else ""
        return (f"#{self.sequence} {self.kind.value}: {self.quantity} {self.symbol} "
                f"{self.source}→{self.dest}{memo}")
