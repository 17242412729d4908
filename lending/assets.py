"""
assets.py - Fungible asset collaborators for lending pools

A lending pool never touches token balances directly. It talks to one
AssetLedger per asset role (collateral, borrow) through three calls:

    move_in(source, amount)   pull funds from a holder into pool custody
    move_out(dest, amount)    push funds from pool custody to a holder
    balance_of(holder)        inspect a holder's balance

Amounts are integer base units (see fixed_point.py). Any failure is raised
as CollaboratorFailure so the pool can abort the whole operation.

LedgerAsset is the in-repo implementation, backed by the double-entry
token Ledger.
"""

from __future__ import annotations
from decimal import Decimal
from typing import Protocol, runtime_checkable

from .core import (
    CollaboratorFailure, InvalidInput, LedgerError, TransferKind,
)
from .fixed_point import from_fixed, to_fixed
from .ledger import Ledger


@runtime_checkable
class AssetLedger(Protocol):
    """Custody interface of one fungible asset, as seen by a lending pool."""

    symbol: str

    def move_in(self, source: str, amount: int) -> None:
        """Pull amount from source into custody. Raises CollaboratorFailure."""
        ...

    def move_out(self, dest: str, amount: int) -> None:
        """Push amount from custody to dest. Raises CollaboratorFailure."""
        ...

    def balance_of(self, holder: str) -> int:
        """Return the holder's balance in base units."""
        ...


class LedgerAsset:
    """
    AssetLedger backed by a token on a Ledger.

    move_in and move_out are single ledger transfers between the holder and
    the custody wallet, journaled as CUSTODY_IN / CUSTODY_OUT with the
    custody wallet as memo. Any number of adapters may share one ledger,
    token and custody wallet.

    Example:
        ledger = Ledger("chain", verbose=False)
        ledger.register_token(token("WETH", "Wrapped Ether"))
        weth = LedgerAsset(ledger, "WETH", custody_wallet="pool")
        weth.move_in("alice", to_fixed("1"))
    """

    def __init__(
        self,
        ledger: Ledger,
        symbol: str,
        custody_wallet: str,
        auto_register: bool = False,
    ):
        """
        Args:
            ledger: Token ledger holding the asset
            symbol: Registered token symbol
            custody_wallet: Wallet that holds funds on behalf of the pool
                (registered here if it does not exist yet)
            auto_register: Register unknown destination wallets on move_out
        """
        self.ledger = ledger
        self.symbol = symbol
        self.decimals = ledger.get_token(symbol).decimals
        self.custody_wallet = custody_wallet
        self.auto_register = auto_register
        if not ledger.is_registered(custody_wallet):
            ledger.register_wallet(custody_wallet)

    def _to_quantity(self, amount: int) -> Decimal:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidInput(f"Transfer amount must be an int, got {type(amount).__name__}")
        if amount <= 0:
            raise InvalidInput(f"Transfer amount must be positive, got {amount}")
        return from_fixed(amount, self.decimals)

    def _transfer(self, source: str, dest: str, amount: int, kind: TransferKind) -> None:
        quantity = self._to_quantity(amount)
        try:
            self.ledger.transfer(source, dest, self.symbol, quantity, kind, memo=self.custody_wallet)
        except LedgerError as exc:
            raise CollaboratorFailure(
                f"{self.symbol} transfer of {quantity} from {source} to {dest} failed: {exc}"
            ) from exc

    def move_in(self, source: str, amount: int) -> None:
        self._transfer(source, self.custody_wallet, amount, TransferKind.CUSTODY_IN)

    def move_out(self, dest: str, amount: int) -> None:
        if self.auto_register and not self.ledger.is_registered(dest):
            self.ledger.register_wallet(dest)
        self._transfer(self.custody_wallet, dest, amount, TransferKind.CUSTODY_OUT)

    def balance_of(self, holder: str) -> int:
        if not self.ledger.is_registered(holder):
            return 0
        return to_fixed(self.ledger.get_balance(holder, self.symbol), self.decimals)

    def custody_balance(self) -> int:
        """Balance held in custody, in base units."""
        return self.balance_of(self.custody_wallet)

    def __repr__(self) -> str:
        return f"LedgerAsset({self.symbol} on {self.ledger.name}, custody={self.custody_wallet})"
