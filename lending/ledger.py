"""
ledger.py - Token balances behind the lending pools

A Ledger holds the fungible token balances that pools pull into and push
out of custody. Every change is a Transfer between two registered wallets:
tokens enter circulation by transfer out of the system wallet (issue), so
each token's balances always sum to zero.

The Ledger also keeps the logical clock. Pools and time-series price feeds
read current_time from the same ledger that settles their tokens.
"""

from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Set

from .core import (
    SYSTEM_WALLET, Token, Transfer, TransferKind,
    InsufficientFunds, LedgerError, UnitNotRegistered, WalletNotRegistered,
)


def _as_decimal(quantity) -> Decimal:
    if isinstance(quantity, Decimal):
        return quantity
    if isinstance(quantity, float):
        raise LedgerError(f"Token quantities must not be floats, got {quantity!r}")
    return Decimal(str(quantity))


class Ledger:
    """
    Wallet balances of registered tokens, a transfer journal and a clock.

    Transfers either apply completely or raise a LedgerError without
    touching any balance. Only the system wallet may go negative.

    Not thread-safe on its own. A LendingPool serializes its own calls;
    other writers must coordinate externally.

    Example:
        chain = Ledger("chain", datetime(2025, 1, 1), verbose=False)
        chain.register_token(token("WETH", "Wrapped Ether"))
        chain.register_wallet("alice")
        chain.issue("alice", "WETH", Decimal("10"))
    """

    def __init__(
        self,
        name: str,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
        test_mode: bool = False,
    ):
        """
        Args:
            name: Ledger identifier
            initial_time: Starting logical time (default: 1970-01-01)
            verbose: Print one line per registration and transfer
            test_mode: Allow set_balance(), which bypasses the journal
        """
        self.name = name
        self.verbose = verbose
        self.tokens: Dict[str, Token] = {}
        self.journal: List[Transfer] = []
        self._balances: Dict[str, Dict[str, Decimal]] = {SYSTEM_WALLET: {}}
        self._current_time = initial_time or datetime(1970, 1, 1)
        self._test_mode = test_mode

    # ========================================================================
    # CLOCK
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        return self._current_time

    def advance_time(self, new_time: datetime) -> None:
        """
        Move the clock to new_time.

        Raises:
            ValueError: If new_time is earlier than the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Ledger {self.name} cannot move backwards from {self._current_time} to {new_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def register_token(self, definition: Token) -> None:
        """Add a token. Raises ValueError if the symbol is taken."""
        if definition.symbol in self.tokens:
            raise ValueError(f"Token {definition.symbol} already registered")
        self.tokens[definition.symbol] = definition
        if self.verbose:
            print(f"📝 {self.name}: token {definition.symbol} "
                  f"({definition.name}, {definition.decimals} decimals)")

    def register_wallet(self, wallet_id: str) -> str:
        """Add an empty wallet. Raises ValueError if it already exists."""
        if not wallet_id or not wallet_id.strip():
            raise ValueError("Wallet id cannot be empty")
        if wallet_id in self._balances:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self._balances[wallet_id] = {}
        return wallet_id

    def is_registered(self, wallet_id: str) -> bool:
        return wallet_id in self._balances

    def list_wallets(self) -> Set[str]:
        return set(self._balances)

    def list_tokens(self) -> List[str]:
        return sorted(self.tokens)

    def get_token(self, symbol: str) -> Token:
        try:
            return self.tokens[symbol]
        except KeyError:
            raise UnitNotRegistered(f"Token {symbol} not registered on {self.name}") from None

    def _wallet(self, wallet_id: str) -> Dict[str, Decimal]:
        try:
            return self._balances[wallet_id]
        except KeyError:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered on {self.name}") from None

    # ========================================================================
    # BALANCES
    # ========================================================================

    def get_balance(self, wallet_id: str, symbol: str) -> Decimal:
        """
        Balance of one token in one wallet.

        Raises:
            WalletNotRegistered, UnitNotRegistered
        """
        holdings = self._wallet(wallet_id)
        self.get_token(symbol)
        return holdings.get(symbol, Decimal("0"))

    def holdings(self, wallet_id: str) -> Dict[str, Decimal]:
        """Non-zero balances of a wallet, by token symbol."""
        return {sym: qty for sym, qty in sorted(self._wallet(wallet_id).items()) if qty}

    def total_supply(self, symbol: str) -> Decimal:
        """Sum of a token's balances over every wallet, system included."""
        self.get_token(symbol)
        return sum(
            (self._balances[w].get(symbol, Decimal("0")) for w in sorted(self._balances)),
            Decimal("0"),
        )

    def verify_double_entry(
        self,
        expected_supplies: Optional[Dict[str, Decimal]] = None,
        tolerance: Decimal = Decimal("0"),
    ) -> Dict[str, Any]:
        """
        Compare each token's total supply with what the caller expects.

        With issuance through the system wallet every expected supply is
        zero. Expected symbols the ledger does not know are reported too.

        Returns:
            {'valid': bool, 'supplies': {symbol: Decimal}, 'discrepancies': [dict]}
        """
        expected_supplies = expected_supplies or {}
        supplies = {symbol: self.total_supply(symbol) for symbol in self.list_tokens()}
        discrepancies = []
        for symbol, expected in expected_supplies.items():
            if symbol not in supplies:
                discrepancies.append({
                    'unit': symbol, 'expected': expected, 'actual': Decimal("0"),
                    'difference': abs(expected), 'error': 'unit not registered',
                })
                continue
            difference = abs(supplies[symbol] - expected)
            if difference > tolerance:
                discrepancies.append({
                    'unit': symbol, 'expected': expected,
                    'actual': supplies[symbol], 'difference': difference,
                })
        return {'valid': not discrepancies, 'supplies': supplies, 'discrepancies': discrepancies}

    def set_balance(self, wallet_id: str, symbol: str, quantity) -> None:
        """
        Overwrite a balance without a journal entry. Test mode only.

        Raises:
            LedgerError: Outside test mode
        """
        if not self._test_mode:
            raise LedgerError(
                "set_balance() bypasses the journal and needs a Ledger created with test_mode=True"
            )
        holdings = self._wallet(wallet_id)
        definition = self.get_token(symbol)
        holdings[symbol] = definition.quantize(_as_decimal(quantity))

    # ========================================================================
    # TRANSFERS
    # ========================================================================

    def transfer(
        self,
        source: str,
        dest: str,
        symbol: str,
        quantity,
        kind: TransferKind = TransferKind.TRANSFER,
        memo: str = "",
    ) -> Transfer:
        """
        Move quantity of a token from source to dest and journal it.

        Args:
            source: Paying wallet
            dest: Receiving wallet (must differ from source)
            symbol: Registered token symbol
            quantity: Decimal, int or str amount; must be a positive whole
                number of the token's base units
            kind: Journal classification
            memo: Free text kept on the journal entry

        Returns:
            The journaled Transfer

        Raises:
            WalletNotRegistered, UnitNotRegistered: Unknown wallet or token
            InsufficientFunds: If source (other than the system wallet)
                would go below zero
            LedgerError: Malformed quantity or source == dest
        """
        from_wallet = self._wallet(source)
        to_wallet = self._wallet(dest)
        definition = self.get_token(symbol)
        quantity = _as_decimal(quantity)

        if not quantity.is_finite() or quantity <= 0:
            raise LedgerError(f"Transfer quantity must be positive and finite, got {quantity}")
        if definition.quantize(quantity) != quantity:
            raise LedgerError(
                f"{quantity} {symbol} is finer than {definition.decimals} decimals"
            )
        if source == dest:
            raise LedgerError(f"Transfer source and dest are both {source}")

        available = from_wallet.get(symbol, Decimal("0"))
        if source != SYSTEM_WALLET and available < quantity:
            raise InsufficientFunds(
                f"{source} holds {available} {symbol}, cannot send {quantity}"
            )

        from_wallet[symbol] = available - quantity
        to_wallet[symbol] = to_wallet.get(symbol, Decimal("0")) + quantity

        entry = Transfer(
            sequence=len(self.journal),
            timestamp=self._current_time,
            symbol=symbol,
            source=source,
            dest=dest,
            quantity=quantity,
            kind=kind,
            memo=memo,
        )
        self.journal.append(entry)
        if self.verbose:
            print(f"✓ {self.name} {entry}")
        return entry

    def issue(self, wallet_id: str, symbol: str, quantity) -> Transfer:
        """Mint tokens into a wallet out of the system wallet."""
        return self.transfer(SYSTEM_WALLET, wallet_id, symbol, quantity, TransferKind.ISSUE)

    def clone(self) -> Ledger:
        """Independent copy: balances, tokens, journal and clock."""
        copy = Ledger(self.name, self._current_time, self.verbose, self._test_mode)
        copy.tokens = dict(self.tokens)
        copy.journal = list(self.journal)
        copy._balances = {wallet: dict(held) for wallet, held in self._balances.items()}
        return copy

    def __repr__(self) -> str:
        return (f"Ledger({self.name}: {len(self.tokens)} tokens, "
                f"{len(self._balances)} wallets, {len(self.journal)} transfers)")
