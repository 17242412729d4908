"""
conftest.py - Shared pytest fixtures for lending tests

Provides common fixtures used across unit, conformance and functional tests:
- Token ledgers (empty, funded)
- A reference WETH/USDC market (price 2000, ratio 150, threshold 120, bonus 5)
- A market with an open loan (alice: 1 WETH collateral, 1000 USDC debt)
"""

import pytest
from decimal import Decimal

from lending import Ledger, token

from tests.market import Market, START


# =============================================================================
# TOKEN LEDGER FIXTURES
# =============================================================================

@pytest.fixture
def empty_ledger():
    """Fresh ledger with no registrations."""
    return Ledger("test", START, verbose=False, test_mode=True)


@pytest.fixture
def token_ledger():
    """Ledger with WETH and USDC and two wallets."""
    ledger = Ledger("test", START, verbose=False, test_mode=True)
    ledger.register_token(token("WETH", "Wrapped Ether"))
    ledger.register_token(token("USDC", "USD Coin", decimals=6))
    ledger.register_wallet("alice")
    ledger.register_wallet("bob")
    return ledger


@pytest.fixture
def funded_ledger(token_ledger):
    """Token ledger with alice holding 10 WETH and 5000 USDC, issued properly."""
    token_ledger.issue("alice", "WETH", Decimal("10"))
    token_ledger.issue("alice", "USDC", Decimal("5000"))
    return token_ledger


# =============================================================================
# LENDING MARKET FIXTURES
# =============================================================================

@pytest.fixture
def market():
    """Reference WETH/USDC market with 10000 USDC of pool liquidity."""
    return Market()


@pytest.fixture
def pool(market):
    return market.pool


@pytest.fixture
def open_loan(market):
    """Market where alice has deposited 1 WETH and borrowed 1000 USDC."""
    market.open_loan("alice", "1", "1000")
    return market
