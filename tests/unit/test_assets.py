"""
test_assets.py - Unit tests for the LedgerAsset custody adapter
"""

import pytest
from decimal import Decimal

from lending import (
    AssetLedger, LedgerAsset, CollaboratorFailure, InvalidInput, create_lending_pool,
    InsufficientFunds, TransferKind, UnitNotRegistered, to_fixed,
)


@pytest.fixture
def weth(funded_ledger):
    return LedgerAsset(funded_ledger, "WETH", custody_wallet="pool")


class TestLedgerAsset:

    def test_satisfies_protocol(self, weth):
        assert isinstance(weth, AssetLedger)

    def test_registers_custody_wallet(self, funded_ledger, weth):
        assert funded_ledger.is_registered("pool")

    def test_existing_custody_wallet_reused(self, funded_ledger, weth):
        usdc = LedgerAsset(funded_ledger, "USDC", custody_wallet="pool")
        assert usdc.custody_wallet == "pool"

    def test_unknown_unit(self, funded_ledger):
        with pytest.raises(UnitNotRegistered):
            LedgerAsset(funded_ledger, "DAI", custody_wallet="pool")

    def test_move_in(self, funded_ledger, weth):
        weth.move_in("alice", to_fixed("1.5"))
        assert funded_ledger.get_balance("pool", "WETH") == Decimal("1.5")
        assert funded_ledger.get_balance("alice", "WETH") == Decimal("8.5")
        assert weth.custody_balance() == to_fixed("1.5")

    def test_move_out(self, funded_ledger, weth):
        weth.move_in("alice", to_fixed("2"))
        weth.move_out("bob", to_fixed("0.5"))
        assert weth.balance_of("bob") == to_fixed("0.5")

    def test_identical_moves_both_apply(self, funded_ledger, weth):
        weth.move_in("alice", to_fixed("1"))
        weth.move_in("alice", to_fixed("1"))
        assert weth.custody_balance() == to_fixed("2")

    def test_insufficient_source_balance(self, funded_ledger, weth):
        with pytest.raises(CollaboratorFailure, match="failed") as excinfo:
            weth.move_in("bob", to_fixed("1"))
        assert isinstance(excinfo.value.__cause__, InsufficientFunds)

    def test_move_out_beyond_custody(self, weth):
        with pytest.raises(CollaboratorFailure):
            weth.move_out("bob", 1)

    def test_unregistered_destination(self, funded_ledger, weth):
        weth.move_in("alice", to_fixed("1"))
        with pytest.raises(CollaboratorFailure):
            weth.move_out("carol", to_fixed("1"))

    def test_auto_register_destination(self, funded_ledger):
        weth = LedgerAsset(funded_ledger, "WETH", custody_wallet="pool", auto_register=True)
        weth.move_in("alice", to_fixed("1"))
        weth.move_out("carol", to_fixed("1"))
        assert funded_ledger.get_balance("carol", "WETH") == Decimal("1")

    def test_non_positive_amount(self, weth):
        with pytest.raises(InvalidInput):
            weth.move_in("alice", 0)
        with pytest.raises(InvalidInput):
            weth.move_in("alice", -5)

    def test_non_int_amount(self, weth):
        with pytest.raises(InvalidInput):
            weth.move_in("alice", Decimal("1"))

    def test_balance_of_unregistered_is_zero(self, weth):
        assert weth.balance_of("nobody") == 0

    def test_six_decimal_token(self, funded_ledger):
        usdc = LedgerAsset(funded_ledger, "USDC", custody_wallet="pool")
        assert usdc.decimals == 6
        usdc.move_in("alice", 1_500_000)
        assert funded_ledger.get_balance("pool", "USDC") == Decimal("1.5")
        assert usdc.custody_balance() == 1_500_000

    def test_transfers_journaled_as_custody(self, funded_ledger, weth):
        weth.move_in("alice", to_fixed("1"))
        weth.move_out("bob", to_fixed("0.25"))
        moved_in, moved_out = funded_ledger.journal[-2:]
        assert (moved_in.kind, moved_in.source, moved_in.dest) == (TransferKind.CUSTODY_IN, "alice", "pool")
        assert (moved_out.kind, moved_out.source, moved_out.dest) == (TransferKind.CUSTODY_OUT, "pool", "bob")
        assert moved_in.memo == "pool"


class TestSharedCustody:
    """Several adapters over one ledger, token and custody wallet."""

    def test_second_adapter_same_custody(self, funded_ledger, weth):
        weth.move_in("alice", to_fixed("1"))
        again = LedgerAsset(funded_ledger, "WETH", custody_wallet="pool")
        again.move_in("alice", to_fixed("1"))
        assert again.custody_balance() == to_fixed("2")
        assert funded_ledger.get_balance("alice", "WETH") == Decimal("8")

    def test_adapter_on_cloned_ledger(self, funded_ledger, weth):
        weth.move_in("alice", to_fixed("1"))
        cloned = funded_ledger.clone()
        LedgerAsset(cloned, "WETH", custody_wallet="pool").move_in("alice", to_fixed("1"))
        assert cloned.get_balance("pool", "WETH") == Decimal("2")
        assert funded_ledger.get_balance("pool", "WETH") == Decimal("1")

    def test_rebuilt_pool_over_existing_chain(self, market):
        market.pool.deposit_collateral("alice", to_fixed("1"))
        rebuilt = create_lending_pool(
            "WETH/USDC", LedgerAsset(market.chain, "WETH", "pool"),
            LedgerAsset(market.chain, "USDC", "pool"), market.feed, market.chain,
            300, 150, 120, 5,
        )
        rebuilt.deposit_collateral("alice", to_fixed("1"))
        assert rebuilt.collateral_of("alice") == to_fixed("1")
        assert market.balance("pool", "WETH") == Decimal("2")
