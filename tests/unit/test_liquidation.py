"""
test_liquidation.py - Unit tests for health factor and liquidation

Setup: alice holds 1 WETH collateral against 1000 USDC debt. At a price of
1100 her health factor is 1100 * 100 / 1000 = 110, below the threshold of
120. The liquidation bonus is 5 percentage points.
"""

import pytest
from datetime import timedelta
from decimal import Decimal

from lending import (
    CollaboratorFailure, InvalidInput, LiquidationResult, NoDebt,
    PositionHealthy, SeizureShortfall, SCALE, Position, PoolTerms,
    calculate_health_factor, calculate_seizure, plan_liquidation,
)

from tests.market import FlakyAsset, Market, START, units


@pytest.fixture
def underwater(open_loan):
    open_loan.feed.set_price("1100")
    return open_loan


class TestHealthFactor:

    def test_formula(self):
        assert calculate_health_factor(units("1"), units("1000"), 2000 * SCALE) == 200

    def test_debt_free_is_none(self):
        assert calculate_health_factor(units("1"), 0, 2000 * SCALE) is None

    def test_pool_view(self, open_loan):
        assert open_loan.pool.health_factor("alice") == 200
        assert not open_loan.pool.is_liquidatable("alice")

    def test_pool_view_debt_free(self, market):
        market.pool.deposit_collateral("bob", units("1"))
        assert market.pool.health_factor("bob") is None
        assert not market.pool.is_liquidatable("bob")

    def test_price_drop(self, underwater):
        assert underwater.pool.health_factor("alice") == 110
        assert underwater.pool.is_liquidatable("alice")

    def test_interest_can_make_position_liquidatable(self, open_loan):
        open_loan.feed.set_price("1250")
        assert not open_loan.pool.is_liquidatable("alice")
        open_loan.chain.advance_time(START + timedelta(days=10))
        assert open_loan.pool.is_liquidatable("alice")


class TestSeizure:

    def test_bonus_applied(self):
        # 500 repaid * 1.05 = 525 USDC of collateral at 1100 per WETH
        assert calculate_seizure(units("500"), 1100 * SCALE, 5) == 525 * SCALE * SCALE // (1100 * SCALE)

    def test_zero_bonus(self):
        assert calculate_seizure(units("1000"), 2000 * SCALE, 0) == units("0.5")


class TestPlanLiquidation:

    TERMS = PoolTerms("WETH", "USDC", 300, 150, 120, 5)

    def test_plan(self):
        position = Position(collateral=units("1"), debt=units("1000"), last_accrual_time=START)
        result = plan_liquidation(self.TERMS, position, 1100 * SCALE, units("500"), "alice", "bob")
        assert result.amount_repaid == units("500")
        assert result.collateral_seized == 477_272_727_272_727_272
        assert result.health_factor == 110
        assert result.position_after == Position(
            collateral=units("1") - 477_272_727_272_727_272,
            debt=units("500"),
            last_accrual_time=START,
        )

    def test_health_at_threshold_is_healthy(self):
        position = Position(collateral=units("1"), debt=units("1000"))
        with pytest.raises(PositionHealthy):
            plan_liquidation(self.TERMS, position, 1200 * SCALE, units("500"))

    def test_no_debt(self):
        with pytest.raises(NoDebt):
            plan_liquidation(self.TERMS, Position(collateral=units("1")), 1 * SCALE, units("1"))


class TestLiquidate:

    def test_partial_liquidation(self, underwater):
        result = underwater.pool.liquidate("alice", units("500"), "liquidator")
        assert isinstance(result, LiquidationResult)
        assert result.amount_repaid == units("500")
        assert result.collateral_seized == 477_272_727_272_727_272

        assert underwater.pool.debt_of("alice") == units("500")
        assert underwater.pool.collateral_of("alice") == units("1") - 477_272_727_272_727_272
        assert underwater.balance("liquidator", "USDC") == Decimal("9500")
        assert underwater.balance("liquidator", "WETH") == Decimal("0.477272727272727272")
        assert underwater.balance("pool", "USDC") == Decimal("9500")

    def test_repeated_liquidation_while_unhealthy(self, underwater):
        underwater.pool.liquidate("alice", units("500"), "liquidator")
        # 0.5227... WETH * 1100 * 100 / 500 = 115, still below 120
        assert underwater.pool.is_liquidatable("alice")
        underwater.pool.liquidate("alice", units("100"), "liquidator")
        assert underwater.pool.debt_of("alice") == units("400")

    def test_repay_amount_clamped_to_debt(self, underwater):
        result = underwater.pool.liquidate("alice", units("5000"), "liquidator")
        assert result.amount_repaid == units("1000")
        assert underwater.pool.debt_of("alice") == 0
        assert underwater.balance("liquidator", "USDC") == Decimal("9000")

    def test_healthy_position(self, open_loan):
        with pytest.raises(PositionHealthy):
            open_loan.pool.liquidate("alice", units("500"), "liquidator")
        assert open_loan.balance("liquidator", "USDC") == Decimal("10000")

    def test_no_debt(self, market):
        market.pool.deposit_collateral("bob", units("1"))
        with pytest.raises(NoDebt):
            market.pool.liquidate("bob", units("1"), "liquidator")

    def test_seizure_shortfall(self, open_loan):
        open_loan.feed.set_price("1000")
        with pytest.raises(SeizureShortfall):
            open_loan.pool.liquidate("alice", units("1000"), "liquidator")
        assert open_loan.pool.debt_of("alice") == units("1000")
        assert open_loan.pool.collateral_of("alice") == units("1")
        assert open_loan.balance("liquidator", "USDC") == Decimal("10000")

    def test_self_liquidation_allowed(self, underwater):
        result = underwater.pool.liquidate("alice", units("500"), "alice")
        assert result.liquidator == "alice"
        assert underwater.pool.debt_of("alice") == units("500")

    def test_dust_repay_seizes_nothing(self, underwater):
        result = underwater.pool.liquidate("alice", 1, "liquidator")
        assert result.amount_repaid == 1
        assert result.collateral_seized == 0
        assert underwater.pool.collateral_of("alice") == units("1")

    def test_invalid_amount(self, underwater):
        with pytest.raises(InvalidInput):
            underwater.pool.liquidate("alice", 0, "liquidator")

    def test_missing_liquidator(self, underwater):
        with pytest.raises(InvalidInput):
            underwater.pool.liquidate("alice", units("1"), "")

    def test_liquidator_without_funds(self, underwater):
        with pytest.raises(CollaboratorFailure):
            underwater.pool.liquidate("alice", units("500"), "stranger")
        assert underwater.pool.debt_of("alice") == units("1000")


class TestQuoteLiquidation:

    def test_quote_matches_liquidation(self, underwater):
        quote = underwater.pool.quote_liquidation("alice", units("500"), "liquidator")
        result = underwater.pool.liquidate("alice", units("500"), "liquidator")
        assert quote == result

    def test_quote_does_not_mutate(self, underwater):
        underwater.pool.quote_liquidation("alice", units("500"))
        assert underwater.pool.debt_of("alice") == units("1000")
        assert underwater.balance("liquidator", "USDC") == Decimal("10000")
        assert len(underwater.pool.event_log) == 2

    def test_quote_raises_same_errors(self, open_loan):
        with pytest.raises(PositionHealthy):
            open_loan.pool.quote_liquidation("alice", units("500"))

    @pytest.mark.parametrize("user", [None, "", "   "])
    def test_quote_rejects_bad_user(self, underwater, user):
        with pytest.raises(InvalidInput):
            underwater.pool.quote_liquidation(user, units("500"))


class TestCompensation:

    def test_failed_seizure_returns_repayment(self):
        market = Market(collateral_wrapper=FlakyAsset)
        market.open_loan("alice", "1", "1000")
        market.feed.set_price("1100")
        market.collateral_ledger.fail_on = "move_out"

        with pytest.raises(CollaboratorFailure) as excinfo:
            market.pool.liquidate("alice", units("500"), "liquidator")

        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert market.balance("liquidator", "USDC") == Decimal("10000")
        assert market.balance("pool", "USDC") == Decimal("9000")
        assert market.pool.debt_of("alice") == units("1000")
        assert market.pool.collateral_of("alice") == units("1")
        assert len(market.pool.event_log) == 2

    def test_failed_refund_keeps_seizure_error(self):
        market = Market(collateral_wrapper=FlakyAsset, borrow_wrapper=FlakyAsset)
        market.open_loan("alice", "1", "1000")
        market.feed.set_price("1100")
        market.collateral_ledger.fail_on = "move_out"
        market.borrow_ledger.fail_on = "move_out"

        with pytest.raises(CollaboratorFailure, match="still in custody") as excinfo:
            market.pool.liquidate("alice", units("500"), "liquidator")

        seizure_error = excinfo.value.__cause__
        assert isinstance(seizure_error, CollaboratorFailure)
        assert isinstance(seizure_error.__cause__, RuntimeError)
        assert market.balance("liquidator", "USDC") == Decimal("9500")
        assert market.balance("pool", "USDC") == Decimal("9500")
        assert market.pool.debt_of("alice") == units("1000")
        assert market.pool.collateral_of("alice") == units("1")
        assert len(market.pool.event_log) == 2
