"""
lending - Collateralized Lending Ledger

Users deposit one token as collateral, borrow a second token against it,
accrue per-second interest, repay, and can be liquidated by anyone once
their health factor falls below the pool's threshold.

Usage:
    from datetime import datetime
    from decimal import Decimal
    from lending import (
        Ledger, token, LedgerAsset, StaticPriceFeed,
        create_lending_pool, to_fixed,
    )

    chain = Ledger("chain", datetime(2025, 1, 1), verbose=False)
    chain.register_token(token("WETH", "Wrapped Ether"))
    chain.register_token(token("USDC", "USD Coin"))
    chain.register_wallet("alice")
    chain.issue("alice", "WETH", Decimal("1"))

    weth = LedgerAsset(chain, "WETH", custody_wallet="pool")
    usdc = LedgerAsset(chain, "USDC", custody_wallet="pool")
    chain.issue("pool", "USDC", Decimal("10000"))

    pool = create_lending_pool(
        "WETH/USDC", weth, usdc, StaticPriceFeed("2000"), chain,
        apr=300, collateralization_ratio=150,
        liquidation_threshold=120, liquidation_bonus=5,
    )
    pool.deposit_collateral("alice", to_fixed("1"))
    pool.borrow("alice", to_fixed("1000"))
"""

# Core types
from .core import (
    Clock,
    Token,
    token,
    Transfer,
    TransferKind,
    SYSTEM_WALLET,
    UNIT_TYPE_TOKEN,
    # Errors
    LendingError,
    InvalidInput,
    InsufficientBalance,
    CreditLimitExceeded,
    PositionHealthy,
    NoDebt,
    SeizureShortfall,
    CollaboratorFailure,
    ArithmeticOverflow,
    ReentrantCall,
    LedgerError,
    InsufficientFunds,
    UnitNotRegistered,
    WalletNotRegistered,
)

# Fixed-point arithmetic
from .fixed_point import (
    SCALE,
    MAX_UINT256,
    checked_add,
    checked_sub,
    checked_mul,
    mul_div,
    to_fixed,
    from_fixed,
)

# Token ledger
from .ledger import Ledger

# Asset custody
from .assets import AssetLedger, LedgerAsset

# Price feeds
from .pricing import PriceFeed, StaticPriceFeed, TimeSeriesPriceFeed

# Events
from .events import (
    CollateralDeposited,
    CollateralWithdrawn,
    Borrowed,
    Repaid,
    Liquidated,
    PoolEvent,
    EventListener,
)

# Lending pool
from .pool import (
    SECONDS_PER_YEAR,
    PERCENT,
    PoolTerms,
    Position,
    LiquidationResult,
    LendingPool,
    create_lending_pool,
    bonus_from_multiplier,
    calculate_rate_per_second,
    calculate_accrued_interest,
    calculate_accrual,
    calculate_collateral_value,
    calculate_max_borrowable,
    calculate_health_factor,
    calculate_seizure,
    elapsed_seconds,
    apply_deposit,
    apply_withdraw,
    apply_borrow,
    apply_repay,
    plan_liquidation,
)

# Stress analysis
from .stress import (
    ShockResult,
    DEFAULT_SHOCKS,
    price_shock_table,
    liquidation_price,
    generate_price_path,
)

__all__ = [
    # Core
    'Clock', 'Token', 'token', 'Transfer', 'TransferKind',
    'SYSTEM_WALLET', 'UNIT_TYPE_TOKEN',
    # Errors
    'LendingError', 'InvalidInput', 'InsufficientBalance', 'CreditLimitExceeded',
    'PositionHealthy', 'NoDebt', 'SeizureShortfall', 'CollaboratorFailure',
    'ArithmeticOverflow', 'ReentrantCall', 'LedgerError', 'InsufficientFunds',
    'UnitNotRegistered', 'WalletNotRegistered',
    # Fixed point
    'SCALE', 'MAX_UINT256', 'checked_add', 'checked_sub', 'checked_mul',
    'mul_div', 'to_fixed', 'from_fixed',
    # Ledger and collaborators
    'Ledger', 'AssetLedger', 'LedgerAsset',
    'PriceFeed', 'StaticPriceFeed', 'TimeSeriesPriceFeed',
    # Events
    'CollateralDeposited', 'CollateralWithdrawn', 'Borrowed', 'Repaid',
    'Liquidated', 'PoolEvent', 'EventListener',
    # Pool
    'SECONDS_PER_YEAR', 'PERCENT', 'PoolTerms', 'Position', 'LiquidationResult',
    'LendingPool', 'create_lending_pool', 'bonus_from_multiplier',
    'calculate_rate_per_second', 'calculate_accrued_interest', 'calculate_accrual',
    'calculate_collateral_value', 'calculate_max_borrowable',
    'calculate_health_factor', 'calculate_seizure', 'elapsed_seconds',
    'apply_deposit', 'apply_withdraw', 'apply_borrow', 'apply_repay',
    'plan_liquidation',
    # Stress
    'ShockResult', 'DEFAULT_SHOCKS', 'price_shock_table', 'liquidation_price',
    'generate_price_path',
]
