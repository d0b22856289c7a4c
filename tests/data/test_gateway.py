"""Tests for the lending market gateways."""

import pytest

from vantis_risk.data.gateway import InMemoryLendingMarket, UnintegratedGateway
from vantis_risk.data.price_tracker import PriceTracker
from vantis_risk.data.static_params import ASSET_CONFIGS, DEFAULT_INTEREST_PARAMS
from vantis_risk.protocol.errors import (
    BackendUnavailable,
    InsufficientCollateral,
    InsufficientLiquidity,
    NoBorrowPosition,
    StalePrice,
    VersionConflict,
    WithdrawalWouldLiquidate,
)
from vantis_risk.protocol.fixed_point import PRICE_SCALE, SECONDS_PER_YEAR
from vantis_risk.protocol.interest_rate import InterestRateModel
from vantis_risk.protocol.liquidation import LiquidationPlan
from vantis_risk.protocol.pool import PoolModel, PoolState

NOW = 1_700_000_000
USD = PRICE_SCALE
XLM_UNIT = 10**7


class FakeClock:
    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def market(clock: FakeClock) -> InMemoryLendingMarket:
    oracle = PriceTracker(ASSET_CONFIGS.values(), staleness_threshold=300)
    oracle.push_price("XLM", 1 * USD, NOW)
    pool = PoolModel(
        PoolState(total_liquidity=1000 * USD, total_borrows=0),
        InterestRateModel(DEFAULT_INTEREST_PARAMS),
    )
    return InMemoryLendingMarket(oracle, pool, clock=clock)


class TestUnintegrated:
    @pytest.mark.parametrize(
        "call",
        [
            lambda g: g.supply("alice", "XLM", 1),
            lambda g: g.withdraw("alice", "XLM", 1),
            lambda g: g.borrow("alice", 1),
            lambda g: g.repay("alice", 1),
            lambda g: g.get_position("alice"),
            lambda g: g.get_positions(),
            lambda g: g.settle_stop_loss("alice", None, 0),
            lambda g: g.settle_liquidation("alice", "XLM", None, 0),
        ],
    )
    def test_every_operation_fails(self, call) -> None:
        with pytest.raises(BackendUnavailable):
            call(UnintegratedGateway())


class TestSupplyAndBorrow:
    def test_new_position_is_empty(self, market: InMemoryLendingMarket) -> None:
        position = market.get_position("alice")
        assert position.collateral == {}
        assert position.total_debt == 0
        assert position.version == 0

    def test_supply_values_collateral(self, market: InMemoryLendingMarket) -> None:
        position = market.supply("alice", "XLM", 1000 * XLM_UNIT)
        # 1000 USD at an 80% liquidation threshold
        assert position.weighted_collateral_value == 800 * USD
        assert position.version == 1

    def test_borrow_within_capacity(self, market: InMemoryLendingMarket) -> None:
        market.supply("alice", "XLM", 1000 * XLM_UNIT)
        position = market.borrow("alice", 750 * USD)
        assert position.principal == 750 * USD
        assert market.pool.state.total_borrows == 750 * USD

    def test_borrow_over_capacity(self, market: InMemoryLendingMarket) -> None:
        market.supply("alice", "XLM", 1000 * XLM_UNIT)
        with pytest.raises(InsufficientCollateral):
            market.borrow("alice", 751 * USD)
        assert market.pool.state.total_borrows == 0

    def test_borrow_over_liquidity(self, market: InMemoryLendingMarket) -> None:
        market.supply("alice", "XLM", 10_000 * XLM_UNIT)
        with pytest.raises(InsufficientLiquidity):
            market.borrow("alice", 1001 * USD)

    def test_provide_liquidity(self, market: InMemoryLendingMarket) -> None:
        market.provide_liquidity(500 * USD)
        assert market.pool.state.total_liquidity == 1500 * USD

    def test_get_positions(self, market: InMemoryLendingMarket) -> None:
        market.supply("alice", "XLM", XLM_UNIT)
        market.supply("bob", "XLM", XLM_UNIT)
        owners = sorted(p.owner for p in market.get_positions())
        assert owners == ["alice", "bob"]


class TestRepayAndWithdraw:
    def test_repay_reduces_pool_borrows(self, market: InMemoryLendingMarket) -> None:
        market.supply("alice", "XLM", 1000 * XLM_UNIT)
        market.borrow("alice", 500 * USD)
        position = market.repay("alice", 200 * USD)
        assert position.principal == 300 * USD
        assert market.pool.state.total_borrows == 300 * USD

    def test_repay_without_debt(self, market: InMemoryLendingMarket) -> None:
        with pytest.raises(NoBorrowPosition):
            market.repay("alice", USD)

    def test_withdraw_free_collateral(self, market: InMemoryLendingMarket) -> None:
        market.supply("alice", "XLM", 1000 * XLM_UNIT)
        position = market.withdraw("alice", "XLM", 400 * XLM_UNIT)
        assert position.collateral == {"XLM": 600 * XLM_UNIT}

    def test_withdraw_that_would_liquidate(self, market: InMemoryLendingMarket) -> None:
        market.supply("alice", "XLM", 1000 * XLM_UNIT)
        market.borrow("alice", 700 * USD)
        with pytest.raises(WithdrawalWouldLiquidate):
            market.withdraw("alice", "XLM", 200 * XLM_UNIT)


class TestAccrual:
    def test_interest_accrues_at_pool_rate(self, clock: FakeClock) -> None:
        oracle = PriceTracker(ASSET_CONFIGS.values(), staleness_threshold=2 * SECONDS_PER_YEAR)
        oracle.push_price("XLM", 1 * USD, NOW)
        pool = PoolModel(
            PoolState(total_liquidity=1000 * USD, total_borrows=0),
            InterestRateModel(DEFAULT_INTEREST_PARAMS),
        )
        market = InMemoryLendingMarket(oracle, pool, clock=clock)
        market.supply("alice", "XLM", 1000 * XLM_UNIT)
        market.borrow("alice", 500 * USD)

        clock.now = NOW + SECONDS_PER_YEAR
        # 50% utilization => 4.5% borrow rate
        assert market.get_position("alice").accrued_interest == 225 * USD // 10

    def test_stale_price_blocks_reads(
        self, market: InMemoryLendingMarket, clock: FakeClock
    ) -> None:
        market.supply("alice", "XLM", XLM_UNIT)
        clock.now = NOW + 301
        with pytest.raises(StalePrice):
            market.get_position("alice")


class TestSettlement:
    def _plan(self, seized: int, repaid: int) -> LiquidationPlan:
        return LiquidationPlan(seized, repaid, 0, 0, 0, 0)

    def test_liquidation_removes_tokens_and_debt(self, market: InMemoryLendingMarket) -> None:
        market.supply("alice", "XLM", 1000 * XLM_UNIT)
        market.borrow("alice", 700 * USD)
        version = market.get_position("alice").version

        # 100 USD of XLM at $1
        position = market.settle_liquidation(
            "alice", "XLM", self._plan(100 * USD, 100 * USD), expected_version=version
        )
        assert position.collateral == {"XLM": 900 * XLM_UNIT}
        assert position.total_debt == 600 * USD
        assert position.version == version + 1
        assert market.pool.state.total_borrows == 600 * USD

    def test_stale_version_rejected(self, market: InMemoryLendingMarket) -> None:
        market.supply("alice", "XLM", 1000 * XLM_UNIT)
        market.borrow("alice", 700 * USD)
        stale = market.get_position("alice").version
        market.supply("alice", "XLM", XLM_UNIT)

        with pytest.raises(VersionConflict):
            market.settle_liquidation(
                "alice", "XLM", self._plan(100 * USD, 100 * USD), expected_version=stale
            )
        assert market.get_position("alice").total_debt == 700 * USD

    def test_unheld_asset_rejected(self, market: InMemoryLendingMarket) -> None:
        market.oracle.push_price("USDC", USD, NOW)
        market.supply("alice", "XLM", 1000 * XLM_UNIT)
        market.borrow("alice", 700 * USD)
        version = market.get_position("alice").version

        with pytest.raises(InsufficientCollateral):
            market.settle_liquidation(
                "alice", "USDC", self._plan(100 * USD, 100 * USD), expected_version=version
            )
        position = market.get_position("alice")
        assert position.total_debt == 700 * USD
        assert position.collateral == {"XLM": 1000 * XLM_UNIT}

    def test_seizure_beyond_balance_rejected(self, market: InMemoryLendingMarket) -> None:
        market.supply("alice", "XLM", 1000 * XLM_UNIT)
        market.borrow("alice", 700 * USD)
        version = market.get_position("alice").version

        with pytest.raises(InsufficientCollateral):
            market.settle_liquidation(
                "alice", "XLM", self._plan(1001 * USD, 700 * USD), expected_version=version
            )
        assert market.get_position("alice").total_debt == 700 * USD
