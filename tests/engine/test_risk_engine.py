"""Tests for the risk engine orchestration."""

from unittest.mock import MagicMock

import pytest

from vantis_risk.config import EngineConfig
from vantis_risk.data.events import RecordingEventSink
from vantis_risk.data.provider_factory import create_engine, create_oracle
from vantis_risk.engine.risk_engine import RiskEngine
from vantis_risk.protocol.errors import (
    AlreadyHealthy,
    AlreadyInitialized,
    InsufficientCollateral,
    InsufficientHistory,
    InvalidAmount,
    InvalidInput,
    NotInitialized,
    NotLiquidatable,
    StalePrice,
    StopLossNotEnabled,
    Unauthorized,
)
from vantis_risk.protocol.fixed_point import BPS, PRICE_SCALE, mul_div
from vantis_risk.protocol.health import HealthStatus
from vantis_risk.protocol.params import RiskParameters
from vantis_risk.protocol.requests import RequestType
from vantis_risk.protocol.stop_loss import StopLossConfig
from vantis_risk.simulation.batch import evaluate_position

NOW = 1_700_000_000
USD = PRICE_SCALE
XLM_UNIT = 10**7
USER = "alice"


@pytest.fixture
def events() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture
def engine(events: RecordingEventSink) -> RiskEngine:
    """Engine with 1000 XLM posted at $1 and 700 USD borrowed (health 1.142)."""
    engine = create_engine(
        EngineConfig(),
        backend="memory",
        seed_history=True,
        initial_liquidity=10_000 * USD,
        clock=lambda: NOW,
        events=events,
    )
    engine.oracle.push_price("XLM", 1 * USD, NOW)
    engine.gateway.supply(USER, "XLM", 1000 * XLM_UNIT)
    engine.gateway.borrow(USER, 700 * USD)
    return engine


def set_xlm_price(engine: RiskEngine, dollars_bp: int) -> None:
    """Reprice XLM, given in bp of one dollar."""
    engine.oracle.push_price("XLM", mul_div(USD, dollars_bp, BPS), NOW)


class TestAdministration:
    def test_initialized_by_factory(self, engine: RiskEngine, events: RecordingEventSink) -> None:
        assert engine.params == RiskParameters()
        assert ("risk", "init") in events.topics()

    def test_double_initialize(self, engine: RiskEngine) -> None:
        with pytest.raises(AlreadyInitialized):
            engine.initialize("admin")

    def test_uninitialized(self) -> None:
        engine = RiskEngine(EngineConfig(), create_oracle(), MagicMock())
        with pytest.raises(NotInitialized):
            engine.params

    def test_initialize_requires_admin(self) -> None:
        engine = RiskEngine(EngineConfig(), create_oracle(), MagicMock())
        with pytest.raises(Unauthorized):
            engine.initialize("mallory")

    def test_update_params(self, engine: RiskEngine, events: RecordingEventSink) -> None:
        engine.update_params("admin", RiskParameters(k_factor=200))
        assert engine.params.k_factor == 200
        assert ("risk", "params") in events.topics()

    def test_update_params_requires_admin(self, engine: RiskEngine) -> None:
        with pytest.raises(Unauthorized):
            engine.update_params("mallory", RiskParameters(k_factor=200))

    def test_update_params_validates(self, engine: RiskEngine) -> None:
        with pytest.raises(InvalidInput):
            engine.update_params("admin", RiskParameters(time_horizon_days=0))
        assert engine.params == RiskParameters()


class TestBorrowLimits:
    def test_adjusted_ltv_bounds(self, engine: RiskEngine) -> None:
        record = engine.adjusted_ltv("XLM")
        assert record.base_ltv == 7500
        assert 3000 <= record.final_ltv <= 7500

    def test_safe_borrow(self, engine: RiskEngine, events: RecordingEventSink) -> None:
        record = engine.adjusted_ltv("XLM")
        safe = engine.calculate_safe_borrow("XLM", 1000 * USD, now=NOW)
        assert safe == mul_div(1000 * USD, record.final_ltv, BPS)
        assert ("ltv", "adjusted") in events.topics()

    def test_custom_base_ltv(self, engine: RiskEngine) -> None:
        lower = engine.calculate_safe_borrow("XLM", 1000 * USD, base_ltv=5000, now=NOW)
        default = engine.calculate_safe_borrow("XLM", 1000 * USD, now=NOW)
        assert lower < default

    def test_stale_price(self, engine: RiskEngine) -> None:
        with pytest.raises(StalePrice):
            engine.calculate_safe_borrow("XLM", 1000 * USD, now=NOW + 301)

    def test_negative_collateral(self, engine: RiskEngine) -> None:
        with pytest.raises(InvalidAmount):
            engine.calculate_safe_borrow("XLM", -1, now=NOW)

    def test_insufficient_history(self) -> None:
        engine = create_engine(EngineConfig(), backend="memory", clock=lambda: 100)
        for t in range(3):
            engine.oracle.push_price("BTC", 70_000 * USD, 98 + t)
        with pytest.raises(InsufficientHistory):
            engine.calculate_safe_borrow("BTC", 1000 * USD, now=100)


class TestHealth:
    def test_healthy(self, engine: RiskEngine) -> None:
        value, status = engine.check_position_health(USER)
        # 800 / 700
        assert value == 11_428
        assert status is HealthStatus.HEALTHY

    @pytest.mark.parametrize(
        "price_bp, expected",
        [
            (9000, HealthStatus.WARNING),
            (8800, HealthStatus.CRITICAL),
            (8500, HealthStatus.LIQUIDATABLE),
        ],
    )
    def test_status_follows_price(
        self, engine: RiskEngine, price_bp: int, expected: HealthStatus
    ) -> None:
        set_xlm_price(engine, price_bp)
        assert engine.check_position_health(USER)[1] is expected

    def test_debt_free_user(self, engine: RiskEngine) -> None:
        engine.gateway.supply("bob", "XLM", XLM_UNIT)
        assert engine.position_health("bob").is_healthy


class TestStopLoss:
    def test_config_must_match_user(self, engine: RiskEngine) -> None:
        with pytest.raises(InvalidInput):
            engine.enable_stop_loss(USER, StopLossConfig(user="bob"))

    def test_slippage_validated(self, engine: RiskEngine) -> None:
        with pytest.raises(InvalidInput):
            engine.enable_stop_loss(USER, StopLossConfig(user=USER, max_slippage=2000))

    def test_enable_disable(self, engine: RiskEngine, events: RecordingEventSink) -> None:
        config = StopLossConfig(user=USER)
        engine.enable_stop_loss(USER, config)
        assert engine.get_stop_loss_config(USER) == config
        engine.disable_stop_loss(USER)
        assert engine.get_stop_loss_config(USER) is None
        assert ("stoploss", "enabled") in events.topics()
        assert ("stoploss", "disabled") in events.topics()

    def test_not_enabled(self, engine: RiskEngine) -> None:
        set_xlm_price(engine, 8800)
        with pytest.raises(StopLossNotEnabled):
            engine.plan_stop_loss(USER)

    def test_healthy_position_not_triggered(self, engine: RiskEngine) -> None:
        engine.enable_stop_loss(USER, StopLossConfig(user=USER))
        with pytest.raises(AlreadyHealthy):
            engine.trigger_stop_loss("keeper", USER)

    def test_plan_defaults_to_held_collateral(self, engine: RiskEngine) -> None:
        engine.enable_stop_loss(USER, StopLossConfig(user=USER, max_slippage=0))
        set_xlm_price(engine, 8800)
        plan = engine.plan_stop_loss(USER)
        assert plan.asset == "XLM"
        # (735 - 704) * 10000 / 500
        assert plan.swap_amount == 620 * USD

    def test_trigger_restores_target(
        self, engine: RiskEngine, events: RecordingEventSink
    ) -> None:
        engine.enable_stop_loss(USER, StopLossConfig(user=USER, max_slippage=0))
        set_xlm_price(engine, 8800)

        plan = engine.trigger_stop_loss("keeper", USER)

        position = engine.gateway.get_position(USER)
        assert position.total_debt == 80 * USD
        assert plan.health_after == position.health().value
        assert plan.health_after >= 10_500
        assert engine.gateway.pool.state.total_borrows == 80 * USD
        assert ("stoploss", "trigger") in events.topics()

    def test_sells_only_what_it_repays(self, engine: RiskEngine) -> None:
        engine.enable_stop_loss(USER, StopLossConfig(user=USER, max_slippage=0))
        set_xlm_price(engine, 8800)
        before = engine.gateway.get_position(USER)

        engine.trigger_stop_loss("keeper", USER)

        after = engine.gateway.get_position(USER)
        sold = before.collateral["XLM"] - after.collateral["XLM"]
        sold_value = mul_div(sold, mul_div(USD, 8800, BPS), XLM_UNIT)
        repaid = before.total_debt - after.total_debt
        assert repaid == 620 * USD
        assert 0 <= repaid - sold_value <= USD // 10**6

    def test_unheld_swap_asset_rejected(self, engine: RiskEngine) -> None:
        engine.enable_stop_loss(USER, StopLossConfig(user=USER, swap_order=("BTC",)))
        set_xlm_price(engine, 8800)

        with pytest.raises(InvalidInput):
            engine.trigger_stop_loss("keeper", USER)
        position = engine.gateway.get_position(USER)
        assert position.total_debt == 700 * USD
        assert position.collateral == {"XLM": 1000 * XLM_UNIT}

    def test_skips_unheld_swap_asset(self, engine: RiskEngine) -> None:
        engine.enable_stop_loss(USER, StopLossConfig(user=USER, swap_order=("BTC", "XLM")))
        set_xlm_price(engine, 8800)
        assert engine.plan_stop_loss(USER).asset == "XLM"

    def test_swap_capped_at_asset_value(self, engine: RiskEngine) -> None:
        engine.oracle.push_price("USDC", USD, NOW)
        engine.gateway.supply(USER, "USDC", 10 * XLM_UNIT)
        engine.enable_stop_loss(
            USER, StopLossConfig(user=USER, swap_order=("USDC", "XLM"), max_slippage=0)
        )
        set_xlm_price(engine, 8800)

        plan = engine.trigger_stop_loss("keeper", USER)

        # 430 USD would reach the target but only 10 USDC is held
        assert plan.asset == "USDC"
        assert plan.swap_amount == 10 * USD
        position = engine.gateway.get_position(USER)
        assert "USDC" not in position.collateral
        assert position.total_debt == 690 * USD

    def test_no_swap_needed_is_silent(
        self, engine: RiskEngine, events: RecordingEventSink
    ) -> None:
        config = StopLossConfig(user=USER, trigger_threshold=10_300, target_health=10_100)
        engine.enable_stop_loss(USER, config)
        set_xlm_price(engine, 9000)

        plan = engine.trigger_stop_loss("keeper", USER)

        assert plan.swap_amount == 0
        assert ("stoploss", "trigger") not in events.topics()
        assert engine.gateway.get_position(USER).total_debt == 700 * USD


class TestLiquidation:
    def test_healthy_not_liquidatable(self, engine: RiskEngine) -> None:
        with pytest.raises(NotLiquidatable):
            engine.plan_liquidation(USER)

    def test_plan_respects_close_factor(self, engine: RiskEngine) -> None:
        set_xlm_price(engine, 8500)
        plan = engine.plan_liquidation(USER)
        assert plan.health_before == 9714
        assert plan.debt_to_repay == 350 * USD
        assert plan.collateral_to_seize == 3675 * USD // 10

    def test_batch_view_agrees_with_plan(self, engine: RiskEngine) -> None:
        set_xlm_price(engine, 8500)
        plan = engine.plan_liquidation(USER)
        row = evaluate_position(
            engine.gateway.get_position(USER), engine.params, engine.config.close_factor
        )
        assert row["liquidation_repay"] == plan.debt_to_repay
        assert row["liquidation_seize"] == plan.collateral_to_seize

    def test_liquidate_caps_request(
        self, engine: RiskEngine, events: RecordingEventSink
    ) -> None:
        set_xlm_price(engine, 8500)
        before = engine.gateway.get_position(USER)

        plan, request = engine.liquidate("liquidator", USER, "XLM", 10_000 * USD)

        after = engine.gateway.get_position(USER)
        assert plan.debt_to_repay == 350 * USD
        assert after.total_debt == 350 * USD
        assert request.request_type is RequestType.FILL_USER_LIQUIDATION_AUCTION
        assert request.address == "XLM"
        assert request.amount == before.collateral["XLM"] - after.collateral["XLM"]
        assert after.version == before.version + 1

        topic, payload = events.events[-1]
        assert topic == ("liquidate", "partial")
        assert payload["debt_repaid"] == 350 * USD
        assert payload["liquidator"] == "liquidator"

    def test_smaller_repayment(self, engine: RiskEngine) -> None:
        set_xlm_price(engine, 8500)
        plan, _ = engine.liquidate("liquidator", USER, "XLM", 100 * USD)
        assert plan.debt_to_repay == 100 * USD
        assert plan.collateral_to_seize == 105 * USD
        assert plan.liquidator_bonus + plan.protocol_fee == 5 * USD
        assert engine.gateway.get_position(USER).total_debt == 600 * USD

    def test_non_positive_repayment(self, engine: RiskEngine) -> None:
        with pytest.raises(InvalidAmount):
            engine.liquidate("liquidator", USER, "XLM", 0)

    def test_seized_value_matches_reported_penalty(self, engine: RiskEngine) -> None:
        set_xlm_price(engine, 8500)

        plan, request = engine.liquidate("liquidator", USER, "XLM", 10_000 * USD)

        seized_value = mul_div(request.amount, mul_div(USD, 8500, BPS), XLM_UNIT)
        assert 0 <= plan.collateral_to_seize - seized_value <= USD // 10**6
        surplus = seized_value - plan.debt_to_repay
        assert 0 <= plan.liquidator_bonus + plan.protocol_fee - surplus <= USD // 10**6
        after = engine.gateway.get_position(USER)
        assert plan.health_after == after.health().value
        assert plan.health_after > 10_000

    def test_unheld_asset_rejected(self, engine: RiskEngine) -> None:
        set_xlm_price(engine, 8500)

        with pytest.raises(InsufficientCollateral):
            engine.liquidate("liquidator", USER, "BTC", 10_000 * USD)
        position = engine.gateway.get_position(USER)
        assert position.total_debt == 700 * USD
        assert position.collateral == {"XLM": 1000 * XLM_UNIT}

    def test_limited_by_asset_balance(self, engine: RiskEngine) -> None:
        engine.oracle.push_price("USDC", USD, NOW)
        engine.gateway.supply(USER, "USDC", 20 * XLM_UNIT)
        set_xlm_price(engine, 8500)

        plan, request = engine.liquidate("liquidator", USER, "USDC", 10_000 * USD)

        penalty = engine.params.liquidation_penalty
        assert plan.debt_to_repay == mul_div(20 * USD, BPS, BPS + penalty)
        assert plan.collateral_to_seize <= 20 * USD
        after = engine.gateway.get_position(USER)
        assert after.total_debt == 700 * USD - plan.debt_to_repay
        assert after.collateral["XLM"] == 1000 * XLM_UNIT
        assert after.collateral.get("USDC", 0) <= 1
        assert request.amount == 20 * XLM_UNIT - after.collateral.get("USDC", 0)

    def test_sink_failure_does_not_abort(self, engine: RiskEngine) -> None:
        sink = MagicMock()
        sink.publish.side_effect = RuntimeError("sink down")
        engine = replace_events(engine, sink)
        set_xlm_price(engine, 8500)

        plan, _ = engine.liquidate("liquidator", USER, "XLM", 100 * USD)

        assert plan.debt_to_repay == 100 * USD
        sink.publish.assert_called_once()


def replace_events(engine: RiskEngine, sink) -> RiskEngine:
    return RiskEngine(
        engine.config,
        engine.oracle,
        engine.gateway,
        store=engine.store,
        events=sink,
        clock=engine.clock,
    )
