"""Risk engine: wires the pure risk math to the oracle, market and store."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable

from vantis_risk.config import EngineConfig
from vantis_risk.data.events import publish_safely
from vantis_risk.data.interfaces import (
    EventSink,
    LendingMarketGateway,
    PositionStore,
    PriceOracle,
)
from vantis_risk.data.store import InMemoryStore
from vantis_risk.position.lending_position import CollateralPricing, Position
from vantis_risk.protocol.errors import (
    AlreadyInitialized,
    ArithmeticFloor,
    InsufficientCollateral,
    InvalidAmount,
    InvalidInput,
    NotInitialized,
    Unauthorized,
)
from vantis_risk.protocol.fixed_point import BPS, mul_div
from vantis_risk.protocol.health import (
    HEALTHY_THRESHOLD,
    HealthFactor,
    HealthStatus,
    classify_health,
)
from vantis_risk.protocol.liquidation import (
    LiquidationPlan,
    build_liquidation_request,
    plan_liquidation,
    shrink_liquidation,
)
from vantis_risk.protocol.params import RiskParameters
from vantis_risk.protocol.requests import Request
from vantis_risk.protocol.stop_loss import StopLossConfig, StopLossPlan, plan_stop_loss
from vantis_risk.protocol.volatility_ltv import (
    VolatilityAdjustedLTV,
    adjust_ltv,
    calculate_safe_borrow,
)

logger = logging.getLogger(__name__)

PARAMS_KEY = ("params",)


def _stop_loss_key(user: str) -> tuple[str, str]:
    return ("stop_loss", user)


class RiskEngine:
    """Borrow limits, health monitoring, stop-loss and liquidation.

    Positions are read from the lending market and written back through it
    with the version they were read at, so a concurrent change makes the
    write fail with ``VersionConflict`` instead of acting on stale state.
    """

    def __init__(
        self,
        config: EngineConfig,
        oracle: PriceOracle,
        gateway: LendingMarketGateway,
        store: PositionStore | None = None,
        events: EventSink | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.config = config.validate()
        self.oracle = oracle
        self.gateway = gateway
        self.store = store if store is not None else InMemoryStore()
        self.events = events
        self.clock = clock or (lambda: int(time.time()))

    def _publish(self, topic: tuple[str, ...], **payload) -> None:
        if self.events is not None:
            publish_safely(self.events, topic, payload)

    def _require_admin(self, caller: str) -> None:
        if caller != self.config.admin:
            raise Unauthorized(f"{caller!r} is not the admin")

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def initialize(self, caller: str) -> None:
        """Store the configured parameters; may only happen once."""
        self._require_admin(caller)
        params, version = self.store.get(PARAMS_KEY)
        if params is not None:
            raise AlreadyInitialized("risk engine is already initialized")
        self.store.put(PARAMS_KEY, self.config.params, expected_version=version)
        logger.info("Risk engine initialized by %s", caller)
        self._publish(("risk", "init"), admin=caller)

    @property
    def params(self) -> RiskParameters:
        params, _ = self.store.get(PARAMS_KEY)
        if params is None:
            raise NotInitialized("risk engine has not been initialized")
        return params

    def update_params(self, caller: str, params: RiskParameters) -> None:
        self._require_admin(caller)
        params.validate()
        current, version = self.store.get(PARAMS_KEY)
        if current is None:
            raise NotInitialized("risk engine has not been initialized")
        self.store.put(PARAMS_KEY, params, expected_version=version)
        logger.info("Risk parameters updated: %s", params)
        self._publish(("risk", "params"), params=params)

    # ------------------------------------------------------------------
    # Borrow limits
    # ------------------------------------------------------------------

    def adjusted_ltv(self, asset: str, base_ltv: int | None = None) -> VolatilityAdjustedLTV:
        """Volatility-adjusted LTV for *asset*.

        Uses 30-day volatility when available, otherwise 7-day.

        Raises:
            InsufficientHistory: fewer than 7 observations exist.
            ArithmeticFloor: the adjustment wiped out the LTV entirely.
        """
        config = self.oracle.get_asset_config(asset)
        if base_ltv is None:
            base_ltv = config.base_ltv
        volatility = self.oracle.get_volatility(asset).best()

        record = adjust_ltv(asset, base_ltv, volatility, self.params)
        if record.final_ltv == 0:
            raise ArithmeticFloor(f"adjusted LTV for {asset} is zero")
        if record.floored:
            logger.info(
                "LTV for %s floored at %d (volatility %d bp)", asset, record.final_ltv, volatility
            )
        return record

    def calculate_safe_borrow(
        self,
        asset: str,
        collateral_value: int,
        base_ltv: int | None = None,
        now: int | None = None,
    ) -> int:
        """Safe borrow value against *collateral_value* of *asset*.

        The asset's latest price must be fresh at *now*.
        """
        if collateral_value < 0:
            raise InvalidAmount("collateral value must be non-negative")
        self.oracle.get_price(asset, self.clock() if now is None else now)

        record = self.adjusted_ltv(asset, base_ltv)
        safe = calculate_safe_borrow(collateral_value, record.final_ltv)
        self._publish(
            ("ltv", "adjusted"),
            asset=asset,
            base_ltv=record.base_ltv,
            final_ltv=record.final_ltv,
        )
        return safe

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def position_health(self, user: str) -> HealthFactor:
        return self.gateway.get_position(user).health()

    def check_position_health(self, user: str) -> tuple[int, HealthStatus]:
        """Health value and status against the configured thresholds."""
        params = self.params
        value = self.position_health(user).value
        status = classify_health(
            value,
            healthy=HEALTHY_THRESHOLD,
            critical=params.stop_loss_threshold,
            liquidation=params.liquidation_threshold,
        )
        return value, status

    # ------------------------------------------------------------------
    # Stop-loss
    # ------------------------------------------------------------------

    def enable_stop_loss(self, user: str, config: StopLossConfig) -> None:
        if config.user != user:
            raise InvalidInput("stop-loss config belongs to a different user")
        config.validate()
        self.store.put(_stop_loss_key(user), config)
        logger.info("Stop-loss enabled for %s", user)
        self._publish(("stoploss", "enabled"), user=user)

    def disable_stop_loss(self, user: str) -> None:
        self.store.delete(_stop_loss_key(user))
        logger.info("Stop-loss disabled for %s", user)
        self._publish(("stoploss", "disabled"), user=user)

    def get_stop_loss_config(self, user: str) -> StopLossConfig | None:
        config, _ = self.store.get(_stop_loss_key(user))
        return config

    def _collateral_pricing(self, asset: str) -> CollateralPricing:
        return CollateralPricing(
            prices={asset: self.oracle.get_price(asset, self.clock()).price},
            assets={asset: self.oracle.get_asset_config(asset)},
        )

    def _plan_stop_loss(self, user: str) -> tuple[Position, StopLossPlan]:
        config = self.get_stop_loss_config(user)
        position = self.gateway.get_position(user)
        max_swap = None
        if config is not None and config.enabled:
            # sell the first listed asset actually held; no list means deposit order
            order = config.swap_order or tuple(position.collateral)
            held = tuple(a for a in order if position.collateral.get(a, 0) > 0)
            if not held:
                raise InvalidInput(f"{user} holds none of the stop-loss assets {list(order)}")
            config = replace(config, swap_order=held)
            max_swap = self._collateral_pricing(held[0]).market_value(
                held[0], position.collateral[held[0]]
            )
        plan = plan_stop_loss(
            position.weighted_collateral_value,
            position.total_debt,
            config,
            self.params,
            stable_asset=self.config.stable_asset,
            max_swap=max_swap,
        )
        return position, plan

    def plan_stop_loss(self, user: str) -> StopLossPlan:
        """Stop-loss plan for *user* without executing it."""
        return self._plan_stop_loss(user)[1]

    def trigger_stop_loss(self, caller: str, user: str) -> StopLossPlan:
        """Swap collateral to repay debt while the position is in the stop-loss zone.

        Anyone may trigger it once the conditions hold. The returned plan
        carries the health the settled position actually reached.
        """
        position, plan = self._plan_stop_loss(user)
        if plan.swap_amount == 0:
            logger.debug("Stop-loss for %s needs no swap", user)
            return plan

        settled = self.gateway.settle_stop_loss(user, plan, expected_version=position.version)
        plan = replace(plan, health_after=settled.health().value)

        logger.info(
            "Stop-loss for %s triggered by %s: swapped %d of %s",
            user,
            caller,
            plan.swap_amount,
            plan.asset,
        )
        self._publish(
            ("stoploss", "trigger"),
            user=user,
            caller=caller,
            swap_amount=plan.swap_amount,
            timestamp=self.clock(),
        )
        return plan

    # ------------------------------------------------------------------
    # Liquidation
    # ------------------------------------------------------------------

    def plan_liquidation(self, user: str) -> LiquidationPlan:
        """Largest allowed liquidation for *user*, without executing it."""
        position = self.gateway.get_position(user)
        return plan_liquidation(
            position.weighted_collateral_value,
            position.total_debt,
            self.params,
            close_factor=self.config.close_factor,
        )

    def liquidate(
        self,
        liquidator: str,
        user: str,
        collateral_asset: str,
        debt_to_repay: int,
    ) -> tuple[LiquidationPlan, Request]:
        """Liquidate just enough of *user* to restore the target health.

        *debt_to_repay* is capped at what the plan allows, and again at what
        the market value of *user*'s *collateral_asset* can cover once the
        penalty is added.

        Returns:
            The executed plan, carrying the health actually reached, and the
            auction-fill request for the market.

        Raises:
            NotLiquidatable: health is at or above the liquidation threshold.
            InsufficientCollateral: *user* holds none of *collateral_asset*.
            VersionConflict: the position changed while this ran.
        """
        if debt_to_repay <= 0:
            raise InvalidAmount("debt_to_repay must be positive")

        params = self.params
        position = self.gateway.get_position(user)
        collateral, debt = position.weighted_collateral_value, position.total_debt
        plan = plan_liquidation(collateral, debt, params, close_factor=self.config.close_factor)
        plan = shrink_liquidation(plan, debt_to_repay, collateral, debt, params)

        balance = position.collateral.get(collateral_asset, 0)
        if balance == 0:
            raise InsufficientCollateral(f"{user} holds no {collateral_asset}")
        available = self._collateral_pricing(collateral_asset).market_value(
            collateral_asset, balance
        )
        if plan.collateral_to_seize > available:
            coverable = mul_div(available, BPS, BPS + params.liquidation_penalty)
            if coverable == 0:
                raise InsufficientCollateral(
                    f"{user}'s {collateral_asset} cannot cover any repayment"
                )
            plan = shrink_liquidation(plan, coverable, collateral, debt, params)
            logger.info(
                "Liquidation of %s limited to %d by %s balance", user, coverable, collateral_asset
            )

        settled = self.gateway.settle_liquidation(
            user, collateral_asset, plan, expected_version=position.version
        )
        plan = replace(plan, health_after=settled.health().value)
        seized_tokens = balance - settled.collateral.get(collateral_asset, 0)
        logger.info(
            "Liquidated %s by %s: repaid %d, seized %d (health %d -> %d)",
            user,
            liquidator,
            plan.debt_to_repay,
            plan.collateral_to_seize,
            plan.health_before,
            plan.health_after,
        )
        self._publish(
            ("liquidate", "partial"),
            user=user,
            liquidator=liquidator,
            collateral_asset=collateral_asset,
            debt_repaid=plan.debt_to_repay,
            collateral_seized=plan.collateral_to_seize,
            protocol_fee=plan.protocol_fee,
            timestamp=self.clock(),
        )
        return plan, build_liquidation_request(collateral_asset, seized_tokens)
