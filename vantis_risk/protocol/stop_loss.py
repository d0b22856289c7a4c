"""Stop-loss: swap collateral into the stable asset before liquidation.

Assuming a 1:1 swap, selling ``S`` of collateral to repay ``S`` of debt
moves health to the target ``T`` when

    (C - S) / (D - S) = T / 10000
    S = (T * D / 10000 - C) * 10000 / (T - 10000)
"""

from dataclasses import dataclass, field

from vantis_risk.protocol.errors import (
    AlreadyHealthy,
    InvalidInput,
    PositionLiquidatable,
    StopLossNotEnabled,
)
from vantis_risk.protocol.fixed_point import BPS, mul_div
from vantis_risk.protocol.health import health_factor
from vantis_risk.protocol.params import RiskParameters
from vantis_risk.protocol.requests import Request, RequestType

MAX_SLIPPAGE = 1000


@dataclass(frozen=True)
class StopLossConfig:
    """Per-user stop-loss settings.

    A zero ``trigger_threshold`` or ``target_health`` defers to the global
    ``RiskParameters``.
    """

    user: str
    enabled: bool = True
    trigger_threshold: int = 0
    target_health: int = 0
    swap_order: tuple[str, ...] = field(default_factory=tuple)
    max_slippage: int = 100
    min_swap_amount: int = 0

    def validate(self) -> "StopLossConfig":
        if not 0 <= self.max_slippage <= MAX_SLIPPAGE:
            raise InvalidInput(f"max_slippage must be within [0, {MAX_SLIPPAGE}] bp")
        if self.trigger_threshold < 0 or self.target_health < 0:
            raise InvalidInput("thresholds must be non-negative")
        if self.min_swap_amount < 0:
            raise InvalidInput("min_swap_amount must be non-negative")
        return self

    def trigger_for(self, params: RiskParameters) -> int:
        return self.trigger_threshold or params.stop_loss_threshold

    def target_for(self, params: RiskParameters) -> int:
        return self.target_health or params.target_health_factor


@dataclass(frozen=True)
class StopLossPlan:
    user: str
    asset: str
    swap_amount: int
    min_output: int
    health_before: int
    health_after: int
    requests: tuple[Request, ...]


def calculate_swap_amount(
    collateral: int, debt: int, current_health: int, target_health: int
) -> int:
    """Collateral value to swap so health reaches *target_health*."""
    if debt == 0 or current_health >= target_health:
        return 0

    denominator = target_health - BPS
    if denominator <= 0:
        return 0

    target_normalized = mul_div(target_health, debt, BPS)
    swap_amount = mul_div(target_normalized - collateral, BPS, denominator)
    return max(0, min(swap_amount, collateral))


def should_trigger_stop_loss(
    health: int, trigger_threshold: int, liquidation_threshold: int
) -> bool:
    """True inside the stop-loss zone, both ends inclusive."""
    return liquidation_threshold <= health <= trigger_threshold


def calculate_min_output(expected_output: int, max_slippage: int) -> int:
    return mul_div(expected_output, BPS - max_slippage, BPS)


def plan_stop_loss(
    collateral: int,
    debt: int,
    config: StopLossConfig | None,
    params: RiskParameters,
    stable_asset: str = "USDC",
    max_swap: int | None = None,
) -> StopLossPlan:
    """Work out the swap that pulls a position out of the stop-loss zone.

    The first asset in ``config.swap_order`` is sold. Swaps below the
    user's minimum are rounded up to it, never past the collateral held
    or *max_swap*, the market value of the asset being sold.

    Raises:
        StopLossNotEnabled: no config, or the config is disabled.
        AlreadyHealthy: health is above the trigger threshold.
        PositionLiquidatable: health is already below the liquidation
            threshold; only liquidation applies now.
    """
    if config is None or not config.enabled:
        raise StopLossNotEnabled("stop-loss is not enabled for this position")

    health = health_factor(collateral, debt)
    trigger = config.trigger_for(params)
    if health > trigger:
        raise AlreadyHealthy(f"health {health} is above trigger {trigger}")
    if health < params.liquidation_threshold:
        raise PositionLiquidatable(
            f"health {health} is below liquidation threshold {params.liquidation_threshold}"
        )

    swap_amount = calculate_swap_amount(collateral, debt, health, config.target_for(params))
    if 0 < swap_amount < config.min_swap_amount:
        swap_amount = min(config.min_swap_amount, collateral)
    if max_swap is not None:
        swap_amount = min(swap_amount, max_swap)

    asset = config.swap_order[0] if config.swap_order else ""
    min_output = calculate_min_output(swap_amount, config.max_slippage)
    repaid = min(min_output, debt)

    return StopLossPlan(
        user=config.user,
        asset=asset,
        swap_amount=swap_amount,
        min_output=min_output,
        health_before=health,
        health_after=health_factor(collateral - swap_amount, debt - repaid),
        requests=(
            build_withdraw_request(asset, swap_amount),
            build_repay_request(stable_asset, min_output),
        ),
    )


def build_withdraw_request(collateral_asset: str, amount: int) -> Request:
    return Request(RequestType.WITHDRAW_COLLATERAL, collateral_asset, amount)


def build_repay_request(stable_asset: str, amount: int) -> Request:
    return Request(RequestType.REPAY, stable_asset, amount)
