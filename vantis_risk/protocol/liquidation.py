"""Partial liquidation: seize only what restores the target health.

Solving for the debt to repay ``R`` such that the position lands exactly on
the target health ``H`` when the liquidator seizes ``R`` plus a penalty ``p``:

    (C - R * (10000 + p) / 10000) / (D - R) = H / 10000
    R = (10000 * C - H * D) / (10000 + p - H)
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd

from vantis_risk.protocol.errors import InvalidInput, NotLiquidatable
from vantis_risk.protocol.fixed_point import BPS, mul, mul_div, tdiv
from vantis_risk.protocol.health import WARNING_THRESHOLD, health_factor
from vantis_risk.protocol.params import RiskParameters
from vantis_risk.protocol.requests import Request, RequestType

TARGET_HEALTH_FACTOR = WARNING_THRESHOLD
DEFAULT_CLOSE_FACTOR = 5000


@dataclass(frozen=True)
class LiquidationPlan:
    """Amounts for one liquidation in USD.

    Settlement hands the liquidator ``collateral_to_seize`` of market value
    in one collateral asset, so the bonus and fee are what actually moves.
    """

    collateral_to_seize: int
    debt_to_repay: int
    liquidator_bonus: int
    protocol_fee: int
    health_before: int
    health_after: int

    @property
    def penalty(self) -> int:
        return self.collateral_to_seize - self.debt_to_repay


@dataclass(frozen=True)
class DutchAuction:
    """Liquidator discount that grows linearly from start to end."""

    start_discount: int
    end_discount: int
    duration: int
    start_time: int

    def __post_init__(self) -> None:
        if self.duration <= 0:
            raise InvalidInput("auction duration must be positive")
        if self.end_discount < self.start_discount:
            raise InvalidInput("end discount must not be below start discount")

    def current_discount(self, now: int) -> int:
        if now < self.start_time:
            return self.start_discount

        elapsed = now - self.start_time
        if elapsed >= self.duration:
            return self.end_discount

        progress = elapsed * BPS // self.duration
        extra = (self.end_discount - self.start_discount) * progress // BPS
        return self.start_discount + extra

    def schedule(self, n_points: int = 61) -> pd.DataFrame:
        """Discount over the auction window, for plotting.

        Returns:
            DataFrame with columns: elapsed, discount
        """
        elapsed = np.linspace(0, self.duration, n_points).round().astype(int)
        discounts = [self.current_discount(self.start_time + int(t)) for t in elapsed]
        return pd.DataFrame({"elapsed": elapsed, "discount": discounts})


def calculate_partial_liquidation(
    collateral: int,
    debt: int,
    liquidation_penalty: int,
    target_health: int,
) -> tuple[int, int]:
    """Minimum liquidation that brings a position back to *target_health*.

    Args:
        collateral: Weighted collateral value.
        debt: Total debt value.
        liquidation_penalty: Penalty in bp (500 = 5%).
        target_health: Health factor to restore, in bp.

    Returns:
        ``(collateral_to_seize, debt_to_repay)``. ``(0, 0)`` when there is
        no debt or the position is already at the target.
    """
    if debt == 0:
        return 0, 0
    if health_factor(collateral, debt) >= target_health:
        return 0, 0

    penalty_factor = BPS + liquidation_penalty
    denominator = penalty_factor - target_health

    if denominator <= 0:
        # penalty too small to ever reach the target: close out the position
        return collateral, debt

    numerator = mul(BPS, collateral) - mul(target_health, debt)
    debt_to_repay = tdiv(numerator, denominator)
    if debt_to_repay <= 0:
        return 0, 0

    collateral_to_seize = mul_div(debt_to_repay, penalty_factor, BPS)
    return min(collateral_to_seize, collateral), min(debt_to_repay, debt)


def calculate_liquidation_bonus(
    collateral_seized: int, debt_repaid: int, protocol_fee_bp: int
) -> tuple[int, int]:
    """Split the seized surplus into ``(liquidator_bonus, protocol_fee)``."""
    total_bonus = collateral_seized - debt_repaid
    if total_bonus <= 0:
        return 0, 0

    protocol_fee = mul_div(total_bonus, protocol_fee_bp, BPS)
    return total_bonus - protocol_fee, protocol_fee


def is_liquidatable(health: int, liquidation_threshold: int) -> bool:
    return health < liquidation_threshold


def max_single_liquidation(total_debt: int, close_factor: int) -> int:
    """Largest debt repayment allowed in one liquidation."""
    return mul_div(total_debt, close_factor, BPS)


def plan_liquidation(
    collateral: int,
    debt: int,
    params: RiskParameters,
    close_factor: int | None = None,
) -> LiquidationPlan:
    """Build the full liquidation plan for a position.

    Raises:
        NotLiquidatable: health is at or above the liquidation threshold.
    """
    health_before = health_factor(collateral, debt)
    if not is_liquidatable(health_before, params.liquidation_threshold):
        raise NotLiquidatable(
            f"health {health_before} is not below {params.liquidation_threshold}"
        )

    seized, repaid = calculate_partial_liquidation(
        collateral, debt, params.liquidation_penalty, params.target_health_factor
    )

    if close_factor is not None:
        cap = max_single_liquidation(debt, close_factor)
        if repaid > cap:
            repaid = cap
            seized = min(
                mul_div(repaid, BPS + params.liquidation_penalty, BPS), collateral
            )

    bonus, fee = calculate_liquidation_bonus(seized, repaid, params.protocol_fee)
    return LiquidationPlan(
        collateral_to_seize=seized,
        debt_to_repay=repaid,
        liquidator_bonus=bonus,
        protocol_fee=fee,
        health_before=health_before,
        health_after=health_factor(collateral - seized, debt - repaid),
    )


def shrink_liquidation(
    plan: LiquidationPlan,
    debt_to_repay: int,
    collateral: int,
    debt: int,
    params: RiskParameters,
) -> LiquidationPlan:
    """Scale *plan* down to repay *debt_to_repay*, keeping the same penalty.

    Plans already at or below *debt_to_repay* come back unchanged.
    """
    if debt_to_repay >= plan.debt_to_repay:
        return plan
    seized = min(
        mul_div(debt_to_repay, BPS + params.liquidation_penalty, BPS),
        plan.collateral_to_seize,
    )
    bonus, fee = calculate_liquidation_bonus(seized, debt_to_repay, params.protocol_fee)
    return LiquidationPlan(
        collateral_to_seize=seized,
        debt_to_repay=debt_to_repay,
        liquidator_bonus=bonus,
        protocol_fee=fee,
        health_before=plan.health_before,
        health_after=health_factor(collateral - seized, debt - debt_to_repay),
    )


def build_liquidation_request(collateral_asset: str, collateral_amount: int) -> Request:
    return Request(
        request_type=RequestType.FILL_USER_LIQUIDATION_AUCTION,
        address=collateral_asset,
        amount=collateral_amount,
    )
