"""Volatility-adjusted loan-to-value.

B_safe = V_collateral * (LTV_base - k * sigma * sqrt(T))

The time horizon T is in days and converted to years through
sqrt(days) / sqrt(365), with sqrt(365) approximated by 19 and scaled
by 1000 so the whole chain stays in integers.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd

from vantis_risk.protocol.errors import InvalidInput
from vantis_risk.protocol.fixed_point import (
    BPS,
    SQRT_DAYS_PER_YEAR,
    integer_sqrt,
    mul,
    mul_div,
    saturating_sub,
    tdiv,
)
from vantis_risk.protocol.params import RiskParameters


@dataclass(frozen=True)
class VolatilityAdjustedLTV:
    """Breakdown of one LTV adjustment, all ratios in bp."""

    asset: str
    base_ltv: int
    volatility: int
    adjustment: int
    adjusted_ltv: int
    final_ltv: int

    @property
    def floored(self) -> bool:
        return self.final_ltv > self.adjusted_ltv


def sqrt_time_factor(time_horizon_days: int) -> int:
    """sqrt(T in years) scaled by 1000."""
    if time_horizon_days <= 0:
        raise InvalidInput("time horizon must be positive")
    return tdiv(integer_sqrt(time_horizon_days) * 1000, SQRT_DAYS_PER_YEAR)


def volatility_adjustment(volatility_bp: int, k_factor: int, time_horizon_days: int) -> int:
    """LTV haircut in bp for a given annualized volatility."""
    sqrt_t = sqrt_time_factor(time_horizon_days)
    return tdiv(mul(k_factor, volatility_bp, sqrt_t), 1000 * BPS)


def calculate_adjusted_ltv(
    base_ltv: int,
    volatility_bp: int,
    k_factor: int,
    time_horizon_days: int,
    min_ltv: int,
) -> int:
    """Base LTV less the volatility haircut, floored at *min_ltv*.

    Args:
        base_ltv: Asset's base LTV in bp.
        volatility_bp: Annualized volatility in bp.
        k_factor: Risk multiplier in bp units (100 = 1.0x).
        time_horizon_days: Liquidation horizon.
        min_ltv: Minimum collateral factor; the result never drops below it.

    Returns:
        Final LTV in bp.
    """
    if base_ltv < 0 or volatility_bp < 0:
        raise InvalidInput("LTV and volatility must be non-negative")
    adjustment = volatility_adjustment(volatility_bp, k_factor, time_horizon_days)
    adjusted = saturating_sub(base_ltv, adjustment)
    return max(adjusted, min_ltv)


def calculate_safe_borrow(collateral_value: int, adjusted_ltv: int) -> int:
    """Maximum borrow value for a collateral value at an LTV in bp."""
    return mul_div(collateral_value, adjusted_ltv, BPS)


def calculate_effective_rate(
    borrow_amount: int,
    borrow_rate: int,
    collateral_value: int,
    collateral_yield: int,
) -> int:
    """Borrow cost net of collateral yield, in bp of the borrowed amount.

    Negative when the collateral earns more than the loan costs.
    """
    if borrow_amount == 0:
        return 0
    borrow_cost = mul_div(borrow_amount, borrow_rate, BPS)
    yield_earned = mul_div(collateral_value, collateral_yield, BPS)
    return mul_div(borrow_cost - yield_earned, BPS, borrow_amount)


def adjust_ltv(
    asset: str, base_ltv: int, volatility_bp: int, params: RiskParameters
) -> VolatilityAdjustedLTV:
    """Full adjustment record for *asset* under the global parameters."""
    adjustment = volatility_adjustment(
        volatility_bp, params.k_factor, params.time_horizon_days
    )
    adjusted = saturating_sub(base_ltv, adjustment)
    return VolatilityAdjustedLTV(
        asset=asset,
        base_ltv=base_ltv,
        volatility=volatility_bp,
        adjustment=adjustment,
        adjusted_ltv=adjusted,
        final_ltv=max(adjusted, params.min_collateral_factor),
    )


def ltv_sensitivity(
    base_ltv: int,
    params: RiskParameters,
    vol_range: tuple[int, int] = (0, 15_000),
    n_points: int = 61,
) -> pd.DataFrame:
    """Final LTV across a volatility range.

    Returns:
        DataFrame with columns: volatility, adjusted_ltv, final_ltv
    """
    vols = np.linspace(vol_range[0], vol_range[1], n_points).round().astype(int)
    rows = [adjust_ltv("", base_ltv, int(v), params) for v in vols]
    return pd.DataFrame(
        {
            "volatility": vols,
            "adjusted_ltv": [r.adjusted_ltv for r in rows],
            "final_ltv": [r.final_ltv for r in rows],
        }
    )
