"""Kinked (two-slope) interest rate model in basis points.

Below the optimal utilization the borrow rate rises gently along ``slope1``;
above it the remaining headroom is priced along the much steeper ``slope2``.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd

from vantis_risk.protocol.errors import InvalidAmount, InvalidInput
from vantis_risk.protocol.fixed_point import BPS, SECONDS_PER_YEAR, mul, mul_div, tdiv


@dataclass(frozen=True)
class InterestRateParams:
    """Parameters for the piecewise linear rate curve, all in bp."""

    base_rate: int
    slope1: int
    slope2: int
    optimal_utilization: int
    reserve_factor: int = 0

    def validate(self) -> "InterestRateParams":
        if not 0 < self.optimal_utilization < BPS:
            raise InvalidInput("optimal_utilization must be within (0, 10000) bp")
        if min(self.base_rate, self.slope1, self.slope2) < 0:
            raise InvalidInput("rates must be non-negative")
        if not 0 <= self.reserve_factor <= BPS:
            raise InvalidInput("reserve_factor must be within [0, 10000] bp")
        return self


def calculate_utilization(total_borrows: int, total_liquidity: int) -> int:
    """Utilization in bp; an empty pool is 0% utilized."""
    if total_liquidity == 0:
        return 0
    return mul_div(total_borrows, BPS, total_liquidity)


def calculate_interest_rate(utilization: int, params: InterestRateParams) -> int:
    """Annual borrow rate in bp for a utilization in bp.

    Args:
        utilization: Pool utilization in bp. Values above 10000 are not
            clamped; the second slope keeps extrapolating.
        params: Curve parameters.

    Returns:
        Annual borrow rate in bp (e.g. 500 = 5%).
    """
    if utilization <= params.optimal_utilization:
        return params.base_rate + mul_div(
            utilization, params.slope1, params.optimal_utilization
        )

    excess = utilization - params.optimal_utilization
    return (
        params.base_rate
        + params.slope1
        + mul_div(excess, params.slope2, BPS - params.optimal_utilization)
    )


def calculate_interest(principal: int, rate: int, elapsed_seconds: int) -> int:
    """Simple interest owed on *principal* at *rate* bp over *elapsed_seconds*."""
    if principal == 0 or elapsed_seconds <= 0:
        return 0
    return tdiv(mul(principal, rate, elapsed_seconds), SECONDS_PER_YEAR * BPS)


def accrue_interest(
    principal: int,
    accrued_interest: int,
    last_accrual: int,
    now: int,
    rate: int,
) -> tuple[int, int]:
    """Bring accrued interest up to *now*.

    Returns:
        ``(accrued_interest, last_accrual)`` after accrual. With zero
        principal or no elapsed time both come back unchanged.
    """
    if now < last_accrual:
        raise InvalidInput(f"accrual time {now} precedes last accrual {last_accrual}")
    if principal < 0 or accrued_interest < 0:
        raise InvalidAmount("debt components must be non-negative")
    if principal == 0 or now == last_accrual:
        return accrued_interest, last_accrual

    interest = calculate_interest(principal, rate, now - last_accrual)
    return accrued_interest + interest, now


class InterestRateModel:
    """Kinked curve bound to a parameter set, with a supply-side view."""

    def __init__(self, params: InterestRateParams) -> None:
        self.params = params.validate()

    def borrow_rate(self, utilization: int) -> int:
        return calculate_interest_rate(utilization, self.params)

    def supply_rate(self, utilization: int) -> int:
        """Rate earned by suppliers.

        R_supply = R_borrow * U * (1 - reserve_factor)
        Utilization is clamped to [0, 10000] bp.
        """
        utilization = max(0, min(BPS, utilization))
        borrow = self.borrow_rate(utilization)
        return tdiv(
            mul(borrow, utilization, BPS - self.params.reserve_factor), BPS * BPS
        )

    def rate_curve(self, n_points: int = 201) -> pd.DataFrame:
        """Generate the full rate curve for plotting.

        Returns:
            DataFrame with columns: utilization, borrow_rate, supply_rate
            (all in bp).
        """
        utilizations = np.linspace(0, BPS, n_points).round().astype(int)
        borrow_rates = [self.borrow_rate(int(u)) for u in utilizations]
        supply_rates = [self.supply_rate(int(u)) for u in utilizations]

        return pd.DataFrame(
            {
                "utilization": utilizations,
                "borrow_rate": borrow_rates,
                "supply_rate": supply_rates,
            }
        )
