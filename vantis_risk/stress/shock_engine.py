"""Shock engine: apply stress scenarios and generate correlated price shocks."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd

from vantis_risk.position.lending_position import CollateralPricing, Position
from vantis_risk.protocol.errors import InvalidInput
from vantis_risk.protocol.fixed_point import BPS, mul_div
from vantis_risk.protocol.health import HealthStatus, classify_health, health_factor
from vantis_risk.protocol.liquidation import calculate_partial_liquidation, is_liquidatable
from vantis_risk.protocol.params import RiskParameters
from vantis_risk.stress.scenarios import StressScenario


@dataclass(frozen=True)
class ShockResult:
    """Result of applying a stress scenario to a position."""

    health_before: int
    health_after: int
    collateral_before: int
    collateral_after: int
    status_after: HealthStatus
    is_liquidatable: bool
    liquidation_repay: int


def shock_price(price: int, shock_bp: int) -> int:
    """Price after a bp move; never below one unit."""
    return max(1, mul_div(price, BPS + shock_bp, BPS))


def shocked_pricing(pricing: CollateralPricing, shocks: dict[str, int]) -> CollateralPricing:
    return CollateralPricing(
        prices={a: shock_price(p, shocks.get(a, 0)) for a, p in pricing.prices.items()},
        assets=pricing.assets,
    )


def apply_scenario(
    scenario: StressScenario,
    position: Position,
    pricing: CollateralPricing,
    params: RiskParameters,
) -> ShockResult:
    """Apply a stress scenario to a position and compute impact.

    Only collateral prices move; debt is denominated in USD.

    Args:
        scenario: The stress scenario to apply.
        position: Position to stress.
        pricing: Current prices and asset configuration.
        params: Risk parameters for thresholds and the liquidation solver.

    Returns:
        ShockResult with before/after health and the liquidation it would
        trigger.
    """
    debt = position.total_debt
    collateral_before = pricing.weighted_value(position.collateral)
    stressed = shocked_pricing(pricing, scenario.price_shocks)
    collateral_after = stressed.weighted_value(position.collateral)

    health_after = health_factor(collateral_after, debt)
    liquidatable = is_liquidatable(health_after, params.liquidation_threshold)
    repay = 0
    if liquidatable:
        _, repay = calculate_partial_liquidation(
            collateral_after, debt, params.liquidation_penalty, params.target_health_factor
        )

    return ShockResult(
        health_before=health_factor(collateral_before, debt),
        health_after=health_after,
        collateral_before=collateral_before,
        collateral_after=collateral_after,
        status_after=classify_health(
            health_after,
            critical=params.stop_loss_threshold,
            liquidation=params.liquidation_threshold,
        ),
        is_liquidatable=liquidatable,
        liquidation_repay=repay,
    )


def health_sensitivity(
    position: Position,
    pricing: CollateralPricing,
    shock_range: tuple[int, int] = (-5000, 0),
    n_points: int = 51,
    asset: str | None = None,
) -> pd.DataFrame:
    """Health factor across a range of price shocks.

    Args:
        asset: Shock only this asset; every collateral asset when None.

    Returns:
        DataFrame with columns: price_shock, health_factor
    """
    shocks = np.linspace(shock_range[0], shock_range[1], n_points).round().astype(int)
    targets = [asset] if asset is not None else list(pricing.prices)
    debt = position.total_debt

    healths = []
    for shock in shocks:
        stressed = shocked_pricing(pricing, {a: int(shock) for a in targets})
        healths.append(health_factor(stressed.weighted_value(position.collateral), debt))

    return pd.DataFrame({"price_shock": shocks, "health_factor": healths})


def generate_correlated_shocks(
    n_scenarios: int,
    volatilities: dict[str, int],
    correlation: np.ndarray | None = None,
    seed: int | None = None,
) -> pd.DataFrame:
    """Generate correlated per-asset price shocks using Cholesky decomposition.

    Args:
        n_scenarios: Number of shock vectors.
        volatilities: Per-asset shock standard deviation in bp.
        correlation: Correlation matrix in ``volatilities`` order; all
            assets perfectly independent when None.
        seed: Random seed for reproducibility.

    Returns:
        DataFrame with one bp-shock column per asset, clipped to
        [-9999, +inf) so no price reaches zero.
    """
    assets = list(volatilities)
    if any(v <= 0 for v in volatilities.values()):
        raise InvalidInput("shock volatilities must be positive")
    if correlation is None:
        correlation = np.eye(len(assets))

    rng = np.random.default_rng(seed)
    vols = np.array([volatilities[a] for a in assets], dtype=float)
    cov = correlation * np.outer(vols, vols)
    L = np.linalg.cholesky(cov)

    z = rng.standard_normal((n_scenarios, len(assets)))
    shocks = np.clip(np.rint(z @ L.T), -(BPS - 1), None).astype(int)
    return pd.DataFrame(shocks, columns=assets)


def liquidation_probability(
    position: Position,
    pricing: CollateralPricing,
    params: RiskParameters,
    shocks: pd.DataFrame,
) -> float:
    """Share of shock vectors under which the position becomes liquidatable."""
    if shocks.empty:
        return 0.0
    debt = position.total_debt
    hits = 0
    for row in shocks.to_dict("records"):
        stressed = shocked_pricing(pricing, {a: int(s) for a, s in row.items()})
        health = health_factor(stressed.weighted_value(position.collateral), debt)
        if is_liquidatable(health, params.liquidation_threshold):
            hits += 1
    return hits / len(shocks)
