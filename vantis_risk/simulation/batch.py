"""Evaluate many positions at once.

Every position is scored independently from its own snapshot, so the work
fans out across a thread pool with no shared mutable state.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Iterable

import pandas as pd

from vantis_risk.position.lending_position import Position
from vantis_risk.protocol.health import HEALTHY_THRESHOLD, classify_health
from vantis_risk.protocol.liquidation import is_liquidatable, plan_liquidation
from vantis_risk.protocol.params import RiskParameters
from vantis_risk.protocol.stop_loss import calculate_swap_amount, should_trigger_stop_loss

COLUMNS = [
    "owner",
    "collateral_value",
    "debt",
    "health_factor",
    "status",
    "liquidatable",
    "liquidation_repay",
    "liquidation_seize",
    "stop_loss_swap",
]


def evaluate_position(
    position: Position, params: RiskParameters, close_factor: int | None = None
) -> dict:
    """Health, status and intervention sizes for one position.

    Liquidation sizes match ``RiskEngine.plan_liquidation`` when given the
    engine's *close_factor*.
    """
    collateral = position.weighted_collateral_value
    debt = position.total_debt
    health = position.health().value
    status = classify_health(
        health,
        healthy=HEALTHY_THRESHOLD,
        critical=params.stop_loss_threshold,
        liquidation=params.liquidation_threshold,
    )

    liquidatable = is_liquidatable(health, params.liquidation_threshold)
    seize, repay = 0, 0
    if liquidatable:
        plan = plan_liquidation(collateral, debt, params, close_factor=close_factor)
        seize, repay = plan.collateral_to_seize, plan.debt_to_repay

    swap = 0
    if should_trigger_stop_loss(health, params.stop_loss_threshold, params.liquidation_threshold):
        swap = calculate_swap_amount(collateral, debt, health, params.target_health_factor)

    return {
        "owner": position.owner,
        "collateral_value": collateral,
        "debt": debt,
        "health_factor": health,
        "status": status.value,
        "liquidatable": liquidatable,
        "liquidation_repay": repay,
        "liquidation_seize": seize,
        "stop_loss_swap": swap,
    }


def evaluate_positions(
    positions: Iterable[Position],
    params: RiskParameters,
    max_workers: int | None = None,
    close_factor: int | None = None,
) -> pd.DataFrame:
    """Score every position in parallel.

    Returns:
        DataFrame with one row per position, in input order, and the
        columns listed in ``COLUMNS``.
    """
    positions = list(positions)
    if not positions:
        return pd.DataFrame(columns=COLUMNS)

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        rows = list(pool.map(lambda p: evaluate_position(p, params, close_factor), positions))

    return pd.DataFrame(rows, columns=COLUMNS)
