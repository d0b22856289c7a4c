"""Liquidation page: partial liquidation plan and auction discount."""

import streamlit as st

from vantis_risk.dashboard.components.charts import auction_curve_chart
from vantis_risk.dashboard.components.metrics_cards import fmt_bp, fmt_hf, fmt_usd, kpi_row
from vantis_risk.engine.risk_engine import RiskEngine
from vantis_risk.protocol.errors import NotLiquidatable
from vantis_risk.protocol.liquidation import DutchAuction, max_single_liquidation


def render_liquidation(engine: RiskEngine, user: str, now: int) -> None:
    """Render the liquidation page."""
    st.header("Partial Liquidation")

    params = engine.params
    position = engine.gateway.get_position(user)
    st.caption(
        f"Target health {fmt_hf(params.target_health_factor)}, penalty "
        f"{fmt_bp(params.liquidation_penalty)}, protocol fee "
        f"{fmt_bp(params.protocol_fee)} of the bonus, close factor "
        f"{fmt_bp(engine.config.close_factor)}."
    )

    try:
        plan = engine.plan_liquidation(user)
    except NotLiquidatable:
        st.success(
            f"Position is not liquidatable (health {fmt_hf(position.health().value)})."
        )
    else:
        kpi_row(
            [
                ("Debt to Repay", fmt_usd(plan.debt_to_repay), None),
                ("Collateral Seized", fmt_usd(plan.collateral_to_seize), None),
                ("Liquidator Bonus", fmt_usd(plan.liquidator_bonus), None),
                ("Protocol Fee", fmt_usd(plan.protocol_fee), None),
            ]
        )
        c1, c2, c3 = st.columns(3)
        c1.metric("Health Before", fmt_hf(plan.health_before))
        c2.metric(
            "Health After",
            fmt_hf(plan.health_after),
            f"{(plan.health_after - plan.health_before) / 10_000:+.4f}",
        )
        c3.metric(
            "Close-Factor Cap",
            fmt_usd(max_single_liquidation(position.total_debt, engine.config.close_factor)),
        )

    st.divider()
    st.subheader("Dutch Auction")

    col1, col2 = st.columns([1, 2])
    with col1:
        start = st.slider("Start Discount (%)", 0.0, 5.0, 0.0, 0.25)
        end = st.slider("End Discount (%)", 0.0, 20.0, params.liquidation_penalty / 100, 0.25)
        duration_min = st.slider("Duration (minutes)", 5, 240, 60, 5)
        elapsed_min = st.slider("Minutes Elapsed", 0, 240, 30, 1)

    if end < start:
        st.warning("End discount must be at least the start discount.")
        return

    auction = DutchAuction(
        start_discount=round(start * 100),
        end_discount=round(end * 100),
        duration=duration_min * 60,
        start_time=now - elapsed_min * 60,
    )
    with col2:
        st.plotly_chart(
            auction_curve_chart(auction.schedule(), now_elapsed=elapsed_min * 60),
            use_container_width=True,
        )
    st.metric("Current Discount", fmt_bp(auction.current_discount(now)))
