"""Stop-Loss page: configure protection and preview the swap."""

import pandas as pd
import streamlit as st

from vantis_risk.dashboard.components.metrics_cards import fmt_bp, fmt_hf, fmt_usd
from vantis_risk.engine.risk_engine import RiskEngine
from vantis_risk.protocol.errors import RiskError
from vantis_risk.protocol.fixed_point import PRICE_SCALE
from vantis_risk.protocol.stop_loss import MAX_SLIPPAGE, StopLossConfig


def render_stop_loss(engine: RiskEngine, user: str) -> None:
    """Render the stop-loss page."""
    st.header("Stop-Loss Protection")
    st.caption(
        "Swaps collateral into USDC to repay debt once health enters the "
        "stop-loss zone, avoiding the liquidation penalty."
    )

    params = engine.params
    position = engine.gateway.get_position(user)

    col1, col2 = st.columns(2)
    with col1:
        enabled = st.checkbox("Enable Stop-Loss", value=True)
        trigger = st.slider(
            "Trigger Health Factor",
            min_value=1.0,
            max_value=1.5,
            value=params.stop_loss_threshold / 10_000,
            step=0.005,
            format="%.3f",
        )
        target = st.slider(
            "Target Health Factor",
            min_value=1.01,
            max_value=2.0,
            value=params.target_health_factor / 10_000,
            step=0.01,
            format="%.2f",
        )
    with col2:
        slippage = st.slider("Max Slippage (bp)", 0, MAX_SLIPPAGE, 100, 10)
        min_swap = st.number_input("Minimum Swap (USD)", min_value=0.0, value=0.0, step=10.0)
        swap_order = st.multiselect(
            "Swap Order", list(position.collateral), default=list(position.collateral)
        )

    if not enabled:
        engine.disable_stop_loss(user)
        st.info("Stop-loss is disabled for this position.")
        return

    config = StopLossConfig(
        user=user,
        trigger_threshold=round(trigger * 10_000),
        target_health=round(target * 10_000),
        swap_order=tuple(swap_order),
        max_slippage=slippage,
        min_swap_amount=round(min_swap * PRICE_SCALE),
    )
    try:
        engine.enable_stop_loss(user, config)
        plan = engine.plan_stop_loss(user)
    except RiskError as exc:
        st.info(f"No stop-loss action: {exc}")
        return

    st.divider()
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Swap Amount", fmt_usd(plan.swap_amount))
    c2.metric("Min USDC Out", fmt_usd(plan.min_output))
    c3.metric("Health Before", fmt_hf(plan.health_before))
    c4.metric("Health After", fmt_hf(plan.health_after))

    st.subheader("Market Requests")
    st.table(
        pd.DataFrame(
            [
                {
                    "Type": r.request_type.name,
                    "Asset": r.address,
                    "Amount": fmt_usd(r.amount),
                }
                for r in plan.requests
            ]
        )
    )
    st.caption(f"Slippage allowance {fmt_bp(config.max_slippage)}.")
