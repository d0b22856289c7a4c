"""Interest Rates page: kinked rate curve and borrow impact."""

import pandas as pd
import streamlit as st

from vantis_risk.dashboard.components.charts import rate_curve_chart
from vantis_risk.dashboard.components.metrics_cards import fmt_bp
from vantis_risk.engine.risk_engine import RiskEngine
from vantis_risk.protocol.errors import RiskError
from vantis_risk.protocol.fixed_point import PRICE_SCALE


def render_rates(engine: RiskEngine) -> None:
    """Render the interest rates page."""
    st.header("Interest Rate Curve")

    pool_model = engine.gateway.pool
    rate_model = pool_model.rate_model
    utilization = pool_model.utilization

    col1, col2 = st.columns([2, 1])
    with col1:
        fig = rate_curve_chart(
            rate_model.rate_curve(), current_utilization=utilization, title="USDC Rate Curve"
        )
        st.plotly_chart(fig, use_container_width=True)

    with col2:
        p = rate_model.params
        st.metric("Current Utilization", fmt_bp(utilization))
        st.metric("Borrow Rate", fmt_bp(pool_model.borrow_rate))
        st.metric("Supply Rate", fmt_bp(pool_model.supply_rate))
        st.caption(
            f"Base {fmt_bp(p.base_rate)}, slope1 {fmt_bp(p.slope1)}, "
            f"slope2 {fmt_bp(p.slope2)}, kink at {fmt_bp(p.optimal_utilization)}"
        )

    st.divider()
    st.subheader("Rate Sensitivity")

    rows = []
    for u in [2000, 4000, 6000, 8000, 8500, 9000, 9500, 10000]:
        rows.append(
            {
                "Utilization": fmt_bp(u),
                "Borrow Rate": fmt_bp(rate_model.borrow_rate(u)),
                "Supply Rate": fmt_bp(rate_model.supply_rate(u)),
            }
        )
    st.table(pd.DataFrame(rows))

    st.divider()
    st.subheader("Borrow Impact Simulation")

    available = pool_model.state.available // PRICE_SCALE
    borrow_amount = st.slider(
        "Additional USDC Borrow",
        min_value=0,
        max_value=max(int(available), 1),
        value=min(1_000_000, int(available)),
        step=50_000,
    )

    if borrow_amount > 0:
        try:
            impact = pool_model.simulate_borrow(borrow_amount * PRICE_SCALE)
        except RiskError as exc:
            st.warning(str(exc))
            return
        c1, c2 = st.columns(2)
        with c1:
            st.metric(
                "Utilization",
                fmt_bp(impact["utilization_after"]),
                fmt_bp(impact["utilization_after"] - impact["utilization_before"]),
            )
        with c2:
            st.metric(
                "Borrow Rate",
                fmt_bp(impact["borrow_rate_after"]),
                fmt_bp(impact["borrow_rate_after"] - impact["borrow_rate_before"]),
            )
