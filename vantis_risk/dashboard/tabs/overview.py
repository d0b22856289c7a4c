"""Position Overview page: health, collateral breakdown, effective rate."""

import pandas as pd
import streamlit as st

from vantis_risk.dashboard.components.charts import health_factor_gauge, health_sensitivity_chart
from vantis_risk.dashboard.components.metrics_cards import fmt_bp, fmt_hf, fmt_usd, kpi_row
from vantis_risk.data.static_params import COLLATERAL_YIELDS
from vantis_risk.engine.risk_engine import RiskEngine
from vantis_risk.position.lending_position import CollateralPricing, calculate_weighted_value
from vantis_risk.protocol.volatility_ltv import calculate_effective_rate
from vantis_risk.stress.shock_engine import health_sensitivity


def render_overview(engine: RiskEngine, user: str) -> None:
    """Render the position overview page."""
    st.header("Position Overview")

    position = engine.gateway.get_position(user)
    health = position.health()
    value, status = engine.check_position_health(user)
    now = engine.clock()

    kpi_row(
        [
            ("Weighted Collateral", fmt_usd(health.collateral_value), None),
            ("Debt", fmt_usd(health.debt_value), None),
            ("Health Factor", fmt_hf(value), None),
            ("Status", status.value.title(), None),
        ]
    )

    col1, col2 = st.columns([1, 1])
    with col1:
        st.plotly_chart(health_factor_gauge(value), use_container_width=True)
    with col2:
        st.subheader("Headroom")
        st.metric("Shortfall to 1.10", fmt_usd(health.shortfall))
        st.metric("Withdrawable at 1.10", fmt_usd(health.withdrawable))
        st.metric("Accrued Interest", fmt_usd(position.accrued_interest))

    if not position.collateral:
        st.info("No collateral posted.")
        return

    st.divider()
    st.subheader("Collateral")

    assets = {a: engine.oracle.get_asset_config(a) for a in position.collateral}
    prices = {a: engine.oracle.get_price(a, now).price for a in position.collateral}
    rows = []
    raw_total = 0
    yield_total = 0
    for asset, amount in position.collateral.items():
        config = assets[asset]
        raw = calculate_weighted_value(amount, prices[asset], config.decimals, 10_000)
        raw_total += raw
        yield_total += raw * COLLATERAL_YIELDS.get(asset, 0)
        rows.append(
            {
                "Asset": asset,
                "Amount": amount / 10**config.decimals,
                "Value": fmt_usd(raw),
                "Liq. Threshold": fmt_bp(config.liquidation_threshold),
                "Weighted": fmt_usd(
                    calculate_weighted_value(
                        amount, prices[asset], config.decimals, config.liquidation_threshold
                    )
                ),
            }
        )
    st.table(pd.DataFrame(rows))

    if position.total_debt > 0 and raw_total > 0:
        blended_yield = yield_total // raw_total
        effective = calculate_effective_rate(
            position.total_debt, engine.gateway.borrow_rate, raw_total, blended_yield
        )
        c1, c2, c3 = st.columns(3)
        c1.metric("Borrow Rate", fmt_bp(engine.gateway.borrow_rate))
        c2.metric("Collateral Yield", fmt_bp(blended_yield))
        c3.metric("Effective Rate", fmt_bp(effective))

    st.divider()
    st.subheader("Price Sensitivity")
    pricing = CollateralPricing(prices=prices, assets=assets)
    st.plotly_chart(
        health_sensitivity_chart(health_sensitivity(position, pricing)),
        use_container_width=True,
    )
