"""Volatility & LTV page: price history, volatility windows, safe borrow."""

import pandas as pd
import streamlit as st

from vantis_risk.dashboard.components.charts import ltv_sensitivity_chart, price_history_chart
from vantis_risk.dashboard.components.metrics_cards import fmt_bp, fmt_usd
from vantis_risk.engine.risk_engine import RiskEngine
from vantis_risk.protocol.errors import RiskError
from vantis_risk.protocol.fixed_point import PRICE_SCALE
from vantis_risk.protocol.volatility_ltv import ltv_sensitivity


def _fmt_optional(value: int | None) -> str:
    return "n/a" if value is None else fmt_bp(value)


def render_volatility(engine: RiskEngine, now: int) -> None:
    """Render the volatility and LTV page."""
    st.header("Volatility & Loan-to-Value")

    oracle = engine.oracle
    assets = oracle.supported_assets()

    rows = []
    for asset in assets:
        config = oracle.get_asset_config(asset)
        metrics = oracle.get_volatility(asset)
        try:
            record = engine.adjusted_ltv(asset)
            final_ltv = fmt_bp(record.final_ltv)
        except RiskError as exc:
            final_ltv = exc.code
        rows.append(
            {
                "Asset": asset,
                "Price": fmt_usd(oracle.get_price(asset, now).price),
                "7d Vol": _fmt_optional(metrics.volatility_7d),
                "30d Vol": _fmt_optional(metrics.volatility_30d),
                "Base LTV": fmt_bp(config.base_ltv),
                "Adjusted LTV": final_ltv,
            }
        )
    st.table(pd.DataFrame(rows))

    st.divider()
    asset = st.selectbox("Asset", assets, key="vol_asset")
    col1, col2 = st.columns(2)

    with col1:
        st.plotly_chart(
            price_history_chart(oracle.price_frame(asset), asset), use_container_width=True
        )

    with col2:
        config = oracle.get_asset_config(asset)
        metrics = oracle.get_volatility(asset)
        current = metrics.volatility_30d if metrics.volatility_30d is not None else metrics.volatility_7d
        st.plotly_chart(
            ltv_sensitivity_chart(ltv_sensitivity(config.base_ltv, engine.params), current),
            use_container_width=True,
        )

    st.subheader("Safe Borrow Calculator")
    collateral_usd = st.number_input(
        f"{asset} Collateral Value (USD)", min_value=0.0, value=10_000.0, step=500.0
    )
    try:
        safe = engine.calculate_safe_borrow(asset, round(collateral_usd * PRICE_SCALE), now=now)
    except RiskError as exc:
        st.warning(f"Cannot size borrow: {exc}")
    else:
        st.metric("Safe Borrow", fmt_usd(safe))
