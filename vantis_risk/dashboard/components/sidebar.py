"""Sidebar parameter controls."""

from dataclasses import dataclass

import streamlit as st

from vantis_risk.data.constants import BTC, ETH, XLM
from vantis_risk.protocol.params import RiskParameters


@dataclass
class SidebarParams:
    """User-controlled parameters from the sidebar.

    Amounts are in whole tokens and dollars; the app converts them to
    fixed-point units.
    """

    collateral: dict[str, float]
    debt_usd: float
    shock_asset: str
    price_shock_bp: int
    k_factor: int
    time_horizon_days: int
    close_factor: int


def render_sidebar() -> SidebarParams:
    """Render sidebar controls and return selected parameters."""
    defaults = RiskParameters()

    st.sidebar.header("Position")

    collateral = {
        XLM: st.sidebar.number_input(
            "XLM Collateral", min_value=0.0, value=100_000.0, step=1_000.0, format="%.0f"
        ),
        BTC: st.sidebar.number_input(
            "BTC Collateral", min_value=0.0, value=0.1, step=0.01, format="%.4f"
        ),
        ETH: st.sidebar.number_input(
            "ETH Collateral", min_value=0.0, value=1.0, step=0.1, format="%.3f"
        ),
    }

    debt = st.sidebar.number_input(
        "USDC Debt", min_value=0.0, value=12_000.0, step=500.0, format="%.0f"
    )

    st.sidebar.header("What-If Analysis")

    shock_asset = st.sidebar.selectbox("Shocked Asset", [XLM, BTC, ETH])
    shock_pct = st.sidebar.slider(
        "Price Shock (%)",
        min_value=-60,
        max_value=20,
        value=0,
        step=1,
    )
    st.sidebar.caption(
        "Applied as a fresh oracle observation after the position is opened, "
        "so it feeds both health and volatility."
    )

    st.sidebar.header("Risk Parameters")

    k_factor = st.sidebar.slider(
        "Volatility Multiplier k (bp)",
        min_value=0,
        max_value=300,
        value=defaults.k_factor,
        step=10,
    )
    horizon = st.sidebar.slider(
        "Time Horizon (days)",
        min_value=1,
        max_value=90,
        value=defaults.time_horizon_days,
    )
    close_factor = st.sidebar.slider(
        "Close Factor (%)",
        min_value=10,
        max_value=100,
        value=50,
        step=5,
    )

    return SidebarParams(
        collateral=collateral,
        debt_usd=debt,
        shock_asset=shock_asset,
        price_shock_bp=shock_pct * 100,
        k_factor=k_factor,
        time_horizon_days=horizon,
        close_factor=close_factor * 100,
    )
