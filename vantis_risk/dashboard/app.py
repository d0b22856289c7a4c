"""Vantis Lending Risk Dashboard: main Streamlit entry point."""

import logging
import os
from pathlib import Path

import streamlit as st

# Load .env file if present (for VANTIS_* settings)
_env_path = Path(__file__).resolve().parents[2] / ".env"
if _env_path.exists():
    for line in _env_path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            key, _, value = line.partition("=")
            os.environ.setdefault(key.strip(), value.strip())

logging.basicConfig(
    level=os.environ.get("VANTIS_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

from dataclasses import replace

from vantis_risk.config import EngineConfig
from vantis_risk.dashboard.components.sidebar import SidebarParams, render_sidebar
from vantis_risk.dashboard.tabs.liquidation import render_liquidation
from vantis_risk.dashboard.tabs.overview import render_overview
from vantis_risk.dashboard.tabs.rates import render_rates
from vantis_risk.dashboard.tabs.stop_loss import render_stop_loss
from vantis_risk.dashboard.tabs.stress_tests import render_stress_tests
from vantis_risk.dashboard.tabs.volatility import render_volatility
from vantis_risk.data import create_engine
from vantis_risk.data.static_params import ASSET_CONFIGS
from vantis_risk.engine.risk_engine import RiskEngine
from vantis_risk.protocol.errors import RiskError
from vantis_risk.protocol.fixed_point import PRICE_SCALE
from vantis_risk.stress.shock_engine import shock_price

logger = logging.getLogger(__name__)

DEMO_USER = "demo-borrower"
DEMO_TIME = 1_700_000_000
POOL_LIQUIDITY_USD = 5_000_000


def build_engine(params: SidebarParams) -> RiskEngine:
    """Fresh in-memory engine holding the sidebar's position."""
    base = EngineConfig.from_env()
    config = replace(
        base,
        close_factor=params.close_factor,
        params=replace(
            base.params,
            k_factor=params.k_factor,
            time_horizon_days=params.time_horizon_days,
        ),
    )
    engine = create_engine(
        config=config,
        backend="memory",
        seed_history=True,
        initial_liquidity=POOL_LIQUIDITY_USD * PRICE_SCALE,
        clock=lambda: DEMO_TIME,
    )

    for asset, amount in params.collateral.items():
        units = round(amount * 10 ** ASSET_CONFIGS[asset].decimals)
        if units > 0:
            engine.gateway.supply(DEMO_USER, asset, units)

    debt = round(params.debt_usd * PRICE_SCALE)
    if debt > 0:
        try:
            engine.gateway.borrow(DEMO_USER, debt)
        except RiskError as exc:
            st.sidebar.error(f"Borrow rejected: {exc}")

    if params.price_shock_bp != 0:
        latest = engine.oracle.get_price(params.shock_asset, DEMO_TIME).price
        engine.oracle.push_price(
            params.shock_asset, shock_price(latest, params.price_shock_bp), DEMO_TIME
        )
    return engine


def main() -> None:
    st.set_page_config(
        page_title="Vantis Lending Risk Dashboard",
        page_icon="📊",
        layout="wide",
    )

    st.title("Vantis Lending Risk Dashboard")
    st.caption("Volatility-adjusted borrowing, stop-loss and partial liquidation")

    params = render_sidebar()
    engine = build_engine(params)

    tab1, tab2, tab3, tab4, tab5, tab6 = st.tabs(
        [
            "Position Overview",
            "Interest Rates",
            "Volatility & LTV",
            "Liquidation",
            "Stop-Loss",
            "Stress Tests",
        ]
    )

    with tab1:
        render_overview(engine, DEMO_USER)

    with tab2:
        render_rates(engine)

    with tab3:
        render_volatility(engine, DEMO_TIME)

    with tab4:
        render_liquidation(engine, DEMO_USER, DEMO_TIME)

    with tab5:
        render_stop_loss(engine, DEMO_USER)

    with tab6:
        render_stress_tests(engine, DEMO_USER, DEMO_TIME)


if __name__ == "__main__":
    main()
