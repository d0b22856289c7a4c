"""Reusable metric card components for the dashboard."""

import streamlit as st

from vantis_risk.protocol.fixed_point import I128_MAX, PRICE_SCALE


def fmt_usd(value: int) -> str:
    """Format a 14-decimal USD integer."""
    return f"${value / PRICE_SCALE:,.2f}"


def fmt_bp(value: int) -> str:
    return f"{value / 100:.2f}%"


def fmt_hf(value: int) -> str:
    if value == I128_MAX:
        return "∞"
    return f"{value / 10_000:.4f}"


def metric_card(label: str, value: str, delta: str | None = None) -> None:
    """Display a single metric using Streamlit's built-in metric."""
    st.metric(label=label, value=value, delta=delta)


def kpi_row(metrics: list[tuple[str, str, str | None]]) -> None:
    """Display a row of KPI cards.

    Args:
        metrics: List of (label, value, delta) tuples.
    """
    cols = st.columns(len(metrics))
    for col, (label, value, delta) in zip(cols, metrics):
        with col:
            metric_card(label, value, delta)
