"""Reusable Plotly chart components.

Inputs carry basis points and 14-decimal USD integers; charts convert them
to percentages and ratios for display.
"""

import pandas as pd
import plotly.graph_objects as go

from vantis_risk.protocol.fixed_point import BPS, I128_MAX, PRICE_SCALE
from vantis_risk.protocol.health import (
    CRITICAL_THRESHOLD,
    HEALTHY_THRESHOLD,
    LIQUIDATION_THRESHOLD,
)

# Cap for plotting debt-free (infinite) health
HF_DISPLAY_CAP = 3.0


def hf_ratio(value_bp: int) -> float:
    if value_bp == I128_MAX:
        return float("inf")
    return value_bp / BPS


def rate_curve_chart(
    df: pd.DataFrame,
    current_utilization: int | None = None,
    title: str = "Interest Rate Curve",
) -> go.Figure:
    """Create an interactive rate curve chart.

    Args:
        df: DataFrame with columns: utilization, borrow_rate, supply_rate (bp).
        current_utilization: If provided, marks current utilization (bp).
        title: Chart title.
    """
    fig = go.Figure()

    fig.add_trace(
        go.Scatter(
            x=df["utilization"] / 100,
            y=df["borrow_rate"] / 100,
            name="Borrow Rate",
            line=dict(color="#ef4444", width=2),
            hovertemplate="Utilization: %{x:.1f}%<br>Borrow Rate: %{y:.2f}%<extra></extra>",
        )
    )

    fig.add_trace(
        go.Scatter(
            x=df["utilization"] / 100,
            y=df["supply_rate"] / 100,
            name="Supply Rate",
            line=dict(color="#22c55e", width=2),
            hovertemplate="Utilization: %{x:.1f}%<br>Supply Rate: %{y:.2f}%<extra></extra>",
        )
    )

    if current_utilization is not None:
        fig.add_vline(
            x=current_utilization / 100,
            line_dash="dash",
            line_color="#6b7280",
            annotation_text=f"Current: {current_utilization / 100:.1f}%",
        )

    fig.update_layout(
        title=title,
        xaxis_title="Utilization (%)",
        yaxis_title="Rate (%)",
        hovermode="x unified",
        template="plotly_dark",
        height=450,
    )

    return fig


def health_factor_gauge(value_bp: int) -> go.Figure:
    """Create a health factor gauge chart."""
    hf = hf_ratio(value_bp)
    display_hf = min(hf, HF_DISPLAY_CAP)

    if value_bp >= HEALTHY_THRESHOLD:
        color = "#22c55e"
    elif value_bp >= LIQUIDATION_THRESHOLD:
        color = "#f59e0b"
    else:
        color = "#ef4444"

    fig = go.Figure(
        go.Indicator(
            mode="gauge+number",
            value=display_hf,
            number={"valueformat": ".4f"},
            title={"text": "Health Factor"},
            gauge={
                "axis": {"range": [0, HF_DISPLAY_CAP]},
                "bar": {"color": color},
                "steps": [
                    {"range": [0, LIQUIDATION_THRESHOLD / BPS], "color": "#7f1d1d"},
                    {
                        "range": [LIQUIDATION_THRESHOLD / BPS, CRITICAL_THRESHOLD / BPS],
                        "color": "#78350f",
                    },
                    {
                        "range": [CRITICAL_THRESHOLD / BPS, HEALTHY_THRESHOLD / BPS],
                        "color": "#713f12",
                    },
                    {"range": [HEALTHY_THRESHOLD / BPS, HF_DISPLAY_CAP], "color": "#14532d"},
                ],
                "threshold": {
                    "line": {"color": "white", "width": 2},
                    "value": LIQUIDATION_THRESHOLD / BPS,
                },
            },
        )
    )
    fig.update_layout(template="plotly_dark", height=350)
    return fig


def health_sensitivity_chart(df: pd.DataFrame) -> go.Figure:
    """Health factor against a collateral price shock.

    Args:
        df: DataFrame with columns: price_shock (bp), health_factor (bp).
    """
    hf = (df["health_factor"] / BPS).clip(upper=HF_DISPLAY_CAP)
    fig = go.Figure(
        go.Scatter(
            x=df["price_shock"] / 100,
            y=hf,
            line=dict(color="#3b82f6", width=2),
            hovertemplate="Shock: %{x:.1f}%<br>HF: %{y:.3f}<extra></extra>",
        )
    )
    fig.add_hline(
        y=LIQUIDATION_THRESHOLD / BPS,
        line_dash="dash",
        line_color="#ef4444",
        annotation_text="Liquidation",
    )
    fig.update_layout(
        title="Health Factor vs Collateral Price Shock",
        xaxis_title="Price Change (%)",
        yaxis_title="Health Factor",
        template="plotly_dark",
        height=450,
    )
    return fig


def price_history_chart(df: pd.DataFrame, asset: str) -> go.Figure:
    """Price history with bp returns on a secondary axis."""
    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=df["step"],
            y=df["price"] / PRICE_SCALE,
            name="Price (USD)",
            line=dict(color="#3b82f6", width=2),
        )
    )
    fig.add_trace(
        go.Bar(
            x=df["step"],
            y=df["return_bp"] / 100,
            name="Return (%)",
            marker_color="#a855f7",
            opacity=0.5,
            yaxis="y2",
        )
    )
    fig.update_layout(
        title=f"{asset} Price History",
        xaxis_title="Observation",
        yaxis=dict(title="Price (USD)"),
        yaxis2=dict(title="Return (%)", overlaying="y", side="right"),
        template="plotly_dark",
        height=400,
    )
    return fig


def ltv_sensitivity_chart(df: pd.DataFrame, current_volatility: int | None = None) -> go.Figure:
    """Final LTV against annualized volatility.

    Args:
        df: DataFrame with columns: volatility, adjusted_ltv, final_ltv (bp).
        current_volatility: If provided, marks the asset's volatility (bp).
    """
    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=df["volatility"] / 100,
            y=df["adjusted_ltv"] / 100,
            name="Adjusted LTV",
            line=dict(color="#6b7280", width=1, dash="dot"),
        )
    )
    fig.add_trace(
        go.Scatter(
            x=df["volatility"] / 100,
            y=df["final_ltv"] / 100,
            name="Final LTV (floored)",
            line=dict(color="#22c55e", width=2),
        )
    )
    if current_volatility is not None:
        fig.add_vline(
            x=current_volatility / 100,
            line_dash="dash",
            line_color="#f59e0b",
            annotation_text=f"Current: {current_volatility / 100:.1f}%",
        )
    fig.update_layout(
        title="Volatility-Adjusted LTV",
        xaxis_title="Annualized Volatility (%)",
        yaxis_title="LTV (%)",
        template="plotly_dark",
        height=400,
    )
    return fig


def auction_curve_chart(df: pd.DataFrame, now_elapsed: int | None = None) -> go.Figure:
    """Dutch auction discount over time.

    Args:
        df: DataFrame with columns: elapsed (s), discount (bp).
        now_elapsed: If provided, marks the current point in the auction.
    """
    fig = go.Figure(
        go.Scatter(
            x=df["elapsed"] / 60,
            y=df["discount"] / 100,
            line=dict(color="#f59e0b", width=2),
            hovertemplate="Minute %{x:.1f}<br>Discount: %{y:.2f}%<extra></extra>",
        )
    )
    if now_elapsed is not None:
        fig.add_vline(x=now_elapsed / 60, line_dash="dash", line_color="#6b7280")
    fig.update_layout(
        title="Liquidation Auction Discount",
        xaxis_title="Minutes Since Start",
        yaxis_title="Discount (%)",
        template="plotly_dark",
        height=350,
    )
    return fig
