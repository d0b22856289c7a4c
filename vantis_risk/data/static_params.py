"""Hardcoded asset parameters and a demo price tape."""

from vantis_risk.data.constants import (
    BTC,
    BTC_DECIMALS,
    ETH,
    ETH_DECIMALS,
    USDC,
    USDC_DECIMALS,
    XLM,
    XLM_DECIMALS,
)
from vantis_risk.data.interfaces import AssetConfig
from vantis_risk.protocol.fixed_point import PRICE_SCALE
from vantis_risk.protocol.interest_rate import InterestRateParams

# --- Collateral and debt asset configuration ---

ASSET_CONFIGS: dict[str, AssetConfig] = {
    XLM: AssetConfig(
        symbol=XLM,
        decimals=XLM_DECIMALS,
        base_ltv=7500,
        collateral_factor=7500,
        liquidation_threshold=8000,
        liquidation_penalty=500,
    ),
    BTC: AssetConfig(
        symbol=BTC,
        decimals=BTC_DECIMALS,
        base_ltv=8000,
        collateral_factor=8000,
        liquidation_threshold=8500,
        liquidation_penalty=500,
    ),
    ETH: AssetConfig(
        symbol=ETH,
        decimals=ETH_DECIMALS,
        base_ltv=8000,
        collateral_factor=7800,
        liquidation_threshold=8300,
        liquidation_penalty=500,
    ),
    USDC: AssetConfig(
        symbol=USDC,
        decimals=USDC_DECIMALS,
        base_ltv=9000,
        collateral_factor=9000,
        liquidation_threshold=9500,
        liquidation_penalty=200,
    ),
}

# Stable-asset borrow curve: 2% base, 4% to the kink at 80%, then 75%
DEFAULT_INTEREST_PARAMS = InterestRateParams(
    base_rate=200,
    slope1=400,
    slope2=7500,
    optimal_utilization=8000,
    reserve_factor=1000,
)

# Annual collateral yield in bp, used for the effective-rate view
COLLATERAL_YIELDS: dict[str, int] = {
    XLM: 300,
    BTC: 0,
    ETH: 350,
    USDC: 500,
}


def _scaled(prices: tuple[float, ...]) -> list[int]:
    return [round(p * PRICE_SCALE) for p in prices]


# Representative price tape, oldest first
_DEMO_TAPE: dict[str, tuple[float, ...]] = {
    XLM: (
        0.100, 0.105, 0.102, 0.108, 0.103, 0.106, 0.104, 0.109, 0.111, 0.107,
        0.112, 0.115, 0.110, 0.113, 0.118, 0.116, 0.121, 0.117, 0.119, 0.114,
        0.120, 0.123, 0.119, 0.125, 0.122, 0.126, 0.121, 0.124, 0.128, 0.125,
    ),
    BTC: (
        64200.0, 64850.0, 63900.0, 65100.0, 65600.0, 64700.0, 66200.0,
        66900.0, 66100.0, 67400.0, 66800.0, 68100.0, 67500.0, 68900.0,
        68200.0, 69400.0, 70100.0, 69300.0, 70800.0, 70200.0, 71500.0,
        70900.0, 72100.0, 71400.0, 72800.0, 72200.0, 73100.0, 72500.0,
        73900.0, 73300.0,
    ),
    ETH: (
        3120.0, 3185.0, 3090.0, 3210.0, 3270.0, 3195.0, 3310.0, 3355.0,
        3280.0, 3390.0, 3340.0, 3425.0, 3370.0, 3460.0, 3410.0, 3495.0,
        3540.0, 3480.0, 3575.0, 3520.0, 3610.0, 3560.0, 3650.0, 3590.0,
        3685.0, 3630.0, 3710.0, 3660.0, 3745.0, 3700.0,
    ),
    USDC: (1.0,) * 30,
}

DEMO_PRICE_HISTORY: dict[str, list[int]] = {
    asset: _scaled(tape) for asset, tape in _DEMO_TAPE.items()
}

# Seconds between demo observations
DEMO_PRICE_INTERVAL = 60
