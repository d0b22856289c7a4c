"""Stress scenario definitions: historical and custom."""

from dataclasses import dataclass, field

from vantis_risk.data.constants import BTC, ETH, USDC, XLM


@dataclass(frozen=True)
class StressScenario:
    """A set of simultaneous price shocks.

    Attributes:
        name: Short identifier.
        description: Human-readable explanation.
        price_shocks: Per-asset price change in bp (e.g. -4000 = -40%).
            Assets not listed are unchanged.
        utilization_shock: Pool utilization under stress, in bp.
        duration_days: Duration of the stress period.
    """

    name: str
    description: str
    price_shocks: dict[str, int] = field(default_factory=dict)
    utilization_shock: int = 8000
    duration_days: int = 1

    def shock_for(self, asset: str) -> int:
        return self.price_shocks.get(asset, 0)


# --- Historical scenarios ---

MARCH_2020_BLACK_THURSDAY = StressScenario(
    name="March 2020 Black Thursday",
    description="COVID crash: crypto fell ~50% in a day and liquidation "
    "auctions cleared far below market.",
    price_shocks={XLM: -5500, BTC: -5000, ETH: -5000},
    utilization_shock=9800,
    duration_days=3,
)

MAY_2022_TERRA_LUNA = StressScenario(
    name="May 2022 Terra/Luna",
    description="UST depeg and Luna collapse spread across majors.",
    price_shocks={XLM: -4000, BTC: -3500, ETH: -4000},
    utilization_shock=9300,
    duration_days=7,
)

NOVEMBER_2022_FTX = StressScenario(
    name="November 2022 FTX",
    description="Exchange insolvency; majors dropped ~25% over a week.",
    price_shocks={XLM: -3000, BTC: -2500, ETH: -2500},
    utilization_shock=9000,
    duration_days=7,
)

MARCH_2023_USDC_DEPEG = StressScenario(
    name="March 2023 USDC Depeg",
    description="SVB exposure pushed USDC to ~0.87 over a weekend.",
    price_shocks={USDC: -1300, BTC: 1000, ETH: 500},
    utilization_shock=8500,
    duration_days=2,
)

HISTORICAL_SCENARIOS = [
    MARCH_2020_BLACK_THURSDAY,
    MAY_2022_TERRA_LUNA,
    NOVEMBER_2022_FTX,
    MARCH_2023_USDC_DEPEG,
]


def create_custom_scenario(
    name: str,
    price_shocks: dict[str, int],
    utilization_shock: int = 8000,
    duration_days: int = 1,
    description: str = "Custom scenario",
) -> StressScenario:
    """Factory for user-defined stress scenarios."""
    return StressScenario(
        name=name,
        description=description,
        price_shocks=dict(price_shocks),
        utilization_shock=utilization_shock,
        duration_days=duration_days,
    )
