"""In-process price oracle with rolling volatility.

Keeps the 30 most recent observations per asset and recomputes the 7- and
30-observation annualized volatility on every push.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Iterable, Sequence

import pandas as pd

from vantis_risk.data.interfaces import (
    AssetConfig,
    EventSink,
    PositionStore,
    PriceData,
    PriceOracle,
    VolatilityMetrics,
)
from vantis_risk.data.events import publish_safely
from vantis_risk.data.store import InMemoryStore
from vantis_risk.protocol.errors import (
    AssetNotSupported,
    InsufficientHistory,
    InvalidInput,
    InvalidPrice,
    StalePrice,
)
from vantis_risk.protocol.fixed_point import (
    BPS,
    SQRT_DAYS_PER_YEAR,
    check_i128,
    integer_sqrt,
    mul,
    mul_div,
    tdiv,
)

logger = logging.getLogger(__name__)

MAX_HISTORY = 30
SHORT_WINDOW = 7
LONG_WINDOW = 30
DEFAULT_STALENESS_SECONDS = 300


# ---------------------------------------------------------------------------
# Volatility math
# ---------------------------------------------------------------------------

def calculate_returns(prices: Sequence[int]) -> list[int]:
    """Period-over-period simple returns in bp, skipping non-positive bases."""
    returns = []
    for prev, curr in zip(prices, prices[1:]):
        if prev <= 0:
            continue
        returns.append(mul_div(curr - prev, BPS, prev))
    return returns


def calculate_volatility(prices: Sequence[int], period: int) -> int:
    """Annualized volatility in bp over the last *period* prices.

    Population standard deviation of the bp returns, floored through an
    integer square root and scaled by sqrt(365) ~= 19.
    """
    if len(prices) < 2:
        return 0

    window = list(prices)[-period:]
    returns = calculate_returns(window)
    if not returns:
        return 0

    n = len(returns)
    mean = tdiv(sum(returns), n)
    squares = check_i128(sum(mul(r - mean, r - mean) for r in returns), "variance")
    variance = tdiv(squares, n)
    return integer_sqrt(variance) * SQRT_DAYS_PER_YEAR


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------

class PriceHistory:
    """Bounded, insertion-ordered price window for one asset."""

    def __init__(self, maxlen: int = MAX_HISTORY) -> None:
        self._prices: deque[int] = deque(maxlen=maxlen)

    def append(self, price: int) -> None:
        self._prices.append(price)

    def __len__(self) -> int:
        return len(self._prices)

    def prices(self) -> list[int]:
        return list(self._prices)

    def metrics(self, timestamp: int) -> VolatilityMetrics:
        prices = self.prices()
        return VolatilityMetrics(
            volatility_7d=(
                calculate_volatility(prices, SHORT_WINDOW)
                if len(prices) >= SHORT_WINDOW
                else None
            ),
            volatility_30d=(
                calculate_volatility(prices, LONG_WINDOW)
                if len(prices) >= LONG_WINDOW
                else None
            ),
            last_updated=timestamp,
        )


class PriceTracker(PriceOracle):
    """Price oracle backed by pushed observations.

    Volatility metrics are written to the store under
    ``("volatility", asset)`` so other components can read them.
    """

    def __init__(
        self,
        assets: Iterable[AssetConfig] = (),
        staleness_threshold: int = DEFAULT_STALENESS_SECONDS,
        store: PositionStore | None = None,
        events: EventSink | None = None,
    ) -> None:
        self._assets: dict[str, AssetConfig] = {}
        self._latest: dict[str, PriceData] = {}
        self._history: dict[str, PriceHistory] = {}
        self._lock = threading.Lock()
        self._store = store if store is not None else InMemoryStore()
        self._events = events
        self.set_staleness_threshold(staleness_threshold)
        for config in assets:
            self.register_asset(config)

    @property
    def staleness_threshold(self) -> int:
        return self._staleness_threshold

    def set_staleness_threshold(self, seconds: int) -> None:
        if seconds <= 0:
            raise InvalidInput("staleness threshold must be positive")
        self._staleness_threshold = seconds

    def register_asset(self, config: AssetConfig) -> None:
        with self._lock:
            self._assets[config.symbol] = config
            self._history.setdefault(config.symbol, PriceHistory())
        logger.info("Registered asset %s", config.symbol)

    def supported_assets(self) -> list[str]:
        return sorted(self._assets)

    def get_asset_config(self, asset: str) -> AssetConfig:
        try:
            return self._assets[asset]
        except KeyError:
            raise AssetNotSupported(f"asset {asset!r} is not supported") from None

    def update_price(self, asset: str, price: int, timestamp: int) -> VolatilityMetrics:
        """Record a price and return the refreshed volatility metrics."""
        self.get_asset_config(asset)
        if price <= 0:
            raise InvalidPrice(f"price for {asset} must be positive, got {price}")
        check_i128(price, "price")

        with self._lock:
            self._latest[asset] = PriceData(asset=asset, price=price, timestamp=timestamp)
            history = self._history[asset]
            history.append(price)
            metrics = history.metrics(timestamp)
            self._store.put(("volatility", asset), metrics)

        logger.debug("Price %s=%d at %d (%d samples)", asset, price, timestamp, len(history))
        if self._events is not None:
            publish_safely(
                self._events,
                ("price", "updated"),
                {"asset": asset, "price": price, "timestamp": timestamp},
            )
        return metrics

    def push_price(self, asset: str, price: int, timestamp: int) -> None:
        self.update_price(asset, price, timestamp)

    def get_price(self, asset: str, now: int) -> PriceData:
        self.get_asset_config(asset)
        data = self._latest.get(asset)
        if data is None:
            raise InvalidPrice(f"no price recorded for {asset}")
        if now - data.timestamp > self._staleness_threshold:
            raise StalePrice(
                f"{asset} price from {data.timestamp} is older than "
                f"{self._staleness_threshold}s at {now}"
            )
        return data

    def get_volatility(self, asset: str) -> VolatilityMetrics:
        self.get_asset_config(asset)
        metrics, _ = self._store.get(("volatility", asset))
        if metrics is None:
            raise InsufficientHistory(f"no price history for {asset}")
        return metrics

    def history(self, asset: str) -> list[int]:
        self.get_asset_config(asset)
        return self._history[asset].prices()

    def price_frame(self, asset: str) -> pd.DataFrame:
        """Price history with per-step returns, for plotting.

        Returns:
            DataFrame with columns: step, price, return_bp
        """
        prices = self.history(asset)
        if not prices:
            return pd.DataFrame(columns=["step", "price", "return_bp"])
        returns = [None] + [
            mul_div(curr - prev, BPS, prev) if prev > 0 else None
            for prev, curr in zip(prices, prices[1:])
        ]
        return pd.DataFrame(
            {"step": range(len(prices)), "price": prices, "return_bp": returns}
        )
