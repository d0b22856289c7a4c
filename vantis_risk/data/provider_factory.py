"""Factory for wiring the oracle, market gateway and risk engine."""

from __future__ import annotations

import logging
import os
from typing import Callable

from vantis_risk.config import EngineConfig
from vantis_risk.data.events import LoggingEventSink
from vantis_risk.data.gateway import InMemoryLendingMarket, UnintegratedGateway
from vantis_risk.data.interfaces import EventSink, LendingMarketGateway, PositionStore
from vantis_risk.data.price_tracker import PriceTracker
from vantis_risk.data.static_params import (
    ASSET_CONFIGS,
    DEMO_PRICE_HISTORY,
    DEMO_PRICE_INTERVAL,
)
from vantis_risk.data.store import InMemoryStore
from vantis_risk.engine.risk_engine import RiskEngine
from vantis_risk.protocol.interest_rate import InterestRateModel
from vantis_risk.protocol.pool import PoolModel, PoolState

logger = logging.getLogger(__name__)


def create_oracle(
    staleness_threshold: int = 300,
    seed_history: bool = False,
    start_time: int = 0,
    events: EventSink | None = None,
) -> PriceTracker:
    """Create a price tracker with every static asset registered.

    Parameters
    ----------
    staleness_threshold : int
        Seconds after which a price is rejected as stale.
    seed_history : bool
        If True, replay the demo price tape so volatility is available
        immediately.  The last observation lands at *start_time*.
    start_time : int
        Timestamp of the final seeded observation.
    events : EventSink | None
        Optional sink for ``price.updated`` events.
    """
    tracker = PriceTracker(
        ASSET_CONFIGS.values(),
        staleness_threshold=staleness_threshold,
        events=events,
    )
    if seed_history:
        for asset, prices in DEMO_PRICE_HISTORY.items():
            first = start_time - DEMO_PRICE_INTERVAL * (len(prices) - 1)
            for i, price in enumerate(prices):
                tracker.update_price(asset, price, first + i * DEMO_PRICE_INTERVAL)
    return tracker


def create_gateway(
    oracle: PriceTracker,
    config: EngineConfig,
    backend: str | None = None,
    initial_liquidity: int = 0,
    store: PositionStore | None = None,
    clock: Callable[[], int] | None = None,
) -> LendingMarketGateway:
    """Create the lending market gateway.

    Parameters
    ----------
    backend : str | None
        ``"memory"`` for the in-process market.  Falls back to the
        ``VANTIS_BACKEND`` environment variable when not supplied.
    initial_liquidity : int
        Stable-asset liquidity (USD, 14 decimals) seeded into the
        in-memory pool.

    Returns
    -------
    LendingMarketGateway
        ``InMemoryLendingMarket`` when requested, otherwise
        ``UnintegratedGateway``.
    """
    resolved = backend or os.environ.get("VANTIS_BACKEND", "")
    if resolved != "memory":
        logger.warning(
            "No lending market backend configured (VANTIS_BACKEND=%r); "
            "market operations will fail",
            resolved,
        )
        return UnintegratedGateway()

    pool = PoolModel(
        PoolState(total_liquidity=initial_liquidity, total_borrows=0),
        InterestRateModel(config.interest),
    )
    return InMemoryLendingMarket(oracle, pool, store=store, clock=clock)


def create_engine(
    config: EngineConfig | None = None,
    backend: str | None = None,
    seed_history: bool = False,
    initial_liquidity: int = 0,
    clock: Callable[[], int] | None = None,
    events: EventSink | None = None,
) -> RiskEngine:
    """Create a fully wired, initialized risk engine.

    Parameters
    ----------
    config : EngineConfig | None
        Engine configuration.  Read from the environment when omitted.
    backend, initial_liquidity
        Passed to :func:`create_gateway`.
    seed_history : bool
        Replay the demo price tape into the oracle.
    clock : Callable[[], int] | None
        Source of the current timestamp, shared by every component.
    events : EventSink | None
        Event sink; defaults to ``LoggingEventSink``.

    Returns
    -------
    RiskEngine
        Engine whose parameters are already stored.
    """
    config = config or EngineConfig.from_env()
    events = events if events is not None else LoggingEventSink()
    store = InMemoryStore()

    start_time = clock() if clock is not None else 0
    oracle = create_oracle(
        staleness_threshold=config.staleness_threshold,
        seed_history=seed_history,
        start_time=start_time,
    )
    gateway = create_gateway(
        oracle,
        config,
        backend=backend,
        initial_liquidity=initial_liquidity,
        store=store,
        clock=clock,
    )
    engine = RiskEngine(config, oracle, gateway, store=store, events=events, clock=clock)
    engine.initialize(config.admin)
    return engine
