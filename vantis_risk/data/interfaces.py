"""Collaborator interfaces and the records that cross them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Hashable

from vantis_risk.protocol.errors import InsufficientHistory, InvalidInput

if TYPE_CHECKING:
    from vantis_risk.position.lending_position import Position
    from vantis_risk.protocol.liquidation import LiquidationPlan
    from vantis_risk.protocol.stop_loss import StopLossPlan


@dataclass(frozen=True)
class AssetConfig:
    """Static risk configuration for one collateral or debt asset."""

    symbol: str
    decimals: int
    base_ltv: int  # bp
    collateral_factor: int  # bp, caps borrowing
    liquidation_threshold: int  # bp, weights collateral for health
    liquidation_penalty: int = 500  # bp
    is_active: bool = True


@dataclass(frozen=True)
class PriceData:
    """USD price with 14 decimals."""

    asset: str
    price: int
    timestamp: int
    source: str = "reflector"


@dataclass(frozen=True)
class VolatilityMetrics:
    """Annualized volatility in bp per window.

    A window is ``None`` until enough samples exist to fill it, so a genuine
    zero (a flat price) stays distinguishable from "not measured yet".
    """

    volatility_7d: int | None
    volatility_30d: int | None
    last_updated: int

    def require(self, window: int) -> int:
        """Volatility for *window* (7 or 30), or ``InsufficientHistory``."""
        if window == 7:
            value = self.volatility_7d
        elif window == 30:
            value = self.volatility_30d
        else:
            raise InvalidInput(f"unsupported volatility window: {window}")
        if value is None:
            raise InsufficientHistory(f"{window}-day volatility not available yet")
        return value

    def best(self) -> int:
        """30-day volatility, falling back to 7-day."""
        if self.volatility_30d is not None:
            return self.volatility_30d
        return self.require(7)


class PriceOracle(ABC):
    """Source of prices and volatility for supported assets."""

    @abstractmethod
    def push_price(self, asset: str, price: int, timestamp: int) -> None:
        """Record a new observation for *asset*."""

    @abstractmethod
    def get_price(self, asset: str, now: int) -> PriceData:
        """Latest price, rejected if older than the staleness threshold."""

    @abstractmethod
    def get_volatility(self, asset: str) -> VolatilityMetrics:
        """Current volatility metrics for *asset*."""

    @abstractmethod
    def get_asset_config(self, asset: str) -> AssetConfig:
        """Static configuration for a supported asset."""


class LendingMarketGateway(ABC):
    """Back-end lending market that custodies collateral and debt."""

    @abstractmethod
    def supply(self, user: str, asset: str, amount: int) -> Position:
        """Deposit collateral."""

    @abstractmethod
    def withdraw(self, user: str, asset: str, amount: int) -> Position:
        """Withdraw collateral."""

    @abstractmethod
    def borrow(self, user: str, amount: int) -> Position:
        """Borrow the stable asset against posted collateral."""

    @abstractmethod
    def repay(self, user: str, amount: int) -> Position:
        """Repay debt, interest first."""

    @abstractmethod
    def get_position(self, user: str) -> Position:
        """Position for *user*, with accrued interest brought up to date."""

    @abstractmethod
    def get_positions(self) -> list[Position]:
        """Every open position."""

    @abstractmethod
    def settle_liquidation(
        self,
        user: str,
        collateral_asset: str,
        plan: LiquidationPlan,
        expected_version: int,
    ) -> Position:
        """Apply a liquidation against the position read at *expected_version*."""

    @abstractmethod
    def settle_stop_loss(
        self, user: str, plan: StopLossPlan, expected_version: int
    ) -> Position:
        """Apply a stop-loss swap against the position read at *expected_version*."""


class PositionStore(ABC):
    """Versioned key-value storage with optimistic writes.

    Keys are tuples such as ``("stop_loss", owner)`` or ``("params",)``.
    Every successful ``put`` bumps the key's version by one.
    """

    @abstractmethod
    def get(self, key: Hashable) -> tuple[Any, int]:
        """Return ``(value, version)``; ``(None, 0)`` when absent."""

    @abstractmethod
    def put(self, key: Hashable, value: Any, expected_version: int | None = None) -> int:
        """Store *value* and return the new version.

        When *expected_version* is given and does not match, raise
        ``VersionConflict`` without writing.
        """

    @abstractmethod
    def delete(self, key: Hashable) -> None:
        """Remove *key* if present."""

    @abstractmethod
    def keys(self, prefix: str | None = None) -> list[Hashable]:
        """All keys, or those whose first element is *prefix*."""


class EventSink(ABC):
    """Append-only, fire-and-forget event log."""

    @abstractmethod
    def publish(self, topic: tuple[str, ...], payload: dict[str, Any]) -> None:
        """Emit one event."""
