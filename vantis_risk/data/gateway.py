"""Lending market gateways."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable, Iterable

from vantis_risk.data.interfaces import LendingMarketGateway, PositionStore, PriceOracle
from vantis_risk.data.store import InMemoryStore
from vantis_risk.position import lending_position as ops
from vantis_risk.position.lending_position import CollateralPricing, Position
from vantis_risk.protocol.errors import BackendUnavailable
from vantis_risk.protocol.liquidation import LiquidationPlan
from vantis_risk.protocol.pool import PoolModel
from vantis_risk.protocol.stop_loss import StopLossPlan

logger = logging.getLogger(__name__)


def _wall_clock() -> int:
    return int(time.time())


class UnintegratedGateway(LendingMarketGateway):
    """Placeholder used until a real market back end is wired in."""

    def _fail(self, operation: str):
        raise BackendUnavailable(f"no lending market integrated; cannot {operation}")

    def supply(self, user, asset, amount):
        self._fail("supply")

    def withdraw(self, user, asset, amount):
        self._fail("withdraw")

    def borrow(self, user, amount):
        self._fail("borrow")

    def repay(self, user, amount):
        self._fail("repay")

    def get_position(self, user):
        self._fail("read positions")

    def get_positions(self):
        self._fail("read positions")

    def settle_liquidation(self, user, collateral_asset, plan, expected_version):
        self._fail("settle liquidations")

    def settle_stop_loss(self, user, plan, expected_version):
        self._fail("settle stop-losses")


class InMemoryLendingMarket(LendingMarketGateway):
    """Single-pool market holding positions in a versioned store.

    Collateral is valued at the oracle's current prices; debt is the pool's
    stable asset and accrues at the pool's current borrow rate.
    """

    def __init__(
        self,
        oracle: PriceOracle,
        pool: PoolModel,
        store: PositionStore | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.oracle = oracle
        self.pool = pool
        self.store = store if store is not None else InMemoryStore()
        self.clock = clock or _wall_clock

    # -- helpers ----------------------------------------------------------

    @staticmethod
    def _key(user: str) -> tuple[str, str]:
        return ("position", user)

    def _pricing(self, assets: Iterable[str], now: int) -> CollateralPricing:
        assets = set(assets)
        return CollateralPricing(
            prices={a: self.oracle.get_price(a, now).price for a in assets},
            assets={a: self.oracle.get_asset_config(a) for a in assets},
        )

    def _load(self, user: str, now: int) -> Position:
        position, version = self.store.get(self._key(user))
        if position is None:
            return Position(owner=user, last_accrual=now, version=0)
        return replace(position, version=version)

    def _save(self, position: Position) -> Position:
        version = self.store.put(
            self._key(position.owner), position, expected_version=position.version
        )
        return replace(position, version=version)

    @property
    def borrow_rate(self) -> int:
        return self.pool.borrow_rate

    def provide_liquidity(self, amount: int) -> None:
        self.pool.apply_supply(amount)
        logger.info("Pool liquidity now %d", self.pool.state.total_liquidity)

    # -- gateway ----------------------------------------------------------

    def supply(self, user: str, asset: str, amount: int) -> Position:
        now = self.clock()
        position = self._load(user, now)
        pricing = self._pricing([*position.collateral, asset], now)
        return self._save(ops.deposit(position, asset, amount, pricing))

    def withdraw(self, user: str, asset: str, amount: int) -> Position:
        now = self.clock()
        position = ops.accrue(self._load(user, now), now, self.borrow_rate)
        pricing = self._pricing(position.collateral, now)
        return self._save(ops.withdraw(position, asset, amount, pricing))

    def borrow(self, user: str, amount: int) -> Position:
        now = self.clock()
        position = self._load(user, now)
        pricing = self._pricing(position.collateral, now)
        self.pool.simulate_borrow(amount)
        updated = ops.borrow(position, amount, now, self.borrow_rate, pricing)
        saved = self._save(updated)
        self.pool.apply_borrow(amount)
        return saved

    def repay(self, user: str, amount: int) -> Position:
        now = self.clock()
        position = self._load(user, now)
        updated, applied = ops.repay(position, amount, now, self.borrow_rate)
        saved = self._save(updated)
        self.pool.apply_repay(applied)
        return saved

    def get_position(self, user: str) -> Position:
        now = self.clock()
        position = ops.accrue(self._load(user, now), now, self.borrow_rate)
        pricing = self._pricing(position.collateral, now)
        return replace(
            position, weighted_collateral_value=pricing.weighted_value(position.collateral)
        )

    def get_positions(self) -> list[Position]:
        return [self.get_position(key[1]) for key in self.store.keys("position")]

    def settle_liquidation(
        self,
        user: str,
        collateral_asset: str,
        plan: LiquidationPlan,
        expected_version: int,
    ) -> Position:
        return self._settle(
            user, collateral_asset, plan.collateral_to_seize, plan.debt_to_repay, expected_version
        )

    def settle_stop_loss(
        self, user: str, plan: StopLossPlan, expected_version: int
    ) -> Position:
        return self._settle(user, plan.asset, plan.swap_amount, plan.min_output, expected_version)

    def _settle(
        self,
        user: str,
        asset: str,
        seized_value: int,
        debt_repaid: int,
        expected_version: int,
    ) -> Position:
        now = self.clock()
        position = ops.accrue(self._load(user, now), now, self.borrow_rate)
        pricing = self._pricing([*position.collateral, asset], now)
        updated, tokens = ops.apply_liquidation(position, asset, seized_value, debt_repaid, pricing)
        saved = self._save(replace(updated, version=expected_version))
        repaid = position.total_debt - updated.total_debt
        if repaid > 0:
            self.pool.apply_repay(repaid)
        logger.info(
            "Settled %s: %d %s seized, %d debt repaid", user, tokens, asset, repaid
        )
        return saved
