"""Borrower position state and its transitions.

Collateral balances are token amounts in each asset's native decimals.
``weighted_collateral_value``, ``principal`` and ``accrued_interest`` are USD
values with 14 decimals, so health is a direct ratio of the two sides.
Every transition returns a new ``Position``; nothing is mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping

from vantis_risk.data.interfaces import AssetConfig
from vantis_risk.protocol.errors import (
    AssetNotSupported,
    InsufficientCollateral,
    InvalidAmount,
    InvalidPrice,
    NoBorrowPosition,
    WithdrawalWouldLiquidate,
)
from vantis_risk.protocol.fixed_point import BPS, mul, mul_div, tdiv
from vantis_risk.protocol.health import LIQUIDATION_THRESHOLD, HealthFactor, is_withdrawal_safe
from vantis_risk.protocol.interest_rate import accrue_interest


def calculate_weighted_value(amount: int, price: int, decimals: int, factor: int) -> int:
    """USD value of *amount* tokens, scaled by a bp *factor*.

    value = amount * price / 10^decimals * factor / 10000
    """
    value = tdiv(mul(amount, price), 10**decimals)
    return mul_div(value, factor, BPS)


@dataclass(frozen=True)
class CollateralPricing:
    """Price snapshot plus asset configuration used to value collateral."""

    prices: Mapping[str, int]
    assets: Mapping[str, AssetConfig]

    def config(self, asset: str) -> AssetConfig:
        config = self.assets.get(asset)
        if config is None or not config.is_active:
            raise AssetNotSupported(f"asset {asset!r} is not an active collateral")
        return config

    def price(self, asset: str) -> int:
        price = self.prices.get(asset)
        if price is None or price <= 0:
            raise InvalidPrice(f"no usable price for {asset}")
        return price

    def _sum(self, collateral: Mapping[str, int], attr: str) -> int:
        total = 0
        for asset, amount in collateral.items():
            if amount == 0:
                continue
            config = self.config(asset)
            total += calculate_weighted_value(
                amount, self.price(asset), config.decimals, getattr(config, attr)
            )
        return total

    def weighted_value(self, collateral: Mapping[str, int]) -> int:
        """Collateral weighted by liquidation threshold; feeds health."""
        return self._sum(collateral, "liquidation_threshold")

    def borrow_capacity(self, collateral: Mapping[str, int]) -> int:
        """Collateral weighted by collateral factor; caps new borrowing."""
        return self._sum(collateral, "collateral_factor")

    def market_value(self, asset: str, amount: int) -> int:
        """Unweighted USD value of *amount* tokens at the current price."""
        return calculate_weighted_value(amount, self.price(asset), self.config(asset).decimals, BPS)

    def value_to_tokens(self, asset: str, value: int) -> int:
        """Token amount worth *value* USD at the current price, rounded down."""
        return mul_div(value, 10**self.config(asset).decimals, self.price(asset))


@dataclass(frozen=True)
class Position:
    owner: str
    collateral: dict[str, int] = field(default_factory=dict)
    weighted_collateral_value: int = 0
    principal: int = 0
    accrued_interest: int = 0
    last_accrual: int = 0
    version: int = 0

    @property
    def total_debt(self) -> int:
        return self.principal + self.accrued_interest

    def health(self) -> HealthFactor:
        return HealthFactor.calculate(self.weighted_collateral_value, self.total_debt)


def deposit(position: Position, asset: str, amount: int, pricing: CollateralPricing) -> Position:
    if amount <= 0:
        raise InvalidAmount("deposit amount must be positive")
    pricing.config(asset)

    collateral = dict(position.collateral)
    collateral[asset] = collateral.get(asset, 0) + amount
    return replace(
        position,
        collateral=collateral,
        weighted_collateral_value=pricing.weighted_value(collateral),
    )


def withdraw(position: Position, asset: str, amount: int, pricing: CollateralPricing) -> Position:
    """Remove collateral, refusing anything that would make the position liquidatable."""
    if amount <= 0:
        raise InvalidAmount("withdraw amount must be positive")
    balance = position.collateral.get(asset, 0)
    if amount > balance:
        raise InsufficientCollateral(f"withdraw {amount} exceeds {asset} balance {balance}")

    collateral = dict(position.collateral)
    collateral[asset] = balance - amount
    if collateral[asset] == 0:
        del collateral[asset]
    current_value = pricing.weighted_value(position.collateral)
    new_value = pricing.weighted_value(collateral)

    if not is_withdrawal_safe(
        current_value, current_value - new_value, position.total_debt, LIQUIDATION_THRESHOLD
    ):
        raise WithdrawalWouldLiquidate(
            f"withdrawing {amount} {asset} would drop health below {LIQUIDATION_THRESHOLD}"
        )
    return replace(position, collateral=collateral, weighted_collateral_value=new_value)


def accrue(position: Position, now: int, rate: int) -> Position:
    accrued, last = accrue_interest(
        position.principal, position.accrued_interest, position.last_accrual, now, rate
    )
    return replace(position, accrued_interest=accrued, last_accrual=last)


def borrow(
    position: Position, amount: int, now: int, rate: int, pricing: CollateralPricing
) -> Position:
    """Add debt after accruing, bounded by the collateral-factor capacity."""
    if amount <= 0:
        raise InvalidAmount("borrow amount must be positive")
    position = accrue(position, now, rate)

    capacity = pricing.borrow_capacity(position.collateral)
    if position.total_debt + amount > capacity:
        raise InsufficientCollateral(
            f"debt {position.total_debt} + {amount} exceeds borrow capacity {capacity}"
        )
    return replace(
        position,
        principal=position.principal + amount,
        last_accrual=now,
    )


def repay(position: Position, amount: int, now: int, rate: int) -> tuple[Position, int]:
    """Pay down interest first, then principal.

    Returns:
        The updated position and the amount actually applied, which is capped
        at the total debt.
    """
    if amount <= 0:
        raise InvalidAmount("repay amount must be positive")
    position = accrue(position, now, rate)
    if position.total_debt == 0:
        raise NoBorrowPosition(f"{position.owner} has no debt to repay")

    applied = min(amount, position.total_debt)
    to_interest = min(applied, position.accrued_interest)
    return (
        replace(
            position,
            accrued_interest=position.accrued_interest - to_interest,
            principal=position.principal - (applied - to_interest),
        ),
        applied,
    )


def apply_liquidation(
    position: Position,
    asset: str,
    seized_value: int,
    debt_repaid: int,
    pricing: CollateralPricing,
) -> tuple[Position, int]:
    """Remove seized collateral and the repaid debt.

    *seized_value* is an unweighted USD value; the *asset* tokens worth that
    much at the current price leave the position and the weighted value is
    recomputed from what remains.

    Returns:
        The updated position and the token amount seized.

    Raises:
        InsufficientCollateral: the *asset* balance is worth less than
            *seized_value*.
    """
    if seized_value < 0 or debt_repaid < 0:
        raise InvalidAmount("liquidation amounts must be non-negative")

    balance = position.collateral.get(asset, 0)
    if seized_value > 0 and balance == 0:
        raise InsufficientCollateral(f"{position.owner} holds no {asset}")
    tokens = pricing.value_to_tokens(asset, seized_value)
    if tokens > balance:
        raise InsufficientCollateral(
            f"seizing {tokens} {asset} exceeds balance {balance}"
        )

    collateral = dict(position.collateral)
    collateral[asset] = balance - tokens
    if collateral[asset] == 0:
        collateral.pop(asset)

    repaid = min(debt_repaid, position.total_debt)
    to_interest = min(repaid, position.accrued_interest)
    return (
        replace(
            position,
            collateral=collateral,
            weighted_collateral_value=pricing.weighted_value(collateral),
            accrued_interest=position.accrued_interest - to_interest,
            principal=position.principal - (repaid - to_interest),
        ),
        tokens,
    )
