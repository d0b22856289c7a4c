"""Lending pool state and rate-impact simulation."""

from dataclasses import dataclass

from vantis_risk.protocol.errors import InsufficientLiquidity, InvalidAmount
from vantis_risk.protocol.interest_rate import InterestRateModel, calculate_utilization


@dataclass
class PoolState:
    """Mutable pool state for simulation.

    ``total_liquidity`` counts everything supplied, lent out or not.
    """

    total_liquidity: int
    total_borrows: int

    @property
    def available(self) -> int:
        return self.total_liquidity - self.total_borrows

    @property
    def utilization(self) -> int:
        return calculate_utilization(self.total_borrows, self.total_liquidity)


class PoolModel:
    """Pool simulation combining state with rate model."""

    def __init__(self, state: PoolState, rate_model: InterestRateModel) -> None:
        self.state = state
        self.rate_model = rate_model

    @property
    def utilization(self) -> int:
        return self.state.utilization

    @property
    def borrow_rate(self) -> int:
        return self.rate_model.borrow_rate(self.utilization)

    @property
    def supply_rate(self) -> int:
        return self.rate_model.supply_rate(self.utilization)

    def _impact(self, total_liquidity: int, total_borrows: int) -> dict[str, int]:
        u_after = calculate_utilization(total_borrows, total_liquidity)
        return {
            "utilization_before": self.utilization,
            "utilization_after": u_after,
            "borrow_rate_before": self.borrow_rate,
            "borrow_rate_after": self.rate_model.borrow_rate(u_after),
            "supply_rate_before": self.supply_rate,
            "supply_rate_after": self.rate_model.supply_rate(u_after),
        }

    def simulate_borrow(self, amount: int) -> dict[str, int]:
        """Simulate the impact of an additional borrow on rates.

        Borrowing draws down available liquidity, so only total borrows move.
        Does NOT mutate state.
        """
        if amount <= 0:
            raise InvalidAmount("borrow amount must be positive")
        if amount > self.state.available:
            raise InsufficientLiquidity(
                f"borrow of {amount} exceeds available liquidity {self.state.available}"
            )
        return self._impact(self.state.total_liquidity, self.state.total_borrows + amount)

    def simulate_repay(self, amount: int) -> dict[str, int]:
        """Simulate a repayment; borrows shrink, liquidity is unchanged.

        Does NOT mutate state.
        """
        if amount <= 0:
            raise InvalidAmount("repay amount must be positive")
        new_borrows = max(0, self.state.total_borrows - amount)
        return self._impact(self.state.total_liquidity, new_borrows)

    def simulate_supply(self, amount: int) -> dict[str, int]:
        """Simulate new liquidity arriving. Does NOT mutate state."""
        if amount <= 0:
            raise InvalidAmount("supply amount must be positive")
        return self._impact(self.state.total_liquidity + amount, self.state.total_borrows)

    def apply_borrow(self, amount: int) -> None:
        self.simulate_borrow(amount)
        self.state.total_borrows += amount

    def apply_repay(self, amount: int) -> None:
        self.simulate_repay(amount)
        self.state.total_borrows = max(0, self.state.total_borrows - amount)

    def apply_supply(self, amount: int) -> None:
        self.simulate_supply(amount)
        self.state.total_liquidity += amount
