"""Health factor and status classification."""

from dataclasses import dataclass
from enum import Enum

from vantis_risk.protocol.errors import InvalidAmount
from vantis_risk.protocol.fixed_point import BPS, I128_MAX, mul_div

HEALTHY_THRESHOLD = 11000  # 1.10
WARNING_THRESHOLD = 10500  # 1.05, also the post-liquidation target
CRITICAL_THRESHOLD = 10200  # 1.02, stop-loss zone starts here
LIQUIDATION_THRESHOLD = 10000  # 1.00


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    LIQUIDATABLE = "liquidatable"


def health_factor(collateral_value: int, debt_value: int) -> int:
    """Weighted collateral over debt in bp; ``I128_MAX`` when debt-free."""
    if debt_value == 0:
        return I128_MAX
    return mul_div(collateral_value, BPS, debt_value)


def classify_health(
    value: int,
    healthy: int = HEALTHY_THRESHOLD,
    critical: int = CRITICAL_THRESHOLD,
    liquidation: int = LIQUIDATION_THRESHOLD,
) -> HealthStatus:
    """Place a health value on the status ladder.

    ``>= healthy`` is Healthy, ``>= critical`` Warning, ``>= liquidation``
    Critical, anything lower Liquidatable.
    """
    if value >= healthy:
        return HealthStatus.HEALTHY
    if value >= critical:
        return HealthStatus.WARNING
    if value >= liquidation:
        return HealthStatus.CRITICAL
    return HealthStatus.LIQUIDATABLE


@dataclass(frozen=True)
class HealthFactor:
    """Health snapshot of one position."""

    value: int
    status: HealthStatus
    collateral_value: int
    debt_value: int
    shortfall: int  # collateral needed to get back to HEALTHY_THRESHOLD
    withdrawable: int  # collateral removable while staying at HEALTHY_THRESHOLD

    @classmethod
    def calculate(cls, collateral_value: int, debt_value: int) -> "HealthFactor":
        if collateral_value < 0 or debt_value < 0:
            raise InvalidAmount("collateral and debt must be non-negative")

        value = health_factor(collateral_value, debt_value)

        if debt_value == 0:
            shortfall = 0
            withdrawable = collateral_value
        else:
            required = mul_div(debt_value, HEALTHY_THRESHOLD, BPS)
            shortfall = max(0, required - collateral_value)
            withdrawable = max(0, collateral_value - required)

        return cls(
            value=value,
            status=classify_health(value),
            collateral_value=collateral_value,
            debt_value=debt_value,
            shortfall=shortfall,
            withdrawable=withdrawable,
        )

    @property
    def is_healthy(self) -> bool:
        return self.status is HealthStatus.HEALTHY

    @property
    def is_liquidatable(self) -> bool:
        return self.status is HealthStatus.LIQUIDATABLE

    @property
    def in_stop_loss_zone(self) -> bool:
        return self.status is HealthStatus.CRITICAL


def is_withdrawal_safe(
    current_collateral: int,
    withdrawal_value: int,
    debt_value: int,
    min_health: int = LIQUIDATION_THRESHOLD,
) -> bool:
    """Whether removing *withdrawal_value* keeps health at or above *min_health*."""
    if debt_value == 0:
        return True
    remaining = current_collateral - withdrawal_value
    if remaining < 0:
        return False
    return health_factor(remaining, debt_value) >= min_health
