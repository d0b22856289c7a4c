"""Global risk parameters."""

from dataclasses import dataclass

from vantis_risk.protocol.errors import InvalidInput
from vantis_risk.protocol.fixed_point import BPS


@dataclass(frozen=True)
class RiskParameters:
    """Protocol-wide risk knobs, all in basis points except the horizon."""

    k_factor: int = 100  # volatility multiplier, 100 = 1.0x
    time_horizon_days: int = 30
    stop_loss_threshold: int = 10200
    liquidation_threshold: int = 10000
    target_health_factor: int = 10500
    liquidation_penalty: int = 500
    protocol_fee: int = 100
    min_collateral_factor: int = 3000

    def validate(self) -> "RiskParameters":
        """Raise ``InvalidInput`` when the parameters are inconsistent."""
        if self.k_factor < 0:
            raise InvalidInput("k_factor must be non-negative")
        if self.time_horizon_days <= 0:
            raise InvalidInput("time_horizon_days must be positive")
        if not 0 <= self.min_collateral_factor <= BPS:
            raise InvalidInput("min_collateral_factor must be within [0, 10000] bp")
        if not 0 <= self.protocol_fee <= BPS:
            raise InvalidInput("protocol_fee must be within [0, 10000] bp")
        if self.liquidation_penalty < 0:
            raise InvalidInput("liquidation_penalty must be non-negative")
        if self.liquidation_threshold > self.stop_loss_threshold:
            raise InvalidInput(
                "stop_loss_threshold must not be below liquidation_threshold"
            )
        if self.target_health_factor <= self.liquidation_threshold:
            raise InvalidInput(
                "target_health_factor must exceed liquidation_threshold"
            )
        return self
