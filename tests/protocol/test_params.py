"""Tests for risk parameter validation."""

import pytest

from vantis_risk.protocol.errors import InvalidInput
from vantis_risk.protocol.params import RiskParameters


class TestRiskParameters:
    def test_defaults(self) -> None:
        params = RiskParameters()
        assert params.validate() is params
        assert params.k_factor == 100
        assert params.time_horizon_days == 30
        assert params.stop_loss_threshold == 10_200
        assert params.liquidation_threshold == 10_000
        assert params.target_health_factor == 10_500

    @pytest.mark.parametrize(
        "overrides",
        [
            {"time_horizon_days": 0},
            {"k_factor": -1},
            {"min_collateral_factor": 10_001},
            {"protocol_fee": -1},
            {"liquidation_penalty": -1},
            {"liquidation_threshold": 10_300},
            {"target_health_factor": 10_000},
        ],
    )
    def test_invalid(self, overrides: dict) -> None:
        with pytest.raises(InvalidInput):
            RiskParameters(**overrides).validate()

    def test_invalid_input_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            RiskParameters(time_horizon_days=-5).validate()
