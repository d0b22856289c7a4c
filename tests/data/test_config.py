"""Tests for engine configuration."""

import pytest

from vantis_risk.config import EngineConfig
from vantis_risk.data.static_params import DEFAULT_INTEREST_PARAMS
from vantis_risk.protocol.errors import InvalidInput
from vantis_risk.protocol.params import RiskParameters

ENV_VARS = [
    "VANTIS_ADMIN",
    "VANTIS_STALENESS_SECONDS",
    "VANTIS_CLOSE_FACTOR_BP",
    "VANTIS_K_FACTOR_BP",
    "VANTIS_TIME_HORIZON_DAYS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestEngineConfig:
    def test_defaults(self) -> None:
        config = EngineConfig()
        assert config.validate() is config
        assert config.admin == "admin"
        assert config.stable_asset == "USDC"
        assert config.staleness_threshold == 300
        assert config.close_factor == 5000
        assert config.params == RiskParameters()
        assert config.interest == DEFAULT_INTEREST_PARAMS

    def test_invalid_close_factor(self) -> None:
        with pytest.raises(InvalidInput):
            EngineConfig(close_factor=0).validate()

    def test_invalid_staleness(self) -> None:
        with pytest.raises(InvalidInput):
            EngineConfig(staleness_threshold=0).validate()

    def test_invalid_nested_params(self) -> None:
        with pytest.raises(InvalidInput):
            EngineConfig(params=RiskParameters(time_horizon_days=0)).validate()


class TestFromEnv:
    def test_unset_uses_defaults(self) -> None:
        assert EngineConfig.from_env() == EngineConfig()

    def test_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("VANTIS_ADMIN", "ops")
        monkeypatch.setenv("VANTIS_STALENESS_SECONDS", "600")
        monkeypatch.setenv("VANTIS_CLOSE_FACTOR_BP", "10000")
        monkeypatch.setenv("VANTIS_K_FACTOR_BP", "250")
        monkeypatch.setenv("VANTIS_TIME_HORIZON_DAYS", "7")

        config = EngineConfig.from_env()
        assert config.admin == "ops"
        assert config.staleness_threshold == 600
        assert config.close_factor == 10_000
        assert config.params.k_factor == 250
        assert config.params.time_horizon_days == 7

    def test_blank_is_default(self, monkeypatch) -> None:
        monkeypatch.setenv("VANTIS_STALENESS_SECONDS", "  ")
        assert EngineConfig.from_env().staleness_threshold == 300

    def test_non_integer(self, monkeypatch) -> None:
        monkeypatch.setenv("VANTIS_CLOSE_FACTOR_BP", "half")
        with pytest.raises(InvalidInput):
            EngineConfig.from_env()

    def test_out_of_range(self, monkeypatch) -> None:
        monkeypatch.setenv("VANTIS_TIME_HORIZON_DAYS", "0")
        with pytest.raises(InvalidInput):
            EngineConfig.from_env()
