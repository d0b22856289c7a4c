"""Engine configuration, injected at construction."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace

from vantis_risk.data.constants import DEFAULT_ADMIN, STABLE_ASSET
from vantis_risk.data.static_params import DEFAULT_INTEREST_PARAMS
from vantis_risk.protocol.errors import InvalidInput
from vantis_risk.protocol.interest_rate import InterestRateParams
from vantis_risk.protocol.liquidation import DEFAULT_CLOSE_FACTOR
from vantis_risk.protocol.params import RiskParameters

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidInput(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class EngineConfig:
    """Everything the risk engine needs that is not per-position state."""

    admin: str = DEFAULT_ADMIN
    stable_asset: str = STABLE_ASSET
    staleness_threshold: int = 300
    close_factor: int = DEFAULT_CLOSE_FACTOR
    params: RiskParameters = field(default_factory=RiskParameters)
    interest: InterestRateParams = DEFAULT_INTEREST_PARAMS

    def validate(self) -> "EngineConfig":
        if self.staleness_threshold <= 0:
            raise InvalidInput("staleness_threshold must be positive")
        if not 0 < self.close_factor <= 10_000:
            raise InvalidInput("close_factor must be within (0, 10000] bp")
        self.params.validate()
        self.interest.validate()
        return self

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from ``VANTIS_*`` environment variables.

        Reads ``VANTIS_ADMIN``, ``VANTIS_STALENESS_SECONDS``,
        ``VANTIS_CLOSE_FACTOR_BP``, ``VANTIS_K_FACTOR_BP`` and
        ``VANTIS_TIME_HORIZON_DAYS``. Unset variables keep their defaults.

        Returns
        -------
        EngineConfig
            A validated configuration.
        """
        defaults = cls()
        params = replace(
            defaults.params,
            k_factor=_env_int("VANTIS_K_FACTOR_BP", defaults.params.k_factor),
            time_horizon_days=_env_int(
                "VANTIS_TIME_HORIZON_DAYS", defaults.params.time_horizon_days
            ),
        )
        config = cls(
            admin=os.environ.get("VANTIS_ADMIN", defaults.admin),
            staleness_threshold=_env_int(
                "VANTIS_STALENESS_SECONDS", defaults.staleness_threshold
            ),
            close_factor=_env_int("VANTIS_CLOSE_FACTOR_BP", defaults.close_factor),
            params=params,
        )
        logger.debug("Loaded engine config %s", config)
        return config.validate()
