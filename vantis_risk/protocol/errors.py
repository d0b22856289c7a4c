"""Typed error hierarchy for the risk core.

Every failure the core can report is a ``RiskError`` subclass with a stable
``code`` so hosts can map it onto their own result or status types.
"""


class RiskError(Exception):
    """Base class for all risk-core failures."""

    code = "risk_error"


class Unauthorized(RiskError):
    code = "unauthorized"


class AlreadyInitialized(RiskError):
    code = "already_initialized"


class NotInitialized(RiskError):
    code = "not_initialized"


class AssetNotSupported(RiskError):
    code = "asset_not_supported"


class StaleData(RiskError):
    """Input snapshot is too old to act on."""

    code = "stale_data"


class StalePrice(StaleData):
    code = "stale_price"


class VersionConflict(StaleData):
    """An optimistic write lost the race; re-read and recompute."""

    code = "version_conflict"


class InvalidInput(RiskError, ValueError):
    code = "invalid_input"


class InvalidPrice(InvalidInput):
    code = "invalid_price"


class InvalidAmount(InvalidInput):
    code = "invalid_amount"


class InsufficientHistory(RiskError):
    code = "insufficient_history"


class NotLiquidatable(RiskError):
    code = "not_liquidatable"


class AlreadyHealthy(RiskError):
    code = "already_healthy"


class PositionLiquidatable(RiskError):
    """Position is past the stop-loss zone and can only be liquidated."""

    code = "position_liquidatable"


class StopLossNotEnabled(RiskError):
    code = "stop_loss_not_enabled"


class InsufficientCollateral(RiskError):
    code = "insufficient_collateral"


class WithdrawalWouldLiquidate(RiskError):
    code = "withdrawal_would_liquidate"


class InsufficientLiquidity(RiskError):
    code = "insufficient_liquidity"


class NoBorrowPosition(RiskError):
    code = "no_borrow_position"


class ArithmeticFloor(RiskError):
    """A saturating subtraction bottomed out at zero."""

    code = "arithmetic_floor"


class ArithmeticOverflow(RiskError, OverflowError):
    """A fixed-point product left the signed 128-bit range."""

    code = "arithmetic_overflow"


class BackendUnavailable(RiskError):
    """The lending market or oracle collaborator could not be reached."""

    code = "backend_unavailable"
