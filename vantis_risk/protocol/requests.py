"""Execution requests handed to the lending-market collaborator."""

from dataclasses import dataclass
from enum import Enum


class RequestType(Enum):
    SUPPLY_COLLATERAL = 2
    WITHDRAW_COLLATERAL = 3
    BORROW = 4
    REPAY = 5
    FILL_USER_LIQUIDATION_AUCTION = 6


@dataclass(frozen=True)
class Request:
    """A single market action; ``amount`` is in the asset's native units."""

    request_type: RequestType
    address: str
    amount: int
