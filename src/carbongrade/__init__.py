from __future__ import annotations

from .core import (
    CarbonCommunity,
    CarbonExchange,
    CarbonGradeError,
    CarbonMarket,
    CarbonRegistry,
    EventLog,
    Grade,
    ListingStatus,
    MarketConfig,
    Settlement,
    UserType,
    replay,
)
from .runtime.server import CarbonServer, run
from .sdk.client import CarbonClient

__all__ = [
    "run",
    "CarbonServer",
    "CarbonClient",
    "CarbonMarket",
    "CarbonRegistry",
    "CarbonExchange",
    "CarbonCommunity",
    "CarbonGradeError",
    "EventLog",
    "Grade",
    "ListingStatus",
    "MarketConfig",
    "Settlement",
    "UserType",
    "replay",
]
