from __future__ import annotations

from .config import BPS_DENOMINATOR, DEFAULT_GRADE_MULTIPLIERS, SECONDS_PER_WEEK, MarketConfig
from .errors import (
    ERRORS_BY_KIND,
    AlreadyEndorsed,
    AlreadyListed,
    AlreadyRegistered,
    CarbonGradeError,
    ConfigError,
    InsufficientPayment,
    InvalidPrice,
    ListingNotFound,
    NoActiveListing,
    NotOwner,
    NotRegistered,
    NotSeller,
    SelfEndorsement,
    TokenInactive,
    TokenNotFound,
    Unauthorized,
    UploadLimitExceeded,
)
from .community import CarbonCommunity
from .exchange import CarbonExchange
from .grades import Grade, ListingStatus, UserType
from .ledger import EventLog, LedgerEvent
from .market import CarbonMarket, replay
from .records import (
    CommunityStats,
    LeaderboardEntry,
    Listing,
    MarketStats,
    Quote,
    Settlement,
    Token,
    TokenDisplay,
    User,
)
from .registry import CarbonRegistry, GraderPolicy, allow_any_grader, config_grader_policy
from .window import UploadWindow, effective_window

__all__ = [
    "BPS_DENOMINATOR",
    "DEFAULT_GRADE_MULTIPLIERS",
    "SECONDS_PER_WEEK",
    "MarketConfig",
    "Grade",
    "UserType",
    "ListingStatus",
    "User",
    "Token",
    "Listing",
    "Settlement",
    "MarketStats",
    "Quote",
    "TokenDisplay",
    "LeaderboardEntry",
    "CommunityStats",
    "UploadWindow",
    "effective_window",
    "EventLog",
    "LedgerEvent",
    "CarbonRegistry",
    "CarbonExchange",
    "CarbonCommunity",
    "CarbonMarket",
    "replay",
    "GraderPolicy",
    "config_grader_policy",
    "allow_any_grader",
    "ERRORS_BY_KIND",
    "CarbonGradeError",
    "ConfigError",
    "AlreadyRegistered",
    "NotRegistered",
    "TokenNotFound",
    "TokenInactive",
    "NotOwner",
    "NotSeller",
    "Unauthorized",
    "UploadLimitExceeded",
    "AlreadyListed",
    "NoActiveListing",
    "ListingNotFound",
    "InvalidPrice",
    "InsufficientPayment",
    "AlreadyEndorsed",
    "SelfEndorsement",
]
