from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .grades import Grade, ListingStatus, UserType


@dataclass(frozen=True, kw_only=True)
class User:
    address: str
    user_type: UserType
    registered_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "userType": self.user_type.name.lower(),
            "registeredAt": int(self.registered_at),
        }


@dataclass(frozen=True, kw_only=True)
class Token:
    """Snapshot of a token's grading state.

    Notes:
    - `minter` is the original recipient and never changes; `owner` moves on sale.
    - `grade` and `score` are set independently; neither is derived from the other.
    - Retired tokens keep their record with `is_active=False`.
    """

    id: int
    owner: str
    minter: str
    grade: Grade
    score: int
    endorsements: int
    theme: str
    metadata_uri: str
    is_active: bool
    minted_at: int
    last_updated: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": int(self.id),
            "owner": self.owner,
            "minter": self.minter,
            "grade": self.grade.name,
            "score": int(self.score),
            "endorsements": int(self.endorsements),
            "theme": self.theme,
            "metadataURI": self.metadata_uri,
            "isActive": bool(self.is_active),
            "mintedAt": int(self.minted_at),
            "lastUpdated": int(self.last_updated),
        }


@dataclass(frozen=True, kw_only=True)
class Listing:
    listing_id: int
    token_id: int
    seller: str
    base_price: int
    listed_at: int
    status: ListingStatus = ListingStatus.ACTIVE
    buyer: str | None = None
    sale_price: int | None = None
    closed_at: int | None = None

    @property
    def is_active(self) -> bool:
        return self.status is ListingStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        return {
            "listingId": int(self.listing_id),
            "tokenId": int(self.token_id),
            "seller": self.seller,
            "basePrice": int(self.base_price),
            "listedAt": int(self.listed_at),
            "status": self.status.value,
            "buyer": self.buyer,
            "salePrice": None if self.sale_price is None else int(self.sale_price),
            "closedAt": None if self.closed_at is None else int(self.closed_at),
        }


@dataclass(frozen=True, kw_only=True)
class Settlement:
    """Outcome of a purchase.

    `seller_proceeds + fee + royalty == sale_price`; `refund` is what the buyer
    overpaid and is owed back.
    """

    listing_id: int
    token_id: int
    seller: str
    buyer: str
    sale_price: int
    seller_proceeds: int
    fee: int
    royalty: int
    refund: int

    def as_split(self) -> tuple[int, int, int]:
        return self.seller_proceeds, self.fee, self.royalty

    def to_dict(self) -> dict[str, Any]:
        return {
            "listingId": int(self.listing_id),
            "tokenId": int(self.token_id),
            "seller": self.seller,
            "buyer": self.buyer,
            "salePrice": int(self.sale_price),
            "sellerProceeds": int(self.seller_proceeds),
            "fee": int(self.fee),
            "royalty": int(self.royalty),
            "refund": int(self.refund),
        }


@dataclass(frozen=True)
class MarketStats:
    total_listings: int
    active_listings: int
    total_sales: int
    total_volume: int

    def to_dict(self) -> dict[str, int]:
        return {
            "totalListings": int(self.total_listings),
            "activeListings": int(self.active_listings),
            "totalSales": int(self.total_sales),
            "totalVolume": int(self.total_volume),
        }


@dataclass(frozen=True, kw_only=True)
class Quote:
    """Price of an active listing, read in one snapshot with the grade it used."""

    token_id: int
    listing_id: int
    base_price: int
    grade: Grade
    multiplier_bps: int
    sale_price: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "tokenId": int(self.token_id),
            "listingId": int(self.listing_id),
            "basePrice": int(self.base_price),
            "grade": self.grade.name,
            "multiplierBps": int(self.multiplier_bps),
            "salePrice": int(self.sale_price),
        }


@dataclass(frozen=True, kw_only=True)
class TokenDisplay:
    token_id: int
    owner: str
    grade: Grade
    score: int
    endorsements: int
    theme: str
    metadata_uri: str
    is_public: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "tokenId": int(self.token_id),
            "owner": self.owner,
            "grade": self.grade.name,
            "score": int(self.score),
            "endorsements": int(self.endorsements),
            "theme": self.theme,
            "metadataURI": self.metadata_uri,
            "isPublic": bool(self.is_public),
        }


@dataclass(frozen=True, kw_only=True)
class LeaderboardEntry:
    address: str
    total_score: int
    token_count: int
    average_grade: Grade

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "totalScore": int(self.total_score),
            "tokenCount": int(self.token_count),
            "averageGrade": self.average_grade.name,
        }


@dataclass(frozen=True)
class CommunityStats:
    """Totals over active tokens. `average_grade` is floored and is F when empty."""

    total_users: int
    total_tokens: int
    total_score: int
    average_grade: Grade

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalUsers": int(self.total_users),
            "totalTokens": int(self.total_tokens),
            "totalScore": int(self.total_score),
            "averageGrade": self.average_grade.name,
        }
