from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from ..errors import (
    AlreadyListed,
    InsufficientPayment,
    InvalidPrice,
    ListingNotFound,
    NoActiveListing,
    NotOwner,
    NotSeller,
    TokenInactive,
    Unauthorized,
)
from ..grades import ListingStatus
from ..records import Listing, MarketStats, Quote, Settlement
from ..registry import CarbonRegistry
from .pricing import sale_price, split_sale, suggested_price

log = logging.getLogger(__name__)

FIRST_LISTING_ID = 1


class CarbonExchange:
    """Listings, grade-weighted pricing and settlement.

    Shares the registry's lock, config, clock and event log. Payouts accrue to
    per-address balances and are released with `withdraw`.
    """

    def __init__(self, registry: CarbonRegistry) -> None:
        self.registry = registry
        self.config = registry.config
        self.lock = registry.lock
        self.events = registry.events
        with self.lock:
            self._reset_state_locked()

    def _reset_state_locked(self) -> None:
        self._listings: dict[int, Listing] = {}
        self._active_by_token: dict[int, int] = {}
        self._seller_listings: dict[str, list[int]] = {}
        self._balances: dict[str, int] = {}
        self._next_listing_id = FIRST_LISTING_ID
        self._total_sales = 0
        self._total_volume = 0

    def reset(self) -> None:
        with self.lock:
            self._reset_state_locked()

    # --- helpers -----------------------------------------------------------

    @staticmethod
    def _require_amount(value: Any, *, name: str) -> int:
        if isinstance(value, bool):
            raise ValueError(f"{name} must be an integer")
        try:
            amount = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"{name} must be an integer, got {value!r}") from None
        if isinstance(value, float) and float(amount) != value:
            raise ValueError(f"{name} must be a whole number of base units, got {value!r}")
        return amount

    def _require_active_listing_locked(self, token_id: int) -> Listing:
        listing_id = self._active_by_token.get(int(token_id))
        if listing_id is None:
            raise NoActiveListing(f"Token {token_id} has no active listing")
        return self._listings[listing_id]

    def _close_locked(self, listing: Listing, status: ListingStatus, ts: int, **changes: Any) -> Listing:
        closed = replace(listing, status=status, closed_at=ts, **changes)
        self._listings[listing.listing_id] = closed
        self._active_by_token.pop(listing.token_id, None)
        return closed

    def _credit_locked(self, address: str, amount: int) -> None:
        if amount:
            self._balances[address] = self._balances.get(address, 0) + int(amount)

    # --- listings ----------------------------------------------------------

    def create_listing(self, token_id: int, seller: str, base_price: int, *, now: int | None = None) -> Listing:
        who = str(seller or "").strip()
        if not who:
            raise ValueError("seller cannot be empty")
        price = self._require_amount(base_price, name="base_price")
        with self.lock:
            ts = self.registry.now_locked(now)
            token = self.registry.require_token_locked(token_id)
            if not token.is_active:
                raise TokenInactive(f"Token {token.id} is inactive")
            if token.owner != who:
                raise NotOwner(f"{who} does not own token {token.id}")
            if token.id in self._active_by_token:
                raise AlreadyListed(f"Token {token.id} is already listed")
            if price <= 0:
                raise InvalidPrice(f"base_price must be > 0, got {price}")

            listing = Listing(
                listing_id=self._next_listing_id,
                token_id=token.id,
                seller=who,
                base_price=price,
                listed_at=ts,
            )
            self._next_listing_id += 1
            self._listings[listing.listing_id] = listing
            self._active_by_token[token.id] = listing.listing_id
            self._seller_listings.setdefault(who, []).append(listing.listing_id)
            self.registry.commit_time_locked(ts)
            self.events.append(
                "create_listing",
                who,
                ts,
                {"tokenId": token.id, "listingId": listing.listing_id, "basePrice": price},
            )
            log.info("listing %d: token %d by %s at base %d", listing.listing_id, token.id, who, price)
            return listing

    def cancel_listing(self, token_id: int, caller: str, *, now: int | None = None) -> Listing:
        who = str(caller or "").strip()
        with self.lock:
            ts = self.registry.now_locked(now)
            listing = self._require_active_listing_locked(token_id)
            if listing.seller != who:
                raise NotSeller(f"{who} is not the seller of listing {listing.listing_id}")
            closed = self._close_locked(listing, ListingStatus.CANCELLED, ts)
            self.registry.commit_time_locked(ts)
            self.events.append("cancel_listing", who, ts, {"tokenId": listing.token_id, "listingId": listing.listing_id})
            log.info("listing %d cancelled by seller", listing.listing_id)
            return closed

    def emergency_cancel(self, token_id: int, *, caller: str, now: int | None = None) -> Listing:
        who = str(caller or "").strip()
        with self.lock:
            ts = self.registry.now_locked(now)
            if who != self.config.operator:
                raise Unauthorized(f"{who} is not the marketplace operator")
            listing = self._require_active_listing_locked(token_id)
            closed = self._close_locked(listing, ListingStatus.CANCELLED, ts)
            self.registry.commit_time_locked(ts)
            self.events.append("emergency_cancel", who, ts, {"tokenId": listing.token_id, "listingId": listing.listing_id})
            log.warning("listing %d cancelled by operator", listing.listing_id)
            return closed

    def update_listing_price(self, token_id: int, caller: str, new_price: int, *, now: int | None = None) -> Listing:
        who = str(caller or "").strip()
        price = self._require_amount(new_price, name="new_price")
        with self.lock:
            ts = self.registry.now_locked(now)
            listing = self._require_active_listing_locked(token_id)
            if listing.seller != who:
                raise NotSeller(f"{who} is not the seller of listing {listing.listing_id}")
            if price <= 0:
                raise InvalidPrice(f"new_price must be > 0, got {price}")
            updated = replace(listing, base_price=price)
            self._listings[listing.listing_id] = updated
            self.registry.commit_time_locked(ts)
            self.events.append(
                "update_listing_price",
                who,
                ts,
                {"tokenId": listing.token_id, "listingId": listing.listing_id, "basePrice": price},
            )
            log.info("listing %d repriced %d -> %d", listing.listing_id, listing.base_price, price)
            return updated

    # --- pricing -----------------------------------------------------------

    def price_quote(self, token_id: int) -> Quote:
        """Listing, grade and sale price of an active listing, read under one lock."""
        with self.lock:
            listing = self._require_active_listing_locked(token_id)
            token = self.registry.require_token_locked(listing.token_id)
            return Quote(
                token_id=token.id,
                listing_id=listing.listing_id,
                base_price=listing.base_price,
                grade=token.grade,
                multiplier_bps=self.config.multiplier_for(token.grade),
                sale_price=sale_price(self.config, listing.base_price, token.grade),
            )

    def quote(self, token_id: int) -> int:
        """Sale price of the active listing at the token's current grade."""
        return self.price_quote(token_id).sale_price

    def suggested_price(self, token_id: int) -> int:
        with self.lock:
            token = self.registry.require_token_locked(token_id)
            return suggested_price(self.config, token.grade)

    # --- settlement --------------------------------------------------------

    def purchase(self, token_id: int, buyer: str, payment: int, *, now: int | None = None) -> Settlement:
        who = str(buyer or "").strip()
        if not who:
            raise ValueError("buyer cannot be empty")
        paid = self._require_amount(payment, name="payment")
        if paid < 0:
            raise ValueError("payment must be >= 0")
        with self.lock:
            ts = self.registry.now_locked(now)
            listing = self._require_active_listing_locked(token_id)
            token = self.registry.require_token_locked(listing.token_id)
            if not token.is_active:
                raise TokenInactive(f"Token {token.id} is inactive")

            price = sale_price(self.config, listing.base_price, token.grade)
            if paid < price:
                log.debug("purchase of token %d rejected: offered %d < %d", token.id, paid, price)
                raise InsufficientPayment(
                    f"Payment {paid} is below the sale price {price}",
                    required=price,
                    offered=paid,
                )
            proceeds, fee, royalty = split_sale(self.config, price)

            self.registry.transfer_locked(token.id, listing.seller, who, ts)
            self._close_locked(listing, ListingStatus.SOLD, ts, buyer=who, sale_price=price)
            self._credit_locked(listing.seller, proceeds)
            self._credit_locked(self.config.operator, fee)
            self._credit_locked(self.config.royalty_beneficiary, royalty)
            self._credit_locked(who, paid - price)
            self._total_sales += 1
            self._total_volume += price

            settlement = Settlement(
                listing_id=listing.listing_id,
                token_id=token.id,
                seller=listing.seller,
                buyer=who,
                sale_price=price,
                seller_proceeds=proceeds,
                fee=fee,
                royalty=royalty,
                refund=paid - price,
            )
            self.events.append(
                "purchase",
                who,
                ts,
                {"tokenId": token.id, "listingId": listing.listing_id, "payment": paid, "salePrice": price},
            )
            log.info(
                "token %d sold %s -> %s at %d (grade %s; fee %d, royalty %d, refund %d)",
                token.id,
                listing.seller,
                who,
                price,
                token.grade.name,
                fee,
                royalty,
                paid - price,
            )
            return settlement

    def balance_of(self, address: str) -> int:
        with self.lock:
            return int(self._balances.get(str(address).strip(), 0))

    def withdraw(self, address: str, *, now: int | None = None) -> int:
        who = str(address or "").strip()
        if not who:
            raise ValueError("address cannot be empty")
        with self.lock:
            ts = self.registry.now_locked(now)
            amount = self._balances.pop(who, 0)
            self.registry.commit_time_locked(ts)
            self.events.append("withdraw", who, ts, {"amount": int(amount)})
            log.info("withdrawal of %d by %s", amount, who)
            return int(amount)

    # --- queries -----------------------------------------------------------

    def get_listing(self, token_id: int) -> Listing:
        with self.lock:
            return self._require_active_listing_locked(token_id)

    def get_listing_by_id(self, listing_id: int) -> Listing:
        with self.lock:
            listing = self._listings.get(int(listing_id))
            if listing is None:
                raise ListingNotFound(f"Listing {listing_id} does not exist")
            return listing

    def is_listed(self, token_id: int) -> bool:
        with self.lock:
            return int(token_id) in self._active_by_token

    def active_listings(self, offset: int = 0, limit: int = 50) -> list[Listing]:
        if int(offset) < 0:
            raise ValueError("offset must be >= 0")
        if int(limit) <= 0:
            raise ValueError("limit must be a positive integer")
        with self.lock:
            ids = sorted(self._active_by_token.values())
            return [self._listings[i] for i in ids[int(offset) : int(offset) + int(limit)]]

    def seller_listings(self, address: str) -> list[int]:
        with self.lock:
            return list(self._seller_listings.get(str(address).strip(), []))

    def stats(self) -> MarketStats:
        with self.lock:
            return MarketStats(
                total_listings=len(self._listings),
                active_listings=len(self._active_by_token),
                total_sales=self._total_sales,
                total_volume=self._total_volume,
            )
