from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException

from ...core.market import CarbonMarket
from ._body import require_int, require_str


def mount_exchange_api(app: FastAPI, market: CarbonMarket) -> None:
    """Mount listing, settlement and balance endpoints backed by `market.exchange`."""

    exchange = market.exchange

    @app.post("/api/listings")
    def create_listing(body: dict) -> dict[str, Any]:
        try:
            listing = exchange.create_listing(
                require_int(body, "tokenId"),
                require_str(body, "seller"),
                require_int(body, "basePrice"),
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return listing.to_dict()

    @app.get("/api/listings")
    def list_active_listings(offset: int = 0, limit: int = 50, seller: str | None = None) -> list[dict[str, Any]]:
        if seller is not None:
            return [exchange.get_listing_by_id(i).to_dict() for i in exchange.seller_listings(seller)]
        try:
            listings = exchange.active_listings(offset=offset, limit=limit)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return [l.to_dict() for l in listings]

    @app.get("/api/listings/by-id/{listing_id}")
    def get_listing_by_id(listing_id: int) -> dict[str, Any]:
        return exchange.get_listing_by_id(listing_id).to_dict()

    @app.get("/api/listings/{token_id}")
    def get_listing(token_id: int) -> dict[str, Any]:
        return exchange.get_listing(token_id).to_dict()

    @app.get("/api/listings/{token_id}/quote")
    def quote(token_id: int) -> dict[str, Any]:
        return exchange.price_quote(token_id).to_dict()

    @app.patch("/api/listings/{token_id}")
    def update_listing_price(token_id: int, body: dict) -> dict[str, Any]:
        try:
            listing = exchange.update_listing_price(
                token_id,
                require_str(body, "caller"),
                require_int(body, "basePrice"),
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return listing.to_dict()

    @app.post("/api/listings/{token_id}/cancel")
    def cancel_listing(token_id: int, body: dict) -> dict[str, Any]:
        try:
            listing = exchange.cancel_listing(token_id, require_str(body, "caller"))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return listing.to_dict()

    @app.post("/api/listings/{token_id}/emergency-cancel")
    def emergency_cancel(token_id: int, body: dict) -> dict[str, Any]:
        try:
            listing = exchange.emergency_cancel(token_id, caller=require_str(body, "caller"))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return listing.to_dict()

    @app.post("/api/listings/{token_id}/purchase")
    def purchase(token_id: int, body: dict) -> dict[str, Any]:
        try:
            settlement = exchange.purchase(
                token_id,
                require_str(body, "buyer"),
                require_int(body, "payment"),
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return settlement.to_dict()

    @app.get("/api/tokens/{token_id}/suggested-price")
    def suggested_price(token_id: int) -> dict[str, Any]:
        return {"tokenId": token_id, "suggestedPrice": exchange.suggested_price(token_id)}

    @app.get("/api/users/{address}/balance")
    def balance(address: str) -> dict[str, Any]:
        return {"address": address, "balance": exchange.balance_of(address)}

    @app.post("/api/users/{address}/withdraw")
    def withdraw(address: str) -> dict[str, Any]:
        try:
            amount = exchange.withdraw(address)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"address": address, "amount": amount}

    @app.get("/api/market/stats")
    def stats() -> dict[str, int]:
        return exchange.stats().to_dict()
