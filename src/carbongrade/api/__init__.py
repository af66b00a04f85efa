from __future__ import annotations

import logging
import os
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.errors import (
    AlreadyEndorsed,
    AlreadyListed,
    AlreadyRegistered,
    CarbonGradeError,
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
from ..core.market import CarbonMarket
from .routes import mount_community_api, mount_exchange_api, mount_registry_api

log = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[CarbonGradeError], int] = {
    NotRegistered: 404,
    TokenNotFound: 404,
    ListingNotFound: 404,
    NoActiveListing: 404,
    NotOwner: 403,
    NotSeller: 403,
    Unauthorized: 403,
    SelfEndorsement: 403,
    AlreadyRegistered: 409,
    AlreadyListed: 409,
    AlreadyEndorsed: 409,
    TokenInactive: 409,
    InvalidPrice: 400,
    InsufficientPayment: 402,
    UploadLimitExceeded: 429,
}


def error_body(exc: CarbonGradeError) -> dict[str, Any]:
    body: dict[str, Any] = {"error": exc.kind, "detail": exc.detail}
    if isinstance(exc, UploadLimitExceeded) and exc.retry_at is not None:
        body["retryAt"] = int(exc.retry_at)
    if isinstance(exc, InsufficientPayment):
        body["required"] = exc.required
        body["offered"] = exc.offered
    return body


def create_api_app(market: CarbonMarket | None = None) -> FastAPI:
    market = market if market is not None else CarbonMarket.create()
    app = FastAPI(title="carbongrade", version="0.1.0")
    app.state.market = market

    origins = [o.strip() for o in os.getenv("CARBONGRADE_CORS_ORIGINS", "").split(",") if o.strip()]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(CarbonGradeError)
    async def _carbon_error(request: Request, exc: CarbonGradeError) -> JSONResponse:
        status = STATUS_BY_ERROR.get(type(exc), 400)
        log.debug("%s %s -> %d %s", request.method, request.url.path, status, exc.kind)
        return JSONResponse(status_code=status, content=error_body(exc))

    mount_registry_api(app, market)
    mount_exchange_api(app, market)
    mount_community_api(app, market)

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/api/events")
    def events(since: int = 0) -> dict[str, Any]:
        # Polling endpoint: log tail after `since`.
        if since < 0:
            raise HTTPException(status_code=400, detail="since must be >= 0")
        tail = market.events.since(since)
        return {
            "revision": market.events.latest_seq(),
            "events": [ev.to_dict() for ev in tail],
        }

    @app.get("/api/config")
    def get_config() -> dict[str, Any]:
        return market.config.to_dict()

    @app.post("/api/reset")
    def reset() -> dict[str, bool]:
        market.reset()
        return {"ok": True}

    return app
