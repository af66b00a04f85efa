from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException

from ...core.market import CarbonMarket
from ...core.window import remaining_in
from ._body import require_field, require_int, require_str


def mount_registry_api(app: FastAPI, market: CarbonMarket) -> None:
    """Mount user and token endpoints backed by `market.registry`."""

    registry = market.registry

    @app.post("/api/users")
    def register_user(body: dict) -> dict[str, Any]:
        address = require_str(body, "address")
        user_type = body.get("userType", "individual")
        try:
            user = registry.register_user(address, user_type)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return user.to_dict()

    @app.get("/api/users")
    def list_users() -> list[dict[str, Any]]:
        return [u.to_dict() for u in registry.list_users()]

    @app.get("/api/users/{address}")
    def get_user(address: str) -> dict[str, Any]:
        return registry.get_user(address).to_dict()

    @app.get("/api/users/{address}/tokens")
    def get_user_tokens(address: str) -> dict[str, Any]:
        return {
            "address": address,
            "minted": registry.get_user_tokens(address),
            "owned": registry.tokens_owned_by(address),
        }

    @app.get("/api/users/{address}/uploads")
    def get_user_uploads(address: str) -> dict[str, Any]:
        window = registry.upload_window(address)
        remaining = remaining_in(window, market.config.max_weekly_uploads)
        return {
            "address": address,
            "canUpload": remaining > 0,
            "remaining": remaining,
            "uploadsThisWeek": int(window.uploads_this_week),
            "weekStart": int(window.week_start),
            "maxWeeklyUploads": market.config.max_weekly_uploads,
        }

    @app.post("/api/tokens")
    def mint_token(body: dict) -> dict[str, Any]:
        recipient = require_str(body, "recipient")
        try:
            token_id = registry.mint_token(
                recipient,
                str(body.get("metadataURI", "")),
                str(body.get("theme", "")),
                require_field(body, "grade"),
                require_int(body, "score"),
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return registry.get_token(token_id).to_dict()

    @app.get("/api/tokens")
    def list_active_tokens(offset: int = 0, limit: int = 50) -> list[dict[str, Any]]:
        try:
            tokens = registry.list_active_tokens(offset=offset, limit=limit)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return [t.to_dict() for t in tokens]

    @app.get("/api/tokens/{token_id}")
    def get_token(token_id: int) -> dict[str, Any]:
        return registry.get_token(token_id).to_dict()

    @app.post("/api/tokens/{token_id}/grade")
    def update_grade(token_id: int, body: dict) -> dict[str, Any]:
        caller = require_str(body, "caller")
        try:
            token = registry.update_grade(
                token_id,
                require_field(body, "grade"),
                require_int(body, "score"),
                str(body.get("metadataURI", "")),
                caller=caller,
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return token.to_dict()

    @app.post("/api/tokens/{token_id}/endorse")
    def endorse_token(token_id: int, body: dict) -> dict[str, Any]:
        endorser = require_str(body, "endorser")
        try:
            token = registry.endorse_token(token_id, endorser)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return token.to_dict()

    @app.post("/api/tokens/{token_id}/deactivate")
    def deactivate_token(token_id: int, body: dict) -> dict[str, Any]:
        caller = require_str(body, "caller")
        try:
            token = registry.deactivate_token(token_id, caller=caller)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return token.to_dict()

    @app.get("/api/tokens/{token_id}/endorsements/{endorser}")
    def has_endorsed(token_id: int, endorser: str) -> dict[str, Any]:
        registry.get_token(token_id)
        return {"tokenId": token_id, "endorser": endorser, "endorsed": registry.has_endorsed(token_id, endorser)}
