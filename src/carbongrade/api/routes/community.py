from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException

from ...core.market import CarbonMarket
from ._body import require_field, require_str


def mount_community_api(app: FastAPI, market: CarbonMarket) -> None:
    """Mount gallery, leaderboard and visibility endpoints backed by `market.community`."""

    community = market.community

    @app.post("/api/tokens/{token_id}/visibility")
    def set_visibility(token_id: int, body: dict) -> dict[str, Any]:
        caller = require_str(body, "caller")
        try:
            display = community.set_visibility(token_id, caller, require_field(body, "public"))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return display.to_dict()

    @app.get("/api/tokens/{token_id}/display")
    def get_display(token_id: int, viewer: str | None = None) -> dict[str, Any]:
        return community.get_display(token_id, viewer).to_dict()

    @app.get("/api/gallery")
    def gallery(offset: int = 0, limit: int = 10) -> dict[str, Any]:
        try:
            total, page = community.gallery_page(offset=offset, limit=limit)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"total": total, "tokens": [d.to_dict() for d in page]}

    @app.get("/api/leaderboard")
    def leaderboard(limit: int = 10) -> list[dict[str, Any]]:
        try:
            entries = community.leaderboard(limit)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return [e.to_dict() for e in entries]

    @app.get("/api/community/stats")
    def stats() -> dict[str, Any]:
        return community.stats().to_dict()
