from __future__ import annotations

from typing import Any

from fastapi import HTTPException


def require_field(body: dict[str, Any], name: str) -> Any:
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    if name not in body or body[name] is None:
        raise HTTPException(status_code=400, detail=f"Missing field: {name}")
    return body[name]


def require_str(body: dict[str, Any], name: str) -> str:
    value = str(require_field(body, name)).strip()
    if not value:
        raise HTTPException(status_code=400, detail=f"{name} cannot be empty")
    return value


def require_int(body: dict[str, Any], name: str) -> int:
    value = require_field(body, name)
    if isinstance(value, bool):
        raise HTTPException(status_code=400, detail=f"{name} must be an integer")
    try:
        out = int(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"{name} must be an integer") from None
    if isinstance(value, float) and float(out) != value:
        raise HTTPException(status_code=400, detail=f"{name} must be an integer")
    return out
