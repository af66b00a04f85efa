from __future__ import annotations

from typing import Any

from ..core.errors import ERRORS_BY_KIND, InsufficientPayment, UploadLimitExceeded
from ..core.grades import Grade, UserType


def _raise_for_response(res: Any, action: str) -> None:
    """Re-raise typed API errors as their core exception; anything else as RuntimeError."""

    if res.status_code < 400:
        return
    try:
        data = res.json()
    except ValueError:
        data = None

    if isinstance(data, dict) and data.get("error") in ERRORS_BY_KIND:
        cls = ERRORS_BY_KIND[str(data["error"])]
        detail = str(data.get("detail") or "")
        if cls is UploadLimitExceeded:
            raise UploadLimitExceeded(detail, retry_at=data.get("retryAt"))
        if cls is InsufficientPayment:
            raise InsufficientPayment(detail, required=data.get("required"), offered=data.get("offered"))
        raise cls(detail)

    raise RuntimeError(f"Failed to {action}: {res.status_code} {res.text}")


class CarbonClient:
    """HTTP client for a running carbongrade server.

    Methods mirror `CarbonRegistry`, `CarbonExchange` and `CarbonCommunity` and
    return the JSON records the API serves (camelCase keys). The server stamps
    every change with its own clock. Domain failures come back as the
    same `CarbonGradeError` subclasses the core raises.
    """

    def __init__(self, base_url: str = "http://127.0.0.1:8000", *, timeout_s: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = float(timeout_s)

    def _request(self, method: str, path: str, action: str, **kwargs: Any) -> Any:
        import httpx

        with httpx.Client(base_url=self.base_url, timeout=self.timeout_s) as client:
            res = client.request(method, path, **kwargs)
            _raise_for_response(res, action)
            return res.json()

    # --- server ------------------------------------------------------------

    def health(self) -> bool:
        data = self._request("GET", "/healthz", "check health")
        return bool(data.get("ok"))

    def get_config(self) -> dict[str, Any]:
        return self._request("GET", "/api/config", "get config")

    def get_events(self, since: int = 0) -> dict[str, Any]:
        return self._request("GET", "/api/events", "get events", params={"since": int(since)})

    def reset(self) -> None:
        self._request("POST", "/api/reset", "reset market")

    # --- registry ----------------------------------------------------------

    def register_user(self, address: str, user_type: UserType | str | int = UserType.INDIVIDUAL) -> dict[str, Any]:
        utype = UserType.from_any(user_type)
        body = {"address": address, "userType": utype.name.lower()}
        return self._request("POST", "/api/users", "register user", json=body)

    def list_users(self) -> list[dict[str, Any]]:
        return self._request("GET", "/api/users", "list users")

    def get_user(self, address: str) -> dict[str, Any]:
        return self._request("GET", f"/api/users/{address}", "get user")

    def get_user_tokens(self, address: str) -> list[int]:
        data = self._request("GET", f"/api/users/{address}/tokens", "get user tokens")
        return [int(i) for i in data.get("minted", [])]

    def uploads(self, address: str) -> dict[str, Any]:
        return self._request("GET", f"/api/users/{address}/uploads", "get upload window")

    def remaining_uploads(self, address: str) -> int:
        return int(self.uploads(address)["remaining"])

    def can_upload(self, address: str) -> bool:
        return bool(self.uploads(address)["canUpload"])

    def mint_token(self, recipient: str, metadata_uri: str, theme: str, grade: Grade | str | int, score: int) -> int:
        body = {
            "recipient": recipient,
            "metadataURI": metadata_uri,
            "theme": theme,
            "grade": Grade.from_any(grade).name,
            "score": int(score),
        }
        data = self._request("POST", "/api/tokens", "mint token", json=body)
        return int(data["id"])

    def get_token(self, token_id: int) -> dict[str, Any]:
        return self._request("GET", f"/api/tokens/{int(token_id)}", "get token")

    def list_active_tokens(self, offset: int = 0, limit: int = 50) -> list[dict[str, Any]]:
        return self._request("GET", "/api/tokens", "list tokens", params={"offset": int(offset), "limit": int(limit)})

    def update_grade(
        self,
        token_id: int,
        grade: Grade | str | int,
        score: int,
        metadata_uri: str,
        *,
        caller: str,
    ) -> dict[str, Any]:
        body = {"caller": caller, "grade": Grade.from_any(grade).name, "score": int(score), "metadataURI": metadata_uri}
        return self._request("POST", f"/api/tokens/{int(token_id)}/grade", "update grade", json=body)

    def endorse_token(self, token_id: int, endorser: str) -> dict[str, Any]:
        body = {"endorser": endorser}
        return self._request("POST", f"/api/tokens/{int(token_id)}/endorse", "endorse token", json=body)

    def deactivate_token(self, token_id: int, *, caller: str) -> dict[str, Any]:
        body = {"caller": caller}
        return self._request("POST", f"/api/tokens/{int(token_id)}/deactivate", "deactivate token", json=body)

    # --- exchange ----------------------------------------------------------

    def create_listing(self, token_id: int, seller: str, base_price: int) -> dict[str, Any]:
        body = {"tokenId": int(token_id), "seller": seller, "basePrice": int(base_price)}
        return self._request("POST", "/api/listings", "create listing", json=body)

    def get_listing(self, token_id: int) -> dict[str, Any]:
        return self._request("GET", f"/api/listings/{int(token_id)}", "get listing")

    def active_listings(self, offset: int = 0, limit: int = 50) -> list[dict[str, Any]]:
        return self._request("GET", "/api/listings", "list listings", params={"offset": int(offset), "limit": int(limit)})

    def price_quote(self, token_id: int) -> dict[str, Any]:
        return self._request("GET", f"/api/listings/{int(token_id)}/quote", "quote listing")

    def quote(self, token_id: int) -> int:
        return int(self.price_quote(token_id)["salePrice"])

    def update_listing_price(self, token_id: int, caller: str, base_price: int) -> dict[str, Any]:
        body = {"caller": caller, "basePrice": int(base_price)}
        return self._request("PATCH", f"/api/listings/{int(token_id)}", "update listing price", json=body)

    def cancel_listing(self, token_id: int, caller: str) -> dict[str, Any]:
        body = {"caller": caller}
        return self._request("POST", f"/api/listings/{int(token_id)}/cancel", "cancel listing", json=body)

    def purchase(self, token_id: int, buyer: str, payment: int) -> dict[str, Any]:
        body = {"buyer": buyer, "payment": int(payment)}
        return self._request("POST", f"/api/listings/{int(token_id)}/purchase", "purchase token", json=body)

    def balance_of(self, address: str) -> int:
        data = self._request("GET", f"/api/users/{address}/balance", "get balance")
        return int(data["balance"])

    def withdraw(self, address: str) -> int:
        data = self._request("POST", f"/api/users/{address}/withdraw", "withdraw")
        return int(data["amount"])

    def stats(self) -> dict[str, int]:
        return self._request("GET", "/api/market/stats", "get market stats")

    # --- community ---------------------------------------------------------

    def set_visibility(self, token_id: int, caller: str, is_public: bool) -> dict[str, Any]:
        body = {"caller": caller, "public": bool(is_public)}
        return self._request("POST", f"/api/tokens/{int(token_id)}/visibility", "set visibility", json=body)

    def get_display(self, token_id: int, viewer: str | None = None) -> dict[str, Any]:
        params = {"viewer": viewer} if viewer is not None else None
        return self._request("GET", f"/api/tokens/{int(token_id)}/display", "get token display", params=params)

    def gallery(self, offset: int = 0, limit: int = 10) -> dict[str, Any]:
        return self._request("GET", "/api/gallery", "get gallery", params={"offset": int(offset), "limit": int(limit)})

    def leaderboard(self, limit: int = 10) -> list[dict[str, Any]]:
        return self._request("GET", "/api/leaderboard", "get leaderboard", params={"limit": int(limit)})

    def community_stats(self) -> dict[str, Any]:
        return self._request("GET", "/api/community/stats", "get community stats")


__all__ = ["CarbonClient"]
