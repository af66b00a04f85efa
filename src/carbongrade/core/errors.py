"""Typed failures raised by the registry and the exchange.

Every operation either commits fully or raises exactly one of these with no
state change. `kind` is the stable name used on the wire.
"""

from __future__ import annotations


class CarbonGradeError(Exception):
    kind = "CarbonGradeError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind)

    @property
    def detail(self) -> str:
        return str(self.args[0]) if self.args else self.kind


class ConfigError(CarbonGradeError):
    kind = "ConfigError"


class AlreadyRegistered(CarbonGradeError):
    kind = "AlreadyRegistered"


class NotRegistered(CarbonGradeError):
    kind = "NotRegistered"


class TokenNotFound(CarbonGradeError):
    kind = "TokenNotFound"


class TokenInactive(CarbonGradeError):
    kind = "TokenInactive"


class NotOwner(CarbonGradeError):
    kind = "NotOwner"


class NotSeller(CarbonGradeError):
    kind = "NotSeller"


class Unauthorized(CarbonGradeError):
    kind = "Unauthorized"


class UploadLimitExceeded(CarbonGradeError):
    """The user's sliding window is full; retrying at `retry_at` will succeed."""

    kind = "UploadLimitExceeded"

    def __init__(self, message: str = "", *, retry_at: int | None = None) -> None:
        super().__init__(message)
        self.retry_at = retry_at


class AlreadyListed(CarbonGradeError):
    kind = "AlreadyListed"


class NoActiveListing(CarbonGradeError):
    kind = "NoActiveListing"


class ListingNotFound(CarbonGradeError):
    kind = "ListingNotFound"


class InvalidPrice(CarbonGradeError):
    kind = "InvalidPrice"


class InsufficientPayment(CarbonGradeError):
    kind = "InsufficientPayment"

    def __init__(self, message: str = "", *, required: int | None = None, offered: int | None = None) -> None:
        super().__init__(message)
        self.required = required
        self.offered = offered


class AlreadyEndorsed(CarbonGradeError):
    kind = "AlreadyEndorsed"


class SelfEndorsement(CarbonGradeError):
    kind = "SelfEndorsement"


ERRORS_BY_KIND: dict[str, type[CarbonGradeError]] = {
    cls.kind: cls
    for cls in (
        CarbonGradeError,
        ConfigError,
        AlreadyRegistered,
        NotRegistered,
        TokenNotFound,
        TokenInactive,
        NotOwner,
        NotSeller,
        Unauthorized,
        UploadLimitExceeded,
        AlreadyListed,
        NoActiveListing,
        ListingNotFound,
        InvalidPrice,
        InsufficientPayment,
        AlreadyEndorsed,
        SelfEndorsement,
    )
}
