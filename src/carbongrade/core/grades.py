from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any


class Grade(IntEnum):
    """Carbon-impact grade of a token.

    Ordinal values match the on-chain enum, so `Grade.F < Grade.A` and the
    integer form can be used directly in the event log.
    """

    F = 0
    D = 1
    C = 2
    B = 3
    A = 4

    @classmethod
    def from_any(cls, value: Any) -> "Grade":
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Unsupported grade: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(f"Unsupported grade: {value!r}") from None

        v = str(value).strip().upper()
        if v.isdigit():
            return cls.from_any(int(v))
        if v in cls.__members__:
            return cls[v]
        raise ValueError(f"Unsupported grade: {value!r}. Use one of F, D, C, B, A.")


class UserType(IntEnum):
    INDIVIDUAL = 0
    COMPANY = 1

    @classmethod
    def from_any(cls, value: Any) -> "UserType":
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Unsupported user type: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(f"Unsupported user type: {value!r}") from None

        v = str(value).strip().lower()
        aliases: dict[str, UserType] = {
            "individual": cls.INDIVIDUAL,
            "person": cls.INDIVIDUAL,
            "0": cls.INDIVIDUAL,
            "company": cls.COMPANY,
            "organization": cls.COMPANY,
            "1": cls.COMPANY,
        }
        if v in aliases:
            return aliases[v]
        raise ValueError(f"Unsupported user type: {value!r}. Use 'individual' or 'company'.")


class ListingStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self is not ListingStatus.ACTIVE
