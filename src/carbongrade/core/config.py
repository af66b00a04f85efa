from __future__ import annotations

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from .errors import ConfigError
from .grades import Grade

BPS_DENOMINATOR = 10_000
MAX_FEE_BPS = 1_000
SECONDS_PER_WEEK = 604_800

DEFAULT_GRADE_MULTIPLIERS: Mapping[Grade, int] = MappingProxyType(
    {
        Grade.F: 5_000,  # 0.5x
        Grade.D: 7_500,  # 0.75x
        Grade.C: 10_000,  # 1.0x
        Grade.B: 15_000,  # 1.5x
        Grade.A: 20_000,  # 2.0x
    }
)


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def _coerce_multipliers(table: Mapping[Any, Any]) -> Mapping[Grade, int]:
    out: dict[Grade, int] = {}
    for k, v in table.items():
        try:
            grade = Grade.from_any(k)
            bps = _as_int(f"multiplier for {k!r}", v)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid grade multiplier entry {k!r}: {v!r} ({e})") from None
        if grade in out:
            raise ConfigError(f"Duplicate grade multiplier entry for {grade.name}")
        out[grade] = bps

    missing = [g.name for g in Grade if g not in out]
    if missing:
        raise ConfigError(f"Grade multiplier table is missing grades: {', '.join(missing)}")
    for g, bps in out.items():
        if bps <= 0:
            raise ConfigError(f"Grade multiplier for {g.name} must be > 0, got {bps}")
    return MappingProxyType(dict(sorted(out.items())))


@dataclass(frozen=True)
class MarketConfig:
    """Process-wide pricing and rate-limit settings.

    Built once at startup and passed into the registry and exchange.
    Construction validates everything; an invalid table never initializes.
    """

    fee_bps: int = 250
    royalty_bps: int = 500
    grade_multiplier_bps: Mapping[Grade, int] = field(default_factory=lambda: DEFAULT_GRADE_MULTIPLIERS)
    max_weekly_uploads: int = 1
    window_seconds: int = SECONDS_PER_WEEK
    endorsement_reward: int = 10
    reference_price: int = 10**16
    operator: str = "operator"
    royalty_beneficiary: str = "royalty"
    graders: frozenset[str] | None = None

    def __post_init__(self) -> None:
        fee = _as_int("fee_bps", self.fee_bps)
        royalty = _as_int("royalty_bps", self.royalty_bps)
        max_uploads = _as_int("max_weekly_uploads", self.max_weekly_uploads)
        window = _as_int("window_seconds", self.window_seconds)
        reward = _as_int("endorsement_reward", self.endorsement_reward)
        reference = _as_int("reference_price", self.reference_price)
        for name, bps in (("fee_bps", fee), ("royalty_bps", royalty)):
            if not 0 <= bps <= MAX_FEE_BPS:
                raise ConfigError(f"{name} must be between 0 and {MAX_FEE_BPS}, got {bps}")
        if max_uploads < 1:
            raise ConfigError("max_weekly_uploads must be >= 1")
        if window <= 0:
            raise ConfigError("window_seconds must be > 0")
        if reward < 0:
            raise ConfigError("endorsement_reward must be >= 0")
        if reference <= 0:
            raise ConfigError("reference_price must be > 0")

        operator = str(self.operator or "").strip()
        beneficiary = str(self.royalty_beneficiary or "").strip()
        if not operator:
            raise ConfigError("operator cannot be empty")
        if not beneficiary:
            raise ConfigError("royalty_beneficiary cannot be empty")

        graders = frozenset(str(g).strip() for g in (self.graders or ()) if str(g).strip())
        if not graders:
            graders = frozenset({operator})

        # frozen: normalize through object.__setattr__
        object.__setattr__(self, "fee_bps", fee)
        object.__setattr__(self, "royalty_bps", royalty)
        object.__setattr__(self, "grade_multiplier_bps", _coerce_multipliers(self.grade_multiplier_bps))
        object.__setattr__(self, "max_weekly_uploads", max_uploads)
        object.__setattr__(self, "window_seconds", window)
        object.__setattr__(self, "endorsement_reward", reward)
        object.__setattr__(self, "reference_price", reference)
        object.__setattr__(self, "operator", operator)
        object.__setattr__(self, "royalty_beneficiary", beneficiary)
        object.__setattr__(self, "graders", graders)

    def multiplier_for(self, grade: Grade | int | str) -> int:
        return int(self.grade_multiplier_bps[Grade.from_any(grade)])

    @classmethod
    def from_env(cls, prefix: str = "CARBONGRADE_") -> "MarketConfig":
        """Build a config from `CARBONGRADE_*` environment variables.

        Unset variables keep their defaults. Multipliers use `F=5000,D=7500,...`
        and graders a comma separated list of addresses.
        """

        kwargs: dict[str, Any] = {}
        int_fields = {
            "FEE_BPS": "fee_bps",
            "ROYALTY_BPS": "royalty_bps",
            "MAX_WEEKLY_UPLOADS": "max_weekly_uploads",
            "WINDOW_SECONDS": "window_seconds",
            "ENDORSEMENT_REWARD": "endorsement_reward",
            "REFERENCE_PRICE": "reference_price",
        }
        for env_name, attr in int_fields.items():
            raw = os.getenv(prefix + env_name, "").strip()
            if not raw:
                continue
            try:
                kwargs[attr] = int(raw)
            except ValueError:
                raise ConfigError(f"{prefix}{env_name} must be an integer, got {raw!r}") from None

        for env_name, attr in {"OPERATOR": "operator", "ROYALTY_BENEFICIARY": "royalty_beneficiary"}.items():
            raw = os.getenv(prefix + env_name, "").strip()
            if raw:
                kwargs[attr] = raw

        graders = os.getenv(prefix + "GRADERS", "").strip()
        if graders:
            kwargs["graders"] = frozenset(g.strip() for g in graders.split(",") if g.strip())

        multipliers = os.getenv(prefix + "GRADE_MULTIPLIERS", "").strip()
        if multipliers:
            kwargs["grade_multiplier_bps"] = parse_multiplier_table(multipliers)

        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "feeBps": self.fee_bps,
            "royaltyBps": self.royalty_bps,
            "gradeMultiplierBps": {g.name: int(v) for g, v in self.grade_multiplier_bps.items()},
            "maxWeeklyUploads": self.max_weekly_uploads,
            "windowSeconds": self.window_seconds,
            "endorsementReward": self.endorsement_reward,
            "referencePrice": self.reference_price,
            "operator": self.operator,
            "royaltyBeneficiary": self.royalty_beneficiary,
            "graders": sorted(self.graders or ()),
        }


def parse_multiplier_table(text: str) -> dict[str, int]:
    out: dict[str, int] = {}
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        if "=" not in part:
            raise ConfigError(f"Invalid multiplier entry {part!r}; expected GRADE=BPS")
        k, v = part.split("=", 1)
        try:
            out[k.strip()] = int(v.strip())
        except ValueError:
            raise ConfigError(f"Invalid multiplier value in {part!r}") from None
    return out
