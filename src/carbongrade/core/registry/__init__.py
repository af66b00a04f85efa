from __future__ import annotations

from .policy import GraderPolicy, allow_any_grader, config_grader_policy
from .service import FIRST_TOKEN_ID, CarbonRegistry

__all__ = [
    "CarbonRegistry",
    "FIRST_TOKEN_ID",
    "GraderPolicy",
    "allow_any_grader",
    "config_grader_policy",
]
