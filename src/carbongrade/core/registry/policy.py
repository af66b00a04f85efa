from __future__ import annotations

from typing import Callable

from ..config import MarketConfig

GraderPolicy = Callable[[str, str], bool]
"""Predicate `(caller, token_owner) -> bool` deciding who may grade a token."""


def config_grader_policy(config: MarketConfig) -> GraderPolicy:
    """Allow exactly the addresses listed in `config.graders`."""

    graders = frozenset(config.graders or ())

    def _is_authorized_grader(caller: str, token_owner: str) -> bool:  # noqa: ARG001
        return caller in graders

    return _is_authorized_grader


def allow_any_grader(caller: str, token_owner: str) -> bool:  # noqa: ARG001
    return True
