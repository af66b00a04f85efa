from __future__ import annotations

from .client import CarbonClient

__all__ = ["CarbonClient"]
