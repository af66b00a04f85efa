from __future__ import annotations

from .app import create_app
from .server import CarbonServer, run

__all__ = ["create_app", "CarbonServer", "run"]
