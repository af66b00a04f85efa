from __future__ import annotations

from .community import mount_community_api
from .exchange import mount_exchange_api
from .registry import mount_registry_api

__all__ = ["mount_registry_api", "mount_exchange_api", "mount_community_api"]
