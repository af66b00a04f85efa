from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI

from ..api import create_api_app
from ..core.config import MarketConfig
from ..core.ledger import EventLog
from ..core.market import CarbonMarket, replay

log = logging.getLogger(__name__)


def create_app(
    market: CarbonMarket | None = None,
    *,
    config: MarketConfig | None = None,
    replay_path: str | Path | None = None,
) -> FastAPI:
    """Build the ASGI app.

    Without an explicit market, one is created from `config` (or the
    `CARBONGRADE_*` environment), optionally rebuilt from a saved event log.
    """

    if market is None:
        cfg = config if config is not None else MarketConfig.from_env()
        if replay_path is not None:
            events = EventLog.load(replay_path)
            log.info("replaying %d events from %s", len(events), replay_path)
            market = replay(events, cfg)
        else:
            market = CarbonMarket.create(cfg)
    return create_api_app(market)
