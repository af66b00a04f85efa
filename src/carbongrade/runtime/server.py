from __future__ import annotations

import contextlib
import logging
import os
import socket
import threading
import time
from dataclasses import dataclass
from pathlib import Path

import uvicorn

from ..core.config import MarketConfig
from ..core.market import CarbonMarket
from ..sdk.client import CarbonClient
from .app import create_app

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CarbonServer:
    """Handle to an in-process server; `market` is the live state it serves."""

    host: str
    port: int
    url: str
    market: CarbonMarket

    def client(self) -> CarbonClient:
        return CarbonClient(self.url.rstrip("/"))

    def save_events(self, path: str | Path) -> Path:
        """Write the committed event log as JSON lines."""
        return self.market.events.dump(path)


def _find_free_port(host: str) -> int:
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind((host, 0))
        return int(s.getsockname()[1])


def _normalize_base_url(url: str) -> str:
    url = url.strip()
    if not url:
        return ""
    # Allow passing just host:port.
    if "://" not in url:
        url = "http://" + url
    return url.rstrip("/")


def _is_server_alive(base_url: str, *, timeout_s: float = 0.2) -> bool:
    """Best-effort check whether a carbongrade server is reachable."""

    import httpx

    try:
        with httpx.Client(base_url=base_url, timeout=timeout_s) as client:
            r = client.get("/healthz")
            if r.status_code != 200:
                return False
            return bool(r.json().get("ok"))
    except (httpx.HTTPError, ValueError):
        return False


def _wait_until_alive(base_url: str, *, timeout_s: float) -> bool:
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        if _is_server_alive(base_url):
            return True
        time.sleep(0.05)
    return False


def run(
    *,
    host: str = "127.0.0.1",
    port: int = 0,
    market: CarbonMarket | None = None,
    config: MarketConfig | None = None,
    replay_path: str | Path | None = None,
    log_level: str = "info",
    access_log: bool = False,
    new_server: bool = False,
    connect_timeout_s: float = 0.2,
    startup_timeout_s: float = 5.0,
) -> CarbonServer | CarbonClient:
    """Start a carbongrade server in a background thread, or attach to one.

    Behavior:
    - If CARBONGRADE_URL is set, attach to that server (client mode) unless
      `new_server=True`.
    - Otherwise, if `port != 0` and a server already answers at http://{host}:{port},
      attach to it unless `new_server=True`.
    - Otherwise start uvicorn on a daemon thread and return a `CarbonServer`.
    """

    env_url = _normalize_base_url(os.getenv("CARBONGRADE_URL", ""))

    if env_url and not new_server:
        if _is_server_alive(env_url, timeout_s=connect_timeout_s):
            log.info("attaching to %s", env_url)
            return CarbonClient(env_url)

    if port != 0 and not new_server:
        default_url = _normalize_base_url(f"http://{host}:{port}")
        if _is_server_alive(default_url, timeout_s=connect_timeout_s):
            log.info("attaching to %s", default_url)
            return CarbonClient(default_url)

    if port == 0:
        port = _find_free_port(host)

    app = create_app(market, config=config, replay_path=replay_path)
    served: CarbonMarket = app.state.market

    uv_config = uvicorn.Config(app, host=host, port=port, log_level=log_level, access_log=access_log)
    server = uvicorn.Server(uv_config)

    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()

    url = f"http://{host}:{port}/"
    if not _wait_until_alive(url.rstrip("/"), timeout_s=startup_timeout_s):
        raise RuntimeError(f"carbongrade server did not start on {url} within {startup_timeout_s}s")
    log.info("carbongrade serving on %s", url)

    return CarbonServer(host=host, port=port, url=url, market=served)
