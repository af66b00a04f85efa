from __future__ import annotations

import argparse
import logging

from .runtime.server import run


def main() -> None:
    p = argparse.ArgumentParser(prog="carbongrade", description="carbongrade: carbon NFT grading and marketplace engine")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.add_argument("--log-level", default="info", choices=["critical", "error", "warning", "info", "debug"])
    p.add_argument("--replay", metavar="PATH", default=None, help="rebuild state from a JSON-lines event log")
    p.add_argument("--save-on-exit", metavar="PATH", default=None, help="write the event log here on Ctrl-C")
    args = p.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    srv = run(host=args.host, port=args.port, log_level=args.log_level, replay_path=args.replay, new_server=True)
    print(srv.url)

    # Block forever (so it behaves like a normal CLI server)
    import time

    try:
        while True:
            time.sleep(3600)
    except KeyboardInterrupt:
        if args.save_on_exit:
            path = srv.save_events(args.save_on_exit)  # type: ignore[union-attr]
            print(f"saved {len(srv.market.events)} events to {path}")  # type: ignore[union-attr]


if __name__ == "__main__":
    main()
