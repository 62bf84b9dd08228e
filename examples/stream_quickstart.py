#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import logging

from tickboard.pipeline.core import ConnectionConfig, ConnectionState
from tickboard.pipeline.models import ConnectionEvent, MarketDataEvent
from tickboard.pipeline.runtime import (
    CONNECTION_STATUS,
    MARKET_DATA,
    RECONNECTION_FAILED,
    ConnectionManager,
)


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Stream enriched market data from a market server")
    p.add_argument("symbols", nargs="*", default=["AAPL", "MSFT"])
    p.add_argument("--stream", default="trades", choices=["trades", "quotes", "bars", "updates"])
    p.add_argument("--server", default="http://localhost:8200")
    p.add_argument("--ws", default="ws://localhost:8200")
    p.add_argument("--window", default="1", help="Window id (one connection per window)")
    p.add_argument("--limit", type=int, default=50, help="Stop after N records (0 = forever)")
    p.add_argument("--verbose", action="store_true")
    return p.parse_args()


async def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    config = ConnectionConfig(server_url=args.server, ws_url=args.ws)
    done = asyncio.Event()
    seen = 0

    def on_data(event: MarketDataEvent) -> None:
        nonlocal seen
        for r in event.records:
            seen += 1
            print(
                f"{r.symbol:6} {r.price:>10.2f} | chg {r.change_percent:>7.2f}% "
                f"| gap {r.gap_percent:>7.2f}% | rvol {r.relative_volume:>5.2f} "
                f"| vol {r.volume:>10,.0f}"
            )
        if args.limit and seen >= args.limit:
            done.set()

    def on_status(event: ConnectionEvent) -> None:
        print(f"[{event.client_id}] {event.state.value} (attempt {event.attempt})")
        if event.state == ConnectionState.ABANDONED:
            done.set()

    async with ConnectionManager(config) as manager:
        manager.on(MARKET_DATA, on_data)
        manager.on(CONNECTION_STATUS, on_status)
        manager.on(RECONNECTION_FAILED, on_status)

        closes = await manager.sync_previous_close(args.symbols)
        print(f"Loaded previous close for {len(closes)} symbols")

        await manager.subscribe(args.symbols, args.stream, window_id=args.window)
        await done.wait()

        metrics = manager.get_transformation_metrics()
        print(
            f"transformed={metrics['transformed_count']} rejected={metrics['rejected_count']} "
            f"errors={metrics['error_count']}"
        )


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
