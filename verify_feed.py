#!/usr/bin/env python3
"""
Quick sanity check script to verify the live feed delivers bars.

Usage:
    python verify_feed.py
    python verify_feed.py ETH 1W

This script:
1. Connects to the chart provider
2. Subscribes to one symbol/timeframe
3. Prints the first normalized update and its summary
4. Verifies the latest bar is recent (live streaming is working)
"""

import asyncio
import sys
import time

from pricefeed.config import get_settings
from pricefeed.streaming.errors import SubscriptionError
from pricefeed.streaming.feed import MarketDataFeed


async def verify_feed(symbol: str = "BTC", timeframe: str = "1D", wait_seconds: float = 15.0):
    """Subscribe, wait for the first update, and show it."""
    settings = get_settings()
    if not settings.live_feed_enabled:
        print("❌ Live feed is disabled (live_feed_enabled=false in .env)")
        return False

    async with MarketDataFeed.from_settings(settings) as feed:
        first_update = asyncio.get_running_loop().create_future()

        def on_update(points):
            if not first_update.done():
                first_update.set_result(points)

        try:
            await feed.subscribe(symbol, timeframe, on_update)
        except SubscriptionError as e:
            print(f"❌ Subscription failed: {e}")
            print("   → Check network access to the provider WebSocket")
            return False

        print(f"✅ Subscribed to {symbol} {timeframe} (connection: {feed.connection_state.value})\n")

        try:
            points = await asyncio.wait_for(first_update, timeout=wait_seconds)
        except asyncio.TimeoutError:
            print(f"⚠️  No update within {wait_seconds:.0f}s.")
            return False

        print(f"📊 First update: {len(points)} point(s)")
        print("-" * 80)
        print(f"{'Timestamp':<22} {'Open':>12} {'High':>12} {'Low':>12} {'Close':>12}")
        print("-" * 80)
        for p in points[-5:]:
            ts_str = time.strftime('%Y-%m-%d %H:%M:%S', time.gmtime(p.timestamp / 1000))
            print(
                f"{ts_str:<22} {p.open or 0:>12.2f} {p.high or 0:>12.2f} "
                f"{p.low or 0:>12.2f} {p.price:>12.2f}"
            )
        print("-" * 80)

        summary = feed.summary(symbol, timeframe)
        if summary:
            print(
                f"\n💲 Current: {summary.current_price:,.2f}  "
                f"Change: {summary.change_absolute:+,.2f} ({summary.change_percent:+.2f}%)"
            )

        age_minutes = (time.time() * 1000 - points[-1].timestamp) / 60000.0
        print(f"⏱️  Latest bar age: {age_minutes:.1f} minutes")
        return True


async def main():
    """Main entry point."""
    print("=" * 60)
    print("Price Feed - Live Feed Verification")
    print("=" * 60)
    print()

    args = sys.argv[1:]
    success = await verify_feed(*args[:2])

    print()
    print("=" * 60)

    if success:
        print("✅ Verification complete!")
    else:
        print("⚠️  Issues found. See messages above.")

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    asyncio.run(main())
