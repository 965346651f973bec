"""Entry point wiring together the feed window, settings, and touch sources."""

from __future__ import annotations

import argparse
import asyncio
import logging
from contextlib import ExitStack
from pathlib import Path
from typing import List, Optional

from refresh_feed.camera_touch import CameraTouchSource
from refresh_feed.feed import REFRESH_DELAY, FeedApp
from refresh_feed.pull import PULL_THRESHOLD
from refresh_feed.settings import SETTINGS_PATH, JsonSettingsStore, SettingsCache
from refresh_feed.touch_types import TouchSource


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Browse transactions and pull down to refresh them.")
    parser.add_argument("--width", type=int, default=420, help="Initial window width (below 768 counts as mobile).")
    parser.add_argument("--height", type=int, default=760, help="Initial window height.")
    parser.add_argument(
        "--pull-threshold",
        type=float,
        default=PULL_THRESHOLD,
        help="Downward pull in pixels needed to trigger a refresh.",
    )
    parser.add_argument(
        "--refresh-delay",
        type=float,
        default=REFRESH_DELAY,
        help="Simulated reload latency in seconds.",
    )
    parser.add_argument(
        "--refresh-timeout",
        type=float,
        default=None,
        help="Give up waiting on a refresh after this many seconds (default: wait forever).",
    )
    parser.add_argument("--settings-path", type=Path, default=SETTINGS_PATH, help="Platform settings JSON file.")
    parser.add_argument(
        "--transactions-path",
        type=Path,
        default=None,
        help="Transactions JSON file; sample rows are generated when omitted.",
    )
    parser.add_argument("--mouse-touch", action="store_true", help="Treat left-button drags as touches.")
    parser.add_argument("--camera", action="store_true", help="Emulate touches with a camera pinch gesture.")
    parser.add_argument(
        "--pinch-on-threshold",
        type=float,
        default=0.17,
        help="Normalized pinch distance below which the finger counts as down.",
    )
    parser.add_argument(
        "--pinch-off-threshold",
        type=float,
        default=0.22,
        help="Normalized pinch distance above which the finger counts as lifted.",
    )
    parser.add_argument("--show-debug-overlay", action="store_true", help="Show the camera feed with contact info.")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    cache = SettingsCache(JsonSettingsStore(args.settings_path), public_only=True)
    app = FeedApp(
        cache,
        size=(args.width, args.height),
        transactions_path=args.transactions_path,
        pull_threshold=args.pull_threshold,
        refresh_delay=args.refresh_delay,
        refresh_timeout=args.refresh_timeout,
        mouse_touch=args.mouse_touch,
    )

    # ExitStack keeps camera teardown explicit even if the frame loop raises.
    with ExitStack() as stack:
        touch_source: Optional[TouchSource] = None
        if args.camera:
            touch_source = CameraTouchSource(
                view_size=(args.width, args.height),
                pinch_on_threshold=args.pinch_on_threshold,
                pinch_off_threshold=args.pinch_off_threshold,
                show_debug_overlay=args.show_debug_overlay,
            )
            stack.callback(touch_source.close)

        asyncio.run(app.run(touch_source))


if __name__ == "__main__":
    main()
