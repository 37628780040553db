"""
Daemon that turns queued order events into user notifications.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from roofrix.worker import run_loop


def main() -> int:
    parser = argparse.ArgumentParser(description="Order notifications worker")
    parser.add_argument(
        "--poll-seconds",
        type=int,
        default=2,
        help="Seconds to block on the queue before polling again",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Drain the queue once and exit",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    run_loop(args.poll_seconds, once=args.once)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
