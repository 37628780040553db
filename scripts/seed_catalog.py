"""
Seed the default report catalog (report types, addons, structure types).

Safe to re-run: items are upserted by kind, category and id, so re-seeding
also restores default prices that were edited.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from roofrix.dependencies import get_db_client
from roofrix.pricing import default_catalog, seed_default_catalog

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the default report catalog")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the catalog items without writing them",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    if args.dry_run:
        for item in default_catalog():
            print(f"{item.kind:15} {item.category or '-':10} {item.item_id:20} {item.price:8.2f}")
        return 0

    count = seed_default_catalog(get_db_client())
    logger.info("Catalog ready with %d items", count)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
