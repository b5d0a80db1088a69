#!/usr/bin/env python3
"""Run a single catalog sync pass from the command line."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.core.config import settings
from backend.app.core.database import init_db
from backend.app.services.filamentcolors import FilamentColorsClient
from backend.app.services.swatch_sync import SwatchSyncService


async def run(url: str, max_pages: int, page_delay: float) -> bool:
    await init_db()

    client = FilamentColorsClient(url, max_pages=max_pages, page_delay=page_delay)
    service = SwatchSyncService(client=client)
    try:
        result = await service.sync_all()
    finally:
        await service.close()

    if result.success:
        print(
            f"✓ Synced {result.records_processed} swatches from {result.pages_fetched} pages "
            f"({result.records_skipped} skipped) in {result.duration_seconds:.1f}s"
        )
    else:
        print(f"✗ Sync failed: {result.error}")
    return result.success


def main():
    parser = argparse.ArgumentParser(description="Mirror the swatch catalog into the local database once")
    parser.add_argument("--url", default=settings.catalog_url, help="First catalog page URL")
    parser.add_argument("--max-pages", type=int, default=settings.sync_max_pages, help="Page ceiling")
    parser.add_argument(
        "--page-delay",
        type=float,
        default=settings.sync_page_delay,
        help="Seconds between page requests",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    ok = asyncio.run(run(args.url, args.max_pages, args.page_delay))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
