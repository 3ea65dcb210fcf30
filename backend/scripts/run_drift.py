#!/usr/bin/env python3
"""
Refresh daily closes and run one drift evaluation from the command line.

Usage:
    python scripts/run_drift.py [--skip-refresh] [--provider stooq|yfinance]
"""

import asyncio
import logging
import os
import sys
from argparse import ArgumentParser

# Add backend to path
sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from driftwatch.core.database import close_db, init_db
from driftwatch.core.logging import setup_logging
from driftwatch.services.market_data import PROVIDERS, get_price_provider
from driftwatch.tasks.drift import run_evaluation, run_refresh_and_evaluation

logger = logging.getLogger(__name__)


async def run(skip_refresh: bool, provider_name: str | None) -> dict:
    await init_db()
    try:
        if skip_refresh:
            return await run_evaluation()
        provider = get_price_provider(provider_name)
        return await run_refresh_and_evaluation(provider=provider)
    finally:
        await close_db()


def main():
    parser = ArgumentParser(description="Refresh prices and evaluate portfolio drift")
    parser.add_argument(
        "--skip-refresh",
        action="store_true",
        help="Evaluate against stored prices without fetching new closes"
    )
    parser.add_argument(
        "--provider",
        choices=sorted(PROVIDERS),
        default=None,
        help="Price provider (default: PRICE_PROVIDER setting)"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL for this run"
    )
    args = parser.parse_args()
    setup_logging(args.log_level)

    result = asyncio.run(run(args.skip_refresh, args.provider))

    for symbol in result.get("failed", []):
        logger.warning(f"Price refresh failed for {symbol}")
    logger.info(f"Drift evaluation: {result['created']} created, {result['evaluated']} evaluated")
    sys.exit(1 if result.get("failed") else 0)


if __name__ == "__main__":
    main()
