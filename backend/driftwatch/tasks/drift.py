import asyncio
import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from driftwatch.core.database import AsyncSessionLocal, engine
from driftwatch.scheduler.celery_app import app
from driftwatch.services.drift_decision_service import DriftDecisionService
from driftwatch.services.market_data import PriceProvider
from driftwatch.services.price_service import PriceService

logger = logging.getLogger(__name__)


async def run_evaluation(session_factory: async_sessionmaker = AsyncSessionLocal) -> Dict[str, int]:
    async with session_factory() as session:
        result = await DriftDecisionService(session).evaluate()
        await session.commit()
    return result.to_dict()


async def run_refresh_and_evaluation(
    session_factory: async_sessionmaker = AsyncSessionLocal,
    provider: Optional[PriceProvider] = None,
) -> Dict[str, Any]:
    """Refresh closes for all holdings, then evaluate drift against them."""
    async with session_factory() as session:
        refresh = await PriceService(session, provider=provider).refresh_prices()
        await session.commit()

    evaluation = await run_evaluation(session_factory)
    failed = [r["symbol"] for r in refresh["results"] if not r["ok"]]
    return {
        "refreshed": refresh["refreshed"],
        "failed": failed,
        **evaluation,
    }


async def _run_and_dispose(coro) -> Any:
    # Each asyncio.run gets a fresh loop; pooled connections must not outlive it
    try:
        return await coro
    finally:
        await engine.dispose()


@app.task(name="driftwatch.tasks.drift.evaluate_drift")
def evaluate_drift():
    """Evaluate drift against the prices already stored."""
    result = asyncio.run(_run_and_dispose(run_evaluation()))
    logger.info(f"Drift evaluation created {result['created']} decisions ({result['evaluated']} evaluated)")
    return result


@app.task(name="driftwatch.tasks.drift.refresh_and_evaluate")
def refresh_and_evaluate():
    """
    Scheduled task to refresh daily closes and evaluate drift.
    Runs after market close.
    """
    result = asyncio.run(_run_and_dispose(run_refresh_and_evaluation()))

    if result["failed"]:
        logger.warning(f"Price refresh failed for: {', '.join(result['failed'])}")
    logger.info(
        f"Refreshed {result['refreshed']} symbols; "
        f"created {result['created']} drift decisions ({result['evaluated']} evaluated)"
    )
    return {"status": "completed", **result}
