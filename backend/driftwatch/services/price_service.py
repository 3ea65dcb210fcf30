"""
Price store access and the daily close refresh.
"""

import logging
from dataclasses import dataclass, asdict
import datetime as dt
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from driftwatch.models.base import utcnow
from driftwatch.models.price_point import PricePoint
from driftwatch.services.holdings_service import HoldingsService
from driftwatch.services.market_data import PriceProvider, get_price_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LatestPrice:
    symbol: str
    date: date
    close: float


@dataclass
class RefreshResult:
    symbol: str
    ok: bool
    date: Optional[dt.date] = None
    close: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


class PriceService:
    """Reads and writes the price store; refreshes it from a provider."""

    def __init__(self, session: AsyncSession, provider: Optional[PriceProvider] = None):
        self.session = session
        self._provider = provider

    @property
    def provider(self) -> PriceProvider:
        if self._provider is None:
            self._provider = get_price_provider()
        return self._provider

    async def latest_per_symbol(self) -> List[LatestPrice]:
        """One row per symbol: the price point with the maximum date."""
        latest = (
            select(PricePoint.symbol, func.max(PricePoint.date).label("max_date"))
            .group_by(PricePoint.symbol)
            .subquery()
        )
        stmt = (
            select(PricePoint.symbol, PricePoint.date, PricePoint.close)
            .join(
                latest,
                (latest.c.symbol == PricePoint.symbol)
                & (latest.c.max_date == PricePoint.date),
            )
            .order_by(PricePoint.symbol)
        )
        result = await self.session.execute(stmt)
        return [LatestPrice(symbol=r.symbol, date=r.date, close=r.close) for r in result]

    async def upsert(self, symbol: str, day: date, close: float, source: str) -> None:
        """Insert a close, or overwrite close/source/ingested_at for an existing (symbol, date)."""
        dialect = self.session.get_bind().dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert

        stmt = insert(PricePoint).values(
            symbol=symbol,
            date=day,
            close=close,
            source=source,
            ingested_at=utcnow(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[PricePoint.symbol, PricePoint.date],
            set_={
                "close": stmt.excluded.close,
                "source": stmt.excluded.source,
                "ingested_at": stmt.excluded.ingested_at,
            },
        )
        await self.session.execute(stmt)

    async def refresh_prices(self) -> Dict[str, Any]:
        """
        Fetch the latest close for every held symbol and store it.

        A failed fetch is recorded against its symbol and does not stop the
        batch. Storage errors propagate.
        """
        symbols = await HoldingsService(self.session).list_symbols()
        unique_symbols = sorted({s.upper() for s in symbols})
        provider = self.provider

        results: List[RefreshResult] = []
        for symbol in unique_symbols:
            try:
                quote = await provider.fetch_latest_close(symbol)
            except Exception as e:
                logger.warning("Price fetch failed for %s: %s", symbol, e)
                results.append(RefreshResult(symbol=symbol, ok=False, error=str(e)))
                continue

            await self.upsert(symbol, quote.date, quote.close, provider.name)
            results.append(
                RefreshResult(symbol=symbol, ok=True, date=quote.date, close=quote.close)
            )

        failed = sum(1 for r in results if not r.ok)
        logger.info(
            "Refreshed prices for %d symbols via %s (%d failed)",
            len(results), provider.name, failed,
        )
        return {"refreshed": len(results), "results": [r.to_dict() for r in results]}
