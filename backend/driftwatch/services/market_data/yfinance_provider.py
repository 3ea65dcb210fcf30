import asyncio
import logging
import math
from typing import Optional

import yfinance as yf

from driftwatch.core.config import settings
from driftwatch.core.errors import PriceFetchError
from driftwatch.services.market_data.base import DailyClose, PriceProvider

logger = logging.getLogger(__name__)


class YFinanceProvider(PriceProvider):
    """yfinance fallback provider for daily closes."""

    name = "yfinance"

    def __init__(self, timeout_sec: Optional[float] = None) -> None:
        self.timeout_sec = (
            settings.PRICE_FETCH_TIMEOUT_SEC if timeout_sec is None else timeout_sec
        )

    def _latest_close(self, symbol: str) -> DailyClose:
        # yf has no reliable low-latency quote API, so take the last row of a short history
        hist = yf.Ticker(symbol).history(period="5d", timeout=self.timeout_sec)
        if hist.empty:
            raise PriceFetchError("yfinance_empty")

        last_row = hist.iloc[-1]
        close = float(last_row["Close"])
        if not math.isfinite(close) or close <= 0:
            raise PriceFetchError("yfinance_bad_close")
        return DailyClose(date=last_row.name.date(), close=close)

    async def fetch_latest_close(self, symbol: str) -> DailyClose:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._latest_close, symbol),
                timeout=self.timeout_sec,
            )
        except asyncio.TimeoutError:
            raise PriceFetchError("yfinance_timeout")
