import io
import logging
import math
from datetime import date
from typing import Optional

import httpx
import pandas as pd

from driftwatch.core.config import settings
from driftwatch.core.errors import PriceFetchError
from driftwatch.services.market_data.base import DailyClose, PriceProvider

logger = logging.getLogger(__name__)


def parse_stooq_csv(text: str) -> DailyClose:
    """
    Read the last row of a Stooq quote CSV (Symbol,Date,Close).
    Stooq reports missing quotes as N/D.
    """
    try:
        df = pd.read_csv(io.StringIO(text), dtype=str, skipinitialspace=True)
    except (pd.errors.EmptyDataError, pd.errors.ParserError):
        raise PriceFetchError("stooq_empty")
    if df.empty:
        raise PriceFetchError("stooq_empty")

    # Stooq varies header capitalization; accept both
    df.columns = [str(c).strip().lower() for c in df.columns]
    if "date" not in df.columns or "close" not in df.columns:
        raise PriceFetchError("stooq_bad_csv")

    last = df.iloc[-1]
    raw_date, raw_close = last["date"], last["close"]
    if pd.isna(raw_date) or pd.isna(raw_close):
        raise PriceFetchError("stooq_bad_csv")

    try:
        close_date = date.fromisoformat(str(raw_date).strip())
    except ValueError:
        raise PriceFetchError("stooq_bad_csv")

    close = pd.to_numeric(str(raw_close).strip(), errors="coerce")
    if pd.isna(close) or not math.isfinite(float(close)) or float(close) <= 0:
        raise PriceFetchError("stooq_bad_close")

    return DailyClose(date=close_date, close=float(close))


class StooqProvider(PriceProvider):
    """Stooq daily quotes for US-listed symbols (``<symbol>.us``)."""

    name = "stooq"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_sec: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = settings.STOOQ_BASE_URL if base_url is None else base_url
        self.timeout_sec = (
            settings.PRICE_FETCH_TIMEOUT_SEC if timeout_sec is None else timeout_sec
        )
        self._transport = transport

    async def fetch_latest_close(self, symbol: str) -> DailyClose:
        # f=sd2c => Symbol,Date,Close; h => header row; e=csv
        params = {"s": f"{symbol.lower()}.us", "f": "sd2c", "h": "", "e": "csv"}
        headers = {"user-agent": settings.HTTP_USER_AGENT}

        async with httpx.AsyncClient(
            timeout=self.timeout_sec, headers=headers, transport=self._transport
        ) as client:
            try:
                response = await client.get(self.base_url, params=params)
            except httpx.TimeoutException:
                raise PriceFetchError("stooq_timeout")
            except httpx.HTTPError as e:
                raise PriceFetchError(f"stooq_request_failed: {e}")

        if response.status_code != 200:
            raise PriceFetchError(f"stooq_http_{response.status_code}")

        result = parse_stooq_csv(response.text)
        logger.debug("Stooq close for %s: %s on %s", symbol, result.close, result.date)
        return result
